"""Social feed routes: posts, likes, comments, follows, profiles."""

from fastapi import APIRouter, Depends, status, Query, UploadFile, File, Form
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from typing import Optional
from uuid import uuid4
import logging

from src.shared.auth.database import get_db, User
from src.shared.auth.dependencies import get_current_user, get_optional_user
from src.shared.auth.schemas import UserResponse
from src.shared.social import engagement, feed, relationships
from src.shared.social.errors import api_error
from src.shared.social.identity import require_user
from src.shared.social.image_utils import process_image
from src.shared.social.stats import get_user_stats, is_following
from src.shared.social.storage import get_image_storage, StorageError
from src.shared.social.schemas import (
    FeedResponse,
    PostDetailResponse,
    CreatePostResponse,
    CommentCreate,
    CommentListResponse,
    CreateCommentResponse,
    LikeCreate,
    LikeResponse,
    CreateLikeResponse,
    DeleteLikeResponse,
    FollowCreate,
    FollowResponse,
    CreateFollowResponse,
    SuccessResponse,
    UserStats,
    UserProfileResponse,
    ERROR_RESPONSES,
)

router = APIRouter(prefix="/api", tags=["social"], responses=ERROR_RESPONSES)


# ─────────────────────────────── Posts ───────────────────────────────

@router.get("/posts", response_model=FeedResponse)
async def get_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(feed.DEFAULT_PAGE_SIZE, ge=1, le=feed.MAX_PAGE_SIZE),
    user_id: Optional[str] = Query(None, alias="userId"),
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """Newest-first feed, optionally restricted to one user's posts."""
    return feed.list_posts(db, page=page, limit=limit, owner_identifier=user_id, viewer=viewer)


@router.post("/posts", response_model=CreatePostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    image: UploadFile = File(...),
    caption: Optional[str] = Form(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage=Depends(get_image_storage),
):
    """
    Upload an image and create a post for it.

    Everything that can be rejected is checked before the upload. If the
    insert fails afterwards the uploaded object is removed again, once.
    """
    caption = feed.normalize_caption(caption)
    # Decoding and re-encoding is CPU bound; keep it off the event loop
    image_bytes, content_type, file_ext = await run_in_threadpool(process_image, image)

    key = f"{current_user.id}/{uuid4()}{file_ext}"
    try:
        storage.upload(key, image_bytes, content_type)
    except StorageError as e:
        logging.error(f"Error uploading image: {str(e)}", exc_info=True)
        raise api_error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to upload image", str(e))

    # Stored as the backend hands it out; never built from request headers
    image_url = storage.public_url(key)
    try:
        post = feed.create_post(db, current_user, image_url, caption)
    except Exception:
        try:
            storage.delete(key)
        except StorageError as cleanup_error:
            logging.error(f"Orphaned image {key} could not be removed: {str(cleanup_error)}")
        raise

    return CreatePostResponse(success=True, post=feed.post_response(post))


@router.get("/posts/{post_id}", response_model=PostDetailResponse)
async def get_post(
    post_id: str,
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """Get a single post by ID."""
    return PostDetailResponse(post=feed.get_post_detail(db, post_id, viewer))


# ─────────────────────────────── Comments ───────────────────────────────

@router.get("/comments", response_model=CommentListResponse)
async def get_comments(
    post_id: str = Query(..., alias="postId", min_length=1),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Get comments for a post, newest first."""
    comments = engagement.list_comments(db, post_id, limit)
    return CommentListResponse(comments=[feed.comment_response(c) for c in comments])


@router.post("/comments", response_model=CreateCommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    comment_data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a comment on a post."""
    comment = engagement.add_comment(db, current_user, comment_data.post_id, comment_data.content)
    return CreateCommentResponse(success=True, comment=feed.comment_response(comment))


@router.delete("/comments/{comment_id}", response_model=SuccessResponse)
async def delete_comment(
    comment_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete own comment."""
    engagement.delete_comment(db, current_user, comment_id)
    return SuccessResponse(success=True)


# ─────────────────────────────── Likes ───────────────────────────────

@router.post("/likes", response_model=CreateLikeResponse)
async def like_post(
    like_data: LikeCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Like a post. 409 if the caller already likes it."""
    like = engagement.like_post(db, current_user, like_data.post_id)
    return CreateLikeResponse(
        success=True,
        like=LikeResponse.model_validate(like),
        like_count=engagement.count_likes(db, like.post_id),
    )


@router.delete("/likes/{post_id}", response_model=DeleteLikeResponse)
async def unlike_post(
    post_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Remove the caller's like (no-op if there was none)."""
    engagement.unlike_post(db, current_user, post_id)
    return DeleteLikeResponse(success=True, like_count=engagement.count_likes(db, post_id))


# ─────────────────────────────── Follows ───────────────────────────────

@router.post("/follows", response_model=CreateFollowResponse, status_code=status.HTTP_201_CREATED)
async def follow(
    follow_data: FollowCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Follow a user by internal id or auth provider id."""
    follow_row = relationships.follow_user(db, current_user, follow_data.following_id)
    return CreateFollowResponse(success=True, follow=FollowResponse.model_validate(follow_row))


@router.delete("/follows/{following_id}", response_model=SuccessResponse)
async def unfollow(
    following_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Unfollow a user by internal id or auth provider id."""
    relationships.unfollow_user(db, current_user, following_id)
    return SuccessResponse(success=True)


# ─────────────────────────────── Profiles ───────────────────────────────

@router.get("/users/{user_id}", response_model=UserProfileResponse)
async def get_user_profile(
    user_id: str,
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """Profile with post/follower/following counts and the viewer's follow status."""
    target_user = require_user(db, user_id)

    return UserProfileResponse(
        user=UserResponse.model_validate(target_user),
        stats=UserStats(**get_user_stats(db, target_user.id)),
        is_following=is_following(db, viewer.id if viewer else None, target_user.id),
    )
