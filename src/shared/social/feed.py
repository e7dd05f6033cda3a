"""Feed assembly: paginated posts with author, counts and comment previews."""

from datetime import datetime
from typing import Dict, List, Optional, Set
import logging

from fastapi import status
from sqlalchemy import func, and_
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from src.shared.auth.database import User
from src.shared.auth.schemas import UserResponse
from src.shared.social.database import Post, Like, Comment
from src.shared.social.errors import api_error
from src.shared.social.identity import resolve_user
from src.shared.social.storage import public_image_url
from src.shared.social.schemas import (
    PostResponse,
    CommentResponse,
    FeedPostResponse,
    FeedResponse,
)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50
PREVIEW_COMMENT_COUNT = 2
MAX_CAPTION_LENGTH = 2200


def _grouped_counts(db: Session, model, post_ids: List[str], label: str) -> Dict[str, int]:
    """post_id -> row count of model (Like or Comment); empty map on datastore errors."""
    if not post_ids:
        return {}
    try:
        rows = db.query(
            model.post_id,
            func.count(model.id).label('count')
        ).filter(model.post_id.in_(post_ids)).group_by(model.post_id).all()
    except SQLAlchemyError as e:
        db.rollback()
        logging.warning(f"Counting {label} failed, using 0: {str(e)}")
        return {}
    return {str(post_id): count for post_id, count in rows}


def _liked_post_ids(db: Session, post_ids: List[str], viewer_id: Optional[str]) -> Set[str]:
    if not viewer_id or not post_ids:
        return set()
    try:
        rows = db.query(Like.post_id).filter(
            and_(
                Like.post_id.in_(post_ids),
                Like.user_id == viewer_id
            )
        ).all()
    except SQLAlchemyError as e:
        db.rollback()
        logging.warning(f"Like status lookup failed, using False: {str(e)}")
        return set()
    return {str(row[0]) for row in rows}


def _preview_comments(db: Session, post_id: str) -> List[CommentResponse]:
    try:
        comments = db.query(Comment).filter(
            Comment.post_id == post_id
        ).order_by(Comment.created_at.desc(), Comment.id.desc()).limit(PREVIEW_COMMENT_COUNT).all()
    except SQLAlchemyError as e:
        db.rollback()
        logging.warning(f"Comment preview failed for post {post_id}: {str(e)}")
        return []
    return [comment_response(comment) for comment in comments]


def comment_response(comment: Comment) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        post_id=comment.post_id,
        user_id=comment.user_id,
        content=comment.content,
        created_at=comment.created_at,
        user=UserResponse.model_validate(comment.author) if comment.author else None,
    )


def post_response(post: Post, like_count: int = 0, comment_count: int = 0, is_liked: bool = False) -> PostResponse:
    return PostResponse(
        id=post.id,
        user_id=post.user_id,
        image_url=public_image_url(post.image_url),
        caption=post.caption,
        created_at=post.created_at,
        updated_at=post.updated_at,
        user=UserResponse.model_validate(post.author),
        like_count=like_count,
        comment_count=comment_count,
        is_liked=is_liked,
    )


def list_posts(
    db: Session,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    owner_identifier: Optional[str] = None,
    viewer: Optional[User] = None,
) -> FeedResponse:
    """
    One page of posts, newest first.

    An owner filter that does not resolve returns an empty page: "no posts"
    and "no such user" look the same here.
    """
    offset = (page - 1) * limit

    query = db.query(Post).join(User, Post.user_id == User.id)
    if owner_identifier:
        lookup = resolve_user(db, owner_identifier)
        if not lookup.found:
            return FeedResponse(posts=[], has_more=False)
        query = query.filter(Post.user_id == lookup.user_id)

    try:
        # id breaks created_at ties so consecutive pages never overlap or skip
        posts = query.order_by(Post.created_at.desc(), Post.id.desc()).offset(offset).limit(limit).all()
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Posts fetch failed: {str(e)}", exc_info=True)
        raise api_error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch posts", str(e))

    if not posts:
        return FeedResponse(posts=[], has_more=False)

    post_ids = [post.id for post in posts]
    like_count_map = _grouped_counts(db, Like, post_ids, "likes")
    comment_count_map = _grouped_counts(db, Comment, post_ids, "comments")
    liked_post_ids = _liked_post_ids(db, post_ids, viewer.id if viewer else None)

    post_responses = []
    for post in posts:
        base = post_response(
            post,
            like_count=like_count_map.get(post.id, 0),
            comment_count=comment_count_map.get(post.id, 0),
            is_liked=post.id in liked_post_ids,
        )
        post_responses.append(FeedPostResponse(
            **base.model_dump(),
            preview_comments=_preview_comments(db, post.id),
        ))

    try:
        total = query.with_entities(func.count(Post.id)).scalar() or 0
        has_more = (offset + limit) < total
    except SQLAlchemyError as e:
        db.rollback()
        logging.warning(f"Counting posts failed, guessing hasMore from page size: {str(e)}")
        has_more = len(posts) == limit

    return FeedResponse(posts=post_responses, has_more=has_more)


def get_post_detail(db: Session, post_id: str, viewer: Optional[User] = None) -> PostResponse:
    """Single post with best-effort counts and like status."""
    post = db.query(Post).filter(Post.id == post_id).first()
    if not post or not post.author:
        raise api_error(status.HTTP_404_NOT_FOUND, "Post not found")

    like_count_map = _grouped_counts(db, Like, [post.id], "likes")
    comment_count_map = _grouped_counts(db, Comment, [post.id], "comments")
    liked_post_ids = _liked_post_ids(db, [post.id], viewer.id if viewer else None)

    return post_response(
        post,
        like_count=like_count_map.get(post.id, 0),
        comment_count=comment_count_map.get(post.id, 0),
        is_liked=post.id in liked_post_ids,
    )


def normalize_caption(caption: Optional[str]) -> Optional[str]:
    """Trim a caption; blank becomes None. Over-long captions are rejected."""
    if caption is None:
        return None
    caption = caption.strip()
    if not caption:
        return None
    if len(caption) > MAX_CAPTION_LENGTH:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "Caption is too long",
            f"Maximum length is {MAX_CAPTION_LENGTH} characters",
        )
    return caption


def create_post(db: Session, user: User, image_url: str, caption: Optional[str]) -> Post:
    """Insert a post. Caller owns cleanup of the stored image if this raises."""
    now = datetime.utcnow()
    post = Post(
        user_id=user.id,
        image_url=image_url,
        caption=caption,
        created_at=now,
        updated_at=now,
    )
    db.add(post)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Post insert failed: {str(e)}", exc_info=True)
        raise api_error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to create post", str(e))

    db.refresh(post)
    return post
