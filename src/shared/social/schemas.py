"""Pydantic schemas for social feed API.

Wire names follow the web client (postId, hasMore, previewComments, ...);
Python attributes stay snake_case through aliases.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime

from src.shared.auth.schemas import UserResponse


class PostResponse(BaseModel):
    """Post with author and engagement counts."""
    id: str
    user_id: str
    image_url: str
    caption: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    user: UserResponse
    like_count: int = 0
    comment_count: int = 0
    is_liked: bool = False  # Whether current user has liked this post

    class Config:
        from_attributes = True
        populate_by_name = True


class CommentResponse(BaseModel):
    """Schema for comment response."""
    id: str
    post_id: str
    user_id: str
    content: str
    created_at: datetime
    user: Optional[UserResponse] = None

    class Config:
        from_attributes = True


class FeedPostResponse(PostResponse):
    """Feed entry: a post plus its two newest comments."""
    preview_comments: List[CommentResponse] = Field(default_factory=list, alias="previewComments")


class FeedResponse(BaseModel):
    """Schema for feed response with pagination."""
    posts: List[FeedPostResponse]
    has_more: bool = Field(..., alias="hasMore")

    class Config:
        populate_by_name = True


class PostDetailResponse(BaseModel):
    post: PostResponse


class CreatePostResponse(BaseModel):
    success: bool = True
    post: PostResponse


class CommentCreate(BaseModel):
    """Schema for creating a comment."""
    post_id: str = Field(..., min_length=1, alias="postId")
    content: str

    class Config:
        populate_by_name = True


class CommentListResponse(BaseModel):
    comments: List[CommentResponse]


class CreateCommentResponse(BaseModel):
    success: bool = True
    comment: CommentResponse


class LikeCreate(BaseModel):
    """Schema for liking a post."""
    post_id: str = Field(..., min_length=1, alias="postId")

    class Config:
        populate_by_name = True


class LikeResponse(BaseModel):
    """Schema for like response."""
    id: str
    post_id: str
    user_id: str
    created_at: datetime

    class Config:
        from_attributes = True


class CreateLikeResponse(BaseModel):
    success: bool = True
    like: LikeResponse
    like_count: int


class DeleteLikeResponse(BaseModel):
    success: bool = True
    like_count: int


class FollowCreate(BaseModel):
    """Schema for following a user by either identifier."""
    following_id: str = Field(..., min_length=1, alias="followingId")

    class Config:
        populate_by_name = True


class FollowResponse(BaseModel):
    """Schema for follow response."""
    id: str
    follower_id: str
    following_id: str
    created_at: datetime

    class Config:
        from_attributes = True


class CreateFollowResponse(BaseModel):
    success: bool = True
    follow: FollowResponse


class SuccessResponse(BaseModel):
    success: bool = True


class UserStats(BaseModel):
    posts: int = 0
    followers: int = 0
    following: int = 0


class UserProfileResponse(BaseModel):
    """Profile: user, aggregate stats and whether the viewer follows them."""
    user: UserResponse
    stats: UserStats
    is_following: bool = Field(False, alias="isFollowing")

    class Config:
        populate_by_name = True


class ErrorResponse(BaseModel):
    """Body of every error response."""
    error: str
    details: Optional[str] = None


ERROR_RESPONSES: Dict[int, dict] = {
    code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 409, 500)
}
