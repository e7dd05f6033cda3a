"""Likes and comments."""

from datetime import datetime
from typing import List
import logging

from fastapi import status
from sqlalchemy import func, and_
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from src.shared.auth.database import User
from src.shared.social.database import Post, Like, Comment
from src.shared.social.errors import api_error
from src.shared.social.stats import count_or_zero

MAX_COMMENT_LENGTH = 1000


def _require_post(db: Session, post_id: str) -> Post:
    post = db.query(Post).filter(Post.id == post_id).first()
    if not post:
        raise api_error(status.HTTP_404_NOT_FOUND, "Post not found")
    return post


def count_likes(db: Session, post_id: str) -> int:
    return count_or_zero(
        db,
        db.query(func.count(Like.id)).filter(Like.post_id == post_id),
        "likes",
    )


def like_post(db: Session, user: User, post_id: str) -> Like:
    """Like a post. uq_like_post_user decides whether it was already liked."""
    _require_post(db, post_id)

    like = Like(
        post_id=post_id,
        user_id=user.id,
        created_at=datetime.utcnow()
    )
    db.add(like)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise api_error(status.HTTP_409_CONFLICT, "Already liked")
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Like insert failed: {str(e)}", exc_info=True)
        raise api_error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to add like", str(e))

    db.refresh(like)
    return like


def unlike_post(db: Session, user: User, post_id: str) -> None:
    """Remove the caller's like. Succeeds whether or not a like existed."""
    try:
        db.query(Like).filter(
            and_(Like.post_id == post_id, Like.user_id == user.id)
        ).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Like delete failed: {str(e)}", exc_info=True)
        raise api_error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to delete like", str(e))


def add_comment(db: Session, user: User, post_id: str, content: str) -> Comment:
    """Create a comment with trimmed content."""
    content = (content or "").strip()
    if not content:
        raise api_error(status.HTTP_400_BAD_REQUEST, "Comment content is required")
    if len(content) > MAX_COMMENT_LENGTH:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "Comment is too long",
            f"Maximum length is {MAX_COMMENT_LENGTH} characters",
        )

    _require_post(db, post_id)

    comment = Comment(
        post_id=post_id,
        user_id=user.id,
        content=content,
        created_at=datetime.utcnow()
    )
    db.add(comment)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Comment insert failed: {str(e)}", exc_info=True)
        raise api_error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to add comment", str(e))

    db.refresh(comment)
    return comment


def list_comments(db: Session, post_id: str, limit: int = 50) -> List[Comment]:
    """Newest comments first, authors loaded."""
    try:
        return db.query(Comment).filter(
            Comment.post_id == post_id
        ).order_by(Comment.created_at.desc(), Comment.id.desc()).limit(limit).all()
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Comment fetch failed: {str(e)}", exc_info=True)
        raise api_error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to load comments", str(e))


def delete_comment(db: Session, user: User, comment_id: str) -> None:
    """Delete own comment."""
    comment = db.query(Comment).filter(Comment.id == comment_id).first()
    if not comment:
        raise api_error(status.HTTP_404_NOT_FOUND, "Comment not found")

    if comment.user_id != user.id:
        raise api_error(status.HTTP_403_FORBIDDEN, "You can only delete your own comments")

    try:
        db.delete(comment)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Comment delete failed: {str(e)}", exc_info=True)
        raise api_error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to delete comment", str(e))
