"""Best-effort profile statistics.

Every count here is its own query and falls back to 0 when the query fails,
so a broken table never blocks the rest of a profile from rendering.
"""

from typing import Dict, Optional
import logging

from sqlalchemy import func, and_
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from src.shared.social.database import Post, Follow


def count_or_zero(db: Session, query, label: str) -> int:
    """Run a scalar count query; log and return 0 on any datastore error."""
    try:
        return query.scalar() or 0
    except SQLAlchemyError as e:
        db.rollback()
        logging.warning(f"Counting {label} failed, using 0: {str(e)}")
        return 0


def get_user_stats(db: Session, user_id: str) -> Dict[str, int]:
    """Post, follower and following counts for a canonical user id."""
    posts = count_or_zero(
        db,
        db.query(func.count(Post.id)).filter(Post.user_id == user_id),
        "posts",
    )
    followers = count_or_zero(
        db,
        db.query(func.count(Follow.id)).filter(Follow.following_id == user_id),
        "followers",
    )
    following = count_or_zero(
        db,
        db.query(func.count(Follow.id)).filter(Follow.follower_id == user_id),
        "following",
    )
    return {"posts": posts, "followers": followers, "following": following}


def is_following(db: Session, viewer_id: Optional[str], target_id: str) -> bool:
    """Whether viewer follows target. Anonymous and self views are always False."""
    if not viewer_id or viewer_id == target_id:
        return False
    try:
        follow = db.query(Follow.id).filter(
            and_(
                Follow.follower_id == viewer_id,
                Follow.following_id == target_id
            )
        ).first()
    except SQLAlchemyError as e:
        db.rollback()
        logging.warning(f"Follow status check failed, using False: {str(e)}")
        return False
    return follow is not None
