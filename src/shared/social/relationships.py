"""Follow / unfollow between users."""

from datetime import datetime
import logging

from fastapi import status
from sqlalchemy import and_
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from src.shared.auth.database import User
from src.shared.social.database import Follow
from src.shared.social.errors import api_error
from src.shared.social.identity import require_user


def follow_user(db: Session, follower: User, target_identifier: str) -> Follow:
    """
    Make follower follow the user behind target_identifier.

    Duplicates are caught by uq_follow_follower_following rather than a
    read-before-write, so two concurrent requests cannot both succeed.
    """
    target = require_user(db, target_identifier, "User to follow not found")

    if target.id == follower.id:
        raise api_error(status.HTTP_400_BAD_REQUEST, "You cannot follow yourself")

    follow = Follow(
        follower_id=follower.id,
        following_id=target.id,
        created_at=datetime.utcnow()
    )
    db.add(follow)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise api_error(status.HTTP_409_CONFLICT, "Already following this user")
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Follow insert failed: {str(e)}", exc_info=True)
        raise api_error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to follow user", str(e))

    db.refresh(follow)
    return follow


def unfollow_user(db: Session, follower: User, target_identifier: str) -> None:
    """Remove the follow row; 404 when there was nothing to remove."""
    target = require_user(db, target_identifier, "User to unfollow not found")

    try:
        deleted = db.query(Follow).filter(
            and_(
                Follow.follower_id == follower.id,
                Follow.following_id == target.id
            )
        ).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Follow delete failed: {str(e)}", exc_info=True)
        raise api_error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to unfollow user", str(e))

    if not deleted:
        raise api_error(status.HTTP_404_NOT_FOUND, "Follow relationship not found")
