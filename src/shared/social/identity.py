"""
Resolve a user from either identifier namespace.

Profile, follow and feed routes accept a user identifier that is either our
own primary key (users.id) or the auth provider's subject (users.external_auth_id).
Every route goes through resolve_user() instead of repeating the lookup.
"""

from enum import Enum
from typing import Optional
import logging

from fastapi import status
from sqlalchemy import or_, case
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from src.shared.auth.database import User
from src.shared.social.errors import api_error


class LookupStatus(str, Enum):
    """Outcome of a user lookup."""
    FOUND = "found"
    NOT_FOUND = "not_found"
    LOOKUP_ERROR = "lookup_error"


class UserLookup:
    """Result of resolve_user(): the user, or why there is none."""

    def __init__(self, status: LookupStatus, user: Optional[User] = None, error: Optional[str] = None):
        self.status = status
        self.user = user
        self.error = error

    @property
    def found(self) -> bool:
        return self.status == LookupStatus.FOUND

    @property
    def user_id(self) -> Optional[str]:
        return self.user.id if self.user is not None else None

    def __repr__(self):
        return f"UserLookup(status={self.status.value!r}, user_id={self.user_id!r})"


def resolve_user(db: Session, identifier: Optional[str]) -> UserLookup:
    """
    Look a user up by primary key or external auth id in one round trip.

    If the identifier matches the primary key of one row and the external id of
    another, the primary-key match wins.
    """
    if not identifier or not identifier.strip():
        return UserLookup(LookupStatus.NOT_FOUND)
    identifier = identifier.strip()

    try:
        user = (
            db.query(User)
            .filter(or_(User.id == identifier, User.external_auth_id == identifier))
            .order_by(case((User.id == identifier, 0), else_=1))
            .limit(1)
            .one_or_none()
        )
    except SQLAlchemyError as e:
        db.rollback()
        logging.warning(f"User lookup failed for {identifier!r}: {str(e)}")
        return UserLookup(LookupStatus.LOOKUP_ERROR, error=str(e))

    if user is None:
        return UserLookup(LookupStatus.NOT_FOUND)
    return UserLookup(LookupStatus.FOUND, user=user)


def require_user(db: Session, identifier: Optional[str], not_found_message: str = "User not found") -> User:
    """resolve_user() for routes that cannot continue without the user."""
    lookup = resolve_user(db, identifier)
    if lookup.status == LookupStatus.LOOKUP_ERROR:
        raise api_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "User lookup failed",
            lookup.error,
        )
    if not lookup.found:
        raise api_error(
            status.HTTP_404_NOT_FOUND,
            not_found_message,
            "The user does not exist or has not been synchronised yet.",
        )
    return lookup.user
