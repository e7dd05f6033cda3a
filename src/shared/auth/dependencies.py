"""Authentication dependencies for protected routes."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
import logging

from src.shared.auth.database import get_db, User
from src.shared.auth.auth import verify_token, provision_user

# Use auto_error=False so anonymous requests reach optional-auth routes
security = HTTPBearer(auto_error=False)


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Get the current authenticated user from the identity token."""
    if credentials is None:
        raise _unauthorized("Authentication required")

    payload = verify_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Invalid authentication credentials")

    if not payload.get("sub"):
        raise _unauthorized("Invalid token payload")

    return provision_user(db, payload)


def get_optional_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """
    Like get_current_user, but anonymous or broken sessions yield None.

    Used where the caller only personalises the response (like status,
    follow status), so auth problems must not fail the request.
    """
    if credentials is None:
        return None

    payload = verify_token(credentials.credentials)
    if payload is None or not payload.get("sub"):
        logging.debug("Ignoring invalid token on optional-auth route")
        return None

    try:
        return provision_user(db, payload)
    except SQLAlchemyError as e:
        db.rollback()
        logging.debug(f"Viewer lookup failed, continuing anonymously: {str(e)}")
        return None
