"""Authentication utilities: identity-token verification and user provisioning."""

from jose import JWTError, jwt
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional
import logging
import os

from src.shared.auth.database import User

# Tokens are issued by the external auth provider; we only verify them.
# AUTH_JWT_KEY is either the shared secret (HS*) or the provider's PEM public key (RS*/ES*).
AUTH_JWT_KEY = os.environ.get("AUTH_JWT_KEY")
if not AUTH_JWT_KEY:
    logging.warning(
        "AUTH_JWT_KEY environment variable is not set. "
        "Identity tokens cannot be verified and every request will be anonymous."
    )
AUTH_JWT_ALGORITHMS = [
    alg.strip() for alg in os.environ.get("AUTH_JWT_ALGORITHMS", "HS256").split(",") if alg.strip()
]
AUTH_JWT_ISSUER = os.environ.get("AUTH_JWT_ISSUER") or None
AUTH_JWT_AUDIENCE = os.environ.get("AUTH_JWT_AUDIENCE") or None

UNKNOWN_DISPLAY_NAME = "Unknown"


def verify_token(token: str) -> Optional[dict]:
    """
    Verify and decode an identity token issued by the auth provider.

    Returns:
        Decoded token payload or None if invalid
    """
    if not AUTH_JWT_KEY:
        logging.error("AUTH_JWT_KEY is not set. Cannot verify token.")
        return None
    try:
        return jwt.decode(
            token,
            AUTH_JWT_KEY,
            algorithms=AUTH_JWT_ALGORITHMS,
            issuer=AUTH_JWT_ISSUER,
            audience=AUTH_JWT_AUDIENCE,
            options={"verify_aud": AUTH_JWT_AUDIENCE is not None},
        )
    except JWTError:
        return None


def display_name_from_claims(claims: dict) -> str:
    """Pick a display name: full name, then username, then email, then "Unknown"."""
    full_name = claims.get("full_name") or claims.get("name")
    if not full_name:
        parts = [claims.get("first_name"), claims.get("last_name")]
        full_name = " ".join(p for p in parts if p)
    for candidate in (full_name, claims.get("username"), claims.get("email")):
        if candidate and str(candidate).strip():
            return str(candidate).strip()
    return UNKNOWN_DISPLAY_NAME


def provision_user(db: Session, claims: dict) -> User:
    """
    Return the users row for the token subject, creating it on first sight.

    Runs on every authenticated request so a freshly signed-up user has a row
    before any handler looks them up. Two first requests racing each other both
    try the insert; the loser hits the unique external_auth_id and re-reads.
    """
    external_auth_id = claims["sub"]
    user = db.query(User).filter(User.external_auth_id == external_auth_id).first()
    if user is not None:
        return user

    user = User(
        external_auth_id=external_auth_id,
        display_name=display_name_from_claims(claims),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        user = db.query(User).filter(User.external_auth_id == external_auth_id).one()
        return user

    db.refresh(user)
    logging.info(f"Provisioned user {user.id} for external id {external_auth_id}")
    return user
