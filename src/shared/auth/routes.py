"""Routes for the authenticated caller."""

from fastapi import APIRouter, Depends

from src.shared.auth.database import User
from src.shared.auth.dependencies import get_current_user
from src.shared.auth.schemas import UserResponse, CurrentUserResponse

router = APIRouter(prefix="/api/users", tags=["auth"])


@router.get("/me", response_model=CurrentUserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Return the caller's users row, creating it on first sign-in."""
    return CurrentUserResponse(user=UserResponse.model_validate(current_user))
