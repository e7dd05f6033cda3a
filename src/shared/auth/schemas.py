"""Pydantic schemas for users."""

from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class UserResponse(BaseModel):
    """Public user fields."""
    id: str
    external_auth_id: Optional[str] = None
    display_name: str
    created_at: datetime

    class Config:
        from_attributes = True


class CurrentUserResponse(BaseModel):
    """Response for the authenticated caller."""
    user: UserResponse
