"""Error envelope helpers shared by the social services."""

from fastapi import HTTPException
from typing import Optional


def api_error(status_code: int, error: str, details: Optional[str] = None) -> HTTPException:
    """Build an HTTPException whose body is {"error": ..., "details": ...}."""
    detail = {"error": error}
    if details:
        detail["details"] = details
    return HTTPException(status_code=status_code, detail=detail)
