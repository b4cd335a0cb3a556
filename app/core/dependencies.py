"""FastAPI dependency injection utilities."""

from typing import Annotated

from fastapi import Depends, Header

from app.core.exceptions import AuthenticationError
from app.core.security import verify_access_token


def get_current_user_id(
    authorization: str = Header(..., description="Bearer token"),
) -> int:
    """Extract the caller id from the bearer token."""
    if not authorization.startswith("Bearer "):
        raise AuthenticationError("Invalid authorization header format")

    token = authorization[7:]  # Remove "Bearer " prefix
    payload = verify_access_token(token)

    if not payload:
        raise AuthenticationError("Invalid or expired token")

    user_id_str = payload.get("sub")
    if not user_id_str:
        raise AuthenticationError("Invalid token payload")

    try:
        return int(user_id_str)
    except ValueError:
        raise AuthenticationError("Invalid user ID in token")


# Type alias for dependency injection
CurrentUserId = Annotated[int, Depends(get_current_user_id)]
