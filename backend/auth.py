"""Resolution of the current user forwarded by the identity provider.

The hosted identity provider terminates sign-in and sessions in front of
this service and forwards the authenticated user id in ``X-User-Id``.
"""

from fastapi import Header, HTTPException

from backend.exceptions import AuthenticationRequired


def require_user(user_id: str | None) -> str:
    """Return ``user_id`` or raise AuthenticationRequired when it is empty."""
    if not user_id:
        raise AuthenticationRequired()
    return user_id


async def get_optional_user_id(x_user_id: str | None = Header(default=None)) -> str | None:
    """Return the forwarded user id, or None for anonymous requests."""
    return x_user_id or None


async def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Return the forwarded user id or reject the request with 401."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="User not authenticated")
    return x_user_id
