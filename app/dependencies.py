# app/dependencies.py
"""
Request-scoped dependencies shared by the routers.
Session/cookie authentication happens upstream; by the time a request
reaches us the gateway has resolved the user into two headers.
"""

from typing import Optional
from fastapi import Header, HTTPException, status
from app.schemas.audit_log import Actor


def get_actor(
    x_user_id: Optional[int] = Header(None),
    x_username: Optional[str] = Header(None),
) -> Actor:
    """Authenticated actor for mutating endpoints — 401 if missing."""
    if x_user_id is None or not x_username:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please login (10001)",
        )
    return Actor(user_id=x_user_id, username=x_username[:64])
