"""Shared router dependencies."""

from typing import Optional

from fastapi import Header, HTTPException, status


async def get_owner_id(x_owner_id: Optional[str] = Header(default=None)) -> str:
    """
    Portfolio owner making the request.

    Authentication happens upstream; the gateway forwards the resolved owner
    in the ``X-Owner-Id`` header.
    """
    if not x_owner_id or not x_owner_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )
    return x_owner_id.strip()
