"""Acting-user resolution supplied by the upstream authentication layer."""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, status


def get_acting_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> int:
    """Return the authenticated user id used for audit stamping.

    The auth collaborator sets ``X-User-Id`` after it has checked the session
    and team permissions; nothing here decides whether the user may write.
    """

    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    try:
        user_id = int(x_user_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="X-User-Id must be an integer") from exc
    if user_id <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="X-User-Id must be positive")
    return user_id
