from __future__ import annotations

from fastapi import HTTPException, Path, status

from spendwise.core.logging import bind_log_fields


async def current_user_id(user_id: str = Path(min_length=1, max_length=200)) -> str:
    # Identity is resolved upstream; the path carries the already-authenticated user id.
    user_id = user_id.strip()
    if not user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User id is required")
    bind_log_fields(user_id=user_id)
    return user_id
