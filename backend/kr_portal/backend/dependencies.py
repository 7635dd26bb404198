from typing import Optional
from fastapi import Depends, HTTPException, Request, status

from kr_portal.backend.models import Profile
from kr_portal.core.exceptions import BackendError
from kr_portal.core.logging import api_logger
from kr_portal.core.security import get_current_user


def get_backend(request: Request):
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Backend not connected")
    return backend


async def get_current_profile(
    current_user: dict = Depends(get_current_user),
    backend=Depends(get_backend),
) -> Profile:
    """The caller's stored profile, the only source of truth for server-side checks."""
    try:
        profile: Optional[Profile] = await backend.get_profile(current_user["user_id"])
    except BackendError as e:
        api_logger.error("Profile lookup failed", error=e, user_id=current_user["user_id"])
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Could not load profile")
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile
