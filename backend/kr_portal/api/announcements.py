from typing import Dict
from fastapi import APIRouter, Depends, HTTPException, status

from kr_portal.backend.dependencies import get_backend
from kr_portal.core.exceptions import BackendError
from kr_portal.core.logging import api_logger
from kr_portal.permissions.constants import Feature
from kr_portal.permissions.dependencies import require_capability

router = APIRouter()


@router.get("/view-counts", response_model=Dict[str, int])
async def announcement_view_counts(
    _=Depends(require_capability(Feature.MANAGE_ANNOUNCEMENTS)),
    backend=Depends(get_backend),
):
    try:
        rows = await backend.get_announcement_view_counts()
    except BackendError as e:
        api_logger.error("Failed to load announcement view counts", error=e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Could not load view counts")
    return {row.announcement_id: row.view_count for row in rows}
