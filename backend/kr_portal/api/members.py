import asyncio
from datetime import datetime
from typing import Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from kr_portal.backend.dependencies import get_backend
from kr_portal.core.exceptions import BackendError
from kr_portal.core.logging import api_logger
from kr_portal.permissions.constants import Feature
from kr_portal.permissions.dependencies import require_capability
from kr_portal.permissions.roles import role_display

router = APIRouter()


async def _load_emails(backend) -> Dict[str, Optional[str]]:
    # Emails are optional: members still list with "N/A" when the RPC fails
    try:
        rows = await backend.get_user_emails()
    except BackendError as e:
        api_logger.warning("Failed to load member emails", error=e)
        return {}
    return {row.id: row.email for row in rows}


class MemberResponse(BaseModel):
    id: str
    username: Optional[str]
    full_name: Optional[str]
    display_name: str
    avatar_url: Optional[str]
    role: Optional[str]
    role_display: str
    email: str
    phone_number: Optional[str]
    discord_id: Optional[str]
    created_at: Optional[datetime]


@router.get("", response_model=List[MemberResponse])
async def list_members(
    _=Depends(require_capability(Feature.MANAGE_MEMBERS)),
    backend=Depends(get_backend),
):
    """Member directory with emails, which only the get_user_emails RPC can read."""
    try:
        profiles, email_by_id = await asyncio.gather(backend.list_profiles(), _load_emails(backend))
    except BackendError as e:
        api_logger.error("Failed to load member directory", error=e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Could not load members")

    return [
        MemberResponse(
            id=p.id,
            username=p.username,
            full_name=p.full_name,
            display_name=p.display_name,
            avatar_url=p.avatar_url,
            role=p.role.value if p.role else None,
            role_display=role_display(p.role),
            email=email_by_id.get(p.id) or "N/A",
            phone_number=p.phone_number,
            discord_id=p.discord_id,
            created_at=p.created_at,
        )
        for p in profiles
    ]
