from typing import Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from kr_portal.backend.dependencies import get_current_profile
from kr_portal.backend.models import Profile
from kr_portal.core.exceptions import InvalidRole, RoleOverrideDenied
from kr_portal.core.security import get_current_user
from kr_portal.permissions.exceptions import PermissionDenied
from kr_portal.permissions.role_map import ROLE_CAPABILITIES
from kr_portal.permissions.service import capability_resolver
from kr_portal.session.context import RoleContext

router = APIRouter()


class SessionResponse(BaseModel):
    profile: Profile
    display_name: str
    role: Optional[str]
    active_role: Optional[str]
    role_display: str
    capabilities: Dict[str, bool]


@router.get("/session", response_model=SessionResponse)
async def get_session(
    view_as: Optional[str] = None,
    profile: Profile = Depends(get_current_profile),
):
    """
    Role state for the caller. `view_as` previews another role's gating and is
    only honoured for a stored kr_admin; it never changes server-side checks.
    """
    context = RoleContext.for_profile(profile)
    if view_as is not None:
        try:
            context.set_active_role(view_as)
        except InvalidRole as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except RoleOverrideDenied:
            raise PermissionDenied("view_as")

    snapshot = context.snapshot()
    return SessionResponse(
        profile=profile,
        display_name=context.display_name,
        role=snapshot["role"],
        active_role=snapshot["active_role"],
        role_display=snapshot["role_display"],
        capabilities=capability_resolver.capability_map(context.active_role),
    )


@router.get("/capabilities", response_model=Dict[str, List[str]])
async def get_capability_table(current_user: dict = Depends(get_current_user)):
    return {role.value: sorted(features) for role, features in ROLE_CAPABILITIES.items()}
