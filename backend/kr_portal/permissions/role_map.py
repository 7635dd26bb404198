from .constants import Feature as F
from .roles import Role

_MEMBER_FEATURES = {
    F.DASHBOARD,
    F.ANNOUNCEMENT,
    F.ATTENDANCE,
    F.NOC,
    F.LEAVE_REQUEST,
    F.UPDATE_LOGS,
    F.VALORANT_STATS,
    F.TOURNAMENTS_VIEW,
    F.TEAM_VIEW,
    F.TEAM_ROSTER_VIEW,
    F.TEAM_MATCHES_VIEW,
    F.TEAM_MATCHES_AVAILABILITY,
    F.TEAM_VODS_VIEW,
    F.TEAM_STATS_VIEW,
}

_MANAGER_FEATURES = _MEMBER_FEATURES | {
    F.MANAGE_ATTENDANCE,
    F.MANAGE_ANNOUNCEMENTS,
    F.MANAGE_VALORANT_STATS,
    F.TOURNAMENTS_CREATE,
    F.TOURNAMENTS_EDIT,
    F.TOURNAMENTS_STATUS,
    F.TEAM_ROSTER_MANAGE,
    F.TEAM_MATCHES_MANAGE,
    F.TEAM_VODS_MANAGE,
    F.TEAM_ANNOUNCEMENTS_MANAGE,
}

# Admins hold every declared Feature; strings outside Feature are denied to all roles.
_ADMIN_FEATURES = set(F)

ROLE_CAPABILITIES: dict[Role, frozenset[str]] = {
    Role.ADMIN: frozenset(f.value for f in _ADMIN_FEATURES),
    Role.MANAGER: frozenset(f.value for f in _MANAGER_FEATURES),
    Role.MEMBER: frozenset(f.value for f in _MEMBER_FEATURES),
}
