from enum import Enum


class Feature(str, Enum):
    # Navigation
    DASHBOARD = "dashboard"
    ANNOUNCEMENT = "announcement"
    ATTENDANCE = "attendance"
    NOC = "noc"
    LEAVE_REQUEST = "leave_request"
    UPDATE_LOGS = "update_logs"
    VALORANT_STATS = "valorant_stats"

    # Management pages
    MANAGE_MEMBERS = "manage_members"
    MANAGE_ATTENDANCE = "manage_attendence"
    MANAGE_PASSWORDS = "manage_passwords"
    MANAGE_ANNOUNCEMENTS = "manage_announcements"
    MANAGE_VALORANT_STATS = "manage_valorant_stats"
    MANAGE_UPDATE_LOGS = "manage_update_logs"
    MANAGE_USER_REPORTS = "manage_user-reports"
    MEMBERS_EDIT = "members.edit"

    # Tournaments
    TOURNAMENTS_VIEW = "tournaments.view"
    TOURNAMENTS_CREATE = "tournaments.create"
    TOURNAMENTS_EDIT = "tournaments.edit"
    TOURNAMENTS_DELETE = "tournaments.delete"
    TOURNAMENTS_STATUS = "tournaments.status"

    # Valorant team
    TEAM_VIEW = "team.view"
    TEAM_ROSTER_VIEW = "team.roster.view"
    TEAM_ROSTER_MANAGE = "team.roster.manage"
    TEAM_MATCHES_VIEW = "team.matches.view"
    TEAM_MATCHES_MANAGE = "team.matches.manage"
    TEAM_MATCHES_AVAILABILITY = "team.matches.availability"
    TEAM_VODS_VIEW = "team.vods.view"
    TEAM_VODS_MANAGE = "team.vods.manage"
    TEAM_STATS_VIEW = "team.stats.view"
    TEAM_ANNOUNCEMENTS_MANAGE = "team.announcements.manage"
