from enum import Enum


class Role(str, Enum):
    ADMIN = "Admin"
    DATA_CLERK = "Data Clerk"
    CHAMPION = "Champion"
    VIEWER = "Viewer"
    MEMBER = "Member"


STAFF_ROLES = {Role.ADMIN, Role.DATA_CLERK, Role.CHAMPION, Role.VIEWER}


class PermissionCode(str, Enum):
    DASHBOARD_VIEW = "dashboard.view"
    MEMBER_VIEW = "member.view"
    MEMBER_REGISTER = "member.register"
    MEMBER_MANAGE = "member.manage"
    MEMBER_STATUS_MANAGE = "member.status.manage"
    FACILITY_MANAGE = "facility.manage"
    SACCO_VIEW = "sacco.view"
    SACCO_ENROLL = "sacco.enroll"
    SACCO_STATUS_MANAGE = "sacco.status.manage"
    CONTRIBUTION_POST = "contribution.post"
    LOAN_ISSUE = "loan.issue"
    LOAN_TYPE_MANAGE = "loan_type.manage"
    SETTINGS_MANAGE = "settings.manage"
    USER_MANAGE = "user.manage"
    SURVEY_MANAGE = "survey.manage"
    ACTIVITY_LOG_VIEW = "activity_log.view"
    SELF_SERVICE = "self.service"


_VIEW_ONLY = {PermissionCode.DASHBOARD_VIEW, PermissionCode.MEMBER_VIEW}

ROLE_PERMISSIONS: dict[Role, set[PermissionCode]] = {
    Role.ADMIN: set(PermissionCode) - {PermissionCode.SELF_SERVICE},
    Role.DATA_CLERK: _VIEW_ONLY
    | {
        PermissionCode.MEMBER_REGISTER,
        PermissionCode.SACCO_VIEW,
        PermissionCode.SACCO_ENROLL,
    },
    Role.CHAMPION: _VIEW_ONLY | {PermissionCode.MEMBER_REGISTER},
    Role.VIEWER: set(_VIEW_ONLY),
    Role.MEMBER: {PermissionCode.SELF_SERVICE},
}


def _as_role(role: Role | str | None) -> Role | None:
    if role is None:
        return None
    try:
        return Role(role)
    except ValueError:
        return None


def permissions_for(role: Role | str | None) -> set[PermissionCode]:
    resolved = _as_role(role)
    if resolved is None:
        return set()
    return set(ROLE_PERMISSIONS.get(resolved, set()))


def has_permission(role: Role | str | None, permission: PermissionCode | str) -> bool:
    code = permission if isinstance(permission, PermissionCode) else PermissionCode(permission)
    return code in permissions_for(role)


def is_staff(role: Role | str | None) -> bool:
    return _as_role(role) in STAFF_ROLES
