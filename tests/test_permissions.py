from uthabiti.core.permissions import PermissionCode, Role, has_permission, is_staff, permissions_for


def test_admin_has_every_staff_permission():
    granted = permissions_for(Role.ADMIN)
    assert PermissionCode.LOAN_ISSUE in granted
    assert PermissionCode.SETTINGS_MANAGE in granted
    assert PermissionCode.SELF_SERVICE not in granted


def test_data_clerk_registers_and_enrolls_but_cannot_issue_loans():
    assert has_permission("Data Clerk", PermissionCode.MEMBER_REGISTER)
    assert has_permission("Data Clerk", PermissionCode.SACCO_ENROLL)
    assert not has_permission("Data Clerk", PermissionCode.LOAN_ISSUE)
    assert not has_permission("Data Clerk", PermissionCode.MEMBER_STATUS_MANAGE)


def test_viewer_is_read_only():
    assert has_permission(Role.VIEWER, "member.view")
    assert not has_permission(Role.VIEWER, PermissionCode.MEMBER_REGISTER)


def test_member_only_has_self_service():
    assert permissions_for("Member") == {PermissionCode.SELF_SERVICE}


def test_unknown_role_has_nothing():
    assert permissions_for("Superuser") == set()
    assert permissions_for(None) == set()
    assert not has_permission("Superuser", PermissionCode.DASHBOARD_VIEW)


def test_is_staff():
    assert is_staff("Champion")
    assert not is_staff("Member")
    assert not is_staff(None)
