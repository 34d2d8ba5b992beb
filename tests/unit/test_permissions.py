import pytest

from placement_tracker.core.exceptions import AuthorizationError
from placement_tracker.core.permissions import (
    DEFAULT_PERMISSIONS,
    Permission,
    build_permission_table,
    check_permission,
    get_permission_table,
    has_permission,
    list_permissions,
    require_permission,
)
from placement_tracker.schemas.schemas import UserRole


TEACHER_PERMISSIONS = {
    Permission.VIEW_STUDENTS,
    Permission.VIEW_STUDENT_DETAILS,
    Permission.VIEW_EMPLOYEES,
    Permission.VIEW_BASIC_ANALYTICS,
    Permission.VIEW_DESCRIPTIVE_ANALYTICS,
}


class TestHasPermission:
    def test_teacher_cannot_delete_student(self) -> None:
        assert has_permission("teacher", Permission.DELETE_STUDENT) is False

    def test_admin_can_delete_student(self) -> None:
        assert has_permission("admin", Permission.DELETE_STUDENT) is True

    def test_only_owner_and_developer_see_predictions(self) -> None:
        allowed = {r.value for r in UserRole if has_permission(r, Permission.VIEW_PREDICTIVE_ANALYTICS)}
        assert allowed == {"owner", "developer"}

    def test_owner_has_every_permission(self) -> None:
        assert all(has_permission("owner", p) for p in Permission)

    def test_accepts_enum_role_and_string_permission(self) -> None:
        assert has_permission(UserRole.admin, "CREATE_TEACHER") is True

    def test_unknown_role_fails_closed(self) -> None:
        assert has_permission("superuser", Permission.VIEW_STUDENTS) is False
        assert has_permission("", Permission.VIEW_STUDENTS) is False
        assert has_permission(None, Permission.VIEW_STUDENTS) is False

    def test_unknown_permission_raises_key_error(self) -> None:
        with pytest.raises(KeyError):
            has_permission("owner", "LAUNCH_ROCKETS")


class TestCheckPermission:
    def test_allowed_returns_none(self) -> None:
        assert check_permission("admin", Permission.CREATE_STUDENT) is None

    def test_denied_raises_authorization_error(self) -> None:
        with pytest.raises(AuthorizationError) as exc:
            check_permission("teacher", Permission.CREATE_STUDENT)
        assert exc.value.status_code == 403
        assert exc.value.message == "Insufficient permissions"


class TestListPermissions:
    def test_teacher(self) -> None:
        assert list_permissions("teacher") == frozenset(TEACHER_PERMISSIONS)

    def test_admin_lacks_company_and_admin_management(self) -> None:
        perms = list_permissions("admin")
        assert len(perms) == 13
        assert Permission.CREATE_ADMIN not in perms
        assert Permission.VIEW_COMPANIES not in perms

    def test_owner_and_developer_have_all(self) -> None:
        assert list_permissions("owner") == frozenset(Permission)
        assert list_permissions("developer") == frozenset(Permission)

    def test_unknown_role_is_empty(self) -> None:
        assert list_permissions("guest") == frozenset()

    @pytest.mark.parametrize("role", [r.value for r in UserRole])
    def test_agrees_with_has_permission(self, role: str) -> None:
        expected = {p for p in Permission if has_permission(role, p)}
        assert set(list_permissions(role)) == expected


class TestBuildPermissionTable:
    def test_default_table_is_total(self) -> None:
        table = build_permission_table()
        assert set(table.as_dict()) == {p.value for p in Permission}

    def test_every_permission_has_a_role(self) -> None:
        table = build_permission_table()
        assert all(table.roles_for(p) for p in Permission)

    def test_missing_permission_rejected(self) -> None:
        mapping = dict(DEFAULT_PERMISSIONS)
        del mapping[Permission.DELETE_USER]
        with pytest.raises(ValueError, match="DELETE_USER"):
            build_permission_table(mapping)

    def test_empty_role_set_rejected(self) -> None:
        mapping = dict(DEFAULT_PERMISSIONS)
        mapping[Permission.VIEW_STUDENTS] = ()
        with pytest.raises(ValueError, match="VIEW_STUDENTS"):
            build_permission_table(mapping)

    def test_custom_table_is_independent(self) -> None:
        mapping = dict(DEFAULT_PERMISSIONS)
        mapping[Permission.DELETE_STUDENT] = ("owner", "teacher")
        table = build_permission_table(mapping)
        assert table.has_permission("teacher", Permission.DELETE_STUDENT) is True
        assert table.has_permission("admin", Permission.DELETE_STUDENT) is False
        assert get_permission_table().has_permission("teacher", Permission.DELETE_STUDENT) is False

    def test_process_wide_table_is_shared(self) -> None:
        assert get_permission_table() is get_permission_table()


class TestRequirePermission:
    def test_needs_at_least_one_permission(self) -> None:
        with pytest.raises(ValueError):
            require_permission()

    def test_unknown_permission_fails_at_definition(self) -> None:
        with pytest.raises(KeyError):
            require_permission("NOT_A_PERMISSION")
