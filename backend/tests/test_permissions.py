"""Tests for the role → permission table."""

import pytest

from coletaops.auth.permissions import (
    ALL_PERMISSIONS,
    ROLE_PERMISSIONS,
    get_permissions,
    has_permission,
)
from coletaops.models.user import UserRole


@pytest.mark.unit
class TestRolePermissions:

    def test_every_role_has_an_entry(self):
        assert set(ROLE_PERMISSIONS) == set(UserRole)

    def test_admin_holds_everything(self):
        assert ROLE_PERMISSIONS[UserRole.ADMIN] == ALL_PERMISSIONS

    def test_role_permissions_are_known(self):
        for role, permissions in ROLE_PERMISSIONS.items():
            assert permissions <= ALL_PERMISSIONS, role

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            ROLE_PERMISSIONS[UserRole.COLETOR] = frozenset()  # type: ignore[index]

    @pytest.mark.parametrize(
        "role, permission, expected",
        [
            (UserRole.COLETOR, "runs:execute", True),
            (UserRole.COLETOR, "sorting:create", False),
            (UserRole.GESTOR_OPERACAO, "assignments:create", True),
            (UserRole.GESTOR_OPERACAO, "runs:execute", False),
            (UserRole.TRIAGEM, "sorting:update", True),
            (UserRole.TRIAGEM, "sorting:close", False),
            (UserRole.SUPERVISOR, "sorting:close", True),
            (UserRole.ALMOXARIFE, "stock:movement", True),
            (UserRole.VISUALIZADOR, "stock:movement", False),
            (UserRole.VISUALIZADOR, "reports:view", True),
        ],
    )
    def test_has_permission(self, role, permission, expected):
        assert has_permission(role, permission) is expected

    def test_role_given_as_string(self):
        assert has_permission("ALMOXARIFE", "stock:create")
        assert "stock:create" in get_permissions("ALMOXARIFE")

    def test_unknown_role_has_nothing(self):
        assert has_permission("JANITOR", "runs:read") is False
        assert get_permissions("JANITOR") == []

    def test_get_permissions_is_sorted(self):
        permissions = get_permissions(UserRole.SUPERVISOR)
        assert permissions == sorted(permissions)
