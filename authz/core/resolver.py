"""Answers role and permission membership questions.

The resolver reads the store on every call and applies no policy: the
administrator override lives in ``AccessGuard``. Unknown ids resolve to
empty sets or ``False``.
"""
from __future__ import annotations
import logging
from typing import Iterable, Optional

from authz.core.relation_store import RelationStore

logger = logging.getLogger(__name__)


class AuthorizationResolver:
    """Role and permission resolution over the three relation stores."""

    def __init__(
        self,
        user_roles: RelationStore,
        role_permissions: RelationStore,
        service_roles: RelationStore,
    ):
        self._user_roles = user_roles
        self._role_permissions = role_permissions
        self._service_roles = service_roles

    def user_roles(self, user_id: str, service_id: Optional[str] = None) -> list[str]:
        """Roles held by a user, optionally restricted to those a service can see."""
        roles = set(self._user_roles.list_right(user_id))
        if service_id is not None and roles:
            roles &= set(self._service_roles.list_right(service_id))
        return sorted(roles)

    def has_role(self, user_id: str, role_id: str, service_id: Optional[str] = None) -> bool:
        if not self._user_roles.exists(user_id, role_id):
            return False
        if service_id is None:
            return True
        return self._service_roles.exists(service_id, role_id)

    def role_permissions(self, role_id: str) -> list[str]:
        return self._role_permissions.list_right(role_id)

    def user_permissions(self, user_id: str, service_id: Optional[str] = None) -> list[str]:
        """Union of the permissions of every role the user holds."""
        roles = self.user_roles(user_id, service_id)
        if not roles:
            return []

        grouped = self._role_permissions.batch_list_right(roles)
        permissions: set[str] = set()
        for role_permissions in grouped.values():
            permissions.update(role_permissions)

        logger.debug(f"Resolved {len(permissions)} permissions for user {user_id} via {len(roles)} roles")
        return sorted(permissions)

    def has_permission(self, user_id: str, permission_id: str, service_id: Optional[str] = None) -> bool:
        return permission_id in self.user_permissions(user_id, service_id)

    def has_any_permission(
        self,
        user_id: str,
        permission_ids: Iterable[str],
        service_id: Optional[str] = None,
    ) -> bool:
        wanted = set(permission_ids)
        if not wanted:
            return False
        return not wanted.isdisjoint(self.user_permissions(user_id, service_id))

    def has_all_permissions(
        self,
        user_id: str,
        permission_ids: Iterable[str],
        service_id: Optional[str] = None,
    ) -> bool:
        wanted = set(permission_ids)
        if not wanted:
            return True
        return wanted.issubset(self.user_permissions(user_id, service_id))
