"""Relation domain definitions.

A domain names one association table and the vocabulary both facades use
for it: URL segments for HTTP, pattern names and payload keys for RPC.
"""
from __future__ import annotations
from dataclasses import dataclass

from authz.core.models import RolePermission, ServiceVisibleRole, UserRole


@dataclass(frozen=True)
class RelationDomain:
    name: str
    model: type
    left_column: str
    right_column: str
    left_label: str
    right_label: str
    left_plural: str
    right_plural: str
    self_scoped: bool = False

    @property
    def left_key(self) -> str:
        """Payload key of a single left id, e.g. ``userId``."""
        return f"{_camel(self.left_label)}Id"

    @property
    def right_key(self) -> str:
        return f"{_camel(self.right_label)}Id"

    @property
    def left_list_key(self) -> str:
        """Payload key of a list of left ids, e.g. ``userIds``."""
        return f"{_camel(self.left_label)}Ids"

    @property
    def right_list_key(self) -> str:
        return f"{_camel(self.right_label)}Ids"


def _camel(label: str) -> str:
    head, *rest = label.split("-")
    return head + "".join(part.capitalize() for part in rest)


USER_ROLE = RelationDomain(
    name="user-role",
    model=UserRole,
    left_column="user_id",
    right_column="role_id",
    left_label="user",
    right_label="role",
    left_plural="users",
    right_plural="roles",
    self_scoped=True,
)

ROLE_PERMISSION = RelationDomain(
    name="role-permission",
    model=RolePermission,
    left_column="role_id",
    right_column="permission_id",
    left_label="role",
    right_label="permission",
    left_plural="roles",
    right_plural="permissions",
)

SERVICE_VISIBLE_ROLE = RelationDomain(
    name="service-visible-role",
    model=ServiceVisibleRole,
    left_column="service_id",
    right_column="role_id",
    left_label="service",
    right_label="role",
    left_plural="services",
    right_plural="roles",
)

DOMAINS = (USER_ROLE, ROLE_PERMISSION, SERVICE_VISIBLE_ROLE)
