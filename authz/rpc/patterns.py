"""Message pattern names.

Relation patterns are derived from the domain vocabulary, e.g. for
``user-role``: ``user-role.find-roles-by-user``,
``user-role.find-users-by-roles``, ``user-role.replace-roles``.
"""
from __future__ import annotations

from authz.core.domains import DOMAINS, RelationDomain

# Account merge (user-role only)
MERGE_USER_ROLES = "user-role.merge-user-roles"
ROLLBACK_MERGE = "user-role.rollback-merge"

# Authorization queries
CHECK_PERMISSION = "authorization.check-permission"
CHECK_ROLE = "authorization.check-role"
GET_USER_PERMISSIONS = "authorization.get-user-permissions"
GET_USER_ROLES = "authorization.get-user-roles"


def relation_patterns(domain: RelationDomain) -> dict[str, str]:
    """Pattern name per relation operation of ``domain``."""
    name = domain.name
    left, right = domain.left_label, domain.right_label
    lefts, rights = domain.left_plural, domain.right_plural
    return {
        "list_right": f"{name}.find-{rights}-by-{left}",
        "list_left": f"{name}.find-{lefts}-by-{right}",
        "batch_list_right": f"{name}.find-{rights}-by-{lefts}",
        "batch_list_left": f"{name}.find-{lefts}-by-{rights}",
        "count_left_by_right": f"{name}.find-{left}-counts-by-{rights}",
        "count_right_by_left": f"{name}.find-{right}-counts-by-{lefts}",
        "exists": f"{name}.exists",
        "assign": f"{name}.assign",
        "revoke": f"{name}.revoke",
        "assign_multiple": f"{name}.assign-multiple",
        "revoke_multiple": f"{name}.revoke-multiple",
        "replace": f"{name}.replace-{rights}",
    }


def all_patterns() -> list[str]:
    names = [pattern for domain in DOMAINS for pattern in relation_patterns(domain).values()]
    names += [MERGE_USER_ROLES, ROLLBACK_MERGE, CHECK_PERMISSION, CHECK_ROLE, GET_USER_PERMISSIONS, GET_USER_ROLES]
    return sorted(names)
