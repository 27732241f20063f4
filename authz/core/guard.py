"""Access decisions made before a facade queries the resolver or a store."""
from __future__ import annotations
import logging
from typing import Iterable

from authz.core.exceptions import Forbidden
from authz.core.resolver import AuthorizationResolver

logger = logging.getLogger(__name__)


class AccessGuard:
    """Self-or-admin and manage-access checks.

    Stateless apart from the injected administrator role ids; every decision
    reads the caller's current roles from the store.
    """

    def __init__(self, resolver: AuthorizationResolver, admin_roles: Iterable[str]):
        self.resolver = resolver
        self.admin_roles = frozenset(admin_roles)

    def is_admin(self, caller_id: str) -> bool:
        if not self.admin_roles:
            return False
        return not self.admin_roles.isdisjoint(self.resolver.user_roles(caller_id))

    def authorize_self_or_admin(self, caller_id: str, target_id: str) -> None:
        """Allow a caller to act on their own records, or any administrator.

        Raises:
            Forbidden: caller is neither the target nor an administrator
        """
        if caller_id == target_id:
            return
        if self.is_admin(caller_id):
            logger.debug(f"Administrator {caller_id} acting on {target_id}")
            return

        logger.warning(f"Denied: {caller_id} attempted to access records of {target_id}")
        raise Forbidden("Access restricted to the user themselves or an administrator")

    def authorize_manage(self, caller_id: str, permission_ids: Iterable[str] = ()) -> None:
        """Allow administrators and holders of any of ``permission_ids``.

        Raises:
            Forbidden: caller holds neither an administrator role nor a listed permission
        """
        if self.is_admin(caller_id):
            return

        required = list(permission_ids)
        if required and self.resolver.has_any_permission(caller_id, required):
            return

        logger.warning(f"Denied: {caller_id} lacks manage access (requires one of {required or 'admin'})")
        raise Forbidden("Insufficient permissions")
