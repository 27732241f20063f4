"""Explicit wiring of stores, replacers, services, resolver and guard.

One ``AuthzEngine`` is built per Flask app and kept in
``app.extensions["authz"]``. Nothing here depends on Flask; tests can build an
engine around any session factory.
"""
from __future__ import annotations
import logging
from typing import Callable

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from authz.config.settings import AppConfig
from authz.core.domains import DOMAINS, ROLE_PERMISSION, SERVICE_VISIBLE_ROLE, USER_ROLE, RelationDomain
from authz.core.exceptions import StorageUnavailable
from authz.core.guard import AccessGuard
from authz.core.locks import StripedLock
from authz.core.relation_store import RelationStore
from authz.core.replacer import RelationReplacer
from authz.core.resolver import AuthorizationResolver
from authz.core.service import RelationService

logger = logging.getLogger(__name__)


class AuthzEngine:
    """Container for the relation engine components."""

    def __init__(self, config: AppConfig, session_factory: Callable[[], Session]):
        self.config = config
        self._session_factory = session_factory

        # Shared across domains; keys are prefixed with the table name
        self.locks = StripedLock()

        self.stores: dict[str, RelationStore] = {}
        self.services: dict[str, RelationService] = {}
        for domain in DOMAINS:
            store = RelationStore(domain, session_factory, self.locks)
            self.stores[domain.name] = store
            self.services[domain.name] = RelationService(store, RelationReplacer(store))

        self.resolver = AuthorizationResolver(
            user_roles=self.stores[USER_ROLE.name],
            role_permissions=self.stores[ROLE_PERMISSION.name],
            service_roles=self.stores[SERVICE_VISIBLE_ROLE.name],
        )
        self.guard = AccessGuard(self.resolver, config.admin_roles)

        logger.debug(f"AuthzEngine wired for domains: {', '.join(self.services)}")

    def service(self, domain: RelationDomain | str) -> RelationService:
        name = domain if isinstance(domain, str) else domain.name
        return self.services[name]

    def manage_permissions(self, domain: RelationDomain | str) -> list[str]:
        name = domain if isinstance(domain, str) else domain.name
        return self.config.manage_permissions_for(name)

    def ping(self) -> None:
        """Round-trip to the database.

        Raises:
            StorageUnavailable: the database cannot be reached
        """
        session = self._session_factory()
        try:
            session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error(f"Readiness probe failed: {exc}")
            raise StorageUnavailable("Database unreachable") from exc
