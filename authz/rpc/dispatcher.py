"""Pattern registry and dispatch."""
from __future__ import annotations
import logging
from typing import Any, Callable

from authz.core.exceptions import AuthzError, NotFound, ValidationError

logger = logging.getLogger(__name__)

Handler = Callable[[dict], Any]


class RpcDispatcher:
    """Maps pattern names to handlers taking the payload dict."""

    def __init__(self):
        self._handlers: dict[str, Handler] = {}

    def register(self, pattern: str, handler: Handler) -> None:
        if pattern in self._handlers:
            raise ValueError(f"Pattern already registered: {pattern}")
        self._handlers[pattern] = handler

    def handler(self, pattern: str) -> Callable[[Handler], Handler]:
        """Decorator form of ``register``."""
        def decorator(func: Handler) -> Handler:
            self.register(pattern, func)
            return func
        return decorator

    @property
    def patterns(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, pattern: str) -> bool:
        return pattern in self._handlers

    def dispatch(self, pattern: str, data: dict) -> Any:
        """Run the handler registered for ``pattern``.

        Raises:
            NotFound: no handler is registered for ``pattern``
            ValidationError: ``data`` is not an object
            AuthzError: propagated from the handler unchanged
        """
        handler = self._handlers.get(pattern)
        if handler is None:
            raise NotFound(f"Unknown message pattern: {pattern}")
        if not isinstance(data, dict):
            raise ValidationError("Message data must be an object")

        logger.debug(f"RPC {pattern} requested")
        try:
            return handler(data)
        except AuthzError as exc:
            logger.error(f"RPC {pattern} failed: {exc.code}: {exc.message}")
            raise
