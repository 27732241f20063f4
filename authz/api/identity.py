"""Caller identity handed over by the identity gateway.

Tokens are verified upstream. The gateway forwards the verified user id in
``X-Trusted-User-Id`` together with a shared secret in ``X-Proxy-Secret``;
this module only checks that secret and exposes the id as ``g.caller_id``.
"""
import hmac
import logging
from functools import wraps

from flask import current_app, g, request

from authz.core.exceptions import Unauthenticated

logger = logging.getLogger(__name__)

PROXY_SECRET_HEADER = "X-Proxy-Secret"
USER_ID_HEADER = "X-Trusted-User-Id"


def _proxy_secret_valid(provided: str) -> bool:
    """Constant-time comparison against the configured gateway secret."""
    cfg = current_app.config["APP_CONFIG"]
    expected = cfg.trusted_proxy_secret
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def current_caller() -> str:
    """Verified caller id of the current request.

    Raises:
        Unauthenticated: request did not come through the gateway or carries no user id
    """
    if not _proxy_secret_valid(request.headers.get(PROXY_SECRET_HEADER, "")):
        logger.warning(f"Rejected request without valid gateway secret | path={request.path}")
        raise Unauthenticated("Request must come through the identity gateway")

    caller_id = request.headers.get(USER_ID_HEADER, "").strip()
    if not caller_id:
        raise Unauthenticated("Verified caller identity required")
    return caller_id


def require_caller(view):
    """Decorator storing the verified caller id in ``g.caller_id``."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        g.caller_id = current_caller()
        return view(*args, **kwargs)

    return wrapper
