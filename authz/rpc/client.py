"""HTTP client for the ``/rpc`` endpoint of another authz instance."""
from __future__ import annotations
import logging
from typing import Any, Optional

import requests

from authz.core.exceptions import AuthzError
from authz.rpc import patterns

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 5


class RpcError(AuthzError):
    """Remote call returned an error."""

    code = "rpc_error"

    def __init__(self, message: str = "", status: int = 502, code: Optional[str] = None):
        super().__init__(message)
        self.status = status
        if code:
            self.code = code

    @property
    def retryable(self) -> bool:
        return self.status == 503


class RpcTransportError(RpcError):
    """Remote authz service unreachable or timed out."""

    code = "rpc_unavailable"

    def __init__(self, message: str = ""):
        super().__init__(message, status=503)


def _json_object(resp: requests.Response) -> dict:
    """Response body as a dict; anything else (no JSON, a list from a proxy) is empty."""
    try:
        body = resp.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class RpcClient:
    """Sends message patterns to a remote ``/rpc`` endpoint.

    Args:
        base_url: Root URL of the authz service (e.g. http://authz:8000)
        service_token: Shared token sent as ``X-Service-Token``
        timeout: Per-request timeout in seconds
        session: Optional ``requests.Session`` (connection reuse, testing)
    """

    def __init__(
        self,
        base_url: str,
        service_token: str,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.service_token = service_token
        self.timeout = timeout
        self.session = session or requests.Session()

    def call(self, pattern: str, data: Optional[dict] = None) -> Any:
        """Send one message and return the ``data`` member of the response.

        Raises:
            RpcTransportError: connection failure or timeout
            RpcError: error status, or a body that is not ``{"data": ...}``
        """
        url = f"{self.base_url}/rpc"
        try:
            resp = self.session.post(
                url,
                json={"pattern": pattern, "data": data or {}},
                headers={"X-Service-Token": self.service_token},
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            logger.error(f"RPC {pattern} to {url} failed: {exc}")
            raise RpcTransportError(f"authz service unreachable: {exc}") from exc

        body = _json_object(resp)
        if resp.status_code >= 400:
            message = body.get("message") or resp.reason or "RPC call failed"
            logger.warning(f"RPC {pattern} returned {resp.status_code}: {message}")
            raise RpcError(message, status=resp.status_code, code=body.get("error"))

        if "data" not in body:
            logger.error(f"RPC {pattern} returned {resp.status_code} without a data member")
            raise RpcError("Malformed RPC response")
        return body["data"]

    # Convenience wrappers for the most common lookups

    def check_permission(self, user_id: str, permission_id: str, service_id: Optional[str] = None) -> bool:
        payload = {"userId": user_id, "permissionId": permission_id}
        if service_id:
            payload["serviceId"] = service_id
        return bool(self.call(patterns.CHECK_PERMISSION, payload)["hasPermission"])

    def check_role(self, user_id: str, role_id: str, service_id: Optional[str] = None) -> bool:
        payload = {"userId": user_id, "roleId": role_id}
        if service_id:
            payload["serviceId"] = service_id
        return bool(self.call(patterns.CHECK_ROLE, payload)["hasRole"])

    def get_user_roles(self, user_id: str, service_id: Optional[str] = None) -> list[str]:
        payload = {"userId": user_id}
        if service_id:
            payload["serviceId"] = service_id
        return self.call(patterns.GET_USER_ROLES, payload)

    def get_user_permissions(self, user_id: str, service_id: Optional[str] = None) -> list[str]:
        payload = {"userId": user_id}
        if service_id:
            payload["serviceId"] = service_id
        return self.call(patterns.GET_USER_PERMISSIONS, payload)
