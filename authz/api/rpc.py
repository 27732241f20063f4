"""Inter-service message endpoint.

Request:  POST /rpc  {"pattern": "user-role.find-roles-by-user", "data": {"userId": "u1"}}
Response: 200        {"data": ["admin", "editor"]}

Security:
    - Callers present the shared service token in ``X-Service-Token``
    - Uses hmac.compare_digest for timing-attack resistance
    - Errors use the same JSON body and status mapping as the HTTP facade
"""
from __future__ import annotations
import hmac
import logging

from flask import Blueprint, current_app, jsonify, request

from authz.api.validators import require_object, required_field
from authz.core.exceptions import Unauthenticated, ValidationError

logger = logging.getLogger(__name__)

SERVICE_TOKEN_HEADER = "X-Service-Token"

bp = Blueprint("rpc", __name__)


def _validate_service_token(provided: str) -> bool:
    cfg = current_app.config["APP_CONFIG"]
    expected = cfg.rpc_service_token
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


@bp.route("/rpc", methods=["POST"])
def handle_message():
    """Dispatch one message pattern to the engine."""
    if not _validate_service_token(request.headers.get(SERVICE_TOKEN_HEADER, "")):
        logger.warning(f"Rejected RPC call without valid service token | client_ip={request.remote_addr}")
        raise Unauthenticated("Valid service token required")

    message = require_object(request.get_json(silent=True))
    pattern = required_field(message, "pattern")
    if not isinstance(pattern, str) or not pattern:
        raise ValidationError("pattern must be a non-empty string")

    data = message.get("data")
    if data is None:
        data = {}

    dispatcher = current_app.extensions["authz_rpc"]
    result = dispatcher.dispatch(pattern, data)
    return jsonify({"data": result})
