"""Authorization query endpoints (self-or-admin)."""
from __future__ import annotations
from typing import Optional

from flask import Blueprint, current_app, g, jsonify, request

from authz.api.identity import require_caller
from authz.api.validators import validate_id

bp = Blueprint("authorization", __name__, url_prefix="/authorizations")


def _resolver_for(user_id: str):
    """Guard the target user, then hand out the resolver."""
    engine = current_app.extensions["authz"]
    engine.guard.authorize_self_or_admin(g.caller_id, user_id)
    return engine.resolver


def _service_id() -> Optional[str]:
    raw = request.args.get("serviceId")
    if raw is None or raw == "":
        return None
    return validate_id(raw, "serviceId")


@bp.route("/users/<user_id>/roles", methods=["GET"])
@require_caller
def user_roles(user_id):
    user_id = validate_id(user_id, "userId")
    service_id = _service_id()
    return jsonify(_resolver_for(user_id).user_roles(user_id, service_id))


@bp.route("/users/<user_id>/permissions", methods=["GET"])
@require_caller
def user_permissions(user_id):
    user_id = validate_id(user_id, "userId")
    service_id = _service_id()
    return jsonify(_resolver_for(user_id).user_permissions(user_id, service_id))


@bp.route("/users/<user_id>/roles/<role_id>", methods=["GET"])
@require_caller
def has_role(user_id, role_id):
    user_id = validate_id(user_id, "userId")
    role_id = validate_id(role_id, "roleId")
    service_id = _service_id()
    return jsonify({"hasRole": _resolver_for(user_id).has_role(user_id, role_id, service_id)})


@bp.route("/users/<user_id>/permissions/<permission_id>", methods=["GET"])
@require_caller
def has_permission(user_id, permission_id):
    user_id = validate_id(user_id, "userId")
    permission_id = validate_id(permission_id, "permissionId")
    service_id = _service_id()
    return jsonify({
        "hasPermission": _resolver_for(user_id).has_permission(user_id, permission_id, service_id)
    })
