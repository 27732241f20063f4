"""HTTP endpoints for the three relation domains.

One blueprint is generated per domain from its ``RelationDomain``
definition, e.g. for user↔role::

    GET    /users/<userId>/roles                 list roles of a user
    GET    /roles/<roleId>/users                 list users holding a role
    GET    /users/<userId>/roles/<roleId>/exists
    POST   /users/<userId>/roles/<roleId>        assign
    DELETE /users/<userId>/roles/<roleId>        revoke
    POST   /users/<userId>/roles/batch           assign several {"roleIds": [...]}
    DELETE /users/<userId>/roles/batch           revoke several
    PUT    /users/<userId>/roles                 replace the whole set

Security:
    - Every route requires a verified caller (``require_caller``)
    - Reads keyed by the caller's own user id are self-or-admin
    - Everything else requires manage access on the domain
"""
from __future__ import annotations
import logging

from flask import Blueprint, current_app, g, jsonify, request

from authz.api.identity import require_caller
from authz.api.validators import require_object, required_field, validate_id, validate_id_list
from authz.core.domains import RelationDomain

logger = logging.getLogger(__name__)


def _engine():
    return current_app.extensions["authz"]


def _authorize_manage(domain: RelationDomain) -> None:
    engine = _engine()
    engine.guard.authorize_manage(g.caller_id, engine.manage_permissions(domain))


def _authorize_left_read(domain: RelationDomain, left_id: str) -> None:
    if domain.self_scoped:
        _engine().guard.authorize_self_or_admin(g.caller_id, left_id)
    else:
        _authorize_manage(domain)


def _id_list_from_body(domain: RelationDomain, allow_empty: bool = True) -> list[str]:
    payload = require_object(request.get_json(silent=True))
    raw = required_field(payload, domain.right_list_key)
    return validate_id_list(raw, domain.right_list_key, allow_empty=allow_empty)


def create_relations_blueprint(domain: RelationDomain) -> Blueprint:
    """Build the blueprint serving one relation domain."""
    bp = Blueprint(f"relations_{domain.name.replace('-', '_')}", __name__)

    by_left = f"/{domain.left_plural}/<left_id>/{domain.right_plural}"
    by_right = f"/{domain.right_plural}/<right_id>/{domain.left_plural}"
    pair = f"{by_left}/<right_id>"

    def service():
        return _engine().service(domain)

    @bp.route(by_left, methods=["GET"])
    @require_caller
    def list_by_left(left_id):
        left_id = validate_id(left_id, domain.left_key)
        _authorize_left_read(domain, left_id)
        return jsonify(service().list_right(left_id))

    @bp.route(by_right, methods=["GET"])
    @require_caller
    def list_by_right(right_id):
        right_id = validate_id(right_id, domain.right_key)
        _authorize_manage(domain)
        return jsonify(service().list_left(right_id))

    @bp.route(f"{pair}/exists", methods=["GET"])
    @require_caller
    def exists(left_id, right_id):
        left_id = validate_id(left_id, domain.left_key)
        right_id = validate_id(right_id, domain.right_key)
        _authorize_left_read(domain, left_id)
        return jsonify({"exists": service().exists(left_id, right_id)})

    @bp.route(pair, methods=["POST"])
    @require_caller
    def assign(left_id, right_id):
        left_id = validate_id(left_id, domain.left_key)
        right_id = validate_id(right_id, domain.right_key)
        _authorize_manage(domain)
        created = service().assign(left_id, right_id)
        logger.info(f"[{domain.name}] {g.caller_id} assigned {right_id} to {left_id} (created={created})")
        return jsonify({"success": True, "created": created}), 201 if created else 200

    @bp.route(pair, methods=["DELETE"])
    @require_caller
    def revoke(left_id, right_id):
        left_id = validate_id(left_id, domain.left_key)
        right_id = validate_id(right_id, domain.right_key)
        _authorize_manage(domain)
        service().revoke(left_id, right_id)
        logger.info(f"[{domain.name}] {g.caller_id} revoked {right_id} from {left_id}")
        return "", 204

    @bp.route(f"{by_left}/batch", methods=["POST"])
    @require_caller
    def assign_multiple(left_id):
        left_id = validate_id(left_id, domain.left_key)
        right_ids = _id_list_from_body(domain, allow_empty=False)
        _authorize_manage(domain)
        return jsonify(service().assign_multiple(left_id, right_ids))

    @bp.route(f"{by_left}/batch", methods=["DELETE"])
    @require_caller
    def revoke_multiple(left_id):
        left_id = validate_id(left_id, domain.left_key)
        right_ids = _id_list_from_body(domain, allow_empty=False)
        _authorize_manage(domain)
        removed = service().revoke_multiple(left_id, right_ids)
        logger.info(f"[{domain.name}] {g.caller_id} revoked {removed} {domain.right_plural} from {left_id}")
        return "", 204

    @bp.route(by_left, methods=["PUT"])
    @require_caller
    def replace(left_id):
        left_id = validate_id(left_id, domain.left_key)
        right_ids = _id_list_from_body(domain)
        _authorize_manage(domain)
        result = service().replace(left_id, right_ids)
        return jsonify(result.to_dict())

    return bp
