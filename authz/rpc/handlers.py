"""RPC handlers bound to an ``AuthzEngine``.

Inter-service calls are trusted: no self-or-admin check is applied here,
the service token is checked by the HTTP endpoint carrying the message.
"""
from __future__ import annotations
from typing import Optional

from authz.api.validators import required_field, validate_id, validate_id_list
from authz.core.domains import DOMAINS, USER_ROLE, RelationDomain
from authz.core.engine import AuthzEngine
from authz.rpc import patterns
from authz.rpc.dispatcher import RpcDispatcher


def _id(data: dict, field: str) -> str:
    return validate_id(required_field(data, field), field)


def _ids(data: dict, field: str) -> list[str]:
    return validate_id_list(required_field(data, field), field)


def _optional_id(data: dict, field: str) -> Optional[str]:
    value = data.get(field)
    if value is None or value == "":
        return None
    return validate_id(value, field)


def _register_relation_handlers(dispatcher: RpcDispatcher, engine: AuthzEngine, domain: RelationDomain) -> None:
    service = engine.service(domain)
    names = patterns.relation_patterns(domain)
    left_key, right_key = domain.left_key, domain.right_key
    lefts_key, rights_key = domain.left_list_key, domain.right_list_key

    def list_right(data):
        return service.list_right(_id(data, left_key))

    def list_left(data):
        return service.list_left(_id(data, right_key))

    def batch_list_right(data):
        return service.batch_list_right(_ids(data, lefts_key))

    def batch_list_left(data):
        return service.batch_list_left(_ids(data, rights_key))

    def count_left_by_right(data):
        return service.count_left_by_right(_ids(data, rights_key))

    def count_right_by_left(data):
        return service.count_right_by_left(_ids(data, lefts_key))

    def exists(data):
        return service.exists(_id(data, left_key), _id(data, right_key))

    def assign(data):
        created = service.assign(_id(data, left_key), _id(data, right_key))
        return {"success": True, "created": created}

    def revoke(data):
        service.revoke(_id(data, left_key), _id(data, right_key))
        return None

    def assign_multiple(data):
        return service.assign_multiple(_id(data, left_key), _ids(data, rights_key))

    def revoke_multiple(data):
        service.revoke_multiple(_id(data, left_key), _ids(data, rights_key))
        return None

    def replace(data):
        return service.replace(_id(data, left_key), _ids(data, rights_key)).to_dict()

    handlers = {
        "list_right": list_right,
        "list_left": list_left,
        "batch_list_right": batch_list_right,
        "batch_list_left": batch_list_left,
        "count_left_by_right": count_left_by_right,
        "count_right_by_left": count_right_by_left,
        "exists": exists,
        "assign": assign,
        "revoke": revoke,
        "assign_multiple": assign_multiple,
        "revoke_multiple": revoke_multiple,
        "replace": replace,
    }
    for operation, handler in handlers.items():
        dispatcher.register(names[operation], handler)


def _register_merge_handlers(dispatcher: RpcDispatcher, engine: AuthzEngine) -> None:
    service = engine.service(USER_ROLE)

    @dispatcher.handler(patterns.MERGE_USER_ROLES)
    def merge_user_roles(data):
        result = service.merge(_id(data, "sourceUserId"), _id(data, "targetUserId"))
        return result.to_dict()

    @dispatcher.handler(patterns.ROLLBACK_MERGE)
    def rollback_merge(data):
        target_added = data.get("targetAddedRoleIds")
        service.rollback_merge(
            _id(data, "sourceUserId"),
            _id(data, "targetUserId"),
            _ids(data, "sourceRoleIds"),
            None if target_added is None else validate_id_list(target_added, "targetAddedRoleIds"),
        )
        return None


def _register_authorization_handlers(dispatcher: RpcDispatcher, engine: AuthzEngine) -> None:
    resolver = engine.resolver

    @dispatcher.handler(patterns.CHECK_PERMISSION)
    def check_permission(data):
        has_permission = resolver.has_permission(
            _id(data, "userId"), _id(data, "permissionId"), _optional_id(data, "serviceId")
        )
        return {"hasPermission": has_permission}

    @dispatcher.handler(patterns.CHECK_ROLE)
    def check_role(data):
        has_role = resolver.has_role(_id(data, "userId"), _id(data, "roleId"), _optional_id(data, "serviceId"))
        return {"hasRole": has_role}

    @dispatcher.handler(patterns.GET_USER_PERMISSIONS)
    def get_user_permissions(data):
        return resolver.user_permissions(_id(data, "userId"), _optional_id(data, "serviceId"))

    @dispatcher.handler(patterns.GET_USER_ROLES)
    def get_user_roles(data):
        return resolver.user_roles(_id(data, "userId"), _optional_id(data, "serviceId"))


def build_dispatcher(engine: AuthzEngine) -> RpcDispatcher:
    """Dispatcher serving every relation, merge and authorization pattern."""
    dispatcher = RpcDispatcher()
    for domain in DOMAINS:
        _register_relation_handlers(dispatcher, engine, domain)
    _register_merge_handlers(dispatcher, engine)
    _register_authorization_handlers(dispatcher, engine)
    return dispatcher
