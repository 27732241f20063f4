"""Unit tests for message pattern naming and dispatch."""
import pytest

from authz.core.domains import DOMAINS, ROLE_PERMISSION, SERVICE_VISIBLE_ROLE, USER_ROLE
from authz.core.exceptions import NotFound, ValidationError
from authz.rpc import patterns
from authz.rpc.dispatcher import RpcDispatcher
from authz.rpc.handlers import build_dispatcher


def test_relation_patterns_follow_domain_vocabulary():
    names = patterns.relation_patterns(USER_ROLE)
    assert names["list_right"] == "user-role.find-roles-by-user"
    assert names["list_left"] == "user-role.find-users-by-role"
    assert names["batch_list_right"] == "user-role.find-roles-by-users"
    assert names["count_left_by_right"] == "user-role.find-user-counts-by-roles"
    assert names["replace"] == "user-role.replace-roles"

    assert patterns.relation_patterns(ROLE_PERMISSION)["list_right"] == "role-permission.find-permissions-by-role"
    assert patterns.relation_patterns(SERVICE_VISIBLE_ROLE)["count_right_by_left"] == (
        "service-visible-role.find-role-counts-by-services"
    )


def test_pattern_names_are_unique():
    names = patterns.all_patterns()
    assert len(names) == len(set(names))
    assert len(names) == 12 * len(DOMAINS) + 6


def test_dispatcher_serves_every_pattern(engine):
    dispatcher = build_dispatcher(engine)
    assert dispatcher.patterns == patterns.all_patterns()


def test_unknown_pattern():
    with pytest.raises(NotFound):
        RpcDispatcher().dispatch("nope.nothing", {})


def test_payload_must_be_an_object():
    dispatcher = RpcDispatcher()
    dispatcher.register("echo", lambda data: data)

    assert dispatcher.dispatch("echo", {"a": 1}) == {"a": 1}
    with pytest.raises(ValidationError):
        dispatcher.dispatch("echo", ["a"])


def test_duplicate_registration_is_rejected():
    dispatcher = RpcDispatcher()

    @dispatcher.handler("x")
    def first(data):
        return 1

    with pytest.raises(ValueError):
        dispatcher.register("x", lambda data: 2)
    assert "x" in dispatcher


def test_handler_errors_propagate(engine):
    dispatcher = build_dispatcher(engine)

    with pytest.raises(ValidationError, match="userId"):
        dispatcher.dispatch("user-role.find-roles-by-user", {})
    with pytest.raises(ValidationError):
        dispatcher.dispatch("user-role.assign-multiple", {"userId": "u1", "roleIds": "r1"})
