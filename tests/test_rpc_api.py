"""Tests for the inter-service message endpoint."""
import pytest


def test_service_token_required(client):
    response = client.post("/rpc", json={"pattern": "user-role.find-roles-by-user", "data": {"userId": "u1"}})
    assert response.status_code == 401
    assert response.get_json()["error"] == "unauthorized"


def test_wrong_service_token(rpc):
    response = rpc("user-role.find-roles-by-user", {"userId": "u1"}, token="wrong")
    assert response.status_code == 401


def test_unknown_pattern(rpc):
    response = rpc("user-role.teleport", {})
    assert response.status_code == 404
    assert response.get_json()["error"] == "not_found"


@pytest.mark.parametrize("body", [None, [], {"data": {}}, {"pattern": 5}])
def test_malformed_message(client, body):
    response = client.post("/rpc", json=body, headers={"X-Service-Token": "test-service-token"})
    assert response.status_code == 400


def test_missing_payload_field(rpc):
    response = rpc("user-role.exists", {"userId": "u1"})
    assert response.status_code == 400
    assert "roleId" in response.get_json()["message"]


def test_list_patterns(rpc, seed):
    seed("user-role", ("u1", "r1"), ("u2", "r1"), ("u1", "r2"))

    assert rpc("user-role.find-roles-by-user", {"userId": "u1"}).get_json() == {"data": ["r1", "r2"]}
    assert rpc("user-role.find-users-by-role", {"roleId": "r1"}).get_json() == {"data": ["u1", "u2"]}
    batch = rpc("user-role.find-roles-by-users", {"userIds": ["u1", "u3"]}).get_json()["data"]
    assert batch == {"u1": ["r1", "r2"], "u3": []}
    counts = rpc("user-role.find-user-counts-by-roles", {"roleIds": ["r1", "r2", "r3"]}).get_json()["data"]
    assert counts == {"r1": 2, "r2": 1, "r3": 0}


def test_no_self_or_admin_check_for_services(rpc, seed):
    seed("user-role", ("u1", "r1"))
    assert rpc("user-role.exists", {"userId": "u1", "roleId": "r1"}).get_json() == {"data": True}


def test_mutation_patterns(rpc):
    assert rpc("role-permission.assign", {"roleId": "R1", "permissionId": "P1"}).get_json() == {
        "data": {"success": True, "created": True}
    }

    batch = rpc("role-permission.assign-multiple", {"roleId": "R1", "permissionIds": ["P1", "P2"]}).get_json()
    assert batch["data"]["details"]["duplicates"] == ["P1"]

    replaced = rpc("role-permission.replace-permissions", {"roleId": "R1", "permissionIds": ["P2", "P3"]})
    assert replaced.get_json()["data"] == {"added": ["P3"], "removed": ["P1"], "unchanged": ["P2"]}

    assert rpc("role-permission.revoke", {"roleId": "R1", "permissionId": "P2"}).get_json() == {"data": None}
    assert rpc("role-permission.revoke-multiple", {"roleId": "R1", "permissionIds": ["P3"]}).status_code == 200
    assert rpc("role-permission.find-permissions-by-role", {"roleId": "R1"}).get_json() == {"data": []}


def test_service_visible_role_patterns(rpc):
    rpc("service-visible-role.replace-roles", {"serviceId": "S1", "roleIds": ["R1", "R2"]})

    assert rpc("service-visible-role.find-services-by-role", {"roleId": "R1"}).get_json()["data"] == ["S1"]
    counts = rpc("service-visible-role.find-role-counts-by-services", {"serviceIds": ["S1", "S2"]})
    assert counts.get_json()["data"] == {"S1": 2, "S2": 0}


def test_merge_and_rollback(rpc, seed):
    seed("user-role", ("old", "r1"), ("old", "r2"), ("new", "r2"))

    merged = rpc("user-role.merge-user-roles", {"sourceUserId": "old", "targetUserId": "new"}).get_json()["data"]
    assert merged == {"sourceRoleIds": ["r1", "r2"], "moved": ["r1"], "alreadyPresent": ["r2"]}
    assert rpc("user-role.find-roles-by-user", {"userId": "old"}).get_json()["data"] == []

    rollback = rpc("user-role.rollback-merge", {
        "sourceUserId": "old",
        "targetUserId": "new",
        "sourceRoleIds": merged["sourceRoleIds"],
        "targetAddedRoleIds": merged["moved"],
    })
    assert rollback.status_code == 200
    assert rpc("user-role.find-roles-by-user", {"userId": "old"}).get_json()["data"] == ["r1", "r2"]
    assert rpc("user-role.find-roles-by-user", {"userId": "new"}).get_json()["data"] == ["r2"]


def test_authorization_patterns(rpc, seed):
    seed("user-role", ("U1", "R1"))
    seed("role-permission", ("R1", "P1"), ("R1", "P2"))

    assert rpc("authorization.check-permission", {"userId": "U1", "permissionId": "P1"}).get_json() == {
        "data": {"hasPermission": True}
    }
    assert rpc("authorization.check-role", {"userId": "U1", "roleId": "R9"}).get_json() == {
        "data": {"hasRole": False}
    }
    assert rpc("authorization.get-user-permissions", {"userId": "U1"}).get_json()["data"] == ["P1", "P2"]
    assert rpc("authorization.get-user-roles", {"userId": "U1", "serviceId": "S1"}).get_json()["data"] == []
