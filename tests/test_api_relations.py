"""HTTP tests for the relation endpoints."""
import pytest


# ─────────────────────────────────────────────────────────────────────────────
# Caller identity
# ─────────────────────────────────────────────────────────────────────────────

def test_missing_gateway_headers_are_rejected(client):
    response = client.get("/users/u1/roles")
    assert response.status_code == 401
    assert response.get_json()["error"] == "unauthorized"


def test_wrong_proxy_secret_is_rejected(client):
    response = client.get(
        "/users/u1/roles",
        headers={"X-Proxy-Secret": "guess", "X-Trusted-User-Id": "u1"},
    )
    assert response.status_code == 401


def test_missing_user_id_is_rejected(client, caller):
    headers = caller("u1")
    headers["X-Trusted-User-Id"] = "  "
    assert client.get("/users/u1/roles", headers=headers).status_code == 401


# ─────────────────────────────────────────────────────────────────────────────
# Self-or-admin reads
# ─────────────────────────────────────────────────────────────────────────────

def test_user_reads_own_roles(client, seed, caller):
    seed("user-role", ("u1", "r2"), ("u1", "r1"))

    response = client.get("/users/u1/roles", headers=caller("u1"))

    assert response.status_code == 200
    assert response.get_json() == ["r1", "r2"]


def test_user_cannot_read_other_users_roles(client, seed, caller):
    seed("user-role", ("u1", "r1"))

    response = client.get("/users/u1/roles", headers=caller("u2"))

    assert response.status_code == 403
    assert response.get_json()["error"] == "forbidden"


def test_admin_reads_any_users_roles(client, seed, admin_headers):
    seed("user-role", ("u1", "r1"))

    response = client.get("/users/u1/roles", headers=admin_headers)

    assert response.status_code == 200
    assert response.get_json() == ["r1"]


def test_exists_is_self_scoped(client, seed, caller):
    seed("user-role", ("u1", "r1"))

    assert client.get("/users/u1/roles/r1/exists", headers=caller("u1")).get_json() == {"exists": True}
    assert client.get("/users/u1/roles/r9/exists", headers=caller("u1")).get_json() == {"exists": False}
    assert client.get("/users/u1/roles/r1/exists", headers=caller("u2")).status_code == 403


def test_list_by_role_requires_manage_access(client, seed, caller, admin_headers):
    seed("user-role", ("u1", "r1"), ("u2", "r1"))

    assert client.get("/roles/r1/users", headers=caller("u1")).status_code == 403
    response = client.get("/roles/r1/users", headers=admin_headers)
    assert response.get_json() == ["u1", "u2"]


# ─────────────────────────────────────────────────────────────────────────────
# Mutations
# ─────────────────────────────────────────────────────────────────────────────

def test_assign_requires_manage_access(client, caller):
    response = client.post("/users/u1/roles/r1", headers=caller("u1"))
    assert response.status_code == 403


def test_assign_is_idempotent(client, admin_headers):
    first = client.post("/users/u1/roles/r1", headers=admin_headers)
    second = client.post("/users/u1/roles/r1", headers=admin_headers)

    assert first.status_code == 201
    assert first.get_json() == {"success": True, "created": True}
    assert second.status_code == 200
    assert second.get_json() == {"success": True, "created": False}
    assert client.get("/users/u1/roles", headers=admin_headers).get_json() == ["r1"]


def test_manage_permission_grants_access(client, seed, caller):
    seed("user-role", ("ops", "operator"))
    seed("role-permission", ("operator", "user-role:manage"))

    response = client.post("/users/u1/roles/r1", headers=caller("ops"))

    assert response.status_code == 201
    # The permission is scoped to its domain
    assert client.post("/roles/r1/permissions/p1", headers=caller("ops")).status_code == 403


def test_revoke_is_silent_for_absent_pair(client, seed, admin_headers):
    seed("user-role", ("u1", "r1"))

    assert client.delete("/users/u1/roles/r1", headers=admin_headers).status_code == 204
    assert client.delete("/users/u1/roles/r1", headers=admin_headers).status_code == 204
    assert client.get("/users/u1/roles", headers=admin_headers).get_json() == []


def test_assign_multiple_reports_details(client, seed, admin_headers):
    seed("user-role", ("u1", "r1"))

    response = client.post("/users/u1/roles/batch", json={"roleIds": ["r1", "r2"]}, headers=admin_headers)

    assert response.status_code == 200
    body = response.get_json()
    assert body["affected"] == 1
    assert body["details"]["duplicates"] == ["r1"]
    assert body["details"]["newAssignments"] == ["r2"]


def test_revoke_multiple(client, seed, admin_headers):
    seed("user-role", ("u1", "r1"), ("u1", "r2"), ("u1", "r3"))

    response = client.delete("/users/u1/roles/batch", json={"roleIds": ["r1", "r3"]}, headers=admin_headers)

    assert response.status_code == 204
    assert client.get("/users/u1/roles", headers=admin_headers).get_json() == ["r2"]


@pytest.mark.parametrize("body", [None, {}, {"roleIds": "r1"}, {"roleIds": []}, {"roleIds": [1, 2]}])
def test_batch_body_validation(client, admin_headers, body):
    response = client.post("/users/u1/roles/batch", json=body, headers=admin_headers)
    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_request"


def test_overlong_id_is_rejected(client, admin_headers):
    response = client.post(f"/users/u1/roles/{'r' * 300}", headers=admin_headers)
    assert response.status_code == 400


def test_padded_ids_are_rejected_not_rewritten(client, admin_headers):
    assert client.post("/users/u1/roles/%20r1", headers=admin_headers).status_code == 400

    response = client.put("/users/u1/roles", json={"roleIds": ["r1", "r2 "]}, headers=admin_headers)

    assert response.status_code == 400
    assert "whitespace" in response.get_json()["message"]
    assert client.get("/users/u1/roles", headers=admin_headers).get_json() == []


def test_replace_returns_diff(client, seed, admin_headers):
    seed("role-permission", ("R1", "P1"), ("R1", "P2"))

    response = client.put("/roles/R1/permissions", json={"permissionIds": ["P1", "P3"]}, headers=admin_headers)

    assert response.status_code == 200
    assert response.get_json() == {"added": ["P3"], "removed": ["P2"], "unchanged": ["P1"]}
    assert client.get("/roles/R1/permissions", headers=admin_headers).get_json() == ["P1", "P3"]


def test_replace_with_empty_list_clears(client, seed, admin_headers):
    seed("service-visible-role", ("S1", "R1"), ("S1", "R2"))

    response = client.put("/services/S1/roles", json={"roleIds": []}, headers=admin_headers)

    assert response.get_json()["removed"] == ["R1", "R2"]
    assert client.get("/services/S1/roles", headers=admin_headers).get_json() == []


def test_replace_replayed_changes_nothing(client, admin_headers):
    client.put("/users/u1/roles", json={"roleIds": ["r1", "r2"]}, headers=admin_headers)

    response = client.put("/users/u1/roles", json={"roleIds": ["r1", "r2"]}, headers=admin_headers)

    assert response.get_json() == {"added": [], "removed": [], "unchanged": ["r1", "r2"]}


# ─────────────────────────────────────────────────────────────────────────────
# Other domains
# ─────────────────────────────────────────────────────────────────────────────

def test_role_permission_routes(client, admin_headers):
    assert client.post("/roles/R1/permissions/P1", headers=admin_headers).status_code == 201
    assert client.post("/roles/R2/permissions/P1", headers=admin_headers).status_code == 201

    assert client.get("/permissions/P1/roles", headers=admin_headers).get_json() == ["R1", "R2"]
    assert client.get("/roles/R1/permissions/P1/exists", headers=admin_headers).get_json() == {"exists": True}


def test_service_role_routes(client, admin_headers):
    client.post("/services/S1/roles/batch", json={"roleIds": ["R1", "R2"]}, headers=admin_headers)

    assert client.get("/roles/R1/services", headers=admin_headers).get_json() == ["S1"]
    assert client.get("/services/S1/roles", headers=admin_headers).get_json() == ["R1", "R2"]


def test_non_self_scoped_domains_require_manage_for_reads(client, seed, caller):
    seed("role-permission", ("R1", "P1"))
    assert client.get("/roles/R1/permissions", headers=caller("R1")).status_code == 403
