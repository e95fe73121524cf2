from app.scripts.create_admin import ensure_admin


async def _login(client, email, password="Passw0rd!"):
    resp = await client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['data']['auth']['access_token']}"}


async def test_create_user_normalizes_email(client, headers):
    resp = await client.post(
        "/api/users",
        json={"email": "  Buyer@ACME.co ", "password": "Sup3rSecret", "full_name": "Buyer", "role": "production"},
        headers=headers("admin"),
    )
    assert resp.status_code == 201, resp.text
    assert resp.json()["data"]["username"] == "buyer@acme.co"

    resp = await client.post(
        "/api/users",
        json={"email": "buyer@acme.co", "password": "Sup3rSecret", "role": "sales"},
        headers=headers("admin"),
    )
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "USER_EMAIL_EXISTS"


async def test_unknown_role_is_rejected(client, headers):
    resp = await client.post(
        "/api/users",
        json={"email": "x@acme.co", "password": "Sup3rSecret", "role": "superuser"},
        headers=headers("admin"),
    )
    assert resp.status_code == 422


async def test_non_admin_cannot_manage_users(client, headers):
    resp = await client.get("/api/users", headers=headers("finance"))
    assert resp.status_code == 403


async def test_role_change_revokes_existing_sessions(client, headers, users):
    old = await _login(client, "sales@acme.co")
    assert (await client.get("/api/users/me", headers=old)).status_code == 200

    resp = await client.patch(
        f"/api/users/{users['sales'].id}",
        json={"role": "finance", "version": 1},
        headers=headers("admin"),
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["role"] == "finance"
    assert resp.json()["data"]["version"] == 2

    resp = await client.get("/api/users/me", headers=old)
    assert resp.status_code == 401
    assert resp.json()["error_code"] == "SESSION_REVOKED"

    fresh = await _login(client, "sales@acme.co")
    assert (await client.get("/api/reports/ar-aging", headers=fresh)).status_code == 200


async def test_update_version_conflict(client, headers, users):
    resp = await client.patch(
        f"/api/users/{users['production'].id}",
        json={"full_name": "Shop floor", "version": 7},
        headers=headers("admin"),
    )
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "USER_VERSION_CONFLICT"


async def test_empty_update_is_rejected(client, headers, users):
    resp = await client.patch(
        f"/api/users/{users['production'].id}",
        json={"version": 1},
        headers=headers("admin"),
    )
    assert resp.status_code == 400
    assert resp.json()["error_code"] == "VALIDATION_ERROR"


async def test_admin_cannot_demote_or_deactivate_self(client, headers, users):
    admin_id = users["admin"].id
    resp = await client.patch(
        f"/api/users/{admin_id}", json={"role": "sales", "version": 1}, headers=headers("admin")
    )
    assert resp.status_code == 400

    resp = await client.post(
        f"/api/users/{admin_id}/deactivate", json={"version": 1}, headers=headers("admin")
    )
    assert resp.status_code == 400
    assert resp.json()["error_code"] == "BUSINESS_RULE_VIOLATION"


async def test_deactivation_ends_the_users_sessions(client, headers, users):
    resp = await client.post(
        "/api/users",
        json={"email": "ops@acme.co", "password": "Sup3rSecret", "role": "admin"},
        headers=headers("admin"),
    )
    assert resp.status_code == 201
    second_headers = await _login(client, "ops@acme.co", "Sup3rSecret")
    first_headers = await _login(client, "admin@acme.co")

    resp = await client.post(
        f"/api/users/{users['admin'].id}/deactivate", json={"version": 1}, headers=second_headers
    )
    assert resp.status_code == 200, resp.text

    resp = await client.get("/api/users/me", headers=first_headers)
    assert resp.status_code == 403
    assert resp.json()["error_code"] == "ACCOUNT_INACTIVE"

    resp = await client.post("/api/auth/login", json={"email": "admin@acme.co", "password": "Passw0rd!"})
    assert resp.status_code == 403


async def test_approver_cannot_be_deactivated(erp, client, headers, users):
    await erp.quotation_chain(approver_role="finance")

    resp = await client.get(f"/api/users/{users['finance'].id}", headers=headers("admin"))
    assert resp.json()["data"]["approver_for"] == ["QUOTATION:Finance review"]

    resp = await client.post(
        f"/api/users/{users['finance'].id}/deactivate", json={"version": 1}, headers=headers("admin")
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["error_code"] == "USER_IS_APPROVER"
    assert body["details"] == {"approver_for": ["QUOTATION:Finance review"]}


async def test_deactivate_then_reactivate(client, headers, users):
    target = users["production"].id
    resp = await client.post(f"/api/users/{target}/deactivate", json={"version": 1}, headers=headers("admin"))
    assert resp.status_code == 200
    assert resp.json()["data"]["is_active"] is False

    resp = await client.post(f"/api/users/{target}/deactivate", json={"version": 2}, headers=headers("admin"))
    assert resp.status_code == 400

    resp = await client.post(f"/api/users/{target}/activate", json={"version": 2}, headers=headers("admin"))
    assert resp.status_code == 200
    assert resp.json()["data"]["is_active"] is True

    resp = await client.get("/api/users", params={"is_active": "true", "sort_by": "username", "sort_order": "asc"}, headers=headers("admin"))
    names = [u["username"] for u in resp.json()["data"]["items"]]
    assert names == sorted(names)
    assert "production@acme.co" in names


async def test_list_rejects_unknown_sort_field(client, headers):
    resp = await client.get("/api/users", params={"sort_by": "password_hash"}, headers=headers("admin"))
    assert resp.status_code == 400
    assert "allowed" in resp.json()["details"]


async def test_bootstrap_admin_is_idempotent(client):
    assert await ensure_admin(" Root@ACME.co", "B00tstrap!", "Root") == "created"
    assert await ensure_admin("root@acme.co", "ignored-password", "Root") == "exists"

    resp = await client.post("/api/auth/login", json={"email": "root@acme.co", "password": "B00tstrap!"})
    assert resp.status_code == 200
    assert resp.json()["data"]["user"]["role"] == "admin"

    assert await ensure_admin("root@acme.co", "N3wPassword", "Root", reset_password=True) == "reset"
    resp = await client.post("/api/auth/login", json={"email": "root@acme.co", "password": "N3wPassword"})
    assert resp.status_code == 200
