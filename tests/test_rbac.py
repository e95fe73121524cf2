from datetime import datetime, timedelta, timezone

from sqlalchemy import select, func

from app.models.users.user_models import RefreshToken
from app.services.auth.auth_service import purge_stale_refresh_tokens


async def test_missing_token_is_unauthorized(client):
    resp = await client.get("/api/projects")
    assert resp.status_code == 401
    body = resp.json()
    assert body["success"] is False
    assert body["error_code"] == "UNAUTHORIZED"


async def test_garbage_token_is_unauthorized(client, users):
    resp = await client.get("/api/projects", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


async def test_role_outside_allow_list_is_denied_and_audited(client, headers):
    resp = await client.get("/api/reports/ar-aging", headers=headers("sales"))
    assert resp.status_code == 403
    assert resp.json()["error_code"] == "PERMISSION_DENIED"

    resp = await client.get("/api/audit", params={"action": "ACCESS_DENIED"}, headers=headers("admin"))
    assert resp.status_code == 200
    entries = resp.json()["data"]["items"]
    assert len(entries) == 1
    assert entries[0]["username_snapshot"] == "sales@acme.co"
    assert entries[0]["activity_code"] == "ACCESS_DENIED"


async def test_production_cannot_touch_invoices(client, headers):
    resp = await client.get("/api/invoices", headers=headers("production"))
    assert resp.status_code == 403

    resp = await client.post("/api/invoices", json={"project_id": 1, "items": []}, headers=headers("sales"))
    assert resp.status_code == 403


async def test_login_logout_revokes_access_token(client, users):
    resp = await client.post("/api/auth/login", json={"email": "finance@acme.co", "password": "Passw0rd!"})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["user"]["role"] == "finance"
    auth = {"Authorization": f"Bearer {data['auth']['access_token']}"}

    assert (await client.get("/api/invoices", headers=auth)).status_code == 200
    assert (await client.post("/api/auth/logout", headers=auth)).status_code == 200
    assert (await client.get("/api/invoices", headers=auth)).status_code == 401


async def test_login_with_wrong_password(client, users):
    resp = await client.post("/api/auth/login", json={"email": "finance@acme.co", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid credentials"
    assert resp.json()["error_code"] == "INVALID_CREDENTIALS"


async def test_refresh_rotates_and_detects_reuse(client, users):
    resp = await client.post("/api/auth/login", json={"email": "sales@acme.co", "password": "Passw0rd!"})
    first = resp.json()["data"]["auth"]["refresh_token"]

    resp = await client.post("/api/auth/refresh", json={"refresh_token": first})
    assert resp.status_code == 200
    second = resp.json()["data"]["refresh_token"]
    assert second != first
    assert resp.json()["data"]["role"] == "sales"

    resp = await client.post("/api/auth/refresh", json={"refresh_token": first})
    assert resp.status_code == 401
    assert resp.json()["error_code"] == "SESSION_REVOKED"

    resp = await client.post("/api/auth/refresh", json={"refresh_token": second})
    assert resp.status_code == 401


async def test_failed_login_is_audited(client, headers):
    await client.post("/api/auth/login", json={"email": "finance@acme.co", "password": "wrong"})

    resp = await client.get("/api/audit", params={"action": "LOGIN"}, headers=headers("admin"))
    codes = [e["activity_code"] for e in resp.json()["data"]["items"]]
    assert codes == ["LOGIN_FAILED"]


async def test_sessions_lists_unrevoked_refresh_tokens(client, users):
    logins = []
    for agent in ("laptop", "phone"):
        resp = await client.post(
            "/api/auth/login",
            json={"email": "production@acme.co", "password": "Passw0rd!"},
            headers={"User-Agent": agent},
        )
        logins.append(resp.json()["data"]["auth"])
    assert logins[-1]["expires_in"] > 0

    auth = {"Authorization": f"Bearer {logins[-1]['access_token']}"}
    resp = await client.get("/api/auth/sessions", headers=auth)
    assert resp.status_code == 200
    assert sorted(s["user_agent"] for s in resp.json()["data"]) == ["laptop", "phone"]


async def test_stale_refresh_tokens_are_purged(db, users):
    now = datetime.now(timezone.utc)
    owner = users["sales"].id
    db.add_all(
        [
            RefreshToken(user_id=owner, token_hash="a" * 64, expires_at=now - timedelta(days=30)),
            RefreshToken(user_id=owner, token_hash="b" * 64, expires_at=now + timedelta(days=3)),
        ]
    )
    await db.commit()

    assert await purge_stale_refresh_tokens(db) == 1
    await db.commit()
    assert await db.scalar(select(func.count(RefreshToken.id))) == 1
