import os
import tempfile
from datetime import date, timedelta
from urllib.parse import urlparse, parse_qs

_DB_FILE = os.path.join(tempfile.gettempdir(), f"jobcode_erp_test_{os.getpid()}.db")

os.environ["APP_ENV"] = "development"
os.environ["DB_TYPE"] = "sqlite"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_FILE}"
os.environ["JWT_ACCESS_SECRET_KEY"] = "test-secret-key-with-enough-entropy"
os.environ["MICROSOFT_GRAPH_CLIENT_ID"] = "test-client-id"
os.environ["MICROSOFT_GRAPH_CLIENT_SECRET"] = "test-client-secret"
os.environ["ENABLE_SCHEDULER"] = "false"

import pytest
import httpx

from app.core.db import engine, Base, AsyncSessionLocal
from app.core.security import hash_password, create_access_token
from app.models.users.user_models import User
from app.services.mail import graph_client
from main import app

ROLES = ("admin", "finance", "sales", "production")


@pytest.fixture(autouse=True)
async def database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db():
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
async def client():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def users():
    created = {}
    async with AsyncSessionLocal() as session:
        for role in ROLES:
            user = User(
                username=f"{role}@acme.co",
                full_name=role.capitalize(),
                password_hash=hash_password("Passw0rd!"),
                role=role,
                is_active=True,
            )
            session.add(user)
            created[role] = user
        await session.commit()
    return created


@pytest.fixture
def headers(users):
    def _headers(role: str) -> dict:
        user = users[role]
        token = create_access_token(subject=user.username, token_version=user.token_version, role=role)
        return {"Authorization": f"Bearer {token}"}
    return _headers


# =====================================================
# API BUILDERS
# =====================================================
class Erp:
    """Drives the API through the common setup steps."""

    def __init__(self, client: httpx.AsyncClient, headers, users):
        self.client = client
        self.headers = headers
        self.users = users

    async def post(self, url, json=None, role="admin", expect=None):
        resp = await self.client.post(url, json=json, headers=self.headers(role))
        if expect is not None:
            assert resp.status_code == expect, resp.text
        return resp

    async def company(self, name="Acme Heavy Industries", roles=("CUSTOMER",), **extra) -> dict:
        resp = await self.post("/api/companies", {"name": name, "roles": list(roles), **extra}, expect=201)
        return resp.json()["data"]

    async def product(self, sku="BRK-100", name="Bracket", price="1000.00") -> dict:
        resp = await self.post(
            "/api/products",
            {"sku": sku, "name": name, "base_unit_price": price},
            expect=201,
        )
        return resp.json()["data"]

    async def project(self, customer_id: int, name="Line 3 retrofit") -> dict:
        resp = await self.post(
            "/api/projects",
            {
                "project_name": name,
                "customer_id": customer_id,
                "due_date": str(date.today() + timedelta(days=60)),
            },
            expect=201,
        )
        return resp.json()["data"]

    async def quotation_chain(self, approver_role="finance"):
        resp = await self.client.put(
            "/api/approval-chains/QUOTATION/levels",
            json={
                "levels": [
                    {
                        "level_order": 1,
                        "level_name": "Finance review",
                        "approver_user_id": self.users[approver_role].id,
                    }
                ]
            },
            headers=self.headers("admin"),
        )
        assert resp.status_code == 200, resp.text
        return resp.json()["data"]

    async def approved_quotation(self, project_id: int, items: list[dict]) -> dict:
        resp = await self.post(
            "/api/quotations",
            {"project_id": project_id, "items": items},
            role="sales",
            expect=201,
        )
        quotation = resp.json()["data"]
        await self.post(f"/api/quotations/{quotation['id']}/submit", role="sales", expect=200)

        resp = await self.client.get(
            f"/api/approvals/entity/QUOTATION/{quotation['id']}",
            headers=self.headers("finance"),
        )
        request_id = resp.json()["data"]["id"]
        await self.post(f"/api/approvals/{request_id}/approve", {}, role="finance", expect=200)
        return quotation

    async def delivery(self, project_id: int, items: list[dict], expect=201):
        return await self.post(
            "/api/deliveries",
            {"project_id": project_id, "items": items},
            role="sales",
            expect=expect,
        )

    async def invoice(self, project_id: int, items: list[dict], expect=None):
        return await self.post(
            "/api/invoices",
            {"project_id": project_id, "items": items},
            role="finance",
            expect=expect,
        )

    async def quoted_project(self, quantity="10"):
        """A project with one product quoted and approved."""
        customer = await self.company()
        product = await self.product()
        project = await self.project(customer["id"])
        await self.quotation_chain()
        await self.approved_quotation(
            project["id"],
            [{"product_id": product["id"], "quantity": quantity}],
        )
        return project, product

    async def connect_mailbox(self):
        resp = await self.client.get("/api/admin/mail/oauth2/authorize", headers=self.headers("admin"))
        state = parse_qs(urlparse(resp.json()["data"]["authorization_url"]).query)["state"][0]
        resp = await self.client.get("/api/admin/mail/oauth2/callback", params={"code": "abc", "state": state})
        assert resp.status_code == 302, resp.text


@pytest.fixture
def erp(client, headers, users):
    return Erp(client, headers, users)


@pytest.fixture
def graph(monkeypatch):
    """Routes Microsoft identity and Graph calls to an in-memory handler."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.path.endswith("/token"):
            return httpx.Response(
                200,
                json={"access_token": "graph-access", "refresh_token": "graph-refresh", "expires_in": 3600},
            )
        if request.url.path.endswith("/me"):
            return httpx.Response(200, json={"mail": "billing@acme.co"})
        if request.url.path.endswith("/me/sendMail"):
            return httpx.Response(202)
        return httpx.Response(404)

    monkeypatch.setattr(
        graph_client,
        "http_client",
        lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    return calls
