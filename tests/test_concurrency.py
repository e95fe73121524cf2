import asyncio
from types import SimpleNamespace
from decimal import Decimal

from app.core.locks import project_lock


async def test_concurrent_invoices_cannot_over_invoice(erp):
    project, product = await erp.quoted_project(quantity="10")
    await erp.delivery(project["id"], [{"product_id": product["id"], "quantity": "10"}])

    lines = [{"product_id": product["id"], "quantity": "6"}]
    results = await asyncio.gather(
        erp.invoice(project["id"], lines),
        erp.invoice(project["id"], lines),
    )

    codes = sorted(r.status_code for r in results)
    assert codes == [201, 400]
    rejected = next(r for r in results if r.status_code == 400)
    assert rejected.json()["error_code"] == "INVOICE_EXCEEDS_DELIVERED"

    resp = await erp.client.get(
        f"/api/reports/projects/{project['id']}/summary",
        headers=erp.headers("finance"),
    )
    progress = resp.json()["data"]["products"][0]
    assert Decimal(progress["invoiced"]) <= Decimal(progress["delivered"])


async def test_parallel_invoices_within_limit_all_succeed(erp):
    project, product = await erp.quoted_project(quantity="10")
    await erp.delivery(project["id"], [{"product_id": product["id"], "quantity": "9"}])

    lines = [{"product_id": product["id"], "quantity": "3"}]
    results = await asyncio.gather(*(erp.invoice(project["id"], lines) for _ in range(3)))

    assert [r.status_code for r in results] == [201, 201, 201]
    numbers = {r.json()["data"]["invoice_number"] for r in results}
    assert len(numbers) == 3


class _RecordingSession:
    """Stands in for a PostgreSQL session and records the SQL it is given."""

    def __init__(self):
        self.statements = []

    def get_bind(self):
        return SimpleNamespace(dialect=SimpleNamespace(name="postgresql"))

    async def execute(self, stmt, params=None):
        self.statements.append(str(stmt))


async def test_advisory_lock_restores_lock_timeout():
    session = _RecordingSession()

    async with project_lock(session, 7, timeout=2) as key:
        assert key == "project:7"
        held = list(session.statements)

    assert held == [
        "SET LOCAL lock_timeout = '2000ms'",
        "SELECT pg_advisory_xact_lock(hashtext(:key))",
        "SET LOCAL lock_timeout = DEFAULT",
    ]
