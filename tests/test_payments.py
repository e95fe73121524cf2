from datetime import date, timedelta
from decimal import Decimal

from app.services.billing.invoice_service import mark_overdue_invoices


async def _issued_invoice(erp, quantity="2", **dates):
    project, product = await erp.quoted_project(quantity="10")
    await erp.delivery(project["id"], [{"product_id": product["id"], "quantity": "10"}])
    resp = await erp.post(
        "/api/invoices",
        {
            "project_id": project["id"],
            "items": [{"product_id": product["id"], "quantity": quantity}],
            **{k: str(v) for k, v in dates.items()},
        },
        role="finance",
        expect=201,
    )
    invoice = resp.json()["data"]
    resp = await erp.post(f"/api/invoices/{invoice['id']}/issue", role="finance", expect=200)
    return resp.json()["data"]


def _payment(amount):
    return {"amount": amount, "payment_method": "BANK_TRANSFER", "reference_number": "TRX-1"}


async def test_partial_then_full_payment(erp):
    invoice = await _issued_invoice(erp)
    assert invoice["status"] == "ISSUED"
    assert Decimal(invoice["total_amount"]) == Decimal("2200.00")

    resp = await erp.post(f"/api/invoices/{invoice['id']}/payments", _payment("1000"), role="finance", expect=201)
    data = resp.json()["data"]
    assert data["status"] == "PARTIALLY_PAID"
    assert Decimal(data["remaining_balance"]) == Decimal("1200.00")

    resp = await erp.post(f"/api/invoices/{invoice['id']}/payments", _payment("1200.01"), role="finance", expect=400)
    assert resp.json()["error_code"] == "PAYMENT_EXCEEDS_BALANCE"

    resp = await erp.post(f"/api/invoices/{invoice['id']}/payments", _payment("1200"), role="finance", expect=201)
    data = resp.json()["data"]
    assert data["status"] == "PAID"
    assert Decimal(data["remaining_balance"]) == Decimal("0.00")
    assert len(data["payments"]) == 2

    resp = await erp.post(f"/api/invoices/{invoice['id']}/payments", _payment("1"), role="finance", expect=400)
    assert resp.json()["error_code"] == "INVOICE_INVALID_STATE"


async def test_draft_invoice_cannot_take_payment(erp):
    project, product = await erp.quoted_project()
    await erp.delivery(project["id"], [{"product_id": product["id"], "quantity": "1"}])
    resp = await erp.invoice(project["id"], [{"product_id": product["id"], "quantity": "1"}], expect=201)

    await erp.post(
        f"/api/invoices/{resp.json()['data']['id']}/payments",
        _payment("10"),
        role="finance",
        expect=400,
    )


async def test_paid_invoice_cannot_be_cancelled(erp):
    invoice = await _issued_invoice(erp)
    await erp.post(f"/api/invoices/{invoice['id']}/payments", _payment("100"), role="finance", expect=201)

    resp = await erp.post(f"/api/invoices/{invoice['id']}/cancel", role="finance", expect=400)
    assert resp.json()["message"] == "Cannot cancel an invoice that has recorded payments"


async def test_fully_paid_invoice_reports_payments_on_cancel(erp):
    invoice = await _issued_invoice(erp)
    resp = await erp.post(f"/api/invoices/{invoice['id']}/payments", _payment("2200"), role="finance", expect=201)
    assert resp.json()["data"]["status"] == "PAID"

    resp = await erp.post(f"/api/invoices/{invoice['id']}/cancel", role="finance", expect=400)
    body = resp.json()
    assert body["message"] == "Cannot cancel an invoice that has recorded payments"
    assert body["details"]["total_paid"] == "2200.00"


async def test_overdue_sweep_and_receivable_aging(erp, db):
    issued = date.today() - timedelta(days=50)
    invoice = await _issued_invoice(erp, issue_date=issued, due_date=issued + timedelta(days=5))

    assert await mark_overdue_invoices(db) == 1
    assert await mark_overdue_invoices(db) == 0

    resp = await erp.client.get(f"/api/invoices/{invoice['id']}", headers=erp.headers("finance"))
    assert resp.json()["data"]["status"] == "OVERDUE"

    resp = await erp.post(f"/api/invoices/{invoice['id']}/payments", _payment("200"), role="finance", expect=201)
    assert resp.json()["data"]["status"] == "OVERDUE"

    resp = await erp.client.get("/api/reports/ar-aging", headers=erp.headers("finance"))
    report = resp.json()["data"]
    assert Decimal(report["total_outstanding"]) == Decimal("2000.00")
    buckets = {b["bucket"]: b for b in report["buckets"]}
    assert buckets["31-60"]["count"] == 1
    assert buckets["Current"]["count"] == 0
    assert report["entries"][0]["days_overdue"] == 45


async def test_invoice_update_checks_version(erp):
    project, product = await erp.quoted_project()
    await erp.delivery(project["id"], [{"product_id": product["id"], "quantity": "1"}])
    resp = await erp.invoice(project["id"], [{"product_id": product["id"], "quantity": "1"}], expect=201)
    invoice = resp.json()["data"]

    resp = await erp.client.patch(
        f"/api/invoices/{invoice['id']}",
        json={"version": invoice["version"], "notes": "Deliver to gate 4"},
        headers=erp.headers("finance"),
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["notes"] == "Deliver to gate 4"

    resp = await erp.client.patch(
        f"/api/invoices/{invoice['id']}",
        json={"version": invoice["version"], "notes": "stale"},
        headers=erp.headers("finance"),
    )
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "INVOICE_VERSION_CONFLICT"


async def test_invoice_pdf_download(erp):
    invoice = await _issued_invoice(erp)

    resp = await erp.client.get(f"/api/invoices/{invoice['id']}/pdf", headers=erp.headers("sales"))
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")
    assert invoice["invoice_number"] in resp.headers["content-disposition"]
