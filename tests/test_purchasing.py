import json
from datetime import date, timedelta
from decimal import Decimal

import pytest

from app.services.finance.payable_service import payment_terms_days


async def _vendor_reply(erp, price="250.00", terms="NET45", vendor_email=None):
    customer = await erp.company()
    project = await erp.project(customer["id"])
    vendor = await erp.company(name="Nordic Steel", roles=("VENDOR",), payment_terms=terms, email=vendor_email)
    other = await erp.company(name="Baltic Metals", roles=("OUTSOURCE",))

    resp = await erp.post(
        "/api/purchase-requests",
        {
            "project_id": project["id"],
            "description": "Steel plate 10mm",
            "quantity": "4",
            "required_date": str(date.today() + timedelta(days=14)),
        },
        role="production",
        expect=201,
    )
    pr = resp.json()["data"]
    assert pr["request_number"].startswith("PR-")
    assert pr["status"] == "DRAFT"

    for company in (vendor, other):
        resp = await erp.post(
            f"/api/purchase-requests/{pr['id']}/rfqs",
            {"vendor_company_id": company["id"]},
            role="production",
            expect=201,
        )
    pr = resp.json()["data"]
    assert pr["status"] == "RFQ_SENT"
    rfqs = {r["vendor_company_id"]: r for r in pr["rfq_items"]}

    await erp.post(
        f"/api/purchase-requests/{pr['id']}/rfqs/{rfqs[other['id']]['id']}/reply",
        {"quoted_price": "300.00", "lead_time_days": 5},
        role="production",
        expect=200,
    )
    await erp.post(
        f"/api/purchase-requests/{pr['id']}/rfqs/{rfqs[vendor['id']]['id']}/reply",
        {"quoted_price": price, "lead_time_days": 10},
        role="production",
        expect=200,
    )
    resp = await erp.post(
        f"/api/purchase-requests/{pr['id']}/rfqs/{rfqs[vendor['id']]['id']}/select",
        role="production",
        expect=200,
    )
    pr = resp.json()["data"]
    assert pr["status"] == "VENDOR_SELECTED"
    statuses = {r["vendor_company_id"]: r["status"] for r in pr["rfq_items"]}
    assert statuses == {vendor["id"]: "SELECTED", other["id"]: "REJECTED"}

    return pr, rfqs[vendor["id"]]


async def _set_status(erp, po, status, expect=200):
    resp = await erp.post(
        f"/api/purchase-orders/{po['id']}/status",
        {"status": status, "version": po["version"]},
        role="finance",
        expect=expect,
    )
    return resp.json()["data"] if expect == 200 else resp.json()


async def test_request_to_payable_flow(erp):
    pr, rfq = await _vendor_reply(erp)

    resp = await erp.post("/api/purchase-orders", {"rfq_item_id": rfq["id"]}, role="production", expect=201)
    po = resp.json()["data"]
    assert po["po_number"].startswith("PO-")
    assert Decimal(po["total_amount"]) == Decimal("1000.00")
    assert po["requires_approval"] is False
    assert po["is_sendable"] is True

    await erp.post("/api/purchase-orders", {"rfq_item_id": rfq["id"]}, role="production", expect=409)

    po = await _set_status(erp, po, "SENT")
    po = await _set_status(erp, po, "CONFIRMED")

    resp = await erp.client.get("/api/accounts-payable", headers=erp.headers("finance"))
    payables = resp.json()["data"]["items"]
    assert len(payables) == 1
    ap = payables[0]
    assert ap["cause_type"] == "PURCHASE_ORDER"
    assert ap["cause_reference_number"] == po["po_number"]
    assert ap["due_date"] == str(date.today() + timedelta(days=45))
    assert ap["status"] == "PENDING"

    resp = await erp.post(
        f"/api/accounts-payable/{ap['id']}/payments",
        {"amount": "400.00", "payment_method": "BANK_TRANSFER"},
        role="finance",
        expect=201,
    )
    assert resp.json()["data"]["status"] == "PARTIALLY_PAID"

    resp = await erp.post(
        f"/api/accounts-payable/{ap['id']}/payments",
        {"amount": "600.01", "payment_method": "BANK_TRANSFER"},
        role="finance",
        expect=400,
    )
    assert resp.json()["error_code"] == "PAYMENT_EXCEEDS_BALANCE"

    resp = await erp.post(
        f"/api/accounts-payable/{ap['id']}/payments",
        {"amount": "600.00", "payment_method": "CHECK"},
        role="finance",
        expect=201,
    )
    assert resp.json()["data"]["status"] == "PAID"

    await _set_status(erp, po, "RECEIVED")
    resp = await erp.client.get(f"/api/purchase-requests/{pr['id']}", headers=erp.headers("production"))
    assert resp.json()["data"]["status"] == "CLOSED"


async def test_invalid_transition_rejected(erp):
    _, rfq = await _vendor_reply(erp)
    resp = await erp.post("/api/purchase-orders", {"rfq_item_id": rfq["id"]}, role="production", expect=201)
    po = resp.json()["data"]

    body = await _set_status(erp, po, "RECEIVED", expect=400)
    assert body["error_code"] == "PURCHASE_ORDER_INVALID_STATE"

    body = await _set_status(erp, {**po, "version": po["version"] + 5}, "SENT", expect=409)
    assert body["error_code"] == "PURCHASE_ORDER_VERSION_CONFLICT"


async def test_cancel_confirmed_order_cancels_unpaid_payable(erp):
    _, rfq = await _vendor_reply(erp)
    resp = await erp.post("/api/purchase-orders", {"rfq_item_id": rfq["id"]}, role="production", expect=201)
    po = await _set_status(erp, resp.json()["data"], "SENT")
    po = await _set_status(erp, po, "CONFIRMED")
    po = await _set_status(erp, po, "CANCELED")
    assert po["status"] == "CANCELED"

    resp = await erp.client.get("/api/accounts-payable", params={"status": "CANCELLED"}, headers=erp.headers("finance"))
    assert resp.json()["data"]["total"] == 1


async def test_order_needs_approval_before_sending(erp):
    await erp.client.put(
        "/api/approval-chains/PURCHASE_ORDER/levels",
        json={"levels": [{"level_order": 1, "level_name": "CFO", "approver_user_id": erp.users["admin"].id}]},
        headers=erp.headers("admin"),
    )
    _, rfq = await _vendor_reply(erp)
    resp = await erp.post("/api/purchase-orders", {"rfq_item_id": rfq["id"]}, role="production", expect=201)
    po = resp.json()["data"]
    assert po["requires_approval"] is True
    assert po["is_sendable"] is False

    await _set_status(erp, po, "SENT", expect=400)

    resp = await erp.client.get(f"/api/approvals/entity/PURCHASE_ORDER/{po['id']}", headers=erp.headers("admin"))
    await erp.post(f"/api/approvals/{resp.json()['data']['id']}/approve", {}, role="admin", expect=200)

    resp = await erp.client.get(f"/api/purchase-orders/{po['id']}", headers=erp.headers("finance"))
    po = resp.json()["data"]
    assert po["is_sendable"] is True
    assert (await _set_status(erp, po, "SENT"))["status"] == "SENT"


async def test_rfq_requires_vendor_company(erp):
    customer = await erp.company(name="Buyer Only")
    resp = await erp.post(
        "/api/purchase-requests",
        {"description": "Bolts", "quantity": "100", "required_date": str(date.today())},
        role="production",
        expect=201,
    )
    resp = await erp.post(
        f"/api/purchase-requests/{resp.json()['data']['id']}/rfqs",
        {"vendor_company_id": customer["id"]},
        role="production",
        expect=400,
    )
    assert resp.json()["error_code"] == "COMPANY_ROLE_INVALID"


async def test_payable_aging(erp):
    _, rfq = await _vendor_reply(erp, terms="COD")
    resp = await erp.post("/api/purchase-orders", {"rfq_item_id": rfq["id"]}, role="production", expect=201)
    po = await _set_status(erp, resp.json()["data"], "SENT")
    await _set_status(erp, po, "CONFIRMED")

    as_of = date.today() + timedelta(days=75)
    resp = await erp.client.get(
        "/api/reports/ap-aging",
        params={"as_of": str(as_of)},
        headers=erp.headers("finance"),
    )
    report = resp.json()["data"]
    assert Decimal(report["total_outstanding"]) == Decimal("1000.00")
    assert report["entries"][0]["bucket"] == "61-90"
    assert report["entries"][0]["counterparty_name"] == "Nordic Steel"


@pytest.mark.parametrize(
    "terms, days",
    [("NET30", 30), ("net 45", 45), ("COD", 0), ("Due_on_receipt", 0), (None, 30), ("monthly", 30)],
)
def test_payment_terms_days(terms, days):
    assert payment_terms_days(terms) == days


async def test_rfq_sent_by_email_with_pdf(erp, graph):
    await erp.connect_mailbox()
    vendor = await erp.company(name="Nordic Steel", roles=("VENDOR",), email="sales@nordic.example")
    resp = await erp.post(
        "/api/purchase-requests",
        {"description": "Steel plate 10mm", "quantity": "4", "required_date": str(date.today())},
        role="production",
        expect=201,
    )
    pr = resp.json()["data"]

    resp = await erp.post(
        f"/api/purchase-requests/{pr['id']}/rfqs",
        {"vendor_company_id": vendor["id"], "send_email": True, "cc": ["buyer@acme.co"]},
        role="production",
        expect=201,
    )
    rfq = resp.json()["data"]["rfq_items"][0]
    assert rfq["emailed_at"] is not None

    message = json.loads(graph[-1].content)["message"]
    assert message["toRecipients"] == [{"emailAddress": {"address": "sales@nordic.example"}}]
    assert message["attachments"][0]["name"] == f"{pr['request_number']}-RFQ.pdf"

    sent = len(graph)
    resp = await erp.post(
        f"/api/purchase-requests/{pr['id']}/rfqs/{rfq['id']}/email",
        {"to": "quotes@nordic.example"},
        role="production",
        expect=200,
    )
    assert len(graph) == sent + 1
    message = json.loads(graph[-1].content)["message"]
    assert message["toRecipients"] == [{"emailAddress": {"address": "quotes@nordic.example"}}]


async def test_rfq_email_without_mailbox_keeps_request_unchanged(erp):
    vendor = await erp.company(name="Nordic Steel", roles=("VENDOR",), email="sales@nordic.example")
    resp = await erp.post(
        "/api/purchase-requests",
        {"description": "Bolts", "quantity": "100", "required_date": str(date.today())},
        role="production",
        expect=201,
    )
    pr = resp.json()["data"]

    resp = await erp.post(
        f"/api/purchase-requests/{pr['id']}/rfqs",
        {"vendor_company_id": vendor["id"], "send_email": True},
        role="production",
        expect=400,
    )
    assert resp.json()["error_code"] == "MAIL_NOT_CONFIGURED"

    resp = await erp.client.get(f"/api/purchase-requests/{pr['id']}", headers=erp.headers("production"))
    assert resp.json()["data"]["status"] == "DRAFT"
    assert resp.json()["data"]["rfq_items"] == []


async def test_rfq_email_needs_a_recipient(erp, graph):
    await erp.connect_mailbox()
    vendor = await erp.company(name="Nordic Steel", roles=("VENDOR",))
    resp = await erp.post(
        "/api/purchase-requests",
        {"description": "Bolts", "quantity": "100", "required_date": str(date.today())},
        role="production",
        expect=201,
    )
    pr = resp.json()["data"]
    resp = await erp.post(
        f"/api/purchase-requests/{pr['id']}/rfqs",
        {"vendor_company_id": vendor["id"]},
        role="production",
        expect=201,
    )
    rfq = resp.json()["data"]["rfq_items"][0]

    resp = await erp.post(
        f"/api/purchase-requests/{pr['id']}/rfqs/{rfq['id']}/email",
        {},
        role="production",
        expect=400,
    )
    assert resp.json()["error_code"] == "VALIDATION_ERROR"


async def test_rfq_pdf_download(erp):
    pr, rfq = await _vendor_reply(erp)
    resp = await erp.client.get(
        f"/api/purchase-requests/{pr['id']}/rfq-pdf",
        params={"rfq_item_id": rfq["id"]},
        headers=erp.headers("production"),
    )
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")
    assert f"{pr['request_number']}-RFQ.pdf" in resp.headers["content-disposition"]


async def test_emailing_draft_order_marks_it_sent(erp, graph):
    await erp.connect_mailbox()
    _, rfq = await _vendor_reply(erp, vendor_email="orders@nordic.example")
    resp = await erp.post("/api/purchase-orders", {"rfq_item_id": rfq["id"]}, role="production", expect=201)
    po = resp.json()["data"]

    resp = await erp.post(f"/api/purchase-orders/{po['id']}/email", {}, role="finance", expect=200)
    po = resp.json()["data"]
    assert po["status"] == "SENT"

    message = json.loads(graph[-1].content)["message"]
    assert message["toRecipients"] == [{"emailAddress": {"address": "orders@nordic.example"}}]
    assert message["attachments"][0]["name"] == f"{po['po_number']}.pdf"

    # re-sending leaves the status alone
    resp = await erp.post(f"/api/purchase-orders/{po['id']}/email", {}, role="finance", expect=200)
    assert resp.json()["data"]["status"] == "SENT"
    assert resp.json()["data"]["version"] == po["version"]


async def test_unapproved_order_cannot_be_emailed(erp, graph):
    await erp.connect_mailbox()
    await erp.client.put(
        "/api/approval-chains/PURCHASE_ORDER/levels",
        json={"levels": [{"level_order": 1, "level_name": "CFO", "approver_user_id": erp.users["admin"].id}]},
        headers=erp.headers("admin"),
    )
    _, rfq = await _vendor_reply(erp, vendor_email="orders@nordic.example")
    resp = await erp.post("/api/purchase-orders", {"rfq_item_id": rfq["id"]}, role="production", expect=201)

    resp = await erp.post(f"/api/purchase-orders/{resp.json()['data']['id']}/email", {}, role="finance", expect=400)
    assert resp.json()["error_code"] == "PURCHASE_ORDER_INVALID_STATE"


async def test_purchase_order_pdf_download(erp):
    _, rfq = await _vendor_reply(erp)
    resp = await erp.post("/api/purchase-orders", {"rfq_item_id": rfq["id"]}, role="production", expect=201)
    po = resp.json()["data"]

    resp = await erp.client.get(f"/api/purchase-orders/{po['id']}/pdf", headers=erp.headers("finance"))
    assert resp.status_code == 200
    assert resp.content.startswith(b"%PDF")
    assert f"{po['po_number']}.pdf" in resp.headers["content-disposition"]
