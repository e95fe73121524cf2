from sqlalchemy import select

from app.models.audit.audit_models import AuditLog


async def test_delivery_cannot_exceed_quoted(erp):
    project, product = await erp.quoted_project(quantity="10")
    await erp.delivery(project["id"], [{"product_id": product["id"], "quantity": "7"}])

    resp = await erp.delivery(project["id"], [{"product_id": product["id"], "quantity": "4"}], expect=400)
    body = resp.json()
    assert body["error_code"] == "DELIVERY_EXCEEDS_QUOTED"
    assert "Quotation quantity: 10.00, Already delivered: 7.00" in body["message"]


async def test_mark_delivered_once(erp):
    project, product = await erp.quoted_project()
    resp = await erp.delivery(project["id"], [{"product_id": product["id"], "quantity": "2"}])
    delivery_id = resp.json()["data"]["id"]

    resp = await erp.post(f"/api/deliveries/{delivery_id}/delivered", role="sales", expect=200)
    assert resp.json()["data"]["status"] == "DELIVERED"

    resp = await erp.post(f"/api/deliveries/{delivery_id}/delivered", role="sales", expect=400)
    assert resp.json()["error_code"] == "DELIVERY_INVALID_STATE"


async def test_return_blocked_when_already_invoiced(erp):
    project, product = await erp.quoted_project(quantity="10")
    resp = await erp.delivery(project["id"], [{"product_id": product["id"], "quantity": "5"}])
    delivery_id = resp.json()["data"]["id"]
    await erp.invoice(project["id"], [{"product_id": product["id"], "quantity": "3"}], expect=201)

    resp = await erp.post(f"/api/deliveries/{delivery_id}/return", role="sales", expect=400)
    assert resp.json()["error_code"] == "DELIVERY_INVALID_STATE"


async def test_production_can_read_but_not_create(erp):
    project, product = await erp.quoted_project()

    resp = await erp.post(
        "/api/deliveries",
        {"project_id": project["id"], "items": [{"product_id": product["id"], "quantity": "1"}]},
        role="production",
        expect=403,
    )
    assert resp.json()["error_code"] == "PERMISSION_DENIED"

    resp = await erp.client.get(
        f"/api/deliveries?project_id={project['id']}",
        headers=erp.headers("production"),
    )
    assert resp.status_code == 200
    assert resp.json()["metadata"]["total_elements"] == 0


async def test_delivery_note_pdf(erp, db):
    project, product = await erp.quoted_project()
    resp = await erp.delivery(project["id"], [{"product_id": product["id"], "quantity": "2"}])
    delivery_id = resp.json()["data"]["id"]

    resp = await erp.client.get(f"/api/deliveries/{delivery_id}/pdf", headers=erp.headers("production"))
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")
    assert f"{project['job_code']}-DN-{delivery_id}.pdf" in resp.headers["content-disposition"]

    codes = (
        await db.execute(select(AuditLog.activity_code).where(AuditLog.entity_type == "DELIVERY"))
    ).scalars().all()
    assert "DOWNLOAD_DELIVERY_NOTE" in codes
