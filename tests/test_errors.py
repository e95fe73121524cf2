from sqlalchemy.exc import IntegrityError

from app.core.error_handlers import translate_integrity_error
from app.middleware import request_logging


async def test_health_check(client):
    resp = await client.get("/")
    assert resp.status_code == 200


async def test_success_envelope(erp):
    product = await erp.product()

    resp = await erp.client.get(f"/api/products/{product['id']}", headers=erp.headers("sales"))
    body = resp.json()
    assert body["success"] is True
    assert body["message"]
    assert body["data"]["sku"] == "BRK-100"
    assert "timestamp" in body


async def test_list_envelope_has_page_metadata(erp):
    await erp.product(sku="A-1")
    await erp.product(sku="A-2")
    await erp.product(sku="A-3")

    resp = await erp.client.get("/api/products", params={"page_size": 2}, headers=erp.headers("sales"))
    metadata = resp.json()["metadata"]
    assert metadata == {
        "page": 1,
        "size": 2,
        "total_elements": 3,
        "total_pages": 2,
        "first": True,
        "last": False,
    }


async def test_not_found_uses_domain_code(erp):
    resp = await erp.client.get("/api/invoices/999", headers=erp.headers("finance"))
    assert resp.status_code == 404
    body = resp.json()
    assert body["success"] is False
    assert body["error_code"] == "INVOICE_NOT_FOUND"
    assert body["details"] is None


async def test_unknown_route_maps_to_not_found(client):
    resp = await client.get("/api/nowhere")
    assert resp.status_code == 404
    assert resp.json()["error_code"] == "NOT_FOUND"


async def test_validation_errors_name_fields(erp):
    resp = await erp.post("/api/products", {"sku": "", "base_unit_price": "-1"}, expect=422)
    body = resp.json()
    assert body["error_code"] == "VALIDATION_ERROR"
    assert body["message"] == "Invalid request data"
    assert {"sku", "name", "base_unit_price"} <= set(body["details"])


async def test_duplicate_sku_conflict(erp):
    await erp.product()
    resp = await erp.post("/api/products", {"sku": "BRK-100", "name": "Again", "base_unit_price": "1"}, expect=409)
    assert resp.json()["error_code"] == "PRODUCT_SKU_EXISTS"


def _integrity(message):
    return IntegrityError("INSERT ...", {}, Exception(message))


def test_integrity_errors_are_classified():
    assert translate_integrity_error(_integrity("UNIQUE constraint failed: products.sku"))[2] == "DUPLICATE_RESOURCE"
    assert translate_integrity_error(_integrity("FOREIGN KEY constraint failed"))[0] == 409
    assert translate_integrity_error(_integrity("NOT NULL constraint failed: companies.name"))[0] == 400
    assert translate_integrity_error(_integrity("something else"))[2] == "CONFLICT"


async def test_rejected_write_still_returns_error_and_logs_user(erp, monkeypatch):
    logged = []
    monkeypatch.setattr(request_logging.logger, "info", lambda msg, extra=None: logged.append(extra))
    product = await erp.product()

    resp = await erp.client.patch(
        f"/api/products/{product['id']}",
        json={"name": "Stale", "version": 9},
        headers=erp.headers("admin"),
    )
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "PRODUCT_VERSION_CONFLICT"
    assert logged[-1]["status_code"] == 409
    assert logged[-1]["user_id"] == erp.users["admin"].id


async def test_over_invoicing_is_rejected_with_domain_code(erp):
    project, product = await erp.quoted_project(quantity="10")
    await erp.delivery(project["id"], [{"product_id": product["id"], "quantity": "5"}])

    resp = await erp.invoice(project["id"], [{"product_id": product["id"], "quantity": "6"}], expect=400)
    assert resp.json()["error_code"] == "INVOICE_EXCEEDS_DELIVERED"
