async def test_sku_is_normalized_and_reusable_after_deactivation(erp):
    resp = await erp.post("/api/products", {"sku": " brk-200 ", "name": "Bracket L"}, expect=201)
    first = resp.json()["data"]
    assert first["sku"] == "BRK-200"
    assert first["base_unit_price"] is None

    resp = await erp.post("/api/products", {"sku": "BRK-200", "name": "Clone"}, expect=409)
    assert resp.json()["error_code"] == "PRODUCT_SKU_EXISTS"

    resp = await erp.post(f"/api/products/{first['id']}/deactivate", {"version": 1}, expect=200)
    assert resp.json()["data"]["is_active"] is False
    assert resp.json()["data"]["deleted_at"] is not None

    resp = await erp.post("/api/products", {"sku": "BRK-200", "name": "Bracket L mk2"}, expect=201)
    assert resp.json()["data"]["id"] != first["id"]

    resp = await erp.client.get(f"/api/products/{first['id']}", headers=erp.headers("sales"))
    assert resp.status_code == 404
    assert resp.json()["error_code"] == "PRODUCT_NOT_FOUND"

    resp = await erp.client.get(
        "/api/products", params={"include_inactive": "true", "sort_by": "created_at"}, headers=erp.headers("sales")
    )
    assert resp.json()["data"]["total"] == 2


async def test_update_can_clear_price_and_bumps_version(erp):
    product = await erp.product(price="40.00")

    resp = await erp.client.patch(
        f"/api/products/{product['id']}",
        json={"base_unit_price": None, "unit": "SET", "version": 1},
        headers=erp.headers("finance"),
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["base_unit_price"] is None
    assert data["unit"] == "SET"
    assert data["version"] == 2

    resp = await erp.client.patch(
        f"/api/products/{product['id']}",
        json={"unit": "SET", "version": 2},
        headers=erp.headers("finance"),
    )
    assert resp.status_code == 400

    resp = await erp.client.patch(
        f"/api/products/{product['id']}",
        json={"name": "Stale", "version": 1},
        headers=erp.headers("finance"),
    )
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "PRODUCT_VERSION_CONFLICT"


async def test_product_on_open_quotation_cannot_be_deactivated(erp):
    customer = await erp.company()
    product = await erp.product()
    project = await erp.project(customer["id"])
    resp = await erp.post(
        "/api/quotations",
        {"project_id": project["id"], "items": [{"product_id": product["id"], "quantity": "2"}]},
        role="sales",
        expect=201,
    )
    quotation = resp.json()["data"]

    resp = await erp.post(f"/api/products/{product['id']}/deactivate", {"version": 1}, expect=400)
    body = resp.json()
    assert body["error_code"] == "PRODUCT_IN_USE"
    assert body["details"] == {"quotation_ids": [quotation["id"]]}


async def test_production_reads_but_cannot_write_products(erp):
    await erp.product()
    resp = await erp.client.get("/api/products", params={"search": "brk"}, headers=erp.headers("production"))
    assert resp.status_code == 200
    assert resp.json()["data"]["items"][0]["sku"] == "BRK-100"

    resp = await erp.post("/api/products", {"sku": "X-1", "name": "X"}, role="production", expect=403)
    assert resp.json()["error_code"] == "PERMISSION_DENIED"
