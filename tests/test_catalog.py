from datetime import date, timedelta
from decimal import Decimal


async def _category(erp, name="Sheet metal", url="/api/materials/categories"):
    resp = await erp.post(url, {"name": name, "description": "Plates and coils"}, role="finance", expect=201)
    return resp.json()["data"]


async def _material(erp, category_id, sku="stl-plate-10", **extra):
    resp = await erp.post(
        "/api/materials",
        {"sku": sku, "name": "Steel plate 10mm", "category_id": category_id, "unit": "SHT", **extra},
        role="finance",
        expect=201,
    )
    return resp.json()["data"]


async def _offering(erp, vendor_id, expect=201, **target):
    return await erp.post(
        "/api/vendor-offerings",
        {"vendor_company_id": vendor_id, **target},
        role="finance",
        expect=expect,
    )


async def test_material_category_lifecycle(erp):
    category = await _category(erp)
    assert category["is_active"] is True
    assert category["material_count"] == 0

    resp = await erp.post("/api/materials/categories", {"name": "SHEET METAL"}, role="finance", expect=409)
    assert resp.json()["error_code"] == "CATEGORY_NAME_EXISTS"

    await _material(erp, category["id"])
    resp = await erp.client.get(f"/api/materials/categories/{category['id']}", headers=erp.headers("sales"))
    assert resp.json()["data"]["material_count"] == 1

    await erp.post(f"/api/materials/categories/{category['id']}/deactivate", role="finance", expect=403)
    await erp.post(f"/api/materials/categories/{category['id']}/deactivate", role="admin", expect=200)

    resp = await erp.client.get("/api/materials/categories", headers=erp.headers("finance"))
    assert resp.json()["data"]["total"] == 0
    resp = await erp.client.get(
        "/api/materials/categories",
        params={"active_only": "false"},
        headers=erp.headers("finance"),
    )
    assert resp.json()["data"]["total"] == 1


async def test_material_sku_is_normalized_and_unique(erp):
    category = await _category(erp)
    material = await _material(erp, category["id"])
    assert material["sku"] == "STL-PLATE-10"
    assert material["category_name"] == "Sheet metal"
    assert material["unit"] == "SHT"

    resp = await erp.post(
        "/api/materials",
        {"sku": "STL-PLATE-10", "name": "Duplicate", "category_id": category["id"]},
        role="finance",
        expect=409,
    )
    assert resp.json()["error_code"] == "MATERIAL_SKU_EXISTS"

    resp = await erp.client.get("/api/materials", params={"search": "plate"}, headers=erp.headers("production"))
    assert [m["sku"] for m in resp.json()["data"]["items"]] == ["STL-PLATE-10"]


async def test_material_requires_active_category(erp):
    category = await _category(erp)
    await erp.post(f"/api/materials/categories/{category['id']}/deactivate", role="admin", expect=200)

    resp = await erp.post(
        "/api/materials",
        {"sku": "BOLT-M8", "name": "Bolt M8", "category_id": category["id"]},
        role="finance",
        expect=400,
    )
    assert resp.json()["error_code"] == "CATALOG_ITEM_INACTIVE"


async def test_preferred_vendor_must_be_a_vendor(erp):
    category = await _category(erp)
    customer = await erp.company(name="Buyer Only")

    resp = await erp.post(
        "/api/materials",
        {"sku": "BOLT-M8", "name": "Bolt M8", "category_id": category["id"], "preferred_vendor_id": customer["id"]},
        role="finance",
        expect=400,
    )
    assert resp.json()["error_code"] == "COMPANY_ROLE_INVALID"


async def test_sales_cannot_write_catalog(erp):
    await erp.post("/api/materials/categories", {"name": "Fasteners"}, role="sales", expect=403)
    await erp.post("/api/service-categories", {"name": "Painting"}, role="production", expect=403)


async def test_single_preferred_offering_per_material(erp):
    category = await _category(erp)
    material = await _material(erp, category["id"])
    nordic = await erp.company(name="Nordic Steel", roles=("VENDOR",))
    baltic = await erp.company(name="Baltic Metals", roles=("VENDOR",))

    first = (await _offering(erp, nordic["id"], material_id=material["id"], unit_price="90.00", is_preferred=True)).json()["data"]
    second = (await _offering(erp, baltic["id"], material_id=material["id"], unit_price="80.00")).json()["data"]
    assert first["is_preferred"] is True
    assert second["vendor_name"] == "Baltic Metals"

    resp = await erp.post(f"/api/vendor-offerings/{second['id']}/preferred", role="finance", expect=200)
    assert resp.json()["data"]["is_preferred"] is True

    resp = await erp.client.get(f"/api/materials/{material['id']}/offerings", headers=erp.headers("production"))
    items = resp.json()["data"]["items"]
    assert [(o["id"], o["is_preferred"]) for o in items] == [(second["id"], True), (first["id"], False)]


async def test_duplicate_offering_rejected(erp):
    category = await _category(erp)
    material = await _material(erp, category["id"])
    vendor = await erp.company(name="Nordic Steel", roles=("VENDOR",))

    await _offering(erp, vendor["id"], material_id=material["id"], unit_price="90.00")
    resp = await _offering(erp, vendor["id"], expect=409, material_id=material["id"], unit_price="95.00")
    assert resp.json()["error_code"] == "VENDOR_OFFERING_EXISTS"


async def test_current_only_hides_expired_offerings(erp):
    category = await _category(erp)
    material = await _material(erp, category["id"])
    vendor = await erp.company(name="Nordic Steel", roles=("VENDOR",))
    expired_from = date.today() - timedelta(days=60)

    await _offering(
        erp,
        vendor["id"],
        material_id=material["id"],
        unit_price="70.00",
        effective_from=str(expired_from),
        effective_to=str(expired_from + timedelta(days=30)),
    )
    await _offering(erp, vendor["id"], material_id=material["id"], unit_price="75.00", effective_from=str(date.today()))

    url = f"/api/materials/{material['id']}/offerings"
    resp = await erp.client.get(url, params={"current_only": "true"}, headers=erp.headers("finance"))
    assert [Decimal(o["unit_price"]) for o in resp.json()["data"]["items"]] == [Decimal("75.00")]

    resp = await erp.client.get(url, params={"current_only": "false"}, headers=erp.headers("finance"))
    assert resp.json()["data"]["total"] == 2


async def test_offering_needs_exactly_one_target(erp):
    vendor = await erp.company(name="Nordic Steel", roles=("VENDOR",))
    resp = await _offering(erp, vendor["id"], expect=422)
    assert resp.json()["error_code"] == "VALIDATION_ERROR"


async def test_service_offerings_accept_outsourcing_partners(erp):
    painting = await _category(erp, name="Painting", url="/api/service-categories")
    partner = await erp.company(name="Coat Masters", roles=("OUTSOURCE",))
    customer = await erp.company(name="Buyer Only")

    await _offering(erp, partner["id"], service_category_id=painting["id"], unit_price="12.50")
    resp = await _offering(erp, customer["id"], expect=400, service_category_id=painting["id"])
    assert resp.json()["error_code"] == "COMPANY_ROLE_INVALID"

    resp = await erp.client.get(f"/api/service-categories/{painting['id']}", headers=erp.headers("sales"))
    assert resp.json()["data"]["vendor_count"] == 1


async def test_purchase_request_for_material_uses_its_unit(erp):
    category = await _category(erp)
    material = await _material(erp, category["id"])

    resp = await erp.post(
        "/api/purchase-requests",
        {
            "material_id": material["id"],
            "description": "Plates for frame",
            "quantity": "12",
            "required_date": str(date.today() + timedelta(days=7)),
        },
        role="production",
        expect=201,
    )
    pr = resp.json()["data"]
    assert pr["uom"] == "SHT"
    assert pr["material_sku"] == "STL-PLATE-10"

    await erp.post(f"/api/materials/{material['id']}/deactivate", role="admin", expect=200)
    resp = await erp.post(
        "/api/purchase-requests",
        {
            "material_id": material["id"],
            "description": "More plates",
            "quantity": "1",
            "required_date": str(date.today()),
        },
        role="production",
        expect=400,
    )
    assert resp.json()["error_code"] == "CATALOG_ITEM_INACTIVE"
