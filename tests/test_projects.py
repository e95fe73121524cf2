from decimal import Decimal


async def _set_status(erp, project, status, expect=200):
    resp = await erp.post(
        f"/api/projects/{project['id']}/status",
        {"status": status, "version": project["version"]},
        expect=expect,
    )
    return resp.json()


async def test_project_lifecycle(erp):
    customer = await erp.company()
    project = await erp.project(customer["id"])
    assert project["status"] == "DRAFT"
    assert project["customer_name"] == "Acme Heavy Industries"

    project = (await _set_status(erp, project, "ACTIVE"))["data"]
    project = (await _set_status(erp, project, "COMPLETED"))["data"]
    project = (await _set_status(erp, project, "ARCHIVED"))["data"]

    body = await _set_status(erp, project, "ACTIVE", expect=400)
    assert body["error_code"] == "PROJECT_INVALID_STATE"
    assert body["details"] == {"current_status": "ARCHIVED", "requested_status": "ACTIVE"}


async def test_archived_project_is_read_only(erp):
    customer = await erp.company()
    project = await erp.project(customer["id"])
    project = (await _set_status(erp, project, "ARCHIVED"))["data"]

    resp = await erp.client.patch(
        f"/api/projects/{project['id']}",
        json={"version": project["version"], "note": "late change"},
        headers=erp.headers("admin"),
    )
    assert resp.status_code == 400

    product = await erp.product()
    resp = await erp.post(
        "/api/quotations",
        {"project_id": project["id"], "items": [{"product_id": product["id"], "quantity": "1"}]},
        role="sales",
        expect=400,
    )
    assert resp.json()["error_code"] == "PROJECT_INVALID_STATE"


async def test_only_draft_projects_can_be_deleted(erp):
    customer = await erp.company()
    draft = await erp.project(customer["id"], name="Scratch")
    active = await erp.project(customer["id"], name="Running")
    await _set_status(erp, active, "ACTIVE")

    resp = await erp.client.delete(f"/api/projects/{draft['id']}", headers=erp.headers("admin"))
    assert resp.status_code == 200
    resp = await erp.client.get(f"/api/projects/{draft['id']}", headers=erp.headers("admin"))
    assert resp.status_code == 404

    resp = await erp.client.delete(f"/api/projects/{active['id']}", headers=erp.headers("admin"))
    assert resp.status_code == 400


async def test_stale_project_update_conflicts(erp):
    customer = await erp.company()
    project = await erp.project(customer["id"])
    url = f"/api/projects/{project['id']}"

    resp = await erp.client.patch(url, json={"version": project["version"], "note": "v2"}, headers=erp.headers("admin"))
    assert resp.status_code == 200
    resp = await erp.client.patch(url, json={"version": project["version"], "note": "v3"}, headers=erp.headers("admin"))
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "PROJECT_VERSION_CONFLICT"


async def test_quotation_prices_from_product_and_accept_activates_project(erp):
    customer = await erp.company()
    product = await erp.product(price="125.50")
    project = await erp.project(customer["id"])
    await erp.quotation_chain()

    quotation = await erp.approved_quotation(project["id"], [{"product_id": product["id"], "quantity": "4"}])
    assert quotation["version"] == 1
    assert Decimal(quotation["items"][0]["unit_price"]) == Decimal("125.50")
    assert Decimal(quotation["total_amount"]) == Decimal("502.00")

    resp = await erp.post(f"/api/quotations/{quotation['id']}/accept", role="sales", expect=200)
    assert resp.json()["data"]["status"] == "ACCEPTED"

    resp = await erp.client.get(f"/api/projects/{project['id']}", headers=erp.headers("sales"))
    assert resp.json()["data"]["status"] == "ACTIVE"


async def test_draft_quotation_edit_and_new_version(erp):
    customer = await erp.company()
    product = await erp.product()
    project = await erp.project(customer["id"])
    await erp.quotation_chain()

    resp = await erp.post(
        "/api/quotations",
        {"project_id": project["id"], "items": [{"product_id": product["id"], "quantity": "1"}]},
        role="sales",
        expect=201,
    )
    draft = resp.json()["data"]
    resp = await erp.client.patch(
        f"/api/quotations/{draft['id']}",
        json={"items": [{"product_id": product["id"], "quantity": "2", "unit_price": "900"}]},
        headers=erp.headers("sales"),
    )
    assert resp.status_code == 200
    assert Decimal(resp.json()["data"]["total_amount"]) == Decimal("1800.00")

    await erp.post(f"/api/quotations/{draft['id']}/versions", role="sales", expect=400)

    await erp.post(f"/api/quotations/{draft['id']}/submit", role="sales", expect=200)
    resp = await erp.client.patch(
        f"/api/quotations/{draft['id']}",
        json={"notes": "too late"},
        headers=erp.headers("sales"),
    )
    assert resp.status_code == 400


async def test_quotation_pdf(erp):
    project, _ = await erp.quoted_project()
    resp = await erp.client.get("/api/quotations", params={"project_id": project["id"]}, headers=erp.headers("sales"))
    quotation = resp.json()["data"]["items"][0]

    resp = await erp.client.get(f"/api/quotations/{quotation['id']}/pdf", headers=erp.headers("sales"))
    assert resp.status_code == 200
    assert resp.content.startswith(b"%PDF")
