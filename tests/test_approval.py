import pytest


async def _two_level_chain(erp):
    resp = await erp.client.put(
        "/api/approval-chains/QUOTATION/levels",
        json={
            "name": "Quotation sign-off",
            "levels": [
                {"level_order": 1, "level_name": "Finance", "approver_user_id": erp.users["finance"].id},
                {"level_order": 2, "level_name": "Director", "approver_user_id": erp.users["admin"].id},
            ],
        },
        headers=erp.headers("admin"),
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


async def _submitted_quotation(erp):
    customer = await erp.company()
    product = await erp.product()
    project = await erp.project(customer["id"])
    resp = await erp.post(
        "/api/quotations",
        {"project_id": project["id"], "items": [{"product_id": product["id"], "quantity": "3"}]},
        role="sales",
        expect=201,
    )
    quotation = resp.json()["data"]
    await erp.post(f"/api/quotations/{quotation['id']}/submit", role="sales", expect=200)

    resp = await erp.client.get(
        f"/api/approvals/entity/QUOTATION/{quotation['id']}",
        headers=erp.headers("sales"),
    )
    return quotation, resp.json()["data"]


async def _quotation_status(erp, quotation_id):
    resp = await erp.client.get(f"/api/quotations/{quotation_id}", headers=erp.headers("sales"))
    return resp.json()["data"]["status"]


async def test_chain_advances_level_by_level(erp):
    await _two_level_chain(erp)
    quotation, request = await _submitted_quotation(erp)
    assert request["status"] == "PENDING"
    assert request["current_level"] == 1
    assert request["total_levels"] == 2
    assert await _quotation_status(erp, quotation["id"]) == "PENDING"

    resp = await erp.post(f"/api/approvals/{request['id']}/approve", {"comments": "ok"}, role="finance", expect=200)
    data = resp.json()["data"]
    assert data["status"] == "PENDING"
    assert data["current_level"] == 2

    resp = await erp.post(f"/api/approvals/{request['id']}/approve", {}, role="admin", expect=200)
    data = resp.json()["data"]
    assert data["status"] == "APPROVED"
    assert data["completed_at"] is not None
    assert await _quotation_status(erp, quotation["id"]) == "APPROVED"


async def test_out_of_order_approval_rejected(erp):
    await _two_level_chain(erp)
    _, request = await _submitted_quotation(erp)

    resp = await erp.post(f"/api/approvals/{request['id']}/approve", {}, role="admin", expect=400)
    body = resp.json()
    assert body["error_code"] == "APPROVAL_OUT_OF_ORDER"
    assert body["message"] == "Cannot approve out of order"


async def test_non_approver_forbidden(erp):
    await _two_level_chain(erp)
    _, request = await _submitted_quotation(erp)

    resp = await erp.post(f"/api/approvals/{request['id']}/approve", {}, role="sales", expect=403)
    assert resp.json()["error_code"] == "APPROVAL_NOT_APPROVER"


async def test_completed_request_cannot_be_decided_again(erp):
    await erp.quotation_chain()
    _, request = await _submitted_quotation(erp)
    await erp.post(f"/api/approvals/{request['id']}/approve", {}, role="finance", expect=200)

    resp = await erp.post(f"/api/approvals/{request['id']}/approve", {}, role="finance", expect=400)
    assert resp.json()["error_code"] == "APPROVAL_ALREADY_COMPLETED"


async def test_rejection_requires_reason_and_rejects_quotation(erp):
    await _two_level_chain(erp)
    quotation, request = await _submitted_quotation(erp)

    resp = await erp.post(f"/api/approvals/{request['id']}/reject", {"reason": "   "}, role="finance")
    assert resp.status_code == 422

    resp = await erp.post(
        f"/api/approvals/{request['id']}/reject",
        {"reason": "Margin too low"},
        role="finance",
        expect=200,
    )
    data = resp.json()["data"]
    assert data["status"] == "REJECTED"
    assert await _quotation_status(erp, quotation["id"]) == "REJECTED"

    resp = await erp.post(f"/api/quotations/{quotation['id']}/versions", role="sales", expect=201)
    assert resp.json()["data"]["version"] == 2


async def test_submit_without_chain(erp):
    customer = await erp.company()
    product = await erp.product()
    project = await erp.project(customer["id"])
    resp = await erp.post(
        "/api/quotations",
        {"project_id": project["id"], "items": [{"product_id": product["id"], "quantity": "1"}]},
        role="sales",
        expect=201,
    )

    resp = await erp.post(f"/api/quotations/{resp.json()['data']['id']}/submit", role="sales", expect=400)
    assert resp.json()["error_code"] == "APPROVAL_CHAIN_NOT_FOUND"


async def test_pending_queue_follows_current_level(erp):
    await _two_level_chain(erp)
    _, request = await _submitted_quotation(erp)

    async def pending_ids(role):
        resp = await erp.client.get("/api/approvals/pending", headers=erp.headers(role))
        return [r["id"] for r in resp.json()["data"]]

    assert await pending_ids("finance") == [request["id"]]
    assert await pending_ids("admin") == []

    await erp.post(f"/api/approvals/{request['id']}/approve", {}, role="finance", expect=200)

    assert await pending_ids("finance") == []
    assert await pending_ids("admin") == [request["id"]]


@pytest.mark.parametrize("orders", [[1, 3], [2], [1, 1]])
async def test_chain_levels_must_be_contiguous(erp, orders):
    resp = await erp.client.put(
        "/api/approval-chains/QUOTATION/levels",
        json={
            "levels": [
                {"level_order": o, "level_name": f"L{o}", "approver_user_id": erp.users["finance"].id}
                for o in orders
            ]
        },
        headers=erp.headers("admin"),
    )
    assert resp.status_code == 422
    assert resp.json()["error_code"] == "VALIDATION_ERROR"


async def test_chain_configuration_is_admin_only(erp):
    resp = await erp.client.get("/api/approval-chains", headers=erp.headers("finance"))
    assert resp.status_code == 403
