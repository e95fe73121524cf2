async def test_create_company_with_roles(erp):
    company = await erp.company(name="Nordic Steel", roles=("VENDOR", "CUSTOMER"), payment_terms="NET45")

    assert company["payment_terms"] == "NET45"
    assert sorted(r["role_type"] for r in company["roles"]) == ["CUSTOMER", "VENDOR"]
    assert company["version"] == 1


async def test_company_name_is_unique(erp):
    await erp.company(name="Nordic Steel")

    resp = await erp.post("/api/companies", {"name": "Nordic Steel", "roles": ["VENDOR"]}, expect=409)
    assert resp.json()["error_code"] == "COMPANY_NAME_EXISTS"


async def test_company_needs_a_role(erp):
    resp = await erp.post("/api/companies", {"name": "No Roles Ltd", "roles": []}, expect=422)
    assert "roles" in resp.json()["details"]


async def test_last_role_cannot_be_removed(erp):
    company = await erp.company(roles=("CUSTOMER",))

    resp = await erp.client.delete(f"/api/companies/{company['id']}/roles/CUSTOMER", headers=erp.headers("admin"))
    assert resp.status_code == 400
    assert resp.json()["message"] == "A company must keep at least one role"

    await erp.post(f"/api/companies/{company['id']}/roles", {"role_type": "VENDOR"}, expect=201)
    resp = await erp.client.delete(f"/api/companies/{company['id']}/roles/CUSTOMER", headers=erp.headers("admin"))
    assert resp.status_code == 200
    assert [r["role_type"] for r in resp.json()["data"]["roles"]] == ["VENDOR"]


async def test_update_uses_optimistic_version(erp):
    company = await erp.company()
    url = f"/api/companies/{company['id']}"

    resp = await erp.client.patch(url, json={"version": 1, "phone": "+82-2-555-0100"}, headers=erp.headers("admin"))
    assert resp.status_code == 200
    assert resp.json()["data"]["version"] == 2

    resp = await erp.client.patch(url, json={"version": 1, "phone": "+82-2-555-0199"}, headers=erp.headers("admin"))
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "COMPANY_VERSION_CONFLICT"


async def test_project_requires_customer_role(erp):
    vendor = await erp.company(name="Only Vendor", roles=("VENDOR",))

    resp = await erp.post(
        "/api/projects",
        {"project_name": "Wrong party", "customer_id": vendor["id"], "due_date": "2030-01-01"},
        expect=400,
    )
    assert resp.json()["error_code"] == "COMPANY_ROLE_INVALID"


async def test_list_filters_by_role(erp):
    await erp.company(name="Buyer Co", roles=("CUSTOMER",))
    await erp.company(name="Seller Co", roles=("VENDOR",))

    resp = await erp.client.get("/api/companies", params={"role_type": "VENDOR"}, headers=erp.headers("finance"))
    assert resp.status_code == 200
    assert [c["name"] for c in resp.json()["data"]["items"]] == ["Seller Co"]
