from decimal import Decimal


async def _delivered_project(erp, quoted="10", delivered="6"):
    project, product = await erp.quoted_project(quantity=quoted)
    await erp.delivery(project["id"], [{"product_id": product["id"], "quantity": delivered}])
    return project, product


async def test_invoice_within_delivered_quantity(erp):
    project, product = await _delivered_project(erp)

    resp = await erp.invoice(project["id"], [{"product_id": product["id"], "quantity": "4"}], expect=201)
    invoice = resp.json()["data"]

    assert invoice["status"] == "DRAFT"
    assert invoice["invoice_number"].startswith("INV-")
    assert Decimal(invoice["total_before_tax"]) == Decimal("4000.00")
    assert Decimal(invoice["total_tax"]) == Decimal("400.00")
    assert Decimal(invoice["total_amount"]) == Decimal("4400.00")
    assert invoice["job_code"] == project["job_code"]


async def test_invoice_rejects_quantity_above_delivered(erp):
    project, product = await _delivered_project(erp)
    await erp.invoice(project["id"], [{"product_id": product["id"], "quantity": "4"}], expect=201)

    resp = await erp.invoice(project["id"], [{"product_id": product["id"], "quantity": "3"}], expect=400)
    body = resp.json()

    assert body["error_code"] == "INVOICE_EXCEEDS_DELIVERED"
    assert body["message"] == (
        f"Invoice quantity (3.00) exceeds invoiceable quantity (2.00) for product ID {product['id']}. "
        "Delivered: 6.00, Already invoiced: 4.00"
    )


async def test_invoice_requires_lines(erp):
    project, _ = await _delivered_project(erp)

    resp = await erp.invoice(project["id"], [], expect=400)
    assert resp.json()["message"] == "Invoice must have at least one line item"


async def test_duplicate_products_checked_before_quantities(erp):
    project, product = await _delivered_project(erp)

    resp = await erp.invoice(
        project["id"],
        [
            {"product_id": product["id"], "quantity": "0"},
            {"product_id": product["id"], "quantity": "1"},
        ],
        expect=400,
    )
    assert "Duplicate product ID" in resp.json()["message"]


async def test_non_positive_quantity_rejected(erp):
    project, product = await _delivered_project(erp)

    resp = await erp.invoice(project["id"], [{"product_id": product["id"], "quantity": "0"}], expect=400)
    assert resp.json()["message"] == f"Quantity must be positive for product ID {product['id']}"


async def test_product_outside_quotation_rejected(erp):
    project, _ = await _delivered_project(erp)
    other = await erp.product(sku="PLT-200", name="Plate")

    resp = await erp.invoice(project["id"], [{"product_id": other["id"], "quantity": "1"}], expect=400)
    body = resp.json()
    assert body["error_code"] == "BUSINESS_RULE_VIOLATION"
    assert "is not in quotation" in body["message"]


async def test_project_without_approved_quotation(erp):
    customer = await erp.company()
    product = await erp.product()
    project = await erp.project(customer["id"])

    resp = await erp.invoice(project["id"], [{"product_id": product["id"], "quantity": "1"}], expect=400)
    assert resp.json()["error_code"] == "QUOTATION_NOT_APPROVED"


async def test_cancelled_invoice_frees_quantity(erp):
    project, product = await _delivered_project(erp)
    resp = await erp.invoice(project["id"], [{"product_id": product["id"], "quantity": "6"}], expect=201)
    invoice_id = resp.json()["data"]["id"]

    await erp.post(f"/api/invoices/{invoice_id}/cancel", role="finance", expect=200)

    await erp.invoice(project["id"], [{"product_id": product["id"], "quantity": "6"}], expect=201)


async def test_returned_delivery_is_not_invoiceable(erp):
    project, product = await erp.quoted_project(quantity="10")
    resp = await erp.delivery(project["id"], [{"product_id": product["id"], "quantity": "5"}])
    delivery_id = resp.json()["data"]["id"]
    await erp.post(f"/api/deliveries/{delivery_id}/return", role="sales", expect=200)

    resp = await erp.invoice(project["id"], [{"product_id": product["id"], "quantity": "1"}], expect=400)
    assert resp.json()["error_code"] == "INVOICE_EXCEEDS_DELIVERED"


async def test_unit_price_defaults_to_quoted_price(erp):
    project, product = await _delivered_project(erp)

    resp = await erp.invoice(
        project["id"],
        [{"product_id": product["id"], "quantity": "2", "unit_price": "900"}],
        expect=201,
    )
    line = resp.json()["data"]["items"][0]
    assert Decimal(line["unit_price"]) == Decimal("900.00")
    assert Decimal(line["line_total"]) == Decimal("1800.00")
    assert line["product_sku"] == "BRK-100"
