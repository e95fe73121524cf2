import json
from urllib.parse import urlparse, parse_qs


async def _authorize(erp) -> str:
    resp = await erp.client.get("/api/admin/mail/oauth2/authorize", headers=erp.headers("admin"))
    assert resp.status_code == 200
    url = resp.json()["data"]["authorization_url"]
    query = parse_qs(urlparse(url).query)
    assert query["client_id"] == ["test-client-id"]
    assert "offline_access" in query["scope"][0]
    return query["state"][0]


async def test_callback_stores_mailbox(erp, graph):
    state = await _authorize(erp)

    resp = await erp.client.get("/api/admin/mail/oauth2/callback", params={"code": "abc", "state": state})
    assert resp.status_code == 302
    assert resp.headers["location"].endswith("/admin/settings/mail?success=true")

    resp = await erp.client.get("/api/admin/mail/status", headers=erp.headers("admin"))
    status = resp.json()["data"]
    assert status["connected"] is True
    assert status["sender_email"] == "billing@acme.co"
    assert status["connected_by_id"] == erp.users["admin"].id

    token_form = parse_qs(graph[0].content.decode())
    assert token_form["grant_type"] == ["authorization_code"]
    assert token_form["code"] == ["abc"]


async def test_state_is_single_use(erp, graph):
    state = await _authorize(erp)
    await erp.client.get("/api/admin/mail/oauth2/callback", params={"code": "abc", "state": state})

    resp = await erp.client.get("/api/admin/mail/oauth2/callback", params={"code": "abc", "state": state})
    assert resp.status_code == 302
    assert resp.headers["location"].endswith("error=MAIL_OAUTH_STATE_INVALID")


async def test_provider_error_redirects(client):
    resp = await client.get("/api/admin/mail/oauth2/callback", params={"error": "access_denied"})
    assert resp.status_code == 302
    assert resp.headers["location"].endswith("error=MAIL_OAUTH_EXCHANGE_FAILED")


async def test_email_quotation_through_graph(erp, graph):
    state = await _authorize(erp)
    await erp.client.get("/api/admin/mail/oauth2/callback", params={"code": "abc", "state": state})

    customer = await erp.company(email="buyer@customer.co")
    product = await erp.product()
    project = await erp.project(customer["id"])
    await erp.quotation_chain()
    quotation = await erp.approved_quotation(project["id"], [{"product_id": product["id"], "quantity": "2"}])

    resp = await erp.post(
        f"/api/quotations/{quotation['id']}/email",
        {"cc": ["sales@acme.co"]},
        role="sales",
        expect=200,
    )
    assert resp.json()["data"]["status"] == "SENT"

    send = graph[-1]
    assert send.url.path.endswith("/me/sendMail")
    assert send.headers["authorization"] == "Bearer graph-access"
    message = json.loads(send.content)["message"]
    assert message["toRecipients"] == [{"emailAddress": {"address": "buyer@customer.co"}}]
    assert message["attachments"][0]["contentType"] == "application/pdf"


async def test_email_without_mailbox_fails(erp):
    customer = await erp.company(email="buyer@customer.co")
    product = await erp.product()
    project = await erp.project(customer["id"])
    await erp.quotation_chain()
    quotation = await erp.approved_quotation(project["id"], [{"product_id": product["id"], "quantity": "2"}])

    resp = await erp.post(f"/api/quotations/{quotation['id']}/email", {}, role="sales", expect=400)
    assert resp.json()["error_code"] == "MAIL_NOT_CONFIGURED"


async def test_disconnect(erp, graph):
    state = await _authorize(erp)
    await erp.client.get("/api/admin/mail/oauth2/callback", params={"code": "abc", "state": state})

    resp = await erp.client.delete("/api/admin/mail", headers=erp.headers("admin"))
    assert resp.status_code == 200

    resp = await erp.client.get("/api/admin/mail/status", headers=erp.headers("admin"))
    assert resp.json()["data"]["connected"] is False
