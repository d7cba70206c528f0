from decimal import Decimal

from orderhub.core.config import settings
from orderhub.models.client import Manufacturer
from orderhub.models.user import User
from orderhub.services.orders import get_order_detail

from factories import FakeEmailClient, make_order

API = settings.API_V1_STR


def test_health_and_auth_gate(api):
    assert api.get("/health").json() == {"status": "ok"}
    assert api.get(f"{API}/health").status_code == 200

    response = api.get("/dashboard/orders", follow_redirects=False)
    assert response.status_code == 307
    assert response.headers["location"] == "/"

    assert api.get(f"{API}/orders/").status_code == 401
    assert api.get(f"{API}/orders/", headers={"X-User-Id": "999"}).status_code == 401


def test_order_detail_is_shaped_by_role(api, run, world):
    order_id = run(lambda db: make_order(db, world, products=1))

    admin = api.get(f"{API}/orders/{order_id}", headers=world.headers(world.admin)).json()
    product = admin["products"][0]
    assert Decimal(product["product_price"]) == Decimal("7.00")
    assert Decimal(product["client_product_price"]) == Decimal("12.50")

    client = api.get(f"{API}/orders/{order_id}", headers=world.headers(world.client)).json()
    assert "product_price" not in client["products"][0]
    assert client["sample"]["sample_fee"] is None

    factory = api.get(f"{API}/orders/{order_id}", headers=world.headers(world.manufacturer)).json()
    assert "client_product_price" not in factory["products"][0]


def test_create_and_list_orders(api, world):
    payload = {
        "order_name": "Tote Bags",
        "products": [{"description": "Canvas Tote", "items": [{"variant_combo": "Natural", "quantity": 200}]}],
    }
    created = api.post(f"{API}/orders/", json=payload, headers=world.headers(world.client))
    assert created.status_code == 200
    assert created.json()["client_id"] == world.client_id

    listing = api.get(f"{API}/orders/", headers=world.headers(world.client)).json()
    assert listing["total"] == 1
    assert listing["data"][0]["order_name"] == "Tote Bags"

    denied = api.post(f"{API}/orders/", json=payload, headers=world.headers(world.manufacturer))
    assert denied.status_code == 403


def test_bulk_route_endpoint(api, run, world):
    order_id = run(lambda db: make_order(db, world, products=2))
    headers = world.headers(world.admin)

    options = api.get(f"{API}/orders/{order_id}/route-options", headers=headers).json()
    assert options["role"] == "admin"
    assert options["options"][0]["value"] == "send_to_manufacturer"

    response = api.post(
        f"{API}/orders/{order_id}/route",
        json={"route_option": "send_to_manufacturer", "notes": "please quote",
              "sample": {"fee": "20", "notes": "one sample"}},
        headers=headers,
    )
    body = response.json()
    assert response.status_code == 200
    assert body["success"] and body["redirect"]
    assert len(body["updated_product_ids"]) == 2

    order = run(lambda db: get_order_detail(db, order_id))
    assert {p.routed_to for p in order.products} == {"manufacturer"}
    assert order.sample_routed_to == "manufacturer"
    assert order.client_sample_fee == Decimal("36.00")

    wrong = api.post(
        f"{API}/orders/{order_id}/route", json={"route_option": "shipped"}, headers=world.headers(world.client),
    )
    assert wrong.status_code == 400


def test_bulk_route_rejects_other_manufacturers(api, run, world):
    order_id = run(lambda db: make_order(db, world, products=1))
    unassigned_id = run(lambda db: make_order(db, world, products=1, manufacturer_id=None))

    async def add_users(db):
        rival = Manufacturer(name="Harbor Works", email="hello@harbor.test")
        db.add(rival)
        await db.flush()
        outsider = User(email="sales@harbor.test", name="Harbor Sales", role="manufacturer", manufacturer_id=rival.id)
        unlinked = User(email="temp@sunrise.test", name="Temp Sales", role="manufacturer")
        db.add_all([outsider, unlinked])
        await db.commit()
        return outsider.id, unlinked.id

    outsider_id, unlinked_id = run(add_users)
    body = {"route_option": "send_to_admin"}

    denied = api.post(f"{API}/orders/{order_id}/route", json=body, headers={"X-User-Id": str(outsider_id)})
    assert denied.status_code == 403
    denied = api.post(f"{API}/orders/{unassigned_id}/route", json=body, headers={"X-User-Id": str(unlinked_id)})
    assert denied.status_code == 403
    listing = api.get(f"{API}/orders/", headers={"X-User-Id": str(unlinked_id)}).json()
    assert listing["total"] == 0

    order = run(lambda db: get_order_detail(db, order_id))
    assert {p.routed_to for p in order.products} == {"admin"}


def test_sample_routing_endpoint(api, run, world):
    order_id = run(lambda db: make_order(db, world, sample_fee=15, sample_status="pending"))

    state = api.get(f"{API}/orders/{order_id}/sample-routing", headers=world.headers(world.admin)).json()
    assert state["can_route_to_manufacturer"] and state["can_route_to_client"]

    moved = api.post(
        f"{API}/orders/{order_id}/sample-routing",
        json={"destination": "client", "notes": "approve swatch"},
        headers=world.headers(world.admin),
    )
    assert moved.json()["routed_to"] == "client"
    assert moved.json()["workflow_status"] == "sent_to_client"

    blocked = api.post(
        f"{API}/orders/{order_id}/sample-routing",
        json={"destination": "manufacturer"},
        headers=world.headers(world.client),
    )
    assert blocked.status_code == 400
    assert blocked.json()["detail"] == "Cannot route to manufacturer from current state"


def test_product_endpoints(api, run, world):
    order_id = run(lambda db: make_order(db, world, products=1))
    product_id = run(lambda db: get_order_detail(db, order_id)).products[0].id
    headers = world.headers(world.admin)

    routed = api.post(f"{API}/products/{product_id}/route", json={"route_option": "request_sample"}, headers=headers)
    assert routed.json()["product_status"] == "sample_requested"

    dated = api.put(f"{API}/products/{product_id}/ship-date", json={"estimated_ship_date": "2026-06-01"},
                    headers=headers)
    assert dated.json()["estimated_ship_date"] == "2026-06-01"

    blank = api.request("DELETE", f"{API}/products/{product_id}", json={"reason": " "}, headers=headers)
    assert blank.status_code == 422
    deleted = api.request("DELETE", f"{API}/products/{product_id}", json={"reason": "duplicate"}, headers=headers)
    assert deleted.status_code == 200
    assert api.post(f"{API}/products/{product_id}/route", json={"route_option": "request_sample"},
                    headers=headers).status_code == 404


def test_invoice_endpoints(api, run, world, email_client):
    order_id = run(lambda db: make_order(db, world, products=1))
    headers = world.headers(world.admin)

    products = api.get(f"{API}/orders/{order_id}/invoiceable-products", headers=headers).json()
    assert Decimal(products[0]["client_total"]) == Decimal("125.00")

    created = api.post(f"{API}/invoices/", json={"order_id": order_id, "product_ids": [products[0]["id"]]},
                       headers=headers)
    invoice = created.json()
    assert invoice["invoice_number"] == "ACM-00001"

    page = api.get(f"{API}/invoices/{invoice['id']}/download", headers=world.headers(world.client))
    assert page.headers["content-type"].startswith("text/html")
    assert "ACM-00001" in page.text

    sent = api.post(f"{API}/invoices/{invoice['id']}/send",
                    json={"recipientEmail": "ap@acme.test", "ccEmails": []}, headers=headers)
    assert sent.json()["emailId"] == "email-1"
    assert email_client.sent[0]["to"] == ["ap@acme.test"]

    api.post(f"{API}/invoices/{invoice['id']}/pdf", json={"pdfUrl": "https://files.test/i.pdf"}, headers=headers)
    redirect = api.get(f"{API}/invoices/{invoice['id']}/download", headers=headers, follow_redirects=False)
    assert redirect.headers["location"] == "https://files.test/i.pdf"

    assert api.get(f"{API}/invoices/", headers=world.headers(world.manufacturer)).status_code == 403
    voided = api.post(f"{API}/invoices/{invoice['id']}/void", json={"reason": "typo"}, headers=headers)
    assert voided.json()["status"] == "voided"


def test_email_endpoint_without_provider(api, world, run):
    from orderhub.main import app
    from orderhub.services.email import get_email_client

    order_id = run(lambda db: make_order(db, world, products=1))
    app.dependency_overrides[get_email_client] = lambda: FakeEmailClient(configured=False)
    response = api.post(f"{API}/email/send-to-client", json={"orderId": order_id}, headers=world.headers(world.admin))
    assert response.status_code == 500
    assert "not configured" in response.json()["detail"]


def test_email_endpoint_sends(api, world, run, email_client):
    order_id = run(lambda db: make_order(db, world, products=1))
    response = api.post(
        f"{API}/email/send-to-manufacturer",
        json={"orderId": order_id, "customMessage": "Please confirm", "showPricing": True},
        headers=world.headers(world.admin),
    )
    assert response.json()["recipient"] == "factory@sunrise.test"
    assert email_client.sent[0]["subject"].startswith("New Order: ")


def test_cleanup_requires_key_or_super_admin(api, world, monkeypatch):
    assert api.post(f"{API}/cleanup/old-drafts").status_code == 401
    assert api.post(f"{API}/cleanup/old-drafts", headers=world.headers(world.admin)).status_code == 401

    monkeypatch.setattr(settings, "CLEANUP_API_KEY", "cron-secret")
    ok = api.post(f"{API}/cleanup/old-drafts", headers={"Authorization": "Bearer cron-secret"})
    assert ok.status_code == 200
    assert ok.json()["deleted"] == 0

    count = api.get(f"{API}/cleanup/old-drafts", headers=world.headers(world.super_admin)).json()
    assert count["oldDraftCount"] == 0


def test_sample_margin_settings(api, world):
    headers = world.headers(world.admin)
    assert api.get(f"{API}/system/sample-margin", headers=headers).json()["source"] == "default"

    api.put(f"{API}/system/sample-margin", json={"margin_percentage": "55"}, headers=headers)
    current = api.get(f"{API}/system/sample-margin", headers=headers).json()
    assert Decimal(current["margin_percentage"]) == Decimal("55")
    assert current["source"] == "system"

    client = api.put(f"{API}/clients/{world.client_id}/sample-margin", json={"margin_percentage": "20"},
                     headers=headers).json()
    assert Decimal(client["effective_margin_percentage"]) == Decimal("20")
    cleared = api.put(f"{API}/clients/{world.client_id}/sample-margin", json={"margin_percentage": None},
                      headers=headers).json()
    assert Decimal(cleared["effective_margin_percentage"]) == Decimal("55")

    assert api.get(f"{API}/system/sample-margin", headers=world.headers(world.client)).status_code == 403


def test_audit_logs_and_notifications(api, run, world):
    order_id = run(lambda db: make_order(db, world, sample_fee=15, sample_status="pending"))
    api.post(f"{API}/orders/{order_id}/sample-routing", json={"destination": "manufacturer"},
             headers=world.headers(world.admin))

    logs = api.get(f"{API}/audit-logs/", params={"action_type": "sample_routed"},
                   headers=world.headers(world.admin)).json()
    assert logs["total"] == 1
    assert api.get(f"{API}/audit-logs/", params={"start_date": "03/01/2026"},
                   headers=world.headers(world.admin)).status_code == 400

    inbox = api.get(f"{API}/notifications/", headers=world.headers(world.manufacturer)).json()
    assert inbox["unread"] == 1
    read = api.post(f"{API}/notifications/{inbox['data'][0]['id']}/read", headers=world.headers(world.manufacturer))
    assert read.json()["is_read"] is True
    assert api.post(f"{API}/notifications/{inbox['data'][0]['id']}/read",
                    headers=world.headers(world.admin)).status_code == 404
