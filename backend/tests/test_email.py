import pytest
import requests

from orderhub.core.errors import EmailDeliveryError, NotConfiguredError, NotFoundError, ValidationError
from orderhub.models.client import Client
from orderhub.services.email import EmailClient, send_order_email_to_client, send_order_email_to_manufacturer

from factories import FakeEmailClient, make_order


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = {} if payload is None else payload
        self.content = b"{}"

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Client Error")

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """替代 requests.Session，记录请求并返回预设响应"""

    def __init__(self, headers, respond):
        self.headers = headers
        self.respond = respond
        self.closed = False
        self.calls = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True

    def post(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        return self.respond()


def use_fake_sessions(monkeypatch, client, respond):
    sessions = []

    def new_session():
        session = FakeSession(dict(EmailClient.new_session(client).headers), respond)
        sessions.append(session)
        return session

    monkeypatch.setattr(client, "new_session", new_session)
    return sessions


def test_client_email_shows_client_prices_only(run, world):
    email = FakeEmailClient()

    async def scenario(db):
        order_id = await make_order(db, world, products=1)
        result = await send_order_email_to_client(
            db, email, order_id, custom_message="Samples ship <Friday>", show_pricing=True,
        )
        assert result["success"] and result["messageId"] == "email-1"
        assert result["recipient"] == "buyer@acme.test"

        sent = email.sent[0]
        assert sent["to"] == ["buyer@acme.test"]
        assert sent["subject"].startswith("Update on Order #ORD-TEST-")
        assert "$125.00" in sent["html"]
        assert "$7.00" not in sent["html"] and "$70.00" not in sent["html"]
        assert "Samples ship &lt;Friday&gt;" in sent["html"]

    run(scenario)


def test_manufacturer_email_shows_factory_prices_only(run, world):
    email = FakeEmailClient()

    async def scenario(db):
        order_id = await make_order(db, world, products=1)
        result = await send_order_email_to_manufacturer(db, email, order_id, show_pricing=True, subject="PO")
        assert result["recipient"] == "factory@sunrise.test"

        sent = email.sent[0]
        assert sent["subject"] == "PO"
        assert "$7.00" in sent["html"]
        assert "$12.50" not in sent["html"] and "$125.00" not in sent["html"]

    run(scenario)


def test_configuration_is_checked_before_lookup(run, world):
    async def scenario(db):
        with pytest.raises(NotConfiguredError):
            await send_order_email_to_client(db, FakeEmailClient(configured=False), 4242)
        with pytest.raises(NotFoundError, match="Order not found"):
            await send_order_email_to_client(db, FakeEmailClient(), 4242)

        order_id = await make_order(db, world, products=1)
        client = await db.get(Client, world.client_id)
        client.email = None
        await db.commit()
        with pytest.raises(ValidationError):
            await send_order_email_to_client(db, FakeEmailClient(), order_id)

    run(scenario)


def test_resend_request_and_failures(monkeypatch):
    client = EmailClient(api_key="re_123", from_email="orders@orderhub.test", from_name="OrderHub")

    sessions = use_fake_sessions(monkeypatch, client, lambda: FakeResponse(payload={"id": "msg_1"}))
    assert client.send(["a@b.test"], "Hi", "<p>x</p>", cc=["c@d.test"]) == {"id": "msg_1"}
    assert client.send(["e@f.test"], "Hi", "<p>y</p>") == {"id": "msg_1"}

    # 每次发送使用独立的会话，发送后关闭
    assert len(sessions) == 2 and sessions[0] is not sessions[1]
    assert all(s.closed for s in sessions)
    first = sessions[0]
    assert first.headers["Authorization"] == "Bearer re_123"
    assert first.headers["Content-Type"] == "application/json"
    assert first.calls[0]["json"]["from"] == "OrderHub <orders@orderhub.test>"
    assert first.calls[0]["json"]["cc"] == ["c@d.test"]

    use_fake_sessions(monkeypatch, client, lambda: FakeResponse(status_code=422))
    with pytest.raises(EmailDeliveryError):
        client.send(["a@b.test"], "Hi", "<p>x</p>")

    def offline():
        raise requests.exceptions.ConnectionError("connection refused")

    use_fake_sessions(monkeypatch, client, offline)
    with pytest.raises(EmailDeliveryError, match="connection refused"):
        client.send(["a@b.test"], "Hi", "<p>x</p>")

    with pytest.raises(NotConfiguredError):
        EmailClient(api_key="").send(["a@b.test"], "Hi", "<p>x</p>")


def test_unreadable_provider_response_is_a_delivery_error(monkeypatch):
    client = EmailClient(api_key="re_123")
    use_fake_sessions(monkeypatch, client, lambda: FakeResponse(payload=ValueError("Expecting value: line 1")))

    with pytest.raises(EmailDeliveryError, match="Expecting value"):
        client.send(["a@b.test"], "Hi", "<p>x</p>")
