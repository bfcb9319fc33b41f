"""
Tests for the send-preorder-email webhook.

The Supabase client is the in-memory fake from conftest, the Resend API is
served by httpx.MockTransport, and the endpoint is called through FastAPI's
TestClient.
"""

import json
import threading

import httpx
import pytest
from fastapi.testclient import TestClient

from app.config import FunctionConfig
from functions.rate_limiter import RateLimiter
from functions.send_preorder_email import (
    SKIPPED_RATE_LIMIT,
    SKIPPED_SMALL_BOOKING,
    api,
    dispatch_preorder_email,
    get_client_factory,
    get_config,
    get_http_client,
    get_rate_limiter,
    render_preorder_email,
)


def make_config(**overrides) -> FunctionConfig:
    values = dict(
        supabase_url="https://project.supabase.co",
        supabase_service_key="service-key",
        resend_api_key="re_test_123",
        site_url="https://preorders.latabernaleeds.com",
    )
    values.update(overrides)
    return FunctionConfig(**values)


class ResendStub:
    """Records outgoing requests and answers with a fixed status."""

    def __init__(self, status_code: int = 200, body: str = '{"id": "email-1"}'):
        self.status_code = status_code
        self.body = body
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, text=self.body)


@pytest.fixture
def resend():
    return ResendStub()


@pytest.fixture
def limiter():
    return RateLimiter(window_seconds=300)


@pytest.fixture
def cfg():
    return make_config()


@pytest.fixture
def client(fake_supabase, resend, limiter, cfg):
    api.dependency_overrides[get_config] = lambda: cfg
    api.dependency_overrides[get_client_factory] = lambda: (lambda url, key: fake_supabase)
    api.dependency_overrides[get_http_client] = lambda: httpx.Client(transport=httpx.MockTransport(resend))
    api.dependency_overrides[get_rate_limiter] = lambda: limiter
    yield TestClient(api)
    api.dependency_overrides.clear()


def webhook(**record):
    body = {
        "booking_reference": "LT-1042",
        "customer_id": "cust-1",
        "id": "book-1",
        "number_of_people": 8,
    }
    body.update(record)
    return {"record": body}


# ============================================================================
# HAPPY PATH
# ============================================================================


def test_sends_email_with_tokenized_link(client, resend, fake_supabase):
    response = client.post("/", json=webhook())

    assert response.status_code == 200
    assert response.json() == {"success": True}

    assert len(resend.requests) == 1
    sent = resend.requests[0]
    assert str(sent.url) == "https://api.resend.com/emails"
    assert sent.headers["Authorization"] == "Bearer re_test_123"

    body = json.loads(sent.content)
    assert body["to"] == ["ana.garcia@gmail.com"]
    assert body["from"] == "La Taberna <noreply@latabernaleeds.com>"
    assert "https://preorders.latabernaleeds.com/?token=tok-123" in body["html"]
    assert "Hello Ana," in body["html"]


def test_appends_to_booking_email_log(client, fake_supabase):
    client.post("/", json=webhook())

    log = fake_supabase.tables["bookings"][0]["email_log"]
    assert log.endswith("pre-order email sent to ana.garcia@gmail.com")


def test_email_log_failure_does_not_fail_request(client, fake_supabase, resend):
    fake_supabase.failing_tables.add("bookings")

    response = client.post("/", json=webhook())

    assert response.status_code == 200
    assert len(resend.requests) == 1


# ============================================================================
# SUPPRESSION
# ============================================================================


def test_booking_below_minimum_size_is_skipped(client, resend):
    response = client.post("/", json=webhook(number_of_people=5))

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": SKIPPED_SMALL_BOOKING}
    assert resend.requests == []


def test_minimum_size_follows_settings_row(client, resend, fake_supabase):
    fake_supabase.tables["preorders_settings"][0]["min_large_table_size"] = 10

    response = client.post("/", json=webhook(number_of_people=8))

    assert response.json()["message"] == SKIPPED_SMALL_BOOKING
    assert resend.requests == []


def test_minimum_size_falls_back_to_default_without_settings(client, resend, fake_supabase):
    fake_supabase.tables["preorders_settings"] = []

    assert client.post("/", json=webhook(number_of_people=5)).json()["message"] == SKIPPED_SMALL_BOOKING
    assert client.post("/", json=webhook(number_of_people=6)).json() == {"success": True}


def test_second_email_to_same_customer_is_rate_limited(client, resend):
    first = client.post("/", json=webhook())
    second = client.post("/", json=webhook(id="book-2", booking_reference="LT-1043"))

    assert first.json() == {"success": True}
    assert second.status_code == 200
    assert second.json() == {"success": True, "message": SKIPPED_RATE_LIMIT}
    assert len(resend.requests) == 1


def test_failed_send_does_not_consume_rate_limit(client, resend):
    resend.status_code = 422
    resend.body = "validation_error"

    failed = client.post("/", json=webhook())
    resend.status_code = 200
    retried = client.post("/", json=webhook())

    assert failed.status_code == 500
    assert failed.json() == {"error": "Resend API error: validation_error"}
    assert retried.json() == {"success": True}


def test_simultaneous_webhooks_for_same_customer_send_once(fake_supabase, limiter, cfg):
    in_flight = threading.Event()
    proceed = threading.Event()
    sent = []

    def slow_resend(request):
        sent.append(request)
        in_flight.set()
        proceed.wait(timeout=5)
        return httpx.Response(200, text='{"id": "email-1"}')

    http = httpx.Client(transport=httpx.MockTransport(slow_resend))
    factory = lambda url, key: fake_supabase
    results = {}

    def first_webhook():
        results["first"] = dispatch_preorder_email(webhook(), cfg, factory, http, limiter)

    first = threading.Thread(target=first_webhook)
    first.start()
    assert in_flight.wait(timeout=5)

    # the first send is still waiting on the provider
    results["second"] = dispatch_preorder_email(
        webhook(id="book-2", booking_reference="LT-1043"), cfg, factory, http, limiter
    )
    proceed.set()
    first.join(timeout=5)

    assert results == {
        "first": {"success": True},
        "second": {"success": True, "message": SKIPPED_RATE_LIMIT},
    }
    assert len(sent) == 1


def test_lookup_failure_does_not_consume_rate_limit(client, fake_supabase, limiter):
    fake_supabase.tables["access_tokens"] = []

    assert client.post("/", json=webhook()).status_code == 500
    assert not limiter.is_limited("email_cust-1")


# ============================================================================
# FAILURES
# ============================================================================


@pytest.mark.parametrize(
    "payload, message",
    [
        ({}, "No record in payload"),
        ({"record": {"customer_id": "cust-1"}}, "Missing booking_reference or customer_id"),
        ({"record": {"booking_reference": "LT-1042"}}, "Missing booking_reference or customer_id"),
    ],
)
def test_malformed_payload_returns_500(client, payload, message):
    response = client.post("/", json=payload)

    assert response.status_code == 500
    assert response.json() == {"error": message}


def test_non_json_body_returns_500(client):
    response = client.post("/", content=b"not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 500
    assert "error" in response.json()


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"resend_api_key": ""}, "RESEND_API_KEY not set"),
        ({"resend_api_key": "sk_live_abc"}, "Invalid RESEND_API_KEY format"),
        ({"site_url": "http://latabernaleeds.com"}, "SITE_URL must use HTTPS"),
    ],
)
def test_invalid_email_settings_return_500(client, resend, cfg, overrides, message):
    for field, value in overrides.items():
        setattr(cfg, field, value)

    response = client.post("/", json=webhook())

    assert response.status_code == 500
    assert response.json() == {"error": message}
    assert resend.requests == []


def test_unknown_customer_returns_500(client, resend):
    response = client.post("/", json=webhook(customer_id="cust-404"))

    assert response.status_code == 500
    assert response.json()["error"].startswith("Failed to fetch customer")
    assert resend.requests == []


def test_invalid_customer_email_returns_500(client, fake_supabase):
    fake_supabase.tables["customers"][0]["customer_email"] = "not-an-email"

    response = client.post("/", json=webhook())

    assert response.status_code == 500
    assert response.json() == {"error": "Invalid customer email format"}


def test_missing_access_token_returns_500(client, fake_supabase, resend):
    fake_supabase.tables["access_tokens"] = []

    response = client.post("/", json=webhook())

    assert response.status_code == 500
    assert response.json() == {"error": "No access token for booking LT-1042"}
    assert resend.requests == []


def test_database_failure_returns_500(client, fake_supabase):
    fake_supabase.failing_tables.add("preorders_settings")

    response = client.post("/", json=webhook())

    assert response.status_code == 500
    assert "error" in response.json()


# ============================================================================
# TEMPLATE
# ============================================================================


def test_template_escapes_customer_name():
    html = render_preorder_email(
        restaurant_name="La Taberna",
        preorder_url="https://latabernaleeds.com/?token=abc",
        booking_reference="LT-1",
        number_of_people=6,
        customer_name="<b>Eve</b> Smith",
    )

    assert "&lt;b&gt;Eve&lt;/b&gt;" in html
    assert "<b>" not in html


def test_template_without_name_uses_plain_greeting():
    html = render_preorder_email("La Taberna", "https://latabernaleeds.com/?token=abc", "LT-1", 6)

    assert "<p>Hello,</p>" in html
