"""
Send Preorder Email - FastAPI webhook

Called by the Supabase database webhook on INSERT into bookings with
{"record": {booking_reference, customer_id, id, number_of_people}}.
Emails the customer a tokenized link to the pre-order form through the
Resend API.

Run locally with:
    uvicorn functions.send_preorder_email:api --port 8001
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from jinja2 import BaseLoader, Environment, select_autoescape
from starlette.concurrency import run_in_threadpool

from app.config import FunctionConfig, load_function_config, validate_email_settings
from app.logger import get_logger
from app.preorder_flow import is_valid_email
from app.supabase_tools import (
    append_email_log,
    fetch_booking_token,
    fetch_customer,
    fetch_settings,
    preorder_link,
)
from db.database import create_service_client
from functions.rate_limiter import RateLimiter

logger = get_logger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"

SKIPPED_RATE_LIMIT = "Email skipped due to rate limit"
SKIPPED_SMALL_BOOKING = "Email skipped: booking below minimum group size"

EMAIL_TEMPLATE = """\
<p>Hello{% if first_name %} {{ first_name }}{% endif %},</p>
<p>Thank you for your booking {{ booking_reference }} at {{ restaurant_name }} for {{ number_of_people }} people.</p>
<p>To place your pre-order, please follow this link:</p>
<p><a href="{{ preorder_url }}">{{ preorder_url }}</a></p>
<p>Thank you!</p>
"""

_jinja_env = Environment(
    loader=BaseLoader(),
    autoescape=select_autoescape(default_for_string=True, default=True),
)

_rate_limiter: Optional[RateLimiter] = None


class EmailDispatchError(Exception):
    """The webhook payload or one of the downstream calls failed."""


# ---------------------- DEPENDENCIES ----------------------

def get_config() -> FunctionConfig:
    return load_function_config()


def get_client_factory() -> Callable[[str, str], Any]:
    return create_service_client


def get_http_client():
    with httpx.Client(timeout=10.0) as client:
        yield client


def get_rate_limiter(cfg: FunctionConfig = Depends(get_config)) -> RateLimiter:
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter(window_seconds=cfg.rate_limit_window_seconds)
    return _rate_limiter


# ---------------------- CORE ----------------------

def render_preorder_email(
    restaurant_name: str,
    preorder_url: str,
    booking_reference: str,
    number_of_people: Any,
    customer_name: str = "",
) -> str:
    template = _jinja_env.from_string(EMAIL_TEMPLATE)
    return template.render(
        first_name=customer_name.split(" ")[0] if customer_name else "",
        restaurant_name=restaurant_name,
        preorder_url=preorder_url,
        booking_reference=booking_reference,
        number_of_people=number_of_people,
    )


def min_large_table_size(client, default: int) -> int:
    settings = fetch_settings(client)
    if settings and settings.get("min_large_table_size"):
        return int(settings["min_large_table_size"])
    return default


def send_email(http: httpx.Client, cfg: FunctionConfig, to_email: str, subject: str, html: str) -> None:
    response = http.post(
        RESEND_API_URL,
        headers={
            "Authorization": f"Bearer {cfg.resend_api_key}",
            "Content-Type": "application/json",
        },
        json={
            "from": cfg.email_from,
            "to": [to_email],
            "subject": subject,
            "html": html,
        },
    )
    if not response.is_success:
        raise EmailDispatchError(f"Resend API error: {response.text}")


def dispatch_preorder_email(
    payload: Dict[str, Any],
    cfg: FunctionConfig,
    client_factory: Callable[[str, str], Any],
    http: httpx.Client,
    limiter: RateLimiter,
) -> Dict[str, Any]:
    """Handle one webhook payload; raises on any failure."""
    record = (payload or {}).get("record")
    if not record:
        raise EmailDispatchError("No record in payload")

    booking_reference = record.get("booking_reference")
    customer_id = record.get("customer_id")
    booking_id = record.get("id")
    if not booking_reference or not customer_id:
        raise EmailDispatchError("Missing booking_reference or customer_id")

    validate_email_settings(cfg)

    client = client_factory(cfg.supabase_url, cfg.supabase_service_key)

    number_of_people = int(record.get("number_of_people") or 0)
    minimum = min_large_table_size(client, cfg.default_min_large_table_size)
    if number_of_people < minimum:
        logger.info(
            f"Booking {booking_reference} has {number_of_people} people (minimum {minimum}), email skipped"
        )
        return {"success": True, "message": SKIPPED_SMALL_BOOKING}

    rate_limit_key = f"email_{customer_id}"
    if not limiter.try_acquire(rate_limit_key):
        logger.info(f"Rate limit exceeded for customer: {customer_id}")
        return {"success": True, "message": SKIPPED_RATE_LIMIT}

    try:
        customer_email = _send_preorder_email(client, cfg, http, record, customer_id)
    except Exception:
        # only a delivered email counts against the window
        limiter.release(rate_limit_key)
        raise

    logger.info(f"Email sent successfully to {customer_email} for booking {booking_reference}")
    append_email_log(
        client,
        booking_id,
        f"{datetime.now(timezone.utc).isoformat()} pre-order email sent to {customer_email}",
    )
    return {"success": True}


def _send_preorder_email(client, cfg: FunctionConfig, http: httpx.Client, record: Dict[str, Any], customer_id: str) -> str:
    """Look up the recipient and token, render and send. Returns the address used."""
    booking_reference = record.get("booking_reference")
    booking_id = record.get("id")
    number_of_people = int(record.get("number_of_people") or 0)

    customer = fetch_customer(client, customer_id)
    customer_email = (customer.get("customer_email") or "").strip()
    if not is_valid_email(customer_email):
        raise EmailDispatchError("Invalid customer email format")

    if not booking_id:
        raise EmailDispatchError("Missing booking id")
    token = fetch_booking_token(client, booking_id)
    if not token:
        raise EmailDispatchError(f"No access token for booking {booking_reference}")

    url = preorder_link(cfg.site_url, token)
    html = render_preorder_email(
        restaurant_name=cfg.restaurant_name,
        preorder_url=url,
        booking_reference=booking_reference,
        number_of_people=number_of_people,
        customer_name=customer.get("customer_name") or "",
    )
    send_email(http, cfg, customer_email, f"Your pre-order link for {cfg.restaurant_name}", html)
    return customer_email


# ---------------------- APP ----------------------

api = FastAPI(title="send-preorder-email")


@api.post("/")
async def send_preorder_email(
    request: Request,
    cfg: FunctionConfig = Depends(get_config),
    client_factory: Callable[[str, str], Any] = Depends(get_client_factory),
    http: httpx.Client = Depends(get_http_client),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    try:
        payload = await request.json()
        result = await run_in_threadpool(
            dispatch_preorder_email, payload, cfg, client_factory, http, limiter
        )
        return JSONResponse(result)
    except Exception as e:
        logger.error(f"Error in send-preorder-email: {e}")
        return JSONResponse({"error": str(e)}, status_code=500)
