from typing import Dict, Any, List, Optional
from datetime import date, datetime, timezone

from app.logger import get_logger
from app.preorder_flow import sort_menu_items

logger = get_logger(__name__)


TOKEN_SELECT = (
    "booking_id, expires_at, used, "
    "bookings (id, booking_reference, booking_date, booking_time, number_of_people, "
    "customers (customer_name, customer_email, customer_mobile))"
)

BOOKING_SELECT = (
    "id, created_at, booking_reference, booking_date, booking_time, table_numbers, "
    "number_of_people, channel, customers (customer_name, customer_email, customer_mobile)"
)

PREORDER_SELECT = (
    "id, name, order_mode, submitted_at, customer_notes, "
    "booking:bookings!booking_id (booking_date, booking_time, number_of_people, "
    "customers (customer_name))"
)


class DataAccessError(Exception):
    """A Supabase read failed; the message is safe to show to staff."""


def _error_message(e: Exception) -> str:
    if hasattr(e, "message") and e.message:
        return str(e.message)
    if hasattr(e, "details") and e.details:
        return str(e.details)
    return str(e)


def format_booking_date(day: date) -> str:
    """Bookings store their date as e.g. 'Friday, 3 October 2025'."""
    return f"{day:%A}, {day.day} {day:%B %Y}"


# --- ACCESS TOKENS ----------------------------------------------------------

def fetch_access_token(client, token: str) -> Optional[Dict[str, Any]]:
    """Token row with its booking and customer embedded, or None if unknown."""
    try:
        res = (
            client.table("access_tokens")
            .select(TOKEN_SELECT)
            .eq("token", token)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.error(f"Error fetching access token: {_error_message(e)}")
        raise DataAccessError("Could not verify the access token.") from e
    return res.data[0] if res.data else None


def fetch_booking_token(client, booking_id: str) -> Optional[str]:
    try:
        res = (
            client.table("access_tokens")
            .select("token")
            .eq("booking_id", booking_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.error(f"Error fetching token for booking {booking_id}: {_error_message(e)}")
        raise DataAccessError("Could not load the pre-order link.") from e
    return res.data[0]["token"] if res.data else None


def preorder_link(site_url: str, token: str) -> str:
    return f"{site_url.rstrip('/')}/?token={token}"


# --- MENU -------------------------------------------------------------------

def fetch_menu_items(client) -> List[Dict[str, Any]]:
    try:
        res = (
            client.table("menus")
            .select("*")
            .order("category")
            .order("name")
            .execute()
        )
    except Exception as e:
        logger.error(f"Error loading menu items: {_error_message(e)}")
        raise DataAccessError("Error loading menu items.") from e
    return sort_menu_items(res.data or [])


def create_menu_item(client, payload: Dict[str, Any]) -> Dict[str, Any]:
    try:
        client.table("menus").insert(payload).execute()
        logger.info(f"Added menu item {payload.get('name')!r}")
        return {"success": True, "error": None}
    except Exception as e:
        logger.error(f"Error adding menu item: {_error_message(e)}")
        return {"success": False, "error": "Error adding menu item."}


def update_menu_item(client, item_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    try:
        client.table("menus").update(payload).eq("id", item_id).execute()
        logger.info(f"Updated menu item {item_id}")
        return {"success": True, "error": None}
    except Exception as e:
        logger.error(f"Error updating menu item {item_id}: {_error_message(e)}")
        return {"success": False, "error": "Error updating menu item."}


def delete_menu_item(client, item_id: str) -> Dict[str, Any]:
    try:
        client.table("menus").delete().eq("id", item_id).execute()
        logger.info(f"Deleted menu item {item_id}")
        return {"success": True, "error": None}
    except Exception as e:
        logger.error(f"Error deleting menu item {item_id}: {_error_message(e)}")
        return {"success": False, "error": "Error deleting menu item."}


# --- BOOKINGS ---------------------------------------------------------------

def _flatten_booking(row: Dict[str, Any]) -> Dict[str, Any]:
    customer = row.get("customers") or {}
    return {
        "id": row.get("id"),
        "created_at": row.get("created_at"),
        "booking_reference": row.get("booking_reference"),
        "customer_name": customer.get("customer_name") or "Unknown",
        "customer_email": customer.get("customer_email") or "",
        "customer_mobile": customer.get("customer_mobile") or "",
        "booking_date": row.get("booking_date"),
        "booking_time": row.get("booking_time"),
        "table_numbers": row.get("table_numbers"),
        "number_of_people": row.get("number_of_people"),
        "channel": row.get("channel"),
    }


def fetch_bookings(client) -> List[Dict[str, Any]]:
    # booking_date is display text, so chronological sorting happens in
    # booking_ranges.sort_bookings
    try:
        res = (
            client.table("bookings")
            .select(BOOKING_SELECT)
            .order("created_at")
            .execute()
        )
    except Exception as e:
        logger.error(f"Error fetching bookings: {_error_message(e)}")
        raise DataAccessError("Error loading bookings.") from e
    return [_flatten_booking(b) for b in res.data or []]


def fetch_bookings_for_date(client, day: date) -> List[Dict[str, Any]]:
    try:
        res = (
            client.table("bookings")
            .select(BOOKING_SELECT)
            .eq("booking_date", format_booking_date(day))
            .order("booking_time")
            .execute()
        )
    except Exception as e:
        logger.error(f"Error fetching bookings for {day}: {_error_message(e)}")
        raise DataAccessError("Error loading bookings.") from e
    return [_flatten_booking(b) for b in res.data or []]


def fetch_preorder_booking_ids(client, booking_ids: List[str]) -> set:
    """Ids of the given bookings that already have a pre-order."""
    if not booking_ids:
        return set()
    try:
        res = (
            client.table("pre_orders")
            .select("booking_id")
            .in_("booking_id", booking_ids)
            .execute()
        )
    except Exception as e:
        # Status column degrades to "Not Sent"
        logger.error(f"Error fetching pre-orders: {_error_message(e)}")
        return set()
    return {row["booking_id"] for row in res.data or []}


# --- PRE-ORDERS -------------------------------------------------------------

def fetch_preorders(client) -> List[Dict[str, Any]]:
    try:
        res = (
            client.table("pre_orders")
            .select(PREORDER_SELECT)
            .order("submitted_at", desc=True)
            .execute()
        )
    except Exception as e:
        logger.error(f"Error loading pre-orders: {_error_message(e)}")
        raise DataAccessError("Error loading pre-orders.") from e

    results = []
    for row in res.data or []:
        booking = row.get("booking") or {}
        customer = booking.get("customers") or {}
        results.append({
            "id": row.get("id"),
            "name": row.get("name"),
            "order_mode": row.get("order_mode"),
            "submitted_at": row.get("submitted_at"),
            "customer_notes": row.get("customer_notes"),
            "booking_date": booking.get("booking_date"),
            "booking_time": booking.get("booking_time") or "",
            "number_of_people": booking.get("number_of_people"),
            "customer_name": customer.get("customer_name") or "Unknown",
        })
    return results


def fetch_preorder_items(client, preorder_ids: List[str]) -> Dict[str, List[Dict[str, Any]]]:
    """Item lines keyed by pre_order_id."""
    if not preorder_ids:
        return {}
    try:
        res = (
            client.table("pre_order_items")
            .select("pre_order_id, quantity, menus (name, price)")
            .in_("pre_order_id", preorder_ids)
            .execute()
        )
    except Exception as e:
        logger.error(f"Error loading pre-order items: {_error_message(e)}")
        raise DataAccessError("Error loading pre-order items.") from e

    items: Dict[str, List[Dict[str, Any]]] = {}
    for row in res.data or []:
        menu = row.get("menus") or {}
        items.setdefault(row["pre_order_id"], []).append({
            "name": menu.get("name") or "Unknown item",
            "price": menu.get("price"),
            "quantity": row.get("quantity") or 0,
        })
    return items


def submit_preorder(client, preorder: Dict[str, Any], items: List[Dict[str, Any]]) -> Dict[str, Any]:
    try:
        preorder_insert = client.table("pre_orders").insert(preorder).execute()
        if not preorder_insert.data:
            raise Exception("Failed to insert pre-order. No data returned.")
        preorder_id = preorder_insert.data[0]["id"]
    except Exception as e:
        logger.error(f"Error creating pre-order: {_error_message(e)}")
        return {"success": False, "preorder_id": None, "error": "Error submitting pre-order. Please try again."}

    try:
        rows = [{**item, "pre_order_id": preorder_id} for item in items]
        client.table("pre_order_items").insert(rows).execute()
    except Exception as e:
        logger.error(f"Error creating pre-order items for {preorder_id}: {_error_message(e)}")
        return {
            "success": False,
            "preorder_id": preorder_id,
            "error": "Error submitting pre-order items. Please try again.",
        }

    logger.info(f"Pre-order {preorder_id} submitted for booking {preorder['booking_id']} ({len(items)} lines)")
    return {"success": True, "preorder_id": preorder_id, "error": None}


# --- SETTINGS ---------------------------------------------------------------

def fetch_settings(client) -> Optional[Dict[str, Any]]:
    try:
        res = client.table("preorders_settings").select("*").limit(1).execute()
    except Exception as e:
        logger.error(f"Error fetching settings: {_error_message(e)}")
        raise DataAccessError("Error loading settings") from e
    return res.data[0] if res.data else None


def update_min_large_table_size(client, settings_id: str, size: int) -> Dict[str, Any]:
    if size < 1:
        return {"success": False, "error": "Minimum large table size must be at least 1."}
    try:
        (
            client.table("preorders_settings")
            .update({
                "min_large_table_size": size,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            })
            .eq("id", settings_id)
            .execute()
        )
        logger.info(f"min_large_table_size set to {size}")
        return {"success": True, "error": None}
    except Exception as e:
        logger.error(f"Error updating settings: {_error_message(e)}")
        return {"success": False, "error": "Error saving settings"}


# --- EMAIL FUNCTION HELPERS -------------------------------------------------

def fetch_customer(client, customer_id: str) -> Dict[str, Any]:
    try:
        res = (
            client.table("customers")
            .select("customer_name, customer_email")
            .eq("id", customer_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        raise DataAccessError(f"Failed to fetch customer: {_error_message(e)}") from e
    if not res.data:
        raise DataAccessError("Failed to fetch customer: not found")
    return res.data[0]


def append_email_log(client, booking_id: str, line: str) -> bool:
    """Best-effort append to bookings.email_log; failures are only logged."""
    try:
        res = client.table("bookings").select("email_log").eq("id", booking_id).limit(1).execute()
        current = (res.data[0].get("email_log") if res.data else None) or ""
        updated = f"{current}\n{line}" if current else line
        client.table("bookings").update({"email_log": updated}).eq("id", booking_id).execute()
        return True
    except Exception as e:
        logger.warning(f"Could not append email log for booking {booking_id}: {_error_message(e)}")
        return False
