from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, MutableMapping, Tuple

from email_validator import validate_email as _validate_email, EmailNotValidError


ORDER_MODES = ("group", "individual")

CATEGORY_ORDER = ["Starters", "Vegetables", "Meat", "Fish"]

CATEGORY_DISPLAY_NAMES = {
    "Starters": "Entrantes",
    "Vegetables": "Vegetales",
    "Meat": "Carnes",
    "Fish": "Pescados",
}

FALLBACK_CATEGORY = "Other"

TOKEN_MISSING = "No access token provided"
TOKEN_INVALID = "Invalid or expired access token"
TOKEN_EXPIRED = "Access token has expired"
TOKEN_USED = "This pre-order link has already been used"


class PreorderValidationError(ValueError):
    """Raised when a pre-order cannot be submitted as entered."""


@dataclass
class Booking:
    id: str
    booking_reference: str
    booking_date: str
    booking_time: str
    number_of_people: int
    customer_name: str
    customer_email: str
    customer_mobile: str

    @property
    def first_name(self) -> str:
        return self.customer_name.split(" ")[0] if self.customer_name else ""


@dataclass
class TokenCheck:
    ok: bool
    reason: Optional[str] = None
    booking: Optional[Booking] = None


@dataclass
class PreorderState:
    email_verified: bool = False
    order_mode: Optional[str] = None
    attendee_name: str = ""
    customer_notes: str = ""
    submitted: bool = False

    # staged = counter next to each dish, quantities = what goes in the order
    staged: Dict[str, int] = field(default_factory=dict)
    quantities: Dict[str, int] = field(default_factory=dict)

    def stage(self, item_id: str, delta: int) -> None:
        self.staged[item_id] = max(0, self.staged.get(item_id, 0) + delta)

    def add_staged(self, item_id: str) -> None:
        qty = self.staged.get(item_id, 0)
        if qty > 0:
            self.quantities[item_id] = self.quantities.get(item_id, 0) + qty
            self.staged[item_id] = 0

    def increment(self, item_id: str) -> None:
        self.quantities[item_id] = self.quantities.get(item_id, 0) + 1

    def decrement(self, item_id: str) -> None:
        self.quantities[item_id] = max(0, self.quantities.get(item_id, 0) - 1)

    def remove(self, item_id: str) -> None:
        self.quantities[item_id] = 0

    def selected_items(self) -> List[Tuple[str, int]]:
        return [(item_id, qty) for item_id, qty in self.quantities.items() if qty > 0]

    def mark_submitted(self) -> None:
        """Clear the order once it is saved; email verification survives."""
        self.submitted = True
        self.attendee_name = ""
        self.customer_notes = ""
        self.staged = {}
        self.quantities = {}

    def start_another_order(self) -> None:
        self.submitted = False
        self.order_mode = None


def state_for_token(store: MutableMapping[str, Any], token: str) -> PreorderState:
    """One PreorderState per access token in the given session store."""
    key = f"preorder_state_{token}"
    if key not in store:
        store[key] = PreorderState()
    return store[key]


# ----------------- ACCESS TOKENS ------------------------

def parse_timestamp(value: Any) -> datetime:
    """Parse a Supabase timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def booking_from_token_row(row: Dict[str, Any]) -> Booking:
    booking = row.get("bookings") or {}
    customer = booking.get("customers") or {}
    return Booking(
        id=booking.get("id") or row.get("booking_id"),
        booking_reference=booking.get("booking_reference") or "",
        booking_date=booking.get("booking_date") or "",
        booking_time=booking.get("booking_time") or "",
        number_of_people=int(booking.get("number_of_people") or 0),
        customer_name=customer.get("customer_name") or "",
        customer_email=customer.get("customer_email") or "",
        customer_mobile=customer.get("customer_mobile") or "",
    )


def check_access_token(row: Optional[Dict[str, Any]], now: Optional[datetime] = None) -> TokenCheck:
    """
    Decide whether a stored access token opens the pre-order form.

    `row` is the access_tokens row (with the embedded booking) or None when
    the token is unknown.
    """
    if not row or not row.get("bookings"):
        return TokenCheck(ok=False, reason=TOKEN_INVALID)

    try:
        expires_at = parse_timestamp(row["expires_at"])
    except (KeyError, TypeError, ValueError):
        return TokenCheck(ok=False, reason=TOKEN_INVALID)

    now = now or datetime.now(timezone.utc)
    if now > expires_at:
        return TokenCheck(ok=False, reason=TOKEN_EXPIRED)

    if row.get("used"):
        return TokenCheck(ok=False, reason=TOKEN_USED)

    return TokenCheck(ok=True, booking=booking_from_token_row(row))


def verify_booking_email(entered: str, booking_email: str) -> bool:
    if not entered or not entered.strip() or not booking_email:
        return False
    return entered.strip().lower() == booking_email.strip().lower()


def is_valid_email(email: str) -> bool:
    try:
        _validate_email(email, check_deliverability=False)
        return True
    except EmailNotValidError:
        return False


# ----------------- MENU ORDERING ------------------------

def category_sort_key(category: Optional[str]) -> Tuple[int, int, str]:
    category = category or FALLBACK_CATEGORY
    if category in CATEGORY_ORDER:
        return (0, CATEGORY_ORDER.index(category), "")
    return (1, 0, category.lower())


def sort_menu_items(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(
        items,
        key=lambda item: (category_sort_key(item.get("category")), (item.get("name") or "").lower()),
    )


def group_menu_by_category(items: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """Group menu items by category; keys come out in display order."""
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for item in sort_menu_items(items):
        grouped.setdefault(item.get("category") or FALLBACK_CATEGORY, []).append(item)
    return grouped


def category_label(category: str) -> str:
    return CATEGORY_DISPLAY_NAMES.get(category, category)


# ----------------- SUBMISSION ------------------------

def build_preorder(state: PreorderState, booking: Booking) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    """Return the pre_orders row and its item rows (without pre_order_id)."""
    if state.order_mode not in ORDER_MODES:
        raise PreorderValidationError("Please choose how you would like to place your pre-order.")

    selected = state.selected_items()
    if not selected:
        raise PreorderValidationError("Please select at least one item from the menu.")

    if state.order_mode == "individual":
        name = state.attendee_name.strip()
        if not name:
            raise PreorderValidationError("Please enter your name.")
    else:
        name = booking.customer_name

    preorder = {
        "booking_id": booking.id,
        "name": name,
        "order_mode": state.order_mode,
        "customer_notes": state.customer_notes.strip() or None,
    }
    items = [
        {"attendee_id": None, "menu_item_id": item_id, "quantity": qty}
        for item_id, qty in selected
    ]
    return preorder, items


def selection_total(quantities: Dict[str, int], menu_by_id: Dict[str, Dict[str, Any]]) -> float:
    total = 0.0
    for item_id, qty in quantities.items():
        price = (menu_by_id.get(item_id) or {}).get("price")
        if qty > 0 and price is not None:
            total += float(price) * qty
    return total


def format_price(amount: Optional[float]) -> str:
    return f"${float(amount):.2f}" if amount is not None else ""
