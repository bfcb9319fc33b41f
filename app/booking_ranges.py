from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional, Dict, Any, List, Tuple
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta


ALL_TIME_START = date(2024, 1, 1)
BOOKING_DATE_FORMAT = "%A, %d %B %Y"

DateRange = Tuple[Optional[date], Optional[date]]


def today_in(tz_name: str) -> date:
    return datetime.now(ZoneInfo(tz_name)).date()


# ----------------- CALENDAR HELPERS ------------------------

def start_of_week(day: date) -> date:
    # Weeks run Sunday to Saturday
    return day - timedelta(days=(day.weekday() + 1) % 7)


def end_of_week(day: date) -> date:
    return start_of_week(day) + timedelta(days=6)


def start_of_month(day: date) -> date:
    return day.replace(day=1)


def end_of_month(day: date) -> date:
    return day + relativedelta(day=31)


def ordinal(n: int) -> str:
    if 11 <= n % 100 <= 13:
        return f"{n}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def format_long_date(day: date) -> str:
    """October 3rd, 2025"""
    return f"{day:%B} {ordinal(day.day)}, {day.year}"


def format_short_date(day: date) -> str:
    """Oct 03"""
    return f"{day:%b %d}"


# ----------------- PRESETS ------------------------

def static_ranges(today: date) -> Dict[str, Tuple[date, date]]:
    return {
        "This Week": (start_of_week(today), end_of_week(today)),
        "Next Week": (
            start_of_week(today + timedelta(weeks=1)),
            end_of_week(today + timedelta(weeks=1)),
        ),
        "This Month": (start_of_month(today), end_of_month(today)),
        "Next Month": (
            start_of_month(today + relativedelta(months=1)),
            end_of_month(today + relativedelta(months=1)),
        ),
        "Next 3 Months": (today, end_of_month(today + relativedelta(months=3))),
        "Next 6 Months": (today, end_of_month(today + relativedelta(months=6))),
        "This Year": (date(today.year, 1, 1), date(today.year, 12, 31)),
        "All time": (ALL_TIME_START, today),
    }


def quick_days(today: date, count: int = 6) -> List[Tuple[str, date]]:
    days = []
    for i in range(count):
        day = today + timedelta(days=i)
        if i == 0:
            label = "Today"
        elif i == 1:
            label = "Tomorrow"
        else:
            label = f"{day:%A}"
        days.append((label, day))
    return days


def matching_preset(start: date, end: date, today: date) -> Optional[str]:
    for label, (preset_start, preset_end) in static_ranges(today).items():
        if (preset_start, preset_end) == (start, end):
            return label
    return None


def range_title(start: Optional[date], end: Optional[date], today: date) -> str:
    if start is None:
        return "All Bookings"
    end = end or start

    label = matching_preset(start, end, today)
    if label:
        return f"Bookings of {label}"
    if start == end:
        return f"Bookings for {format_long_date(start)}"
    return f"Bookings from {format_long_date(start)} to {format_long_date(end)}"


# ----------------- FILTERING ------------------------

def parse_booking_date(value: Optional[str]) -> Optional[date]:
    """Parse the stored booking date, e.g. 'Friday, 3 October 2025'."""
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), BOOKING_DATE_FORMAT).date()
    except ValueError:
        return None


def sort_bookings(bookings: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Chronological by date then time; unparseable dates go last."""
    def key(booking):
        booking_day = parse_booking_date(booking.get("booking_date"))
        return (booking_day is None, booking_day or date.max, booking.get("booking_time") or "")

    return sorted(bookings, key=key)


def filter_bookings_by_range(
    bookings: List[Dict[str, Any]], start: Optional[date], end: Optional[date]
) -> List[Dict[str, Any]]:
    """Bookings inside [start, end], in chronological order."""
    if start is None:
        return sort_bookings(bookings)
    end = end or start

    results = []
    for booking in bookings:
        booking_day = parse_booking_date(booking.get("booking_date"))
        if booking_day is not None and start <= booking_day <= end:
            results.append(booking)
    return sort_bookings(results)
