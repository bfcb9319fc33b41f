"""Pytest configuration and shared fixtures.

Supabase is replaced by an in-memory query builder that understands the
subset of the PostgREST client API the app uses (select/insert/update/delete,
eq, in_, order, limit, execute). Embedded relations are stored pre-joined in
the rows.
"""

import copy
import itertools
from typing import Any, Dict, List, Optional

import pytest


class FakeResponse:
    def __init__(self, data: List[Dict[str, Any]]):
        self.data = data


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self._db = db
        self._table = table
        self._op = "select"
        self._payload: Any = None
        self._filters = []
        self._orders = []
        self._limit: Optional[int] = None

    # --- builders ---
    def select(self, columns: str = "*"):
        self._op = "select"
        return self

    def insert(self, payload):
        self._op = "insert"
        self._payload = payload
        return self

    def update(self, payload):
        self._op = "update"
        self._payload = payload
        return self

    def delete(self):
        self._op = "delete"
        return self

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self._filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc=False):
        self._orders.append((column, desc))
        return self

    def limit(self, count):
        self._limit = count
        return self

    # --- execution ---
    def _matches(self, row):
        return all(f(row) for f in self._filters)

    def execute(self):
        self._db.calls.append((self._table, self._op, copy.deepcopy(self._payload)))
        if self._table in self._db.failing_tables:
            raise Exception(f"relation {self._table} unavailable")

        rows = self._db.tables.setdefault(self._table, [])

        if self._op == "select":
            result = [row for row in rows if self._matches(row)]
            for column, desc in reversed(self._orders):
                result.sort(key=lambda r: (r.get(column) is None, str(r.get(column))), reverse=desc)
            if self._limit is not None:
                result = result[: self._limit]
            return FakeResponse(copy.deepcopy(result))

        if self._op == "insert":
            payload = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = []
            for row in payload:
                row = dict(row)
                row.setdefault("id", f"{self._table}-{next(self._db.ids)}")
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return FakeResponse(inserted)

        if self._op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self._payload)
                    updated.append(copy.deepcopy(row))
            return FakeResponse(updated)

        if self._op == "delete":
            removed = [row for row in rows if self._matches(row)]
            self._db.tables[self._table] = [row for row in rows if not self._matches(row)]
            return FakeResponse(removed)

        raise AssertionError(f"unsupported op {self._op}")


class FakeSupabase:
    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables = copy.deepcopy(tables or {})
        self.failing_tables = set()
        self.calls = []
        self.ids = itertools.count(1)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def ops(self, table: str) -> List[str]:
        return [op for t, op, _ in self.calls if t == table]


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def booking_row() -> Dict[str, Any]:
    return {
        "id": "book-1",
        "booking_reference": "LT-1042",
        "booking_date": "Friday, 3 October 2025",
        "booking_time": "20:30:00",
        "number_of_people": 8,
        "customers": {
            "customer_name": "Ana Garcia Lopez",
            "customer_email": "Ana.Garcia@gmail.com",
            "customer_mobile": "+44 7700 900123",
        },
    }


@pytest.fixture
def token_row(booking_row) -> Dict[str, Any]:
    return {
        "token": "tok-123",
        "booking_id": "book-1",
        "expires_at": "2025-10-03T23:59:00+00:00",
        "used": False,
        "bookings": booking_row,
    }


@pytest.fixture
def menu_rows() -> List[Dict[str, Any]]:
    return [
        {"id": "m-1", "name": "Pulpo a la gallega", "description": None, "price": 14.5, "category": "Fish"},
        {"id": "m-2", "name": "Croquetas", "description": "Ham croquettes", "price": 7.0, "category": "Starters"},
        {"id": "m-3", "name": "Tarta de queso", "description": None, "price": 6.5, "category": "Desserts"},
        {"id": "m-4", "name": "Chorizo al vino", "description": None, "price": 8.0, "category": "Meat"},
        {"id": "m-5", "name": "Patatas bravas", "description": None, "price": 5.5, "category": "Vegetables"},
        {"id": "m-6", "name": "Aceitunas", "description": None, "price": 3.0, "category": "Starters"},
        {"id": "m-7", "name": "Cava", "description": None, "price": None, "category": "Drinks"},
    ]


@pytest.fixture
def fake_supabase(token_row, menu_rows) -> FakeSupabase:
    return FakeSupabase({
        "access_tokens": [token_row],
        "menus": menu_rows,
        "customers": [
            {"id": "cust-1", "customer_name": "Ana Garcia Lopez", "customer_email": "ana.garcia@gmail.com"},
        ],
        "bookings": [{"id": "book-1", "booking_reference": "LT-1042", "email_log": None}],
        "preorders_settings": [
            {"id": "set-1", "min_large_table_size": 6, "updated_at": "2025-09-01T10:00:00+00:00"},
        ],
        "pre_orders": [],
        "pre_order_items": [],
    })
