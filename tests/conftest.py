"""In-memory stand-in for the supabase-py client used by the gig pack library.

Supports the query-builder subset the app uses:
``table(name).select/insert/upsert/update/delete`` chained with
``eq/neq/in_/is_/order/limit`` and ``execute()``, plus ``rpc(name, params)``.
Rows are plain dicts; every insert gets a uuid id unless one is given.
"""

from __future__ import annotations

import copy
import threading
import uuid
from concurrent.futures import Future
from typing import Any, Callable, Dict, List, Optional

import pytest
from postgrest.exceptions import APIError

from gigpack import background

# (user_id, gig_id, type) unique on notifications; share tokens unique
UNIQUE = {
    "notifications": [("user_id", "gig_id", "type")],
    "gig_shares": [("token",)],
}

# parent table -> [(child table, fk column)]
CASCADES = {
    "gigs": [
        ("gig_roles", "gig_id"),
        ("gig_schedule_items", "gig_id"),
        ("gig_materials", "gig_id"),
        ("gig_packing_items", "gig_id"),
        ("gig_contacts", "gig_id"),
        ("setlist_sections", "gig_id"),
        ("gig_shares", "gig_id"),
    ],
    "setlist_sections": [("setlist_items", "section_id")],
}


class FakeResponse:
    def __init__(self, data):
        self.data = data
        self.count = len(data) if isinstance(data, list) else None


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.op = "select"
        self.payload: Any = None
        self.filters: List[tuple] = []
        self.order_by: List[tuple] = []
        self.limit_n: Optional[int] = None
        self.on_conflict = "id"
        self.ignore_duplicates = False

    # ---- operations ----
    def select(self, columns: str = "*", **_):
        self.op = "select"
        return self

    def insert(self, payload, **_):
        self.op, self.payload = "insert", payload
        return self

    def upsert(self, payload, on_conflict: str = "id", ignore_duplicates: bool = False, **_):
        self.op, self.payload, self.on_conflict = "upsert", payload, on_conflict
        self.ignore_duplicates = ignore_duplicates
        return self

    def update(self, payload, **_):
        self.op, self.payload = "update", payload
        return self

    def delete(self, **_):
        self.op = "delete"
        return self

    # ---- filters ----
    def eq(self, col, val):
        self.filters.append(("eq", col, val))
        return self

    def neq(self, col, val):
        self.filters.append(("neq", col, val))
        return self

    def in_(self, col, values):
        self.filters.append(("in", col, list(values)))
        return self

    def is_(self, col, val):
        self.filters.append(("is", col, val))
        return self

    def order(self, col, desc: bool = False, **_):
        self.order_by.append((col, desc))
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def _match(self, row: Dict[str, Any]) -> bool:
        for kind, col, val in self.filters:
            cur = row.get(col)
            if kind == "eq" and cur != val:
                return False
            if kind == "neq" and cur == val:
                return False
            if kind == "in" and cur not in val:
                return False
            if kind == "is" and val in ("null", None) and cur is not None:
                return False
        return True

    def execute(self) -> FakeResponse:
        with self.db.lock:
            self.db.calls.append((self.table_name, self.op, list(self.filters), copy.deepcopy(self.payload)))
            err = self.db.failures.get((self.table_name, self.op))
            if err is not None:
                raise err
            return FakeResponse(getattr(self, f"_do_{self.op}")())

    # ---- implementations ----
    def _rows(self) -> List[Dict[str, Any]]:
        return self.db.tables.setdefault(self.table_name, [])

    def _do_select(self):
        out = [copy.deepcopy(r) for r in self._rows() if self._match(r)]
        for col, desc in reversed(self.order_by):
            out.sort(key=lambda r: (r.get(col) is None, str(r.get(col) or "")), reverse=desc)
        if self.limit_n is not None:
            out = out[: self.limit_n]
        return out

    def _check_unique(self, row, existing):
        for cols in UNIQUE.get(self.table_name, []):
            key = tuple(row.get(c) for c in cols)
            for other in existing:
                if other is not row and other.get("id") != row.get("id") and tuple(other.get(c) for c in cols) == key:
                    raise APIError({
                        "code": "23505",
                        "message": f'duplicate key value violates unique constraint "{self.table_name}_{"_".join(cols)}_key"',
                    })

    def _do_insert(self):
        items = self.payload if isinstance(self.payload, list) else [self.payload]
        new_rows = []
        for item in items:
            row = copy.deepcopy(item)
            row.setdefault("id", str(uuid.uuid4()))
            self._check_unique(row, self._rows() + new_rows)
            new_rows.append(row)
        self._rows().extend(new_rows)
        return [copy.deepcopy(r) for r in new_rows]

    def _do_upsert(self):
        items = self.payload if isinstance(self.payload, list) else [self.payload]
        cols = [c.strip() for c in self.on_conflict.split(",")]
        out = []
        for item in items:
            key = tuple(item.get(c) for c in cols)
            existing = next(
                (r for r in self._rows() if None not in key and tuple(r.get(c) for c in cols) == key),
                None,
            )
            if existing is not None:
                # ON CONFLICT DO NOTHING returns only the rows it wrote
                if self.ignore_duplicates:
                    continue
                existing.update(copy.deepcopy(item))
                out.append(copy.deepcopy(existing))
            else:
                row = copy.deepcopy(item)
                row.setdefault("id", str(uuid.uuid4()))
                self._rows().append(row)
                out.append(copy.deepcopy(row))
        return out

    def _do_update(self):
        out = []
        for r in self._rows():
            if self._match(r):
                r.update(copy.deepcopy(self.payload))
                out.append(copy.deepcopy(r))
        return out

    def _do_delete(self):
        gone = [r for r in self._rows() if self._match(r)]
        self.db.tables[self.table_name] = [r for r in self._rows() if not self._match(r)]
        self.db._cascade(self.table_name, [r.get("id") for r in gone])
        return gone


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: Dict[str, Any]):
        self.db, self.name, self.params = db, name, params

    def execute(self) -> FakeResponse:
        with self.db.lock:
            self.db.calls.append(("rpc", self.name, [], copy.deepcopy(self.params)))
        err = self.db.failures.get(("rpc", self.name))
        if err is not None:
            raise err
        handler = self.db.rpc_handlers.get(self.name)
        if handler is None:
            raise APIError({"code": "PGRST202", "message": f"Could not find the function public.{self.name}"})
        return FakeResponse(handler(self.params))


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List[tuple] = []
        self.failures: Dict[tuple, Exception] = {}
        self.rpc_handlers: Dict[str, Callable[[Dict[str, Any]], Any]] = {}
        self.lock = threading.RLock()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Optional[Dict[str, Any]] = None) -> FakeRpc:
        return FakeRpc(self, name, params or {})

    def _cascade(self, table: str, ids: List[Any]) -> None:
        for child, fk in CASCADES.get(table, []):
            doomed = [r for r in self.tables.get(child, []) if r.get(fk) in ids]
            if doomed:
                self.tables[child] = [r for r in self.tables.get(child, []) if r.get(fk) not in ids]
                self._cascade(child, [r.get("id") for r in doomed])

    # ---- test helpers ----
    def seed(self, table: str, *rows: Dict[str, Any]) -> List[Dict[str, Any]]:
        out = []
        for r in rows:
            row = copy.deepcopy(r)
            row.setdefault("id", str(uuid.uuid4()))
            self.tables.setdefault(table, []).append(row)
            out.append(row)
        return out

    def rows(self, table: str, **where) -> List[Dict[str, Any]]:
        return [r for r in self.tables.get(table, []) if all(r.get(k) == v for k, v in where.items())]

    def ops(self, table: str, op: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == table and c[1] == op]


@pytest.fixture
def sb() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture(autouse=True)
def inline_background(monkeypatch):
    """Run fire-and-forget work inline; failures are collected, not raised."""
    errors: List[Exception] = []

    def _submit(func, *args, **kwargs):
        fut: Future = Future()
        try:
            fut.set_result(func(*args, **kwargs))
        except Exception as e:
            errors.append(e)
            fut.set_exception(e)
        return fut

    monkeypatch.setattr(background, "submit", _submit)
    return errors


@pytest.fixture(autouse=True)
def no_google(monkeypatch):
    """Calendar cleanup calls are recorded instead of hitting Google."""
    calls: List[tuple] = []

    def _cancel_roles(gig_id, emails, calendar_name=None):
        calls.append(("roles", gig_id, list(emails)))
        return {"action": "noop"}

    def _cancel_gig(gig_id, calendar_name=None):
        calls.append(("gig", gig_id))
        return {"action": "noop"}

    monkeypatch.setattr("gigpack.save.cancel_role_calendar_events", _cancel_roles)
    monkeypatch.setattr("gigpack.gigs.cancel_gig_calendar_events", _cancel_gig)
    return calls


@pytest.fixture
def owner_id() -> str:
    return "user-owner"
