from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pytest
from postgrest.exceptions import APIError

from app.core.errors import DataStoreError
from app.schemas.attendance import AttendanceRecord, Student
from app.schemas.calendar import CalendarEvent
from app.services.attendance import AttendanceService

MONDAY = datetime(2024, 5, 13, 10, 0, tzinfo=timezone.utc)
PROFESSOR_UID = "prof-uid-1"
ADMIN_UID = "admin-uid-1"


class FixedClock:
    """UTC doubles as the school's wall clock in tests."""

    def __init__(self, now: datetime):
        self._now = now

    def now(self) -> datetime:
        return self._now

    def today(self) -> date:
        return self._now.date()

    def local_time(self, moment: datetime) -> str:
        return moment.strftime("%H:%M")

    def advance(self, **kwargs) -> None:
        self._now = self._now + timedelta(**kwargs)

    def set(self, now: datetime) -> None:
        self._now = now


class InMemoryStore:
    def __init__(self, students=None, events=None):
        self.students: list[Student] = list(students or [])
        self.events: list[CalendarEvent] = list(events or [])
        self.records: dict[tuple[int, date], AttendanceRecord] = {}
        self.upsert_calls = 0
        self.events_error: Optional[Exception] = None

    def list_active_students(self, turma_id: int):
        items = [s for s in self.students if s.turma_id == turma_id and s.status == "ativo"]
        return sorted(items, key=lambda s: s.nome_completo)

    def list_attendance(self, turma_id: int, data: date):
        return [r for (_, d), r in self.records.items() if d == data and r.turma_id == turma_id]

    def list_calendar_events(self):
        if self.events_error:
            raise self.events_error
        return list(self.events)

    def upsert_attendance(self, records):
        self.upsert_calls += 1
        for r in records:
            self.records[(r.aluno_id, r.data)] = r.model_copy()

    def snapshot(self) -> dict:
        return {k: v.model_dump() for k, v in self.records.items()}


class RecordingAudit:
    def __init__(self):
        self.entries = []

    def log(self, actor, action, entity, entity_id=None, details=None):
        self.entries.append({
            "actor": actor,
            "action": action,
            "entity": entity,
            "entity_id": entity_id,
            "details": details,
        })


def make_event(**kwargs) -> CalendarEvent:
    return CalendarEvent.model_validate(kwargs)


@pytest.fixture
def clock():
    return FixedClock(MONDAY)


@pytest.fixture
def store():
    return InMemoryStore(students=[
        Student(id=1, nome_completo="Ana Souza", turma_id=1),
        Student(id=2, nome_completo="Bruno Lima", turma_id=1),
        Student(id=3, nome_completo="Carla Dias", turma_id=1, status="inativo"),
        Student(id=4, nome_completo="Davi Rocha", turma_id=2),
    ])


@pytest.fixture
def audit():
    return RecordingAudit()


@pytest.fixture
def service(store, clock, audit):
    return AttendanceService(store, clock, audit)


@pytest.fixture
def store_error():
    return DataStoreError("Operação falhou: connection reset")


# ---------------------------------------------------------------------------
# Supabase client double for router and store tests
# ---------------------------------------------------------------------------
class FakeResult:
    def __init__(self, data=None, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    """Chainable stand-in for a supabase query builder; records every call."""

    def __init__(self, db, table, op, payload=None, **options):
        self.db = db
        self.table = table
        self.op = op
        self.payload = payload
        self.options = options
        self.filters = []

    def __getattr__(self, name):
        def chain(*args, **kwargs):
            self.filters.append((name, *args))
            return self
        return chain

    def has(self, *filter_call) -> bool:
        return tuple(filter_call) in self.filters

    def execute(self):
        self.db.calls.append(self)
        error = self.db.errors.get((self.table, self.op))
        if error:
            raise error
        if (self.table, self.op) in self.db.results:
            data, count = self.db.results[(self.table, self.op)]
        elif self.op == "insert":
            rows = self.payload if isinstance(self.payload, list) else [self.payload]
            data, count = [{"id": 1, **row} for row in rows], None
        elif self.op == "update":
            data, count = [self.payload], None
        else:
            data, count = [], None
        if any(f[0] == "maybe_single" for f in self.filters):
            if isinstance(data, list):
                data = data[0] if data else None
            if data is None:
                return None
        return FakeResult(data, count)


class FakeTable:
    def __init__(self, db, name):
        self.db = db
        self.name = name

    def select(self, *columns, count=None):
        return FakeQuery(self.db, self.name, "select", columns=columns, count=count)

    def insert(self, payload):
        return FakeQuery(self.db, self.name, "insert", payload)

    def update(self, payload):
        return FakeQuery(self.db, self.name, "update", payload)

    def upsert(self, payload, on_conflict=None):
        return FakeQuery(self.db, self.name, "upsert", payload, on_conflict=on_conflict)

    def delete(self):
        return FakeQuery(self.db, self.name, "delete")


class FakeSupabase:
    def __init__(self):
        self.results: dict = {}
        self.errors: dict = {}
        self.calls: list[FakeQuery] = []

    def table(self, name):
        return FakeTable(self, name)

    def rpc(self, name, params=None):
        return FakeQuery(self, name, "rpc", params)

    def returns(self, table, op, data, count=None):
        self.results[(table, op)] = (data, count)

    def fails(self, table, op, error):
        self.errors[(table, op)] = error

    def calls_to(self, table, op=None) -> list[FakeQuery]:
        return [c for c in self.calls if c.table == table and (op is None or c.op == op)]


def api_error(message, code="23503"):
    return APIError({"message": message, "code": code, "hint": None, "details": None})


@pytest.fixture
def fake_db(monkeypatch):
    db = FakeSupabase()
    for module in (
        "app.core.audit",
        "app.routers.school",
        "app.routers.calendar",
        "app.routers.configuracoes",
        "app.routers.professores",
        "app.routers.painel",
        "app.routers.apoia",
    ):
        monkeypatch.setattr(f"{module}.get_supabase", lambda: db)
    return db
