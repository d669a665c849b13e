from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from app.core.audit import SupabaseAuditLog
from app.core.errors import AttendanceBlockedError, AttendanceLockedError, ValidationError
from app.schemas.attendance import (
    FALTA_INJUSTIFICADA,
    FALTA_JUSTIFICADA,
    AttendanceStatus,
)
from app.services.attendance import AttendanceService

from conftest import MONDAY, PROFESSOR_UID, make_event


def test_load_defaults_every_active_student_to_present(service):
    session = service.load_session(1)

    assert session.data == date(2024, 5, 13)
    assert list(session.entries) == [1, 2]
    for entry in session.entries.values():
        assert entry.status == AttendanceStatus.PRESENTE
        assert entry.justificativa is None
        assert entry.editable is True
    assert session.editable is True
    assert session.summary() == {"total": 2, "presentes": 2, "faltas": 0}


def test_absent_without_justification_persists_unjustified(service, store, clock):
    session = service.load_session(1)
    session.set_status(1, "falta")

    records = service.save_session(session, PROFESSOR_UID)

    assert len(records) == 2
    a = store.records[(1, date(2024, 5, 13))]
    b = store.records[(2, date(2024, 5, 13))]
    assert a.status == AttendanceStatus.FALTA
    assert a.justificativa == FALTA_INJUSTIFICADA
    assert b.status == AttendanceStatus.PRESENTE
    assert b.justificativa is None
    assert a.registrado_por_uid == PROFESSOR_UID
    assert a.registrado_em == clock.now()
    assert a.turma_id == 1


def test_save_writes_audit_entry(service, audit):
    session = service.load_session(1)
    service.save_session(session, PROFESSOR_UID)

    assert audit.entries == [{
        "actor": PROFESSOR_UID,
        "action": "attendance_save",
        "entity": "presencas",
        "entity_id": None,
        "details": {"turma_id": 1, "data": "2024-05-13", "total": 2},
    }]


def test_saving_twice_is_idempotent(service, store):
    session = service.load_session(1)
    session.set_status(2, "falta", FALTA_JUSTIFICADA)
    service.save_session(session, PROFESSOR_UID)
    first = store.snapshot()

    again = service.load_session(1)
    again.set_status(2, "falta", FALTA_JUSTIFICADA)
    service.save_session(again, PROFESSOR_UID)

    assert store.snapshot() == first
    assert len(store.records) == 2


def test_original_timestamp_is_kept_on_later_saves(service, store, clock):
    service.save_session(service.load_session(1), PROFESSOR_UID)
    clock.advance(minutes=30)

    session = service.load_session(1)
    session.set_status(1, "falta")
    service.save_session(session, PROFESSOR_UID)

    assert store.records[(1, date(2024, 5, 13))].registrado_em == MONDAY
    assert session.lock.lock_at == MONDAY + timedelta(hours=1)


def test_sheet_locks_one_hour_after_first_save(service, store, clock):
    service.save_session(service.load_session(1), PROFESSOR_UID)
    clock.advance(minutes=61)

    session = service.load_session(1)

    assert session.lock.locked is True
    assert session.editable is False
    assert all(not e.editable for e in session.entries.values())
    assert "Chamada encerrada" in session.status_message

    calls = store.upsert_calls
    assert session.set_status(1, "falta") is False
    with pytest.raises(AttendanceLockedError) as exc:
        service.save_session(session, PROFESSOR_UID)
    assert exc.value.lock_at == MONDAY + timedelta(hours=1)
    assert store.upsert_calls == calls


def test_lock_is_rechecked_at_save_time(service, store, clock):
    session = service.load_session(1)
    service.save_session(service.load_session(1), PROFESSOR_UID)
    clock.advance(minutes=90)

    # Loaded while still open, saved after the window closed
    assert session.editable is True
    with pytest.raises(AttendanceLockedError):
        service.save_session(session, PROFESSOR_UID)


def test_saturday_is_read_only_regardless_of_lock(service, store, clock):
    clock.set(datetime(2024, 5, 18, 9, 0, tzinfo=timezone.utc))

    session = service.load_session(1)

    assert session.lock.locked is False
    assert session.blocked_reason.kind == "weekend"
    assert session.editable is False
    assert all(not e.editable for e in session.entries.values())
    with pytest.raises(AttendanceBlockedError) as exc:
        service.save_session(session, PROFESSOR_UID)
    assert exc.value.kind == "weekend"
    assert store.upsert_calls == 0


def test_event_created_after_load_blocks_the_save(service, store):
    session = service.load_session(1)
    store.events.append(make_event(data="2024-05-13", descricao="Paralisação"))

    with pytest.raises(AttendanceBlockedError) as exc:
        service.save_session(session, PROFESSOR_UID)

    assert "Paralisação" in exc.value.message
    assert store.upsert_calls == 0


def test_unreadable_calendar_blocks_teacher_save(service, store, store_error):
    store.events_error = store_error

    session = service.load_session(1)

    assert session.blocked_reason.kind == "calendar_unavailable"
    with pytest.raises(AttendanceBlockedError):
        service.save_session(session, PROFESSOR_UID)
    assert store.upsert_calls == 0


def test_teacher_cannot_use_free_text_justification(service):
    session = service.load_session(1)

    with pytest.raises(ValidationError):
        session.set_status(1, "falta", "Consulta médica")


def test_marking_present_clears_justification(service):
    session = service.load_session(1)
    session.set_status(1, "falta", FALTA_JUSTIFICADA)
    session.set_status(1, "falta")
    assert session.entry(1).justificativa == FALTA_JUSTIFICADA

    session.set_status(1, "presente")
    assert session.entry(1).justificativa is None


def test_mark_all_present_and_absence_filter(service):
    session = service.load_session(1)
    session.set_status(1, "falta")
    session.set_status(2, "falta")
    assert [e.aluno_id for e in session.absent_entries()] == [1, 2]

    session.mark_all_present()

    assert session.absent_entries() == []
    assert session.summary()["presentes"] == 2


def test_unknown_student_is_rejected(service):
    session = service.load_session(1)
    with pytest.raises(ValidationError):
        session.set_status(4, "falta")


def test_only_todays_sheet_can_be_saved(service, clock):
    session = service.load_session(1)
    clock.advance(days=1)

    with pytest.raises(ValidationError):
        service.save_session(session, PROFESSOR_UID)


def test_class_without_students(service, store):
    session = service.load_session(42)

    assert session.entries == {}
    assert session.status_message == "Nenhum aluno ativo encontrado."
    with pytest.raises(ValidationError):
        service.save_session(session, PROFESSOR_UID)
    assert store.upsert_calls == 0


class _BrokenClient:
    def table(self, name):
        raise RuntimeError("audit_logs unavailable")


def test_audit_failure_never_fails_the_save(store, clock, caplog):
    service = AttendanceService(store, clock, SupabaseAuditLog(client=_BrokenClient()))

    records = service.save_session(service.load_session(1), PROFESSOR_UID)

    assert len(records) == 2
    assert store.upsert_calls == 1
    assert "Audit log error" in caplog.text


def test_lock_message_follows_the_configured_window(store, clock, audit):
    service = AttendanceService(store, clock, audit, lock_window=timedelta(minutes=30))
    service.save_session(service.load_session(1), PROFESSOR_UID)
    clock.advance(minutes=31)

    session = service.load_session(1)
    assert "após 30 min" in session.status_message

    with pytest.raises(AttendanceLockedError) as exc:
        service.save_session(session, PROFESSOR_UID)
    assert "após 30 min" in exc.value.message
    assert exc.value.lock_at == MONDAY + timedelta(minutes=30)
