from datetime import timedelta

import pytest

from fastcoach.errors import Conflict, NotFound, ValidationError
from fastcoach.extensions import db
from fastcoach.models import FastingLog, utcnow
from fastcoach.sessions import (
    SessionService, analyze_symptom, calculate_phase, optional_number, optional_text,
    required_text, string_list,
)


@pytest.mark.parametrize("hours, phase", [(0, "early"), (3.9, "early"), (4, "deep"), (11.5, "deep"), (12, "extended")])
def test_calculate_phase(hours, phase):
    assert calculate_phase(hours) == phase


def test_symptom_severity_rules():
    assert analyze_symptom("headache", 8)["interventionType"] == "break_fast"
    assert analyze_symptom("headache", 3)["interventionNeeded"] is False
    assert analyze_symptom("Dizziness", 6)["interventionType"] == "monitor_closely"
    assert analyze_symptom("nausea", 7)["interventionNeeded"] is True
    assert analyze_symptom("fatigue", 9, hours_into_fast=6)["interventionNeeded"] is True
    assert analyze_symptom("fatigue", 9, hours_into_fast=14)["interventionNeeded"] is False
    assert analyze_symptom("itchy", 10)["interventionNeeded"] is False


@pytest.fixture
def service(app):
    with app.app_context():
        yield SessionService(db.session, "user-1")


def test_only_one_active_session(service):
    service.start("16:8", 16)
    with pytest.raises(Conflict):
        service.start("18:6", 18)


def test_start_sets_plan(service):
    session = service.start("16:8", 16, glucose_start=95)
    assert session.status == "active"
    assert session.current_phase == "early"
    assert session.planned_end_time - session.start_time == timedelta(hours=16)
    assert service.current().id == session.id


def test_pause_resume_and_invalid_transitions(service):
    session = service.start("16:8", 16)
    assert service.pause(session.id).status == "paused"
    assert service.current() is None

    with pytest.raises(Conflict):
        service.pause(session.id)

    assert service.resume(session.id).status == "active"


def test_resume_blocked_by_other_active_session(service):
    first = service.start("16:8", 16)
    service.pause(first.id)
    service.start("18:6", 18)
    with pytest.raises(Conflict):
        service.resume(first.id)


def test_terminal_sessions_reject_changes(service):
    session = service.start("16:8", 16)
    done = service.complete(session.id, weight_end=80, difficulty_rating=3, notes="fine")
    assert done.status == "completed"
    assert done.actual_end_time is not None

    for op in (service.break_fast, service.update_phase):
        with pytest.raises(Conflict):
            op(session.id)


def test_break_records_notes(service):
    session = service.start("16:8", 16)
    broken = service.break_fast(session.id, notes="felt unwell")
    assert broken.status == "broken"
    assert broken.notes == "felt unwell"


def test_update_phase_from_elapsed_time(service):
    session = service.start("16:8", 16)
    session.start_time = utcnow() - timedelta(hours=6)
    db.session.commit()

    assert service.update_phase(session.id).current_phase == "deep"
    assert service.update_phase(session.id, "refeeding").current_phase == "refeeding"
    with pytest.raises(ValidationError):
        service.update_phase(session.id, "hibernation")


def test_other_users_sessions_are_not_found(app, service):
    session = service.start("16:8", 16)
    other = SessionService(db.session, "user-2")
    with pytest.raises(NotFound):
        other.get(session.id)


def test_history_is_newest_first_and_limited(service):
    ids = []
    for _ in range(3):
        s = service.start("16:8", 16)
        service.complete(s.id)
        ids.append(s.id)

    history = service.history(limit=2)
    assert [s.id for s in history] == ids[::-1][:2]


def test_symptom_log_gets_ai_response(service):
    session = service.start("16:8", 16)
    row, analysis = service.append_log(session.id, "symptom", {"type": "headache", "severity": 8})
    assert analysis["interventionType"] == "break_fast"
    assert row.ai_response == analysis["recommendation"]

    row, analysis = service.append_log(session.id, "glucose", {"value": 90})
    assert analysis is None
    assert row.ai_response is None
    assert db.session.query(FastingLog).filter_by(session_id=session.id).count() == 2


def test_unknown_log_type_is_rejected(service):
    session = service.start("16:8", 16)
    with pytest.raises(ValidationError):
        service.append_log(session.id, "steps", 1000)


@pytest.mark.parametrize("value", ["nan", "NaN", "inf", "-inf", float("nan"), float("inf")])
def test_optional_number_rejects_non_finite(value):
    with pytest.raises(ValidationError):
        optional_number(value, "glucoseLevel")


def test_optional_number_parses_numbers():
    assert optional_number("72.5", "heartRate") == 72.5
    assert optional_number(None, "heartRate") is None
    with pytest.raises(ValidationError):
        optional_number(True, "heartRate")


def test_text_and_list_helpers():
    assert optional_text("  deep ", "phase") == "deep"
    with pytest.raises(ValidationError):
        optional_text(7, "phase")
    with pytest.raises(ValidationError):
        required_text("   ", "message")
    assert string_list(None, "symptoms") == []
    with pytest.raises(ValidationError):
        string_list("headache", "symptoms")


def test_symptom_type_need_not_be_a_string():
    assert analyze_symptom(5, 10)["interventionNeeded"] is False
    assert analyze_symptom(None)["interventionNeeded"] is False
