"""Fasting session lifecycle: start, pause/resume, complete, break, phases, logs."""

import math
from datetime import timedelta
from typing import Any

from .errors import Conflict, NotFound, ValidationError
from .logs import log_event
from .models import (
    FastingLog, FastingSession, LOG_TYPES, PHASES, TERMINAL_STATUSES,
    as_utc, utcnow,
)


def calculate_phase(hours_elapsed: float) -> str:
    if hours_elapsed < 4:
        return "early"
    if hours_elapsed < 12:
        return "deep"
    return "extended"


def analyze_symptom(symptom_type: str, severity: float = 0, hours_into_fast: float = 0) -> dict[str, Any]:
    """Guidance for a single logged symptom, keyed on type and 1-10 severity."""
    kind = str(symptom_type or "").strip().lower()

    if kind == "headache":
        if severity >= 7:
            return {
                "recommendation": (
                    "Severe headache may indicate dehydration or electrolyte imbalance. Consider "
                    "breaking your fast and consulting a healthcare provider."
                ),
                "interventionNeeded": True,
                "interventionType": "break_fast",
            }
        return {
            "recommendation": (
                "Headaches are common during fasting. Try drinking water with a pinch of salt "
                "and rest in a quiet, dark room."
            ),
            "interventionNeeded": False,
        }

    if kind == "dizziness":
        if severity >= 6:
            return {
                "recommendation": (
                    "Significant dizziness can be dangerous. Sit down, drink water, and consider "
                    "breaking your fast if it doesn't improve."
                ),
                "interventionNeeded": True,
                "interventionType": "monitor_closely",
            }
        return {
            "recommendation": "Mild dizziness is normal. Move slowly when changing positions and ensure adequate hydration.",
            "interventionNeeded": False,
        }

    if kind == "nausea":
        if severity >= 7:
            return {
                "recommendation": (
                    "Severe nausea during fasting is concerning. Break your fast with small sips "
                    "of bone broth or electrolyte solution."
                ),
                "interventionNeeded": True,
                "interventionType": "break_fast",
            }
        return {
            "recommendation": "Mild nausea can occur during fasting. Try sipping water slowly or herbal tea.",
            "interventionNeeded": False,
        }

    if kind == "fatigue":
        if severity >= 8 and hours_into_fast < 12:
            return {
                "recommendation": (
                    "Extreme fatigue early in fasting may indicate you're not ready. Consider "
                    "breaking your fast and trying again when better prepared."
                ),
                "interventionNeeded": True,
                "interventionType": "break_fast",
            }
        return {
            "recommendation": "Fatigue is common as your body adapts. Try light movement or a short nap if possible.",
            "interventionNeeded": False,
        }

    return {
        "recommendation": "Monitor this symptom closely. If it worsens or you feel unsafe, consider breaking your fast.",
        "interventionNeeded": False,
    }


class SessionService:
    """Session queries and transitions for one user, on a given db session."""

    def __init__(self, db_session, user_id: str) -> None:
        self.db_session = db_session
        self.user_id = user_id

    def _query(self):
        return self.db_session.query(FastingSession).filter(FastingSession.user_id == self.user_id)

    # ---- Reads ----

    def get(self, session_id: str) -> FastingSession:
        session = self._query().filter(FastingSession.id == session_id).one_or_none()
        if session is None:
            raise NotFound("Session not found")
        return session

    def current(self) -> FastingSession | None:
        return (
            self._query()
            .filter(FastingSession.status == "active")
            .order_by(FastingSession.created_at.desc())
            .first()
        )

    def history(self, limit: int = 10) -> list[FastingSession]:
        return self._query().order_by(FastingSession.created_at.desc()).limit(limit).all()

    def all(self) -> list[FastingSession]:
        return self._query().order_by(FastingSession.created_at.desc()).all()

    # ---- Transitions ----

    def start(
        self,
        fasting_type: str,
        planned_duration_hours: float,
        glucose_start=None,
        weight_start=None,
        energy_level_start=None,
    ) -> FastingSession:
        # not atomic: two concurrent starts can both pass this check
        if self.current() is not None:
            raise Conflict("An active fasting session already exists")

        start_time = utcnow()
        session = FastingSession(
            user_id=self.user_id,
            fasting_type=fasting_type,
            start_time=start_time,
            planned_end_time=start_time + timedelta(hours=planned_duration_hours),
            status="active",
            current_phase="early",
            glucose_start=glucose_start,
            weight_start=weight_start,
            energy_level_start=energy_level_start,
            created_at=start_time,
        )
        self.db_session.add(session)
        self.db_session.commit()

        log_event(msg="fasting_session_started", session_id=session.id, fasting_type=fasting_type)
        return session

    def pause(self, session_id: str) -> FastingSession:
        return self._move(session_id, expected="active", status="paused")

    def resume(self, session_id: str) -> FastingSession:
        session = self.get(session_id)
        if session.status == "paused":
            other = self.current()
            if other is not None and other.id != session.id:
                raise Conflict("An active fasting session already exists")
        return self._move(session_id, expected="paused", status="active")

    def _move(self, session_id: str, expected: str, status: str) -> FastingSession:
        session = self.get(session_id)
        if session.status != expected:
            raise Conflict(f"Cannot move a {session.status} session to {status}")
        session.status = status
        session.updated_at = utcnow()
        self.db_session.commit()
        return session

    def complete(
        self,
        session_id: str,
        glucose_end=None,
        weight_end=None,
        energy_level_end=None,
        difficulty_rating=None,
        notes=None,
    ) -> FastingSession:
        session = self._open(session_id)
        now = utcnow()
        session.status = "completed"
        session.actual_end_time = now
        session.glucose_end = glucose_end
        session.weight_end = weight_end
        session.energy_level_end = energy_level_end
        session.difficulty_rating = difficulty_rating
        session.notes = notes
        session.updated_at = now
        self.db_session.commit()

        log_event(msg="fasting_session_completed", session_id=session.id, hours=round(session.hours_elapsed(), 1))
        return session

    def break_fast(self, session_id: str, notes: str | None = None) -> FastingSession:
        session = self._open(session_id)
        return self.mark_broken(session, notes)

    def mark_broken(self, session: FastingSession, notes: str | None = None) -> FastingSession:
        now = utcnow()
        session.status = "broken"
        session.actual_end_time = now
        if notes:
            session.notes = notes
        session.updated_at = now
        self.db_session.commit()

        log_event(msg="fasting_session_broken", session_id=session.id, notes=notes)
        return session

    def update_phase(self, session_id: str, phase: str | None = None) -> FastingSession:
        session = self._open(session_id)
        if phase is None:
            phase = calculate_phase(session.hours_elapsed())
        elif phase not in PHASES:
            raise ValidationError(f"'phase' must be one of: {', '.join(PHASES)}")

        session.current_phase = phase
        session.updated_at = utcnow()
        self.db_session.commit()
        return session

    def _open(self, session_id: str) -> FastingSession:
        session = self.get(session_id)
        if session.status in TERMINAL_STATUSES:
            raise Conflict(f"Session is already {session.status}")
        return session

    # ---- Logs ----

    def append_log(self, session_id: str, log_type: str, value: Any = None):
        """User-initiated log entry. Unlike coach/monitor logs, write errors propagate."""
        session = self.get(session_id)
        if log_type not in LOG_TYPES:
            raise ValidationError(f"'log_type' must be one of: {', '.join(LOG_TYPES)}")

        ai_response = None
        analysis = None
        if log_type == "symptom" and isinstance(value, dict):
            analysis = analyze_symptom(
                value.get("type", ""),
                severity=optional_number(value.get("severity"), "severity") or 0,
                hours_into_fast=session.hours_elapsed(),
            )
            ai_response = analysis["recommendation"]

        row = FastingLog(
            session_id=session.id,
            user_id=self.user_id,
            log_type=log_type,
            value=value,
            ai_response=ai_response,
        )
        self.db_session.add(row)
        self.db_session.commit()
        return row, analysis


def optional_number(value, field: str) -> float | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"'{field}' must be a number")
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"'{field}' must be a number")
    # float() accepts "nan" and "inf"
    if not math.isfinite(result):
        raise ValidationError(f"'{field}' must be a finite number")
    return result


def required_number(value, field: str) -> float:
    if value is None or value == "":
        raise ValidationError(f"'{field}' is required")
    return optional_number(value, field)


def hours_since(start) -> int:
    """Whole hours between *start* and now."""
    return int((utcnow() - as_utc(start)).total_seconds() // 3600)


def optional_text(value, field: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"'{field}' must be a string")
    return value.strip() or None


def required_text(value, field: str) -> str:
    text = optional_text(value, field)
    if not text:
        raise ValidationError(f"'{field}' is required")
    return text


def optional_object(value, field: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError(f"'{field}' must be an object")
    return value


def string_list(value, field: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(f"'{field}' must be a list")
    return [str(v) for v in value]
