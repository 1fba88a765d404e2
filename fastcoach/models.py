import uuid
from datetime import datetime, timezone

from .extensions import db

SESSION_STATUSES = ("active", "paused", "completed", "broken")
TERMINAL_STATUSES = ("completed", "broken")

PHASES = ("preparation", "early", "deep", "extended", "refeeding")

LOG_TYPES = (
    "symptom",
    "glucose",
    "hydration",
    "energy",
    "mood",
    "emergency",
    "coach_interaction",
    "health_monitoring",
    "meal_planning",
)

ACHIEVEMENT_CATEGORIES = ("consistency", "duration", "health", "milestone")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt):
    # SQLite hands datetimes back without tzinfo
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _iso(dt):
    dt = as_utc(dt)
    return dt.isoformat() if dt else None


def _new_id() -> str:
    return str(uuid.uuid4())


class FastingSession(db.Model):
    """
    One fasting attempt, from start to completion or break.
    Only the start operation keeps a user to a single active session;
    there is no database constraint for it.
    """
    __tablename__ = "fasting_sessions"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    user_id = db.Column(db.String(128), nullable=False, index=True)

    fasting_type = db.Column(db.String(32), nullable=False)
    start_time = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    planned_end_time = db.Column(db.DateTime(timezone=True), nullable=False)
    actual_end_time = db.Column(db.DateTime(timezone=True), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="active", index=True)
    current_phase = db.Column(db.String(16), nullable=False, default="early")

    # Readings at start / end
    glucose_start = db.Column(db.Float, nullable=True)
    glucose_end = db.Column(db.Float, nullable=True)
    weight_start = db.Column(db.Float, nullable=True)
    weight_end = db.Column(db.Float, nullable=True)
    energy_level_start = db.Column(db.Float, nullable=True)
    energy_level_end = db.Column(db.Float, nullable=True)

    difficulty_rating = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    logs = db.relationship("FastingLog", back_populates="session", lazy="dynamic")

    def hours_elapsed(self, now=None) -> float:
        now = now or utcnow()
        end = as_utc(self.actual_end_time) or now
        return max(0.0, (end - as_utc(self.start_time)).total_seconds() / 3600.0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "fasting_type": self.fasting_type,
            "start_time": _iso(self.start_time),
            "planned_end_time": _iso(self.planned_end_time),
            "actual_end_time": _iso(self.actual_end_time),
            "status": self.status,
            "current_phase": self.current_phase,
            "glucose_start": self.glucose_start,
            "glucose_end": self.glucose_end,
            "weight_start": self.weight_start,
            "weight_end": self.weight_end,
            "energy_level_start": self.energy_level_start,
            "energy_level_end": self.energy_level_end,
            "difficulty_rating": self.difficulty_rating,
            "notes": self.notes,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class FastingLog(db.Model):
    """Append-only event attached to a session. Rows are never updated."""
    __tablename__ = "fasting_logs"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    session_id = db.Column(db.String(36), db.ForeignKey("fasting_sessions.id"), nullable=False, index=True)
    user_id = db.Column(db.String(128), nullable=False, index=True)

    log_time = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    log_type = db.Column(db.String(32), nullable=False)
    value = db.Column(db.JSON, nullable=True)
    ai_response = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    session = db.relationship("FastingSession", back_populates="logs")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "user_id": self.user_id,
            "log_time": _iso(self.log_time),
            "log_type": self.log_type,
            "value": self.value,
            "ai_response": self.ai_response,
            "created_at": _iso(self.created_at),
        }


class FastingAchievement(db.Model):
    __tablename__ = "fasting_achievements"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    user_id = db.Column(db.String(128), nullable=False, index=True)

    achievement_name = db.Column(db.String(120), nullable=False)
    achievement_type = db.Column(db.String(32), nullable=False)  # consistency / duration / health / milestone
    description = db.Column(db.Text, nullable=True)
    earned_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "achievement_name": self.achievement_name,
            "achievement_type": self.achievement_type,
            "description": self.description,
            "earned_at": _iso(self.earned_at),
        }
