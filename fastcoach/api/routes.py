from flask import Blueprint, current_app, jsonify, request

from fastcoach.analytics import generate_fasting_analytics
from fastcoach.auth import current_user_id
from fastcoach.coach.engine import FastingCoach
from fastcoach.errors import ValidationError
from fastcoach.extensions import db
from fastcoach.meals import MealPlanner
from fastcoach.models import FastingAchievement, FastingLog
from fastcoach.monitor import HealthData, HealthMonitor
from fastcoach.sessions import (
    SessionService, optional_number, optional_text, required_number, required_text, string_list,
)

api_bp = Blueprint("api", __name__)


def _body() -> dict:
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError("JSON body must be an object")
    return data


def _flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in ("1", "true", "yes")


def _sessions() -> SessionService:
    return SessionService(db.session, current_user_id())


# ----------------------------
# Basic routes
# ----------------------------
@api_bp.get("/health")
def health():
    return jsonify({"status": "ok"}), 200


# ----------------------------
# Coach
# ----------------------------
@api_bp.post("/ai/fasting-coach")
def fasting_coach():
    user_id = current_user_id()
    data = _body()

    message = required_text(data.get("message"), "message")

    coach = FastingCoach(db.session, user_id)
    response = coach.respond(
        message,
        session_id=optional_text(data.get("sessionId"), "sessionId"),
        current_phase=optional_text(data.get("currentPhase"), "currentPhase"),
        time_into_fast=optional_number(data.get("timeIntoFast"), "timeIntoFast"),
        symptoms=string_list(data.get("symptoms"), "symptoms"),
        glucose_level=optional_number(data.get("glucoseLevel"), "glucoseLevel"),
        emergency_level=optional_text(data.get("emergencyLevel"), "emergencyLevel"),
    )
    return jsonify({"response": response.to_dict()}), 200


# ----------------------------
# Health monitor / analytics / meals
# ----------------------------
@api_bp.post("/fasting/health-monitor")
def health_monitor():
    user_id = current_user_id()
    data = _body()
    required_text(data.get("sessionId"), "sessionId")

    result = HealthMonitor(db.session, user_id).process(HealthData.from_json(data))
    return jsonify(result), 200


@api_bp.get("/fasting/analytics")
def fasting_analytics():
    user_id = current_user_id()

    # unknown timeframes fall through to "no filter"
    timeframe = (request.args.get("timeframe") or "month").strip().lower()

    sessions = [s.to_dict() for s in SessionService(db.session, user_id).all()]
    logs = [
        row.to_dict()
        for row in db.session.query(FastingLog).filter(FastingLog.user_id == user_id).all()
    ]
    achievements = [
        a.to_dict()
        for a in db.session.query(FastingAchievement)
        .filter(FastingAchievement.user_id == user_id)
        .order_by(FastingAchievement.earned_at.desc())
        .all()
    ]

    analytics = generate_fasting_analytics(
        sessions,
        logs,
        achievements,
        timeframe=timeframe,
        include_health_metrics=_flag("includeHealthMetrics"),
        include_predictions=_flag("includePredictions"),
    )
    return jsonify({"analytics": analytics}), 200


@api_bp.post("/fasting/meal-planning")
def meal_planning():
    user_id = current_user_id()
    planner = MealPlanner(db.session, user_id)
    return jsonify(planner.plan(planner.parse(_body()))), 200


# ----------------------------
# Sessions
# ----------------------------
@api_bp.post("/fasting/sessions")
def start_session():
    sessions = _sessions()
    data = _body()
    fasting_type = required_text(data.get("fastingType"), "fastingType")

    planned = required_number(data.get("plannedDurationHours"), "plannedDurationHours")
    if planned <= 0:
        raise ValidationError("'plannedDurationHours' must be positive")
    max_hours = current_app.config["MAX_PLANNED_HOURS"]
    if planned > max_hours:
        raise ValidationError(f"'plannedDurationHours' must be at most {max_hours}")

    session = sessions.start(
        fasting_type,
        planned,
        glucose_start=optional_number(data.get("glucoseStart"), "glucoseStart"),
        weight_start=optional_number(data.get("weightStart"), "weightStart"),
        energy_level_start=optional_number(data.get("energyLevelStart"), "energyLevelStart"),
    )
    return jsonify({"session": session.to_dict()}), 201


@api_bp.get("/fasting/sessions")
def list_sessions():
    service = _sessions()
    cfg = current_app.config
    try:
        limit = int(request.args.get("limit", cfg["HISTORY_DEFAULT_LIMIT"]))
    except (TypeError, ValueError):
        raise ValidationError("'limit' must be an integer")
    limit = max(1, min(limit, cfg["HISTORY_MAX_LIMIT"]))

    sessions = service.history(limit=limit)
    return jsonify({"sessions": [s.to_dict() for s in sessions]}), 200


@api_bp.get("/fasting/sessions/current")
def current_session():
    session = _sessions().current()
    return jsonify({"session": session.to_dict() if session else None}), 200


@api_bp.post("/fasting/sessions/<session_id>/pause")
def pause_session(session_id):
    return jsonify({"session": _sessions().pause(session_id).to_dict()}), 200


@api_bp.post("/fasting/sessions/<session_id>/resume")
def resume_session(session_id):
    return jsonify({"session": _sessions().resume(session_id).to_dict()}), 200


@api_bp.post("/fasting/sessions/<session_id>/complete")
def complete_session(session_id):
    sessions = _sessions()
    data = _body()
    rating = optional_number(data.get("difficultyRating"), "difficultyRating")
    session = sessions.complete(
        session_id,
        glucose_end=optional_number(data.get("glucoseEnd"), "glucoseEnd"),
        weight_end=optional_number(data.get("weightEnd"), "weightEnd"),
        energy_level_end=optional_number(data.get("energyLevelEnd"), "energyLevelEnd"),
        difficulty_rating=int(rating) if rating is not None else None,
        notes=optional_text(data.get("notes"), "notes"),
    )
    return jsonify({"session": session.to_dict()}), 200


@api_bp.post("/fasting/sessions/<session_id>/break")
def break_session(session_id):
    sessions = _sessions()
    data = _body()
    session = sessions.break_fast(session_id, notes=optional_text(data.get("notes"), "notes"))
    return jsonify({"session": session.to_dict()}), 200


@api_bp.post("/fasting/sessions/<session_id>/phase")
def update_phase(session_id):
    sessions = _sessions()
    data = _body()
    session = sessions.update_phase(session_id, phase=optional_text(data.get("phase"), "phase"))
    return jsonify({"session": session.to_dict()}), 200


@api_bp.post("/fasting/sessions/<session_id>/logs")
def append_log(session_id):
    sessions = _sessions()
    data = _body()
    log_type = required_text(data.get("logType"), "logType")

    row, analysis = sessions.append_log(session_id, log_type, data.get("value"))
    payload = {"log": row.to_dict()}
    if analysis is not None:
        payload["analysis"] = analysis
    return jsonify(payload), 201
