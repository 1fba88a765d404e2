"""Aggregate statistics over a user's fasting history.

Everything here works on serialized rows (``to_dict()`` output or plain
dicts with the same keys), so it can be exercised without a database.
"""

import calendar
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any

import numpy as np

from .models import as_utc

TIMEFRAME_DAYS = {
    "week": 7,
    "month": 30,
    "quarter": 90,
    "year": 365,
}
TIMEFRAMES = tuple(TIMEFRAME_DAYS) + ("all",)

STREAK_GAP_DAYS = 2
MIN_SESSIONS_PER_HOUR = 2
PROJECTION_DAYS = 30

EXPECTED_DURATION = {"16:8": 16, "18:6": 18}

Row = dict[str, Any]


def parse_dt(value) -> datetime | None:
    """Stored timestamp (datetime or ISO string) as an aware UTC datetime, or None."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    return as_utc(dt)


def _rate(pos: int, total: int) -> int:
    if total == 0:
        return 0
    return int(round(100.0 * pos / total))


def _round1(x: float) -> float:
    return float(round(x, 1))


def _round2(x: float) -> float:
    return float(round(x, 2))


def session_duration_hours(session: Row) -> float:
    start = parse_dt(session.get("start_time"))
    end = parse_dt(session.get("actual_end_time"))
    if start is None or end is None:
        return 0.0
    return max(0.0, (end - start).total_seconds() / 3600.0)


def _is_completed(session: Row) -> bool:
    return session.get("status") == "completed"


# ---- Filtering ----

def filter_sessions_by_timeframe(sessions: list[Row], timeframe: str, now: datetime | None = None) -> list[Row]:
    days = TIMEFRAME_DAYS.get(timeframe)
    if days is None:
        return list(sessions)

    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)
    out = []
    for s in sessions:
        created = parse_dt(s.get("created_at"))
        if created is not None and created >= cutoff:
            out.append(s)
    return out


# ---- Overview ----

def calculate_current_streak(sessions: list[Row]) -> int:
    """Completed sessions, newest first, counted while day gaps stay within tolerance."""
    dated = []
    for s in sessions:
        if not _is_completed(s):
            continue
        created = parse_dt(s.get("created_at"))
        if created is not None:
            dated.append(created)
    dated.sort(reverse=True)

    streak = 0
    last_day = None
    for created in dated:
        day = created.date()
        if last_day is None:
            streak = 1
        elif (last_day - day).days <= STREAK_GAP_DAYS:
            streak += 1
        else:
            break
        last_day = day
    return streak


def generate_overview_stats(all_sessions: list[Row], completed_sessions: list[Row]) -> dict[str, Any]:
    total = len(all_sessions)
    completed = len(completed_sessions)

    durations = np.array(
        [d for d in (session_duration_hours(s) for s in completed_sessions) if d > 0],
        dtype=float,
    )
    if durations.size:
        average, longest, total_hours = durations.mean(), durations.max(), durations.sum()
    else:
        average = longest = total_hours = 0.0

    return {
        "totalSessions": total,
        "completedSessions": completed,
        "averageDuration": _round1(average),
        "longestFast": _round1(longest),
        "currentStreak": calculate_current_streak(all_sessions),
        "totalFastingHours": int(round(total_hours)),
        "successRate": _rate(completed, total),
    }


# ---- Patterns ----

class _Bucket:
    __slots__ = ("count", "successful", "timed", "total_duration")

    def __init__(self) -> None:
        self.count = 0
        self.successful = 0
        self.timed = 0
        self.total_duration = 0.0

    def add(self, session: Row) -> None:
        self.count += 1
        if _is_completed(session):
            self.successful += 1
        duration = session_duration_hours(session)
        if duration > 0:
            self.timed += 1
            self.total_duration += duration

    @property
    def success_rate(self) -> int:
        return _rate(self.successful, self.count)

    @property
    def average_duration(self) -> float:
        return _round1(self.total_duration / self.timed) if self.timed else 0.0


def _group(sessions: list[Row], key_fn) -> dict[Any, _Bucket]:
    buckets: dict[Any, _Bucket] = defaultdict(_Bucket)
    for s in sessions:
        key = key_fn(s)
        if key is not None:
            buckets[key].add(s)
    return buckets


def _start(s: Row) -> datetime | None:
    return parse_dt(s.get("start_time"))


def analyze_patterns(sessions: list[Row]) -> dict[str, Any]:
    by_type = _group(sessions, lambda s: s.get("fasting_type") or "unknown")
    by_day = _group(sessions, lambda s: _start(s) and calendar.day_name[_start(s).weekday()])
    by_hour = _group(sessions, lambda s: _start(s) and _start(s).hour)
    by_month = _group(sessions, lambda s: _start(s) and _start(s).month)

    preferred_types = sorted(
        ({"type": t, "count": b.count, "successRate": b.success_rate} for t, b in by_type.items()),
        key=lambda x: -x["count"],
    )
    best_days = sorted(
        (
            {"day": d, "successRate": b.success_rate, "averageDuration": b.average_duration}
            for d, b in by_day.items()
        ),
        key=lambda x: (-x["successRate"], -x["averageDuration"]),
    )
    start_times = sorted(
        (
            {"hour": h, "successRate": b.success_rate, "count": b.count}
            for h, b in by_hour.items()
            if b.count >= MIN_SESSIONS_PER_HOUR
        ),
        key=lambda x: (-x["successRate"], -x["count"], x["hour"]),
    )
    seasonal = [
        {
            "month": calendar.month_name[m],
            "averageDuration": by_month[m].average_duration,
            "successRate": by_month[m].success_rate,
        }
        for m in sorted(by_month)
    ]

    return {
        "preferredFastingTypes": preferred_types,
        "bestPerformingDays": best_days,
        "optimalStartTimes": start_times,
        "seasonalTrends": seasonal,
    }


# ---- Health impacts ----

def determine_health_trend(values: list[float]) -> str:
    if len(values) < 3:
        return "stable"

    recent = values[-3:]
    earlier = values[:-3]
    if not earlier:
        return "stable"

    improvement = float(np.mean(recent) - np.mean(earlier))
    if improvement > 2:
        return "improving"
    if improvement < -2:
        return "declining"
    return "stable"


def _chronological(sessions: list[Row]) -> list[Row]:
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(sessions, key=lambda s: _start(s) or epoch)


def default_health_impacts() -> dict[str, Any]:
    return {
        "glucoseImprovement": {"averageReduction": 0, "trend": "stable", "sessions": []},
        "weightProgress": {"totalChange": 0, "trend": "stable", "sessions": []},
        "energyLevels": {"averageStart": 5, "averageEnd": 5, "improvement": 0, "trend": "stable"},
    }


def analyze_health_impacts(completed_sessions: list[Row]) -> dict[str, Any]:
    ordered = _chronological(completed_sessions)

    glucose = [
        {
            "date": s.get("start_time"),
            "start": s["glucose_start"],
            "end": s["glucose_end"],
            "reduction": s["glucose_start"] - s["glucose_end"],
        }
        for s in ordered
        if s.get("glucose_start") is not None and s.get("glucose_end") is not None
    ]
    reductions = [g["reduction"] for g in glucose]
    avg_reduction = float(np.mean(reductions)) if reductions else 0.0

    weights = [
        {"date": s.get("start_time"), "weight": s["weight_start"]}
        for s in ordered
        if s.get("weight_start") is not None
    ]
    # positive means weight was lost over the period
    weight_change = weights[0]["weight"] - weights[-1]["weight"] if len(weights) > 1 else 0.0
    if weight_change > 1:
        weight_trend = "losing"
    elif weight_change < -1:
        weight_trend = "gaining"
    else:
        weight_trend = "stable"

    energy = [
        (s["energy_level_start"], s["energy_level_end"])
        for s in ordered
        if s.get("energy_level_start") is not None and s.get("energy_level_end") is not None
    ]
    if energy:
        arr = np.array(energy, dtype=float)
        energy_start, energy_end = float(arr[:, 0].mean()), float(arr[:, 1].mean())
    else:
        energy_start = energy_end = 5.0
    energy_delta = energy_end - energy_start
    if energy_delta > 0.5:
        energy_trend = "improving"
    elif energy_delta < -0.5:
        energy_trend = "declining"
    else:
        energy_trend = "stable"

    return {
        "glucoseImprovement": {
            "averageReduction": int(round(avg_reduction)),
            "trend": determine_health_trend(reductions),
            "sessions": glucose,
        },
        "weightProgress": {
            "totalChange": _round1(weight_change),
            "trend": weight_trend,
            "sessions": weights,
        },
        "energyLevels": {
            "averageStart": _round1(energy_start),
            "averageEnd": _round1(energy_end),
            "improvement": _round1(energy_delta),
            "trend": energy_trend,
        },
    }


# ---- Predictions ----

def default_predictions() -> dict[str, Any]:
    return {
        "nextFastSuccess": {"probability": 0.7, "factors": [], "recommendations": []},
        "optimalSchedule": {
            "recommendedType": "16:8",
            "recommendedStartTime": "8:00 PM",
            "expectedDuration": 16,
            "confidence": 0.8,
        },
        "goalProjections": {
            "weightLossProjection": {"timeframe": "month", "expectedLoss": 0, "confidence": 0.5},
            "glucoseControlProjection": {"timeframe": "month", "expectedImprovement": 0, "confidence": 0.5},
        },
    }


def _format_hour(hour: int) -> str:
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12}:00 {suffix}"


def project_weight_loss(completed_sessions: list[Row], days: int = PROJECTION_DAYS) -> dict[str, Any]:
    """Linear fit of starting weights against time, extrapolated *days* ahead."""
    points = [
        (_start(s), float(s["weight_start"]))
        for s in _chronological(completed_sessions)
        if s.get("weight_start") is not None and _start(s) is not None
    ]
    if len(points) < 2:
        return {"timeframe": "month", "expectedLoss": 0, "confidence": 0.5}

    origin = points[0][0]
    x = np.array([(t - origin).total_seconds() / 86400.0 for t, _ in points])
    y = np.array([w for _, w in points])
    if np.ptp(x) == 0:
        return {"timeframe": "month", "expectedLoss": 0, "confidence": 0.5}

    slope = np.polyfit(x, y, 1)[0]
    return {
        "timeframe": "month",
        "expectedLoss": _round1(-slope * days),
        "confidence": 0.7 if len(points) >= 4 else 0.5,
    }


def generate_predictions(sessions: list[Row], completed_sessions: list[Row]) -> dict[str, Any]:
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    recent = sorted(sessions, key=lambda s: parse_dt(s.get("created_at")) or epoch, reverse=True)[:10]
    rate = sum(1 for s in recent if _is_completed(s)) / len(recent) if recent else 0.7

    next_fast = {
        "probability": _round2(min(0.95, max(0.3, rate + 0.1))),
        "factors": [
            "High recent success rate" if rate > 0.8 else "Moderate recent success rate",
            "Consistent fasting schedule",
            "Good health monitoring",
        ],
        "recommendations": [
            "Maintain your current fasting schedule",
            "Continue monitoring glucose levels",
            "Stay well hydrated",
        ],
    }

    type_counts = Counter(s.get("fasting_type") for s in completed_sessions if s.get("fasting_type"))
    recommended_type = type_counts.most_common(1)[0][0] if type_counts else "16:8"

    hour_counts = Counter(_start(s).hour for s in completed_sessions if _start(s) is not None)
    start_time = _format_hour(hour_counts.most_common(1)[0][0]) if hour_counts else "8:00 PM"

    reductions = [
        s["glucose_start"] - s["glucose_end"]
        for s in completed_sessions
        if s.get("glucose_start") is not None and s.get("glucose_end") is not None
    ]
    if reductions:
        glucose_projection = {
            "timeframe": "month",
            "expectedImprovement": int(round(float(np.mean(reductions)))),
            "confidence": 0.8,
        }
    else:
        glucose_projection = {"timeframe": "month", "expectedImprovement": 0, "confidence": 0.5}

    return {
        "nextFastSuccess": next_fast,
        "optimalSchedule": {
            "recommendedType": recommended_type,
            "recommendedStartTime": start_time,
            "expectedDuration": EXPECTED_DURATION.get(recommended_type, 20),
            "confidence": 0.8,
        },
        "goalProjections": {
            "weightLossProjection": project_weight_loss(completed_sessions),
            "glucoseControlProjection": glucose_projection,
        },
    }


# ---- Entry point ----

def map_achievements(achievements: list[Row]) -> list[dict[str, Any]]:
    return [
        {
            "id": a.get("id"),
            "name": a.get("achievement_name"),
            "description": a.get("description"),
            "earnedAt": a.get("earned_at"),
            "category": a.get("achievement_type"),
        }
        for a in achievements
    ]


def summarize_logs(logs: list[Row], session_ids) -> dict[str, Any]:
    """Log counts by type, restricted to the sessions in the timeframe."""
    wanted = set(session_ids)
    by_type = Counter(row.get("log_type") for row in logs if row.get("session_id") in wanted)
    return {
        "total": sum(by_type.values()),
        "byType": dict(sorted(by_type.items())),
        "emergencies": by_type.get("emergency", 0),
    }


def generate_fasting_analytics(
    sessions: list[Row],
    logs: list[Row],
    achievements: list[Row],
    timeframe: str = "month",
    include_health_metrics: bool = False,
    include_predictions: bool = False,
    now: datetime | None = None,
) -> dict[str, Any]:
    filtered = filter_sessions_by_timeframe(sessions, timeframe, now)
    completed = [s for s in filtered if _is_completed(s)]

    return {
        "timeframe": timeframe,
        "overview": generate_overview_stats(filtered, completed),
        "patterns": analyze_patterns(filtered),
        "logSummary": summarize_logs(logs, (s.get("id") for s in filtered)),
        "healthImpacts": analyze_health_impacts(completed) if include_health_metrics else default_health_impacts(),
        "predictions": generate_predictions(filtered, completed) if include_predictions else default_predictions(),
        "achievements": map_achievements(achievements),
    }
