from datetime import datetime, timedelta, timezone

import pytest

from fastcoach.analytics import (
    analyze_health_impacts, analyze_patterns, calculate_current_streak,
    determine_health_trend, filter_sessions_by_timeframe, generate_fasting_analytics,
    generate_overview_stats, generate_predictions, parse_dt, summarize_logs,
)

NOW = datetime(2024, 6, 15, 20, 0, tzinfo=timezone.utc)


def _session(days_ago=0, hours=16.0, status="completed", fasting_type="16:8", **extra):
    start = NOW - timedelta(days=days_ago)
    row = {
        "id": f"s-{days_ago}-{status}",
        "fasting_type": fasting_type,
        "start_time": start.isoformat(),
        "actual_end_time": (start + timedelta(hours=hours)).isoformat() if status != "active" else None,
        "status": status,
        "created_at": start.isoformat(),
    }
    row.update(extra)
    return row


def test_empty_overview_is_all_zeros():
    stats = generate_overview_stats([], [])
    assert stats == {
        "totalSessions": 0,
        "completedSessions": 0,
        "averageDuration": 0.0,
        "longestFast": 0.0,
        "currentStreak": 0,
        "totalFastingHours": 0,
        "successRate": 0,
    }


def test_overview_counts_and_durations():
    sessions = [_session(0, 16), _session(1, 20), _session(2, 4, status="broken")]
    completed = [s for s in sessions if s["status"] == "completed"]
    stats = generate_overview_stats(sessions, completed)
    assert stats["totalSessions"] == 3
    assert stats["completedSessions"] == 2
    assert stats["averageDuration"] == 18.0
    assert stats["longestFast"] == 20.0
    assert stats["totalFastingHours"] == 36
    assert stats["successRate"] == 67


def test_streak_tolerates_two_day_gaps():
    sessions = [_session(0), _session(1), _session(3)]
    assert calculate_current_streak(sessions) == 3


def test_streak_stops_at_three_day_gap():
    sessions = [_session(0), _session(1), _session(3), _session(6)]
    assert calculate_current_streak(sessions) == 3


def test_streak_ignores_unfinished_sessions():
    sessions = [_session(0, status="broken"), _session(1), _session(2)]
    assert calculate_current_streak(sessions) == 2
    assert calculate_current_streak([]) == 0


@pytest.mark.parametrize("timeframe, expected", [("week", 2), ("month", 3), ("year", 4), ("all", 5), ("bogus", 5)])
def test_timeframe_filter(timeframe, expected):
    sessions = [_session(1), _session(5), _session(20), _session(200), _session(500)]
    assert len(filter_sessions_by_timeframe(sessions, timeframe, now=NOW)) == expected


def test_patterns_group_by_type_day_and_hour():
    sessions = [
        _session(0, fasting_type="18:6"),
        _session(7, fasting_type="18:6"),
        _session(14, fasting_type="16:8", status="broken"),
    ]
    patterns = analyze_patterns(sessions)

    types = {p["type"]: p for p in patterns["preferredFastingTypes"]}
    assert types["18:6"]["count"] == 2
    assert types["18:6"]["successRate"] == 100
    assert types["16:8"]["successRate"] == 0

    # all three start on the same weekday at 20:00
    assert len(patterns["bestPerformingDays"]) == 1
    assert patterns["optimalStartTimes"] == [{"hour": 20, "successRate": 67, "count": 3}]
    assert patterns["seasonalTrends"]


def test_start_hours_need_two_sessions():
    patterns = analyze_patterns([_session(0)])
    assert patterns["optimalStartTimes"] == []


def test_health_trend_compares_recent_to_earlier():
    assert determine_health_trend([10, 10, 20, 20, 20]) == "improving"
    assert determine_health_trend([20, 20, 10, 10, 10]) == "declining"
    assert determine_health_trend([10, 11, 10, 11]) == "stable"
    assert determine_health_trend([5, 50]) == "stable"


def test_health_impacts_weight_loss_is_positive():
    sessions = [
        _session(10, weight_start=90.0, glucose_start=120, glucose_end=100),
        _session(5, weight_start=88.0, glucose_start=110, glucose_end=100),
        _session(0, weight_start=87.5, energy_level_start=4, energy_level_end=6),
    ]
    impacts = analyze_health_impacts(sessions)
    assert impacts["weightProgress"]["totalChange"] == 2.5
    assert impacts["weightProgress"]["trend"] == "losing"
    assert impacts["glucoseImprovement"]["averageReduction"] == 15
    assert impacts["energyLevels"]["trend"] == "improving"


def test_predictions_clamp_probability_and_pick_type():
    sessions = [_session(i, fasting_type="18:6") for i in range(12)]
    preds = generate_predictions(sessions, sessions)
    assert preds["nextFastSuccess"]["probability"] == 0.95
    assert preds["optimalSchedule"]["recommendedType"] == "18:6"
    assert preds["optimalSchedule"]["expectedDuration"] == 18
    assert preds["optimalSchedule"]["recommendedStartTime"] == "8:00 PM"

    failing = [_session(i, status="broken") for i in range(5)]
    assert generate_predictions(failing, [])["nextFastSuccess"]["probability"] == 0.3


def test_weight_projection_extrapolates_trend():
    sessions = [_session(30 - 10 * i, weight_start=90.0 - i) for i in range(4)]
    projection = generate_predictions(sessions, sessions)["goalProjections"]["weightLossProjection"]
    assert projection["expectedLoss"] == 3.0
    assert projection["confidence"] == 0.7


def test_log_summary_limits_to_given_sessions():
    logs = [
        {"session_id": "a", "log_type": "symptom"},
        {"session_id": "a", "log_type": "emergency"},
        {"session_id": "b", "log_type": "symptom"},
    ]
    summary = summarize_logs(logs, ["a"])
    assert summary == {"total": 2, "byType": {"emergency": 1, "symptom": 1}, "emergencies": 1}


def test_full_analytics_uses_defaults_when_sections_disabled():
    result = generate_fasting_analytics([_session(1)], [], [], timeframe="week", now=NOW)
    assert result["overview"]["totalSessions"] == 1
    assert result["healthImpacts"]["weightProgress"]["trend"] == "stable"
    assert result["predictions"]["nextFastSuccess"]["probability"] == 0.7
    assert result["achievements"] == []


def test_achievements_are_mapped():
    achievements = [
        {
            "id": "a1",
            "achievement_name": "First Fast",
            "achievement_type": "milestone",
            "description": "Completed a fast",
            "earned_at": NOW.isoformat(),
        }
    ]
    result = generate_fasting_analytics([], [], achievements, timeframe="all", now=NOW)
    assert result["achievements"][0]["name"] == "First Fast"
    assert result["achievements"][0]["category"] == "milestone"


def test_malformed_timestamps_are_skipped():
    assert parse_dt("not a date") is None
    assert parse_dt("2024-13-45T99:00:00") is None
    assert parse_dt(None) is None
    assert parse_dt("2024-06-15T20:00:00Z") == NOW

    broken_row = {"status": "completed", "created_at": "garbage", "start_time": "garbage"}
    assert calculate_current_streak([broken_row]) == 0
    assert generate_overview_stats([broken_row], [broken_row])["averageDuration"] == 0.0
