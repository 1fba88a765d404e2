from fastcoach.coach import CoachContext, classify_intent, generate_coach_response
from fastcoach.coach.handlers import (
    handle_emergency, handle_health_concern, provide_general_support, select_handler,
)


def _ctx(message="", **kw):
    kw.setdefault("intent", classify_intent(message))
    return CoachContext(message=message, **kw)


def test_low_glucose_is_high_urgency_and_quotes_value():
    body = handle_health_concern(_ctx("my glucose", glucose_level=65)).to_dict()
    assert body["urgency"] == "high"
    assert "break_fast_immediately" in body["actions"]
    assert "65" in body["message"]


def test_borderline_glucose_is_medium_urgency():
    body = handle_health_concern(_ctx("my glucose", glucose_level=75)).to_dict()
    assert body["urgency"] == "medium"
    assert "actions" not in body


def test_normal_glucose_has_no_urgency_and_encourages():
    for g in (80, 85, 140):
        body = handle_health_concern(_ctx("my glucose", glucose_level=g)).to_dict()
        assert "urgency" not in body
        assert body["encouragement"]


def test_health_concern_without_glucose_is_generic_safety_reply():
    body = handle_health_concern(_ctx("I feel off")).to_dict()
    assert "urgency" not in body
    assert body["recommendations"]


def test_high_emergency_level_overrides_intent():
    ctx = _ctx("What is ketosis?", emergency_level="high")
    assert ctx.intent == "information_request"
    assert select_handler(ctx) is handle_emergency

    body = generate_coach_response(ctx).to_dict()
    assert body["urgency"] == "high"
    assert body["actions"] == ["break_fast", "contact_healthcare"]
    assert "followUp" in body


def test_tired_after_twenty_hours_carries_warning():
    late = generate_coach_response(_ctx("I'm so tired", time_into_fast=21)).to_dict()
    assert "warning" in late
    assert "21 hours" in late["message"]

    early = generate_coach_response(_ctx("I'm so tired", time_into_fast=10)).to_dict()
    assert "warning" not in early


def test_hungry_reply_mentions_hour_and_phase():
    body = generate_coach_response(_ctx("so hungry", time_into_fast=14, current_phase="deep")).to_dict()
    assert "hour 14" in body["message"]
    assert "deep phase" in body["phase_info"]


def test_motivation_counts_completed_history():
    history = [{"status": "completed"}, {"status": "broken"}, {"status": "completed"}]
    body = generate_coach_response(_ctx("I want to quit", fasting_history=history)).to_dict()
    assert "completed 2 successful fasts" in body["message"]
    assert len(body["motivation"]) == 4


def test_education_topics():
    autophagy = generate_coach_response(_ctx("tell me about autophagy", time_into_fast=13)).to_dict()
    assert "likely active" in autophagy["current_status"]

    ketosis = generate_coach_response(_ctx("what is ketosis")).to_dict()
    assert ketosis["education"]

    fallback = generate_coach_response(_ctx("hi")).to_dict()
    assert "topics" in fallback


def test_schedule_adjustment_branches():
    extend = generate_coach_response(_ctx("can I extend my fast")).to_dict()
    assert len(extend["safety_check"]) == 4

    shorten = generate_coach_response(_ctx("can I shorten it")).to_dict()
    assert shorten["encouragement"]


def test_unknown_intent_falls_back_to_general_support():
    ctx = CoachContext(intent="something_else", message="")
    assert select_handler(ctx) is provide_general_support
    assert "capabilities" in generate_coach_response(ctx).to_dict()


def test_empty_fields_are_not_serialized():
    body = provide_general_support(_ctx("")).to_dict()
    assert "warning" not in body
    assert "tips" not in body
