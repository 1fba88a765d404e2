"""Per-intent response handlers and the dispatch table that picks one."""

from typing import Callable

from fastcoach.coach.intents import (
    INTENT_DIFFICULTY, INTENT_EMERGENCY, INTENT_HEALTH_CONCERN,
    INTENT_INFORMATION, INTENT_MOTIVATION, INTENT_SCHEDULE,
)
from fastcoach.coach.responses import CoachContext, CoachResponse

DIFFICULTY_WARNING_HOURS = 20
HYPOGLYCEMIA_GLUCOSE = 70
LOW_GLUCOSE = 80
AUTOPHAGY_HOURS = 12


def _hours(value) -> str:
    if value is None:
        return "X"
    return f"{value:g}"


# ---- Intent handlers ----

def handle_emergency(ctx: CoachContext) -> CoachResponse:
    return CoachResponse(
        message=(
            "I'm concerned about your symptoms. For your safety, I recommend breaking your "
            "fast immediately. Please have a small snack with some carbohydrates and contact "
            "your healthcare provider if symptoms persist."
        ),
        urgency="high",
        actions=["break_fast", "contact_healthcare"],
        recommendations=[
            "Have 15-20g of fast-acting carbohydrates",
            "Sit down and rest",
            "Monitor your symptoms",
            "Contact your doctor if symptoms worsen",
        ],
        extras={"followUp": "Please let me know how you're feeling in 15-20 minutes."},
    )


def handle_fasting_difficulty(ctx: CoachContext) -> CoachResponse:
    text = ctx.lowered
    hours = ctx.time_into_fast

    if "hungry" in text:
        phase_info = None
        if ctx.current_phase:
            phase_info = (
                f"You're in the {ctx.current_phase} phase where your body is optimizing fat burning."
            )
        return CoachResponse(
            message=(
                "I understand you're feeling hungry. This is completely normal around hour "
                f"{_hours(hours)}. Your body is transitioning to fat burning mode. This feeling "
                "typically passes in 20-30 minutes."
            ),
            tips=[
                "Drink a large glass of water with a pinch of sea salt",
                "Try some light movement or a short walk",
                "Practice deep breathing exercises",
                "Remember why you started this journey",
            ],
            encouragement="You're doing amazing! This is exactly when the metabolic magic happens.",
            extras={"phase_info": phase_info},
        )

    if "tired" in text or "weak" in text:
        warning = None
        if hours is not None and hours > DIFFICULTY_WARNING_HOURS:
            warning = (
                f"Since you've been fasting for over {DIFFICULTY_WARNING_HOURS} hours, listen to "
                "your body carefully. If fatigue is severe, consider breaking your fast."
            )
        return CoachResponse(
            message=(
                "Feeling tired during fasting is common as your body adapts. You're currently "
                f"{_hours(hours)} hours into your fast, which is when energy levels often dip "
                "before stabilizing."
            ),
            tips=[
                "Ensure you're staying well hydrated",
                "Consider some light stretching or yoga",
                "Get some fresh air if possible",
                "Avoid intense physical activity right now",
            ],
            warning=warning,
        )

    return CoachResponse(
        message=(
            "I hear that you're finding this challenging. That's completely normal and shows "
            "you're pushing your comfort zone in a healthy way."
        ),
        tips=[
            "Focus on staying hydrated",
            "Distract yourself with a light activity",
            "Remember that cravings come in waves and will pass",
            "Think about how accomplished you'll feel when you complete this",
        ],
        encouragement="Every minute you continue is improving your insulin sensitivity and metabolic health!",
    )


def handle_health_concern(ctx: CoachContext) -> CoachResponse:
    glucose = ctx.glucose_level

    if glucose is None:
        return CoachResponse(
            message=(
                "I'm here to help with any health concerns during your fast. "
                "Your safety is the top priority."
            ),
            recommendations=[
                "Always listen to your body",
                "Break your fast if you feel unwell",
                "Stay hydrated throughout",
                "Contact healthcare providers for serious concerns",
            ],
        )

    if glucose < HYPOGLYCEMIA_GLUCOSE:
        return CoachResponse(
            message=(
                f"Your glucose level of {glucose:g} mg/dL is concerning. This is considered "
                "hypoglycemic. Please break your fast immediately for your safety."
            ),
            urgency="high",
            actions=["break_fast_immediately"],
            recommendations=[
                "Have 15-20g of fast-acting carbohydrates immediately",
                "Recheck glucose in 15 minutes",
                "Contact your healthcare provider",
            ],
        )

    if glucose < LOW_GLUCOSE:
        return CoachResponse(
            message=(
                f"Your glucose level of {glucose:g} mg/dL is on the lower side. Please monitor "
                "closely and consider breaking your fast if you feel unwell."
            ),
            urgency="medium",
            recommendations=[
                "Stay close to food and glucose tablets",
                "Monitor for symptoms of hypoglycemia",
                "Consider shortening your fast today",
            ],
        )

    return CoachResponse(
        message=f"Your glucose level of {glucose:g} mg/dL looks good for fasting. This is within a healthy range.",
        encouragement="Great job! Your body is responding well to the fast.",
        tips=["Continue staying hydrated", "Monitor how you feel"],
    )


def provide_motivation(ctx: CoachContext) -> CoachResponse:
    completed = sum(1 for s in ctx.fasting_history if s.get("status") == "completed")

    progress = None
    if ctx.time_into_fast:
        progress = f"You're already {_hours(ctx.time_into_fast)} hours in - that's incredible progress!"

    phase_benefits = None
    if ctx.current_phase == "deep":
        phase_benefits = (
            "You're in the deep fasting phase where autophagy is ramping up - your cells are "
            "literally cleaning and repairing themselves!"
        )

    return CoachResponse(
        message=(
            "Remember why you started this journey - to improve your health and reverse diabetes. "
            f"You've already completed {completed} successful fasts!"
        ),
        encouragement="You're stronger than you think, and your future self will thank you for not giving up.",
        extras={
            "motivation": [
                "Every hour of fasting is improving your insulin sensitivity",
                "You're literally giving your digestive system a healing break",
                "Your body is learning to burn fat more efficiently",
                "You're building mental resilience and discipline",
            ],
            "progress": progress,
            "phase_benefits": phase_benefits,
        },
    )


def handle_schedule_adjustment(ctx: CoachContext) -> CoachResponse:
    text = ctx.lowered

    if "extend" in text:
        return CoachResponse(
            message="I can help you safely extend your fast. However, let's make sure you're feeling well first.",
            recommendations=[
                "Only extend if you're feeling strong and energetic",
                "Don't extend beyond your experience level",
                "Have an exit strategy ready",
            ],
            extras={
                "safety_check": [
                    "How are your energy levels (1-10)?",
                    "Any concerning symptoms?",
                    "What's your current glucose level?",
                    "How much water have you had today?",
                ],
            },
        )

    if "shorten" in text:
        return CoachResponse(
            message="It's perfectly fine to shorten your fast. Listening to your body is always the right choice.",
            encouragement=(
                "Any amount of fasting provides benefits. You should be proud of what you've "
                "accomplished so far!"
            ),
            tips=[
                "Break your fast gently with something light",
                "Focus on protein and healthy fats",
                "Avoid large meals immediately",
            ],
        )

    return CoachResponse(
        message="I can help you adjust your fasting schedule. What specific changes would you like to make?",
        extras={
            "options": [
                "Extend current fast (with safety checks)",
                "Shorten current fast",
                "Adjust future fasting windows",
                "Change fasting frequency",
            ],
        },
    )


def provide_education(ctx: CoachContext) -> CoachResponse:
    text = ctx.lowered

    if "autophagy" in text:
        hours = ctx.time_into_fast
        if hours is not None and hours >= AUTOPHAGY_HOURS:
            status = "Based on your current fast duration, autophagy processes are likely active!"
        else:
            status = "You're getting close to the autophagy activation window!"
        return CoachResponse(
            message=(
                "Autophagy is your body's cellular cleanup process. It typically begins around "
                "12-16 hours of fasting and increases significantly after 24 hours."
            ),
            extras={
                "education": [
                    "Autophagy removes damaged proteins and organelles",
                    "It's like a cellular recycling program",
                    "This process may help with longevity and disease prevention",
                    "Exercise and certain foods can also stimulate autophagy",
                ],
                "current_status": status,
            },
        )

    if "ketosis" in text:
        return CoachResponse(
            message=(
                "Ketosis is when your body switches from burning glucose to burning fat for fuel, "
                "producing ketones."
            ),
            tips=[
                "Stay hydrated to support ketone production",
                "Light exercise can help accelerate ketosis",
                "Don't worry if you don't feel it immediately - everyone is different",
            ],
            extras={
                "education": [
                    "Ketosis typically begins 12-24 hours into a fast",
                    "Signs include reduced hunger, mental clarity, and slight metallic taste",
                    "Ketones are an efficient fuel source for your brain",
                    "This is when you get the 'fasting high' feeling",
                ],
            },
        )

    return CoachResponse(
        message="I'm here to educate you about fasting! What would you like to learn about?",
        extras={
            "topics": [
                "Autophagy and cellular repair",
                "Ketosis and fat burning",
                "Insulin sensitivity improvements",
                "Different fasting protocols",
                "Breaking fasts safely",
            ],
        },
    )


def provide_general_support(ctx: CoachContext) -> CoachResponse:
    return CoachResponse(
        message=(
            "I'm your fasting coach, here to support you through your fasting journey. "
            "How can I help you today?"
        ),
        extras={
            "capabilities": [
                "Answer questions about fasting",
                "Provide motivation and encouragement",
                "Help with fasting difficulties",
                "Offer safety guidance",
                "Adjust your fasting schedule",
            ],
            "reminder": (
                "Remember, I'm here 24/7 to support you. Never hesitate to reach out if you "
                "need help or have concerns."
            ),
        },
    )


# ---- Dispatch ----

Predicate = Callable[[CoachContext], bool]
Handler = Callable[[CoachContext], CoachResponse]


def _intent_is(name: str) -> Predicate:
    return lambda ctx: ctx.intent == name


def _is_emergency(ctx: CoachContext) -> bool:
    return ctx.intent == INTENT_EMERGENCY or ctx.emergency_level == "high"


DISPATCH: list[tuple[Predicate, Handler]] = [
    (_is_emergency, handle_emergency),
    (_intent_is(INTENT_DIFFICULTY), handle_fasting_difficulty),
    (_intent_is(INTENT_HEALTH_CONCERN), handle_health_concern),
    (_intent_is(INTENT_MOTIVATION), provide_motivation),
    (_intent_is(INTENT_SCHEDULE), handle_schedule_adjustment),
    (_intent_is(INTENT_INFORMATION), provide_education),
]


def select_handler(ctx: CoachContext) -> Handler:
    for predicate, handler in DISPATCH:
        if predicate(ctx):
            return handler
    return provide_general_support


def generate_coach_response(ctx: CoachContext) -> CoachResponse:
    return select_handler(ctx)(ctx)
