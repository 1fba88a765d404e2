from .intents import classify_intent, INTENTS
from .handlers import generate_coach_response
from .responses import CoachContext, CoachResponse

__all__ = [
    "classify_intent",
    "INTENTS",
    "generate_coach_response",
    "CoachContext",
    "CoachResponse",
]
