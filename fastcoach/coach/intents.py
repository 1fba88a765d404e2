"""Keyword intent classifier for the fasting coach.

Rules are checked in list order and the first category with a keyword hit
wins, so emergency keywords always dominate.
"""

from dataclasses import dataclass

INTENT_EMERGENCY = "emergency"
INTENT_DIFFICULTY = "fasting_difficulty"
INTENT_HEALTH_CONCERN = "health_concern"
INTENT_MOTIVATION = "motivation_need"
INTENT_SCHEDULE = "schedule_adjustment"
INTENT_INFORMATION = "information_request"

INTENTS = (
    INTENT_EMERGENCY,
    INTENT_DIFFICULTY,
    INTENT_HEALTH_CONCERN,
    INTENT_MOTIVATION,
    INTENT_SCHEDULE,
    INTENT_INFORMATION,
)


@dataclass(frozen=True)
class IntentRule:
    name: str
    keywords: tuple[str, ...]

    def matches(self, text: str) -> bool:
        return any(k in text for k in self.keywords)


RULES: list[IntentRule] = [
    IntentRule(INTENT_EMERGENCY, ("dizzy", "nauseous", "chest pain", "emergency", "help", "stop")),
    IntentRule(INTENT_DIFFICULTY, ("hungry", "craving", "difficult", "hard", "tired", "weak")),
    IntentRule(INTENT_HEALTH_CONCERN, ("glucose", "blood sugar", "symptom", "feel")),
    IntentRule(INTENT_MOTIVATION, ("quit", "give up", "motivation", "encourage")),
    IntentRule(INTENT_SCHEDULE, ("extend", "shorten", "adjust", "change")),
]


def classify_intent(message: str) -> str:
    """Return the intent label for *message*."""
    text = (message or "").lower()
    for rule in RULES:
        if rule.matches(text):
            return rule.name
    return INTENT_INFORMATION
