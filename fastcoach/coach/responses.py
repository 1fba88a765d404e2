from dataclasses import dataclass, field
from typing import Any


@dataclass
class CoachContext:
    intent: str
    message: str
    current_session: dict[str, Any] | None = None
    current_phase: str | None = None
    time_into_fast: float | None = None
    symptoms: list[str] = field(default_factory=list)
    glucose_level: float | None = None
    emergency_level: str | None = None
    fasting_history: list[dict[str, Any]] = field(default_factory=list)

    @property
    def lowered(self) -> str:
        return (self.message or "").lower()


@dataclass
class CoachResponse:
    """Structured coach reply. Only populated fields are serialized."""

    message: str
    tips: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    actions: list[str] = field(default_factory=list)
    urgency: str | None = None
    encouragement: str | None = None
    warning: str | None = None
    # handler-specific fields (followUp, topics, safety_check, ...)
    extras: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"message": self.message}
        for key in ("tips", "recommendations", "actions", "urgency", "encouragement", "warning"):
            val = getattr(self, key)
            if val:
                out[key] = val
        for key, val in self.extras.items():
            if val is not None:
                out[key] = val
        return out
