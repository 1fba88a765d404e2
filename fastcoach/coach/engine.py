"""Request-scoped fasting coach: loads context, dispatches, logs the exchange."""

from typing import Any

from fastcoach.coach.handlers import generate_coach_response
from fastcoach.coach.intents import classify_intent
from fastcoach.coach.responses import CoachContext, CoachResponse
from fastcoach.logbook import record_log
from fastcoach.sessions import SessionService

HISTORY_CONTEXT_SIZE = 5


class FastingCoach:
    """Built per request with the datastore session it should use."""

    def __init__(self, db_session, user_id: str) -> None:
        self.db_session = db_session
        self.user_id = user_id
        self.sessions = SessionService(db_session, user_id)

    def respond(
        self,
        message: str,
        session_id: str | None = None,
        current_phase: str | None = None,
        time_into_fast: float | None = None,
        symptoms: list[str] | None = None,
        glucose_level: float | None = None,
        emergency_level: str | None = None,
    ) -> CoachResponse:
        intent = classify_intent(message)

        history = [s.to_dict() for s in self.sessions.history(limit=HISTORY_CONTEXT_SIZE)]
        current: dict[str, Any] | None = None
        if session_id:
            current = self.sessions.get(session_id).to_dict()

        ctx = CoachContext(
            intent=intent,
            message=message,
            current_session=current,
            current_phase=current_phase,
            time_into_fast=time_into_fast,
            symptoms=list(symptoms or []),
            glucose_level=glucose_level,
            emergency_level=emergency_level,
            fasting_history=history,
        )
        response = generate_coach_response(ctx)

        if session_id:
            record_log(
                self.db_session,
                session_id=session_id,
                user_id=self.user_id,
                log_type="coach_interaction",
                value={
                    "user_message": message,
                    "coach_response": response.message,
                    "intent": intent,
                    "emergency_level": emergency_level,
                },
                ai_response=response.message,
            )

        return response
