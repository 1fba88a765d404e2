"""Best-effort writes of FastingLog rows.

A failed log write is rolled back and reported as a warning event; it never
changes what the caller gets back.
"""

from sqlalchemy.exc import SQLAlchemyError

from .logs import log_event
from .models import FastingLog, LOG_TYPES


def record_log(db_session, session_id, user_id, log_type, value=None, ai_response=None):
    """Append a log row and commit. Returns the row, or None if the write failed."""
    if log_type not in LOG_TYPES:
        raise ValueError(f"unknown log type: {log_type}")

    try:
        row = FastingLog(
            session_id=session_id,
            user_id=user_id,
            log_type=log_type,
            value=value,
            ai_response=ai_response,
        )
        db_session.add(row)
        db_session.commit()
        return row
    except SQLAlchemyError as e:
        db_session.rollback()
        log_event(
            level="WARNING",
            msg="fasting_log_write_failed",
            session_id=session_id,
            log_type=log_type,
            err=str(e),
        )
        return None
