import json
import logging
from datetime import datetime, timezone

from flask import has_request_context, request, g

logger = logging.getLogger("fastcoach")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with request fields when inside a request."""

    def format(self, record):
        log_record = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "path": None,
            "method": None,
            "request_id": None,
        }
        if has_request_context():
            log_record["path"] = request.path
            log_record["method"] = request.method
            log_record["request_id"] = getattr(g, "request_id", None)
        if record.exc_info:
            log_record["exc"] = self.formatException(record.exc_info)
        return json.dumps(log_record, default=str)


def configure_logging(app):
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())

    for target in (app.logger, logger):
        # create_app can run many times in one process (tests)
        for old in list(target.handlers):
            if isinstance(old.formatter, JSONFormatter):
                target.removeHandler(old)
        target.addHandler(handler)
        target.setLevel(app.config["LOG_LEVEL"])
    logger.propagate = False


def log_event(level="INFO", **fields):
    # structured domain events
    fields.setdefault("ts", datetime.now(timezone.utc).isoformat())
    logger.log(logging.getLevelName(level), json.dumps(fields, default=str))
