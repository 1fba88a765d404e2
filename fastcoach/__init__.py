import secrets
import time

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from .config import ProductionConfig
from .errors import ApiError
from .extensions import db, limiter, cors
from .logs import configure_logging, log_event


def create_app(config_object=None):
    app = Flask(__name__)
    app.config.from_object(config_object or ProductionConfig)

    # Init extensions
    db.init_app(app)
    limiter.init_app(app)
    cors.init_app(
        app,
        origins=app.config["ALLOWED_ORIGINS"] or "*",
    )

    configure_logging(app)

    # ------------------------
    # Request lifecycle hooks
    # ------------------------
    @app.before_request
    def _before():
        g.request_start = time.time()
        g.request_id = request.headers.get("X-Request-Id") or secrets.token_hex(8)

    @app.after_request
    def _after(response):
        # security headers
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains"

        dur_ms = (time.time() - getattr(g, "request_start", time.time())) * 1000
        log_event(
            level="DEBUG",
            msg="request_end",
            request_id=getattr(g, "request_id", None),
            method=request.method,
            path=request.path,
            status=response.status_code,
            duration_ms=int(dur_ms),
        )

        response.headers["X-Request-Id"] = getattr(g, "request_id", "")
        return response

    # ------------------------
    # Health endpoint
    # ------------------------
    @app.route("/health")
    def health():
        return jsonify({"status": "ok"}), 200

    # ------------------------
    # Error handlers
    # ------------------------
    @app.errorhandler(ApiError)
    def handle_api_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return jsonify({"error": e.name, "message": e.description}), e.code

    @app.errorhandler(Exception)
    def handle_exception(e):
        app.logger.exception(str(e))
        db.session.rollback()
        return jsonify({"error": "Internal server error"}), 500

    from .api import api_bp
    app.register_blueprint(api_bp, url_prefix="/api/v1")

    from . import models  # noqa: F401  (register tables)
    with app.app_context():
        db.create_all()

    return app
