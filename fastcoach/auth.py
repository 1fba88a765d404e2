from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app, g, request

from .errors import Unauthorized


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _secret() -> str:
    return current_app.config["JWT_SECRET_KEY"]


def make_token(user_id: str) -> str:
    ttl = current_app.config.get("TOKEN_TTL_DAYS", 30)
    payload = {
        "sub": str(user_id),
        "iat": int(_now_utc().timestamp()),
        "exp": int((_now_utc() + timedelta(days=ttl)).timestamp()),
    }
    return jwt.encode(payload, _secret(), algorithm=current_app.config["JWT_ALGORITHM"])


def _get_bearer_token() -> str | None:
    h = request.headers.get("Authorization", "")
    if h.startswith("Bearer "):
        return h.split(" ", 1)[1].strip()
    return None


def decode_token(token: str) -> dict:
    return jwt.decode(token, _secret(), algorithms=[current_app.config["JWT_ALGORITHM"]])


def current_user_id() -> str:
    """Return the authenticated user's id or raise Unauthorized."""
    if "user_id" in g:
        return g.user_id

    token = _get_bearer_token()
    if not token:
        raise Unauthorized("Missing Bearer token")

    try:
        payload = decode_token(token)
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise Unauthorized("Invalid token")

    g.user_id = str(user_id)
    return g.user_id
