import os


def _csv(value: str) -> list:
    return [v.strip() for v in value.split(",") if v.strip()]


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")

    DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///fastcoach.db")
    if DATABASE_URL.startswith("postgres://"):
        DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer tokens issued by the auth provider
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", SECRET_KEY)
    JWT_ALGORITHM = "HS256"
    TOKEN_TTL_DAYS = int(os.environ.get("TOKEN_TTL_DAYS", "30"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    ALLOWED_ORIGINS = _csv(os.environ.get("ALLOWED_ORIGINS", ""))

    # Flask-Limiter reads these
    RATELIMIT_DEFAULT = os.environ.get("RATELIMIT_DEFAULT", "100 per hour")
    RATELIMIT_ENABLED = True

    HISTORY_DEFAULT_LIMIT = 10
    HISTORY_MAX_LIMIT = 100

    # two weeks; also keeps planned_end_time inside datetime range
    MAX_PLANNED_HOURS = int(os.environ.get("MAX_PLANNED_HOURS", "336"))


class ProductionConfig(Config):
    pass


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    JWT_SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    RATELIMIT_ENABLED = False
    LOG_LEVEL = "WARNING"
