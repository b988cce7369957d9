import os
from sqlalchemy.pool import StaticPool


def _csv_set(value: str) -> frozenset:
    return frozenset(x.strip() for x in (value or "").split(",") if x.strip())


class BaseConfig:
    # --- Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-jwt-secret-change-me")

    # --- Persistence
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///colornotes-dev.db")
    # "routines": stored routines on the server, "local": in-process routines
    PERSISTENCE_BACKEND = os.getenv("PERSISTENCE_BACKEND", "local")
    ROUTINE_SCHEMA = os.getenv("ROUTINE_SCHEMA", "functional")

    # Pool options, ignored by SQLite
    DATABASE_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": int(os.getenv("DB_POOL_RECYCLE", "300")),
        "pool_size": int(os.getenv("DB_POOL_SIZE", "10")),
        "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", "20")),
    }

    # Error numbers (SQL Server) / SQLSTATEs (PostgreSQL) raised by routines for rule violations
    DOMAIN_RULE_ERROR_CODES = _csv_set(os.getenv("DOMAIN_RULE_ERROR_CODES", "51000,P0001"))
    NOTE_QUOTA_PER_ACCOUNT = int(os.getenv("NOTE_QUOTA_PER_ACCOUNT", "1000"))

    # --- Caller identity
    IDENTITY_SOURCE = os.getenv("IDENTITY_SOURCE", "headers")  # "headers" | "jwt"
    ACCOUNT_ID_HEADER = os.getenv("ACCOUNT_ID_HEADER", "X-Account-Id")
    USER_ID_HEADER = os.getenv("USER_ID_HEADER", "X-User-Id")

    # --- JWT
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ACCOUNT_CLAIM = os.getenv("JWT_ACCOUNT_CLAIM", "account_id")

    # --- CORS (strings CSV -> split in create_app)
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    CORS_ALLOW_HEADERS = os.getenv(
        "CORS_ALLOW_HEADERS", "Content-Type,Authorization,X-Account-Id,X-User-Id,X-Request-Id"
    )
    CORS_EXPOSE_HEADERS = os.getenv("CORS_EXPOSE_HEADERS", "Content-Type,X-Request-Id")

    # --- Rate limit
    RATELIMIT_ENABLED = os.getenv("RATELIMIT_ENABLED", "true").lower() == "true"
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", None)
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")  # prod: redis://redis:6379/0
    RATELIMIT_NOTES = os.getenv("RATELIMIT_NOTES", "60/minute")

    # --- HTTP security
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", "1000000"))
    ENFORCE_HTTPS = os.getenv("ENFORCE_HTTPS", "false").lower() == "true"


class DevConfig(BaseConfig):
    DEBUG = True


class ProdConfig(BaseConfig):
    DEBUG = False
    PERSISTENCE_BACKEND = os.getenv("PERSISTENCE_BACKEND", "routines")


class TestConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    PERSISTENCE_BACKEND = "local"
    # in-memory SQLite must share a single connection
    DATABASE_ENGINE_OPTIONS = {
        "poolclass": StaticPool,
        "connect_args": {"check_same_thread": False},
    }
    RATELIMIT_ENABLED = False
    NOTE_QUOTA_PER_ACCOUNT = 1000
