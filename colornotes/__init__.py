import atexit
import os
from flask import Flask, jsonify, request
from flask_limiter import RateLimitExceeded
from dotenv import load_dotenv

from .config import DevConfig, ProdConfig, TestConfig
from .extensions import cors, jwt, limiter
from .common.envelope import failure
from .common.errors import register_error_handlers
from .common.logging import setup_json_logging, register_request_logging


def _config_for(env):
    if env in ("test", "testing"):
        return TestConfig
    if env == "production":
        return ProdConfig
    return DevConfig


def create_app(config_object=None, gateway=None):
    """Application factory.

    ``gateway`` lets the caller inject an already built persistence gateway;
    the caller then owns its lifecycle. Otherwise one is built from the
    config, opened here and closed at interpreter exit.
    """
    # .env if present (dev)
    load_dotenv()

    app = Flask(__name__)

    env = os.getenv("APP_ENV") or os.getenv("FLASK_ENV", "development")
    app.config.from_object(config_object or _config_for(env))

    jwt.init_app(app)

    setup_json_logging(app)
    register_request_logging(app)

    # --- Helpers ---
    def _csv(value, default_if_empty):
        """Split a CSV string into a list, else return the value as is or a default."""
        if value is None:
            return default_if_empty
        if isinstance(value, str) and "," in value:
            items = [x.strip() for x in value.split(",") if x.strip()]
            return items if items else default_if_empty
        return value

    # --- CORS: whitelist + headers ---
    origins = _csv(app.config.get("CORS_ORIGINS", "*"), "*")
    allow_headers = _csv(app.config.get("CORS_ALLOW_HEADERS"), ["Content-Type", "X-Account-Id", "X-User-Id"])
    expose_headers = _csv(app.config.get("CORS_EXPOSE_HEADERS"), ["Content-Type"])

    cors.init_app(app, resources={
        r"/api/*": {
            "origins": origins,
            "allow_headers": allow_headers,
            "expose_headers": expose_headers,
            "supports_credentials": False,
        }
    })

    # Limiter reads RATELIMIT_* from app.config
    limiter.init_app(app)

    # --- Persistence gateway: opened at startup, handed to the repository ---
    from .db.factory import gateway_from_config
    from .notes.repository import NoteRepository

    if gateway is None:
        gateway = gateway_from_config(app.config)
        gateway.open()
        atexit.register(gateway.close)
    elif not gateway.is_open:
        gateway.open()

    app.extensions["persistence_gateway"] = gateway
    app.extensions["note_repository"] = NoteRepository(gateway, schema=app.config.get("ROUTINE_SCHEMA", "functional"))

    # Uniform JSON error envelopes
    register_error_handlers(app)

    # --- Security headers ---
    @app.after_request
    def set_security_headers(resp):
        # JSON API: strict CSP, no HTML expected
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["Referrer-Policy"] = "no-referrer"

        # HSTS only behind HTTPS (prod / reverse proxy)
        if (env == "production" or app.config.get("ENFORCE_HTTPS")) and (
            request.is_secure or request.headers.get("X-Forwarded-Proto", "") == "https"
        ):
            resp.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains; preload"

        return resp

    # --- 429 Rate limit JSON ---
    @app.errorhandler(RateLimitExceeded)
    def handle_rate_limit(e):
        return failure("Rate limit exceeded.", 429, "RATE_LIMITED")

    # --- Blueprints ---
    from .notes.routes import bp as notes_bp
    app.register_blueprint(notes_bp, url_prefix="/api/v1/internal/note")

    from .docs.routes import bp as docs_bp
    app.register_blueprint(docs_bp)

    # Liveness probe
    @app.get("/healthz")
    def healthz():
        return jsonify({
            "status": "ok",
            "env": env,
            "db": "up" if gateway.ping() else "down",
        })

    # Readiness probe (gateway + Redis when the limiter uses it)
    @app.get("/readyz")
    def readyz():
        status = {"db": "down", "redis": "n/a"}
        ok = True

        if gateway.ping():
            status["db"] = "up"
        else:
            ok = False

        uri = app.config.get("RATELIMIT_STORAGE_URI", "memory://")
        if uri.startswith(("redis://", "rediss://")):
            import redis  # late import
            from redis.exceptions import RedisError
            try:
                redis.from_url(uri).ping()
                status["redis"] = "up"
            except RedisError:
                ok = False
                status["redis"] = "down"

        status["status"] = "ok" if ok else "error"
        return jsonify(status), (200 if ok else 503)

    return app
