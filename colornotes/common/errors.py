import logging

from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from colornotes.common.envelope import failure

logger = logging.getLogger("colornotes.error")


class ApiError(Exception):
    def __init__(self, message, status_code=400, code="BAD_REQUEST", details=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details or {}


class Unauthorized(ApiError):
    def __init__(self, message="Unauthorized access."):
        super().__init__(message, 401, "UNAUTHORIZED")


class ValidationFailed(ApiError):
    def __init__(self, details, message="Validation failed."):
        super().__init__(message, 400, "VALIDATION_ERROR", details)


class NotFound(ApiError):
    def __init__(self, message="Note not found."):
        super().__init__(message, 404, "NOT_FOUND")


class DomainRule(ApiError):
    """A business rule enforced by the persistence layer rejected the operation."""

    def __init__(self, message):
        super().__init__(message, 400, "DOMAIN_RULE")


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(e: ApiError):
        return failure(e.message, e.status_code, e.code, e.details)

    @app.errorhandler(ValidationError)
    def handle_validation_error(e: ValidationError):
        return failure("Validation failed.", 400, "VALIDATION_ERROR", e.messages)

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        # Ex: 404, 405, 413…
        return failure(e.description or "HTTP error", e.code or 500, "HTTP_ERROR")

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        # traceback stays in the logs, never in the response
        logger.exception("unexpected_error", extra={"error_type": type(e).__name__})
        return failure("Internal server error.", 500, "INTERNAL_ERROR")
