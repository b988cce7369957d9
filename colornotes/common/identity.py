from dataclasses import dataclass

from flask import current_app, request
from flask_jwt_extended import get_jwt, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from colornotes.common.errors import Unauthorized


@dataclass(frozen=True)
class CallerIdentity:
    account_id: int
    user_id: int


def _positive_int(raw):
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        value = raw
    else:
        try:
            value = int(str(raw).strip())
        except (TypeError, ValueError):
            return None
    return value if value > 0 else None


def _raw_ids_from_headers():
    cfg = current_app.config
    return (
        request.headers.get(cfg.get("ACCOUNT_ID_HEADER", "X-Account-Id")),
        request.headers.get(cfg.get("USER_ID_HEADER", "X-User-Id")),
    )


def _raw_ids_from_jwt():
    try:
        verify_jwt_in_request()
    except (JWTExtendedException, PyJWTError):
        raise Unauthorized("Missing or invalid access token.")
    claims = get_jwt() or {}
    return claims.get(current_app.config.get("JWT_ACCOUNT_CLAIM", "account_id")), claims.get("sub")


def current_identity() -> CallerIdentity:
    """Derive the caller identity from trusted request metadata.

    Raises Unauthorized when either id is absent, not an integer or not positive.
    The request body is never consulted.
    """
    if current_app.config.get("IDENTITY_SOURCE", "headers") == "jwt":
        raw_account, raw_user = _raw_ids_from_jwt()
    else:
        raw_account, raw_user = _raw_ids_from_headers()

    account_id = _positive_int(raw_account)
    user_id = _positive_int(raw_user)
    if account_id is None or user_id is None:
        raise Unauthorized()
    return CallerIdentity(account_id=account_id, user_id=user_id)
