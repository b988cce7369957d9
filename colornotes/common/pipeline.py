"""Request gating shared by every note operation.

A view decorated with ``note_operation`` only runs once the caller identity
has been derived and the operation schema has accepted the request. Each
schema field names the single source it is read from in its metadata
(``location``: ``path``, ``query`` or ``json``); a key found anywhere else is
ignored, so no two sources ever compete for the same field.
"""
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from functools import wraps
from typing import Any

from flask import request
from marshmallow import Schema, ValidationError

from colornotes.common.errors import ValidationFailed
from colornotes.common.identity import CallerIdentity, current_identity
from colornotes.common.logging import current_request_id

logger = logging.getLogger("colornotes.pipeline")

LOCATIONS = ("path", "query", "json")


class OperationKind(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class ValidatedRequest:
    identity: CallerIdentity
    params: Any
    kind: OperationKind


def _json_body() -> Mapping:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ValidationFailed({"_schema": ["Request body must be a JSON object."]})
    return payload


def build_candidate(schema: Schema, path_args: Mapping) -> dict:
    """Collect the raw value of every declared field from its own source."""
    sources = {"path": path_args, "query": request.args}
    candidate = {}
    for name, field in schema.fields.items():
        location = field.metadata.get("location", "json")
        if location not in LOCATIONS:
            raise ValueError(f"Unknown field location {location!r} on {name}")
        if location == "json" and "json" not in sources:
            sources["json"] = _json_body()
        source = sources[location]
        key = field.data_key or name
        if key in source:
            candidate[key] = source[key]
    return candidate


def note_operation(kind: OperationKind, schema: Schema):
    """
    Ex: @note_operation(OperationKind.READ, NoteRefSchema())
        def get_note(validated): ...
    """
    def wrapper(fn):
        @wraps(fn)
        def inner(**path_args):
            # identity first: an anonymous request never reaches validation
            identity = current_identity()

            candidate = build_candidate(schema, path_args)
            try:
                params = schema.load(candidate)
            except ValidationError as e:
                logger.info(
                    "validation_failed",
                    extra={"request_id": current_request_id(), "operation": kind.value,
                           "fields": sorted(e.messages) if isinstance(e.messages, dict) else []},
                )
                raise ValidationFailed(e.messages)

            return fn(ValidatedRequest(identity=identity, params=params, kind=kind))
        return inner
    return wrapper
