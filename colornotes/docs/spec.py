# colornotes/docs/spec.py
from apispec import APISpec
from apispec.ext.marshmallow import MarshmallowPlugin
from marshmallow import Schema, fields

from colornotes.notes.schemas import NoteCreateIn, NoteIdOut, NoteListQuery, NoteOut, NoteUpdateIn

NOTES_PATH = "/api/v1/internal/note"


class ErrorBodySchema(Schema):
    code = fields.String(required=True)
    message = fields.String(required=True)
    details = fields.Dict()


class ErrorEnvelopeSchema(Schema):
    success = fields.Boolean(required=True)
    error = fields.Nested(ErrorBodySchema, required=True)
    timestamp = fields.DateTime(required=True)


class _UpdateBodySchema(NoteUpdateIn):
    class Meta:
        exclude = ("note_id",)


def _ref(name: str):
    return {"$ref": f"#/components/schemas/{name}"}


def _envelope(data_schema):
    return {
        "type": "object",
        "properties": {
            "success": {"type": "boolean"},
            "data": data_schema,
            "timestamp": {"type": "string", "format": "date-time"},
        },
    }


def _ok(data_schema):
    return {"description": "OK", "content": {"application/json": {"schema": _envelope(data_schema)}}}


def _err(description):
    return {"description": description, "content": {"application/json": {"schema": _ref("ErrorEnvelope")}}}


_ID_PARAM = {"in": "path", "name": "id", "required": True, "schema": {"type": "integer", "minimum": 1}}
_IDENTITY = [{"accountId": [], "userId": []}]


def build_spec():
    spec = APISpec(
        title="Color Notes API",
        version="1.0.0",
        openapi_version="3.0.3",
        info={"description": "Account-scoped color notes: OpenAPI spec"},
        plugins=[MarshmallowPlugin()],
    )

    # identity headers set by the trusted front proxy
    spec.components.security_scheme("accountId", {"type": "apiKey", "in": "header", "name": "X-Account-Id"})
    spec.components.security_scheme("userId", {"type": "apiKey", "in": "header", "name": "X-User-Id"})

    spec.components.schema("NoteCreate", schema=NoteCreateIn)
    spec.components.schema("NoteUpdate", schema=_UpdateBodySchema)
    spec.components.schema("Note", schema=NoteOut)
    spec.components.schema("NoteId", schema=NoteIdOut)
    spec.components.schema("ErrorEnvelope", schema=ErrorEnvelopeSchema)

    unauthorized = _err("Caller identity missing or invalid")
    invalid = _err("Validation failed")
    missing = _err("Note not found in the caller's account")

    spec.path(
        path=NOTES_PATH,
        operations={
            "get": {
                "summary": "List my notes",
                "security": _IDENTITY,
                "parameters": [{"in": "query", "schema": NoteListQuery}],
                "responses": {"200": _ok({"type": "array", "items": _ref("Note")}),
                              "400": invalid, "401": unauthorized},
            },
            "post": {
                "summary": "Create note",
                "security": _IDENTITY,
                "requestBody": {"required": True, "content": {"application/json": {"schema": _ref("NoteCreate")}}},
                "responses": {"200": _ok(_ref("NoteId")), "400": invalid, "401": unauthorized},
            },
        },
    )

    spec.path(
        path=NOTES_PATH + "/{id}",
        operations={
            "get": {
                "summary": "Get note by id",
                "security": _IDENTITY,
                "parameters": [_ID_PARAM],
                "responses": {"200": _ok(_ref("Note")), "400": invalid, "401": unauthorized, "404": missing},
            },
            "put": {
                "summary": "Replace note title, content and color",
                "security": _IDENTITY,
                "parameters": [_ID_PARAM],
                "requestBody": {"required": True, "content": {"application/json": {"schema": _ref("NoteUpdate")}}},
                "responses": {"200": _ok(_ref("NoteId")), "400": invalid, "401": unauthorized, "404": missing},
            },
            "delete": {
                "summary": "Delete note",
                "security": _IDENTITY,
                "parameters": [_ID_PARAM],
                "responses": {"200": _ok(_ref("NoteId")), "400": invalid, "401": unauthorized, "404": missing},
            },
        },
    )

    return spec.to_dict()
