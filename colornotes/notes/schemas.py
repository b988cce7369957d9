from marshmallow import Schema, fields, validate, post_load

from colornotes.notes.models import (
    DEFAULT_COLOR, DEFAULT_ORDER, HEX_COLOR, SORT_ORDERS,
    NoteCreateParams, NoteListParams, NoteRef, NoteUpdateParams,
)

_hex_color = validate.Regexp(HEX_COLOR, error="Must be a hexadecimal color like #A1B2C3.")

# idNote is a 32-bit INT in the routines
MAX_NOTE_ID = 2**31 - 1


def _note_id():
    return fields.Integer(
        required=True, data_key="id", validate=validate.Range(min=1, max=MAX_NOTE_ID),
        metadata={"location": "path"},
    )


def _title():
    return fields.String(required=True, data_key="titulo", validate=validate.Length(min=3, max=100),
                         metadata={"location": "json"})


def _content():
    return fields.String(required=True, data_key="conteudo", validate=validate.Length(min=1, max=5000),
                         metadata={"location": "json"})


# ---- inbound, one per operation ----

class NoteListQuery(Schema):
    color_filter = fields.String(data_key="filtroCor", load_default=None, validate=_hex_color,
                                 metadata={"location": "query"})
    order = fields.String(data_key="ordem", load_default=DEFAULT_ORDER, validate=validate.OneOf(SORT_ORDERS),
                          metadata={"location": "query"})

    @post_load
    def make_params(self, data, **kwargs):
        return NoteListParams(**data)


class NoteCreateIn(Schema):
    title = _title()
    content = _content()
    color = fields.String(data_key="cor", load_default=DEFAULT_COLOR, validate=_hex_color,
                          metadata={"location": "json"})

    @post_load
    def make_params(self, data, **kwargs):
        return NoteCreateParams(**data)


class NoteRefIn(Schema):
    note_id = _note_id()

    @post_load
    def make_params(self, data, **kwargs):
        return NoteRef(**data)


class NoteUpdateIn(Schema):
    note_id = _note_id()
    title = _title()
    content = _content()
    color = fields.String(required=True, data_key="cor", validate=_hex_color,
                          metadata={"location": "json"})

    @post_load
    def make_params(self, data, **kwargs):
        return NoteUpdateParams(**data)


# ---- outbound ----

class NoteOut(Schema):
    id = fields.Integer(required=True, data_key="idNote")
    account_id = fields.Integer(required=True, data_key="idAccount")
    title = fields.String(required=True, data_key="titulo")
    content = fields.String(required=True, data_key="conteudo")
    color = fields.String(required=True, data_key="cor")
    created_at = fields.DateTime(required=True, data_key="dataCriacao")
    updated_at = fields.DateTime(allow_none=True, data_key="dataAtualizacao")


class NoteIdOut(Schema):
    idNote = fields.Integer(required=True)
