from flask import Blueprint, current_app

from colornotes.common.envelope import success
from colornotes.common.pipeline import OperationKind, ValidatedRequest, note_operation
from colornotes.extensions import limiter
from colornotes.notes.repository import NoteRepository
from colornotes.notes.schemas import NoteCreateIn, NoteIdOut, NoteListQuery, NoteOut, NoteRefIn, NoteUpdateIn

bp = Blueprint("notes", __name__)

note_out = NoteOut()
note_out_many = NoteOut(many=True)
note_id_out = NoteIdOut()


def _repository() -> NoteRepository:
    return current_app.extensions["note_repository"]


def _notes_limit():
    return current_app.config.get("RATELIMIT_NOTES", "60/minute")


@bp.get("")
@bp.get("/")
@limiter.limit(_notes_limit)
@note_operation(OperationKind.READ, NoteListQuery())
def list_notes(validated: ValidatedRequest):
    notes = _repository().list(validated.identity, validated.params)
    return success(note_out_many.dump(notes))


@bp.post("")
@bp.post("/")
@limiter.limit(_notes_limit)
@note_operation(OperationKind.CREATE, NoteCreateIn())
def create_note(validated: ValidatedRequest):
    created = _repository().create(validated.identity, validated.params)
    return success(note_id_out.dump(created))


@bp.get("/<id>")
@limiter.limit(_notes_limit)
@note_operation(OperationKind.READ, NoteRefIn())
def get_note(validated: ValidatedRequest):
    note = _repository().get(validated.identity, validated.params)
    return success(note_out.dump(note))


@bp.put("/<id>")
@limiter.limit(_notes_limit)
@note_operation(OperationKind.UPDATE, NoteUpdateIn())
def update_note(validated: ValidatedRequest):
    updated = _repository().update(validated.identity, validated.params)
    return success(note_id_out.dump(updated))


@bp.delete("/<id>")
@limiter.limit(_notes_limit)
@note_operation(OperationKind.DELETE, NoteRefIn())
def delete_note(validated: ValidatedRequest):
    deleted = _repository().delete(validated.identity, validated.params)
    return success(note_id_out.dump(deleted))
