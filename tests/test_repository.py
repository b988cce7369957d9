# tests/test_repository.py
from datetime import datetime, timezone

import pytest

from colornotes.common.errors import DomainRule, NotFound
from colornotes.common.identity import CallerIdentity
from colornotes.db.gateway import Cardinality, ErrorKind, GatewayError
from colornotes.notes.models import Note, NoteCreateParams, NoteListParams, NoteRef, NoteUpdateParams
from colornotes.notes.repository import NoteRepository

ME = CallerIdentity(account_id=7, user_id=70)

ROW = {
    "idNote": 3, "idAccount": 7, "titulo": "Title", "conteudo": "Body", "cor": "#FFFFFF",
    "dataCriacao": datetime(2026, 1, 2, 3, 4, 5), "dataAtualizacao": None,
}


class ScriptedGateway:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def execute(self, routine, parameters, cardinality):
        self.calls.append((routine, parameters, cardinality))
        if self.error:
            raise self.error
        return self.result


def test_create_defaults_color_and_scopes_account():
    gw = ScriptedGateway(result={"idNote": 11})
    repo = NoteRepository(gw)
    assert repo.create(ME, NoteCreateParams(title="abc", content="x", color=None)) == {"idNote": 11}
    assert gw.calls == [(
        "functional.spNoteCreate",
        {"idAccount": 7, "titulo": "abc", "conteudo": "x", "cor": "#FFFFFF"},
        Cardinality.SINGLE,
    )]


def test_list_passes_null_filter_and_default_order():
    gw = ScriptedGateway(result=[ROW, dict(ROW, idNote=4)])
    notes = NoteRepository(gw, schema="notes").list(ME, NoteListParams())
    assert [n.id for n in notes] == [3, 4]
    routine, params, cardinality = gw.calls[0]
    assert routine == "notes.spNoteList"
    assert params == {"idAccount": 7, "filtroCor": None, "ordem": "data_criacao_desc"}
    assert cardinality is Cardinality.MULTI


def test_get_shapes_note_with_utc_timestamps():
    note = NoteRepository(ScriptedGateway(result=ROW)).get(ME, NoteRef(3))
    assert isinstance(note, Note)
    assert note.created_at == datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert note.updated_at is None
    assert (note.title, note.content, note.color, note.account_id) == ("Title", "Body", "#FFFFFF", 7)


@pytest.mark.parametrize("call", [
    lambda repo: repo.get(ME, NoteRef(3)),
    lambda repo: repo.delete(ME, NoteRef(3)),
    lambda repo: repo.update(ME, NoteUpdateParams(3, "abc", "x", "#000000")),
])
def test_zero_rows_is_not_found(call):
    with pytest.raises(NotFound):
        call(NoteRepository(ScriptedGateway(result=None)))


@pytest.mark.parametrize("call", [
    lambda repo: repo.get(ME, NoteRef(3)),
    lambda repo: repo.delete(ME, NoteRef(3)),
])
def test_rule_violation_on_lookup_is_not_found(call):
    gw = ScriptedGateway(error=GatewayError(ErrorKind.DOMAIN_RULE, "Note does not exist", "51000"))
    with pytest.raises(NotFound):
        call(NoteRepository(gw))


def test_rule_violation_on_write_is_domain_rule():
    gw = ScriptedGateway(error=GatewayError(ErrorKind.DOMAIN_RULE, "Note limit reached", "51000"))
    with pytest.raises(DomainRule) as exc:
        NoteRepository(gw).create(ME, NoteCreateParams("abc", "x"))
    assert exc.value.message == "Note limit reached"
    assert exc.value.status_code == 400


def test_unexpected_failure_propagates_unchanged():
    boom = GatewayError(ErrorKind.UNEXPECTED, "deadlock")
    with pytest.raises(GatewayError) as exc:
        NoteRepository(ScriptedGateway(error=boom)).update(ME, NoteUpdateParams(3, "abc", "x", "#000000"))
    assert exc.value is boom


def test_one_gateway_call_per_operation():
    gw = ScriptedGateway(result={"idNote": 3})
    repo = NoteRepository(gw)
    repo.update(ME, NoteUpdateParams(3, "abc", "x", "#00FF00"))
    repo.delete(ME, NoteRef(3))
    assert [c[0] for c in gw.calls] == ["functional.spNoteUpdate", "functional.spNoteDelete"]
    assert gw.calls[0][1] == {"idAccount": 7, "idNote": 3, "titulo": "abc", "conteudo": "x", "cor": "#00FF00"}
    assert gw.calls[1][1] == {"idAccount": 7, "idNote": 3}
