# tests/test_pipeline.py
import pytest
from flask_jwt_extended import create_access_token

from colornotes import create_app
from colornotes.common.pipeline import OperationKind, ValidatedRequest, build_candidate
from colornotes.config import TestConfig
from colornotes.db.gateway import Cardinality
from colornotes.notes.models import DEFAULT_ORDER, NoteListParams, NoteUpdateParams
from colornotes.notes.schemas import NoteListQuery, NoteUpdateIn
from conftest import NOTES


class RecordingGateway:
    """Stands in for the persistence gateway and remembers every call."""

    is_open = True

    def __init__(self):
        self.calls = []

    def execute(self, routine, parameters, cardinality):
        self.calls.append((routine, dict(parameters), cardinality))
        return [] if cardinality is Cardinality.MULTI else None

    def ping(self):
        return True


@pytest.fixture()
def recording():
    gw = RecordingGateway()
    return gw, create_app(TestConfig, gateway=gw).test_client()


@pytest.mark.parametrize("headers", [
    {},
    {"X-Account-Id": "1"},
    {"X-User-Id": "1"},
    {"X-Account-Id": "0", "X-User-Id": "1"},
    {"X-Account-Id": "1", "X-User-Id": "-4"},
    {"X-Account-Id": "abc", "X-User-Id": "1"},
    {"X-Account-Id": "", "X-User-Id": ""},
])
def test_missing_identity_is_unauthorized_before_validation(recording, headers):
    gw, client = recording
    # body is invalid as well: identity must win
    r = client.post(NOTES, headers=headers, json={"titulo": "x", "conteudo": ""})
    assert r.status_code == 401
    body = r.get_json()
    assert body["success"] is False
    assert body["error"]["code"] == "UNAUTHORIZED"
    assert "details" not in body["error"]
    assert gw.calls == []


@pytest.mark.parametrize("method, path", [
    ("get", NOTES), ("get", NOTES + "/1"), ("put", NOTES + "/1"), ("delete", NOTES + "/abc"),
])
def test_every_operation_requires_identity(recording, method, path):
    gw, client = recording
    r = getattr(client, method)(path, json={})
    assert r.status_code == 401
    assert gw.calls == []


def test_validation_failure_never_reaches_gateway(recording):
    gw, client = recording
    r = client.post(NOTES, headers={"X-Account-Id": "3", "X-User-Id": "4"},
                    json={"titulo": "ab", "conteudo": ""})
    assert r.status_code == 400
    details = r.get_json()["error"]["details"]
    assert set(details) == {"titulo", "conteudo"}
    assert gw.calls == []


def test_valid_request_reaches_gateway_scoped_to_account(recording):
    gw, client = recording
    r = client.get(NOTES + "/42", headers={"X-Account-Id": "3", "X-User-Id": "4"})
    assert r.status_code == 404
    assert gw.calls == [("functional.spNoteGet", {"idAccount": 3, "idNote": 42}, gw.calls[0][2])]


def test_build_candidate_reads_each_field_from_its_own_source():
    app = create_app(TestConfig, gateway=RecordingGateway())
    schema = NoteUpdateIn()
    with app.test_request_context(
        "/api/v1/internal/note/7?titulo=from-query",
        method="PUT",
        json={"id": 99, "titulo": "from body", "conteudo": "c", "cor": "#ABCDEF", "extra": 1},
    ):
        candidate = build_candidate(schema, {"id": "7"})
    assert candidate == {"id": "7", "titulo": "from body", "conteudo": "c", "cor": "#ABCDEF"}

    params = schema.load(candidate)
    assert params == NoteUpdateParams(note_id=7, title="from body", content="c", color="#ABCDEF")


def test_list_query_defaults():
    assert NoteListQuery().load({}) == NoteListParams(color_filter=None, order=DEFAULT_ORDER)


def test_list_ignores_body_fields(recording):
    gw, client = recording
    client.get(NOTES, headers={"X-Account-Id": "1", "X-User-Id": "1"},
               json={"ordem": "titulo_asc", "filtroCor": "#000000"})
    _, params, _ = gw.calls[0]
    assert params == {"idAccount": 1, "filtroCor": None, "ordem": DEFAULT_ORDER}


def test_validated_request_is_frozen():
    from colornotes.common.identity import CallerIdentity
    v = ValidatedRequest(identity=CallerIdentity(1, 2), params=None, kind=OperationKind.READ)
    with pytest.raises(AttributeError):
        v.identity = CallerIdentity(3, 4)


class JwtConfig(TestConfig):
    IDENTITY_SOURCE = "jwt"


def test_identity_from_bearer_token():
    gw = RecordingGateway()
    app = create_app(JwtConfig, gateway=gw)
    client = app.test_client()
    with app.app_context():
        token = create_access_token(identity="8", additional_claims={"account_id": 5})
        no_account = create_access_token(identity="8")

    r = client.get(NOTES + "/1", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 404
    assert gw.calls[-1][1] == {"idAccount": 5, "idNote": 1}

    # headers are not trusted in jwt mode
    r = client.get(NOTES + "/1", headers={"X-Account-Id": "5", "X-User-Id": "8"})
    assert r.status_code == 401

    r = client.get(NOTES + "/1", headers={"Authorization": f"Bearer {no_account}"})
    assert r.status_code == 401

    r = client.get(NOTES + "/1", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401
    assert len(gw.calls) == 1
