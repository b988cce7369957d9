# tests/conftest.py
import os, sys
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
os.environ.setdefault("APP_ENV", "test")

from colornotes import create_app
from colornotes.config import TestConfig
from colornotes.db.local import LocalRoutineGateway

NOTES = "/api/v1/internal/note"


def _memory_gateway(**kwargs):
    kwargs.setdefault("note_quota", TestConfig.NOTE_QUOTA_PER_ACCOUNT)
    return LocalRoutineGateway("sqlite:///:memory:", TestConfig.DATABASE_ENGINE_OPTIONS, **kwargs)


@pytest.fixture()
def gateway():
    gw = _memory_gateway().open()
    yield gw
    gw.close()


@pytest.fixture()
def make_gateway():
    """Factory for gateways with custom quota / clock, all closed at teardown."""
    built = []

    def _make(**kwargs):
        gw = _memory_gateway(**kwargs).open()
        built.append(gw)
        return gw

    yield _make
    for gw in built:
        gw.close()


@pytest.fixture()
def app(gateway):
    return create_app(TestConfig, gateway=gateway)


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def who():
    """Identity headers: who(account, user)."""
    def _headers(account=1, user=1):
        return {"X-Account-Id": str(account), "X-User-Id": str(user)}
    return _headers


@pytest.fixture()
def create_note(client, who):
    def _create(titulo="Groceries", conteudo="milk, eggs", cor=None, account=1):
        body = {"titulo": titulo, "conteudo": conteudo}
        if cor is not None:
            body["cor"] = cor
        r = client.post(NOTES, headers=who(account), json=body)
        assert r.status_code == 200, r.get_json()
        return r.get_json()["data"]["idNote"]
    return _create
