from typing import List

from colornotes.common.errors import DomainRule, NotFound
from colornotes.common.identity import CallerIdentity
from colornotes.db.gateway import Cardinality, GatewayError, PersistenceGateway
from colornotes.notes.models import (
    DEFAULT_COLOR, DEFAULT_ORDER,
    Note, NoteCreateParams, NoteListParams, NoteRef, NoteUpdateParams,
)


class NoteRepository:
    """One routine call per note operation, always scoped to the caller's account.

    A note held by another account yields no row, so it is reported exactly
    like a missing one.
    """

    def __init__(self, gateway: PersistenceGateway, schema: str = "functional"):
        self.gateway = gateway
        self.schema = schema

    def _routine(self, name: str) -> str:
        return f"{self.schema}.{name}" if self.schema else name

    def _call(self, name, params, cardinality, rule_means_missing=False):
        try:
            return self.gateway.execute(self._routine(name), params, cardinality)
        except GatewayError as e:
            if not e.is_domain_rule:
                raise
            # spNoteGet / spNoteDelete only raise for notes outside the account
            if rule_means_missing:
                raise NotFound()
            raise DomainRule(e.message)

    def create(self, identity: CallerIdentity, params: NoteCreateParams) -> dict:
        row = self._call("spNoteCreate", {
            "idAccount": identity.account_id,
            "titulo": params.title,
            "conteudo": params.content,
            "cor": params.color or DEFAULT_COLOR,
        }, Cardinality.SINGLE)
        if row is None:
            raise DomainRule("The note could not be created.")
        return {"idNote": int(row["idNote"])}

    def list(self, identity: CallerIdentity, params: NoteListParams) -> List[Note]:
        rows = self._call("spNoteList", {
            "idAccount": identity.account_id,
            "filtroCor": params.color_filter or None,
            "ordem": params.order or DEFAULT_ORDER,
        }, Cardinality.MULTI)
        return [Note.from_row(r) for r in rows]

    def get(self, identity: CallerIdentity, params: NoteRef) -> Note:
        row = self._call("spNoteGet", {
            "idAccount": identity.account_id,
            "idNote": params.note_id,
        }, Cardinality.SINGLE, rule_means_missing=True)
        if row is None:
            raise NotFound()
        return Note.from_row(row)

    def update(self, identity: CallerIdentity, params: NoteUpdateParams) -> dict:
        row = self._call("spNoteUpdate", {
            "idAccount": identity.account_id,
            "idNote": params.note_id,
            "titulo": params.title,
            "conteudo": params.content,
            "cor": params.color,
        }, Cardinality.SINGLE)
        if row is None:
            raise NotFound()
        return {"idNote": int(row["idNote"])}

    def delete(self, identity: CallerIdentity, params: NoteRef) -> dict:
        row = self._call("spNoteDelete", {
            "idAccount": identity.account_id,
            "idNote": params.note_id,
        }, Cardinality.SINGLE, rule_means_missing=True)
        if row is None:
            raise NotFound()
        return {"idNote": int(row["idNote"])}
