"""In-process implementation of the note routines.

Same routine names, parameters and row shapes as the server-side ones, run
with SQLAlchemy Core against a ``note`` table on the gateway's own engine.
Used for development and tests.

Rule violations raised here (reported as ``ErrorKind.DOMAIN_RULE``):
  - creating a note when the account already holds ``note_quota`` notes;
  - an unknown sort order reaching ``spNoteList``;
  - any integrity constraint reported by the engine (see the base class).
"""
import inspect
from datetime import datetime, timedelta, timezone

from sqlalchemy import (
    CheckConstraint, Column, DateTime, Integer, MetaData, String, Table, delete, func, literal, null, select,
    update,
)

from colornotes.db.gateway import ErrorKind, GatewayError, PersistenceGateway

metadata = MetaData()

note_table = Table(
    "note",
    metadata,
    Column("idNote", Integer, primary_key=True, autoincrement=True),
    Column("idAccount", Integer, nullable=False, index=True),
    Column("titulo", String(100), nullable=False),
    Column("conteudo", String(5000), nullable=False),
    Column("cor", String(7), nullable=False),
    Column("dataCriacao", DateTime(timezone=True), nullable=False),
    Column("dataAtualizacao", DateTime(timezone=True), nullable=True),
    CheckConstraint("length(cor) = 7", name="ck_note_cor"),
)

_ORDERINGS = {
    "data_criacao_asc": (note_table.c.dataCriacao.asc(), note_table.c.idNote.asc()),
    "data_criacao_desc": (note_table.c.dataCriacao.desc(), note_table.c.idNote.desc()),
    "titulo_asc": (note_table.c.titulo.asc(), note_table.c.idNote.asc()),
    "titulo_desc": (note_table.c.titulo.desc(), note_table.c.idNote.desc()),
}


class RuleViolation(Exception):
    pass


ROUTINES = {}


def routine(name):
    def register(fn):
        ROUTINES[name] = fn
        return fn
    return register


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


@routine("spNoteCreate")
def note_create(conn, gw, idAccount, titulo, conteudo, cor):
    row = select(
        literal(idAccount, Integer), literal(titulo, String), literal(conteudo, String),
        literal(cor, String), literal(gw.clock(), DateTime(timezone=True)), null(),
    )
    if gw.note_quota:
        # count and insert in one statement so concurrent creates cannot pass the quota together
        held = (
            select(func.count()).select_from(note_table)
            .where(note_table.c.idAccount == idAccount)
            .correlate(None).scalar_subquery()
        )
        row = row.where(held < gw.note_quota)
    stmt = note_table.insert().from_select(
        ["idAccount", "titulo", "conteudo", "cor", "dataCriacao", "dataAtualizacao"], row,
    )
    if conn.dialect.insert_returning:
        new_id = conn.execute(stmt.returning(note_table.c.idNote)).scalar_one_or_none()
    else:
        result = conn.execute(stmt)
        new_id = result.lastrowid if result.rowcount else None
    if new_id is None:
        raise RuleViolation(f"Note limit of {gw.note_quota} reached for this account.")
    return [{"idNote": new_id}]


@routine("spNoteList")
def note_list(conn, gw, idAccount, filtroCor, ordem):
    ordering = _ORDERINGS.get(ordem)
    if ordering is None:
        raise RuleViolation(f"Unknown sort order {ordem!r}.")
    q = select(note_table).where(note_table.c.idAccount == idAccount)
    if filtroCor:
        q = q.where(func.upper(note_table.c.cor) == filtroCor.upper())
    return [dict(row) for row in conn.execute(q.order_by(*ordering)).mappings()]


@routine("spNoteGet")
def note_get(conn, gw, idAccount, idNote):
    q = select(note_table).where(note_table.c.idAccount == idAccount, note_table.c.idNote == idNote)
    return [dict(row) for row in conn.execute(q).mappings()]


@routine("spNoteUpdate")
def note_update(conn, gw, idAccount, idNote, titulo, conteudo, cor):
    created = conn.execute(
        select(note_table.c.dataCriacao)
        .where(note_table.c.idAccount == idAccount, note_table.c.idNote == idNote)
    ).scalar_one_or_none()
    if created is None:
        return []
    # strictly after creation even when the clock has not moved
    stamp = max(_as_utc(gw.clock()), _as_utc(created) + timedelta(microseconds=1))
    conn.execute(
        update(note_table)
        .where(note_table.c.idAccount == idAccount, note_table.c.idNote == idNote)
        .values(titulo=titulo, conteudo=conteudo, cor=cor, dataAtualizacao=stamp)
    )
    return [{"idNote": idNote}]


@routine("spNoteDelete")
def note_delete(conn, gw, idAccount, idNote):
    result = conn.execute(
        delete(note_table).where(note_table.c.idAccount == idAccount, note_table.c.idNote == idNote)
    )
    return [{"idNote": idNote}] if result.rowcount else []


class LocalRoutineGateway(PersistenceGateway):
    def __init__(self, url, engine_options=None, domain_rule_codes=(), note_quota=0, clock=utcnow):
        super().__init__(url, engine_options, domain_rule_codes)
        self.note_quota = note_quota
        self.clock = clock

    def _on_open(self):
        metadata.create_all(self.engine)

    def _call(self, routine, params):
        name = routine.rpartition(".")[2]
        fn = ROUTINES.get(name)
        if fn is None:
            raise GatewayError(ErrorKind.UNEXPECTED, f"Unknown routine {routine}.", routine=routine)
        try:
            inspect.signature(fn).bind(None, self, **params)
        except TypeError as e:
            raise GatewayError(ErrorKind.UNEXPECTED, "Routine called with the wrong parameters.",
                               routine=routine) from e
        try:
            with self.engine.begin() as conn:
                return fn(conn, self, **params)
        except RuleViolation as e:
            raise GatewayError(ErrorKind.DOMAIN_RULE, str(e), "RULE_VIOLATION", routine)
