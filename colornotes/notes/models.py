import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

DEFAULT_COLOR = "#FFFFFF"
HEX_COLOR = re.compile(r"^#[0-9A-F]{6}\Z", re.IGNORECASE)

ORDER_CREATED_ASC = "data_criacao_asc"
ORDER_CREATED_DESC = "data_criacao_desc"
ORDER_TITLE_ASC = "titulo_asc"
ORDER_TITLE_DESC = "titulo_desc"
SORT_ORDERS = (ORDER_CREATED_ASC, ORDER_CREATED_DESC, ORDER_TITLE_ASC, ORDER_TITLE_DESC)
DEFAULT_ORDER = ORDER_CREATED_DESC


@dataclass(frozen=True)
class NoteListParams:
    color_filter: Optional[str] = None
    order: str = DEFAULT_ORDER


@dataclass(frozen=True)
class NoteCreateParams:
    title: str
    content: str
    color: str = DEFAULT_COLOR


@dataclass(frozen=True)
class NoteRef:
    note_id: int


@dataclass(frozen=True)
class NoteUpdateParams:
    note_id: int
    title: str
    content: str
    color: str


def _as_utc(value):
    # routines hand back naive UTC timestamps on some backends
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class Note:
    id: int
    account_id: int
    title: str
    content: str
    color: str
    created_at: datetime
    updated_at: Optional[datetime]

    @classmethod
    def from_row(cls, row) -> "Note":
        return cls(
            id=int(row["idNote"]),
            account_id=int(row["idAccount"]),
            title=row["titulo"],
            content=row["conteudo"],
            color=row["cor"],
            created_at=_as_utc(row["dataCriacao"]),
            updated_at=_as_utc(row.get("dataAtualizacao")),
        )
