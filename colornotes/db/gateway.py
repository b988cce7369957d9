"""Persistence gateway: runs a named server-side routine with bound parameters.

Callers declare how many rows they expect (``Cardinality``) and get back
``None``, one row mapping or a list of row mappings. Backend failures leave
the gateway as a ``GatewayError`` whose ``kind`` says whether a business
rule rejected the call or something unexpected happened; nothing above this
module looks at driver error numbers.
"""
import logging
import re
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError

logger = logging.getLogger("colornotes.gateway")

# pool sizing knobs the SQLite pools reject
_SQLITE_UNSUPPORTED = ("pool_size", "max_overflow")


class Cardinality(str, Enum):
    NONE = "none"
    SINGLE = "single"
    MULTI = "multi"


class ErrorKind(str, Enum):
    DOMAIN_RULE = "domain_rule"
    UNEXPECTED = "unexpected"


class GatewayError(Exception):
    def __init__(self, kind: ErrorKind, message: str, code: Optional[str] = None, routine: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.code = code
        self.routine = routine

    @property
    def is_domain_rule(self) -> bool:
        return self.kind is ErrorKind.DOMAIN_RULE


def backend_error_code(orig) -> Optional[str]:
    """Best-effort error number / SQLSTATE from a DB-API exception."""
    for attr in ("sqlstate", "pgcode", "number"):
        value = getattr(orig, attr, None)
        if value:
            return str(value)
    args = getattr(orig, "args", ()) or ()
    if args and isinstance(args[0], int):
        # pymssql: (number, b"message")
        return str(args[0])
    if len(args) > 1:
        # pyodbc: ("42000", "[42000] [Microsoft]...[SQL Server]message (51000) (SQLExecDirectW)")
        m = re.search(r"\((\d{5,})\)", str(args[1]))
        if m:
            return m.group(1)
    return None


def backend_error_message(orig) -> str:
    diag = getattr(orig, "diag", None)
    primary = getattr(diag, "message_primary", None)
    if primary:
        return primary
    args = getattr(orig, "args", ()) or ()
    raw = args[1] if len(args) > 1 else (args[0] if args else orig)
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", "replace")
    msg = re.sub(r"^(\[[^\]]*\]\s*)+", "", str(raw))
    msg = re.sub(r"(\s*\(\w+\))+\s*$", "", msg)
    return msg.strip().splitlines()[0] if msg.strip() else "Operation rejected."


class PersistenceGateway:
    """Base class: engine lifecycle, result shaping and error classification.

    Subclasses implement ``_call(routine, params) -> list[dict]``.
    """

    def __init__(self, url: str, engine_options: Optional[Mapping[str, Any]] = None,
                 domain_rule_codes: Iterable[str] = ()):
        self.url = url
        self.engine_options = dict(engine_options or {})
        self.domain_rule_codes = frozenset(str(c) for c in domain_rule_codes)
        self._engine: Optional[Engine] = None

    # --- lifecycle ---

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise GatewayError(ErrorKind.UNEXPECTED, "Persistence gateway is not open.")
        return self._engine

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def open(self) -> "PersistenceGateway":
        if self._engine is not None:
            return self
        options = dict(self.engine_options)
        if make_url(self.url).get_backend_name() == "sqlite" and "poolclass" not in options:
            for key in _SQLITE_UNSUPPORTED:
                options.pop(key, None)
        self._engine = create_engine(self.url, **options)
        try:
            self._on_open()
        except Exception:
            self.close()
            raise
        logger.info("gateway_opened", extra={"backend": self._engine.dialect.name, "gateway": type(self).__name__})
        return self

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.info("gateway_closed", extra={"gateway": type(self).__name__})

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except (GatewayError, SQLAlchemyError):
            return False

    def _on_open(self) -> None:
        pass

    # --- calls ---

    def execute(self, routine: str, parameters: Mapping[str, Any], cardinality: Cardinality):
        try:
            rows = self._call(routine, dict(parameters))
        except GatewayError as e:
            e.routine = e.routine or routine
            self._log_failure(e)
            raise
        except SQLAlchemyError as e:
            err = self._classify(routine, e)
            self._log_failure(err)
            raise err from e
        except Exception as e:
            # driver errors raised outside SQLAlchemy's wrapping (bind overflow, bad types)
            err = GatewayError(ErrorKind.UNEXPECTED, "Persistence failure.", routine=routine)
            self._log_failure(err)
            raise err from e
        return self._shape(rows, cardinality)

    @staticmethod
    def _shape(rows, cardinality: Cardinality):
        if cardinality is Cardinality.NONE:
            return None
        if cardinality is Cardinality.SINGLE:
            return rows[0] if rows else None
        return list(rows)

    def _call(self, routine: str, params: dict) -> list:
        raise NotImplementedError

    def _classify(self, routine: str, exc: SQLAlchemyError) -> GatewayError:
        if isinstance(exc, IntegrityError):
            return GatewayError(ErrorKind.DOMAIN_RULE, "The note violates a storage constraint.",
                                backend_error_code(exc.orig), routine)
        if isinstance(exc, DBAPIError):
            code = backend_error_code(exc.orig)
            if code is not None and code in self.domain_rule_codes:
                return GatewayError(ErrorKind.DOMAIN_RULE, backend_error_message(exc.orig), code, routine)
            return GatewayError(ErrorKind.UNEXPECTED, "Persistence failure.", code, routine)
        return GatewayError(ErrorKind.UNEXPECTED, "Persistence failure.", None, routine)

    @staticmethod
    def _log_failure(err: GatewayError) -> None:
        level = logging.INFO if err.is_domain_rule else logging.ERROR
        logger.log(level, "routine_failed",
                   extra={"routine": err.routine, "kind": err.kind.value, "code": err.code})


class StoredRoutineGateway(PersistenceGateway):
    """Calls routines that live on the database server (SQL Server or PostgreSQL)."""

    SUPPORTED_DIALECTS = ("mssql", "postgresql")

    def _on_open(self) -> None:
        name = self.engine.dialect.name
        if name not in self.SUPPORTED_DIALECTS:
            raise GatewayError(ErrorKind.UNEXPECTED, f"Stored routines are not supported on {name}.")

    @staticmethod
    def build_call(dialect, routine: str, param_names: Iterable[str]) -> str:
        quote = dialect.identifier_preparer.quote
        qualified = ".".join(quote(part) for part in routine.split(".") if part)
        names = list(param_names)
        if dialect.name == "mssql":
            args = ", ".join(f"@{n} = :{n}" for n in names)
            return f"EXEC {qualified} {args}".rstrip()
        if dialect.name == "postgresql":
            args = ", ".join(f"{quote(n)} => :{n}" for n in names)
            return f"SELECT * FROM {qualified}({args})"
        raise GatewayError(ErrorKind.UNEXPECTED, f"Stored routines are not supported on {dialect.name}.")

    def _call(self, routine: str, params: dict) -> list:
        stmt = text(self.build_call(self.engine.dialect, routine, params.keys()))
        with self.engine.begin() as conn:
            result = conn.execute(stmt, params)
            if not result.returns_rows:
                return []
            return [dict(row) for row in result.mappings()]
