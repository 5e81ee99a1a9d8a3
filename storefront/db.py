from __future__ import annotations

import re
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Sequence
from urllib.parse import urlparse

from storefront.errors import Conflict, StoreFailure, StorefrontError
from storefront.schema import get_schema_sql


def _debug(msg: str) -> None:
    print(f"[db] {msg}")


def _detect_dialect(dsn: str) -> str:
    """Return 'postgres' or 'sqlite'."""
    s = (dsn or "").strip()
    if not s:
        return "sqlite"
    try:
        scheme = urlparse(s).scheme.lower()
    except Exception:
        scheme = ""
    if scheme in ("postgres", "postgresql"):
        return "postgres"
    return "sqlite"


# Single- or double-quoted SQL literals, with doubled quotes as escapes.
_QUOTED = re.compile(r"""('(?:[^']|'')*'|"(?:[^"]|"")*")""")


def _qmark_to_pct(sql: str) -> str:
    """Convert SQLite qmark placeholders (?) to psycopg2 placeholders (%s).

    '?' inside quoted literals is left alone. Literal '%' is doubled everywhere
    because psycopg2 formats the whole statement when parameters are passed.
    """
    parts = _QUOTED.split(sql.replace("%", "%%"))
    # re.split with a capture group puts the quoted literals at odd indexes.
    return "".join(p if i % 2 else p.replace("?", "%s") for i, p in enumerate(parts))


class PGCursor:
    def __init__(self, cur: Any):
        self._cur = cur

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> "PGCursor":
        self._cur.execute(_qmark_to_pct(sql), tuple(params or ()))
        return self

    def executemany(self, sql: str, seq_of_params: Sequence[Sequence[Any]]) -> "PGCursor":
        self._cur.executemany(_qmark_to_pct(sql), [tuple(x) for x in seq_of_params])
        return self

    def fetchone(self) -> Any:
        return self._cur.fetchone()

    def fetchall(self) -> Any:
        return self._cur.fetchall()

    @property
    def rowcount(self) -> int:
        return int(self._cur.rowcount or 0)


class PGConnection:
    """Makes a psycopg2 connection look like the sqlite3 connection API we use."""

    dialect = "postgres"

    def __init__(self, conn: Any):
        self._conn = conn

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> PGCursor:
        return PGCursor(self._conn.cursor()).execute(sql, params)

    def executemany(self, sql: str, seq_of_params: Sequence[Sequence[Any]]) -> PGCursor:
        return PGCursor(self._conn.cursor()).executemany(sql, seq_of_params)

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()


@contextmanager
def connect(db_dsn: str) -> Iterator[Any]:
    """Connect to SQLite or Postgres with sensible defaults.

    - SQLite: uses WAL + NORMAL sync, foreign keys on (needed for cascades).
    - Postgres: uses psycopg2 (RealDictCursor) so rows behave like dicts.

    Pending work is committed when the block exits cleanly and rolled back
    otherwise.
    """
    dsn = (db_dsn or "").strip()
    dialect = _detect_dialect(dsn)

    if dialect == "postgres":
        try:
            import psycopg2
            import psycopg2.extras
        except Exception as e:
            raise RuntimeError(
                "Postgres selected but psycopg2 is not installed. "
                "Install psycopg2-binary and try again."
            ) from e

        raw = psycopg2.connect(dsn, cursor_factory=psycopg2.extras.RealDictCursor)
        conn: Any = PGConnection(raw)
    else:
        # Support sqlite:///path style
        if dsn.lower().startswith("sqlite:///"):
            dsn = dsn[len("sqlite:///") :]

        Path(dsn).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(dsn, timeout=30, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        # WAL lets readers see the last committed state while a writer is mid-transaction.
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        conn.execute("PRAGMA busy_timeout=5000;")  # 5s
        conn.execute("PRAGMA foreign_keys = ON;")

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _rollback_once(conn: Any) -> None:
    try:
        conn.rollback()
    except Exception as e:
        _debug(f"Rollback failed: {e!r}")


@contextmanager
def transaction(conn: Any) -> Iterator[Any]:
    """Run a unit of work atomically on `conn`.

    Commits when the block exits cleanly. On any exception (including a failed
    commit) the transaction is rolled back exactly once and the original error
    is re-raised; a rollback that itself fails is only logged.

    Driver errors raised inside the block come out classified (see
    `classify_db_error`).
    """
    try:
        with store_errors():
            yield conn
            conn.commit()
    except BaseException:
        _rollback_once(conn)
        raise


def _is_driver_error(exc: BaseException) -> bool:
    if isinstance(exc, sqlite3.Error):
        return True
    return type(exc).__module__.split(".")[0] == "psycopg2"


def _unique_violation_detail(exc: BaseException) -> str | None:
    if isinstance(exc, sqlite3.IntegrityError):
        msg = str(exc)
        if "UNIQUE constraint failed" not in msg:
            return None
        # "UNIQUE constraint failed: products.title" -> "title"
        cols = [c.strip().split(".")[-1] for c in msg.split(":", 1)[-1].split(",")]
        return f"Key ({', '.join(cols)}) already exists"

    if getattr(exc, "pgcode", None) == "23505":
        diag = getattr(exc, "diag", None)
        detail = getattr(diag, "message_detail", None) if diag is not None else None
        return str(detail or "Key already exists")

    return None


def classify_db_error(exc: BaseException) -> StorefrontError:
    """Map a driver error to a domain error.

    Unique violations become `Conflict`; everything else is logged and
    surfaced as a generic `StoreFailure` so internals don't leak to callers.
    """
    detail = _unique_violation_detail(exc)
    if detail is not None:
        return Conflict(detail)
    _debug(f"Unexpected store error: {type(exc).__name__}: {exc}")
    return StoreFailure()


@contextmanager
def store_errors() -> Iterator[None]:
    """Re-raise driver errors from the block as domain errors."""
    try:
        yield
    except Exception as e:
        if not _is_driver_error(e):
            raise
        raise classify_db_error(e) from e


def init_db(db_dsn: str) -> None:
    """Create all tables (idempotent)."""
    dialect = _detect_dialect(db_dsn)
    _debug(f"Initializing DB ({dialect}) at {db_dsn}")
    with connect(db_dsn) as conn:
        _exec_schema(conn, get_schema_sql(dialect), dialect=dialect)


def _split_statements(ddl: str) -> list[str]:
    # Naive split on ";": the generated Postgres DDL has no comments.
    return [s.strip() for s in ddl.split(";") if s.strip()]


def _exec_schema(conn: Any, ddl: str, *, dialect: str) -> None:
    if dialect == "postgres":
        for stmt in _split_statements(ddl):
            conn.execute(stmt)
        return

    # SQLite can run it in one go
    conn.executescript(ddl)
