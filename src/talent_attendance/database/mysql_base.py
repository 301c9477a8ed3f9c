from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from ..core.exceptions import ConflictError
from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield (conn, cursor); commit when the block finishes, roll back on any error.

    Everything executed inside one ``with`` block is a single transaction.
    """

    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def is_duplicate_key(exc: IntegrityError) -> bool:
    return getattr(exc, "errno", None) == errorcode.ER_DUP_ENTRY


def execute_unique(cur, sql: str, params: tuple, *, conflict_message: str) -> None:
    """Run a write that may hit a unique key; duplicates become ConflictError."""

    try:
        cur.execute(sql, params)
    except IntegrityError as e:
        if is_duplicate_key(e):
            raise ConflictError(conflict_message) from e
        raise


def execute_insert(cur, sql: str, params: tuple, *, conflict_message: str) -> int:
    execute_unique(cur, sql, params, conflict_message=conflict_message)
    return int(cur.lastrowid)


class WhereBuilder:
    """Collect ``AND``-joined clauses with their positional parameters."""

    def __init__(self) -> None:
        self.clauses: list[str] = []
        self.params: list[object] = []

    def add(self, clause: str, *params: object) -> "WhereBuilder":
        self.clauses.append(clause)
        self.params.extend(params)
        return self

    def sql(self) -> str:
        if not self.clauses:
            return ""
        return "WHERE " + " AND ".join(self.clauses)
