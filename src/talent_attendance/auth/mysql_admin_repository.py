from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .repository import AdminAuthRepository


class MySQLAdminAuthRepository(AdminAuthRepository):
    """The admin_auth table holds at most one row; the oldest one wins."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_password_hash(self) -> Optional[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT password_hash FROM admin_auth ORDER BY admin_auth_id LIMIT 1")
            r = fetchone(cur)
            return r["password_hash"] if r else None

    def create(self, password_hash: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("INSERT INTO admin_auth(password_hash) VALUES(%s)", (password_hash,))
            return int(cur.lastrowid)

    def update(self, password_hash: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE admin_auth SET password_hash=%s
                WHERE admin_auth_id = (SELECT id FROM (SELECT MIN(admin_auth_id) AS id FROM admin_auth) t)
                """,
                (password_hash,),
            )
            return cur.rowcount > 0
