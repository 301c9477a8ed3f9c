from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, execute_insert, execute_unique, fetchall, fetchone
from .model import DUPLICATE_NAME, Department
from .repository import DepartmentRepository

def department_columns(alias: str = "d", prefix: str = "") -> str:
    return ", ".join(
        f"{alias}.{col} AS {prefix}{name}"
        for col, name in (
            ("department_id", "id"),
            ("name", "name"),
            ("description", "description"),
            ("created_at", "created_at"),
        )
    )


def department_from_row(r: Mapping[str, Any], prefix: str = "") -> Optional[Department]:
    if r.get(f"{prefix}id") is None:
        return None
    return Department(
        department_id=int(r[f"{prefix}id"]),
        name=r[f"{prefix}name"],
        description=r.get(f"{prefix}description"),
        created_at=r.get(f"{prefix}created_at"),
    )


class MySQLDepartmentRepository(DepartmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[Department]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {department_columns()} FROM departments d ORDER BY d.name")
            return [department_from_row(r) for r in fetchall(cur)]

    def get_by_id(self, department_id: int) -> Optional[Department]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {department_columns()} FROM departments d WHERE d.department_id=%s",
                (int(department_id),),
            )
            r = fetchone(cur)
            return department_from_row(r) if r else None

    def get_by_name(self, name: str) -> Optional[Department]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {department_columns()} FROM departments d WHERE d.name=%s", (name,))
            r = fetchone(cur)
            return department_from_row(r) if r else None

    def create(self, *, name: str, description: Optional[str] = None) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            return execute_insert(
                cur,
                "INSERT INTO departments(name, description) VALUES(%s,%s)",
                (name, description),
                conflict_message=DUPLICATE_NAME,
            )

    def update(self, department_id: int, *, name: str, description: Optional[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            execute_unique(
                cur,
                "UPDATE departments SET name=%s, description=%s WHERE department_id=%s",
                (name, description, int(department_id)),
                conflict_message=DUPLICATE_NAME,
            )
            return cur.rowcount > 0

    def delete(self, department_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM departments WHERE department_id=%s", (int(department_id),))
            return cur.rowcount > 0
