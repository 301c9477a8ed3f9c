from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from ..core.enums import Grade
from ..database.connection import DatabaseConnection
from ..database.mysql_base import WhereBuilder, db_cursor, fetchall, fetchone
from ..departments.mysql_department_repository import department_columns, department_from_row
from .model import Student, StudentFilter
from .repository import StudentRepository

_STUDENT_FIELDS = (
    "student_id",
    "name",
    "baptism_name",
    "grade",
    "department_id",
    "talent",
    "student_number",
    "email",
    "phone",
    "created_at",
)

# Student fields an admin edit may change; talent only moves through the ledger.
UPDATABLE_FIELDS = ("name", "baptism_name", "grade", "department_id", "student_number", "email", "phone")


def student_columns(alias: str = "s", dept_alias: str = "sd", prefix: str = "") -> str:
    cols = [f"{alias}.{f} AS {prefix}{f}" for f in _STUDENT_FIELDS]
    cols.append(department_columns(dept_alias, prefix=f"{prefix}dept_"))
    return ", ".join(cols)


def student_from_row(r: Mapping[str, Any], prefix: str = "") -> Student:
    department_id = r.get(f"{prefix}department_id")
    return Student(
        student_id=int(r[f"{prefix}student_id"]),
        name=r[f"{prefix}name"],
        grade=Grade(r[f"{prefix}grade"]),
        talent=int(r.get(f"{prefix}talent") or 0),
        baptism_name=r.get(f"{prefix}baptism_name"),
        department_id=int(department_id) if department_id is not None else None,
        student_number=r.get(f"{prefix}student_number"),
        email=r.get(f"{prefix}email"),
        phone=r.get(f"{prefix}phone"),
        created_at=r.get(f"{prefix}created_at"),
        department=department_from_row(r, prefix=f"{prefix}dept_"),
    )


def grade_order_sql(column: str) -> tuple[str, tuple[str, ...]]:
    """ORDER BY fragment that sorts grades in cohort order, not lexically."""

    placeholders = ",".join(["%s"] * len(Grade))
    return f"FIELD({column}, {placeholders})", tuple(g.value for g in Grade)


def student_where(filters: StudentFilter, alias: str = "s") -> WhereBuilder:
    where = WhereBuilder()
    if filters.search:
        pattern = f"%{filters.search}%"
        where.add(f"({alias}.name LIKE %s OR {alias}.baptism_name LIKE %s)", pattern, pattern)
    if filters.name:
        where.add(f"{alias}.name LIKE %s", f"%{filters.name}%")
    if filters.grade is not None:
        where.add(f"{alias}.grade=%s", filters.grade.value)
    if filters.department_id is not None:
        where.add(f"{alias}.department_id=%s", int(filters.department_id))
    return where


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select(self) -> str:
        return (
            f"SELECT {student_columns()} FROM students s "
            "LEFT JOIN departments sd ON sd.department_id = s.department_id"
        )

    def get_by_id(self, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{self._select()} WHERE s.student_id=%s", (int(student_id),))
            r = fetchone(cur)
            return student_from_row(r) if r else None

    def find_first_by_name(self, name: str) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{self._select()} WHERE s.name=%s ORDER BY s.student_id LIMIT 1", (name,))
            r = fetchone(cur)
            return student_from_row(r) if r else None

    def find_by_name_and_grade(self, *, name: str, grade: Grade) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{self._select()} WHERE s.name=%s AND s.grade=%s ORDER BY s.student_id LIMIT 1",
                (name, grade.value),
            )
            r = fetchone(cur)
            return student_from_row(r) if r else None

    def list(
        self,
        filters: StudentFilter,
        *,
        limit: Optional[int] = None,
        offset: int = 0,
        order_by_talent: bool = False,
    ) -> Sequence[Student]:
        where = student_where(filters)
        params: list[object] = list(where.params)

        if order_by_talent:
            order = "s.talent DESC, s.name ASC"
        else:
            grade_sql, grade_params = grade_order_sql("s.grade")
            order = f"{grade_sql}, s.name ASC"
            params.extend(grade_params)

        sql = f"{self._select()} {where.sql()} ORDER BY {order}"
        if limit is not None:
            sql += " LIMIT %s OFFSET %s"
            params.extend([int(limit), int(offset)])

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [student_from_row(r) for r in fetchall(cur)]

    def count(self, filters: StudentFilter) -> int:
        where = student_where(filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM students s {where.sql()}", tuple(where.params))
            return int(fetchone(cur)["n"])

    def sum_talent(self, filters: StudentFilter) -> int:
        where = student_where(filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT COALESCE(SUM(s.talent), 0) AS total FROM students s {where.sql()}",
                tuple(where.params),
            )
            return int(fetchone(cur)["total"])

    def create(
        self,
        *,
        name: str,
        grade: Grade,
        baptism_name: Optional[str] = None,
        department_id: Optional[int] = None,
        student_number: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO students(name, baptism_name, grade, department_id, student_number, email, phone)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (name, baptism_name, grade.value, department_id, student_number, email, phone),
            )
            return int(cur.lastrowid)

    def update(self, student_id: int, changes: Mapping[str, Any]) -> bool:
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unsupported student fields: {sorted(unknown)}")
        if not changes:
            return True

        assignments = ", ".join(f"{col}=%s" for col in changes)
        values = [v.value if isinstance(v, Grade) else v for v in changes.values()]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE students SET {assignments} WHERE student_id=%s",
                (*values, int(student_id)),
            )
            # MySQL reports 0 affected rows when values are unchanged.
            cur.execute("SELECT 1 AS ok FROM students WHERE student_id=%s", (int(student_id),))
            return fetchone(cur) is not None

    def delete(self, student_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM students WHERE student_id=%s", (int(student_id),))
            return cur.rowcount > 0

    def delete_all(self) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM talent_transactions")
            cur.execute("DELETE FROM attendance")
            cur.execute("DELETE FROM students")
            cur.execute("DELETE FROM departments")
