from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from typing import Any, Iterator, Mapping, Optional, Sequence

from ..core.enums import AttendanceStatus, AttendanceType, TransactionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import WhereBuilder, db_cursor, execute_insert, fetchall, fetchone
from ..departments.model import Department
from ..departments.mysql_department_repository import department_columns, department_from_row
from ..students.model import Student
from ..students.mysql_student_repository import student_columns, student_from_row
from ..talents.model import TalentTransaction
from ..talents.mysql_talent_repository import TRANSACTION_COLUMNS, transaction_from_row
from .model import AttendanceFilter, AttendanceRecord
from .repository import AttendanceRepository, LedgerRepository, LedgerSession

DUPLICATE_ATTENDANCE = "이미 등록된 출석 기록입니다."

ATTENDANCE_SELECT = f"""
    SELECT
        a.attendance_id, a.student_id, a.department_id, a.attend_date, a.status,
        a.attendance_type, a.talent_given, a.created_at, a.updated_at,
        {student_columns("s", "sd", prefix="s_")},
        {department_columns("d", prefix="a_dept_")}
    FROM attendance a
    JOIN students s ON s.student_id = a.student_id
    LEFT JOIN departments sd ON sd.department_id = s.department_id
    LEFT JOIN departments d ON d.department_id = a.department_id
"""


def attendance_from_row(r: Mapping[str, Any]) -> AttendanceRecord:
    department_id = r.get("department_id")
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        student_id=int(r["student_id"]),
        attend_date=r["attend_date"],
        status=AttendanceStatus(r["status"]),
        attendance_type=AttendanceType(r["attendance_type"]),
        talent_given=int(r.get("talent_given") or 0),
        department_id=int(department_id) if department_id is not None else None,
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
        student=student_from_row(r, prefix="s_"),
        department=department_from_row(r, prefix="a_dept_"),
    )


def attendance_where(filters: AttendanceFilter) -> WhereBuilder:
    where = WhereBuilder()
    if filters.student_id is not None:
        where.add("a.student_id=%s", int(filters.student_id))
    if filters.grade is not None:
        where.add("s.grade=%s", filters.grade.value)
    if filters.department_id is not None:
        where.add("a.department_id=%s", int(filters.department_id))
    if filters.attend_date is not None:
        where.add("a.attend_date=%s", filters.attend_date)
    if filters.start_date is not None:
        where.add("a.attend_date>=%s", filters.start_date)
    if filters.end_date is not None:
        where.add("a.attend_date<=%s", filters.end_date)
    if filters.attendance_type is not None:
        where.add("a.attendance_type=%s", filters.attendance_type.value)
    if filters.status is not None:
        where.add("a.status=%s", filters.status.value)
    return where


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{ATTENDANCE_SELECT} WHERE a.attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return attendance_from_row(r) if r else None

    def list(
        self,
        filters: AttendanceFilter,
        *,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Sequence[AttendanceRecord]:
        where = attendance_where(filters)
        params: list[object] = list(where.params)
        sql = f"{ATTENDANCE_SELECT} {where.sql()} ORDER BY a.attend_date DESC, s.name ASC"
        if limit is not None:
            sql += " LIMIT %s OFFSET %s"
            params.extend([int(limit), int(offset)])

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [attendance_from_row(r) for r in fetchall(cur)]

    def count(self, filters: AttendanceFilter) -> int:
        where = attendance_where(filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS n
                FROM attendance a
                JOIN students s ON s.student_id = a.student_id
                {where.sql()}
                """,
                tuple(where.params),
            )
            return int(fetchone(cur)["n"])

    def count_by_date(self, filters: AttendanceFilter) -> Sequence[tuple[date, int]]:
        where = attendance_where(filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT a.attend_date, COUNT(*) AS n
                FROM attendance a
                JOIN students s ON s.student_id = a.student_id
                {where.sql()}
                GROUP BY a.attend_date
                ORDER BY a.attend_date ASC
                """,
                tuple(where.params),
            )
            return [(r["attend_date"], int(r["n"])) for r in fetchall(cur)]

    def recent_dates(self, limit: int) -> Sequence[date]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT DISTINCT attend_date FROM attendance ORDER BY attend_date DESC LIMIT %s",
                (int(limit),),
            )
            return [r["attend_date"] for r in fetchall(cur)]


class MySQLLedgerSession(LedgerSession):
    """Runs on the cursor of an open transaction; never commits by itself."""

    def __init__(self, cur):
        self._cur = cur

    def get_student(self, student_id: int, *, for_update: bool = False) -> Optional[Student]:
        lock = " FOR UPDATE" if for_update else ""
        self._cur.execute(
            f"""
            SELECT {student_columns()}
            FROM students s
            LEFT JOIN departments sd ON sd.department_id = s.department_id
            WHERE s.student_id=%s{lock}
            """,
            (int(student_id),),
        )
        r = fetchone(self._cur)
        return student_from_row(r) if r else None

    def get_department(self, department_id: int) -> Optional[Department]:
        self._cur.execute(
            f"SELECT {department_columns()} FROM departments d WHERE d.department_id=%s",
            (int(department_id),),
        )
        r = fetchone(self._cur)
        return department_from_row(r) if r else None

    def find_attendance(
        self, *, student_id: int, attend_date: date, attendance_type: AttendanceType
    ) -> Optional[AttendanceRecord]:
        self._cur.execute(
            f"""
            {ATTENDANCE_SELECT}
            WHERE a.student_id=%s AND a.attend_date=%s AND a.attendance_type=%s
            FOR UPDATE
            """,
            (int(student_id), attend_date, attendance_type.value),
        )
        r = fetchone(self._cur)
        return attendance_from_row(r) if r else None

    def get_attendance(self, attendance_id: int) -> Optional[AttendanceRecord]:
        self._cur.execute(f"{ATTENDANCE_SELECT} WHERE a.attendance_id=%s FOR UPDATE", (int(attendance_id),))
        r = fetchone(self._cur)
        return attendance_from_row(r) if r else None

    def insert_attendance(
        self,
        *,
        student_id: int,
        department_id: Optional[int],
        attend_date: date,
        status: AttendanceStatus,
        attendance_type: AttendanceType,
        talent_given: int,
    ) -> int:
        return execute_insert(
            self._cur,
            """
            INSERT INTO attendance(student_id, department_id, attend_date, status, attendance_type, talent_given)
            VALUES(%s,%s,%s,%s,%s,%s)
            """,
            (int(student_id), department_id, attend_date, status.value, attendance_type.value, int(talent_given)),
            conflict_message=DUPLICATE_ATTENDANCE,
        )

    def update_attendance(
        self,
        attendance_id: int,
        *,
        status: AttendanceStatus,
        talent_given: int,
        department_id: Optional[int],
    ) -> None:
        self._cur.execute(
            "UPDATE attendance SET status=%s, talent_given=%s, department_id=%s WHERE attendance_id=%s",
            (status.value, int(talent_given), department_id, int(attendance_id)),
        )

    def delete_attendance(self, attendance_id: int) -> None:
        self._cur.execute("DELETE FROM attendance WHERE attendance_id=%s", (int(attendance_id),))

    def add_transaction(
        self,
        *,
        student_id: int,
        transaction_type: TransactionType,
        amount: int,
        reason: str,
        attendance_id: Optional[int] = None,
    ) -> int:
        self._cur.execute(
            """
            INSERT INTO talent_transactions(student_id, transaction_type, amount, reason, attendance_id)
            VALUES(%s,%s,%s,%s,%s)
            """,
            (int(student_id), transaction_type.value, int(amount), reason, attendance_id),
        )
        return int(self._cur.lastrowid)

    def increment_talent(self, student_id: int, delta: int) -> None:
        self._cur.execute(
            "UPDATE students SET talent = talent + %s WHERE student_id=%s",
            (int(delta), int(student_id)),
        )

    def get_transaction(self, transaction_id: int) -> Optional[TalentTransaction]:
        self._cur.execute(
            f"SELECT {TRANSACTION_COLUMNS} FROM talent_transactions t WHERE t.transaction_id=%s",
            (int(transaction_id),),
        )
        r = fetchone(self._cur)
        return transaction_from_row(r) if r else None


class MySQLLedgerRepository(LedgerRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @contextmanager
    def transaction(self) -> Iterator[LedgerSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            yield MySQLLedgerSession(cur)
