from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from ..core.enums import TransactionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import WhereBuilder, db_cursor, fetchall, fetchone
from ..students.mysql_student_repository import student_columns, student_from_row
from .model import TalentTransaction
from .repository import TalentRepository

TRANSACTION_COLUMNS = (
    "t.transaction_id, t.student_id, t.transaction_type, t.amount, t.reason, t.attendance_id, t.created_at"
)


def transaction_from_row(r: Mapping[str, Any], *, with_student: bool = False) -> TalentTransaction:
    attendance_id = r.get("attendance_id")
    return TalentTransaction(
        transaction_id=int(r["transaction_id"]),
        student_id=int(r["student_id"]),
        transaction_type=TransactionType(r["transaction_type"]),
        amount=int(r["amount"]),
        reason=r["reason"],
        attendance_id=int(attendance_id) if attendance_id is not None else None,
        created_at=r.get("created_at"),
        student=student_from_row(r, prefix="s_") if with_student else None,
    )


class MySQLTalentRepository(TalentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_transactions(
        self,
        *,
        student_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
        with_student: bool = False,
    ) -> Sequence[TalentTransaction]:
        where = WhereBuilder()
        if student_id is not None:
            where.add("t.student_id=%s", int(student_id))
        if start is not None:
            where.add("t.created_at>=%s", start)
        if end is not None:
            where.add("t.created_at<=%s", end)

        columns = TRANSACTION_COLUMNS
        joins = ""
        if with_student:
            columns += ", " + student_columns("s", "sd", prefix="s_")
            joins = (
                "JOIN students s ON s.student_id = t.student_id "
                "LEFT JOIN departments sd ON sd.department_id = s.department_id"
            )

        params: list[object] = list(where.params)
        sql = f"SELECT {columns} FROM talent_transactions t {joins} {where.sql()} ORDER BY t.created_at DESC, t.transaction_id DESC"
        if limit is not None:
            sql += " LIMIT %s"
            params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [transaction_from_row(r, with_student=with_student) for r in fetchall(cur)]

    def ledger_total(self, student_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COALESCE(SUM(amount), 0) AS total FROM talent_transactions WHERE student_id=%s",
                (int(student_id),),
            )
            return int(fetchone(cur)["total"])
