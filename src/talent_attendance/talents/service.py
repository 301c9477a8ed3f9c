from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional, Sequence

from ..core.constants import DEFAULT_LEADERBOARD_LIMIT
from ..core.enums import Grade
from ..core.exceptions import NotFoundError
from ..students.model import Student, StudentFilter
from ..students.repository import StudentRepository
from .model import BalanceAudit, TalentGroupSummary, TalentTransaction
from .repository import TalentRepository


def summarize(students: Sequence[Student]) -> TalentGroupSummary:
    total = sum(s.talent for s in students)
    average = total / len(students) if students else 0
    return TalentGroupSummary(students=list(students), total_talent=total, average_talent=average)


class TalentService:
    """Read side of the talent ledger: balances, history and rankings.

    Writes go through AttendanceLedgerService so that balance and log never
    drift apart.
    """

    def __init__(self, talents: TalentRepository, students: StudentRepository):
        self._talents = talents
        self._students = students

    def _require_student(self, student_id: int) -> Student:
        student = self._students.get_by_id(int(student_id))
        if not student:
            raise NotFoundError("학생을 찾을 수 없습니다.")
        return student

    def student_history(self, student_id: int) -> tuple[Student, Sequence[TalentTransaction]]:
        student = self._require_student(student_id)
        return student, self._talents.list_transactions(student_id=student.student_id)

    def student_history_by_name(self, name: str) -> tuple[Student, Sequence[TalentTransaction]]:
        student = self._students.find_first_by_name(name)
        if not student:
            raise NotFoundError("학생을 찾을 수 없습니다.")
        return student, self._talents.list_transactions(student_id=student.student_id)

    def transactions(
        self,
        *,
        student_id: Optional[int] = None,
        student_name: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Sequence[TalentTransaction]:
        if student_name:
            student = self._students.find_first_by_name(student_name)
            if not student:
                return []
            student_id = student.student_id

        # Date bounds are inclusive whole days.
        start = datetime.combine(start_date, time.min) if start_date else None
        end = datetime.combine(end_date, time.max) if end_date else None
        return self._talents.list_transactions(student_id=student_id, start=start, end=end, with_student=True)

    def leaderboard(
        self,
        *,
        grade: Optional[Grade] = None,
        department_id: Optional[int] = None,
        limit: int = DEFAULT_LEADERBOARD_LIMIT,
    ) -> Sequence[Student]:
        return self._students.list(
            StudentFilter(grade=grade, department_id=department_id),
            limit=max(int(limit), 1),
            order_by_talent=True,
        )

    def department_summary(self, department_id: int) -> TalentGroupSummary:
        return summarize(self._students.list(StudentFilter(department_id=int(department_id)), order_by_talent=True))

    def grade_summary(self, grade: Grade) -> TalentGroupSummary:
        return summarize(self._students.list(StudentFilter(grade=grade), order_by_talent=True))

    def audit_balance(self, student_id: int) -> BalanceAudit:
        """Compare the cached balance with the sum of the transaction log."""

        student = self._require_student(student_id)
        return BalanceAudit(
            student_id=student.student_id,
            cached_talent=student.talent,
            ledger_total=self._talents.ledger_total(student.student_id),
        )
