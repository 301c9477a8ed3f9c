from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional, Sequence

from ..common.datetime_utils import is_allowed_attendance_date, sundays_in_year
from ..common.validators import require_int, require_non_empty
from ..core.constants import ATTENDANCE_REWARD, DEFAULT_ATTENDANCE_YEAR, DEFAULT_PAGE_SIZE
from ..core.enums import AttendanceStatus, AttendanceType, TransactionType
from ..core.exceptions import NotFoundError, ValidationError
from ..students.model import Student
from ..students.repository import StudentRepository
from ..talents.model import TalentTransaction
from .commands import AttendanceCommand, build_attendance_command, parse_status
from .model import AttendanceFilter, AttendanceRecord
from .repository import AttendanceRepository, LedgerRepository, LedgerSession

logger = logging.getLogger(__name__)

DELETE_REASON = "출석 기록 삭제로 인한 회수"


@dataclass(frozen=True)
class ManualAdjustment:
    student: Student
    transaction: TalentTransaction


class AttendanceLedgerService:
    """Keeps each student's talent balance in step with the transaction log.

    Every public operation runs inside one ledger transaction: the attendance
    write, the transaction rows and the balance increment commit together or
    not at all.
    """

    def __init__(self, ledger: LedgerRepository, *, attendance_year: int = DEFAULT_ATTENDANCE_YEAR):
        self._ledger = ledger
        self._year = int(attendance_year)

    @property
    def attendance_year(self) -> int:
        return self._year

    def available_dates(self) -> list[date]:
        return sundays_in_year(self._year)

    def record_attendance(
        self,
        student_id: Any,
        attend_date: Any,
        attendance_type: Any,
        status: Any,
        department_id: Any = None,
    ) -> AttendanceRecord:
        command = build_attendance_command(
            student_id=student_id,
            attend_date=attend_date,
            status=status,
            attendance_type=attendance_type,
            department_id=department_id,
        )
        return self.record(command)

    def record(self, command: AttendanceCommand) -> AttendanceRecord:
        """Upsert the (student, date, type) row and settle its talent."""

        if not is_allowed_attendance_date(command.attend_date, year=self._year):
            raise ValidationError(f"{self._year}년 일요일만 출석체크가 가능합니다.")

        with self._ledger.transaction() as tx:
            student = tx.get_student(command.student_id, for_update=True)
            if not student:
                raise NotFoundError("학생을 찾을 수 없습니다.")

            target = student.grade.value
            if command.attendance_type == AttendanceType.DEPARTMENT:
                department = tx.get_department(command.department_id)
                if not department:
                    raise NotFoundError("부서를 찾을 수 없습니다.")
                target = department.name

            existing = tx.find_attendance(
                student_id=student.student_id,
                attend_date=command.attend_date,
                attendance_type=command.attendance_type,
            )
            talent_given = ATTENDANCE_REWARD if command.status == AttendanceStatus.PRESENT else 0

            if existing:
                attendance_id = existing.attendance_id
                tx.update_attendance(
                    attendance_id,
                    status=command.status,
                    talent_given=talent_given,
                    department_id=command.department_id,
                )
            else:
                attendance_id = tx.insert_attendance(
                    student_id=student.student_id,
                    department_id=command.department_id,
                    attend_date=command.attend_date,
                    status=command.status,
                    attendance_type=command.attendance_type,
                    talent_given=talent_given,
                )

            delta = self._settle(
                tx,
                student_id=student.student_id,
                attendance_id=attendance_id,
                previous=existing,
                new_status=command.status,
                label=command.attendance_type.label,
                target=target,
            )
            logger.info(
                "attendance recorded student=%s date=%s type=%s status=%s delta=%+d",
                student.student_id,
                command.attend_date,
                command.attendance_type.value,
                command.status.value,
                delta,
            )
            return tx.get_attendance(attendance_id)

    def update_attendance_status(self, attendance_id: Any, new_status: Any) -> AttendanceRecord:
        status = parse_status(new_status)
        attendance_id = require_int(attendance_id, "attendanceId")

        with self._ledger.transaction() as tx:
            existing = tx.get_attendance(attendance_id)
            if not existing:
                raise NotFoundError("출석 기록을 찾을 수 없습니다.")

            tx.update_attendance(
                attendance_id,
                status=status,
                talent_given=ATTENDANCE_REWARD if status == AttendanceStatus.PRESENT else 0,
                department_id=existing.department_id,
            )
            delta = self._settle(
                tx,
                student_id=existing.student_id,
                attendance_id=attendance_id,
                previous=existing,
                new_status=status,
                label=existing.attendance_type.label,
                target=self._target_name(existing),
            )
            logger.info("attendance %s status=%s delta=%+d", attendance_id, status.value, delta)
            return tx.get_attendance(attendance_id)

    def delete_attendance(self, attendance_id: Any) -> None:
        attendance_id = require_int(attendance_id, "attendanceId")

        with self._ledger.transaction() as tx:
            existing = tx.get_attendance(attendance_id)
            if not existing:
                raise NotFoundError("출석 기록을 찾을 수 없습니다.")

            if existing.is_present and existing.talent_given > 0:
                tx.increment_talent(existing.student_id, -existing.talent_given)
                tx.add_transaction(
                    student_id=existing.student_id,
                    transaction_type=TransactionType.SPEND,
                    amount=-existing.talent_given,
                    reason=DELETE_REASON,
                    attendance_id=attendance_id,
                )

            tx.delete_attendance(attendance_id)
            logger.info("attendance %s deleted (student=%s)", attendance_id, existing.student_id)

    def adjust_talent_manually(self, student_id: Any, amount: Any, reason: Any) -> ManualAdjustment:
        if student_id in (None, "") or amount in (None, "") or not reason:
            raise ValidationError("필수 필드가 누락되었습니다.")

        sid = require_int(student_id, "studentId")
        value = require_int(amount, "amount")
        text = require_non_empty(reason, "사유")

        with self._ledger.transaction() as tx:
            if not tx.get_student(sid, for_update=True):
                raise NotFoundError("학생을 찾을 수 없습니다.")

            tx.increment_talent(sid, value)
            transaction_id = tx.add_transaction(
                student_id=sid,
                transaction_type=TransactionType.ADJUST,
                amount=value,
                reason=text,
            )
            logger.info("manual talent adjustment student=%s amount=%+d", sid, value)
            return ManualAdjustment(student=tx.get_student(sid), transaction=tx.get_transaction(transaction_id))

    @staticmethod
    def _target_name(record: AttendanceRecord) -> str:
        if record.attendance_type == AttendanceType.DEPARTMENT:
            return record.department.name if record.department else ""
        return record.student.grade.value if record.student else ""

    @staticmethod
    def _settle(
        tx: LedgerSession,
        *,
        student_id: int,
        attendance_id: int,
        previous: Optional[AttendanceRecord],
        new_status: AttendanceStatus,
        label: str,
        target: str,
    ) -> int:
        """Reverse the old grant and/or pay a fresh one; returns the applied delta.

        A reversal and a grant are logged as separate rows, never netted.
        """

        old_status = previous.status if previous else None
        old_amount = previous.talent_given if previous else 0
        delta = 0

        if old_status == AttendanceStatus.PRESENT and new_status != old_status:
            delta -= old_amount
            tx.add_transaction(
                student_id=student_id,
                transaction_type=TransactionType.SPEND,
                amount=-old_amount,
                reason=f"{label} 출석 상태 변경으로 인한 회수 ({target})",
                attendance_id=attendance_id,
            )

        if new_status == AttendanceStatus.PRESENT and old_amount == 0:
            delta += ATTENDANCE_REWARD
            tx.add_transaction(
                student_id=student_id,
                transaction_type=TransactionType.EARN,
                amount=ATTENDANCE_REWARD,
                reason=f"{label} 출석 보상 ({target})",
                attendance_id=attendance_id,
            )

        if delta:
            tx.increment_talent(student_id, delta)
        return delta


@dataclass(frozen=True)
class AttendancePage:
    records: list[AttendanceRecord]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0


class AttendanceQueryService:
    """Read-only attendance listings."""

    def __init__(self, attendance: AttendanceRepository, students: StudentRepository):
        self._attendance = attendance
        self._students = students

    def search(
        self,
        filters: AttendanceFilter,
        *,
        student_name: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> AttendancePage:
        page = max(int(page), 1)
        limit = max(int(limit), 1)

        if student_name:
            student = self._students.find_first_by_name(student_name)
            if not student:
                return AttendancePage(records=[], total=0, page=page, limit=limit)
            filters = AttendanceFilter(
                student_id=student.student_id,
                grade=filters.grade,
                department_id=filters.department_id,
                attend_date=filters.attend_date,
                start_date=filters.start_date,
                end_date=filters.end_date,
                attendance_type=filters.attendance_type,
            )

        records = self._attendance.list(filters, limit=limit, offset=(page - 1) * limit)
        return AttendancePage(
            records=list(records),
            total=self._attendance.count(filters),
            page=page,
            limit=limit,
        )

    def list_all(self, filters: AttendanceFilter) -> Sequence[AttendanceRecord]:
        return self._attendance.list(filters)

    def for_student_name(self, name: str) -> tuple[Student, Sequence[AttendanceRecord]]:
        student = self._students.find_first_by_name(name)
        if not student:
            raise NotFoundError("학생을 찾을 수 없습니다.")
        return student, self._attendance.list(AttendanceFilter(student_id=student.student_id))
