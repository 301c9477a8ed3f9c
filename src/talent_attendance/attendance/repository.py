from __future__ import annotations

from datetime import date
from typing import ContextManager, Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus, AttendanceType, TransactionType
from ..departments.model import Department
from ..students.model import Student
from ..talents.model import TalentTransaction
from .model import AttendanceFilter, AttendanceRecord


class AttendanceRepository(Protocol):
    """Read side: listing and counting attendance rows."""

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list(
        self,
        filters: AttendanceFilter,
        *,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Sequence[AttendanceRecord]:
        """Newest date first, joined with student and department."""

        raise NotImplementedError

    def count(self, filters: AttendanceFilter) -> int:
        raise NotImplementedError

    def count_by_date(self, filters: AttendanceFilter) -> Sequence[tuple[date, int]]:
        """Row count per date, oldest first."""

        raise NotImplementedError

    def recent_dates(self, limit: int) -> Sequence[date]:
        """Distinct dates that have any attendance, newest first."""

        raise NotImplementedError


class LedgerSession(Protocol):
    """Operations available inside one ledger transaction.

    Reads made through ``for_update``/attendance lookups lock the rows they
    return until the transaction ends.
    """

    def get_student(self, student_id: int, *, for_update: bool = False) -> Optional[Student]:
        raise NotImplementedError

    def get_department(self, department_id: int) -> Optional[Department]:
        raise NotImplementedError

    def find_attendance(
        self, *, student_id: int, attend_date: date, attendance_type: AttendanceType
    ) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_attendance(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

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
        """Insert a new row; an existing (student, date, type) raises ConflictError."""

        raise NotImplementedError

    def update_attendance(
        self,
        attendance_id: int,
        *,
        status: AttendanceStatus,
        talent_given: int,
        department_id: Optional[int],
    ) -> None:
        raise NotImplementedError

    def delete_attendance(self, attendance_id: int) -> None:
        raise NotImplementedError

    def add_transaction(
        self,
        *,
        student_id: int,
        transaction_type: TransactionType,
        amount: int,
        reason: str,
        attendance_id: Optional[int] = None,
    ) -> int:
        raise NotImplementedError

    def increment_talent(self, student_id: int, delta: int) -> None:
        raise NotImplementedError

    def get_transaction(self, transaction_id: int) -> Optional[TalentTransaction]:
        raise NotImplementedError


class LedgerRepository(Protocol):
    def transaction(self) -> ContextManager[LedgerSession]:
        """Open a transaction: commit when the block exits, roll back on error."""

        raise NotImplementedError
