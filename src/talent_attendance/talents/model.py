from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import TransactionType
from ..students.model import Student


@dataclass(frozen=True)
class TalentTransaction:
    """Append-only audit row; ``amount`` is signed."""

    transaction_id: int
    student_id: int
    transaction_type: TransactionType
    amount: int
    reason: str
    attendance_id: Optional[int] = None
    created_at: Optional[datetime] = None
    student: Optional[Student] = field(default=None, compare=False)

    def to_dict(self) -> dict:
        return {
            "id": self.transaction_id,
            "studentId": self.student_id,
            "type": self.transaction_type.value,
            "amount": self.amount,
            "reason": self.reason,
            "attendanceId": self.attendance_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "student": self.student.to_dict() if self.student else None,
        }


@dataclass(frozen=True)
class TalentGroupSummary:
    students: list[Student]
    total_talent: int
    average_talent: float

    @property
    def student_count(self) -> int:
        return len(self.students)


@dataclass(frozen=True)
class BalanceAudit:
    student_id: int
    cached_talent: int
    ledger_total: int

    @property
    def consistent(self) -> bool:
        return self.cached_talent == self.ledger_total
