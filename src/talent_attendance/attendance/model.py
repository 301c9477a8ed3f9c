from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus, AttendanceType, Grade
from ..departments.model import Department
from ..students.model import Student


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one student's attendance for one Sunday and one type."""

    attendance_id: int
    student_id: int
    attend_date: date
    status: AttendanceStatus
    attendance_type: AttendanceType
    talent_given: int = 0
    department_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    student: Optional[Student] = field(default=None, compare=False)
    department: Optional[Department] = field(default=None, compare=False)

    @property
    def is_present(self) -> bool:
        return self.status == AttendanceStatus.PRESENT

    def to_dict(self) -> dict:
        return {
            "id": self.attendance_id,
            "studentId": self.student_id,
            "departmentId": self.department_id,
            "date": self.attend_date.isoformat(),
            "status": self.status.value,
            "type": self.attendance_type.value,
            "talentGiven": self.talent_given,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "student": self.student.to_dict() if self.student else None,
            "department": self.department.to_dict() if self.department else None,
        }


@dataclass(frozen=True)
class AttendanceFilter:
    """Query filter shared by attendance listing and statistics counts."""

    student_id: Optional[int] = None
    grade: Optional[Grade] = None
    department_id: Optional[int] = None
    attend_date: Optional[date] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    attendance_type: Optional[AttendanceType] = None
    status: Optional[AttendanceStatus] = None

    def with_status(self, status: AttendanceStatus) -> "AttendanceFilter":
        return AttendanceFilter(
            student_id=self.student_id,
            grade=self.grade,
            department_id=self.department_id,
            attend_date=self.attend_date,
            start_date=self.start_date,
            end_date=self.end_date,
            attendance_type=self.attendance_type,
            status=status,
        )

    def with_date(self, attend_date: date) -> "AttendanceFilter":
        return AttendanceFilter(
            student_id=self.student_id,
            grade=self.grade,
            department_id=self.department_id,
            attend_date=attend_date,
            attendance_type=self.attendance_type,
            status=self.status,
        )
