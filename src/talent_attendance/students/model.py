from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import Grade
from ..departments.model import Department


@dataclass(frozen=True)
class Student:
    """Domain entity: a student with a cached talent balance.

    ``talent`` mirrors the sum of the student's talent transactions; only the
    ledger service and manual adjustments change it.
    """

    student_id: int
    name: str
    grade: Grade
    talent: int = 0
    baptism_name: Optional[str] = None
    department_id: Optional[int] = None
    student_number: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[datetime] = None
    department: Optional[Department] = field(default=None, compare=False)

    def to_dict(self, *, student_number: Optional[str] = None) -> dict:
        return {
            "id": self.student_id,
            "name": self.name,
            "baptismName": self.baptism_name,
            "grade": self.grade.value,
            "departmentId": self.department_id,
            "department": self.department.to_dict() if self.department else None,
            "talent": self.talent,
            "studentNumber": student_number or self.student_number,
            "email": self.email,
            "phone": self.phone,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class StudentFilter:
    search: Optional[str] = None
    name: Optional[str] = None
    grade: Optional[Grade] = None
    department_id: Optional[int] = None
