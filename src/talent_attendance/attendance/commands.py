from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, ClassVar, Mapping, Optional, Union

from ..common.datetime_utils import parse_iso_date
from ..common.validators import optional_int, require_enum, require_int
from ..core.enums import AttendanceStatus, AttendanceType
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class GradeAttendanceCommand:
    attendance_type: ClassVar[AttendanceType] = AttendanceType.GRADE

    student_id: int
    attend_date: date
    status: AttendanceStatus

    @property
    def department_id(self) -> Optional[int]:
        return None


@dataclass(frozen=True)
class DepartmentAttendanceCommand:
    attendance_type: ClassVar[AttendanceType] = AttendanceType.DEPARTMENT

    student_id: int
    attend_date: date
    status: AttendanceStatus
    department_id: int


AttendanceCommand = Union[GradeAttendanceCommand, DepartmentAttendanceCommand]


def parse_status(value: Any) -> AttendanceStatus:
    return require_enum(AttendanceStatus, value, "출석 상태는 출석 또는 결석만 가능합니다.")


def parse_type(value: Any) -> AttendanceType:
    return require_enum(
        AttendanceType, value, "출석 타입은 학년(grade) 또는 부서(department)만 가능합니다."
    )


def build_attendance_command(
    *,
    student_id: Any,
    attend_date: Any,
    status: Any,
    attendance_type: Any = AttendanceType.GRADE,
    department_id: Any = None,
) -> AttendanceCommand:
    """Validate raw values and pick the command variant for the attendance type."""

    if student_id in (None, "") or attend_date in (None, "") or status in (None, ""):
        raise ValidationError("필수 필드가 누락되었습니다.")

    sid = require_int(student_id, "studentId")
    if isinstance(attend_date, datetime):
        day = attend_date.date()
    elif isinstance(attend_date, date):
        day = attend_date
    else:
        day = parse_iso_date(str(attend_date))
    st = parse_status(status)
    kind = parse_type(attendance_type or AttendanceType.GRADE)

    if kind == AttendanceType.DEPARTMENT:
        dept_id = optional_int(department_id, "departmentId")
        if dept_id is None:
            raise ValidationError("부서 출석은 부서를 선택해야 합니다.")
        return DepartmentAttendanceCommand(student_id=sid, attend_date=day, status=st, department_id=dept_id)

    return GradeAttendanceCommand(student_id=sid, attend_date=day, status=st)


def parse_attendance_payload(payload: Optional[Mapping[str, Any]]) -> AttendanceCommand:
    """Turn a JSON request body into a typed attendance command."""

    payload = payload or {}
    return build_attendance_command(
        student_id=payload.get("studentId"),
        attend_date=payload.get("date"),
        status=payload.get("status"),
        attendance_type=payload.get("type") or AttendanceType.GRADE,
        department_id=payload.get("departmentId"),
    )
