from datetime import date, datetime

import pytest

from talent_attendance.attendance.commands import (
    DepartmentAttendanceCommand,
    GradeAttendanceCommand,
    build_attendance_command,
    parse_attendance_payload,
)
from talent_attendance.common.datetime_utils import is_allowed_attendance_date, sundays_in_year
from talent_attendance.core.enums import AttendanceStatus, AttendanceType
from talent_attendance.core.exceptions import ValidationError


def test_payload_without_type_is_a_grade_command():
    cmd = parse_attendance_payload({"studentId": "7", "date": "2026-03-01", "status": "present"})

    assert isinstance(cmd, GradeAttendanceCommand)
    assert cmd.student_id == 7
    assert cmd.attend_date == date(2026, 3, 1)
    assert cmd.status == AttendanceStatus.PRESENT
    assert cmd.attendance_type == AttendanceType.GRADE
    assert cmd.department_id is None


def test_datetime_attend_date_is_truncated_to_a_date():
    cmd = build_attendance_command(student_id=1, attend_date=datetime(2026, 3, 1, 10, 30), status="present")

    assert cmd.attend_date == date(2026, 3, 1)
    assert type(cmd.attend_date) is date


def test_grade_command_ignores_department_id():
    cmd = parse_attendance_payload(
        {"studentId": 1, "date": "2026-03-01", "status": "absent", "type": "grade", "departmentId": 3}
    )
    assert isinstance(cmd, GradeAttendanceCommand)
    assert cmd.department_id is None


def test_department_command_carries_department():
    cmd = parse_attendance_payload(
        {"studentId": 1, "date": "2026-03-01", "status": "present", "type": "department", "departmentId": "3"}
    )
    assert isinstance(cmd, DepartmentAttendanceCommand)
    assert cmd.department_id == 3
    assert cmd.attendance_type == AttendanceType.DEPARTMENT


def test_department_command_without_department_is_rejected():
    with pytest.raises(ValidationError, match="부서를 선택"):
        build_attendance_command(student_id=1, attend_date="2026-03-01", status="present", attendance_type="department")


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"date": "2026-03-01", "status": "present"},
        {"studentId": 1, "status": "present"},
        {"studentId": 1, "date": "2026-03-01"},
    ],
)
def test_missing_required_fields(payload):
    with pytest.raises(ValidationError, match="필수 필드"):
        parse_attendance_payload(payload)


@pytest.mark.parametrize(
    "payload",
    [
        {"studentId": 1, "date": "2026-03-01", "status": "late"},
        {"studentId": 1, "date": "2026-03-01", "status": "present", "type": "club"},
        {"studentId": 1, "date": "03/01/2026", "status": "present"},
        {"studentId": "abc", "date": "2026-03-01", "status": "present"},
    ],
)
def test_invalid_values(payload):
    with pytest.raises(ValidationError):
        parse_attendance_payload(payload)


def test_sundays_in_year_covers_every_sunday():
    days = sundays_in_year(2026)

    assert days[0] == date(2026, 1, 4)
    assert days[-1] == date(2026, 12, 27)
    assert len(days) == 52
    assert all(d.weekday() == 6 for d in days)


def test_allowed_date_must_be_sunday_in_year():
    assert is_allowed_attendance_date(date(2026, 1, 4), year=2026)
    assert not is_allowed_attendance_date(date(2026, 1, 5), year=2026)
    assert not is_allowed_attendance_date(date(2025, 12, 28), year=2026)
