from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence, Union

from ..attendance.model import AttendanceFilter
from ..attendance.repository import AttendanceRepository
from ..core.constants import COMPARISON_DATE_LIMIT, TOP_STUDENTS_LIMIT
from ..core.enums import AttendanceStatus, Grade
from ..core.exceptions import NotFoundError, ValidationError
from ..departments.model import Department
from ..departments.repository import DepartmentRepository
from ..students.model import Student, StudentFilter
from ..students.repository import StudentRepository


def percent(part: int, whole: int, *, digits: Optional[int] = 2) -> float:
    if whole <= 0:
        return 0
    return round(part / whole * 100, digits) if digits is not None else round(part / whole * 100)


@dataclass(frozen=True)
class AttendanceCounts:
    total: int
    present: int

    @property
    def absent(self) -> int:
        return self.total - self.present

    @property
    def rate(self) -> float:
        return percent(self.present, self.total)

    def to_dict(self) -> dict:
        return {
            "totalAttendance": self.total,
            "presentCount": self.present,
            "absentCount": self.absent,
            "attendanceRate": self.rate,
        }


@dataclass(frozen=True)
class Overview:
    student_count: int
    counts: AttendanceCounts
    total_talent: int

    @property
    def average_talent(self) -> float:
        return self.total_talent / self.student_count if self.student_count else 0

    def to_dict(self) -> dict:
        return {
            "studentCount": self.student_count,
            "attendanceCount": self.counts.total,
            "presentCount": self.counts.present,
            "absentCount": self.counts.absent,
            "attendanceRate": self.counts.rate,
            "totalTalent": self.total_talent,
            "averageTalent": self.average_talent,
        }


@dataclass(frozen=True)
class GroupComparison:
    """Attendance of one grade or one department."""

    label: str
    student_count: int
    counts: AttendanceCounts
    department: Optional[Department] = None


@dataclass(frozen=True)
class DateCell:
    key: Union[int, str]
    name: str
    present: int
    total: int

    @property
    def rate(self) -> float:
        return percent(self.present, self.total, digits=None)


@dataclass(frozen=True)
class DateComparison:
    attend_date: date
    cells: list[DateCell]


@dataclass(frozen=True)
class TalentStatistics:
    student_count: int
    total_talent: int
    top_students: list[Student]

    @property
    def average_talent(self) -> float:
        return round(self.total_talent / self.student_count, 2) if self.student_count else 0


class StatisticsService:
    """Read-only aggregates over students and attendance."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        students: StudentRepository,
        departments: DepartmentRepository,
    ):
        self._attendance = attendance
        self._students = students
        self._departments = departments

    def counts(self, filters: AttendanceFilter) -> AttendanceCounts:
        return AttendanceCounts(
            total=self._attendance.count(filters),
            present=self._attendance.count(filters.with_status(AttendanceStatus.PRESENT)),
        )

    def overview(self, *, grade: Optional[Grade] = None, department_id: Optional[int] = None) -> Overview:
        students = StudentFilter(grade=grade, department_id=department_id)
        return Overview(
            student_count=self._students.count(students),
            counts=self.counts(AttendanceFilter(grade=grade, department_id=department_id)),
            total_talent=self._students.sum_talent(students),
        )

    def student(self, student_id: int) -> tuple[Student, AttendanceCounts]:
        student = self._students.get_by_id(int(student_id))
        if not student:
            raise NotFoundError("학생을 찾을 수 없습니다.")
        return student, self.counts(AttendanceFilter(student_id=student.student_id))

    def period(
        self,
        *,
        start_date: Optional[date],
        end_date: Optional[date],
        grade: Optional[Grade] = None,
        department_id: Optional[int] = None,
    ) -> AttendanceCounts:
        if not start_date or not end_date:
            raise ValidationError("시작일과 종료일을 입력해주세요.")
        if start_date > end_date:
            raise ValidationError("시작일은 종료일보다 늦을 수 없습니다.")
        return self.counts(
            AttendanceFilter(start_date=start_date, end_date=end_date, grade=grade, department_id=department_id)
        )

    def trend(self, *, grade: Optional[Grade] = None, department_id: Optional[int] = None) -> Sequence[tuple[date, int]]:
        return self._attendance.count_by_date(AttendanceFilter(grade=grade, department_id=department_id))

    def rate(self, *, grade: Optional[Grade] = None, department_id: Optional[int] = None) -> AttendanceCounts:
        return self.counts(AttendanceFilter(grade=grade, department_id=department_id))

    def grades(self) -> list[GroupComparison]:
        return [
            GroupComparison(
                label=grade.value,
                student_count=self._students.count(StudentFilter(grade=grade)),
                counts=self.counts(AttendanceFilter(grade=grade)),
            )
            for grade in Grade
        ]

    def departments(self) -> list[GroupComparison]:
        return [
            GroupComparison(
                label=d.name,
                student_count=self._students.count(StudentFilter(department_id=d.department_id)),
                counts=self.counts(AttendanceFilter(department_id=d.department_id)),
                department=d,
            )
            for d in self._departments.list_all()
        ]

    def talent(self, *, grade: Optional[Grade] = None, department_id: Optional[int] = None) -> TalentStatistics:
        filters = StudentFilter(grade=grade, department_id=department_id)
        return TalentStatistics(
            student_count=self._students.count(filters),
            total_talent=self._students.sum_talent(filters),
            top_students=list(self._students.list(filters, limit=TOP_STUDENTS_LIMIT, order_by_talent=True)),
        )

    def _cell(self, filters: AttendanceFilter, key: Union[int, str], name: str) -> DateCell:
        counts = self.counts(filters)
        return DateCell(key=key, name=name, present=counts.present, total=counts.total)

    def date_grade_comparison(self) -> list[DateComparison]:
        """Per recent attendance date, each grade's attendance."""

        return [
            DateComparison(
                attend_date=day,
                cells=[self._cell(AttendanceFilter(attend_date=day, grade=g), g.value, g.value) for g in Grade],
            )
            for day in self._attendance.recent_dates(COMPARISON_DATE_LIMIT)
        ]

    def date_department_comparison(self) -> list[DateComparison]:
        """Like the grade comparison; departments and dates without records are dropped."""

        departments = self._departments.list_all()
        out: list[DateComparison] = []
        for day in self._attendance.recent_dates(COMPARISON_DATE_LIMIT):
            cells = [
                self._cell(AttendanceFilter(attend_date=day, department_id=d.department_id), d.department_id, d.name)
                for d in departments
            ]
            cells = [c for c in cells if c.total > 0]
            if cells:
                out.append(DateComparison(attend_date=day, cells=cells))
        return out
