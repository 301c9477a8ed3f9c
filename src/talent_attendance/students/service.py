from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

from ..attendance.model import AttendanceFilter, AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.validators import optional_int, optional_text, require_enum, require_non_empty
from ..core.constants import DEFAULT_PAGE_SIZE, RECENT_HISTORY_LIMIT
from ..core.enums import Grade
from ..core.exceptions import NotFoundError, ValidationError
from ..departments.repository import DepartmentRepository
from ..talents.model import TalentTransaction
from ..talents.repository import TalentRepository
from .model import Student, StudentFilter
from .repository import StudentRepository

logger = logging.getLogger(__name__)

_UNSET = object()


def parse_grade(value: Any) -> Grade:
    return require_enum(Grade, value, "유효하지 않은 학년입니다.")


def number_students(students: Iterable[Student]) -> dict[int, str]:
    """Give each student ``<prefix>-<n>``, n counting from 1 by name within a grade."""

    by_grade: dict[Grade, list[Student]] = {}
    for s in students:
        by_grade.setdefault(s.grade, []).append(s)

    numbers: dict[int, str] = {}
    for grade, members in by_grade.items():
        for index, s in enumerate(sorted(members, key=lambda m: (m.name, m.student_id)), start=1):
            numbers[s.student_id] = f"{grade.prefix}-{index}"
    return numbers


@dataclass(frozen=True)
class StudentPage:
    students: list[Student]
    numbers: dict[int, str]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0


@dataclass(frozen=True)
class StudentDetail:
    student: Student
    student_number: str
    attendance: list[AttendanceRecord]
    transactions: list[TalentTransaction]


class StudentService:
    """Use case: student roster management and lookups."""

    def __init__(
        self,
        students: StudentRepository,
        departments: DepartmentRepository,
        attendance: AttendanceRepository,
        talents: TalentRepository,
    ):
        self._students = students
        self._departments = departments
        self._attendance = attendance
        self._talents = talents

    # --- lookups ---------------------------------------------------------

    def get(self, student_id: int) -> Student:
        student = self._students.get_by_id(int(student_id))
        if not student:
            raise NotFoundError("학생을 찾을 수 없습니다.")
        return student

    def numbers_for(self, grades: Iterable[Grade]) -> dict[int, str]:
        numbers: dict[int, str] = {}
        for grade in set(grades):
            numbers.update(number_students(self._students.list(StudentFilter(grade=grade))))
        return numbers

    def list(self, filters: StudentFilter, *, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> StudentPage:
        page = max(int(page), 1)
        limit = max(int(limit), 1)
        students = list(self._students.list(filters, limit=limit, offset=(page - 1) * limit))
        return StudentPage(
            students=students,
            numbers=self.numbers_for(s.grade for s in students),
            total=self._students.count(filters),
            page=page,
            limit=limit,
        )

    def search_by_name(self, name: Any) -> tuple[list[Student], dict[int, str]]:
        name = optional_text(name)
        if not name:
            raise ValidationError("학생 이름을 입력해주세요.")
        students = list(self._students.list(StudentFilter(name=name)))
        return students, self.numbers_for(s.grade for s in students)

    def detail(self, student_id: int) -> StudentDetail:
        student = self.get(student_id)
        return self._detail(student, limit=RECENT_HISTORY_LIMIT)

    def detail_by_name(self, name: str) -> StudentDetail:
        student = self._students.find_first_by_name(name)
        if not student:
            raise NotFoundError("학생을 찾을 수 없습니다.")
        return self._detail(student, limit=None)

    def _detail(self, student: Student, *, limit: Optional[int]) -> StudentDetail:
        return StudentDetail(
            student=student,
            student_number=self.numbers_for([student.grade]).get(student.student_id, ""),
            attendance=list(self._attendance.list(AttendanceFilter(student_id=student.student_id), limit=limit)),
            transactions=list(self._talents.list_transactions(student_id=student.student_id, limit=limit)),
        )

    # --- writes ----------------------------------------------------------

    def _check_department(self, department_id: Optional[int]) -> None:
        if department_id is not None and not self._departments.get_by_id(department_id):
            raise NotFoundError("부서를 찾을 수 없습니다.")

    def create(
        self,
        *,
        name: Any,
        grade: Any,
        baptism_name: Any = None,
        department_id: Any = None,
        email: Any = None,
        phone: Any = None,
    ) -> Student:
        if not optional_text(name) or not optional_text(grade):
            raise ValidationError("이름과 학년은 필수입니다.")

        name = require_non_empty(name, "이름")
        grade = parse_grade(grade)
        department_id = optional_int(department_id, "departmentId")
        self._check_department(department_id)

        # The stored number is where the new name lands in its grade today.
        peers = [s.name for s in self._students.list(StudentFilter(grade=grade))]
        position = sorted(peers + [name]).index(name) + 1

        student_id = self._students.create(
            name=name,
            grade=grade,
            baptism_name=optional_text(baptism_name),
            department_id=department_id,
            student_number=f"{grade.prefix}-{position}",
            email=optional_text(email),
            phone=optional_text(phone),
        )
        logger.info("student created id=%s grade=%s", student_id, grade.value)
        return self.get(student_id)

    def update(
        self,
        student_id: int,
        *,
        name: Any = None,
        grade: Any = None,
        baptism_name: Any = _UNSET,
        department_id: Any = _UNSET,
        student_number: Any = _UNSET,
        email: Any = _UNSET,
        phone: Any = _UNSET,
    ) -> Student:
        """Partial update; ``None`` name/grade and omitted fields are left alone."""

        existing = self.get(student_id)
        changes: dict[str, Any] = {}

        if optional_text(name):
            changes["name"] = optional_text(name)
        if optional_text(grade):
            changes["grade"] = parse_grade(optional_text(grade))
        if department_id is not _UNSET:
            dept_id = optional_int(department_id, "departmentId")
            self._check_department(dept_id)
            changes["department_id"] = dept_id
        for field_name, value in (
            ("baptism_name", baptism_name),
            ("student_number", student_number),
            ("email", email),
            ("phone", phone),
        ):
            if value is not _UNSET:
                changes[field_name] = optional_text(value)

        self._students.update(existing.student_id, changes)
        return self.get(existing.student_id)

    def update_department(self, student_id: int, department_id: Any) -> Student:
        existing = self.get(student_id)
        dept_id = optional_int(department_id, "departmentId")
        self._check_department(dept_id)
        self._students.update(existing.student_id, {"department_id": dept_id})
        return self.get(existing.student_id)

    def delete(self, student_id: int) -> None:
        existing = self.get(student_id)
        self._students.delete(existing.student_id)
        logger.info("student deleted id=%s", existing.student_id)

    def delete_all(self) -> None:
        self._students.delete_all()
        logger.warning("all students, attendance, talent transactions and departments deleted")

    def students_of(self, grade: Grade) -> Sequence[Student]:
        return self._students.list(StudentFilter(grade=grade))
