from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from ..common.validators import optional_text, require_non_empty
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..students.model import Student, StudentFilter
from ..students.repository import StudentRepository
from .model import DUPLICATE_NAME, Department
from .repository import DepartmentRepository

logger = logging.getLogger(__name__)

_UNSET = object()


class DepartmentService:
    """Use case: manage departments (admin) and list their members."""

    def __init__(self, departments: DepartmentRepository, students: StudentRepository):
        self._departments = departments
        self._students = students

    def list_all(self) -> Sequence[Department]:
        return self._departments.list_all()

    def get(self, department_id: int) -> Department:
        department = self._departments.get_by_id(int(department_id))
        if not department:
            raise NotFoundError("부서를 찾을 수 없습니다.")
        return department

    def students_of(self, department_id: int) -> Sequence[Student]:
        members = self._students.list(StudentFilter(department_id=int(department_id)))
        return sorted(members, key=lambda s: s.name)

    def create(self, *, name: Any, description: Any = None) -> Department:
        name = require_non_empty(name, "부서명")
        if self._departments.get_by_name(name):
            raise ConflictError(DUPLICATE_NAME)

        department_id = self._departments.create(name=name, description=optional_text(description))
        logger.info("department created id=%s name=%s", department_id, name)
        return self.get(department_id)

    def update(self, department_id: int, *, name: Any = None, description: Any = _UNSET) -> Department:
        """Rename and/or re-describe; omitted fields keep their value."""

        existing = self.get(department_id)

        new_name = optional_text(name) or existing.name
        if new_name != existing.name and self._departments.get_by_name(new_name):
            raise ConflictError(DUPLICATE_NAME)

        new_description = existing.description if description is _UNSET else optional_text(description)
        self._departments.update(existing.department_id, name=new_name, description=new_description)
        return self.get(existing.department_id)

    def delete(self, department_id: int) -> None:
        department = self.get(department_id)
        if self._students.count(StudentFilter(department_id=department.department_id)) > 0:
            raise ValidationError(
                "소속 학생이 있어 부서를 삭제할 수 없습니다. 먼저 학생들을 다른 부서로 이동하세요."
            )
        self._departments.delete(department.department_id)
        logger.info("department deleted id=%s", department.department_id)

    def get_or_create(self, name: str) -> tuple[Department, bool]:
        """Used by the spreadsheet import; returns (department, created)."""

        existing = self._departments.get_by_name(name)
        if existing:
            return existing, False
        return self.create(name=name), True

    def find_by_name(self, name: str) -> Optional[Department]:
        return self._departments.get_by_name(name)
