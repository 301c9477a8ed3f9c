from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

from ..core.enums import Grade
from .model import Student, StudentFilter


class StudentRepository(Protocol):
    """Repository interface for Student.

    Services depend on this interface, never on a concrete database.
    Returned students carry their joined ``department``.
    """

    def get_by_id(self, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def find_first_by_name(self, name: str) -> Optional[Student]:
        raise NotImplementedError

    def find_by_name_and_grade(self, *, name: str, grade: Grade) -> Optional[Student]:
        raise NotImplementedError

    def list(
        self,
        filters: StudentFilter,
        *,
        limit: Optional[int] = None,
        offset: int = 0,
        order_by_talent: bool = False,
    ) -> Sequence[Student]:
        """Ordered by grade order then name, or by talent descending."""

        raise NotImplementedError

    def count(self, filters: StudentFilter) -> int:
        raise NotImplementedError

    def sum_talent(self, filters: StudentFilter) -> int:
        raise NotImplementedError

    def create(
        self,
        *,
        name: str,
        grade: Grade,
        baptism_name: Optional[str] = None,
        department_id: Optional[int] = None,
        student_number: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def update(self, student_id: int, changes: Mapping[str, Any]) -> bool:
        """Apply column changes (keys are Student field names except talent)."""

        raise NotImplementedError

    def delete(self, student_id: int) -> bool:
        raise NotImplementedError

    def delete_all(self) -> None:
        """Remove transactions, attendance, students and departments in one transaction."""

        raise NotImplementedError
