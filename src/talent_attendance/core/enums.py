from __future__ import annotations

from enum import Enum


class Grade(str, Enum):
    """Grade cohorts, declared in display order."""

    KINDERGARTEN = "유치부"
    FIRST = "1학년"
    SECOND = "2학년"
    FIRST_COMMUNION = "첫영성체"
    FOURTH = "4학년"
    FIFTH = "5학년"
    SIXTH = "6학년"

    @property
    def prefix(self) -> str:
        return _GRADE_PREFIX[self]

    @property
    def order(self) -> int:
        return list(Grade).index(self)


_GRADE_PREFIX = {
    Grade.KINDERGARTEN: "유",
    Grade.FIRST: "1",
    Grade.SECOND: "2",
    Grade.FIRST_COMMUNION: "첫",
    Grade.FOURTH: "4",
    Grade.FIFTH: "5",
    Grade.SIXTH: "6",
}


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"

    @property
    def label(self) -> str:
        return "출석" if self is AttendanceStatus.PRESENT else "결석"


class AttendanceType(str, Enum):
    """Whether a record counts for the grade cohort or for a department."""

    GRADE = "grade"
    DEPARTMENT = "department"

    @property
    def label(self) -> str:
        return "학년" if self is AttendanceType.GRADE else "부서"


class TransactionType(str, Enum):
    EARN = "earn"
    SPEND = "spend"
    ADJUST = "adjust"

    @property
    def label(self) -> str:
        return _TRANSACTION_LABEL[self]


_TRANSACTION_LABEL = {
    TransactionType.EARN: "획득",
    TransactionType.SPEND: "사용",
    TransactionType.ADJUST: "조정",
}
