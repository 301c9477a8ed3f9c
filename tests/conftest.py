from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any, Iterator, Mapping, Optional

import pytest

from talent_attendance.attendance.model import AttendanceFilter, AttendanceRecord
from talent_attendance.container import Container, assemble
from talent_attendance.core.enums import AttendanceType, Grade
from talent_attendance.core.exceptions import ConflictError
from talent_attendance.departments.model import DUPLICATE_NAME, Department
from talent_attendance.main import create_app
from talent_attendance.students.model import Student, StudentFilter
from talent_attendance.talents.model import TalentTransaction


class InMemoryStore:
    """Tables as dicts of frozen rows; joins are attached on read."""

    def __init__(self):
        self.departments: dict[int, Department] = {}
        self.students: dict[int, Student] = {}
        self.attendance: dict[int, AttendanceRecord] = {}
        self.transactions: dict[int, TalentTransaction] = {}
        self.admin_hashes: list[str] = []
        self._last_id = 0
        self._clock = datetime(2026, 1, 4, 9, 0, 0)

    def next_id(self) -> int:
        self._last_id += 1
        return self._last_id

    def now(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def snapshot(self) -> tuple:
        return (
            dict(self.departments),
            dict(self.students),
            dict(self.attendance),
            dict(self.transactions),
            list(self.admin_hashes),
        )

    def restore(self, snap: tuple) -> None:
        self.departments, self.students, self.attendance, self.transactions, self.admin_hashes = (
            dict(snap[0]),
            dict(snap[1]),
            dict(snap[2]),
            dict(snap[3]),
            list(snap[4]),
        )

    def student_view(self, student: Student) -> Student:
        return replace(student, department=self.departments.get(student.department_id))

    def attendance_view(self, record: AttendanceRecord) -> AttendanceRecord:
        student = self.students.get(record.student_id)
        return replace(
            record,
            student=self.student_view(student) if student else None,
            department=self.departments.get(record.department_id),
        )

    def delete_attendance(self, attendance_id: int) -> None:
        self.attendance.pop(attendance_id, None)
        for tid, t in list(self.transactions.items()):
            if t.attendance_id == attendance_id:
                self.transactions[tid] = replace(t, attendance_id=None)


class InMemoryDepartments:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def list_all(self):
        return sorted(self._s.departments.values(), key=lambda d: d.name)

    def get_by_id(self, department_id: int) -> Optional[Department]:
        return self._s.departments.get(department_id)

    def get_by_name(self, name: str) -> Optional[Department]:
        return next((d for d in self._s.departments.values() if d.name == name), None)

    def create(self, *, name: str, description: Optional[str] = None) -> int:
        if self.get_by_name(name):
            raise ConflictError(DUPLICATE_NAME)
        department_id = self._s.next_id()
        self._s.departments[department_id] = Department(
            department_id=department_id, name=name, description=description, created_at=self._s.now()
        )
        return department_id

    def update(self, department_id: int, *, name: str, description: Optional[str]) -> bool:
        existing = self._s.departments.get(department_id)
        if not existing:
            return False
        taken = self.get_by_name(name)
        if taken and taken.department_id != department_id:
            raise ConflictError(DUPLICATE_NAME)
        self._s.departments[department_id] = replace(existing, name=name, description=description)
        return True

    def delete(self, department_id: int) -> bool:
        return self._s.departments.pop(department_id, None) is not None


def _student_matches(s: Student, f: StudentFilter) -> bool:
    if f.search and f.search not in s.name and f.search not in (s.baptism_name or ""):
        return False
    if f.name and f.name not in s.name:
        return False
    if f.grade is not None and s.grade != f.grade:
        return False
    if f.department_id is not None and s.department_id != f.department_id:
        return False
    return True


class InMemoryStudents:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def get_by_id(self, student_id: int) -> Optional[Student]:
        s = self._s.students.get(student_id)
        return self._s.student_view(s) if s else None

    def find_first_by_name(self, name: str) -> Optional[Student]:
        found = sorted((s for s in self._s.students.values() if s.name == name), key=lambda s: s.student_id)
        return self._s.student_view(found[0]) if found else None

    def find_by_name_and_grade(self, *, name: str, grade: Grade) -> Optional[Student]:
        found = [s for s in self._s.students.values() if s.name == name and s.grade == grade]
        return self._s.student_view(min(found, key=lambda s: s.student_id)) if found else None

    def list(self, filters: StudentFilter, *, limit=None, offset: int = 0, order_by_talent: bool = False):
        rows = [s for s in self._s.students.values() if _student_matches(s, filters)]
        if order_by_talent:
            rows.sort(key=lambda s: (-s.talent, s.name))
        else:
            rows.sort(key=lambda s: (s.grade.order, s.name))
        rows = rows[offset:] if limit is None else rows[offset : offset + limit]
        return [self._s.student_view(s) for s in rows]

    def count(self, filters: StudentFilter) -> int:
        return sum(1 for s in self._s.students.values() if _student_matches(s, filters))

    def sum_talent(self, filters: StudentFilter) -> int:
        return sum(s.talent for s in self._s.students.values() if _student_matches(s, filters))

    def create(self, *, name, grade, baptism_name=None, department_id=None, student_number=None, email=None, phone=None) -> int:
        student_id = self._s.next_id()
        self._s.students[student_id] = Student(
            student_id=student_id,
            name=name,
            grade=grade,
            baptism_name=baptism_name,
            department_id=department_id,
            student_number=student_number,
            email=email,
            phone=phone,
            created_at=self._s.now(),
        )
        return student_id

    def update(self, student_id: int, changes: Mapping[str, Any]) -> bool:
        existing = self._s.students.get(student_id)
        if not existing:
            return False
        assert "talent" not in changes
        self._s.students[student_id] = replace(existing, **changes)
        return True

    def delete(self, student_id: int) -> bool:
        if self._s.students.pop(student_id, None) is None:
            return False
        for aid, r in list(self._s.attendance.items()):
            if r.student_id == student_id:
                del self._s.attendance[aid]
        for tid, t in list(self._s.transactions.items()):
            if t.student_id == student_id:
                del self._s.transactions[tid]
        return True

    def delete_all(self) -> None:
        self._s.transactions.clear()
        self._s.attendance.clear()
        self._s.students.clear()
        self._s.departments.clear()


def _attendance_matches(store: InMemoryStore, r: AttendanceRecord, f: AttendanceFilter) -> bool:
    student = store.students.get(r.student_id)
    checks = (
        f.student_id is None or r.student_id == f.student_id,
        f.grade is None or (student is not None and student.grade == f.grade),
        f.department_id is None or r.department_id == f.department_id,
        f.attend_date is None or r.attend_date == f.attend_date,
        f.start_date is None or r.attend_date >= f.start_date,
        f.end_date is None or r.attend_date <= f.end_date,
        f.attendance_type is None or r.attendance_type == f.attendance_type,
        f.status is None or r.status == f.status,
    )
    return all(checks)


class InMemoryAttendance:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def _matching(self, filters: AttendanceFilter):
        return [r for r in self._s.attendance.values() if _attendance_matches(self._s, r, filters)]

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        r = self._s.attendance.get(attendance_id)
        return self._s.attendance_view(r) if r else None

    def list(self, filters: AttendanceFilter, *, limit=None, offset: int = 0):
        rows = sorted(
            self._matching(filters),
            key=lambda r: (-r.attend_date.toordinal(), self._s.students[r.student_id].name),
        )
        rows = rows[offset:] if limit is None else rows[offset : offset + limit]
        return [self._s.attendance_view(r) for r in rows]

    def count(self, filters: AttendanceFilter) -> int:
        return len(self._matching(filters))

    def count_by_date(self, filters: AttendanceFilter):
        counts: dict[date, int] = {}
        for r in self._matching(filters):
            counts[r.attend_date] = counts.get(r.attend_date, 0) + 1
        return sorted(counts.items())

    def recent_dates(self, limit: int):
        return sorted({r.attend_date for r in self._s.attendance.values()}, reverse=True)[:limit]


class InMemoryTalents:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def list_transactions(self, *, student_id=None, start=None, end=None, limit=None, with_student=False):
        rows = [
            t
            for t in self._s.transactions.values()
            if (student_id is None or t.student_id == student_id)
            and (start is None or t.created_at >= start)
            and (end is None or t.created_at <= end)
        ]
        rows.sort(key=lambda t: (t.created_at, t.transaction_id), reverse=True)
        if limit is not None:
            rows = rows[:limit]
        if with_student:
            rows = [replace(t, student=self._s.student_view(self._s.students[t.student_id])) for t in rows]
        return rows

    def ledger_total(self, student_id: int) -> int:
        return sum(t.amount for t in self._s.transactions.values() if t.student_id == student_id)


class InMemoryLedgerSession:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def get_student(self, student_id: int, *, for_update: bool = False) -> Optional[Student]:
        s = self._s.students.get(student_id)
        return self._s.student_view(s) if s else None

    def get_department(self, department_id: int) -> Optional[Department]:
        return self._s.departments.get(department_id)

    def find_attendance(self, *, student_id: int, attend_date: date, attendance_type: AttendanceType):
        for r in self._s.attendance.values():
            if (r.student_id, r.attend_date, r.attendance_type) == (student_id, attend_date, attendance_type):
                return self._s.attendance_view(r)
        return None

    def get_attendance(self, attendance_id: int):
        r = self._s.attendance.get(attendance_id)
        return self._s.attendance_view(r) if r else None

    def insert_attendance(self, *, student_id, department_id, attend_date, status, attendance_type, talent_given) -> int:
        if self.find_attendance(student_id=student_id, attend_date=attend_date, attendance_type=attendance_type):
            raise ConflictError("이미 등록된 출석 기록입니다.")
        attendance_id = self._s.next_id()
        now = self._s.now()
        self._s.attendance[attendance_id] = AttendanceRecord(
            attendance_id=attendance_id,
            student_id=student_id,
            attend_date=attend_date,
            status=status,
            attendance_type=attendance_type,
            talent_given=talent_given,
            department_id=department_id,
            created_at=now,
            updated_at=now,
        )
        return attendance_id

    def update_attendance(self, attendance_id: int, *, status, talent_given, department_id) -> None:
        r = self._s.attendance[attendance_id]
        self._s.attendance[attendance_id] = replace(
            r, status=status, talent_given=talent_given, department_id=department_id, updated_at=self._s.now()
        )

    def delete_attendance(self, attendance_id: int) -> None:
        self._s.delete_attendance(attendance_id)

    def add_transaction(self, *, student_id, transaction_type, amount, reason, attendance_id=None) -> int:
        transaction_id = self._s.next_id()
        self._s.transactions[transaction_id] = TalentTransaction(
            transaction_id=transaction_id,
            student_id=student_id,
            transaction_type=transaction_type,
            amount=amount,
            reason=reason,
            attendance_id=attendance_id,
            created_at=self._s.now(),
        )
        return transaction_id

    def increment_talent(self, student_id: int, delta: int) -> None:
        s = self._s.students[student_id]
        self._s.students[student_id] = replace(s, talent=s.talent + delta)

    def get_transaction(self, transaction_id: int):
        return self._s.transactions.get(transaction_id)


class InMemoryLedger:
    """All-or-nothing: any exception restores the store to its state before the block."""

    def __init__(self, store: InMemoryStore):
        self._s = store
        self.commits = 0
        self.rollbacks = 0

    @contextmanager
    def transaction(self) -> Iterator[InMemoryLedgerSession]:
        snap = self._s.snapshot()
        try:
            yield InMemoryLedgerSession(self._s)
        except Exception:
            self._s.restore(snap)
            self.rollbacks += 1
            raise
        self.commits += 1


class InMemoryAdmins:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def get_password_hash(self) -> Optional[str]:
        return self._s.admin_hashes[0] if self._s.admin_hashes else None

    def create(self, password_hash: str) -> int:
        self._s.admin_hashes.append(password_hash)
        return len(self._s.admin_hashes)

    def update(self, password_hash: str) -> bool:
        if not self._s.admin_hashes:
            return False
        self._s.admin_hashes[0] = password_hash
        return True


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def ledger_repo(store) -> InMemoryLedger:
    return InMemoryLedger(store)


@pytest.fixture
def container(store, ledger_repo) -> Container:
    return assemble(
        students_repo=InMemoryStudents(store),
        departments_repo=InMemoryDepartments(store),
        attendance_repo=InMemoryAttendance(store),
        ledger_repo=ledger_repo,
        talents_repo=InMemoryTalents(store),
        admin_repo=InMemoryAdmins(store),
        attendance_year=2026,
        admin_default_password="1004",
    )


@pytest.fixture
def make_department(container):
    def _make(name: str = "성가대", description: Optional[str] = None) -> Department:
        return container.department_service.create(name=name, description=description)

    return _make


@pytest.fixture
def make_student(container):
    def _make(name: str = "김철수", grade: Grade = Grade.FIRST, department_id: Optional[int] = None, **kwargs) -> Student:
        student_id = container.students_repo.create(name=name, grade=grade, department_id=department_id, **kwargs)
        return container.students_repo.get_by_id(student_id)

    return _make


@pytest.fixture
def app(container):
    app = create_app(container, settings_module="talent_attendance.config.testing")
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app):
    client = app.test_client()
    resp = client.post("/api/auth/admin/login", json={"password": "1004"})
    assert resp.status_code == 200
    return client

