from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from talent_attendance.core.enums import AttendanceStatus, AttendanceType, Grade, TransactionType
from talent_attendance.core.exceptions import ConflictError, NotFoundError, ValidationError

SUNDAY = date(2026, 1, 4)
NEXT_SUNDAY = date(2026, 1, 11)


def _balance(container, student_id: int) -> int:
    return container.students_repo.get_by_id(student_id).talent


def _history(container, student_id: int):
    return sorted(
        container.talents_repo.list_transactions(student_id=student_id), key=lambda t: t.transaction_id
    )


def _assert_consistent(container, student_id: int) -> None:
    audit = container.talent_service.audit_balance(student_id)
    assert audit.consistent, audit


def test_first_present_record_grants_one_talent(container, make_student):
    s = make_student()
    rec = container.ledger_service.record_attendance(s.student_id, "2026-01-04", "grade", "present")

    assert rec.is_present
    assert rec.talent_given == 1
    assert rec.attendance_type == AttendanceType.GRADE
    assert rec.department_id is None
    assert _balance(container, s.student_id) == 1

    (earn,) = _history(container, s.student_id)
    assert earn.transaction_type == TransactionType.EARN
    assert earn.amount == 1
    assert earn.attendance_id == rec.attendance_id
    assert earn.reason == f"학년 출석 보상 ({Grade.FIRST.value})"


def test_recording_same_status_twice_is_idempotent(container, make_student):
    s = make_student()
    svc = container.ledger_service
    first = svc.record_attendance(s.student_id, SUNDAY, "grade", "present")
    second = svc.record_attendance(s.student_id, SUNDAY, "grade", "present")

    assert first.attendance_id == second.attendance_id
    assert _balance(container, s.student_id) == 1
    assert len(_history(container, s.student_id)) == 1


def test_absent_first_grants_nothing(container, make_student):
    s = make_student()
    rec = container.ledger_service.record_attendance(s.student_id, SUNDAY, "grade", "absent")

    assert rec.talent_given == 0
    assert _balance(container, s.student_id) == 0
    assert _history(container, s.student_id) == []


def test_present_to_absent_reverses_the_grant(container, make_student):
    s = make_student()
    svc = container.ledger_service
    svc.record_attendance(s.student_id, SUNDAY, "grade", "present")
    rec = svc.record_attendance(s.student_id, SUNDAY, "grade", "absent")

    assert rec.talent_given == 0
    assert _balance(container, s.student_id) == 0
    earn, spend = _history(container, s.student_id)
    assert (earn.transaction_type, earn.amount) == (TransactionType.EARN, 1)
    assert (spend.transaction_type, spend.amount) == (TransactionType.SPEND, -1)
    assert "회수" in spend.reason
    _assert_consistent(container, s.student_id)


def test_absent_to_present_grants_once(container, make_student):
    s = make_student()
    svc = container.ledger_service
    svc.record_attendance(s.student_id, SUNDAY, "grade", "absent")
    svc.record_attendance(s.student_id, SUNDAY, "grade", "present")

    assert _balance(container, s.student_id) == 1
    assert [t.amount for t in _history(container, s.student_id)] == [1]


def test_grade_and_department_records_are_independent(container, make_student, make_department):
    dept = make_department("성가대")
    s = make_student(department_id=dept.department_id)
    svc = container.ledger_service
    svc.record_attendance(s.student_id, SUNDAY, "grade", "present")
    dep_rec = svc.record_attendance(s.student_id, SUNDAY, "department", "present", dept.department_id)

    assert dep_rec.department_id == dept.department_id
    assert dep_rec.department.name == "성가대"
    assert _balance(container, s.student_id) == 2
    reasons = [t.reason for t in _history(container, s.student_id)]
    assert reasons == [f"학년 출석 보상 ({Grade.FIRST.value})", "부서 출석 보상 (성가대)"]


def test_department_attendance_requires_existing_department(container, make_student, store):
    s = make_student()
    with pytest.raises(NotFoundError):
        container.ledger_service.record_attendance(s.student_id, SUNDAY, "department", "present", 999)
    assert store.attendance == {}
    assert _balance(container, s.student_id) == 0


def test_unknown_student_is_rejected(container, store):
    with pytest.raises(NotFoundError):
        container.ledger_service.record_attendance(404, SUNDAY, "grade", "present")
    assert store.attendance == {}


@pytest.mark.parametrize("day", ["2026-01-05", "2025-12-28", "2027-01-03"])
def test_only_sundays_of_the_configured_year_are_accepted(container, make_student, store, day):
    s = make_student()
    with pytest.raises(ValidationError):
        container.ledger_service.record_attendance(s.student_id, day, "grade", "present")
    assert store.attendance == {}
    assert store.transactions == {}


def test_update_status_by_id_settles_the_same_way(container, make_student):
    s = make_student()
    svc = container.ledger_service
    rec = svc.record_attendance(s.student_id, SUNDAY, "grade", "present")

    updated = svc.update_attendance_status(rec.attendance_id, "absent")
    assert updated.status == AttendanceStatus.ABSENT
    assert _balance(container, s.student_id) == 0

    again = svc.update_attendance_status(rec.attendance_id, "present")
    assert again.talent_given == 1
    assert _balance(container, s.student_id) == 1
    assert [t.amount for t in _history(container, s.student_id)] == [1, -1, 1]
    _assert_consistent(container, s.student_id)


def test_update_status_rejects_unknown_values(container, make_student):
    s = make_student()
    rec = container.ledger_service.record_attendance(s.student_id, SUNDAY, "grade", "present")
    with pytest.raises(ValidationError):
        container.ledger_service.update_attendance_status(rec.attendance_id, "late")
    with pytest.raises(NotFoundError):
        container.ledger_service.update_attendance_status(12345, "absent")


def test_delete_present_record_claws_back_its_talent(container, make_student, store):
    s = make_student()
    svc = container.ledger_service
    rec = svc.record_attendance(s.student_id, SUNDAY, "grade", "present")

    svc.delete_attendance(rec.attendance_id)

    assert rec.attendance_id not in store.attendance
    assert _balance(container, s.student_id) == 0
    earn, spend = _history(container, s.student_id)
    assert spend.amount == -1
    assert spend.reason == "출석 기록 삭제로 인한 회수"
    # audit rows outlive the attendance row they pointed at
    assert earn.attendance_id is None and spend.attendance_id is None


def test_delete_absent_record_writes_no_transaction(container, make_student):
    s = make_student()
    svc = container.ledger_service
    rec = svc.record_attendance(s.student_id, SUNDAY, "grade", "absent")
    svc.delete_attendance(rec.attendance_id)

    assert _history(container, s.student_id) == []
    with pytest.raises(NotFoundError):
        svc.delete_attendance(rec.attendance_id)


def test_present_absent_delete_leaves_zero_balance_and_two_rows(container, make_student):
    s = make_student()
    svc = container.ledger_service
    rec = svc.record_attendance(s.student_id, SUNDAY, "grade", "present")
    svc.record_attendance(s.student_id, SUNDAY, "grade", "absent")
    svc.delete_attendance(rec.attendance_id)

    assert _balance(container, s.student_id) == 0
    assert len(_history(container, s.student_id)) == 2


def test_manual_adjustment_can_go_down(container, make_student, store):
    s = make_student()
    store.students[s.student_id] = replace(store.students[s.student_id], talent=5)

    result = container.ledger_service.adjust_talent_manually(s.student_id, -3, "간식 교환")

    assert result.student.talent == 2
    assert result.transaction.transaction_type == TransactionType.ADJUST
    assert result.transaction.amount == -3
    assert result.transaction.reason == "간식 교환"
    assert result.transaction.attendance_id is None


def test_manual_adjustment_validates_input(container, make_student):
    s = make_student()
    svc = container.ledger_service
    with pytest.raises(ValidationError):
        svc.adjust_talent_manually(s.student_id, 3, "")
    with pytest.raises(ValidationError):
        svc.adjust_talent_manually(s.student_id, "three", "사유")
    with pytest.raises(NotFoundError):
        svc.adjust_talent_manually(999, 3, "사유")


def test_failure_inside_ledger_transaction_rolls_everything_back(container, make_student, store, ledger_repo, monkeypatch):
    s = make_student()

    original = type(store).now

    def exploding_now(self):
        if self.attendance:
            raise RuntimeError("db gone")
        return original(self)

    monkeypatch.setattr(type(store), "now", exploding_now)
    with pytest.raises(RuntimeError):
        container.ledger_service.record_attendance(s.student_id, SUNDAY, "grade", "present")

    assert store.attendance == {}
    assert store.transactions == {}
    assert _balance(container, s.student_id) == 0
    assert ledger_repo.rollbacks == 1


def test_duplicate_insert_surfaces_as_conflict(ledger_repo, make_student):
    s = make_student()
    with ledger_repo.transaction() as tx:
        tx.insert_attendance(
            student_id=s.student_id,
            department_id=None,
            attend_date=SUNDAY,
            status=AttendanceStatus.PRESENT,
            attendance_type=AttendanceType.GRADE,
            talent_given=1,
        )
    with pytest.raises(ConflictError):
        with ledger_repo.transaction() as tx:
            tx.insert_attendance(
                student_id=s.student_id,
                department_id=None,
                attend_date=SUNDAY,
                status=AttendanceStatus.ABSENT,
                attendance_type=AttendanceType.GRADE,
                talent_given=0,
            )


def test_balance_matches_ledger_after_mixed_operations(container, make_student, make_department):
    dept = make_department("보조교사")
    a = make_student("가나", department_id=dept.department_id)
    b = make_student("다라", Grade.SECOND)
    svc = container.ledger_service

    r1 = svc.record_attendance(a.student_id, SUNDAY, "grade", "present")
    svc.record_attendance(a.student_id, NEXT_SUNDAY, "department", "present", dept.department_id)
    svc.record_attendance(b.student_id, SUNDAY, "grade", "present")
    svc.update_attendance_status(r1.attendance_id, "absent")
    svc.adjust_talent_manually(b.student_id, 4, "성경 암송")
    svc.record_attendance(b.student_id, SUNDAY, "grade", "absent")
    svc.delete_attendance(r1.attendance_id)

    for sid in (a.student_id, b.student_id):
        _assert_consistent(container, sid)
    assert _balance(container, a.student_id) == 1
    assert _balance(container, b.student_id) == 4
