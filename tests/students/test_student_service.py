from datetime import date

import pytest

from talent_attendance.core.enums import Grade
from talent_attendance.core.exceptions import NotFoundError, ValidationError
from talent_attendance.students.model import Student, StudentFilter
from talent_attendance.students.service import number_students


def _s(student_id: int, name: str, grade: Grade) -> Student:
    return Student(student_id=student_id, name=name, grade=grade)


def test_number_students_orders_by_name_within_each_grade():
    numbers = number_students(
        [
            _s(1, "최민수", Grade.FIRST),
            _s(2, "김하늘", Grade.FIRST),
            _s(3, "박지은", Grade.KINDERGARTEN),
            _s(4, "이서준", Grade.FIRST_COMMUNION),
        ]
    )
    assert numbers == {2: "1-1", 1: "1-2", 3: "유-1", 4: "첫-1"}


def test_create_validates_required_fields(container):
    svc = container.student_service
    with pytest.raises(ValidationError, match="이름과 학년은 필수입니다."):
        svc.create(name="", grade="1학년")
    with pytest.raises(ValidationError, match="이름과 학년은 필수입니다."):
        svc.create(name="김철수", grade=None)
    with pytest.raises(ValidationError, match="유효하지 않은 학년"):
        svc.create(name="김철수", grade="7학년")
    with pytest.raises(NotFoundError):
        svc.create(name="김철수", grade="1학년", department_id=42)


def test_create_starts_at_zero_talent_with_grade_number(container, make_department):
    dept = make_department("성가대")
    svc = container.student_service
    svc.create(name="하늘", grade="2학년")
    created = svc.create(name="가람", grade="2학년", baptism_name="미카엘", department_id=dept.department_id)

    assert created.talent == 0
    assert created.grade == Grade.SECOND
    assert created.baptism_name == "미카엘"
    assert created.department.name == "성가대"
    assert created.student_number == "2-1"


def test_update_is_partial(container, make_student):
    s = make_student("김철수", Grade.FIRST, phone="010-1111-2222")
    updated = container.student_service.update(s.student_id, grade="4학년", email="a@b.c")

    assert updated.name == "김철수"
    assert updated.grade == Grade.FOURTH
    assert updated.email == "a@b.c"
    assert updated.phone == "010-1111-2222"


def test_update_department_can_clear_it(container, make_student, make_department):
    dept = make_department()
    s = make_student(department_id=dept.department_id)

    moved = container.student_service.update_department(s.student_id, None)
    assert moved.department_id is None
    with pytest.raises(NotFoundError):
        container.student_service.update_department(s.student_id, 999)


def test_list_pages_and_numbers(container, make_student):
    for name in ("다", "가", "나"):
        make_student(name, Grade.FIRST)
    make_student("라", Grade.SECOND)

    page = container.student_service.list(StudentFilter(grade=Grade.FIRST), page=1, limit=2)

    assert [s.name for s in page.students] == ["가", "나"]
    assert page.total == 3
    assert page.total_pages == 2
    assert [page.numbers[s.student_id] for s in page.students] == ["1-1", "1-2"]


def test_search_by_name_is_substring_and_requires_text(container, make_student):
    make_student("김철수")
    make_student("김영희", Grade.SECOND)
    make_student("박민수")

    found, numbers = container.student_service.search_by_name("김")
    assert {s.name for s in found} == {"김철수", "김영희"}
    assert set(numbers) == {s.student_id for s in found}

    with pytest.raises(ValidationError):
        container.student_service.search_by_name("  ")


def test_detail_includes_history(container, make_student):
    s = make_student()
    container.ledger_service.record_attendance(s.student_id, date(2026, 1, 4), "grade", "present")

    detail = container.student_service.detail(s.student_id)
    assert detail.student.talent == 1
    assert detail.student_number == "1-1"
    assert len(detail.attendance) == 1
    assert len(detail.transactions) == 1

    by_name = container.student_service.detail_by_name(s.name)
    assert by_name.student.student_id == s.student_id
    with pytest.raises(NotFoundError):
        container.student_service.detail_by_name("없는학생")


def test_delete_cascades_history(container, make_student, store):
    s = make_student()
    container.ledger_service.record_attendance(s.student_id, date(2026, 1, 4), "grade", "present")

    container.student_service.delete(s.student_id)

    assert store.students == {}
    assert store.attendance == {}
    assert store.transactions == {}
    with pytest.raises(NotFoundError):
        container.student_service.delete(s.student_id)


def test_delete_all_clears_departments_too(container, make_student, make_department, store):
    dept = make_department()
    make_student(department_id=dept.department_id)

    container.student_service.delete_all()

    assert store.students == {}
    assert store.departments == {}
