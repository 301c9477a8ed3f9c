from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import iso
from ..common.http import (
    admin_required,
    json_body,
    query_date,
    query_grade,
    query_int,
    query_page,
    query_type,
)
from ..common.validators import require_enum
from ..container import Container
from ..core.enums import Grade
from .commands import parse_attendance_payload
from .model import AttendanceFilter


def _date_filters(**kwargs) -> AttendanceFilter:
    return AttendanceFilter(
        attend_date=query_date("date"),
        start_date=query_date("startDate"),
        end_date=query_date("endDate"),
        attendance_type=query_type(),
        **kwargs,
    )


def register(app: Flask, container: Container) -> None:
    @app.get("/api/attendance", endpoint="attendance_list")
    def attendance_list():
        page, limit = query_page()
        filters = _date_filters(
            student_id=query_int("studentId"),
            grade=query_grade(),
            department_id=query_int("departmentId"),
        )
        result = container.attendance_query_service.search(
            filters,
            student_name=(request.args.get("studentName") or "").strip() or None,
            page=page,
            limit=limit,
        )
        return jsonify(
            {
                "attendance": [r.to_dict() for r in result.records],
                "total": result.total,
                "page": result.page,
                "limit": result.limit,
                "totalPages": result.total_pages,
            }
        )

    @app.get("/api/attendance/available-dates", endpoint="attendance_available_dates")
    def attendance_available_dates():
        svc = container.ledger_service
        return jsonify({"year": svc.attendance_year, "dates": [iso(d) for d in svc.available_dates()]})

    @app.get("/api/attendance/student/<string:student_name>", endpoint="attendance_by_student")
    def attendance_by_student(student_name: str):
        student, records = container.attendance_query_service.for_student_name(student_name)
        return jsonify({"student": student.to_dict(), "attendance": [r.to_dict() for r in records]})

    @app.get("/api/attendance/grade/<string:grade>", endpoint="attendance_by_grade")
    def attendance_by_grade(grade: str):
        g = require_enum(Grade, grade, "유효하지 않은 학년입니다.")
        records = container.attendance_query_service.list_all(_date_filters(grade=g))
        return jsonify({"attendance": [r.to_dict() for r in records]})

    @app.get("/api/attendance/department/<int:department_id>", endpoint="attendance_by_department")
    def attendance_by_department(department_id: int):
        records = container.attendance_query_service.list_all(_date_filters(department_id=department_id))
        return jsonify({"attendance": [r.to_dict() for r in records]})

    @app.post("/api/attendance", endpoint="attendance_record")
    @admin_required
    def attendance_record():
        command = parse_attendance_payload(json_body())
        record = container.ledger_service.record(command)
        return jsonify(record.to_dict())

    @app.put("/api/attendance/<int:attendance_id>", endpoint="attendance_update")
    @admin_required
    def attendance_update(attendance_id: int):
        record = container.ledger_service.update_attendance_status(attendance_id, json_body().get("status"))
        return jsonify(record.to_dict())

    @app.delete("/api/attendance/<int:attendance_id>", endpoint="attendance_delete")
    @admin_required
    def attendance_delete(attendance_id: int):
        container.ledger_service.delete_attendance(attendance_id)
        return jsonify({"success": True, "message": "출석 기록이 삭제되었습니다."})
