from __future__ import annotations

import io

from flask import Flask, jsonify, send_file

from ..common.datetime_utils import iso, now_local
from ..common.http import query_date, query_grade, query_int
from ..container import Container
from .export import XLSX_MIMETYPE
from .service import DateComparison, GroupComparison


def _group_dict(row: GroupComparison) -> dict:
    out = {
        "studentCount": row.student_count,
        "attendanceRate": row.counts.rate,
        "totalAttendance": row.counts.total,
        "presentCount": row.counts.present,
    }
    if row.department:
        out["department"] = row.department.to_dict()
    else:
        out["grade"] = row.label
    return out


def _date_dict(row: DateComparison, key: str, identify) -> dict:
    return {
        "date": iso(row.attend_date),
        key: [{**identify(c), "rate": c.rate, "present": c.present, "total": c.total} for c in row.cells],
    }


def register(app: Flask, container: Container) -> None:
    svc = container.statistics_service

    def _scope() -> dict:
        return {"grade": query_grade(), "department_id": query_int("departmentId")}

    @app.get("/api/statistics/overview", endpoint="statistics_overview")
    def statistics_overview():
        return jsonify(svc.overview(**_scope()).to_dict())

    @app.get("/api/statistics/student/<int:student_id>", endpoint="statistics_student")
    def statistics_student(student_id: int):
        student, counts = svc.student(student_id)
        return jsonify({"student": student.to_dict(), **counts.to_dict(), "talent": student.talent})

    @app.get("/api/statistics/period", endpoint="statistics_period")
    def statistics_period():
        start, end = query_date("startDate"), query_date("endDate")
        counts = svc.period(start_date=start, end_date=end, **_scope())
        return jsonify({"startDate": iso(start), "endDate": iso(end), **counts.to_dict()})

    @app.get("/api/statistics/trend", endpoint="statistics_trend")
    def statistics_trend():
        return jsonify({"trend": [{"date": iso(d), "count": n} for d, n in svc.trend(**_scope())]})

    @app.get("/api/statistics/rate", endpoint="statistics_rate")
    def statistics_rate():
        return jsonify(svc.rate(**_scope()).to_dict())

    @app.get("/api/statistics/grades", endpoint="statistics_grades")
    def statistics_grades():
        return jsonify({"comparison": [_group_dict(r) for r in svc.grades()]})

    @app.get("/api/statistics/departments", endpoint="statistics_departments")
    def statistics_departments():
        return jsonify({"comparison": [_group_dict(r) for r in svc.departments()]})

    @app.get("/api/statistics/talent", endpoint="statistics_talent")
    def statistics_talent():
        stats = svc.talent(**_scope())
        return jsonify(
            {
                "totalTalent": stats.total_talent,
                "averageTalent": stats.average_talent,
                "studentCount": stats.student_count,
                "topStudents": [s.to_dict() for s in stats.top_students],
            }
        )

    @app.get("/api/statistics/date-grade-comparison", endpoint="statistics_date_grade")
    def statistics_date_grade():
        rows = svc.date_grade_comparison()
        return jsonify({"comparison": [_date_dict(r, "grades", lambda c: {"grade": c.name}) for r in rows]})

    @app.get("/api/statistics/date-department-comparison", endpoint="statistics_date_department")
    def statistics_date_department():
        rows = svc.date_department_comparison()
        return jsonify(
            {
                "comparison": [
                    _date_dict(r, "departments", lambda c: {"departmentId": c.key, "departmentName": c.name})
                    for r in rows
                ]
            }
        )

    @app.get("/api/statistics/export-excel", endpoint="statistics_export_excel")
    def statistics_export_excel():
        data = container.workbook_exporter.export()
        return send_file(
            io.BytesIO(data),
            mimetype=XLSX_MIMETYPE,
            as_attachment=True,
            download_name=f"attendance_data_{now_local().date().isoformat()}.xlsx",
        )
