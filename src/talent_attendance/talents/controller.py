from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import admin_required, json_body, query_date, query_grade, query_int
from ..common.validators import require_enum
from ..container import Container
from ..core.constants import DEFAULT_LEADERBOARD_LIMIT
from ..core.enums import Grade
from .model import TalentGroupSummary


def _summary_dict(summary: TalentGroupSummary) -> dict:
    return {
        "students": [s.to_dict() for s in summary.students],
        "totalTalent": summary.total_talent,
        "averageTalent": summary.average_talent,
        "studentCount": summary.student_count,
    }


def register(app: Flask, container: Container) -> None:
    @app.get("/api/talents/student/<int:student_id>", endpoint="talents_student")
    def talents_student(student_id: int):
        student, transactions = container.talent_service.student_history(student_id)
        return jsonify({"student": student.to_dict(), "transactions": [t.to_dict() for t in transactions]})

    @app.get("/api/talents/student/name/<string:student_name>", endpoint="talents_student_by_name")
    def talents_student_by_name(student_name: str):
        student, transactions = container.talent_service.student_history_by_name(student_name)
        return jsonify({"student": student.to_dict(), "transactions": [t.to_dict() for t in transactions]})

    @app.get("/api/talents/student/<int:student_id>/audit", endpoint="talents_student_audit")
    def talents_student_audit(student_id: int):
        audit = container.talent_service.audit_balance(student_id)
        return jsonify(
            {
                "studentId": audit.student_id,
                "cachedTalent": audit.cached_talent,
                "ledgerTotal": audit.ledger_total,
                "consistent": audit.consistent,
            }
        )

    @app.get("/api/talents/transactions", endpoint="talents_transactions")
    def talents_transactions():
        transactions = container.talent_service.transactions(
            student_id=query_int("studentId"),
            student_name=(request.args.get("studentName") or "").strip() or None,
            start_date=query_date("startDate"),
            end_date=query_date("endDate"),
        )
        return jsonify({"transactions": [t.to_dict() for t in transactions]})

    @app.get("/api/talents/leaderboard", endpoint="talents_leaderboard")
    def talents_leaderboard():
        students = container.talent_service.leaderboard(
            grade=query_grade(),
            department_id=query_int("departmentId"),
            limit=query_int("limit") or DEFAULT_LEADERBOARD_LIMIT,
        )
        return jsonify({"leaderboard": [s.to_dict() for s in students]})

    @app.get("/api/talents/department/<int:department_id>", endpoint="talents_department")
    def talents_department(department_id: int):
        summary = container.talent_service.department_summary(department_id)
        return jsonify({"departmentId": department_id, **_summary_dict(summary)})

    @app.get("/api/talents/grade/<string:grade>", endpoint="talents_grade")
    def talents_grade(grade: str):
        g = require_enum(Grade, grade, "유효하지 않은 학년입니다.")
        return jsonify({"grade": g.value, **_summary_dict(container.talent_service.grade_summary(g))})

    @app.post("/api/talents/adjust", endpoint="talents_adjust")
    @admin_required
    def talents_adjust():
        body = json_body()
        result = container.ledger_service.adjust_talent_manually(
            body.get("studentId"), body.get("amount"), body.get("reason")
        )
        return jsonify({"student": result.student.to_dict(), "transaction": result.transaction.to_dict()})
