from __future__ import annotations

import json

from flask import Flask, jsonify, request

from ..common.http import admin_required, json_body, query_grade, query_int, query_page
from ..common.validators import optional_int
from ..container import Container
from ..core.exceptions import ValidationError
from .model import StudentFilter
from .service import StudentDetail

# camelCase request keys -> StudentService.update keyword arguments
_UPDATE_FIELDS = {
    "name": "name",
    "grade": "grade",
    "baptismName": "baptism_name",
    "departmentId": "department_id",
    "studentNumber": "student_number",
    "email": "email",
    "phone": "phone",
}


def _detail_dict(detail: StudentDetail) -> dict:
    return {
        "student": detail.student.to_dict(student_number=detail.student_number),
        "attendance": [r.to_dict() for r in detail.attendance],
        "transactions": [t.to_dict() for t in detail.transactions],
    }


def _uploaded_file() -> bytes:
    upload = request.files.get("file")
    if not upload:
        raise ValidationError("파일을 업로드해주세요.")
    return upload.read()


def register(app: Flask, container: Container) -> None:
    svc = container.student_service

    @app.get("/api/students", endpoint="students_list")
    def students_list():
        page, limit = query_page()
        filters = StudentFilter(
            search=(request.args.get("search") or "").strip() or None,
            grade=query_grade(),
            department_id=query_int("departmentId"),
        )
        result = svc.list(filters, page=page, limit=limit)
        return jsonify(
            {
                "students": [s.to_dict(student_number=result.numbers.get(s.student_id)) for s in result.students],
                "total": result.total,
                "page": result.page,
                "limit": result.limit,
                "totalPages": result.total_pages,
            }
        )

    @app.get("/api/students/search", endpoint="students_search")
    def students_search():
        students, numbers = svc.search_by_name(request.args.get("name"))
        return jsonify({"students": [s.to_dict(student_number=numbers.get(s.student_id)) for s in students]})

    @app.get("/api/students/name/<string:student_name>", endpoint="students_by_name")
    def students_by_name(student_name: str):
        return jsonify(_detail_dict(svc.detail_by_name(student_name)))

    @app.get("/api/students/<int:student_id>", endpoint="students_get")
    def students_get(student_id: int):
        return jsonify(_detail_dict(svc.detail(student_id)))

    @app.post("/api/students", endpoint="students_create")
    @admin_required
    def students_create():
        body = json_body()
        student = svc.create(
            name=body.get("name"),
            grade=body.get("grade"),
            baptism_name=body.get("baptismName"),
            department_id=body.get("departmentId"),
            email=body.get("email"),
            phone=body.get("phone"),
        )
        return jsonify(student.to_dict()), 201

    @app.post("/api/students/preview-excel", endpoint="students_preview_excel")
    @admin_required
    def students_preview_excel():
        sheets = container.student_import_service.preview(_uploaded_file())
        return jsonify({"sheets": [s.to_dict() for s in sheets]})

    @app.post("/api/students/upload-excel", endpoint="students_upload_excel")
    @admin_required
    def students_upload_excel():
        data = _uploaded_file()
        raw_mapping = request.form.get("mapping")
        try:
            mapping = json.loads(raw_mapping) if raw_mapping else None
        except ValueError:
            raise ValidationError("열 매핑 형식이 올바르지 않습니다.")
        if mapping is not None and not isinstance(mapping, dict):
            raise ValidationError("열 매핑 형식이 올바르지 않습니다.")

        result = container.student_import_service.import_workbook(
            data,
            mapping=mapping,
            sheet_index=optional_int(request.form.get("sheetIndex"), "sheetIndex") or 0,
            header_row=optional_int(request.form.get("headerRow"), "headerRow") or 1,
        )
        return jsonify(result.to_dict())

    @app.put("/api/students/<int:student_id>", endpoint="students_update")
    @admin_required
    def students_update(student_id: int):
        body = json_body()
        kwargs = {arg: body[key] for key, arg in _UPDATE_FIELDS.items() if key in body}
        return jsonify(svc.update(student_id, **kwargs).to_dict())

    @app.put("/api/students/<int:student_id>/department", endpoint="students_update_department")
    @admin_required
    def students_update_department(student_id: int):
        return jsonify(svc.update_department(student_id, json_body().get("departmentId")).to_dict())

    @app.delete("/api/students/all", endpoint="students_delete_all")
    @admin_required
    def students_delete_all():
        svc.delete_all()
        return jsonify({"success": True, "message": "모든 학생 데이터가 삭제되었습니다."})

    @app.delete("/api/students/<int:student_id>", endpoint="students_delete")
    @admin_required
    def students_delete(student_id: int):
        svc.delete(student_id)
        return jsonify({"success": True, "message": "학생이 삭제되었습니다."})
