from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import admin_required, json_body
from ..container import Container


def register(app: Flask, container: Container) -> None:
    svc = container.department_service

    @app.get("/api/departments", endpoint="departments_list")
    def departments_list():
        return jsonify([d.to_dict() for d in svc.list_all()])

    @app.get("/api/departments/<int:department_id>", endpoint="departments_get")
    def departments_get(department_id: int):
        department = svc.get(department_id)
        return jsonify({**department.to_dict(), "students": [s.to_dict() for s in svc.students_of(department_id)]})

    @app.get("/api/departments/<int:department_id>/students", endpoint="departments_students")
    def departments_students(department_id: int):
        return jsonify([s.to_dict() for s in svc.students_of(department_id)])

    @app.post("/api/departments", endpoint="departments_create")
    @admin_required
    def departments_create():
        body = json_body()
        department = svc.create(name=body.get("name"), description=body.get("description"))
        return jsonify(department.to_dict()), 201

    @app.put("/api/departments/<int:department_id>", endpoint="departments_update")
    @admin_required
    def departments_update(department_id: int):
        body = json_body()
        kwargs = {"name": body.get("name")}
        if "description" in body:
            kwargs["description"] = body["description"]
        return jsonify(svc.update(department_id, **kwargs).to_dict())

    @app.delete("/api/departments/<int:department_id>", endpoint="departments_delete")
    @admin_required
    def departments_delete(department_id: int):
        svc.delete(department_id)
        return jsonify({"success": True, "message": "부서가 삭제되었습니다."})
