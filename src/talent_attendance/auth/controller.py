from __future__ import annotations

import logging
from datetime import timedelta

from flask import Flask, jsonify, session

from ..common.http import ADMIN_SESSION_KEY, admin_required, is_admin, json_body
from ..container import Container
from ..core.constants import DEFAULT_ADMIN_SESSION_HOURS

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    hours = int(app.config.get("ADMIN_SESSION_HOURS", DEFAULT_ADMIN_SESSION_HOURS))
    app.permanent_session_lifetime = timedelta(hours=hours)

    @app.post("/api/auth/admin/login", endpoint="admin_login")
    def admin_login():
        container.admin_auth_service.login(json_body().get("password"))
        session.permanent = True
        session[ADMIN_SESSION_KEY] = True
        logger.info("admin session opened")
        return jsonify({"success": True, "message": "관리자 모드로 진입했습니다."})

    @app.post("/api/auth/admin/logout", endpoint="admin_logout")
    def admin_logout():
        session.clear()
        return jsonify({"success": True, "message": "로그아웃되었습니다."})

    @app.get("/api/auth/admin/check", endpoint="admin_check")
    def admin_check():
        return jsonify({"isAdmin": is_admin()})

    @app.put("/api/auth/admin/password", endpoint="admin_password")
    @admin_required
    def admin_password():
        body = json_body()
        container.admin_auth_service.change_password(body.get("currentPassword"), body.get("newPassword"))
        return jsonify({"success": True, "message": "비밀번호가 변경되었습니다."})
