from __future__ import annotations

import logging
from typing import Any

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_ADMIN_PASSWORD
from ..core.exceptions import AuthenticationError, ValidationError
from .repository import AdminAuthRepository

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 4


class AdminAuthService:
    """Use case: unlock admin mode with the single shared password."""

    def __init__(self, admins: AdminAuthRepository, *, default_password: str = DEFAULT_ADMIN_PASSWORD):
        self._admins = admins
        self._default_password = default_password

    def _stored_hash(self) -> str:
        password_hash = self._admins.get_password_hash()
        if password_hash:
            return password_hash

        # First login on an empty database installs the default password.
        password_hash = generate_password_hash(self._default_password)
        self._admins.create(password_hash)
        logger.warning("admin password initialised with the configured default")
        return password_hash

    def login(self, password: Any) -> None:
        if password in (None, ""):
            raise ValidationError("비밀번호를 입력해주세요.")

        try:
            ok = check_password_hash(self._stored_hash(), str(password))
        except ValueError:
            # Unknown hash method in a hand-edited row.
            ok = False

        if not ok:
            logger.info("admin login rejected")
            raise AuthenticationError("비밀번호가 올바르지 않습니다.")

    def change_password(self, current: Any, new: Any) -> None:
        self.login(current)
        new = require_non_empty(new, "새 비밀번호")
        if len(new) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"비밀번호는 {MIN_PASSWORD_LENGTH}자 이상이어야 합니다.")
        self._admins.update(generate_password_hash(new))
        logger.info("admin password changed")
