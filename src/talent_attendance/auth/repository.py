from __future__ import annotations

from typing import Optional, Protocol


class AdminAuthRepository(Protocol):
    def get_password_hash(self) -> Optional[str]:
        raise NotImplementedError

    def create(self, password_hash: str) -> int:
        raise NotImplementedError

    def update(self, password_hash: str) -> bool:
        raise NotImplementedError
