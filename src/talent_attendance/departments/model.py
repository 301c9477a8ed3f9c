from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

DUPLICATE_NAME = "이미 존재하는 부서명입니다."


@dataclass(frozen=True)
class Department:
    department_id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.department_id,
            "name": self.name,
            "description": self.description,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
