from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import TalentTransaction


class TalentRepository(Protocol):
    def list_transactions(
        self,
        *,
        student_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
        with_student: bool = False,
    ) -> Sequence[TalentTransaction]:
        """Newest first."""

        raise NotImplementedError

    def ledger_total(self, student_id: int) -> int:
        raise NotImplementedError
