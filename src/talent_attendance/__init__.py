"""Sunday school attendance and talent ledger.

Feature modules (attendance, talents, students, departments, statistics, auth)
each keep a model, a repository Protocol with its MySQL implementation, a
service and a thin Flask controller.
"""
from __future__ import annotations

from .main import create_app

__all__ = ["create_app"]
