"""
Repositories for rubric versions and assessment records.

Both work on an open SQLAlchemy session (normally from ``UnitOfWork.begin()``)
and hand back domain objects, never ORM rows.
"""

from __future__ import annotations

from .repositories_record import RecordRepo  # re-export
from .repositories_rubric import RubricRepo, RubricVersion  # re-export

__all__ = [
    "RecordRepo",
    "RubricRepo",
    "RubricVersion",
]
