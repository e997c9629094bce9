"""SQLAlchemy adapter package for the library database."""

from __future__ import annotations

from .mappings import (
    categorizer_table,
    metadata,
    paper_categorizer_table,
    paper_table,
    schedule_state_table,
)
from .repositories import (
    SqlAlchemyCategorizerRepository,
    SqlAlchemyPaperRepository,
    SqlAlchemyScheduleStateRepository,
)

__all__ = [
    "SqlAlchemyCategorizerRepository",
    "SqlAlchemyPaperRepository",
    "SqlAlchemyScheduleStateRepository",
    "categorizer_table",
    "metadata",
    "paper_categorizer_table",
    "paper_table",
    "schedule_state_table",
]
