"""Public domain model surface."""

from __future__ import annotations

from papershelf.domain.model.categorizer import Categorizer, CategorizerDelta, categorizer_id
from papershelf.domain.model.enums import CategorizerKind, EmptyValuePolicy, IdentifierKind
from papershelf.domain.model.paper import (
    PREPRINT_PATTERNS,
    PaperRecord,
    PartialRecord,
    is_preprint_venue,
    new_id,
)

__all__ = [
    "PREPRINT_PATTERNS",
    "Categorizer",
    "CategorizerDelta",
    "CategorizerKind",
    "EmptyValuePolicy",
    "IdentifierKind",
    "PaperRecord",
    "PartialRecord",
    "categorizer_id",
    "is_preprint_venue",
    "new_id",
]
