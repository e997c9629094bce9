"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class IdentifierKind(StrEnum):
    DOI = "doi"
    ARXIV = "arxiv"
    DBLP = "dblp"


class CategorizerKind(StrEnum):
    TAG = "tag"
    FOLDER = "folder"


class EmptyValuePolicy(StrEnum):
    """How a merge treats empty provider values for one field."""

    UNSET = "unset"
    VALUE = "value"
