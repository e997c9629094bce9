"""Error taxonomy of the resolution and persistence pipeline."""

from __future__ import annotations

from papershelf.config.errors import ConfigurationError


class PaperShelfError(RuntimeError):
    """Base class for pipeline errors."""


class SourceUnavailable(PaperShelfError):  # noqa: N818
    """A metadata source could not be reached, timed out or answered non-2xx."""

    def __init__(self, message: str, *, url: str | None = None, status: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


class ParseFailure(PaperShelfError):  # noqa: N818
    """A metadata source answered with an unexpected payload."""


class FileOperationFailure(PaperShelfError):  # noqa: N818
    """Copying, moving or deleting a library file failed."""


class StoreCommitFailure(PaperShelfError):  # noqa: N818
    """The store rejected a unit of work."""


__all__ = [
    "ConfigurationError",
    "FileOperationFailure",
    "PaperShelfError",
    "ParseFailure",
    "SourceUnavailable",
    "StoreCommitFailure",
]
