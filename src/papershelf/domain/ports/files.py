"""Ports for reading references and managing library files."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path

    from papershelf.domain.model import PaperRecord


@runtime_checkable
class ReferenceReader(Protocol):
    """Turns one raw reference into an initial draft."""

    async def read(self, reference: str) -> PaperRecord: ...


@runtime_checkable
class FileStore(Protocol):
    """Physical files inside the managed library directory."""

    def relocate(self, record: PaperRecord) -> PaperRecord:
        """Place the record's files in the library layout and return the updated record.

        Raises ``FileOperationFailure``; a partially completed relocation is undone
        before raising.
        """
        ...

    def rollback(self, before: PaperRecord, after: PaperRecord) -> None:
        """Undo a successful ``relocate`` whose record could not be committed."""
        ...

    def remove(self, paths: tuple[Path, ...]) -> list[Path]:
        """Delete files, returning the ones that could not be deleted."""
        ...

    def discard(self, record: PaperRecord) -> None:
        """Delete files of a record that never made it into the library."""
        ...