"""Library directory management."""

from __future__ import annotations

import re
import shutil
from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Final, Literal
from uuid import uuid4

from papershelf.domain.errors import FileOperationFailure

if TYPE_CHECKING:
    from collections.abc import Iterable

    from papershelf.domain.model import PaperRecord

log = getLogger(__name__)

type FileOperation = Literal["copy", "move"]

MAX_SLUG_LENGTH: Final = 60
_SLUG_SEPARATORS: Final = re.compile(r"[^0-9a-z]+")


def slugify(title: str) -> str:
    slug = _SLUG_SEPARATORS.sub("_", title.lower()).strip("_")
    return slug[:MAX_SLUG_LENGTH].rstrip("_") or "paper"


@dataclass(frozen=True, slots=True)
class _Transfer:
    source: Path
    target: Path
    moved: bool


class LocalFileStore:
    """Keeps paper files under ``library_dir`` as ``<title-slug>_<short-id><suffix>``.

    Files are copied into the library unless ``operation`` is ``"move"``.
    Files already inside the library, or waiting in ``staging_dir``, are always
    moved.
    """

    def __init__(
        self,
        library_dir: Path,
        *,
        operation: FileOperation = "copy",
        staging_dir: Path | None = None,
    ) -> None:
        self._library_dir = library_dir
        self._operation = operation
        self._staging_dir = staging_dir

    @property
    def library_dir(self) -> Path:
        return self._library_dir

    def target_paths(self, record: PaperRecord) -> tuple[Path | None, tuple[Path, ...]]:
        base = f"{slugify(record.title)}_{record.id.hex[:8]}"
        main = (
            self._library_dir / f"{base}{record.main_path.suffix}"
            if record.main_path is not None
            else None
        )
        supplementary = tuple(
            self._library_dir / f"{base}_sup{index}{path.suffix}"
            for index, path in enumerate(record.supplementary_paths)
        )
        return main, supplementary

    def relocate(self, record: PaperRecord) -> PaperRecord:
        main_target, supplementary_targets = self.target_paths(record)
        pairs: list[tuple[Path, Path]] = []
        if record.main_path is not None and main_target is not None:
            pairs.append((record.main_path, main_target))
        pairs.extend(zip(record.supplementary_paths, supplementary_targets, strict=True))

        done: list[_Transfer] = []
        try:
            self._library_dir.mkdir(parents=True, exist_ok=True)
            for source, target in self._park_occupied(pairs, done):
                transfer = self._transfer(source, target)
                if transfer is not None:
                    done.append(transfer)
        except OSError as exc:
            self._undo(done)
            msg = f"Cannot relocate files of paper {record.id}: {exc}"
            raise FileOperationFailure(msg) from exc
        except FileOperationFailure:
            self._undo(done)
            raise

        return record.evolve(main_path=main_target, supplementary_paths=supplementary_targets)

    def rollback(self, before: PaperRecord, after: PaperRecord) -> None:
        moves: list[tuple[Path, Path]] = []
        copies: list[Path] = []
        for source, target in zip(before.file_paths, after.file_paths, strict=False):
            if source == target:
                continue
            if self._should_move(source) or not source.exists():
                moves.append((target, source))
            else:
                copies.append(target)

        done: list[_Transfer] = []
        try:
            for copy in copies:
                copy.unlink(missing_ok=True)
            for source, target in self._park_occupied(moves, done):
                if target.exists():
                    raise FileOperationFailure(f"Refusing to overwrite {target}")
                shutil.move(source, target)
        except OSError as exc:
            msg = f"Cannot roll back files of paper {after.id}: {exc}"
            raise FileOperationFailure(msg) from exc

    def remove(self, paths: Iterable[Path]) -> list[Path]:
        failed: list[Path] = []
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                log.warning("Cannot delete %s: %s", path, exc)
                failed.append(path)
        return failed

    def discard(self, record: PaperRecord) -> None:
        """Delete the record's files that still wait in the staging directory."""

        if self._staging_dir is None:
            return
        staged = [path for path in record.file_paths if path.is_relative_to(self._staging_dir)]
        for leftover in self.remove(staged):
            log.warning("Staged file %s was left behind", leftover)

    def _park_occupied(
        self, pairs: list[tuple[Path, Path]], done: list[_Transfer]
    ) -> list[tuple[Path, Path]]:
        """Move sources that another pair targets to a temporary name first."""

        targets = {target for source, target in pairs if source != target}
        staged: list[tuple[Path, Path]] = []
        for source, target in pairs:
            if source != target and source in targets:
                parked = source.with_name(f".{source.name}.{uuid4().hex[:8]}.part")
                shutil.move(source, parked)
                log.debug("Parked %s as %s", source, parked)
                done.append(_Transfer(source=source, target=parked, moved=True))
                source = parked
            staged.append((source, target))
        return staged

    def _transfer(self, source: Path, target: Path) -> _Transfer | None:
        if source == target:
            return None
        if not source.is_file():
            raise FileOperationFailure(f"Source file {source} does not exist")
        if target.exists():
            raise FileOperationFailure(f"Refusing to overwrite {target}")
        if self._should_move(source):
            shutil.move(source, target)
            log.debug("Moved %s to %s", source, target)
            return _Transfer(source=source, target=target, moved=True)
        shutil.copy2(source, target)
        log.debug("Copied %s to %s", source, target)
        return _Transfer(source=source, target=target, moved=False)

    def _should_move(self, source: Path) -> bool:
        if self._operation == "move":
            return True
        return any(
            directory is not None and source.is_relative_to(directory)
            for directory in (self._library_dir, self._staging_dir)
        )

    def _undo(self, transfers: list[_Transfer]) -> None:
        for transfer in reversed(transfers):
            try:
                if transfer.moved:
                    shutil.move(transfer.target, transfer.source)
                else:
                    transfer.target.unlink(missing_ok=True)
            except OSError as exc:
                log.error("Cannot undo relocation of %s: %s", transfer.source, exc)
