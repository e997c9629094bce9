"""Turn raw references into draft records.

Supported references: local paths, ``file://`` URLs, http(s) links to PDFs
(downloaded into the staging directory), arXiv and doi.org URLs, and bare
``doi:`` / ``arxiv:`` identifiers. Metadata-only references produce drafts
without a main file.
"""

from __future__ import annotations

import asyncio
import hashlib
import re
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Final
from urllib.parse import unquote, urlparse

from papershelf.domain.errors import FileOperationFailure
from papershelf.domain.model import IdentifierKind, PaperRecord, new_id

if TYPE_CHECKING:
    from papershelf.domain.ports import HttpGetter

log = getLogger(__name__)

DOI_PATTERN: Final = re.compile(r"\b(10\.\d{4,9}/[^\s\"<>]+)", re.IGNORECASE)
ARXIV_PATTERN: Final = re.compile(r"(?<![\d.])(\d{4}\.\d{4,5})(v\d+)?(?![\d])")
ARXIV_HOSTS: Final = frozenset({"arxiv.org", "www.arxiv.org", "export.arxiv.org"})
DOI_HOSTS: Final = frozenset({"doi.org", "dx.doi.org", "www.doi.org"})
# bytes scanned for identifiers printed on the first page
SNIFF_BYTES: Final = 64 * 1024
CHUNK_SIZE: Final = 1024 * 1024


def _sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        while chunk := handle.read(CHUNK_SIZE):
            digest.update(chunk)
    return digest.hexdigest()


def _sniff_identifiers(path: Path) -> dict[str, str]:
    identifiers: dict[str, str] = {}
    arxiv = ARXIV_PATTERN.search(path.stem)
    if arxiv:
        identifiers[IdentifierKind.ARXIV.value] = arxiv.group(1)
    with path.open("rb") as handle:
        head = handle.read(SNIFF_BYTES).decode("latin-1")
    doi = DOI_PATTERN.search(head)
    if doi:
        identifiers[IdentifierKind.DOI.value] = doi.group(1).rstrip(".,;)")
    if IdentifierKind.ARXIV.value not in identifiers:
        arxiv = re.search(r"arXiv:(\d{4}\.\d{4,5})", head)
        if arxiv:
            identifiers[IdentifierKind.ARXIV.value] = arxiv.group(1)
    return identifiers


def title_from_filename(path: Path) -> str:
    stem = ARXIV_PATTERN.sub("", path.stem)
    return " ".join(re.split(r"[\s_\-]+", stem)).strip()


class LocalReferenceReader:
    """``ReferenceReader`` for local files and the common URL shapes."""

    def __init__(self, *, http: HttpGetter, staging_dir: Path) -> None:
        self._http = http
        self._staging_dir = staging_dir

    async def read(self, reference: str) -> PaperRecord:
        reference = reference.strip()
        if not reference:
            raise FileOperationFailure("Empty reference")
        lowered = reference.lower()
        if lowered.startswith("doi:"):
            return self._identifier_draft(IdentifierKind.DOI, reference[4:])
        if lowered.startswith("arxiv:"):
            return self._identifier_draft(IdentifierKind.ARXIV, reference[6:])

        parsed = urlparse(reference)
        if parsed.scheme == "file":
            return await self.read_file(Path(unquote(parsed.path)))
        if parsed.scheme in {"http", "https"}:
            return await self._read_url(reference)
        return await self.read_file(Path(reference).expanduser())

    async def read_file(
        self, path: Path, *, identifiers: dict[str, str] | None = None
    ) -> PaperRecord:
        if not path.is_file():
            raise FileOperationFailure(f"No such file: {path}")
        try:
            file_hash = await asyncio.to_thread(_sha256, path)
            sniffed = await asyncio.to_thread(_sniff_identifiers, path)
        except OSError as exc:
            raise FileOperationFailure(f"Cannot read {path}: {exc}") from exc
        return PaperRecord(
            id=new_id(),
            title=title_from_filename(path),
            identifiers={**sniffed, **(identifiers or {})},
            main_path=path.resolve(),
            file_hash=file_hash,
        )

    async def _read_url(self, url: str) -> PaperRecord:
        parsed = urlparse(url)
        host = parsed.netloc.lower()
        path = unquote(parsed.path)
        if host in DOI_HOSTS:
            return self._identifier_draft(IdentifierKind.DOI, path.lstrip("/"))
        if host in ARXIV_HOSTS:
            match = ARXIV_PATTERN.search(path)
            if match is None:
                raise FileOperationFailure(f"No arXiv id in {url}")
            if path.startswith("/abs/"):
                return self._identifier_draft(IdentifierKind.ARXIV, match.group(1))
            return await self._download(
                url, identifiers={IdentifierKind.ARXIV.value: match.group(1)}
            )
        return await self._download(url)

    async def _download(
        self, url: str, *, identifiers: dict[str, str] | None = None
    ) -> PaperRecord:
        response = await self._http.get(url)
        name = Path(urlparse(url).path).name or "download"
        if not name.lower().endswith(".pdf"):
            name = f"{name}.pdf"
        target = self._staging_dir / f"{new_id().hex[:8]}_{name}"
        try:
            self._staging_dir.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(target.write_bytes, response.content)
        except OSError as exc:
            raise FileOperationFailure(f"Cannot store download of {url}: {exc}") from exc
        log.info("Downloaded %s to %s", url, target)
        try:
            return await self.read_file(target, identifiers=identifiers)
        except FileOperationFailure:
            target.unlink(missing_ok=True)
            raise

    def _identifier_draft(self, kind: IdentifierKind, value: str) -> PaperRecord:
        value = value.strip()
        if not value:
            raise FileOperationFailure(f"Empty {kind} identifier")
        return PaperRecord(id=new_id(), identifiers={kind.value: value})
