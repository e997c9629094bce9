"""Shared fixtures for metadata provider tests."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def providers_data(data_dir: Path) -> Path:
    return data_dir / "providers"


@pytest.fixture
def csl_payload(providers_data: Path) -> dict[str, object]:
    return json.loads((providers_data / "doi_csl.json").read_text())


@pytest.fixture
def dblp_publication_payload(providers_data: Path) -> dict[str, object]:
    return json.loads((providers_data / "dblp_publ.json").read_text())


@pytest.fixture
def dblp_venue_payload(providers_data: Path) -> dict[str, object]:
    return json.loads((providers_data / "dblp_venue.json").read_text())


@pytest.fixture
def arxiv_entry(providers_data: Path) -> bytes:
    return (providers_data / "arxiv_entry.xml").read_bytes()


@pytest.fixture
def arxiv_error(providers_data: Path) -> bytes:
    return (providers_data / "arxiv_error.xml").read_bytes()
