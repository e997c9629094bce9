from __future__ import annotations

import asyncio

import pytest

from papershelf.domain.errors import SourceUnavailable
from tests.helpers.fakes import FakeHttp, JsonProvider, lookup_url
from tests.helpers.papers import make_preprint, make_record


def test_scrape_merges_parsed_fields() -> None:
    http = FakeHttp({lookup_url("meta"): {"venue": "NeurIPS", "year": 2017}})
    provider = JsonProvider("meta", http, timeout=5.0, headers={"X-Key": "k"})

    result = asyncio.run(provider.scrape(make_preprint()))

    assert result.venue == "NeurIPS"
    assert http.requests == [(lookup_url("meta"), {"X-Key": "k"}, 5.0)]


def test_disabled_provider_returns_draft_unchanged_without_fetching() -> None:
    http = FakeHttp({lookup_url("meta"): {"venue": "NeurIPS"}})
    provider = JsonProvider("meta", http, enabled=False)
    draft = make_preprint()

    assert asyncio.run(provider.scrape(draft)) is draft
    assert http.requests == []


def test_force_bypasses_enablement_and_applicability() -> None:
    http = FakeHttp({lookup_url("meta"): {"venue": "Nature"}})
    provider = JsonProvider("meta", http, enabled=False, preprint_only=True)
    published = make_record(venue="ICML")

    assert asyncio.run(provider.scrape(published)) is published
    assert asyncio.run(provider.scrape(published, force=True)).venue == "Nature"


def test_preprint_specialist_skips_published_papers() -> None:
    http = FakeHttp({lookup_url("meta"): {"venue": "Nature"}})
    provider = JsonProvider("meta", http, preprint_only=True)

    asyncio.run(provider.scrape(make_record(venue="ICML")))

    assert http.requests == []


@pytest.mark.parametrize(
    "payload",
    [
        SourceUnavailable("timed out", url=lookup_url("meta")),
        b"{not json",
        {"unexpected": "field"},
    ],
)
def test_failures_are_converted_into_no_change(payload: object) -> None:
    http = FakeHttp({lookup_url("meta"): payload})
    provider = JsonProvider("meta", http)
    draft = make_preprint()

    assert asyncio.run(provider.scrape(draft)) is draft


def test_missing_response_is_no_change() -> None:
    provider = JsonProvider("meta", FakeHttp())
    draft = make_preprint()

    assert asyncio.run(provider.scrape(draft)) is draft
