from __future__ import annotations

import asyncio

from papershelf.adapters.providers import ArxivProvider
from papershelf.config.providers import ARXIV_ENDPOINT
from papershelf.domain.model import IdentifierKind
from tests.helpers.fakes import FakeHttp
from tests.helpers.papers import make_preprint, make_record

QUERY_URL = f"{ARXIV_ENDPOINT}?id_list=1706.03762&max_results=1"


def _provider(http: FakeHttp) -> ArxivProvider:
    return ArxivProvider(endpoint=ARXIV_ENDPOINT, name="arxiv", http=http)


def test_applies_only_to_preprints_with_an_arxiv_id() -> None:
    provider = _provider(FakeHttp())
    arxiv = {IdentifierKind.ARXIV.value: "1706.03762"}

    assert provider.applies(make_preprint())
    assert not provider.applies(make_record())
    assert not provider.applies(make_record(venue="NeurIPS", identifiers=arxiv))


def test_request_drops_the_version_suffix() -> None:
    draft = make_preprint(identifiers={IdentifierKind.ARXIV.value: "1706.03762v5"})

    request = _provider(FakeHttp()).build_request(draft)

    assert request is not None
    assert request.url == QUERY_URL


def test_scrape_reads_the_atom_entry(arxiv_entry: bytes) -> None:
    http = FakeHttp({QUERY_URL: arxiv_entry})
    draft = make_preprint("1706.03762v7.pdf", venue="", year=None, authors=())

    result = asyncio.run(_provider(http).scrape(draft))

    assert result.title == "Attention Is All You Need"
    assert result.venue == "arXiv"
    assert result.year == 2017
    assert result.authors == ("Ashish Vaswani", "Noam Shazeer", "Niki Parmar")
    assert result.arxiv_id == "1706.03762"


def test_journal_doi_is_picked_up(arxiv_entry: bytes) -> None:
    feed = arxiv_entry.replace(
        b"</entry>",
        b'<arxiv:doi xmlns:arxiv="http://arxiv.org/schemas/atom">10.1/x</arxiv:doi></entry>',
    )
    http = FakeHttp({QUERY_URL: feed})

    result = asyncio.run(_provider(http).scrape(make_preprint()))

    assert result.doi == "10.1/x"


def test_error_entry_is_no_match(arxiv_error: bytes) -> None:
    draft = make_preprint()
    http = FakeHttp({QUERY_URL: arxiv_error})

    assert asyncio.run(_provider(http).scrape(draft)) is draft


def test_malformed_feed_leaves_draft_unchanged() -> None:
    draft = make_preprint()
    http = FakeHttp({QUERY_URL: b"<feed><entry>"})

    assert asyncio.run(_provider(http).scrape(draft)) is draft
