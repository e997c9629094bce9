from __future__ import annotations

import asyncio

from papershelf.domain.resolution import ProviderRegistry, ResolutionOrchestrator
from tests.helpers.fakes import (
    ExplodingProvider,
    FakeHttp,
    JsonProvider,
    SourceConfig,
    fixed_factory,
    lookup_url,
)
from tests.helpers.papers import make_preprint, make_record


def _orchestrator(
    providers: dict[str, list[object]], configs: list[SourceConfig]
) -> ResolutionOrchestrator:
    registry = ProviderRegistry(fixed_factory(providers))
    registry.rebuild(configs)
    return ResolutionOrchestrator(registry)


def test_empty_registry_is_the_identity() -> None:
    orchestrator = _orchestrator({}, [])
    draft = make_record()

    assert asyncio.run(orchestrator.resolve(draft)) is draft


def test_higher_priority_source_wins_conflicting_fields() -> None:
    http = FakeHttp(
        {
            lookup_url("p1"): {"venue": "A", "title": "Low"},
            lookup_url("p2"): {"venue": "B"},
        }
    )
    orchestrator = _orchestrator(
        {"p1": [JsonProvider("p1", http)], "p2": [JsonProvider("p2", http)]},
        [SourceConfig("p1", priority=10), SourceConfig("p2", priority=20)],
    )

    result = asyncio.run(orchestrator.resolve(make_record(venue="")))

    assert http.urls == [lookup_url("p2"), lookup_url("p1")]
    assert result.venue == "B"
    # fields the higher source left alone are still filled in
    assert result.title == "Low"


def test_published_venue_supersedes_preprint_placeholder() -> None:
    http = FakeHttp(
        {
            lookup_url("arxiv"): {"venue": "arXiv", "year": 2017},
            lookup_url("dblp"): {"venue": "NeurIPS", "year": 2017},
        }
    )
    orchestrator = _orchestrator(
        {"arxiv": [JsonProvider("arxiv", http)], "dblp": [JsonProvider("dblp", http)]},
        [SourceConfig("arxiv", priority=8), SourceConfig("dblp", priority=7)],
    )

    result = asyncio.run(orchestrator.resolve(make_record(venue="")))

    assert result.venue == "NeurIPS"


def test_fan_out_siblings_override_each_other_in_order() -> None:
    http = FakeHttp(
        {lookup_url("first"): {"venue": "CVPR"}, lookup_url("second"): {"venue": "IEEE CVPR"}}
    )
    first, second = JsonProvider("first", http), JsonProvider("second", http)
    orchestrator = _orchestrator({"dblp": [first, second]}, [SourceConfig("dblp", priority=7)])

    result = asyncio.run(orchestrator.resolve(make_record()))

    assert result.venue == "IEEE CVPR"


def test_excluded_sources_are_skipped() -> None:
    http = FakeHttp({lookup_url("a"): {"venue": "A"}, lookup_url("b"): {"venue": "B"}})
    orchestrator = _orchestrator(
        {"a": [JsonProvider("a", http)], "b": [JsonProvider("b", http)]},
        [SourceConfig("a", priority=2), SourceConfig("b", priority=1)],
    )

    result = asyncio.run(orchestrator.resolve(make_record(), excluded={"a"}))

    assert http.urls == [lookup_url("b")]
    assert result.venue == "B"


def test_provider_exceptions_are_isolated() -> None:
    http = FakeHttp({lookup_url("good"): {"venue": "ICML"}})
    exploding = ExplodingProvider("bad")
    orchestrator = _orchestrator(
        {"bad": [exploding], "good": [JsonProvider("good", http)]},
        [SourceConfig("bad", priority=9), SourceConfig("good", priority=1)],
    )
    draft = make_record()

    result = asyncio.run(orchestrator.resolve(draft))

    assert exploding.calls == 1
    assert result.venue == "ICML"
    assert result.id == draft.id


def test_resolve_one_invokes_only_the_named_source() -> None:
    http = FakeHttp({lookup_url("doi"): {"venue": "JMLR"}, lookup_url("arxiv"): {"venue": "arXiv"}})
    orchestrator = _orchestrator(
        {
            "doi": [JsonProvider("doi", http, enabled=False)],
            "arxiv": [JsonProvider("arxiv", http)],
        },
        [SourceConfig("doi", priority=9, enabled=False), SourceConfig("arxiv", priority=8)],
    )

    result = asyncio.run(orchestrator.resolve_one(make_record(venue="ICML"), "doi"))

    assert http.urls == [lookup_url("doi")]
    assert result.venue == "JMLR"


def test_resolve_one_with_unknown_name_leaves_draft_unchanged() -> None:
    orchestrator = _orchestrator({}, [])
    draft = make_record()

    assert asyncio.run(orchestrator.resolve_one(draft, "nope")) is draft


def test_resolution_is_deterministic() -> None:
    payloads = {
        lookup_url("a"): {"venue": "arXiv", "identifiers": {"arxiv": "1706.03762"}},
        lookup_url("b"): {"title": "Attention", "identifiers": {"doi": "10.1/x"}},
    }
    draft = make_preprint()

    def run() -> object:
        http = FakeHttp(dict(payloads))
        orchestrator = _orchestrator(
            {"a": [JsonProvider("a", http)], "b": [JsonProvider("b", http)]},
            [SourceConfig("a", priority=3), SourceConfig("b", priority=2)],
        )
        return asyncio.run(orchestrator.resolve(draft))

    assert run() == run()
