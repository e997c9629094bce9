from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from papershelf.config import (
    ConfigurationError,
    DblpProviderConfig,
    DoiProviderConfig,
    LibrarySettings,
    UnknownProviderError,
    load_settings,
    parse_settings,
)
from papershelf.config.env import require_env_vars
from papershelf.config.errors import MissingConfigurationError

if TYPE_CHECKING:
    from pathlib import Path

    from papershelf.config import StorageConfig


def test_defaults_configure_the_bundled_sources() -> None:
    settings = LibrarySettings()

    assert [(p.kind, p.priority) for p in settings.providers] == [
        ("doi", 9),
        ("arxiv", 8),
        ("dblp", 7),
    ]
    assert settings.ingest.max_concurrency == 4
    assert settings.ingest.file_operation == "copy"
    assert settings.scheduler.interval_days == 7.0
    assert settings.http.cache == "off"


def test_provider_entries_are_typed_by_kind() -> None:
    settings = parse_settings(
        {
            "providers": [
                {"kind": "doi", "priority": 3, "enabled": False},
                {"kind": "dblp", "name": "dblp-mirror", "endpoint": "https://dblp.uni-trier.de"},
            ]
        }
    )

    doi, dblp = settings.providers
    assert isinstance(doi, DoiProviderConfig)
    assert not doi.enabled
    assert isinstance(dblp, DblpProviderConfig)
    assert dblp.name == "dblp-mirror"
    assert dblp.year_offsets == (0, 1)


def test_unknown_provider_kind_is_rejected() -> None:
    with pytest.raises(UnknownProviderError, match="zotero"):
        parse_settings({"providers": [{"kind": "zotero", "name": "z"}]})


@pytest.mark.parametrize(
    "document",
    [
        {"ingest": {"max_concurrency": 0}},
        {"scheduler": {"interval_days": 0}},
        {"providers": [{"kind": "doi", "unexpected": True}]},
        {"providers": [{"kind": "custom", "name": "c"}]},
        {"unknown_section": {}},
    ],
)
def test_invalid_documents_are_configuration_errors(document: dict[str, object]) -> None:
    with pytest.raises(ConfigurationError):
        parse_settings(document)


def test_missing_file_falls_back_to_defaults(storage: StorageConfig) -> None:
    assert load_settings(storage=storage) == LibrarySettings()


def test_settings_file_is_read_from_the_data_dir(storage: StorageConfig) -> None:
    path = storage.settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        "[scheduler]\ninterval_days = 2\n\n[[providers]]\nkind = \"arxiv\"\npriority = 4\n"
    )

    settings = load_settings(storage=storage)

    assert settings.scheduler.interval_days == 2
    assert [p.name for p in settings.providers] == ["arxiv"]


def test_malformed_toml_is_a_configuration_error(tmp_path: Path) -> None:
    path = tmp_path / "papershelf.toml"
    path.write_text("[scheduler\n")

    with pytest.raises(ConfigurationError, match="Cannot read settings"):
        load_settings(path)


def test_environment_overrides_the_interval(
    storage: StorageConfig, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("PAPERSHELF_RESCRAPE_INTERVAL_DAYS", "0.5")

    assert load_settings(storage=storage).scheduler.interval_days == 0.5


@pytest.mark.parametrize("value", ["soon", "-1"])
def test_invalid_interval_override_is_rejected(
    storage: StorageConfig, monkeypatch: pytest.MonkeyPatch, value: str
) -> None:
    monkeypatch.setenv("PAPERSHELF_RESCRAPE_INTERVAL_DAYS", value)

    with pytest.raises(ConfigurationError):
        load_settings(storage=storage)


def test_http_settings_build_a_resilience_config(storage: StorageConfig) -> None:
    settings = parse_settings(
        {"http": {"cache": "sqlite", "retries": 2, "max_calls_per_second": 4}}
    )

    resilience = settings.http.resilience(storage=storage)

    assert resilience.retry.total == 2
    assert resilience.ratelimit is not None
    assert resilience.ratelimit.per_seconds == 0.25
    assert resilience.cache is not None
    assert resilience.cache.sqlite_path == str(storage.http_cache_path())


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PRESENT_VAR", "value")
    monkeypatch.setenv("BLANK_VAR", "   ")
    monkeypatch.delenv("MISSING_VAR", raising=False)

    with pytest.raises(MissingConfigurationError) as excinfo:
        require_env_vars(["PRESENT_VAR", "BLANK_VAR", "MISSING_VAR"])

    assert "BLANK_VAR, MISSING_VAR" in str(excinfo.value)
    assert require_env_vars(["PRESENT_VAR"]) == {"PRESENT_VAR": "value"}
