from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from papershelf import app
from papershelf.config import ConfigurationError
from papershelf.ui import cli
from tests.helpers.fakes import FakeHttp

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from papershelf.adapters.sqlalchemy.unit_of_work import SqlAlchemyLibraryUnitOfWork
    from papershelf.config import StorageConfig

DOI = "10.1109/CVPR.2016.90"


@pytest.fixture
def wired_cli(
    monkeypatch: pytest.MonkeyPatch,
    storage: StorageConfig,
    sqlite_unit_of_work: Callable[[], SqlAlchemyLibraryUnitOfWork],
    data_dir: Path,
) -> FakeHttp:
    csl = json.loads((data_dir / "providers" / "doi_csl.json").read_text())
    http = FakeHttp({f"https://doi.org/{DOI}": csl})

    def fake_build_library() -> app.Library:
        return app.build_library(
            storage=storage, unit_of_work_factory=sqlite_unit_of_work, http=http
        )

    monkeypatch.setattr(cli, "build_library", fake_build_library)
    return http


def test_ingest_then_list(wired_cli: FakeHttp, capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["ingest", f"doi:{DOI}"])
    assert "1 succeeded, 0 failed" in capsys.readouterr().out

    cli.main(["list", "--search", "residual"])
    output = capsys.readouterr().out
    assert "Deep Residual Learning for Image Recognition" in output
    assert "2016" in output
    assert wired_cli.urls == [f"https://doi.org/{DOI}"]


def test_tags_and_prune_on_an_empty_library(
    wired_cli: FakeHttp, capsys: pytest.CaptureFixture[str]
) -> None:
    _ = wired_cli
    cli.main(["tags", "--folders"])
    cli.main(["prune"])

    assert "Pruned 0 unused tags and folders" in capsys.readouterr().out


def test_rescrape_without_ids_targets_preprints(
    wired_cli: FakeHttp, capsys: pytest.CaptureFixture[str]
) -> None:
    _ = wired_cli
    cli.main(["rescrape"])

    assert "0 succeeded, 0 failed" in capsys.readouterr().out


@pytest.mark.parametrize(
    "argv",
    [
        ["delete", "not-a-uuid"],
        ["list", "--limit", "0"],
        ["watch", "--interval-days", "-2"],
    ],
)
def test_invalid_arguments_exit_with_code_2(wired_cli: FakeHttp, argv: list[str]) -> None:
    _ = wired_cli
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)

    assert excinfo.value.code == 2


def test_runtime_failures_exit_with_code_1(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_build_library() -> app.Library:
        raise ConfigurationError("bad settings")

    monkeypatch.setattr(cli, "build_library", broken_build_library)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["list"])

    assert excinfo.value.code == 1
