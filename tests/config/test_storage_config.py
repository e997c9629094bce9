from __future__ import annotations

from typing import TYPE_CHECKING

from papershelf.config import get_database_config, get_storage_config
from papershelf.config import storage as storage_module

if TYPE_CHECKING:
    from pathlib import Path

    import pytest


def test_paths_live_under_the_data_dir(tmp_path: Path) -> None:
    config = storage_module.StorageConfig(data_dir=tmp_path / "data")

    assert config.database_path() == (tmp_path / "data" / "papershelf.db").resolve()
    assert config.library_path() == (tmp_path / "data" / "library").resolve()
    assert config.staging_path().is_dir()
    assert config.settings_path().name == "papershelf.toml"


def test_library_dir_can_live_elsewhere(tmp_path: Path) -> None:
    config = storage_module.StorageConfig(data_dir=tmp_path / "data", library_dir=tmp_path / "lib")

    assert config.library_path() == (tmp_path / "lib").resolve()


def test_environment_selects_directories(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("PAPERSHELF_DATA_DIR", str(tmp_path / "data-dir"))
    monkeypatch.setenv("PAPERSHELF_LIBRARY_DIR", str(tmp_path / "papers"))

    config = get_storage_config()

    assert config.data_dir == tmp_path / "data-dir"
    assert config.library_dir == tmp_path / "papers"


def test_default_data_dir_follows_xdg(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PAPERSHELF_DATA_DIR", raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg"))

    assert get_storage_config().data_dir == (tmp_path / "xdg" / "papershelf").resolve()


def test_database_uri_prefers_the_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    config = storage_module.StorageConfig(data_dir=tmp_path)
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")
    assert get_database_config(storage=config).uri == "sqlite+pysqlite:///:memory:"

    monkeypatch.delenv("DATABASE_URI")
    expected = f"sqlite+pysqlite:///{(tmp_path / 'papershelf.db').resolve()}"
    assert get_database_config(storage=config).uri == expected
