"""Data storage configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "papershelf"
DEFAULT_DB_FILENAME: Final[str] = "papershelf.db"
HTTP_CACHE_FILENAME: Final[str] = "http_cache.db"
SETTINGS_FILENAME: Final[str] = "papershelf.toml"
LIBRARY_DIR_NAME: Final[str] = "library"
STAGING_DIR_NAME: Final[str] = "staging"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    library_dir: Path | None = None
    database_filename: str = DEFAULT_DB_FILENAME
    http_cache_filename: str = HTTP_CACHE_FILENAME

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def ensure_data_dir(self) -> Path:
        data_dir = self.resolve_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def database_path(self, *, ensure: bool = True) -> Path:
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / self.database_filename

    def http_cache_path(self, *, ensure: bool = True) -> Path:
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / self.http_cache_filename

    def settings_path(self) -> Path:
        return self.resolve_data_dir() / SETTINGS_FILENAME

    def library_path(self, *, ensure: bool = True) -> Path:
        if self.library_dir is not None:
            path = self.library_dir.expanduser().resolve()
        else:
            path = self.resolve_data_dir() / LIBRARY_DIR_NAME
        if ensure:
            path.mkdir(parents=True, exist_ok=True)
        return path

    def staging_path(self, *, ensure: bool = True) -> Path:
        path = self.resolve_data_dir() / STAGING_DIR_NAME
        if ensure:
            path.mkdir(parents=True, exist_ok=True)
        return path

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def _default_data_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return (base_path / APP_DIR_NAME).expanduser().resolve()


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv("PAPERSHELF_DATA_DIR")
    data_dir = Path(env_dir) if env_dir else _default_data_dir()
    env_library = os.getenv("PAPERSHELF_LIBRARY_DIR")
    library_dir = Path(env_library) if env_library else None
    return StorageConfig(data_dir=data_dir, library_dir=library_dir)


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    env_uri = os.getenv("DATABASE_URI")
    if env_uri:
        return DatabaseConfig(uri=env_uri)
    storage_config = storage or get_storage_config()
    return DatabaseConfig(uri=storage_config.database_uri())


def get_database_uri() -> str:
    """Compute the database URI, respecting overrides."""

    return get_database_config().uri


def get_http_cache_path() -> Path:
    return get_storage_config().http_cache_path()
