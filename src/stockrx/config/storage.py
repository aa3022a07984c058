"""Data storage configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Mapping

APP_DIR_NAME: Final[str] = "stockrx"
DEFAULT_DB_FILENAME: Final[str] = "stockrx.db"
PATCH_CONFIG_FILENAME: Final[str] = "data_patches.toml"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME
    patch_config_filename: str = PATCH_CONFIG_FILENAME

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def ensure_data_dir(self) -> Path:
        data_dir = self.resolve_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def database_path(self, *, ensure: bool = True) -> Path:
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / self.database_filename

    def patch_config_path(self) -> Path:
        return self.resolve_data_dir() / self.patch_config_filename

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def _default_data_dir(env: Mapping[str, str]) -> Path:
    if os.name == "nt":
        base = env.get("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = env.get("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return (base_path / APP_DIR_NAME).expanduser().resolve()


def get_storage_config(env: Mapping[str, str] | None = None) -> StorageConfig:
    environ = os.environ if env is None else env
    env_dir = environ.get("STOCKRX_DATA_DIR")
    data_dir = Path(env_dir) if env_dir else _default_data_dir(environ)
    return StorageConfig(data_dir=data_dir)


def get_database_config(
    *,
    storage: StorageConfig | None = None,
    env: Mapping[str, str] | None = None,
) -> DatabaseConfig:
    environ = os.environ if env is None else env
    env_uri = environ.get("DATABASE_URI")
    if env_uri:
        return DatabaseConfig(uri=env_uri)
    storage_config = storage or get_storage_config(environ)
    return DatabaseConfig(uri=storage_config.database_uri())


def get_patch_config_path(
    *,
    storage: StorageConfig | None = None,
    env: Mapping[str, str] | None = None,
) -> Path:
    """Location of the data patch TOML file: ``STOCKRX_PATCH_CONFIG`` or the data dir."""

    environ = os.environ if env is None else env
    env_path = environ.get("STOCKRX_PATCH_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    storage_config = storage or get_storage_config(environ)
    return storage_config.patch_config_path()
