"""Layered settings store and per-user directory locations."""

from __future__ import annotations

import os
import sys
import tomllib
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

APP_NAME = "mcpack"
ENV_PREFIX = "MCPACK"
CONFIG_FILE_NAME = ".mcpack.toml"

_ALIASES = {"mods-folder": "meta-folder"}

_DEFAULTS: dict[str, Any] = {
    "pack-file": "pack.toml",
    "meta-folder": "",
    "meta-folder-base": ".",
    "non-interactive": False,
    "no-internal-hashes": False,
    "cache.directory": "",
}

_TRUE_STRINGS = {"1", "t", "true"}


def _canonical(key: str) -> str:
    key = key.lower()
    return _ALIASES.get(key, key)


def _flatten(mapping: Mapping[str, Any], prefix: str = "") -> Iterator[tuple[str, Any]]:
    for key, value in mapping.items():
        full = f"{prefix}{key}".lower()
        if isinstance(value, Mapping) and value:
            yield from _flatten(value, full + ".")
        else:
            yield full, value


class Settings:
    """Settings resolved from explicit values, environment, config file and defaults."""

    def __init__(self) -> None:
        self._defaults: dict[str, Any] = dict(_DEFAULTS)
        self._config: dict[str, Any] = {}
        self._overrides: dict[str, Any] = {}
        self._environ: Mapping[str, str] | None = None

    def _env_key(self, key: str) -> str:
        return f"{ENV_PREFIX}_{key.upper().replace('.', '_')}"

    def _lookup(self, key: str) -> tuple[bool, Any]:
        key = _canonical(key)
        if key in self._overrides:
            return True, self._overrides[key]
        if self._environ is not None:
            env_key = self._env_key(key)
            if env_key in self._environ:
                return True, self._environ[env_key]
        if key in self._config:
            return True, self._config[key]
        return False, None

    def get(self, key: str, default: Any = None) -> Any:
        found, value = self._lookup(key)
        if found:
            return value
        return self._defaults.get(_canonical(key), default)

    def set(self, key: str, value: Any) -> None:
        self._overrides[_canonical(key)] = value

    def is_set(self, key: str) -> bool:
        return self._lookup(key)[0]

    def get_bool(self, key: str) -> bool:
        value = self.get(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        if isinstance(value, str):
            return value.strip().lower() in _TRUE_STRINGS
        return False

    def get_str(self, key: str) -> str:
        value = self.get(key)
        return "" if value is None else str(value)

    def get_list(self, key: str) -> list[str]:
        value = self.get(key)
        if value is None:
            return []
        if isinstance(value, str):
            return value.split()
        if isinstance(value, (list, tuple)):
            return [str(item) for item in value]
        return [str(value)]

    def merge(self, mapping: Mapping[str, Any]) -> None:
        """Merge a (possibly nested) mapping into the config layer."""
        for key, value in _flatten(mapping):
            self._config[_canonical(key)] = value

    def load_file(self, path: str | os.PathLike[str]) -> Path:
        path = Path(path)
        with path.open("rb") as handle:
            self.merge(tomllib.load(handle))
        return path

    def load_env(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def reset(self) -> None:
        self._defaults = dict(_DEFAULTS)
        self._config.clear()
        self._overrides.clear()
        self._environ = None


settings = Settings()


def _home() -> Path:
    try:
        return Path.home()
    except RuntimeError as exc:
        raise OSError("home directory is not defined") from exc


def _user_config_dir() -> Path:
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if not appdata:
            raise OSError("%AppData% is not defined")
        return Path(appdata)
    if sys.platform == "darwin":
        return _home() / "Library" / "Application Support"
    xdg = os.environ.get("XDG_CONFIG_HOME")
    return Path(xdg) if xdg else _home() / ".config"


def _user_cache_dir() -> Path:
    if sys.platform == "win32":
        local = os.environ.get("LOCALAPPDATA")
        if not local:
            raise OSError("%LocalAppData% is not defined")
        return Path(local)
    if sys.platform == "darwin":
        return _home() / "Library" / "Caches"
    xdg = os.environ.get("XDG_CACHE_HOME")
    return Path(xdg) if xdg else _home() / ".cache"


def local_store_dir() -> Path:
    if sys.platform.startswith("linux"):
        data_home = os.environ.get("XDG_DATA_HOME")
        if data_home:
            return Path(data_home) / APP_NAME
    return _user_config_dir() / APP_NAME


def local_cache_dir() -> Path:
    return _user_cache_dir() / APP_NAME


def install_bin_dir() -> Path:
    return local_store_dir() / "bin"


def install_bin_file() -> Path:
    exe = f"{APP_NAME}.exe" if sys.platform == "win32" else APP_NAME
    return install_bin_dir() / exe


def cache_dir() -> Path:
    configured = settings.get_str("cache.directory")
    if configured:
        return Path(configured)
    return local_cache_dir() / "cache"