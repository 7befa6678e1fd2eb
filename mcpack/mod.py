"""Metadata files describing individual external files, and update plugin interfaces."""

from __future__ import annotations

import os
import re
import tomllib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO

import tomli_w

from mcpack.hashing import get_hasher

MODE_URL = "url"
MODE_CURSEFORGE = "metadata:curseforge"

SERVER_SIDE = "server"
CLIENT_SIDE = "client"
UNIVERSAL_SIDE = "both"
EMPTY_SIDE = ""


@dataclass
class ModDownload:
    url: str = ""
    hash_format: str = ""
    hash: str = ""
    mode: str = ""


@dataclass
class ModOption:
    optional: bool = False
    description: str = ""
    default: bool = False


@dataclass
class ManualDownload:
    name: str
    file_name: str
    url: str


@dataclass
class UpdateCheck:
    update_available: bool = False
    update_string: str = ""
    cached_state: Any = None
    error: Exception | None = None


class Updater(ABC):
    """An update system for metadata files."""

    @abstractmethod
    def parse_update(self, data: dict[str, Any]) -> Any:
        """Turn a raw update table into updater-specific data."""

    @abstractmethod
    def check_update(self, mods: list[Mod], pack: Any) -> list[UpdateCheck]:
        """Check for an update for each of the given mods."""

    @abstractmethod
    def do_update(self, mods: list[Mod], cached_states: list[Any]) -> None:
        """Apply updates found by check_update to the mods' metadata."""


class MetaDownloaderData(ABC):
    """Per-mod data retrieved for downloading a file."""

    @abstractmethod
    def manual_download(self) -> ManualDownload | None:
        """Return manual download details, or None if it can be fetched directly."""

    @abstractmethod
    def open_file(self) -> BinaryIO:
        """Open a stream of the file's contents."""


class MetaDownloader(ABC):
    """Downloader for mods using a "metadata:<source>" mode."""

    @abstractmethod
    def get_files_metadata(self, mods: list[Mod]) -> list[MetaDownloaderData]:
        """Return download data for each mod, in order."""


UPDATERS: dict[str, Updater] = {}
META_DOWNLOADERS: dict[str, MetaDownloader] = {}


@dataclass
class Mod:
    name: str = ""
    filename: str = ""
    side: str = ""
    pin: bool = False
    download: ModDownload = field(default_factory=ModDownload)
    update: dict[str, dict[str, Any]] = field(default_factory=dict)
    option: ModOption | None = None
    meta_file: str = ""
    _update_data: dict[str, Any] = field(default_factory=dict, init=False, repr=False, compare=False)

    def to_toml(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "filename": self.filename}
        if self.side:
            out["side"] = self.side
        if self.pin:
            out["pin"] = True
        download: dict[str, Any] = {}
        if self.download.url:
            download["url"] = self.download.url
        download["hash-format"] = self.download.hash_format
        download["hash"] = self.download.hash
        if self.download.mode:
            download["mode"] = self.download.mode
        out["download"] = download
        if self.update:
            out["update"] = {k: dict(v) for k, v in self.update.items()}
        if self.option is not None:
            option: dict[str, Any] = {"optional": self.option.optional}
            if self.option.description:
                option["description"] = self.option.description
            if self.option.default:
                option["default"] = True
            out["option"] = option
        return out

    def write(self) -> tuple[str, str]:
        """Save the metadata file; return the hash format and hash of what was written."""
        if not self.meta_file:
            raise ValueError("metadata file path is not set")
        path = Path(self.meta_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = tomli_w.dumps(self.to_toml()).encode("utf-8")
        path.write_bytes(data)
        hasher = get_hasher("sha256")
        hasher.update(data)
        return "sha256", hasher.hash_string()

    def parsed_update_data(self, updater_name: str) -> Any:
        """Return parsed updater data, or None when that updater is not used."""
        return self._update_data.get(updater_name)

    def dest_path(self) -> str:
        return os.path.join(os.path.dirname(self.meta_file), *self.filename.split("/"))


def _mod_from_toml(data: dict[str, Any]) -> Mod:
    dl = data.get("download", {})
    opt = data.get("option")
    return Mod(
        name=data.get("name", ""),
        filename=data.get("filename", ""),
        side=data.get("side", ""),
        pin=bool(data.get("pin", False)),
        download=ModDownload(
            url=dl.get("url", ""),
            hash_format=dl.get("hash-format", ""),
            hash=dl.get("hash", ""),
            mode=dl.get("mode", ""),
        ),
        update={k: dict(v) for k, v in data.get("update", {}).items()},
        option=None
        if opt is None
        else ModOption(
            optional=bool(opt.get("optional", False)),
            description=opt.get("description", ""),
            default=bool(opt.get("default", False)),
        ),
    )


def load_mod(path: str | os.PathLike[str]) -> Mod:
    with open(path, "rb") as handle:
        mod = _mod_from_toml(tomllib.load(handle))
    for key, value in mod.update.items():
        updater = UPDATERS.get(key)
        if updater is None:
            raise ValueError(f"Update plugin {key} not found!")
        mod._update_data[key] = updater.parse_update(value)
    mod.meta_file = os.fspath(path)
    return mod


_BRACKETS = re.compile(r"\(.*\)")
_SUFFIX = re.compile(r" - .+")
_INVALID = re.compile(r"[^a-z0-9]")
_DASHES = re.compile(r"-+")
_EDGE_DASH = re.compile(r"^-|-$")


def slugify_name(name: str) -> str:
    text = _BRACKETS.sub("", name.lower())
    text = _SUFFIX.sub("", text)
    text = _INVALID.sub("-", text)
    text = _DASHES.sub("-", text)
    return _EDGE_DASH.sub("", text)