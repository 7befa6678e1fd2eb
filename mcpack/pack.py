"""The pack metadata file."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from typing import Any

import semver
import tomli_w

from mcpack.hashing import hash_file
from mcpack.index import Index, load_index
from mcpack.settings import APP_NAME, settings

FORMAT_PREFIX = f"{APP_NAME}:"
CURRENT_PACK_FORMAT = f"{FORMAT_PREFIX}1.1.0"
_LEGACY_PACK_FORMAT = f"{FORMAT_PREFIX}1.0.0"


class PackFormatError(ValueError):
    """The pack-format field is missing, malformed or unsupported."""


@dataclass
class PackIndexRef:
    """Reference to the index file; the path is forward-slash, relative to the pack file."""

    file: str = ""
    hash_format: str = ""
    hash: str = ""


def _pack_dir() -> str:
    return os.path.dirname(settings.get_str("pack-file")) or "."


def _index_disk_path(file: str) -> str:
    return os.path.normpath(os.path.join(_pack_dir(), *file.split("/")))


@dataclass
class Pack:
    name: str = ""
    author: str = ""
    version: str = ""
    description: str = ""
    pack_format: str = ""
    index: PackIndexRef = field(default_factory=PackIndexRef)
    versions: dict[str, str] = field(default_factory=dict)
    export: dict[str, dict[str, Any]] = field(default_factory=dict)
    options: dict[str, Any] = field(default_factory=dict)

    def to_toml(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name}
        if self.author:
            out["author"] = self.author
        if self.version:
            out["version"] = self.version
        if self.description:
            out["description"] = self.description
        out["pack-format"] = self.pack_format
        index: dict[str, Any] = {"file": self.index.file, "hash-format": self.index.hash_format}
        if self.index.hash:
            index["hash"] = self.index.hash
        out["index"] = index
        out["versions"] = dict(self.versions)
        if self.export:
            out["export"] = {k: dict(v) for k, v in self.export.items()}
        if self.options:
            out["options"] = dict(self.options)
        return out

    def load_index(self) -> Index:
        if os.path.isabs(self.index.file):
            return load_index(self.index.file)
        return load_index(_index_disk_path(self.index.file))

    def update_index_hash(self) -> None:
        """Recalculate the hash of the index file."""
        self.index.hash_format = "sha256"
        if settings.get_bool("no-internal-hashes"):
            self.index.hash = ""
            return
        self.index.hash = hash_file(_index_disk_path(self.index.file), "sha256")

    def write(self) -> None:
        with open(settings.get_str("pack-file"), "wb") as handle:
            tomli_w.dump(self.to_toml(), handle)

    def mc_version(self) -> str:
        try:
            return self.versions["minecraft"]
        except KeyError:
            raise ValueError("no minecraft version specified in modpack") from None

    def supported_mc_versions(self) -> list[str]:
        """Game versions accepted for downloads, the pack's own version last."""
        all_versions = [*settings.get_list("acceptable-game-versions"), self.mc_version()]
        return [v for i, v in enumerate(all_versions) if v not in all_versions[i + 1:]]

    def pack_name(self) -> str:
        if not self.name:
            return "export"
        if not self.version:
            return self.name
        return f"{self.name}-{self.version}"

    def compatible_loaders(self) -> list[str]:
        loaders: list[str] = []
        if "quilt" in self.versions:
            loaders += ["quilt", "fabric"]
        elif "fabric" in self.versions:
            loaders.append("fabric")
        if "neoforge" in self.versions:
            loaders += ["neoforge", "fabric"]
        elif "forge" in self.versions:
            loaders.append("forge")
        if "purpur" in self.versions:
            loaders += ["purpur", "paper", "spigot", "bukkit"]
        return loaders

    def loaders(self) -> list[str]:
        return [name for name in ("quilt", "fabric", "neoforge", "forge") if name in self.versions]


def _pack_from_toml(data: dict[str, Any]) -> Pack:
    index = data.get("index", {})
    return Pack(
        name=data.get("name", ""),
        author=data.get("author", ""),
        version=data.get("version", ""),
        description=data.get("description", ""),
        pack_format=data.get("pack-format", ""),
        index=PackIndexRef(
            file=index.get("file", ""),
            hash_format=index.get("hash-format", ""),
            hash=index.get("hash", ""),
        ),
        versions=dict(data.get("versions", {})),
        export={k: dict(v) for k, v in data.get("export", {}).items()},
        options=dict(data.get("options", {})),
    )


def _check_pack_format(pack_format: str) -> None:
    if not pack_format.startswith(FORMAT_PREFIX):
        raise PackFormatError(f"pack-format field does not indicate a valid {APP_NAME} pack")
    try:
        version = semver.Version.parse(pack_format.removeprefix(FORMAT_PREFIX))
    except ValueError as exc:
        raise PackFormatError(f"pack-format field is not valid semver: {exc}") from exc
    if version.prerelease or version.major != 1:
        raise PackFormatError(
            f"the modpack is incompatible with this version of {APP_NAME}; please update"
        )
    if version.minor != 1:
        print(
            f"Modpack has a newer feature number than is supported by this version of {APP_NAME}. "
            f"Update to the latest version of {APP_NAME} for new features and bugfixes!"
        )


def load_pack() -> Pack:
    """Load the pack file named by the pack-file setting."""
    with open(settings.get_str("pack-file"), "rb") as handle:
        pack = _pack_from_toml(tomllib.load(handle))

    if not pack.pack_format:
        print(f"Modpack manifest has no pack-format field; assuming {CURRENT_PACK_FORMAT}")
        pack.pack_format = CURRENT_PACK_FORMAT
    if pack.pack_format == _LEGACY_PACK_FORMAT:
        print(f"Automatically migrating pack to {CURRENT_PACK_FORMAT} format...")
        pack.pack_format = CURRENT_PACK_FORMAT
    _check_pack_format(pack.pack_format)

    if pack.options:
        settings.merge(pack.options)
    if not pack.index.file:
        pack.index.file = "index.toml"
    return pack