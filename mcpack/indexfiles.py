"""In-memory table of the files listed in an index."""

from __future__ import annotations

import posixpath
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

META_EXTENSION = ".pw.toml"
META_EXTENSION_OLD = ".toml"


def _clean(path: str) -> str:
    if not path:
        return "."
    cleaned = posixpath.normpath(path)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


@dataclass
class IndexFile:
    """One file entry, stored with a forward-slash path relative to the index."""

    file: str
    hash: str = ""
    hash_format: str = ""
    alias: str = ""
    metafile: bool = False
    preserve: bool = False
    found: bool = field(default=False, compare=False)


def _entry_to_toml(entry: IndexFile) -> dict[str, Any]:
    out: dict[str, Any] = {"file": entry.file}
    if entry.hash:
        out["hash"] = entry.hash
    if entry.hash_format:
        out["hash-format"] = entry.hash_format
    if entry.alias:
        out["alias"] = entry.alias
    if entry.metafile:
        out["metafile"] = True
    if entry.preserve:
        out["preserve"] = True
    return out


class IndexFiles:
    """Maps a path to its entries, one per alias."""

    def __init__(self) -> None:
        self._entries: dict[str, dict[str, IndexFile]] = {}

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __getitem__(self, path: str) -> list[IndexFile]:
        return list(self._entries[path].values())

    def update_entry(self, path: str, hash_format: str, hash_value: str, mark_meta: bool = False) -> None:
        """Update hashes of every alias of path and mark found, adding it if absent."""
        aliases = self._entries.get(path)
        if aliases is None:
            self._entries[path] = {
                "": IndexFile(
                    file=path,
                    hash=hash_value,
                    hash_format=hash_format,
                    metafile=mark_meta,
                    found=True,
                )
            }
            return
        for entry in aliases.values():
            entry.found = True
            entry.hash = hash_value
            entry.hash_format = hash_format
            if mark_meta:
                entry.metafile = True

    def is_meta_file(self, path: str) -> bool:
        return next(iter(self._entries[path].values())).metafile

    def remove(self, path: str) -> None:
        self._entries.pop(path, None)

    def remove_unfound(self) -> None:
        self._entries = {
            path: aliases
            for path, aliases in self._entries.items()
            if next(iter(aliases.values())).found
        }

    @classmethod
    def from_toml(cls, entries: Iterable[Mapping[str, Any]]) -> IndexFiles:
        files = cls()
        for raw in entries:
            alias = _clean(str(raw.get("alias", "")))
            entry = IndexFile(
                file=_clean(str(raw.get("file", ""))),
                hash=str(raw.get("hash", "")),
                hash_format=str(raw.get("hash-format", "")),
                alias="" if alias == "." else alias,
                metafile=bool(raw.get("metafile", False)),
                preserve=bool(raw.get("preserve", False)),
            )
            files._entries.setdefault(entry.file, {})[entry.alias] = entry
        return files

    def to_toml(self) -> list[dict[str, Any]]:
        all_entries = [e for aliases in self._entries.values() for e in aliases.values()]
        all_entries.sort(key=lambda e: (e.file, e.alias))
        return [_entry_to_toml(e) for e in all_entries]