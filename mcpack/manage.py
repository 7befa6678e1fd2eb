"""Pinning, removing and refreshing files in a pack."""

from __future__ import annotations

import os

from mcpack.index import Index
from mcpack.mod import load_mod
from mcpack.pack import Pack, load_pack
from mcpack.settings import APP_NAME, settings

NOT_FOUND_MESSAGE = (
    f"Can't find this file; please ensure you have run {APP_NAME} refresh and use the name "
    "of the .pw.toml file (defaults to the project slug)"
)


def _save(pack: Pack, index: Index) -> None:
    index.write()
    pack.update_index_hash()
    pack.write()


def _find(index: Index, name: str) -> str:
    path = index.find_mod(name)
    if path is None:
        raise LookupError(NOT_FOUND_MESSAGE)
    return path


def pin_mod(name: str, pinned: bool) -> str:
    """Set or clear the pin of a metadata file; return its path."""
    print("Loading modpack...")
    pack = load_pack()
    index = pack.load_index()
    path = _find(index, name)
    mod = load_mod(path)
    mod.pin = pinned
    hash_format, hash_value = mod.write()
    index.refresh_file_with_hash(path, hash_format, hash_value, True)
    _save(pack, index)
    print(f"{name} {'pinned' if pinned else 'unpinned'} successfully!")
    return path


def remove_mod(name: str) -> str:
    """Delete a metadata file and drop it from the index; return its path."""
    print("Loading modpack...")
    pack = load_pack()
    index = pack.load_index()
    path = _find(index, name)
    os.remove(path)
    print("Removing file from index...")
    index.remove_file(path)
    _save(pack, index)
    print(f"{name} removed successfully!")
    return path


def refresh_pack(build: bool = False) -> Index:
    """Rehash every file in the pack and rewrite the index and pack files.

    With build set, hashes are written even in no-internal-hashes mode.
    """
    print("Loading modpack...")
    pack = load_pack()
    if build:
        settings.set("no-internal-hashes", False)
    elif settings.get_bool("no-internal-hashes"):
        print(
            "Note: no-internal-hashes mode is set, no hashes will be saved. "
            "Use --build to override this for distribution."
        )
    index = pack.load_index()
    index.refresh()
    _save(pack, index)
    print("Index refreshed!")
    return index