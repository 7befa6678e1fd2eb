"""Content-addressed download cache and the index of hashes it keeps."""

from __future__ import annotations

import json
import os
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO

from mcpack.hashing import get_hasher, hash_file

CACHE_HASH_FORMAT = "sha256"
IMPORT_FOLDER = "import"
INDEX_FILE_NAME = "index.json"
CACHE_INDEX_VERSION = 1
PREFERRED_HASHES = ("murmur2", "md5", "sha1", "sha256", "sha512")

_CHUNK = 64 * 1024


class HashMismatchError(ValueError):
    """Content did not have the hash it was expected to have."""


def _raise(err: OSError) -> None:
    raise err


def _chunks(stream: BinaryIO) -> Iterable[bytes]:
    return iter(lambda: stream.read(_CHUNK), b"")


def _cache_file(cache_path: Path, cache_hash: str) -> Path:
    return cache_path / cache_hash[:2] / cache_hash[2:]


def select_preferred_hash(hashes: Mapping[str, str]) -> tuple[str, str] | None:
    """Return the strongest (format, hash) pair available, or None."""
    best = None
    for hash_format in PREFERRED_HASHES:
        if hash_format in hashes:
            best = (hash_format, hashes[hash_format])
    return best


def hash_lists_for_download(
    wanted: Iterable[str], validate_format: str, validate_hash: str
) -> tuple[list[str], dict[str, str]]:
    """Return the formats still to compute and a hash map seeded with the known hash.

    The cache's own format is always computed; the validating format never is.
    """
    hashes = {validate_format: validate_hash}
    to_obtain = [] if validate_format == CACHE_HASH_FORMAT else [CACHE_HASH_FORMAT]
    to_obtain += [f for f in wanted if f not in (validate_format, CACHE_HASH_FORMAT)]
    return to_obtain, hashes


def _hasher_for(hash_format: str):
    try:
        return get_hasher(hash_format)
    except ValueError:
        raise ValueError(f"failed to get hash format {hash_format}") from None


def tee_hashes(
    wanted: Sequence[str],
    hashes: dict[str, str],
    src: BinaryIO,
    dst: BinaryIO | None = None,
) -> None:
    """Copy src to dst, validating against the best known hash and adding the wanted ones.

    The computed hashes are stored into ``hashes``.
    """
    preferred = select_preferred_hash(hashes)
    if preferred is None:
        raise ValueError("failed to find preferred hash for file")
    validate_format, validate_hash = preferred

    main = _hasher_for(validate_format)
    hashers = {hash_format: _hasher_for(hash_format) for hash_format in wanted}

    for chunk in _chunks(src):
        for hasher in hashers.values():
            hasher.update(chunk)
        main.update(chunk)
        if dst is not None:
            dst.write(chunk)

    calculated = main.hash_string()
    if calculated.lower() != validate_hash.lower():
        raise HashMismatchError(
            f"{validate_format} hash of downloaded file does not match with expected hash!\n"
            f" download hash: {calculated}\n expected hash: {validate_hash}\n"
        )
    for hash_format, hasher in hashers.items():
        hashes[hash_format] = hasher.hash_string()


def remove_empty(hashes: Sequence[str]) -> tuple[list[str], list[int]]:
    """Drop empty entries; return the kept entries and the positions removed."""
    kept = [h for h in hashes if h]
    removed = [i for i, h in enumerate(hashes) if not h]
    return kept, removed


def remove_indices(hashes: Sequence[str], indices: Sequence[int]) -> list[str]:
    """Drop entries at the given ascending positions, counted against the kept list."""
    pending = list(indices)
    kept: list[str] = []
    for value in hashes:
        if pending and len(kept) == pending[0]:
            pending.pop(0)
        else:
            kept.append(value)
    return kept


def _field(raw: Mapping[str, Any], name: str, default: Any) -> Any:
    if name in raw:
        return raw[name]
    for key, value in raw.items():
        if key.lower() == name.lower():
            return value
    return default


@dataclass
class CacheIndex:
    """Parallel lists of hashes, one list per format, one position per cached file."""

    cache_path: Path
    version: int = CACHE_INDEX_VERSION
    hashes: dict[str, list[str]] = field(default_factory=dict)
    next_hash_idx: int = 0

    def __post_init__(self) -> None:
        self.cache_path = Path(self.cache_path)

    @classmethod
    def load(cls, cache_path: str | os.PathLike[str]) -> CacheIndex:
        """Read the index in cache_path, if there is one, and clean out empty entries."""
        index = cls(Path(cache_path))
        try:
            data = (index.cache_path / INDEX_FILE_NAME).read_bytes()
        except FileNotFoundError:
            pass
        except OSError as exc:
            exc.add_note("failed to read cache index file")
            raise
        else:
            try:
                raw = json.loads(data)
            except json.JSONDecodeError as exc:
                raise ValueError(f"failed to read cache index file: {exc}") from exc
            if not isinstance(raw, dict):
                raise ValueError("failed to read cache index file: not a JSON object")
            version = _field(raw, "Version", CACHE_INDEX_VERSION)
            if not isinstance(version, int) or isinstance(version, bool) or version < 0:
                raise ValueError(f"failed to read cache index file: invalid version {version!r}")
            if version > CACHE_INDEX_VERSION:
                raise ValueError(f"cache index is too new (version {version})")
            index.version = version
            raw_hashes = _field(raw, "Hashes", None) or {}
            if not isinstance(raw_hashes, dict):
                raise ValueError("failed to read cache index file: Hashes is not an object")
            index.hashes = {
                str(fmt): [str(h) if h else "" for h in (values or [])]
                for fmt, values in raw_hashes.items()
            }

        cleaned, removed = remove_empty(index.hashes.get(CACHE_HASH_FORMAT, []))
        index.hashes[CACHE_HASH_FORMAT] = cleaned
        if removed:
            for hash_format, values in index.hashes.items():
                if hash_format != CACHE_HASH_FORMAT:
                    index.hashes[hash_format] = remove_indices(values, removed)
        index.next_hash_idx = len(cleaned)
        return index

    def to_json(self) -> str:
        data = {
            "Version": self.version,
            "Hashes": {fmt: list(self.hashes[fmt]) for fmt in sorted(self.hashes)},
        }
        return json.dumps(data, separators=(",", ":"))

    def _hashes_at(self, idx: int) -> dict[str, str]:
        return {
            hash_format: values[idx]
            for hash_format, values in self.hashes.items()
            if idx < len(values) and values[idx]
        }

    def _handle(self, idx: int) -> CacheHandle:
        return CacheHandle(self, idx, self._hashes_at(idx))

    def handle_for_hash(self, hash_format: str, hash_value: str) -> CacheHandle | None:
        stored = self.hashes.get(hash_format)
        if stored is None:
            return None
        try:
            idx = stored.index(hash_value.lower())
        except ValueError:
            return None
        return self._handle(idx)

    def handle_for_hash_force(self, hash_format: str, hash_value: str) -> CacheHandle | None:
        """Look up a hash, rehashing cached files that lack this format.

        This can read every file in the cache, so it is meant for manual downloads only.
        """
        wanted = hash_value.lower()
        cache_list = self.hashes.get(CACHE_HASH_FORMAT, [])
        stored = self.hashes.get(hash_format)
        if stored is not None:
            stored.extend([""] * (len(cache_list) - len(stored)))
            for idx, current in enumerate(stored):
                if current.lower() == wanted:
                    return self._handle(idx)
                if not current and idx < len(cache_list):
                    stored[idx] = self._rehash(cache_list[idx], hash_format)
                    if stored[idx].lower() == wanted:
                        return self._handle(idx)
        else:
            stored = [""] * len(cache_list)
            self.hashes[hash_format] = stored
            for idx, cache_hash in enumerate(cache_list):
                stored[idx] = self._rehash(cache_hash, hash_format)
                if stored[idx].lower() == wanted:
                    return self._handle(idx)
        return None

    def _rehash(self, cache_hash: str, hash_format: str) -> str:
        try:
            validate = get_hasher(CACHE_HASH_FORMAT)
            rehash = get_hasher(hash_format)
            with open(_cache_file(self.cache_path, cache_hash), "rb") as handle:
                for chunk in _chunks(handle):
                    validate.update(chunk)
                    rehash.update(chunk)
        except (OSError, ValueError) as exc:
            exc.add_note(f"failed to rehash {cache_hash}")
            raise
        read_hash = validate.hash_string()
        if read_hash != cache_hash:
            raise HashMismatchError(
                f"failed to rehash {cache_hash}: {CACHE_HASH_FORMAT} hash of cached file does not "
                f"match with expected hash!\n read hash: {read_hash}\n expected hash: {cache_hash}\n"
            )
        return rehash.hash_string()

    def new_handle(self, hashes: dict[str, str]) -> tuple[CacheHandle, bool]:
        """Return a handle for a file with these hashes, and whether it is already cached."""
        if CACHE_HASH_FORMAT not in hashes:
            raise ValueError(f"new_handle requires a value for {CACHE_HASH_FORMAT}")
        handle = self.handle_for_hash(CACHE_HASH_FORMAT, hashes[CACHE_HASH_FORMAT])
        if handle is not None:
            for hash_format, value in hashes.items():
                handle.hashes[hash_format] = value.lower()
            return handle, True
        idx = self.next_hash_idx
        self.next_hash_idx += 1
        return CacheHandle(self, idx, hashes), False

    def import_files(self) -> None:
        """Move files placed in the import folder into the cache."""
        paths: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(self.cache_path / IMPORT_FOLDER, onerror=_raise):
            dirnames.sort()
            paths.extend(Path(dirpath) / name for name in sorted(filenames))

        for path in paths:
            try:
                digest = hash_file(path, CACHE_HASH_FORMAT)
            except OSError as exc:
                exc.add_note(f"failed to validate imported file {path}")
                raise
            handle, exists = self.new_handle({CACHE_HASH_FORMAT: digest})
            try:
                if exists:
                    path.unlink()
                else:
                    handle.create_from_temp(path).close()
                    handle.update_index()
            except OSError as exc:
                exc.add_note(f"failed to import file {path}")
                raise


@dataclass
class CacheHandle:
    """A position in the cache index, with the hashes known for it."""

    index: CacheIndex
    hash_idx: int
    hashes: dict[str, str]

    def remaining_hashes(self, wanted: Iterable[str]) -> list[str]:
        return [hash_format for hash_format in wanted if hash_format not in self.hashes]

    def path(self) -> Path:
        return _cache_file(self.index.cache_path, self.hashes[CACHE_HASH_FORMAT])

    def open(self) -> BinaryIO:
        return open(self.path(), "rb")

    def create_from_temp(self, temp_path: str | os.PathLike[str]) -> BinaryIO:
        """Move a file into its place in the cache and open it."""
        target = self.path()
        target.parent.mkdir(parents=True, exist_ok=True)
        os.replace(temp_path, target)
        return open(target, "rb")

    def update_index(self) -> list[str]:
        """Store this handle's hashes in the index; return warnings for overwritten values."""
        warnings: list[str] = []
        for hash_format, value in self.hashes.items():
            values = self.index.hashes.setdefault(hash_format, [])
            if self.hash_idx >= len(values):
                values.extend([""] * (self.hash_idx - len(values) + 1))
            existing = values[self.hash_idx]
            if not existing:
                values[self.hash_idx] = value
            elif existing != value:
                warnings.append(
                    f"inconsistent {hash_format} hash for {self.path()} overwritten - "
                    f"value {existing} (expected {value})"
                )
                values[self.hash_idx] = value
        return warnings

    def remove(self) -> None:
        """Drop this handle's entries from the index."""
        for hash_format in self.hashes:
            values = self.index.hashes.get(hash_format)
            if values is not None and self.hash_idx < len(values):
                del values[self.hash_idx]