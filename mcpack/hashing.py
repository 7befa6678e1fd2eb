"""Hash implementations addressed by format name."""

from __future__ import annotations

import hashlib
import os
from typing import BinaryIO

_CHUNK = 64 * 1024
_HASHLIB_FORMATS = ("sha1", "sha256", "sha512", "md5")


class Hasher:
    """A hashlib digest whose string form is lower-case hex."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._impl = hashlib.new(name)

    def update(self, data: bytes) -> None:
        self._impl.update(data)

    def digest(self) -> bytes:
        return self._impl.digest()

    def hash_string(self) -> str:
        return self._impl.hexdigest()


class LengthHasher:
    """Counts bytes; its string form is the decimal length."""

    name = "length-bytes"

    def __init__(self) -> None:
        self.length = 0

    def update(self, data: bytes) -> None:
        self.length += len(data)

    def digest(self) -> bytes:
        return self.length.to_bytes(8, "big")

    def hash_string(self) -> str:
        return str(self.length)


def get_hasher(hash_type: str) -> Hasher | LengthHasher:
    kind = hash_type.lower()
    if kind in _HASHLIB_FORMATS:
        return Hasher(kind)
    if kind == "length-bytes":
        return LengthHasher()
    raise ValueError(f"hash implementation {hash_type} not found")


def hash_stream(stream: BinaryIO, hash_type: str) -> str:
    hasher = get_hasher(hash_type)
    for chunk in iter(lambda: stream.read(_CHUNK), b""):
        hasher.update(chunk)
    return hasher.hash_string()


def hash_file(path: str | os.PathLike[str], hash_type: str) -> str:
    with open(path, "rb") as handle:
        return hash_stream(handle, hash_type)