"""The index of every file that belongs to a pack."""

from __future__ import annotations

import os
import posixpath
import re
import tomllib
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

import tomli_w

from mcpack.hashing import hash_file
from mcpack.indexfiles import META_EXTENSION, META_EXTENSION_OLD, IndexFiles
from mcpack.mod import Mod, load_mod
from mcpack.settings import APP_NAME, settings

IGNORE_FILE_NAME = f".{APP_NAME}ignore"

# Defaults; a later negating pattern ("!pattern") can override them.
IGNORE_DEFAULTS = (
    ".git/**",
    ".gitattributes",
    ".gitignore",
    ".DS_Store",
    "/*.zip",
    "*.mrpack",
    f"{APP_NAME}.exe",
    APP_NAME,
)

_MAGIC_STAR = "#$~"
_ESCAPED_LEAD = re.compile(r"^(\\#|\\!)")
_NEEDS_ANCHOR = re.compile(r"([^/+])/.*\*\.")


@dataclass(frozen=True)
class _IgnorePattern:
    regex: re.Pattern[str]
    negate: bool


def _compile_line(line: str) -> _IgnorePattern | None:
    line = line.rstrip("\r")
    if line.startswith("#"):
        return None
    line = line.strip(" ")
    if not line:
        return None
    negate = line.startswith("!")
    if negate:
        line = line[1:]
    if _ESCAPED_LEAD.match(line):
        line = line[1:]
    if _NEEDS_ANCHOR.search(line) and not line.startswith("/"):
        line = "/" + line
    line = line.replace(".", r"\.")
    if line.startswith("/**/"):
        line = line[1:]
    line = line.replace("/**/", "(/|/.+/)")
    line = line.replace("**/", "(|." + _MAGIC_STAR + "/)")
    line = line.replace("/**", "(|/." + _MAGIC_STAR + ")")
    line = line.replace("\\*", "\\" + _MAGIC_STAR)
    line = line.replace("*", "([^/]*)")
    line = line.replace("?", "\\?")
    line = line.replace(_MAGIC_STAR, "*")
    expr = line + ("(|.*)$" if line.endswith("/") else "(|/.*)$")
    expr = "^(|/)" + expr[1:] if expr.startswith("/") else "^(|.*/)" + expr
    try:
        return _IgnorePattern(re.compile(expr), negate)
    except re.error:
        return None


@dataclass
class IgnoreMatcher:
    """Gitignore-style matcher; the last matching pattern decides."""

    patterns: list[_IgnorePattern] = field(default_factory=list)

    def matches(self, path: str) -> bool:
        path = path.replace(os.sep, "/")
        matched = False
        for pattern in self.patterns:
            if pattern.regex.match(path):
                if not pattern.negate:
                    matched = True
                elif matched:
                    matched = False
        return matched


def compile_ignore(lines: Iterable[str]) -> IgnoreMatcher:
    compiled = (_compile_line(line) for line in lines)
    return IgnoreMatcher([p for p in compiled if p is not None])


def read_ignore_file(path: str | os.PathLike[str]) -> tuple[IgnoreMatcher, bool]:
    """Compile the defaults plus the ignore file; report whether the file was read."""
    try:
        with open(path, encoding="utf-8") as handle:
            text = handle.read()
    except OSError:
        return compile_ignore(IGNORE_DEFAULTS), False
    return compile_ignore([*IGNORE_DEFAULTS, *text.split("\n")]), True


def _raise(err: OSError) -> None:
    raise err


@dataclass
class Index:
    """The index file and the files it lists."""

    hash_format: str
    files: IndexFiles
    index_file: str
    pack_root: str

    def remove_file(self, path: str | os.PathLike[str]) -> None:
        self.files.remove(self.rel_path(path))

    def resolve_path(self, rel: str) -> str:
        """Turn a path from the index into a path on disk."""
        return os.path.normpath(os.path.join(self.pack_root, *rel.split("/")))

    def rel_path(self, path: str | os.PathLike[str]) -> str:
        """Turn a path on disk into a path as stored in the index."""
        return os.path.relpath(os.fspath(path), self.pack_root).replace(os.sep, "/")

    def _update_hash_given(self, path: str, hash_format: str, hash_value: str, mark_meta: bool) -> None:
        if self.hash_format == hash_format:
            hash_format = ""
        self.files.update_entry(self.rel_path(path), hash_format, hash_value, mark_meta)

    def _update_file(self, path: str) -> None:
        hash_value = "" if settings.get_bool("no-internal-hashes") else hash_file(path, "sha256")
        mark_meta = os.path.basename(path).endswith(META_EXTENSION)
        self._update_hash_given(path, "sha256", hash_value, mark_meta)

    def _candidate_files(self, ignore: IgnoreMatcher) -> Iterator[str]:
        for dirpath, dirnames, filenames in os.walk(self.pack_root, onerror=_raise):
            dirnames[:] = sorted(
                d for d in dirnames
                if not ignore.matches(os.path.relpath(os.path.join(dirpath, d), self.pack_root))
            )
            for name in sorted(filenames):
                yield os.path.join(dirpath, name)

    def refresh(self) -> None:
        """Rehash every file in the pack, add new files and drop missing ones."""
        pack_file = os.path.abspath(settings.get_str("pack-file"))
        index_file = os.path.abspath(self.index_file)
        ignore_path = os.path.abspath(os.path.join(self.pack_root, IGNORE_FILE_NAME))
        ignore, ignore_exists = read_ignore_file(ignore_path)

        selected = []
        for path in self._candidate_files(ignore):
            abs_path = os.path.abspath(path)
            if abs_path in (pack_file, index_file):
                continue
            if ignore_exists and abs_path == ignore_path:
                continue
            if ignore.matches(os.path.relpath(path, self.pack_root)):
                continue
            selected.append(path)

        for path in selected:
            self._update_file(path)
        self.files.remove_unfound()

    def write(self) -> None:
        data = {"hash-format": self.hash_format, "files": self.files.to_toml()}
        with open(self.index_file, "wb") as handle:
            tomli_w.dump(data, handle)

    def refresh_file_with_hash(self, path: str | os.PathLike[str], hash_format: str,
                               hash_value: str, mark_meta: bool) -> None:
        if settings.get_bool("no-internal-hashes"):
            hash_value = ""
        self._update_hash_given(os.fspath(path), hash_format, hash_value, mark_meta)

    def find_mod(self, name: str) -> str | None:
        """Return the on-disk path of the metadata file with this name, if any."""
        for rel in self.files:
            if not self.files.is_meta_file(rel):
                continue
            base = posixpath.basename(rel)
            trimmed = base.removesuffix(META_EXTENSION).removesuffix(META_EXTENSION_OLD)
            if trimmed == name:
                return self.resolve_path(rel)
        return None

    def mod_paths(self) -> list[str]:
        return [self.resolve_path(rel) for rel in self.files if self.files.is_meta_file(rel)]

    def load_all_mods(self) -> list[Mod]:
        mods = []
        for path in self.mod_paths():
            try:
                mods.append(load_mod(path))
            except (OSError, ValueError) as exc:
                raise ValueError(f"failed to read metadata file {path}: {exc}") from exc
        return mods


def load_index(path: str | os.PathLike[str]) -> Index:
    path = os.fspath(path)
    with open(path, "rb") as handle:
        data = tomllib.load(handle)
    return Index(
        hash_format=data.get("hash-format") or "sha256",
        files=IndexFiles.from_toml(data.get("files", [])),
        index_file=path,
        pack_root=os.path.dirname(path) or ".",
    )