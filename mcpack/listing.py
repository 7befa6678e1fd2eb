"""Listing the mods of a pack, on the console or as a Markdown table."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from mcpack.mod import CLIENT_SIDE, EMPTY_SIDE, SERVER_SIDE, UNIVERSAL_SIDE, Mod
from mcpack.pack import load_pack

_VALID_SIDES = (UNIVERSAL_SIDE, SERVER_SIDE, CLIENT_SIDE)


def filter_by_side(mods: Iterable[Mod], side: str) -> list[Mod]:
    """Keep mods for the given side, plus universal and unspecified ones."""
    if side not in _VALID_SIDES:
        raise ValueError(f'Invalid side "{side}", must be one of client, server, or both (default)')
    return [
        mod for mod in mods
        if side == UNIVERSAL_SIDE or mod.side in (side, EMPTY_SIDE, UNIVERSAL_SIDE)
    ]


def sort_mods(mods: Iterable[Mod]) -> list[Mod]:
    return sorted(mods, key=lambda mod: mod.name.lower())


def _width(values: Iterable[str]) -> int:
    return max((len(v.encode("utf-8")) for v in values), default=0)


def _row(cells: Iterable[tuple[str, int]]) -> str:
    return "".join(f"| {text.ljust(width)} " for text, width in cells) + "|\n"


def markdown_table(mods: Sequence[Mod], show_version: bool, show_side: bool) -> str:
    name_w = _width(m.name for m in mods)
    file_w = _width(m.filename for m in mods)
    side_w = _width(m.side for m in mods)

    def cells(name: str, filename: str, side: str) -> list[tuple[str, int]]:
        out = [(name, name_w)]
        if show_version:
            out.append((filename, file_w))
        if show_side:
            out.append((side, side_w))
        return out

    lines = [
        _row(cells("Name", "Version", "Side")),
        _row(cells("-" * name_w, "-" * file_w, "-" * side_w)),
    ]
    lines.extend(_row(cells(m.name, m.filename, m.side)) for m in mods)
    return "".join(lines)


def run_list(side: str | None = None, file: str | None = None, show_version: bool = False) -> list[Mod]:
    """List the pack's mods, filtered by side when given; return the mods listed."""
    pack = load_pack()
    index = pack.load_index()
    mods = index.load_all_mods()
    if side is not None:
        mods = filter_by_side(mods, side)
    mods = sort_mods(mods)

    if file:
        table = markdown_table(mods, show_version, side is not None)
        with open(file, "w", encoding="utf-8", newline="") as handle:
            handle.write(table)
        print("Mod list written to", file)
        return mods

    for mod in mods:
        print(f"{mod.name} ({mod.filename})" if show_version else mod.name)
    return mods