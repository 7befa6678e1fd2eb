import pytest
import tomli_w

from mcpack.listing import filter_by_side, markdown_table, run_list, sort_mods
from mcpack.mod import Mod
from mcpack.pack import CURRENT_PACK_FORMAT
from mcpack.settings import settings


@pytest.fixture(autouse=True)
def _clean_settings():
    settings.reset()
    yield
    settings.reset()


def _mods():
    return [
        Mod(name="zeta", filename="zeta-1.0.jar", side="client"),
        Mod(name="Alpha", filename="alpha-2.0.jar", side="server"),
        Mod(name="beta", filename="beta.jar", side="both"),
        Mod(name="Gamma", filename="gamma.jar", side=""),
    ]


def test_filter_by_side_client():
    names = [m.name for m in filter_by_side(_mods(), "client")]
    assert names == ["zeta", "beta", "Gamma"]


def test_filter_by_side_both_keeps_all():
    mods = _mods()
    assert filter_by_side(mods, "both") == mods


def test_filter_by_side_invalid():
    with pytest.raises(ValueError, match="Invalid side"):
        filter_by_side(_mods(), "sideways")


def test_sort_mods_case_insensitive():
    names = [m.name for m in sort_mods(_mods())]
    assert names == ["Alpha", "beta", "Gamma", "zeta"]


def test_markdown_table_shape():
    mods = sort_mods(_mods())
    lines = markdown_table(mods, show_version=True, show_side=True).splitlines()
    assert len(lines) == len(mods) + 2
    assert len({len(line) for line in lines}) == 1
    assert lines[0].split("|")[1:4] == [
        f" {'Name'.ljust(5)} ",
        f" {'Version'.ljust(13)} ",
        f" {'Side'.ljust(6)} ",
    ]
    assert all(line.startswith("| ") and line.endswith("|") for line in lines)
    assert set(lines[1].replace("|", "").replace(" ", "")) == {"-"}


def test_markdown_table_name_only():
    table = markdown_table([Mod(name="Alpha")], show_version=False, show_side=False)
    assert table == "| Name  |\n| ----- |\n| Alpha |\n"


def _make_pack(tmp_path):
    pack = {
        "name": "Test",
        "pack-format": CURRENT_PACK_FORMAT,
        "index": {"file": "index.toml", "hash-format": "sha256"},
        "versions": {"minecraft": "1.20.1"},
    }
    (tmp_path / "pack.toml").write_text(tomli_w.dumps(pack), encoding="utf-8")
    files = []
    for mod in _mods():
        rel = f"mods/{mod.name.lower()}.pw.toml"
        mod.meta_file = str(tmp_path / "mods" / f"{mod.name.lower()}.pw.toml")
        mod.write()
        files.append({"file": rel, "metafile": True})
    index = {"hash-format": "sha256", "files": files}
    (tmp_path / "index.toml").write_text(tomli_w.dumps(index), encoding="utf-8")
    settings.set("pack-file", str(tmp_path / "pack.toml"))


def test_run_list_console(tmp_path, capsys):
    _make_pack(tmp_path)
    mods = run_list(show_version=True)
    out = capsys.readouterr().out.splitlines()
    assert [m.name for m in mods] == ["Alpha", "beta", "Gamma", "zeta"]
    assert out == [f"{m.name} ({m.filename})" for m in mods]


def test_run_list_filtered_to_file(tmp_path, capsys):
    _make_pack(tmp_path)
    target = tmp_path / "mods.md"
    mods = run_list(side="server", file=str(target))
    assert [m.name for m in mods] == ["Alpha", "beta", "Gamma"]
    assert target.read_text(encoding="utf-8") == markdown_table(mods, False, True)
    assert str(target) in capsys.readouterr().out