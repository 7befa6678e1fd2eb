import hashlib
import tomllib

import pytest

from mcpack.index import load_index
from mcpack.manage import pin_mod, refresh_pack, remove_mod
from mcpack.mod import load_mod
from mcpack.settings import settings

PACK_TOML = """name = "Test Pack"
pack-format = "mcpack:1.1.0"

[index]
file = "index.toml"
hash-format = "sha256"

[versions]
minecraft = "1.20.1"
"""

MOD_TOML = """name = "Foo"
filename = "foo.jar"
side = "both"

[download]
url = "https://example.com/foo.jar"
hash-format = "sha1"
hash = "abc"
"""

MOD_PATH = "mods/foo.pw.toml"


@pytest.fixture
def pack_dir(tmp_path, monkeypatch):
    settings.reset()
    settings.set("pack-file", str(tmp_path / "pack.toml"))
    (tmp_path / "pack.toml").write_text(PACK_TOML)
    (tmp_path / "index.toml").write_text("")
    (tmp_path / "mods").mkdir()
    (tmp_path / "mods" / "foo.pw.toml").write_text(MOD_TOML)
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "a.txt").write_text("option=1\n")
    monkeypatch.chdir(tmp_path)
    yield tmp_path
    settings.reset()


def _pack_data(root):
    with open(root / "pack.toml", "rb") as fh:
        return tomllib.load(fh)


def _sha256(path):
    return hashlib.sha256(path.read_bytes()).hexdigest()


def test_refresh_indexes_files(pack_dir, capsys):
    refresh_pack(False)
    index = load_index(pack_dir / "index.toml")
    assert MOD_PATH in index.files
    assert "config/a.txt" in index.files
    assert "pack.toml" not in index.files
    assert index.files.is_meta_file(MOD_PATH) is True
    assert index.files.is_meta_file("config/a.txt") is False
    assert index.files["config/a.txt"][0].hash == _sha256(pack_dir / "config" / "a.txt")
    assert _pack_data(pack_dir)["index"]["hash"] == _sha256(pack_dir / "index.toml")
    assert "Index refreshed!" in capsys.readouterr().out


def test_refresh_drops_missing_files(pack_dir):
    refresh_pack(False)
    (pack_dir / "config" / "a.txt").unlink()
    refresh_pack(False)
    index = load_index(pack_dir / "index.toml")
    assert "config/a.txt" not in index.files
    assert MOD_PATH in index.files


def test_refresh_without_internal_hashes(pack_dir, capsys):
    settings.set("no-internal-hashes", True)
    refresh_pack(False)
    assert "no-internal-hashes mode is set" in capsys.readouterr().out
    index = load_index(pack_dir / "index.toml")
    assert index.files["config/a.txt"][0].hash == ""
    assert "hash" not in _pack_data(pack_dir)["index"]


def test_refresh_build_overrides_no_hashes(pack_dir):
    settings.set("no-internal-hashes", True)
    refresh_pack(True)
    assert settings.get_bool("no-internal-hashes") is False
    assert _pack_data(pack_dir)["index"]["hash"] == _sha256(pack_dir / "index.toml")


def test_pin_and_unpin(pack_dir, capsys):
    refresh_pack(False)
    path = pin_mod("foo", True)
    assert load_mod(path).pin is True
    assert "foo pinned successfully!" in capsys.readouterr().out
    index = load_index(pack_dir / "index.toml")
    assert index.files[MOD_PATH][0].hash == _sha256(pack_dir / "mods" / "foo.pw.toml")
    assert _pack_data(pack_dir)["index"]["hash"] == _sha256(pack_dir / "index.toml")

    pin_mod("foo", False)
    assert load_mod(path).pin is False
    assert "foo unpinned successfully!" in capsys.readouterr().out
    with open(path, "rb") as fh:
        assert "pin" not in tomllib.load(fh)


def test_pin_unknown_mod(pack_dir):
    refresh_pack(False)
    with pytest.raises(LookupError, match="Can't find this file"):
        pin_mod("missing", True)


def test_remove_mod(pack_dir, capsys):
    refresh_pack(False)
    path = remove_mod("foo")
    assert not (pack_dir / "mods" / "foo.pw.toml").exists()
    assert path.endswith("foo.pw.toml")
    index = load_index(pack_dir / "index.toml")
    assert MOD_PATH not in index.files
    assert "config/a.txt" in index.files
    assert _pack_data(pack_dir)["index"]["hash"] == _sha256(pack_dir / "index.toml")
    assert "foo removed successfully!" in capsys.readouterr().out


def test_remove_unknown_mod(pack_dir):
    refresh_pack(False)
    with pytest.raises(LookupError):
        remove_mod("missing")
    assert (pack_dir / "mods" / "foo.pw.toml").exists()