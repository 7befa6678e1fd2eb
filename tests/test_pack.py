import pytest

from mcpack.hashing import hash_file
from mcpack.pack import (
    CURRENT_PACK_FORMAT,
    FORMAT_PREFIX,
    Pack,
    PackFormatError,
    PackIndexRef,
    load_pack,
)
from mcpack.settings import settings


@pytest.fixture
def pack_path(tmp_path):
    settings.reset()
    path = tmp_path / "pack.toml"
    settings.set("pack-file", str(path))
    yield path
    settings.reset()


def test_load_pack_defaults(pack_path):
    pack_path.write_text('name = "Demo"\n[versions]\nminecraft = "1.20.1"\n')
    pack = load_pack()
    assert pack.pack_format == CURRENT_PACK_FORMAT
    assert pack.index.file == "index.toml"
    assert pack.mc_version() == "1.20.1"


def test_load_pack_migrates_legacy(pack_path):
    pack_path.write_text(f'name = "Demo"\npack-format = "{FORMAT_PREFIX}1.0.0"\n')
    assert load_pack().pack_format == CURRENT_PACK_FORMAT


@pytest.mark.parametrize(
    "fmt",
    ["other:1.1.0", f"{FORMAT_PREFIX}2.0.0", f"{FORMAT_PREFIX}1.x", f"{FORMAT_PREFIX}1.1.0-beta"],
)
def test_load_pack_rejects_bad_format(pack_path, fmt):
    pack_path.write_text(f'name = "Demo"\npack-format = "{fmt}"\n')
    with pytest.raises(PackFormatError):
        load_pack()


def test_load_pack_merges_options(pack_path):
    pack_path.write_text(
        'name = "Demo"\n[versions]\nminecraft = "1.20.1"\n'
        '[options]\nacceptable-game-versions = ["1.20"]\n'
    )
    pack = load_pack()
    assert pack.supported_mc_versions() == ["1.20", "1.20.1"]


def test_write_round_trip(pack_path):
    pack = Pack(
        name="Demo",
        author="Someone",
        version="2.0",
        pack_format=CURRENT_PACK_FORMAT,
        index=PackIndexRef(file="index.toml", hash_format="sha256", hash="ab"),
        versions={"minecraft": "1.20.1", "fabric": "0.15.0"},
    )
    pack.write()
    assert load_pack() == pack


def test_update_index_hash(pack_path):
    index_path = pack_path.parent / "index.toml"
    index_path.write_text('hash-format = "sha256"\n')
    pack = Pack(name="Demo", index=PackIndexRef(file="index.toml"))
    pack.update_index_hash()
    assert pack.index.hash_format == "sha256"
    assert pack.index.hash == hash_file(index_path, "sha256")


def test_update_index_hash_no_internal_hashes(pack_path):
    settings.set("no-internal-hashes", True)
    pack = Pack(name="Demo", index=PackIndexRef(file="index.toml", hash="old"))
    pack.update_index_hash()
    assert pack.index.hash == ""
    assert pack.index.hash_format == "sha256"


def test_load_index(pack_path):
    (pack_path.parent / "index.toml").write_text('hash-format = "sha1"\n')
    pack = Pack(name="Demo", index=PackIndexRef(file="index.toml"))
    assert pack.load_index().hash_format == "sha1"


def test_mc_version_missing():
    with pytest.raises(ValueError, match="no minecraft version"):
        Pack().mc_version()
    with pytest.raises(ValueError, match="no minecraft version"):
        Pack().supported_mc_versions()


def test_supported_versions_deduplicated(pack_path):
    settings.set("acceptable-game-versions", ["1.20", "1.20.1", "1.20"])
    pack = Pack(versions={"minecraft": "1.20.1"})
    assert pack.supported_mc_versions() == ["1.20", "1.20.1"]


def test_pack_name():
    assert Pack().pack_name() == "export"
    assert Pack(name="Demo").pack_name() == "Demo"
    assert Pack(name="Demo", version="1.0").pack_name() == "Demo-1.0"


@pytest.mark.parametrize(
    "versions, expected",
    [
        ({"quilt": "1", "fabric": "1"}, ["quilt", "fabric"]),
        ({"fabric": "1"}, ["fabric"]),
        ({"neoforge": "1"}, ["neoforge", "fabric"]),
        ({"forge": "1"}, ["forge"]),
        ({"purpur": "1"}, ["purpur", "paper", "spigot", "bukkit"]),
        ({}, []),
    ],
)
def test_compatible_loaders(versions, expected):
    assert Pack(versions=versions).compatible_loaders() == expected


def test_loaders_order():
    pack = Pack(versions={"forge": "1", "fabric": "1", "quilt": "1", "neoforge": "1", "minecraft": "x"})
    assert pack.loaders() == ["quilt", "fabric", "neoforge", "forge"]


def test_to_toml_omits_empty_fields():
    data = Pack(name="Demo", pack_format=CURRENT_PACK_FORMAT, index=PackIndexRef(file="index.toml")).to_toml()
    assert "author" not in data
    assert "hash" not in data["index"]
    assert "export" not in data
    assert data["pack-format"] == CURRENT_PACK_FORMAT