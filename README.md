# mcpack

`mcpack` is a Python library for maintaining Minecraft modpacks that are kept
as plain TOML files:

- a `pack.toml` manifest holds the pack's name, author, version,
  `pack-format`, the game and loader versions, and a reference to the index;
- an `index.toml` lists every file of the pack with its hash;
- each mod has a small `.pw.toml` metadata file that says where its file
  comes from and how it is updated.

## Installation

```
pip install .
```

With the test dependencies:

```
pip install .[test]
```

## Settings

`mcpack.settings.settings` is a shared `Settings` object. Values are looked
up in this order: values given with `set()`, environment variables (once
`load_env()` has been called), config values from `merge()` or
`load_file()`, and built-in defaults. The default `pack-file` is
`pack.toml`. Environment variables use the prefix `MCPACK_`, upper case,
with dots turned into underscores. For example, `MCPACK_CACHE_DIRECTORY`
sets `cache.directory`. `mods-folder` is an alias for `meta-folder`.

```python
from mcpack.settings import settings

settings.set("pack-file", "mypack/pack.toml")
settings.load_env()
```

When a pack is loaded, its `options` table is merged into the settings.

`local_store_dir()`, `local_cache_dir()` and `cache_dir()` return the
per-user directories. `cache_dir()` honours `cache.directory` when it is set.

## Packs and indexes

```python
from mcpack.pack import load_pack

pack = load_pack()            # reads the file named by "pack-file"
index = pack.load_index()
index.refresh()               # hash all files, add new ones, drop missing ones
index.write()
pack.update_index_hash()
pack.write()
```

`load_pack()` handles the `pack-format` field as follows:

- If the field is missing, it assumes `mcpack:1.1.0`.
- It migrates `mcpack:1.0.0` to `mcpack:1.1.0`.
- It raises `PackFormatError` when the format is not a `1.x` version.

`Pack` also offers `mc_version()`, `supported_mc_versions()` (which uses
`acceptable-game-versions`), `pack_name()`, `loaders()` and
`compatible_loaders()`.

`Index.refresh()` walks the pack folder and records a sha256 hash for each
file. It leaves out the pack file, the index file and anything matched by
`.mcpackignore`. That file uses gitignore syntax, on top of built-in
defaults such as `.git/**` and `/*.zip`. Files whose names end in
`.pw.toml` are marked as metadata files. When `no-internal-hashes` is set,
hashes are left empty.

`Index.find_mod(name)` looks up a metadata file by its name without the
`.pw.toml` (or `.toml`) suffix. `Index.load_all_mods()` reads every metadata
file.

## Common operations

`mcpack.manage` provides these functions:

- `refresh_pack(build=False)` refreshes the index and rewrites the index and
  pack files. With `build=True`, hashes are written even in
  `no-internal-hashes` mode.
- `pin_mod(name, pinned)` sets or clears a mod's `pin` flag.
- `remove_mod(name)` deletes a mod's metadata file and drops it from the
  index.

The last two raise `LookupError` when no metadata file has that name.

`mcpack.listing` lists mods:

- `run_list(side=None, file=None, show_version=False)` prints the pack's
  mods sorted by name. Given a `file`, it writes them there as a Markdown
  table instead.
- `filter_by_side()`, `sort_mods()` and `markdown_table()` are the pieces
  it is built from. `filter_by_side()` raises `ValueError` for a side other
  than `client`, `server` or `both`.

## Metadata files and plugins

`mcpack.mod.load_mod(path)` reads a metadata file into a `Mod`.
`Mod.write()` saves it and returns the hash format and hash of what was
written. `slugify_name()` turns a display name into a file-name slug.

Update systems and metadata-based downloaders are plugins. You subclass
`Updater`, `MetaDownloader` and `MetaDownloaderData`, then register them in
`UPDATERS` and `META_DOWNLOADERS`. Both registries start empty. `load_mod()`
raises `ValueError` for an `[update]` table whose updater is not registered.

## Hashes, URLs and the download cache

- `mcpack.hashing.get_hasher()` supports `sha1`, `sha256`, `sha512`, `md5`
  and `length-bytes`. `hash_file()` and `hash_stream()` hash whole inputs.
- `mcpack.urls.reencode_url()` re-encodes a URL so that it follows RFC 3986.
- `mcpack.cache.CacheIndex` is a content-addressed file cache, keyed by
  sha256:
  - `CacheIndex.load()` reads its `index.json`;
  - `import_files()` moves files from its `import` folder into the cache;
  - `handle_for_hash()` and `handle_for_hash_force()` look files up by any
    hash format;
  - `to_json()` serialises the index.
- `tee_hashes()` copies a stream while checking it against a known hash and
  computing further hashes. On a mismatch it raises `HashMismatchError`.

## What this package does not do

`mcpack` is a library only. It installs no command-line program. It does not
create new packs interactively or look up Minecraft or mod loader versions.
It downloads nothing over the network: there is no download session, no
update run over the registered updaters, no rehashing of mods into another
hash format, and no export to archives. Code that needs these must build them
on top of the pieces above.