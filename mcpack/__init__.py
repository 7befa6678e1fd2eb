"""Library for maintaining Minecraft modpacks described by TOML metadata files."""

__version__ = "0.1.0"