"""Shared constants and helpers for libsync.

Centralizes the defaults for the target language server (client name,
settings key, source-root directory segment), the debounce window, and the
timezone-aware datetime helper.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


# Name of the language-server client whose configuration is kept in sync
DEFAULT_CLIENT_NAME: str = "lua_ls"

# Quiet window between the last library change and the settings push
DEFAULT_DEBOUNCE_SECONDS: float = 0.1

# Directory component that marks a source root ("<plugin>/lua/<module>.lua")
DEFAULT_SOURCE_SEGMENT: str = "lua"

# Dotted settings key that receives the library list
DEFAULT_LIBRARY_SETTING: str = "Lua.workspace.library"

# A project carrying one of these files manages its own library settings
DEFAULT_DISABLED_MARKERS: list[str] = [".luarc.json"]

# Tools that fight over the same settings when loaded alongside libsync
DEFAULT_CONFLICTING_MODULES: list[str] = ["neodev"]

# Module file names tried for a module path "a/b" under a source root
MODULE_FILE_CANDIDATES: tuple[str, ...] = ("{path}.lua", "{path}/init.lua")
