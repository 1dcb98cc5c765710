"""Filesystem-backed package and module indexes.

Plugins are laid out as ``<plugin dir>/<plugin>/<segment>/<module path>``,
for example ``~/.local/share/nvim/lazy/foo/lua/foo/bar.lua``. The runtime
paths are roots whose modules count as already loaded; plugin roots are only
searched when a module is not found on the runtime paths.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Sequence

from libsync.constants import DEFAULT_SOURCE_SEGMENT, MODULE_FILE_CANDIDATES
from libsync.interfaces import ModuleInfo
from libsync.utils.logger import logger


def module_relpath(modname: str) -> str:
    """``a.b`` -> ``a/b``."""
    return modname.replace(".", "/").strip("/")


def find_module_under(
    root: str | Path,
    modname: str,
    source_segment: str = DEFAULT_SOURCE_SEGMENT,
) -> str | None:
    """Locate the file defining *modname* under one root, or None."""
    base = Path(root) / source_segment
    rel = module_relpath(modname)
    if not rel:
        return None
    for template in MODULE_FILE_CANDIDATES:
        candidate = base / template.format(path=rel)
        if candidate.is_file():
            return str(candidate)
    return None


class PluginDirectoryIndex:
    """Lists plugin roots under one or more plugin directories.

    The listing is read once and then cached; call refresh() after plugins
    are installed or removed.
    """

    def __init__(
        self,
        plugin_dirs: Iterable[str],
        source_segment: str = DEFAULT_SOURCE_SEGMENT,
    ) -> None:
        self._plugin_dirs = [os.path.expanduser(d) for d in plugin_dirs]
        self._source_segment = source_segment
        self._roots: list[Path] | None = None

    @property
    def roots(self) -> list[Path]:
        if self._roots is None:
            self._roots = self._list_roots()
        return self._roots

    def refresh(self) -> None:
        self._roots = None

    def _list_roots(self) -> list[Path]:
        roots: list[Path] = []
        for plugin_dir in self._plugin_dirs:
            base = Path(plugin_dir)
            if not base.is_dir():
                logger.debug(f"Plugin directory missing, skipping: {base}")
                continue
            try:
                entries = sorted(base.iterdir())
            except OSError as exc:
                logger.warning(f"Cannot list plugin directory {base}: {exc}")
                continue
            roots.extend(p for p in entries if p.is_dir())
        return roots

    def candidate_paths(self, modname: str) -> list[str]:
        """Plugin roots that could define *modname*.

        A root qualifies when its source segment holds a directory or file
        named after the module's top-level component.
        """
        top = module_relpath(modname).split("/", 1)[0]
        if not top:
            return []
        found = []
        for root in self.roots:
            src = root / self._source_segment
            if (src / top).is_dir() or (src / f"{top}.lua").is_file():
                found.append(str(root))
        return found

    def plugin_root_for(self, name: str) -> str | None:
        for root in self.roots:
            if root.name == name:
                return str(root)
        return None


class FilesystemModuleIndex:
    """Finds module files on the runtime paths or an explicit set of roots."""

    def __init__(
        self,
        runtime_paths: Iterable[str] = (),
        source_segment: str = DEFAULT_SOURCE_SEGMENT,
    ) -> None:
        self._runtime_paths = [os.path.expanduser(p) for p in runtime_paths]
        self._source_segment = source_segment

    def find_loaded(self, modname: str) -> ModuleInfo | None:
        return self.find_in(modname, self._runtime_paths)

    def find_in(self, modname: str, paths: Sequence[str]) -> ModuleInfo | None:
        for root in paths:
            modpath = find_module_under(root, modname, self._source_segment)
            if modpath is not None:
                return ModuleInfo(modname=modname, modpath=modpath)
        return None
