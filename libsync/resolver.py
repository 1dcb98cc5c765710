"""Module name to library root resolution.

Resolution is the expensive step of the sync loop (the fallback walks
plugin directories on disk), so every outcome is cached, including misses.
A cached miss is never retried for the life of the process, even if the
module is installed later.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from libsync.constants import DEFAULT_SOURCE_SEGMENT
from libsync.interfaces import ModuleIndex, ModuleInfo, PackageIndex
from libsync.utils.logger import logger
from libsync.utils.paths import normalize_path, truncate_at_segment


@dataclass(frozen=True)
class ResolutionEntry:
    """Cached outcome for one module name.

    ``resolved=False`` is a negative result: the name was looked up and not
    found. It is distinct from the name being absent from the cache.
    """

    modpath: str | None
    resolved: bool

    @classmethod
    def miss(cls) -> ResolutionEntry:
        return cls(modpath=None, resolved=False)


class ResolverCache:
    """Process-scoped resolution cache keyed by module name only.

    A module resolves to the same root in every workspace, so the cache is
    shared across clients. Entries are never evicted.
    """

    def __init__(self) -> None:
        self._entries: dict[str, ResolutionEntry] = {}
        self._hits = 0
        self._misses = 0

    def get(self, modname: str) -> ResolutionEntry | None:
        """Get the cached entry, counting the lookup as a hit or miss."""
        entry = self._entries.get(modname)
        if entry is None:
            self._misses += 1
        else:
            self._hits += 1
        return entry

    def put(self, modname: str, entry: ResolutionEntry) -> None:
        self._entries[modname] = entry

    def __contains__(self, modname: object) -> bool:
        return modname in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        """Clear all cached entries."""
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    @property
    def stats(self) -> dict[str, float]:
        """Cache statistics."""
        negative = sum(1 for e in self._entries.values() if not e.resolved)
        return {
            "entries": len(self._entries),
            "negative": negative,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / max(self._hits + self._misses, 1) * 100, 1),
        }


def library_root_for(modpath: str, source_segment: str = DEFAULT_SOURCE_SEGMENT) -> str:
    """Derive the library path for a resolved module file.

    ``/plugins/foo/lua/foo/bar.lua`` becomes ``/plugins/foo/lua``. A module
    file outside any source segment contributes its containing directory.
    """
    normalized = normalize_path(modpath)
    root = truncate_at_segment(normalized, source_segment)
    if root is not None:
        return root
    return os.path.dirname(normalized)


class ModuleResolver:
    """Resolves module names to library paths, with caching.

    Usage:
        resolver = ModuleResolver(module_index, package_index)
        path = resolver.resolve("foo.bar")  # "/plugins/foo/lua" or None
    """

    def __init__(
        self,
        module_index: ModuleIndex,
        package_index: PackageIndex,
        cache: ResolverCache | None = None,
        source_segment: str = DEFAULT_SOURCE_SEGMENT,
    ) -> None:
        self._module_index = module_index
        self._package_index = package_index
        self._cache = cache if cache is not None else ResolverCache()
        self._source_segment = source_segment

    @property
    def cache(self) -> ResolverCache:
        return self._cache

    def lookup(self, modname: str) -> ResolutionEntry:
        """Return the cached entry for *modname*, resolving it on first use."""
        entry = self._cache.get(modname)
        if entry is not None:
            return entry

        info = self._find(modname)
        if info is None:
            entry = ResolutionEntry.miss()
            logger.debug(f"Module '{modname}' not found; caching negative result")
        else:
            entry = ResolutionEntry(modpath=info.modpath, resolved=True)
            logger.debug(f"Module '{modname}' resolved to {info.modpath}")
        self._cache.put(modname, entry)
        return entry

    def resolve(self, modname: str) -> str | None:
        """Return the library path for *modname*, or None if unresolvable."""
        entry = self.lookup(modname)
        if not entry.resolved or entry.modpath is None:
            return None
        return library_root_for(entry.modpath, self._source_segment)

    def _find(self, modname: str) -> ModuleInfo | None:
        info = self._module_index.find_loaded(modname)
        if info is not None:
            return info
        paths = self._package_index.candidate_paths(modname)
        if not paths:
            return None
        return self._module_index.find_in(modname, paths)
