"""Per-workspace library path sets.

Each (client id, workspace folder name) pair owns an ordered set of library
paths. A single global library holds paths seeded before any client existed
(runtime definitions, configured extra libraries) and is part of every
workspace's effective library. Sets only grow: a path a buffer once needed
stays offered for the rest of the session.
"""

from __future__ import annotations

from typing import NamedTuple

from libsync.utils.logger import logger
from libsync.utils.paths import normalize_path, uri_to_path

GLOBAL_CLIENT_ID = -1
GLOBAL_WORKSPACE_NAME = "__global__"


class WorkspaceKey(NamedTuple):
    client_id: int
    name: str


class WorkspaceLibrary:
    """Ordered, duplicate-free set of library paths for one workspace."""

    def __init__(
        self,
        key: WorkspaceKey,
        root: str | None = None,
        global_library: WorkspaceLibrary | None = None,
    ) -> None:
        self.key = key
        self.root = uri_to_path(root) if root else None
        self._global = global_library
        # dict keeps insertion order and gives O(1) membership
        self._paths: dict[str, None] = {}
        self._pushed: list[str] | None = None

    @property
    def is_global(self) -> bool:
        return self._global is None

    @property
    def paths(self) -> list[str]:
        """This workspace's own paths, in insertion order."""
        return list(self._paths)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, str):
            return False
        normalized = normalize_path(path)
        if normalized in self._paths:
            return True
        return self._global is not None and normalized in self._global

    def __len__(self) -> int:
        return len(self._paths)

    def add(self, path: str) -> bool:
        """Add *path*. Returns True iff the effective library grew."""
        normalized = normalize_path(path)
        if normalized in self:
            return False
        self._paths[normalized] = None
        logger.debug(f"Library path added to {self.key.name}: {normalized}")
        return True

    def library(self) -> list[str]:
        """Global paths followed by this workspace's own, deduplicated."""
        if self._global is None:
            return self.paths
        merged = dict.fromkeys(self._global.paths)
        merged.update(self._paths)
        return list(merged)

    def update(self) -> bool:
        """Report whether the library changed since the last update.

        Records the current library as the new baseline, so a second call
        with no intervening additions returns False.
        """
        current = self.library()
        if current == self._pushed:
            return False
        self._pushed = current
        return True

    def mark_stale(self) -> None:
        """Forget the recorded baseline so the next update() is due."""
        self._pushed = None

    def to_dict(self) -> dict:
        return {
            "client_id": self.key.client_id,
            "name": self.key.name,
            "root": self.root,
            "paths": self.paths,
        }

    def __repr__(self) -> str:
        return f"WorkspaceLibrary({self.key.client_id}, {self.key.name!r}, paths={len(self._paths)})"


class WorkspaceRegistry:
    """Owns every WorkspaceLibrary, created on first reference.

    Libraries are never destroyed; an entry for a client that has gone away
    is harmless.
    """

    def __init__(self) -> None:
        self._global = WorkspaceLibrary(
            WorkspaceKey(GLOBAL_CLIENT_ID, GLOBAL_WORKSPACE_NAME)
        )
        self._libraries: dict[WorkspaceKey, WorkspaceLibrary] = {}

    def global_library(self) -> WorkspaceLibrary:
        return self._global

    def get(self, client_id: int, name: str, root: str | None = None) -> WorkspaceLibrary:
        """Get or create the library for (client_id, name).

        A root supplied for an existing library without one is recorded.
        """
        key = WorkspaceKey(client_id, name)
        library = self._libraries.get(key)
        if library is None:
            library = WorkspaceLibrary(key, root=root, global_library=self._global)
            self._libraries[key] = library
            logger.debug(f"Workspace library created for client {client_id}: {name}")
        elif library.root is None and root:
            library.root = uri_to_path(root)
        return library

    def find(self, client_id: int, name: str) -> WorkspaceLibrary | None:
        return self._libraries.get(WorkspaceKey(client_id, name))

    def for_client(self, client_id: int) -> list[WorkspaceLibrary]:
        """Every library recorded for *client_id*, in creation order."""
        return [lib for key, lib in self._libraries.items() if key.client_id == client_id]

    def __len__(self) -> int:
        return len(self._libraries)

    def to_dict(self) -> dict:
        return {
            "global": self._global.paths,
            "workspaces": [lib.to_dict() for lib in self._libraries.values()],
        }
