"""Bridge between workspace libraries and a language-server client's settings.

Two paths carry the library list to the server:

- update() writes it into ``client.settings`` and sends
  ``workspace/didChangeConfiguration`` so the server re-reads its settings.
- attach() installs a ``workspace/configuration`` handler that answers the
  server's pull requests per workspace folder, so multi-root clients get the
  library of the folder the request is scoped to.
"""

from __future__ import annotations

import copy
from typing import Any, Sequence

from libsync.constants import DEFAULT_LIBRARY_SETTING
from libsync.interfaces import LanguageClient, WorkspaceFolder
from libsync.utils.logger import logger
from libsync.utils.paths import path_contains, uri_to_path
from libsync.workspace import WorkspaceRegistry

CONFIGURATION_METHOD = "workspace/configuration"
DID_CHANGE_CONFIGURATION = "workspace/didChangeConfiguration"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *override* into a copy of *base*. Lists are replaced."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def nested(keys: Sequence[str], value: Any) -> dict[str, Any]:
    """Build ``{"a": {"b": value}}`` from ``["a", "b"]``."""
    result: Any = value
    for key in reversed(keys):
        result = {key: result}
    return result


def lookup(settings: dict[str, Any], section: str | None) -> Any:
    """Return the value at a dotted *section* of *settings*, or None."""
    if not section:
        return settings
    node: Any = settings
    for key in section.split("."):
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node


def folder_for(folders: Sequence[WorkspaceFolder], scope: str | None) -> WorkspaceFolder | None:
    """Pick the folder whose root contains *scope* (longest root wins).

    Falls back to the first folder when nothing contains the scope.
    """
    if not folders:
        return None
    if scope:
        scope_path = uri_to_path(scope)
        matches = [f for f in folders if path_contains(uri_to_path(f.root), scope_path)]
        if matches:
            return max(matches, key=lambda f: len(uri_to_path(f.root)))
    return folders[0]


class LspSettingsBridge:
    """Writes workspace libraries into client settings."""

    def __init__(
        self,
        workspaces: WorkspaceRegistry,
        library_setting: str = DEFAULT_LIBRARY_SETTING,
    ) -> None:
        self._workspaces = workspaces
        self._setting_path = library_setting.split(".")
        self._attached: set[int] = set()

    def library_for(
        self, client: LanguageClient, folder: WorkspaceFolder | None
    ) -> list[str]:
        """The library list served for *folder*.

        Without a folder, the global library is merged with every library
        recorded for the client (a folderless client has one per buffer
        directory).
        """
        if folder is not None:
            return self._workspaces.get(client.id, folder.name, root=folder.root).library()
        merged = dict.fromkeys(self._workspaces.global_library().paths)
        for library in self._workspaces.for_client(client.id):
            merged.update(dict.fromkeys(library.paths))
        return list(merged)

    def settings_for(self, client: LanguageClient, folder: WorkspaceFolder | None) -> dict[str, Any]:
        """The client's settings with *folder*'s library written in."""
        library = self.library_for(client, folder)
        return deep_merge(client.settings or {}, nested(self._setting_path, library))

    def attach(self, client: LanguageClient) -> bool:
        """Install the workspace/configuration handler once per client."""
        if client.id in self._attached:
            return False

        def on_configuration(params: dict[str, Any]) -> list[Any]:
            folders = list(client.workspace_folders or ())
            results = []
            for item in params.get("items", []):
                folder = folder_for(folders, item.get("scopeUri"))
                results.append(lookup(self.settings_for(client, folder), item.get("section")))
            return results

        client.handlers[CONFIGURATION_METHOD] = on_configuration
        self._attached.add(client.id)
        logger.debug(f"Installed {CONFIGURATION_METHOD} handler on client {client.id}")
        return True

    def update(self, client: LanguageClient) -> None:
        """Write the library into client.settings and notify the server."""
        folders = list(client.workspace_folders or ())
        client.settings = self.settings_for(client, folders[0] if folders else None)
        client.notify(DID_CHANGE_CONFIGURATION, {"settings": client.settings})
        logger.debug(f"Sent {DID_CHANGE_CONFIGURATION} to client {client.id}")
