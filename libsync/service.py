"""Top-level library sync service.

LibrarySyncService owns every piece of process-scoped state (resolver
cache, workspace registry, attachment map, debounce timer) and exposes the
entry points a host calls:

- add_library_path(): seed the global library
- on_client_attach(): a compatible language server attached to a buffer
- post_event(): forward a buffer notification
- schedule_reconcile(): request a settings reconcile

Usage:
    service = LibrarySyncService(config, buffers, clients)
    service.setup()
    service.on_client_attach(client, buffer_id)
"""

from __future__ import annotations

import os
from typing import Any, Callable

from libsync.attachment import AttachmentTracker
from libsync.config import EnabledPolicy, LibSyncConfig
from libsync.interfaces import (
    BufferEvent,
    BufferSource,
    ClientRegistry,
    LanguageClient,
    ModuleIndex,
    PackageIndex,
    Policy,
    WorkspaceFolder,
)
from libsync.lsp_settings import LspSettingsBridge, folder_for
from libsync.packages import FilesystemModuleIndex, PluginDirectoryIndex
from libsync.resolver import ModuleResolver, ResolverCache
from libsync.scanner import BufferScanner
from libsync.scheduler import AsyncioDebounceTimer, DebounceTimer, ReconcileScheduler
from libsync.utils.logger import logger
from libsync.utils.paths import uri_to_path
from libsync.workspace import WorkspaceKey, WorkspaceLibrary, WorkspaceRegistry


class LibrarySyncService:
    """Keeps language-server library settings in sync with buffer contents."""

    def __init__(
        self,
        config: LibSyncConfig,
        buffers: BufferSource,
        clients: ClientRegistry,
        module_index: ModuleIndex | None = None,
        package_index: PackageIndex | None = None,
        policy: Policy | None = None,
        timer: DebounceTimer | None = None,
        is_loaded: Callable[[str], bool] | None = None,
        notify: Callable[[str], Any] | None = None,
    ) -> None:
        self.config = config.validate()
        segment = config.source_segment

        self._buffers = buffers
        self._clients = clients
        self._packages = package_index or PluginDirectoryIndex(config.plugin_dirs, segment)
        self.policy = policy or EnabledPolicy(config)

        if module_index is None:
            runtime = [config.runtime] if config.runtime else []
            module_index = FilesystemModuleIndex(runtime, segment)

        self.cache = ResolverCache()
        self.workspaces = WorkspaceRegistry()
        self.resolver = ModuleResolver(module_index, self._packages, self.cache, segment)
        self.settings = LspSettingsBridge(self.workspaces, config.library_setting)

        conflict_probe = None
        if is_loaded is not None:
            def conflict_probe() -> str | None:
                return next((m for m in config.conflicting_modules if is_loaded(m)), None)

        self.scheduler = ReconcileScheduler(
            clients=clients,
            workspaces=self.workspaces,
            policy=self.policy,
            settings=self.settings,
            timer=timer or AsyncioDebounceTimer(),
            client_name=config.client_name,
            debounce_seconds=config.debounce_seconds,
            conflict_probe=conflict_probe,
            notify=notify,
        )
        self.scanner = BufferScanner(
            buffers, self.resolver, self.library_for_buffer, self.scheduler.signal_change
        )
        self.tracker = AttachmentTracker(buffers, self.scanner)
        self._setup_done = False

    # -----------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------

    def setup(self) -> None:
        """Seed the global library and attach to already-running clients.

        Calling setup() again is a no-op.
        """
        if self._setup_done:
            return
        self._setup_done = True

        if self.config.runtime:
            self.add_library_path(self.config.runtime)
        for lib in self.config.library:
            self.add_library_path(lib)

        for client in self._clients.list_clients(self.config.client_name):
            for buffer_id in list(client.attached_buffers or ()):
                self.on_client_attach(client, buffer_id)

        self.schedule_reconcile()
        logger.info(
            f"Library sync ready: {len(self.workspaces.global_library())} global paths, "
            f"{len(self.tracker)} buffers attached"
        )

    # -----------------------------------------------------------------
    # Entry points
    # -----------------------------------------------------------------

    def add_library_path(self, path: str) -> bool:
        """Add a path or plugin name to the global library.

        A relative path that does not exist is taken as
        ``<plugin name>/<rest>`` and resolved through the package index.
        If the result has a source segment subdirectory, that subdirectory
        is added instead.

        Returns:
            True if the global library grew.
        """
        segment = self.config.source_segment
        path = os.path.expanduser(path)
        if not os.path.isabs(path) and not os.path.exists(path):
            name, _, extra = path.replace(os.sep, "/").partition("/")
            plugin_root = self._packages.plugin_root_for(name) if name else None
            if plugin_root:
                path = os.path.join(plugin_root, extra) if extra else plugin_root
            else:
                logger.debug(f"Library '{path}' is neither a path nor a known plugin")

        stripped = path.rstrip("/" + os.sep)
        if os.path.basename(stripped) != segment and os.path.isdir(os.path.join(path, segment)):
            path = os.path.join(path, segment)

        grew = self.workspaces.global_library().add(path)
        if grew:
            logger.debug(f"Global library path added: {path}")
            self.schedule_reconcile()
        return grew

    def on_client_attach(self, client: LanguageClient, buffer_id: int) -> bool:
        """Attach a buffer that a compatible language server attached to.

        Returns:
            True if the buffer was newly attached.
        """
        if client.name != self.config.client_name:
            return False
        if self.tracker.is_attached(buffer_id):
            return False

        folder, root = self._workspace_for(client, buffer_id)
        if not self.policy.is_enabled(root):
            logger.debug(f"Not attaching buffer {buffer_id}: root {root} is disabled")
            return False

        name = folder.name if folder is not None else (root or "")
        self.workspaces.get(client.id, name, root=root)
        if not self.tracker.attach(buffer_id, WorkspaceKey(client.id, name)):
            return False
        self.schedule_reconcile()
        return True

    def post_event(self, event: BufferEvent) -> None:
        self.tracker.post(event)

    def detach(self, buffer_id: int) -> bool:
        return self.tracker.detach(buffer_id)

    def schedule_reconcile(self) -> None:
        self.scheduler.signal_change()

    def reconcile_now(self) -> list[int]:
        return self.scheduler.reconcile_now()

    # -----------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------

    def library_for_buffer(self, buffer_id: int) -> WorkspaceLibrary:
        """The library owning a buffer; the global library if unattached."""
        key = self.tracker.workspace_for(buffer_id)
        if key is None:
            return self.workspaces.global_library()
        return self.workspaces.get(key.client_id, key.name)

    def _workspace_for(
        self, client: LanguageClient, buffer_id: int
    ) -> tuple[WorkspaceFolder | None, str | None]:
        folders = list(client.workspace_folders or ())
        path = self._buffers.buffer_path(buffer_id)
        folder = folder_for(folders, path)
        if folder is not None:
            return folder, uri_to_path(folder.root)
        return None, os.path.dirname(path) if path else None

    def status(self) -> dict[str, Any]:
        """Diagnostic summary of the sync state."""
        return {
            "cache": self.cache.stats,
            "attached_buffers": self.tracker.attached_buffers,
            "reconcile_pending": self.scheduler.pending,
            "reconcile_passes": self.scheduler.passes,
            **self.workspaces.to_dict(),
        }
