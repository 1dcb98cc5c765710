"""Debounced reconciliation of library settings.

Library changes arrive in bursts (a paste can add dozens of requires). The
scheduler collapses every burst into a single reconcile pass that runs once
the changes have been quiet for the debounce window, and a pass only pushes
settings to clients whose workspace libraries actually changed.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Any, Callable, Protocol

from libsync.interfaces import ClientRegistry, LanguageClient, Policy
from libsync.lsp_settings import LspSettingsBridge
from libsync.types.errors import ClientPushError
from libsync.utils.logger import logger
from libsync.workspace import WorkspaceLibrary, WorkspaceRegistry

LEGACY_ADVISORY = (
    "Please disable `{name}` in your config.\n"
    "This is no longer needed when library paths are synced automatically"
)

# ============================================================================
# Timers
# ============================================================================


class DebounceTimer(Protocol):
    """One re-armable delayed trigger. Arming cancels any pending trigger."""

    def arm(self, delay: float, callback: Callable[[], None]) -> None: ...

    def cancel(self) -> None: ...

    @property
    def pending(self) -> bool: ...


class AsyncioDebounceTimer:
    """DebounceTimer backed by an asyncio event loop's call_later."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None

    def arm(self, delay: float, callback: Callable[[], None]) -> None:
        self.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(delay, self._fire, callback)

    def _fire(self, callback: Callable[[], None]) -> None:
        self._handle = None
        callback()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def pending(self) -> bool:
        return self._handle is not None


class ManualClock:
    """A virtual clock. Time only moves when advance() is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = itertools.count()
        self._scheduled: list[tuple[float, int, Callable[[], None]]] = []
        self._cancelled: set[int] = set()

    def call_at(self, when: float, callback: Callable[[], None]) -> int:
        token = next(self._seq)
        heapq.heappush(self._scheduled, (when, token, callback))
        return token

    def cancel(self, token: int) -> None:
        self._cancelled.add(token)

    def advance(self, seconds: float) -> int:
        """Move time forward, running every callback that falls due.

        Returns:
            Number of callbacks run.
        """
        target = self.now + seconds
        ran = 0
        while self._scheduled and self._scheduled[0][0] <= target:
            when, token, callback = heapq.heappop(self._scheduled)
            if token in self._cancelled:
                self._cancelled.discard(token)
                continue
            self.now = when
            callback()
            ran += 1
        self.now = target
        return ran


class ManualTimer:
    """DebounceTimer driven by a ManualClock, for tests and host-pumped loops."""

    def __init__(self, clock: ManualClock | None = None) -> None:
        self.clock = clock or ManualClock()
        self._token: int | None = None
        self.arm_count = 0

    def arm(self, delay: float, callback: Callable[[], None]) -> None:
        self.cancel()
        self.arm_count += 1
        self._token = self.clock.call_at(self.clock.now + delay, lambda: self._fire(callback))

    def _fire(self, callback: Callable[[], None]) -> None:
        self._token = None
        callback()

    def cancel(self) -> None:
        if self._token is not None:
            self.clock.cancel(self._token)
            self._token = None

    @property
    def pending(self) -> bool:
        return self._token is not None


# ============================================================================
# Scheduler
# ============================================================================


class ReconcileScheduler:
    """Debounces change signals and reconciles client settings.

    Args:
        clients: Registry of running language-server clients.
        workspaces: Registry of workspace libraries.
        policy: Enabled-root policy.
        settings: Writes library lists into client settings.
        timer: The single debounce timer.
        client_name: Only clients with this name are reconciled.
        debounce_seconds: Quiet window.
        conflict_probe: Returns the name of a loaded conflicting tool, or None.
        notify: Receives the one-time advisory text. Defaults to a loguru warning.
    """

    def __init__(
        self,
        clients: ClientRegistry,
        workspaces: WorkspaceRegistry,
        policy: Policy,
        settings: LspSettingsBridge,
        timer: DebounceTimer,
        client_name: str,
        debounce_seconds: float,
        conflict_probe: Callable[[], str | None] | None = None,
        notify: Callable[[str], Any] | None = None,
    ) -> None:
        self._clients = clients
        self._workspaces = workspaces
        self._policy = policy
        self._settings = settings
        self._timer = timer
        self._client_name = client_name
        self._debounce = debounce_seconds
        self._conflict_probe = conflict_probe
        self._notify = notify or logger.warning
        self._advised = False
        self.passes = 0

    @property
    def pending(self) -> bool:
        return self._timer.pending

    def signal_change(self) -> None:
        """Arm (or re-arm) the debounce timer."""
        self._timer.arm(self._debounce, self.reconcile_now)

    def reconcile_now(self) -> list[int]:
        """Run one reconcile pass over every compatible client.

        A pending debounced pass is cancelled; this one covers it.

        Returns:
            Ids of the clients that received a settings push.
        """
        self._timer.cancel()
        self.passes += 1
        self._check_conflicts()

        pushed: list[int] = []
        for client in self._clients.list_clients(self._client_name):
            changed = self._changed_workspaces(client)
            if not changed:
                continue
            try:
                self._push(client)
            except ClientPushError as exc:
                logger.warning(exc.get_formatted_message())
                for library in changed:
                    library.mark_stale()
                continue
            pushed.append(client.id)

        if pushed:
            logger.info(f"Pushed library settings to clients {pushed}")
        return pushed

    def _changed_workspaces(self, client: LanguageClient) -> list[WorkspaceLibrary]:
        folders = list(client.workspace_folders or ())
        if folders:
            libraries = [
                self._workspaces.get(client.id, folder.name, root=folder.root)
                for folder in folders
            ]
        else:
            # Folderless clients own one library per buffer directory
            libraries = self._workspaces.for_client(client.id)

        changed = []
        for library in libraries:
            if self._policy.is_enabled(library.root) and library.update():
                changed.append(library)
        return changed

    def _push(self, client: LanguageClient) -> None:
        try:
            self._settings.attach(client)
            self._settings.update(client)
        except Exception as exc:
            raise ClientPushError(client.id, exc) from exc

    def _check_conflicts(self) -> None:
        if self._advised or self._conflict_probe is None:
            return
        name = self._conflict_probe()
        if name:
            self._advised = True
            self._notify(LEGACY_ADVISORY.format(name=name))
