"""In-memory buffers and a local stand-in language client.

MemoryBufferSource implements the BufferSource protocol for hosts without
an editor (the CLI) and for tests: edits made with set_lines() are reported
to subscribers as CHANGED events, exactly like an editor's on-lines hook.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from libsync.interfaces import BufferEvent, EventKind, EventSink, WorkspaceFolder


@dataclass
class MemoryBuffer:
    buffer_id: int
    lines: list[str]
    path: str | None = None


class MemoryBufferSource:
    """BufferSource over in-memory line lists."""

    def __init__(self) -> None:
        self._buffers: dict[int, MemoryBuffer] = {}
        self._subscribers: dict[int, tuple[int, EventSink]] = {}
        self._ids = itertools.count(1)
        self._handles = itertools.count(1)

    def create(self, lines: list[str] | str, path: str | None = None) -> int:
        """Create a buffer and return its id."""
        if isinstance(lines, str):
            lines = lines.splitlines()
        buffer_id = next(self._ids)
        self._buffers[buffer_id] = MemoryBuffer(buffer_id, list(lines), path)
        return buffer_id

    def open_file(self, path: str | Path) -> int:
        path = Path(path)
        return self.create(path.read_text(encoding="utf-8", errors="replace"), str(path.resolve()))

    def get_lines(self, buffer_id: int, first: int, last: int) -> list[str]:
        return self._buffers[buffer_id].lines[first:last]

    def line_count(self, buffer_id: int) -> int:
        return len(self._buffers[buffer_id].lines)

    def buffer_path(self, buffer_id: int) -> str | None:
        return self._buffers[buffer_id].path

    def subscribe(self, buffer_id: int, sink: EventSink) -> int:
        handle = next(self._handles)
        self._subscribers[handle] = (buffer_id, sink)
        return handle

    def unsubscribe(self, handle: Any) -> None:
        self._subscribers.pop(handle, None)

    @property
    def subscription_count(self) -> int:
        return len(self._subscribers)

    def _emit(self, event: BufferEvent) -> None:
        for buffer_id, sink in list(self._subscribers.values()):
            if buffer_id == event.buffer_id:
                sink(event)

    def set_lines(self, buffer_id: int, first: int, last: int, replacement: list[str]) -> None:
        """Replace lines ``[first, last)`` and report the changed range."""
        buf = self._buffers[buffer_id]
        buf.lines[first:last] = replacement
        self._emit(BufferEvent(EventKind.CHANGED, buffer_id, first, first + len(replacement)))

    def reload(self, buffer_id: int, lines: list[str]) -> None:
        self._buffers[buffer_id].lines = list(lines)
        self._emit(BufferEvent(EventKind.RELOADED, buffer_id))

    def close(self, buffer_id: int) -> None:
        """Delete a buffer, sending DETACHED to its subscribers."""
        self._emit(BufferEvent(EventKind.DETACHED, buffer_id))
        # Subscribers that did not unsubscribe on DETACHED are dropped here
        for handle, (bid, _) in list(self._subscribers.items()):
            if bid == buffer_id:
                del self._subscribers[handle]
        del self._buffers[buffer_id]


@dataclass
class LocalClient:
    """A LanguageClient that records notifications instead of sending them."""

    id: int
    name: str
    workspace_folders: list[WorkspaceFolder] = field(default_factory=list)
    attached_buffers: list[int] = field(default_factory=list)
    settings: dict[str, Any] = field(default_factory=dict)
    handlers: dict[str, Callable[..., Any]] = field(default_factory=dict)
    notifications: list[tuple[str, Any]] = field(default_factory=list)

    def notify(self, method: str, params: Any) -> None:
        self.notifications.append((method, params))


@dataclass
class StaticClientRegistry:
    """A ClientRegistry over a fixed, mutable list of clients."""

    clients: list[Any] = field(default_factory=list)

    def list_clients(self, name: str) -> list[Any]:
        return [c for c in self.clients if c.name == name]
