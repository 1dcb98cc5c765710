"""
Collaborator interfaces.

libsync does not own buffer storage, the language-server client, or the
package layout on disk. It talks to each of those through the protocols
below; hosts implement them, and libsync.packages / libsync.buffers ship
filesystem and in-memory defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Protocol, Sequence, runtime_checkable

# ============================================================================
# Buffer events
# ============================================================================


class EventKind(str, Enum):
    """Kinds of buffer notifications delivered to the attachment tracker."""

    CHANGED = "changed"
    RELOADED = "reloaded"
    DETACHED = "detached"


@dataclass(frozen=True)
class BufferEvent:
    """A single buffer notification.

    For CHANGED events, ``[first, last)`` is the affected line range after
    the edit. RELOADED and DETACHED ignore the range.
    """

    kind: EventKind
    buffer_id: int
    first: int = 0
    last: int = 0


EventSink = Callable[[BufferEvent], None]
"""
Callback a BufferSource invokes for every notification on a subscribed buffer.
"""


# ============================================================================
# Resolution results and LSP shapes
# ============================================================================


@dataclass(frozen=True)
class ModuleInfo:
    """A module located on disk."""

    modname: str
    modpath: str


@dataclass(frozen=True)
class WorkspaceFolder:
    """One language-server workspace folder. ``root`` may be a path or file URI."""

    name: str
    root: str


# ============================================================================
# Protocols
# ============================================================================


@runtime_checkable
class BufferSource(Protocol):
    """Access to the host editor's buffers."""

    def get_lines(self, buffer_id: int, first: int, last: int) -> Sequence[str]: ...

    def line_count(self, buffer_id: int) -> int: ...

    def buffer_path(self, buffer_id: int) -> str | None: ...

    def subscribe(self, buffer_id: int, sink: EventSink) -> Any: ...

    def unsubscribe(self, handle: Any) -> None: ...


@runtime_checkable
class LanguageClient(Protocol):
    """The slice of a language-server client that libsync reads and updates."""

    id: int
    name: str
    workspace_folders: Sequence[WorkspaceFolder]
    attached_buffers: Iterable[int]
    settings: dict[str, Any]
    handlers: dict[str, Callable[..., Any]]

    def notify(self, method: str, params: Any) -> None: ...


class ClientRegistry(Protocol):
    def list_clients(self, name: str) -> Sequence[LanguageClient]: ...


class PackageIndex(Protocol):
    """Knows where plugins live on disk."""

    def candidate_paths(self, modname: str) -> Sequence[str]: ...

    def plugin_root_for(self, name: str) -> str | None: ...


class ModuleIndex(Protocol):
    """Locates module files."""

    def find_loaded(self, modname: str) -> ModuleInfo | None: ...

    def find_in(self, modname: str, paths: Sequence[str]) -> ModuleInfo | None: ...


class Policy(Protocol):
    def is_enabled(self, root: str | None) -> bool: ...

