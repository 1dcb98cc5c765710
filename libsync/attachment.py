"""Per-buffer attachment state and the buffer event channel.

A buffer moves Unattached -> Attached -> Unattached. Attaching runs one
full bootstrap scan and subscribes to change notifications; every
notification then arrives as a BufferEvent through a single FIFO channel.
Attaching an already-attached buffer is a no-op, which keeps host events
that fire more than once from stacking subscriptions.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any

from libsync.interfaces import BufferEvent, BufferSource, EventKind
from libsync.scanner import BufferScanner
from libsync.utils.logger import logger
from libsync.workspace import WorkspaceKey


@dataclass
class BufferAttachment:
    buffer_id: int
    subscription: Any
    workspace: WorkspaceKey | None


class AttachmentTracker:
    """Tracks which buffers are attached and routes their events to the scanner."""

    def __init__(self, buffers: BufferSource, scanner: BufferScanner) -> None:
        self._buffers = buffers
        self._scanner = scanner
        self._attached: dict[int, BufferAttachment] = {}
        self._queue: deque[BufferEvent] = deque()
        self._draining = False

    def is_attached(self, buffer_id: int) -> bool:
        return buffer_id in self._attached

    def workspace_for(self, buffer_id: int) -> WorkspaceKey | None:
        attachment = self._attached.get(buffer_id)
        return attachment.workspace if attachment else None

    def __len__(self) -> int:
        return len(self._attached)

    @property
    def attached_buffers(self) -> list[int]:
        return list(self._attached)

    def attach(self, buffer_id: int, workspace: WorkspaceKey | None = None) -> bool:
        """Attach a buffer: bootstrap scan, then subscribe.

        Returns:
            True if the buffer was newly attached, False if it already was.
        """
        if buffer_id in self._attached:
            return False
        # Record first so re-entrant attach events during the scan are no-ops
        attachment = BufferAttachment(buffer_id, subscription=None, workspace=workspace)
        self._attached[buffer_id] = attachment
        self._scan_all(buffer_id)
        attachment.subscription = self._buffers.subscribe(buffer_id, self.post)
        logger.debug(f"Attached buffer {buffer_id} to workspace {workspace}")
        return True

    def detach(self, buffer_id: int) -> bool:
        """Drop a buffer's attachment and cancel its subscription."""
        attachment = self._attached.pop(buffer_id, None)
        if attachment is None:
            return False
        if attachment.subscription is not None:
            self._buffers.unsubscribe(attachment.subscription)
        logger.debug(f"Detached buffer {buffer_id}")
        return True

    # -----------------------------------------------------------------
    # Event channel
    # -----------------------------------------------------------------

    def post(self, event: BufferEvent) -> None:
        """Queue an event and drain the channel.

        Events posted while another event is being handled run after it,
        in arrival order.
        """
        self._queue.append(event)
        if self._draining:
            return
        self._draining = True
        try:
            while self._queue:
                self._handle(self._queue.popleft())
        finally:
            self._draining = False

    def _handle(self, event: BufferEvent) -> None:
        if event.buffer_id not in self._attached:
            logger.trace(f"Ignoring {event.kind.value} for unattached buffer {event.buffer_id}")
            return
        if event.kind is EventKind.CHANGED:
            self._scanner.scan(event.buffer_id, event.first, event.last)
        elif event.kind is EventKind.RELOADED:
            self._scan_all(event.buffer_id)
        elif event.kind is EventKind.DETACHED:
            attachment = self._attached.pop(event.buffer_id)
            if attachment.subscription is not None:
                self._buffers.unsubscribe(attachment.subscription)
            logger.debug(f"Buffer {event.buffer_id} detached by host")

    def _scan_all(self, buffer_id: int) -> None:
        self._scanner.scan(buffer_id, 0, self._buffers.line_count(buffer_id))
