"""Module-reference scanning for buffer line ranges.

Scanning is textual on purpose: each line is matched against a small set of
patterns for a module-reference call with a single quoted literal argument.
Nothing is parsed, so the scanner can run on every keystroke-sized edit.
"""

from __future__ import annotations

import re
from typing import Callable

from libsync.interfaces import BufferSource
from libsync.resolver import ModuleResolver
from libsync.utils.logger import logger
from libsync.workspace import WorkspaceLibrary

# require("a.b"), require 'a.b', require"a.b", require("a/b")
_REQUIRE_RE = re.compile(r"""\brequire\s*\(?\s*(['"])([^'"\s]+)\1""")
# ---@module "a.b"
_MODULE_ANNOTATION_RE = re.compile(r"""---\s*@module\s+(['"])([^'"\s]+)\1""")

MODULE_PATTERNS: tuple[re.Pattern[str], ...] = (_REQUIRE_RE, _MODULE_ANNOTATION_RE)


def extract_module(line: str) -> str | None:
    """Extract the module name referenced on *line*, if any.

    Slash separators are normalized to dots. Only the first reference on a
    line is returned.
    """
    for pattern in MODULE_PATTERNS:
        match = pattern.search(line)
        if match:
            return match.group(2).replace("/", ".")
    return None


class BufferScanner:
    """Scans buffer line ranges and feeds resolved roots into libraries.

    Args:
        buffers: Source of buffer text.
        resolver: Module resolver (its cache absorbs repeated names).
        library_for: Returns the WorkspaceLibrary owning a buffer.
        on_change: Called whenever an addition grows a library.
    """

    def __init__(
        self,
        buffers: BufferSource,
        resolver: ModuleResolver,
        library_for: Callable[[int], WorkspaceLibrary],
        on_change: Callable[[], None],
    ) -> None:
        self._buffers = buffers
        self._resolver = resolver
        self._library_for = library_for
        self._on_change = on_change

    def scan(self, buffer_id: int, first: int, last: int) -> list[str]:
        """Scan lines ``[first, last)`` of a buffer.

        Returns:
            The module names found, in line order.
        """
        lines = self._buffers.get_lines(buffer_id, first, last)
        found: list[str] = []
        for line in lines:
            modname = extract_module(line)
            if modname is None:
                continue
            found.append(modname)
            self.on_module(buffer_id, modname)
        if found:
            logger.trace(f"Buffer {buffer_id} [{first}, {last}): {found}")
        return found

    def on_module(self, buffer_id: int, modname: str) -> bool:
        """Resolve one referenced module and record its root.

        Returns:
            True if the buffer's library grew.
        """
        path = self._resolver.resolve(modname)
        if path is None:
            return False
        if self._library_for(buffer_id).add(path):
            self._on_change()
            return True
        return False
