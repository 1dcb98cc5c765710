"""Path helpers shared by the resolver, workspace registry and service.

Normalization is best-effort: a path whose target does not exist is still
made absolute and cleaned, it is just not symlink-resolved.
"""

from __future__ import annotations

import os
from urllib.parse import unquote, urlparse


def normalize_path(path: str) -> str:
    """Return the canonical absolute form of *path*.

    Expands ``~``, makes the path absolute, collapses ``.``/``..`` and
    duplicate separators, resolves symlinks when the target exists and
    strips any trailing separator (except for the filesystem root).
    """
    expanded = os.path.expanduser(path)
    absolute = os.path.abspath(expanded)
    if os.path.exists(absolute):
        absolute = os.path.realpath(absolute)
    if len(absolute) > 1:
        absolute = absolute.rstrip(os.sep) or os.sep
    return absolute


def uri_to_path(uri_or_path: str) -> str:
    """Convert a file:// URI to a filesystem path. Plain paths pass through."""
    if uri_or_path.startswith("file://"):
        return unquote(urlparse(uri_or_path).path)
    return uri_or_path


def path_contains(root: str, path: str) -> bool:
    """True if *path* is *root* or lies underneath it."""
    root_n = normalize_path(root)
    path_n = normalize_path(path)
    if root_n == os.sep:
        return True
    return path_n == root_n or path_n.startswith(root_n + os.sep)


def truncate_at_segment(modpath: str, segment: str) -> str | None:
    """Cut *modpath* just after the first ``/<segment>/`` component.

    Returns None when the segment does not occur as a full directory
    component of the path.
    """
    marker = f"{os.sep}{segment}{os.sep}"
    idx = modpath.find(marker)
    if idx == -1:
        return None
    return modpath[: idx + len(marker) - 1]
