"""
libsync - library path sync for language servers.

Watches edited buffers for module references, resolves each referenced
module to the source root that defines it, and keeps a language-server
client's workspace library setting up to date:
- Cached module resolution (positive and negative)
- Per-workspace accumulating library sets with change detection
- Idempotent buffer attachment with incremental rescans
- Debounced reconciliation that pushes settings only when they changed
"""

__version__ = "0.1.0"
