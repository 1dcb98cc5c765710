"""
Configuration for libsync.

LibSyncConfig holds every tunable of the sync loop. Hosts usually build it
in code; LibSyncConfig.from_env() reads the LIBSYNC_* environment variables
for standalone use and the CLI. EnabledPolicy is the default implementation
of the "is this project root enabled" collaborator.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Callable, Mapping

from libsync.constants import (
    DEFAULT_CLIENT_NAME,
    DEFAULT_CONFLICTING_MODULES,
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_DISABLED_MARKERS,
    DEFAULT_LIBRARY_SETTING,
    DEFAULT_SOURCE_SEGMENT,
)
from libsync.types.errors import ConfigurationError, ErrorCode
from libsync.utils.logger import logger
from libsync.utils.paths import uri_to_path

ENV_PREFIX = "LIBSYNC_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _split_paths(value: str) -> list[str]:
    return [p for p in value.split(os.pathsep) if p.strip()]


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(
        f"{name} must be a boolean, got {value!r}",
        field_name=name,
        code=ErrorCode.INVALID_CONFIG,
    )


@dataclass
class LibSyncConfig:
    """Settings for the library sync loop.

    Attributes:
        client_name: Only language-server clients with this name are synced.
        debounce_seconds: Quiet window before a reconcile pass runs.
        source_segment: Directory name that marks a source root.
        runtime: Path always present in the global library (the server's
            own runtime definitions), or None.
        library: Extra library paths or plugin names for the global library.
        plugin_dirs: Directories whose subdirectories are plugin roots.
        disabled_markers: Files whose presence in a root disables syncing.
        enabled: Master switch.
        enabled_predicate: Optional custom ``root -> bool`` check.
        library_setting: Dotted settings key that receives the library list.
        conflicting_modules: Modules that trigger the one-time advisory.
    """

    client_name: str = DEFAULT_CLIENT_NAME
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    source_segment: str = DEFAULT_SOURCE_SEGMENT
    runtime: str | None = None
    library: list[str] = field(default_factory=list)
    plugin_dirs: list[str] = field(default_factory=list)
    disabled_markers: list[str] = field(
        default_factory=lambda: list(DEFAULT_DISABLED_MARKERS)
    )
    enabled: bool = True
    enabled_predicate: Callable[[str], bool] | None = field(default=None, repr=False)
    library_setting: str = DEFAULT_LIBRARY_SETTING
    conflicting_modules: list[str] = field(
        default_factory=lambda: list(DEFAULT_CONFLICTING_MODULES)
    )

    def validate(self) -> LibSyncConfig:
        """Check field values. Returns self so calls can be chained.

        Raises:
            ConfigurationError: If any field holds an unusable value.
        """
        if self.debounce_seconds < 0:
            raise ConfigurationError(
                f"debounce_seconds must be >= 0, got {self.debounce_seconds}",
                field_name="debounce_seconds",
            )
        if not self.client_name.strip():
            raise ConfigurationError(
                "client_name must not be empty", field_name="client_name"
            )
        if not self.source_segment.strip() or os.sep in self.source_segment:
            raise ConfigurationError(
                f"source_segment must be a single directory name, got {self.source_segment!r}",
                field_name="source_segment",
            )
        if not all(part.strip() for part in self.library_setting.split(".")):
            raise ConfigurationError(
                f"library_setting has an empty component: {self.library_setting!r}",
                field_name="library_setting",
            )
        return self

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides,
    ) -> LibSyncConfig:
        """Build a validated config from LIBSYNC_* environment variables.

        Keyword overrides win over the environment.

        Raises:
            ConfigurationError: If a variable cannot be parsed or the
                resulting config does not validate.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}

        if name := env.get(f"{ENV_PREFIX}CLIENT_NAME"):
            values["client_name"] = name
        if raw := env.get(f"{ENV_PREFIX}DEBOUNCE_MS"):
            try:
                values["debounce_seconds"] = float(raw) / 1000.0
            except ValueError:
                raise ConfigurationError(
                    f"{ENV_PREFIX}DEBOUNCE_MS must be a number, got {raw!r}",
                    field_name="debounce_seconds",
                    code=ErrorCode.INVALID_CONFIG,
                ) from None
        if segment := env.get(f"{ENV_PREFIX}SOURCE_SEGMENT"):
            values["source_segment"] = segment
        if runtime := env.get(f"{ENV_PREFIX}RUNTIME"):
            values["runtime"] = runtime
        if library := env.get(f"{ENV_PREFIX}LIBRARY"):
            values["library"] = _split_paths(library)
        if plugin_dirs := env.get(f"{ENV_PREFIX}PLUGIN_DIRS"):
            values["plugin_dirs"] = _split_paths(plugin_dirs)
        if enabled := env.get(f"{ENV_PREFIX}ENABLED"):
            values["enabled"] = _parse_bool(f"{ENV_PREFIX}ENABLED", enabled)
        if setting := env.get(f"{ENV_PREFIX}LIBRARY_SETTING"):
            values["library_setting"] = setting

        values.update(overrides)
        config = cls(**values)  # type: ignore[arg-type]
        logger.debug(f"Loaded libsync config from environment: {config}")
        return config.validate()

    def with_overrides(self, **changes) -> LibSyncConfig:
        """Return a validated copy with *changes* applied."""
        return replace(self, **changes).validate()


class EnabledPolicy:
    """Decides whether a project root takes part in library syncing.

    A root is rejected when the config is switched off, when the custom
    predicate says no, or when one of the disabling marker files exists in
    the root. A root of None (no workspace could be determined) is accepted
    unless syncing is switched off.
    """

    def __init__(self, config: LibSyncConfig) -> None:
        self._config = config

    def is_enabled(self, root: str | None) -> bool:
        if not self._config.enabled:
            return False
        if root is None:
            return True
        root_path = uri_to_path(root)
        if self._config.enabled_predicate is not None:
            return bool(self._config.enabled_predicate(root_path))
        for marker in self._config.disabled_markers:
            if os.path.exists(os.path.join(root_path, marker)):
                logger.debug(f"Library sync disabled for {root_path}: found {marker}")
                return False
        return True
