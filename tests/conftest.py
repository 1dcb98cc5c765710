"""
Pytest configuration and shared fixtures for libsync tests.

Collaborators are real where that is cheap (in-memory buffers, local
clients, the manual clock) and counting stubs where the tests need to see
how often the expensive resolution path runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from libsync.buffers import LocalClient, MemoryBufferSource, StaticClientRegistry
from libsync.config import LibSyncConfig
from libsync.interfaces import ModuleInfo, WorkspaceFolder
from libsync.scheduler import ManualClock, ManualTimer
from libsync.service import LibrarySyncService

DEBOUNCE = 0.1


@dataclass
class CountingModuleIndex:
    """ModuleIndex stub backed by plain dicts, counting every call."""

    loaded: dict[str, str] = field(default_factory=dict)
    on_disk: dict[str, str] = field(default_factory=dict)
    loaded_calls: int = 0
    search_calls: int = 0

    def find_loaded(self, modname: str) -> ModuleInfo | None:
        self.loaded_calls += 1
        if modname in self.loaded:
            return ModuleInfo(modname, self.loaded[modname])
        return None

    def find_in(self, modname: str, paths) -> ModuleInfo | None:
        self.search_calls += 1
        if modname in self.on_disk:
            return ModuleInfo(modname, self.on_disk[modname])
        return None


@dataclass
class CountingPackageIndex:
    """PackageIndex stub returning fixed candidates, counting calls."""

    candidates: list[str] = field(default_factory=lambda: ["/plugins/any"])
    plugins: dict[str, str] = field(default_factory=dict)
    candidate_calls: int = 0

    def candidate_paths(self, modname: str) -> list[str]:
        self.candidate_calls += 1
        return list(self.candidates)

    def plugin_root_for(self, name: str) -> str | None:
        return self.plugins.get(name)


@dataclass
class AllowAll:
    denied: set[str] = field(default_factory=set)

    def is_enabled(self, root: str | None) -> bool:
        return root not in self.denied


@pytest.fixture
def module_index() -> CountingModuleIndex:
    return CountingModuleIndex(
        loaded={"foo.bar": "/plugins/foo/lua/foo/bar.lua"},
        on_disk={"baz": "/plugins/baz/lua/baz/init.lua"},
    )


@pytest.fixture
def package_index() -> CountingPackageIndex:
    return CountingPackageIndex()


@pytest.fixture
def policy() -> AllowAll:
    return AllowAll()


@pytest.fixture
def buffers() -> MemoryBufferSource:
    return MemoryBufferSource()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def timer(clock) -> ManualTimer:
    return ManualTimer(clock)


@pytest.fixture
def client() -> LocalClient:
    """A lua_ls client with one workspace folder at /work/project."""
    return LocalClient(
        id=1,
        name="lua_ls",
        workspace_folders=[WorkspaceFolder(name="/work/project", root="/work/project")],
    )


@pytest.fixture
def clients(client) -> StaticClientRegistry:
    return StaticClientRegistry([client])


@pytest.fixture
def config() -> LibSyncConfig:
    return LibSyncConfig(debounce_seconds=DEBOUNCE)


@pytest.fixture
def service(config, buffers, clients, module_index, package_index, policy, timer):
    """A fresh service per test, wired to stubs and the manual clock."""
    return LibrarySyncService(
        config,
        buffers,
        clients,
        module_index=module_index,
        package_index=package_index,
        policy=policy,
        timer=timer,
    )


@pytest.fixture
def plugin_dir(tmp_path) -> Path:
    d = tmp_path / "plugins"
    d.mkdir()
    return d


@pytest.fixture
def make_plugin(plugin_dir):
    """Factory creating ``plugin_dir/<name>/lua/<module files>``.

    *modules* maps a relative module file (``foo/bar.lua``) to its content.
    Returns the plugin root.
    """

    def _make(name: str, modules: dict[str, str]) -> Path:
        root = plugin_dir / name
        root.mkdir(parents=True, exist_ok=True)
        for rel, content in modules.items():
            target = root / "lua" / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        return root

    return _make
