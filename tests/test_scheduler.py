"""Tests for debounce timers and ReconcileScheduler."""

import asyncio

import pytest

from libsync.buffers import LocalClient, StaticClientRegistry
from libsync.interfaces import WorkspaceFolder
from libsync.lsp_settings import DID_CHANGE_CONFIGURATION, LspSettingsBridge
from libsync.scheduler import AsyncioDebounceTimer, ManualClock, ManualTimer, ReconcileScheduler
from libsync.workspace import WorkspaceRegistry

WINDOW = 0.1


class TestManualTimer:
    def test_fires_after_delay(self):
        clock = ManualClock()
        timer = ManualTimer(clock)
        fired = []
        timer.arm(WINDOW, lambda: fired.append(clock.now))
        assert timer.pending
        clock.advance(0.05)
        assert fired == []
        clock.advance(0.05)
        assert fired == [pytest.approx(0.1)]
        assert not timer.pending

    def test_rearm_resets_window(self):
        clock = ManualClock()
        timer = ManualTimer(clock)
        fired = []
        timer.arm(WINDOW, lambda: fired.append(1))
        clock.advance(0.08)
        timer.arm(WINDOW, lambda: fired.append(2))
        clock.advance(0.08)
        assert fired == []
        clock.advance(0.05)
        assert fired == [2]

    def test_cancel(self):
        clock = ManualClock()
        timer = ManualTimer(clock)
        fired = []
        timer.arm(WINDOW, lambda: fired.append(1))
        timer.cancel()
        assert clock.advance(1.0) == 0
        assert fired == []


class TestAsyncioDebounceTimer:
    def test_collapses_rapid_arms(self):
        fired = []

        async def main():
            timer = AsyncioDebounceTimer()
            for i in range(5):
                timer.arm(0.02, lambda i=i: fired.append(i))
                await asyncio.sleep(0.001)
            assert timer.pending
            await asyncio.sleep(0.1)
            assert not timer.pending

        asyncio.run(main())
        assert fired == [4]

    def test_cancel(self):
        fired = []

        async def main():
            timer = AsyncioDebounceTimer()
            timer.arm(0.01, lambda: fired.append(1))
            timer.cancel()
            await asyncio.sleep(0.05)

        asyncio.run(main())
        assert fired == []


@pytest.fixture
def workspaces():
    return WorkspaceRegistry()


@pytest.fixture
def scheduler(clients, workspaces, policy, timer):
    return ReconcileScheduler(
        clients=clients,
        workspaces=workspaces,
        policy=policy,
        settings=LspSettingsBridge(workspaces),
        timer=timer,
        client_name="lua_ls",
        debounce_seconds=WINDOW,
    )


def _pushes(client):
    return [n for n in client.notifications if n[0] == DID_CHANGE_CONFIGURATION]


class TestReconcileScheduler:
    def test_debounce_collapse(self, scheduler, clock, monkeypatch):
        calls = []
        monkeypatch.setattr(scheduler, "reconcile_now", lambda: calls.append(1))
        for _ in range(25):
            scheduler.signal_change()
            clock.advance(0.01)
        assert calls == []
        clock.advance(WINDOW)
        assert calls == [1]

    def test_signals_in_separate_windows_run_separately(self, scheduler, clock):
        scheduler.signal_change()
        clock.advance(WINDOW)
        scheduler.signal_change()
        clock.advance(WINDOW)
        assert scheduler.passes == 2

    def test_first_pass_pushes_once_per_client(self, scheduler, client):
        assert scheduler.reconcile_now() == [client.id]
        assert len(_pushes(client)) == 1

    def test_no_push_without_changes(self, scheduler, client):
        scheduler.reconcile_now()
        assert scheduler.reconcile_now() == []
        assert len(_pushes(client)) == 1

    def test_push_after_growth(self, scheduler, client, workspaces):
        scheduler.reconcile_now()
        workspaces.get(client.id, "/work/project").add("/plugins/foo/lua")
        assert scheduler.reconcile_now() == [client.id]
        settings = _pushes(client)[-1][1]["settings"]
        assert settings["Lua"]["workspace"]["library"] == ["/plugins/foo/lua"]

    def test_multiple_folders_single_push(self, workspaces, policy, timer):
        client = LocalClient(
            id=7,
            name="lua_ls",
            workspace_folders=[
                WorkspaceFolder("/a", "/a"),
                WorkspaceFolder("/b", "/b"),
            ],
        )
        scheduler = ReconcileScheduler(
            StaticClientRegistry([client]), workspaces, policy,
            LspSettingsBridge(workspaces), timer, "lua_ls", WINDOW,
        )
        workspaces.get(7, "/a").add("/x")
        workspaces.get(7, "/b").add("/y")
        assert scheduler.reconcile_now() == [7]
        assert len(_pushes(client)) == 1

    def test_disabled_root_is_skipped(self, scheduler, client, policy):
        policy.denied.add("/work/project")
        assert scheduler.reconcile_now() == []
        assert client.notifications == []

    def test_other_clients_ignored(self, workspaces, policy, timer, client):
        other = LocalClient(id=2, name="pyright", workspace_folders=[WorkspaceFolder("/w", "/w")])
        scheduler = ReconcileScheduler(
            StaticClientRegistry([client, other]), workspaces, policy,
            LspSettingsBridge(workspaces), timer, "lua_ls", WINDOW,
        )
        assert scheduler.reconcile_now() == [client.id]
        assert other.notifications == []

    def test_client_without_folders_or_libraries(self, workspaces, policy, timer):
        bare = LocalClient(id=3, name="lua_ls")
        scheduler = ReconcileScheduler(
            StaticClientRegistry([bare]), workspaces, policy,
            LspSettingsBridge(workspaces), timer, "lua_ls", WINDOW,
        )
        assert scheduler.reconcile_now() == []

    def test_client_without_folders_gets_buffer_directory_libraries(self, workspaces, policy, timer):
        bare = LocalClient(id=3, name="lua_ls")
        scheduler = ReconcileScheduler(
            StaticClientRegistry([bare]), workspaces, policy,
            LspSettingsBridge(workspaces), timer, "lua_ls", WINDOW,
        )
        workspaces.get(3, "/scratch", root="/scratch").add("/plugins/foo/lua")
        workspaces.get(3, "/notes", root="/notes").add("/plugins/bar/lua")

        assert scheduler.reconcile_now() == [3]
        settings = _pushes(bare)[-1][1]["settings"]
        assert settings["Lua"]["workspace"]["library"] == ["/plugins/foo/lua", "/plugins/bar/lua"]
        assert scheduler.reconcile_now() == []

    def test_client_without_folders_skips_disabled_directory(self, workspaces, policy, timer):
        bare = LocalClient(id=3, name="lua_ls")
        scheduler = ReconcileScheduler(
            StaticClientRegistry([bare]), workspaces, policy,
            LspSettingsBridge(workspaces), timer, "lua_ls", WINDOW,
        )
        policy.denied.add("/scratch")
        workspaces.get(3, "/scratch", root="/scratch").add("/plugins/foo/lua")
        assert scheduler.reconcile_now() == []

    def test_push_failure_is_logged_and_retried(self, workspaces, policy, timer):
        class FlakyClient(LocalClient):
            fail = True

            def notify(self, method, params):
                if self.fail:
                    raise ConnectionError("server gone")
                super().notify(method, params)

        flaky = FlakyClient(id=4, name="lua_ls", workspace_folders=[WorkspaceFolder("/w", "/w")])
        healthy = LocalClient(id=5, name="lua_ls", workspace_folders=[WorkspaceFolder("/w", "/w")])
        scheduler = ReconcileScheduler(
            StaticClientRegistry([flaky, healthy]), workspaces, policy,
            LspSettingsBridge(workspaces), timer, "lua_ls", WINDOW,
        )
        assert scheduler.reconcile_now() == [5]
        flaky.fail = False
        assert scheduler.reconcile_now() == [4]

    def test_legacy_advisory_emitted_once(self, clients, workspaces, policy, timer):
        notices = []
        scheduler = ReconcileScheduler(
            clients, workspaces, policy, LspSettingsBridge(workspaces), timer,
            "lua_ls", WINDOW, conflict_probe=lambda: "neodev", notify=notices.append,
        )
        scheduler.reconcile_now()
        scheduler.reconcile_now()
        assert len(notices) == 1
        assert "neodev" in notices[0]

    def test_no_advisory_without_conflict(self, clients, workspaces, policy, timer):
        notices = []
        scheduler = ReconcileScheduler(
            clients, workspaces, policy, LspSettingsBridge(workspaces), timer,
            "lua_ls", WINDOW, conflict_probe=lambda: None, notify=notices.append,
        )
        scheduler.reconcile_now()
        assert notices == []
