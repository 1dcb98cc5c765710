"""Tests for the settings bridge between workspace libraries and clients."""

import pytest

from libsync.buffers import LocalClient
from libsync.interfaces import WorkspaceFolder
from libsync.lsp_settings import (
    CONFIGURATION_METHOD,
    DID_CHANGE_CONFIGURATION,
    LspSettingsBridge,
    deep_merge,
    folder_for,
    lookup,
    nested,
)
from libsync.workspace import WorkspaceRegistry


class TestHelpers:
    def test_deep_merge_keeps_unrelated_keys(self):
        base = {"Lua": {"diagnostics": {"globals": ["vim"]}, "workspace": {"checkThirdParty": False}}}
        merged = deep_merge(base, {"Lua": {"workspace": {"library": ["/a"]}}})
        assert merged["Lua"]["diagnostics"] == {"globals": ["vim"]}
        assert merged["Lua"]["workspace"] == {"checkThirdParty": False, "library": ["/a"]}
        assert "library" not in base["Lua"]["workspace"]

    def test_deep_merge_replaces_lists(self):
        assert deep_merge({"a": [1, 2]}, {"a": [3]}) == {"a": [3]}

    def test_nested(self):
        assert nested(["a", "b", "c"], 1) == {"a": {"b": {"c": 1}}}

    def test_lookup(self):
        settings = {"Lua": {"workspace": {"library": ["/a"]}}}
        assert lookup(settings, "Lua.workspace") == {"library": ["/a"]}
        assert lookup(settings, "Lua.missing") is None
        assert lookup(settings, None) is settings

    def test_folder_for_picks_longest_root(self):
        folders = [WorkspaceFolder("outer", "/work"), WorkspaceFolder("inner", "/work/sub")]
        assert folder_for(folders, "file:///work/sub/init.lua").name == "inner"
        assert folder_for(folders, "/work/other.lua").name == "outer"

    def test_folder_for_falls_back_to_first(self):
        folders = [WorkspaceFolder("a", "/a"), WorkspaceFolder("b", "/b")]
        assert folder_for(folders, "/elsewhere/x.lua").name == "a"
        assert folder_for(folders, None).name == "a"
        assert folder_for([], "/a") is None


@pytest.fixture
def workspaces():
    registry = WorkspaceRegistry()
    registry.global_library().add("/runtime/lua")
    return registry


@pytest.fixture
def bridge(workspaces):
    return LspSettingsBridge(workspaces)


@pytest.fixture
def multi_root_client(workspaces):
    client = LocalClient(
        id=1,
        name="lua_ls",
        workspace_folders=[WorkspaceFolder("/a", "/a"), WorkspaceFolder("/b", "/b")],
        settings={"Lua": {"runtime": {"version": "LuaJIT"}}},
    )
    workspaces.get(1, "/a").add("/plugins/foo/lua")
    workspaces.get(1, "/b").add("/plugins/bar/lua")
    return client


class TestLspSettingsBridge:
    def test_update_writes_first_folder_library(self, bridge, multi_root_client):
        bridge.update(multi_root_client)
        lua = multi_root_client.settings["Lua"]
        assert lua["workspace"]["library"] == ["/runtime/lua", "/plugins/foo/lua"]
        assert lua["runtime"] == {"version": "LuaJIT"}

    def test_update_notifies(self, bridge, multi_root_client):
        bridge.update(multi_root_client)
        method, params = multi_root_client.notifications[-1]
        assert method == DID_CHANGE_CONFIGURATION
        assert params == {"settings": multi_root_client.settings}

    def test_attach_is_idempotent(self, bridge, multi_root_client):
        assert bridge.attach(multi_root_client) is True
        handler = multi_root_client.handlers[CONFIGURATION_METHOD]
        assert bridge.attach(multi_root_client) is False
        assert multi_root_client.handlers[CONFIGURATION_METHOD] is handler

    def test_configuration_handler_answers_per_folder(self, bridge, multi_root_client):
        bridge.attach(multi_root_client)
        handler = multi_root_client.handlers[CONFIGURATION_METHOD]
        result = handler(
            {
                "items": [
                    {"scopeUri": "file:///b/init.lua", "section": "Lua.workspace"},
                    {"scopeUri": "file:///a/init.lua", "section": "Lua.workspace.library"},
                    {"section": "Lua.runtime"},
                ]
            }
        )
        assert result[0] == {"library": ["/runtime/lua", "/plugins/bar/lua"]}
        assert result[1] == ["/runtime/lua", "/plugins/foo/lua"]
        assert result[2] == {"version": "LuaJIT"}

    def test_custom_setting_key(self, workspaces):
        bridge = LspSettingsBridge(workspaces, "luau.libraries")
        client = LocalClient(id=2, name="luau", workspace_folders=[WorkspaceFolder("/w", "/w")])
        bridge.update(client)
        assert client.settings == {"luau": {"libraries": ["/runtime/lua"]}}

    def test_folderless_client_gets_global_library(self, bridge):
        client = LocalClient(id=3, name="lua_ls")
        bridge.update(client)
        assert client.settings["Lua"]["workspace"]["library"] == ["/runtime/lua"]

    def test_folderless_client_merges_its_libraries(self, bridge, workspaces):
        client = LocalClient(id=3, name="lua_ls")
        workspaces.get(3, "/scratch").add("/plugins/foo/lua")
        workspaces.get(3, "/notes").add("/plugins/foo/lua")
        workspaces.get(3, "/notes").add("/plugins/bar/lua")
        workspaces.get(4, "/other").add("/plugins/other/lua")

        bridge.update(client)
        expected = ["/runtime/lua", "/plugins/foo/lua", "/plugins/bar/lua"]
        assert client.settings["Lua"]["workspace"]["library"] == expected

        bridge.attach(client)
        handler = client.handlers[CONFIGURATION_METHOD]
        result = handler({"items": [{"scopeUri": "file:///scratch/x.lua", "section": "Lua.workspace.library"}]})
        assert result == [expected]
