"""Command-line diagnostics for libsync.

Runs the sync loop against files on disk without an editor:

    libsync scan init.lua plugin/foo.lua --plugin-dir ~/.local/share/nvim/lazy
    libsync resolve foo.bar telescope.builtin --plugin-dir ~/.local/share/nvim/lazy
"""

from __future__ import annotations

import json
from pathlib import Path

import click

from libsync import __version__
from libsync.buffers import LocalClient, MemoryBufferSource, StaticClientRegistry
from libsync.config import LibSyncConfig
from libsync.interfaces import WorkspaceFolder
from libsync.packages import FilesystemModuleIndex, PluginDirectoryIndex
from libsync.resolver import ModuleResolver
from libsync.scheduler import ManualTimer
from libsync.service import LibrarySyncService
from libsync.types.errors import LibSyncError
from libsync.utils.logger import configure_logging

_plugin_dir_option = click.option(
    "--plugin-dir",
    "plugin_dirs",
    multiple=True,
    type=click.Path(file_okay=False),
    help="Directory whose subdirectories are plugins (repeatable).",
)
_runtime_option = click.option(
    "--runtime",
    "runtime_paths",
    multiple=True,
    type=click.Path(file_okay=False),
    help="Root whose modules count as already loaded (repeatable).",
)


def _load_config(**overrides) -> LibSyncConfig:
    try:
        return LibSyncConfig.from_env(**overrides)
    except LibSyncError as exc:
        raise click.ClickException(exc.get_formatted_message()) from exc


@click.group(invoke_without_command=True)
@click.version_option(__version__, prog_name="libsync", message="%(prog)s v%(version)s")
@click.option("--debug", is_flag=True, help="Enable debug logging on stderr.")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """libsync - keep language-server library paths in sync with your code."""
    configure_logging("DEBUG" if debug else "WARNING")
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@_plugin_dir_option
@_runtime_option
@click.option(
    "--root",
    type=click.Path(file_okay=False),
    default=".",
    show_default=True,
    help="Workspace root the files belong to.",
)
@click.option("--ignore-markers", is_flag=True, help="Sync even if the root has a disabling marker file.")
@click.option("--json", "as_json", is_flag=True, help="Print the full sync state as JSON.")
def scan(files, plugin_dirs, runtime_paths, root, ignore_markers, as_json) -> None:
    """Scan FILES and print the library paths they need."""
    overrides: dict = {}
    if plugin_dirs:
        overrides["plugin_dirs"] = list(plugin_dirs)
    if ignore_markers:
        overrides["disabled_markers"] = []
    config = _load_config(**overrides)

    root_path = str(Path(root).resolve())
    buffers = MemoryBufferSource()
    client = LocalClient(
        id=1,
        name=config.client_name,
        workspace_folders=[WorkspaceFolder(name=root_path, root=root_path)],
    )
    client.attached_buffers = [buffers.open_file(f) for f in files]

    runtime = list(runtime_paths) or ([config.runtime] if config.runtime else [])
    service = LibrarySyncService(
        config,
        buffers,
        StaticClientRegistry([client]),
        module_index=FilesystemModuleIndex(runtime, config.source_segment),
        timer=ManualTimer(),
    )
    service.setup()
    service.reconcile_now()

    if as_json:
        click.echo(json.dumps(service.status(), indent=2))
        return

    library = service.workspaces.find(client.id, root_path)
    if library is None or not service.policy.is_enabled(root_path):
        click.echo(f"Library sync is disabled for {root_path}")
        return
    paths = library.library()
    if not paths:
        click.echo("No library paths found")
        return
    click.echo(f"Library for {root_path}:")
    for path in paths:
        click.echo(f"  {path}")


@cli.command()
@click.argument("modules", nargs=-1, required=True)
@_plugin_dir_option
@_runtime_option
def resolve(modules, plugin_dirs, runtime_paths) -> None:
    """Resolve MODULES to the library path that defines each one."""
    config = _load_config(**({"plugin_dirs": list(plugin_dirs)} if plugin_dirs else {}))
    runtime = list(runtime_paths) or ([config.runtime] if config.runtime else [])
    resolver = ModuleResolver(
        FilesystemModuleIndex(runtime, config.source_segment),
        PluginDirectoryIndex(config.plugin_dirs, config.source_segment),
        source_segment=config.source_segment,
    )
    width = max(len(m) for m in modules)
    for modname in modules:
        path = resolver.resolve(modname)
        click.echo(f"{modname.ljust(width)}  {path if path else 'unresolved'}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
