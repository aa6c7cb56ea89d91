"""Command line interface.

Human-readable output goes to stderr. ``switch`` prints shell statements on
stdout so it can be used as ``eval "$(godotup switch 4.0.3)"``.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn, DownloadColumn, Progress, TextColumn, TimeRemainingColumn, TransferSpeedColumn
)

from . import __version__
from .config import Config, load_config
from .core.activation import ActivationManager
from .exceptions import GodotupError
from .runtime.store import InstallationStore
from .utils.environment import SHELLS, current_from_environ, render
from .utils.logger import setup_logging
from .versions import Downloader, DownloadProgress, VersionId, VersionRegistry

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="godotup",
        description="Install and switch between Godot engine versions",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("update", help="Download the latest version list")

    install = sub.add_parser("install", help="Download and install a Godot version")
    install.add_argument("version", help="Version to install, e.g. 4.0.3 or 4.1-rc2")
    install.add_argument("--mono", action="store_true", help="Use the mono (C#) build")
    install.add_argument("--force", action="store_true", help="Reinstall if already installed")

    switch = sub.add_parser("switch", help="Print environment settings for an installed version")
    switch.add_argument("version", help="Installed version, e.g. 4.0.3")
    switch.add_argument("--mono", action="store_true", help="Use the mono (C#) build")
    switch.add_argument("--shell", choices=SHELLS, default="sh", help="Output syntax (default: sh)")

    listing = sub.add_parser("list", help="List installed versions")
    listing.add_argument("--available", action="store_true",
                         help="List every version in the version list instead")

    uninstall = sub.add_parser("uninstall", help="Remove an installed version")
    uninstall.add_argument("version", help="Installed version, e.g. 4.0.3")
    uninstall.add_argument("--mono", action="store_true", help="Use the mono (C#) build")

    sub.add_parser("clean", help="Remove unfinished downloads and extraction leftovers")
    return parser.parse_args(argv)


class ProgressReporter:
    """Renders download progress events as a rich progress bar."""

    def __init__(self, description: str, console: Console):
        self.progress = Progress(
            TextColumn("{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            console=console,
            transient=True,
        )
        self.description = description
        self.task = None

    def __enter__(self):
        self.progress.start()
        self.task = self.progress.add_task(self.description, total=None)
        return self

    def __exit__(self, exc_type, exc, tb):
        self.progress.stop()

    async def __call__(self, event: DownloadProgress):
        self.progress.update(self.task, completed=event.bytes_transferred, total=event.total_size)


def _store(config: Config, registry: Optional[VersionRegistry] = None,
           downloader: Optional[Downloader] = None) -> InstallationStore:
    return InstallationStore(config.install_root, config.downloads_dir, registry, downloader)


def _downloader(config: Config) -> Downloader:
    return Downloader(chunk_size=config.chunk_size, timeout=config.request_timeout)


async def cmd_update(config: Config, args: argparse.Namespace, console: Console) -> int:
    async with _downloader(config) as downloader:
        registry = await VersionRegistry.refresh(
            config.versionlist_url, config.registry_path, downloader, config.download_proxy_url)
    console.print(f"Version list updated ({len(registry)} versions)")
    return 0


async def cmd_install(config: Config, args: argparse.Namespace, console: Console) -> int:
    registry = VersionRegistry.load(config.registry_path, config.download_proxy_url)
    version_id = VersionId.parse_spec(args.version, mono=args.mono)
    async with _downloader(config) as downloader:
        store = _store(config, registry, downloader)
        with ProgressReporter(version_id.canonical, console) as reporter:
            path = await store.install(version_id, reporter, force=args.force)
    console.print(f"Installed {version_id} to {path}")
    return 0


async def cmd_switch(config: Config, args: argparse.Namespace, console: Console) -> int:
    store = _store(config)
    manager = ActivationManager(store, config.set_godot_bin, config.set_godot4_bin,
                                current=current_from_environ(store))
    version_id = VersionId.parse_spec(args.version, store.platform, mono=args.mono)
    bindings = manager.switch(version_id)
    print(render(bindings, args.shell))
    console.print(f"Switched to {version_id}")
    return 0


async def cmd_list(config: Config, args: argparse.Namespace, console: Console) -> int:
    store = _store(config)
    current = current_from_environ(store)
    if args.available:
        registry = VersionRegistry.load(config.registry_path, config.download_proxy_url)
        versions = registry.versions(store.platform)
    else:
        versions = store.installed()
    if not versions:
        console.print("No versions found")
    for version_id in versions:
        marker = "*" if version_id == current else " "
        note = " (installed)" if args.available and store.is_installed(version_id) else ""
        console.print(f"{marker} {version_id}{note}", highlight=False, soft_wrap=True)
    return 0


async def cmd_uninstall(config: Config, args: argparse.Namespace, console: Console) -> int:
    store = _store(config)
    version_id = VersionId.parse_spec(args.version, store.platform, mono=args.mono)
    if current_from_environ(store) == version_id:
        console.print(f"[yellow]warning:[/yellow] {version_id} is the active version")
    store.remove(version_id)
    console.print(f"Removed {version_id}")
    return 0


async def cmd_clean(config: Config, args: argparse.Namespace, console: Console) -> int:
    removed = _store(config).clean()
    console.print(f"Removed {len(removed)} leftover files")
    return 0


COMMANDS = {
    "update": cmd_update,
    "install": cmd_install,
    "switch": cmd_switch,
    "list": cmd_list,
    "uninstall": cmd_uninstall,
    "clean": cmd_clean,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    console = Console(stderr=True)
    setup_logging(args.verbose, console=console)
    try:
        config = load_config()
        return asyncio.run(COMMANDS[args.command](config, args, console))
    except GodotupError as e:
        logger.debug("%s failed", args.command, exc_info=True)
        console.print(f"[red]error:[/red] {escape(str(e))}", highlight=False, soft_wrap=True)
        return 1
    except KeyboardInterrupt:
        return 130


def run():
    sys.exit(main())
