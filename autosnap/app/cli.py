"""autosnap CLI.

Thin shell over SnapController: parse arguments, call the core, print.
"""

from __future__ import annotations

import argparse
import json
import signal
import sys
import threading
from datetime import datetime
from typing import Any

from .. import __version__
from ..core.chain import RootNode, VersionNode
from ..core.controller import SnapController
from ..core.errors import AutosnapError
from ..core.history import FileHistory
from ..utils.env import determine_project_root
from ..utils.log import configure_logging
from . import daemon


RULE_WIDE = "-" * 100
RULE_NARROW = "-" * 80


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autosnap",
        description="autosnap - automatic local version history for your files",
    )
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output",
    )

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("init", help="Initialize and snapshot every tracked file")
    subparsers.add_parser("start", help="Start the watcher in the background")
    subparsers.add_parser("stop", help="Stop the background watcher")
    subparsers.add_parser("watch", help="Run the watcher in the foreground")
    subparsers.add_parser("status", help="Show watcher and store status")
    subparsers.add_parser("config", help="Show the effective configuration")

    history = subparsers.add_parser("history", help="List tracked files or one file's versions")
    history.add_argument("pattern", nargs="?", help="Show versions of files whose path contains this")

    restore = subparsers.add_parser("restore", help="Restore files to a version id")
    restore.add_argument("version_id", help="Version id from `autosnap history <file>`")
    restore.add_argument("pattern", nargs="?", help="Only restore files whose path contains this")

    clear = subparsers.add_parser("clear", help="Delete all stored history")
    clear.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    return parser


def main(args: list[str] | None = None) -> int:
    parser = create_parser()
    parsed = parser.parse_args(args)

    configure_logging(True if parsed.debug else None)

    controller = SnapController(project_root=determine_project_root())

    if parsed.command == "init":
        return cmd_init(controller)
    if parsed.command == "start":
        return cmd_start(controller)
    if parsed.command == "stop":
        return cmd_stop(controller)
    if parsed.command == "watch":
        return cmd_watch(controller)
    if parsed.command == "status":
        return cmd_status(controller)
    if parsed.command == "config":
        return cmd_config(controller)
    if parsed.command == "history":
        return cmd_history(parsed, controller)
    if parsed.command == "restore":
        return cmd_restore(parsed, controller)
    if parsed.command == "clear":
        return cmd_clear(parsed, controller)

    parser.print_help()
    return 1


def cmd_init(controller: SnapController) -> int:
    result = controller.init()
    if not result.created:
        print("autosnap is already initialized.")
        return 0

    print("autosnap initialized. Config created at .auto-snap/config.json")
    print(f"Initial snapshots: {result.scanned} files ({result.skipped} skipped, {result.failed} failed)")
    for path, error in sorted(result.errors.items()):
        print(f"  - {path}: {error}", file=sys.stderr)
    return 0 if not result.errors else 1


def cmd_start(controller: SnapController) -> int:
    if not controller.is_initialized():
        print("Not initialized. Run `autosnap init` first.", file=sys.stderr)
        return 1

    result = daemon.start_background(controller.project_root)
    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1
    if result.already_running:
        print(f"autosnap watcher is already running (PID: {result.pid}).")
        return 0
    print(f"Watcher started (PID: {result.pid})")
    return 0


def cmd_stop(controller: SnapController) -> int:
    result = daemon.stop_background(controller.project_root)
    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1
    print("autosnap watcher stopped.")
    return 0


def cmd_watch(controller: SnapController) -> int:
    watcher = controller.create_watcher()
    done = threading.Event()

    def _request_stop(signum: int, frame: Any) -> None:
        done.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    watcher.start()
    try:
        while not done.wait(timeout=1.0):
            pass
    finally:
        watcher.stop()
    return 0


def cmd_status(controller: SnapController) -> int:
    status = controller.status()
    pid = daemon.running_pid(controller.project_root)

    print(f"Project:     {status.project_root}")
    print(f"Initialized: {'yes' if status.initialized else 'no'}")
    print(f"Store:       {status.store_dir}")
    print(f"Tracked:     {status.tracked_files} files")
    print(f"Watcher:     {f'running (PID: {pid})' if pid else 'stopped'}")
    return 0


def cmd_config(controller: SnapController) -> int:
    path = controller.config_loader.project_config_path
    print(f"Configuration ({path}):")
    print(json.dumps(controller.config_loader.load_raw(), indent=2))
    print("\nEdit this file to change settings.")
    return 0


def cmd_history(args: argparse.Namespace, controller: SnapController) -> int:
    listing = controller.history(args.pattern)
    for path, error in sorted(listing.failures.items()):
        print(f"Failed to read history for {path}: {error}", file=sys.stderr)

    if not listing.files:
        print("No matching snapshots found." if args.pattern else "No snapshots found.")
        return 0 if not listing.failures else 1

    failed = bool(listing.failures)
    if args.pattern:
        print(f'Snapshot history for "{args.pattern}":')
        for history in listing.files:
            if not _print_file_history(history, controller):
                failed = True
        newest = listing.files[0].sorted_nodes()[0]
        print(f"\nTip: restore with the version id, e.g. `autosnap restore {newest.id}`")
    else:
        _print_summary(listing.files)

    return 1 if failed else 0


def cmd_restore(args: argparse.Namespace, controller: SnapController) -> int:
    if not controller.store.store_dir.exists():
        print("No snapshots found.")
        return 1

    print(f"Restoring to version {args.version_id}...")
    summary = controller.restore(args.version_id, args.pattern)

    for path in summary.restored:
        print(f"Restored {path}")
    for path, error in sorted(summary.errors.items()):
        print(f"Failed to restore {path}: {error}", file=sys.stderr)

    if not summary.restored and not summary.errors:
        print(f"Version {args.version_id} not found in any matching files.")
        return 1

    print(f"\nSummary: {len(summary.restored)} restored, {summary.failed} failed.")
    return 0 if summary.success else 1


def cmd_clear(args: argparse.Namespace, controller: SnapController) -> int:
    if not args.yes:
        confirm = input("Delete all stored history? [y/N] ").strip().lower()
        if confirm != "y":
            print("Canceled.")
            return 0

    try:
        cleared = controller.clear()
    except OSError as e:
        print(f"Error: failed to clear history: {e}", file=sys.stderr)
        return 1

    print("History cleared." if cleared else "Nothing to clear.")
    return 0


def _format_ts(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def _format_stats(node: VersionNode) -> str:
    if not node.stats:
        return ""
    added, removed = node.stats
    parts = []
    if added:
        parts.append(f"+{added}")
    if removed:
        parts.append(f"-{removed}")
    return " ".join(parts)


def _print_file_history(history: FileHistory, controller: SnapController) -> bool:
    """Print one file's version table. Returns False if its report failed."""
    print(f"\nFile: {history.path}")
    print(RULE_WIDE)
    print(f"| {'Version':<12} | {'Parent':<12} | {'Timestamp':<20} | {'Stats':<10} | Type")
    print(RULE_WIDE)
    for node in history.sorted_nodes():
        kind = "ROOT" if isinstance(node, RootNode) else "VERSION"
        head = " (HEAD)" if node.id == history.current_id else ""
        parent = node.parent_id or "-"
        print(
            f"| {node.id:<12} | {parent:<12} | {_format_ts(node.timestamp):<20} "
            f"| {_format_stats(node):<10} | {kind}{head}"
        )
    print(RULE_WIDE)

    try:
        report = controller.storage(history.path)
    except AutosnapError as e:
        print(f"Failed to read storage report for {history.path}: {e}", file=sys.stderr)
        return False
    if report.total:
        print(f"Raw: {report.total} bytes, stored: {report.stored} bytes ({report.savings:.0%} saved)")
    return True


def _print_summary(histories: list[FileHistory]) -> None:
    print("Tracked files:")
    print('Use "autosnap history <file>" to see its versions.\n')
    print(RULE_NARROW)
    print(f"| {'File':<40} | {'Last Updated':<20} | Versions")
    print(RULE_NARROW)
    for history in histories:
        print(f"| {history.path:<40} | {_format_ts(history.last_updated):<20} | {history.version_count}")
    print(RULE_NARROW)


if __name__ == "__main__":
    sys.exit(main())
