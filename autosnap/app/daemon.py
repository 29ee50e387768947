"""Background watcher lifecycle.

`autosnap start` spawns `autosnap watch` detached from the terminal and
records its PID in `.auto-snap/watcher.pid`; `autosnap stop` signals it.
The watcher itself drains in-flight work on SIGINT/SIGTERM.
"""

from __future__ import annotations

import os
import signal
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

from ..utils.env import get_autosnap_dir, get_pid_file


LOG_FILE_NAME = "watcher.log"


@dataclass(frozen=True, slots=True)
class DaemonResult:
    success: bool
    pid: int | None = None
    already_running: bool = False
    error: str | None = None


def read_pid(project_root: Path) -> int | None:
    try:
        return int(get_pid_file(project_root).read_text(encoding="utf-8").strip())
    except (OSError, ValueError):
        return None


def is_process_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists, owned by someone else
        return True
    except OSError:
        return False
    return True


def running_pid(project_root: Path) -> int | None:
    """PID of a live background watcher, cleaning up a stale PID file."""
    pid = read_pid(project_root)
    if pid is None:
        return None
    if is_process_alive(pid):
        return pid
    get_pid_file(project_root).unlink(missing_ok=True)
    return None


def start_background(project_root: Path) -> DaemonResult:
    """Spawn a detached watcher for the project."""
    pid = running_pid(project_root)
    if pid is not None:
        return DaemonResult(success=True, pid=pid, already_running=True)

    autosnap_dir = get_autosnap_dir(project_root)
    autosnap_dir.mkdir(parents=True, exist_ok=True)

    env = dict(os.environ)
    env["AUTOSNAP_PROJECT_ROOT"] = str(project_root)

    try:
        with open(autosnap_dir / LOG_FILE_NAME, "ab") as log:
            child = subprocess.Popen(
                [sys.executable, "-m", "autosnap", "watch"],
                cwd=str(project_root),
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=log,
                stderr=log,
                start_new_session=True,
            )
    except OSError as e:
        return DaemonResult(success=False, error=str(e))

    get_pid_file(project_root).write_text(str(child.pid), encoding="utf-8")
    return DaemonResult(success=True, pid=child.pid)


def stop_background(project_root: Path) -> DaemonResult:
    """Ask the background watcher to stop and forget its PID."""
    pid_file = get_pid_file(project_root)
    pid = read_pid(project_root)
    if pid is None:
        pid_file.unlink(missing_ok=True)
        return DaemonResult(success=False, error="Watcher is not running")

    try:
        os.kill(pid, signal.SIGINT)
    except OSError as e:
        return DaemonResult(success=False, pid=pid, error=f"Failed to stop watcher ({e})")
    finally:
        pid_file.unlink(missing_ok=True)

    return DaemonResult(success=True, pid=pid)
