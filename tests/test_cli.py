"""Tests for the autosnap command line."""

import dataclasses
import json
import time

import pytest

from autosnap.app import cli, daemon
from autosnap.core.controller import SnapController
from autosnap.utils.env import get_pid_file


@pytest.fixture
def run(project, monkeypatch, capsys):
    """Run the CLI against the test project, returning (code, stdout, stderr)."""
    monkeypatch.setenv("AUTOSNAP_PROJECT_ROOT", str(project))
    monkeypatch.setattr(cli, "configure_logging", lambda debug=None: None)

    def _run(*args):
        code = cli.main(list(args))
        out, err = capsys.readouterr()
        return code, out, err

    return _run


@pytest.fixture
def initialized(project, run):
    (project / "app.py").write_text("print('hello')\n")
    (project / "notes.md").write_text("# Notes\n")
    code, _, _ = run("init")
    assert code == 0
    return project


def test_no_command_prints_help(run):
    code, out, _ = run()

    assert code == 1
    assert "usage: autosnap" in out


def test_init(project, run):
    (project / "app.py").write_text("x = 1\n")

    code, out, _ = run("init")

    assert code == 0
    assert "Config created at .auto-snap/config.json" in out
    assert "Initial snapshots: 1 files (0 skipped, 0 failed)" in out

    code, out, _ = run("init")
    assert code == 0
    assert "already initialized" in out


def test_history_summary(initialized, run):
    code, out, _ = run("history")

    assert code == 0
    assert "Tracked files:" in out
    assert "app.py" in out
    assert "notes.md" in out


def test_history_for_file(initialized, run):
    code, out, _ = run("history", "app")

    assert code == 0
    assert "File: app.py" in out
    assert "ROOT (HEAD)" in out
    assert "notes.md" not in out
    assert "autosnap restore" in out


def test_history_reports_broken_branch_and_continues(project, run):
    (project / "a.txt").write_text("alpha\n")
    (project / "b.txt").write_text("beta\n")
    run("init")
    controller = SnapController(project)
    root_id = controller.store.load_chain("a.txt").current_id
    time.sleep(0.005)
    (project / "a.txt").write_text("alpha\nmore\n")
    branch = controller.store.create_version("a.txt")
    controller.store.restore("a.txt", root_id)

    chain = controller.store.load_chain("a.txt")
    chain.nodes[branch.id] = dataclasses.replace(branch, patch='{"n":99,"h":"x","o":[]}')
    controller.store.save_chain("a.txt", chain)

    code, out, err = run("history", ".txt")

    assert code == 1
    assert "File: a.txt" in out
    assert "File: b.txt" in out
    assert "Failed to read storage report for a.txt" in err


def test_history_without_snapshots(project, run):
    code, out, _ = run("history")

    assert code == 0
    assert "No snapshots found." in out


def test_restore(initialized, run):
    controller = SnapController(initialized)
    root_id = controller.store.load_chain("app.py").current_id
    time.sleep(0.005)
    (initialized / "app.py").write_text("print('changed')\nprint('more')\n")
    controller.store.create_version("app.py")

    code, out, _ = run("restore", root_id, "app")

    assert code == 0
    assert "Restored app.py" in out
    assert "Summary: 1 restored, 0 failed." in out
    assert (initialized / "app.py").read_text() == "print('hello')\n"


def test_restore_unknown_version(initialized, run):
    code, out, _ = run("restore", "nope")

    assert code == 1
    assert "Version nope not found in any matching files." in out


def test_restore_without_store(project, run):
    code, out, _ = run("restore", "abc")

    assert code == 1
    assert "No snapshots found." in out


def test_clear_with_yes(initialized, run):
    code, out, _ = run("clear", "--yes")

    assert code == 0
    assert "History cleared." in out
    assert not (initialized / ".auto-snap" / "store").exists()


def test_clear_can_be_canceled(initialized, run, monkeypatch):
    monkeypatch.setattr("builtins.input", lambda prompt: "n")

    code, out, _ = run("clear")

    assert code == 0
    assert "Canceled." in out
    assert (initialized / ".auto-snap" / "store").exists()


def test_config_prints_effective_settings(initialized, run):
    code, out, _ = run("config")

    assert code == 0
    body = out.split(":\n", 1)[1].rsplit("\n\nEdit", 1)[0]
    assert json.loads(body)["debounce"] == 10000


def test_status(initialized, run):
    code, out, _ = run("status")

    assert code == 0
    assert "Initialized: yes" in out
    assert "Tracked:     2 files" in out
    assert "Watcher:     stopped" in out


def test_start_requires_init(project, run):
    code, _, err = run("start")

    assert code == 1
    assert "autosnap init" in err


def test_stop_when_not_running(initialized, run):
    code, _, err = run("stop")

    assert code == 1
    assert "not running" in err


class TestDaemon:
    def test_stale_pid_file_is_removed(self, project, monkeypatch):
        pid_file = get_pid_file(project)
        pid_file.parent.mkdir(parents=True)
        pid_file.write_text("12345")
        monkeypatch.setattr(daemon, "is_process_alive", lambda pid: False)

        assert daemon.running_pid(project) is None
        assert not pid_file.exists()

    def test_live_pid_is_reported(self, project, monkeypatch):
        pid_file = get_pid_file(project)
        pid_file.parent.mkdir(parents=True)
        pid_file.write_text("12345\n")
        monkeypatch.setattr(daemon, "is_process_alive", lambda pid: True)

        assert daemon.running_pid(project) == 12345

    def test_garbage_pid_file(self, project):
        pid_file = get_pid_file(project)
        pid_file.parent.mkdir(parents=True)
        pid_file.write_text("not a pid")

        assert daemon.read_pid(project) is None

    def test_start_when_already_running(self, project, monkeypatch):
        monkeypatch.setattr(daemon, "running_pid", lambda root: 4242)

        result = daemon.start_background(project)

        assert result.success
        assert result.already_running
        assert result.pid == 4242

    def test_stop_signals_and_forgets(self, project, monkeypatch):
        pid_file = get_pid_file(project)
        pid_file.parent.mkdir(parents=True)
        pid_file.write_text("4242")
        sent = []
        monkeypatch.setattr(daemon.os, "kill", lambda pid, sig: sent.append((pid, sig)))

        result = daemon.stop_background(project)

        assert result.success
        assert sent == [(4242, daemon.signal.SIGINT)]
        assert not pid_file.exists()
