from __future__ import annotations

import pytest

from autosnap.config import TrackingPolicy
from autosnap.core.snapshot_store import SnapshotStore


@pytest.fixture(autouse=True)
def _isolate_home(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Prevent developer machine `~/.auto-snap/config.json` from influencing tests."""

    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("AUTOSNAP_DEBUG", raising=False)
    monkeypatch.delenv("AUTOSNAP_PROJECT_ROOT", raising=False)


@pytest.fixture
def project(tmp_path):
    """Create a temporary project directory."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def policy():
    return TrackingPolicy()


@pytest.fixture
def store(project, policy):
    return SnapshotStore(project, policy)
