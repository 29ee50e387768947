from __future__ import annotations

import json
from pathlib import Path

import pytest

from autosnap.config import ConfigLoader, RetentionPolicy, TrackingPolicy


def _write_global_config(tmp_home: Path, data: object) -> None:
    cfg_dir = tmp_home / ".auto-snap"
    cfg_dir.mkdir(parents=True, exist_ok=True)
    (cfg_dir / "config.json").write_text(json.dumps(data, indent=2), encoding="utf-8")


def _write_project_config(project: Path, data: object) -> None:
    cfg_dir = project / ".auto-snap"
    cfg_dir.mkdir(parents=True, exist_ok=True)
    (cfg_dir / "config.json").write_text(json.dumps(data, indent=2), encoding="utf-8")


def test_defaults_without_any_config(project):
    policy = ConfigLoader(project_root=project).load()

    assert policy == TrackingPolicy()
    assert policy.debounce_seconds == 10.0
    assert policy.max_file_size_bytes == 2 * 1024 * 1024
    assert policy.retention == RetentionPolicy(days=7, max_snapshots=200)


def test_project_config_overrides_global(tmp_path, project):
    _write_global_config(tmp_path, {"debounce": 2000, "minCharChange": 50})
    _write_project_config(project, {"debounce": 500})

    policy = ConfigLoader(project_root=project).load()

    assert policy.debounce_ms == 500
    assert policy.min_char_change == 50


def test_nested_retention_is_deep_merged(tmp_path, project):
    _write_global_config(tmp_path, {"retention": {"days": 30}})
    _write_project_config(project, {"retention": {"maxSnapshots": 10}})

    policy = ConfigLoader(project_root=project).load()

    assert policy.retention == RetentionPolicy(days=30, max_snapshots=10)


def test_invalid_values_fall_back_to_defaults(project):
    _write_project_config(
        project,
        {
            "debounce": "soon",
            "minLineChange": True,
            "ignoreWhitespace": "yes",
            "similarityThreshold": 7,
            "include": 3,
        },
    )

    policy = ConfigLoader(project_root=project).load()

    assert policy.debounce_ms == 10000
    assert policy.min_line_change == 1
    assert policy.ignore_whitespace is True
    assert policy.similarity_threshold == 1.0
    assert policy.include == ("**/*",)


def test_non_object_config_is_ignored(project):
    _write_project_config(project, ["not", "an", "object"])

    assert ConfigLoader(project_root=project).load() == TrackingPolicy()


def test_unreadable_json_is_ignored(project):
    cfg_dir = project / ".auto-snap"
    cfg_dir.mkdir()
    (cfg_dir / "config.json").write_text("{broken", encoding="utf-8")

    assert ConfigLoader(project_root=project).load() == TrackingPolicy()


def test_save_default_config_only_once(project):
    loader = ConfigLoader(project_root=project)

    assert loader.save_default_config()
    written = json.loads(loader.project_config_path.read_text(encoding="utf-8"))
    assert written == TrackingPolicy().to_dict()

    _write_project_config(project, {"debounce": 1})
    assert not loader.save_default_config()
    assert loader.reload().debounce_ms == 1


def test_round_trip_through_dict():
    policy = TrackingPolicy(debounce_ms=250, include=("src/**",), exclude=())

    assert TrackingPolicy.from_dict(policy.to_dict()) == policy


@pytest.mark.parametrize(
    "rel_path,tracked",
    [
        ("app.py", True),
        ("src/deep/module.py", True),
        ("node_modules/pkg/index.js", False),
        ("dist/bundle.js", False),
        ("build/out.o", False),
        ("package-lock.json", False),
        ("web/package-lock.json", False),
        (".env", False),
        (".git/config", False),
        ("src/.cache/data", False),
        (".auto-snap/store/app.py.snap", False),
        ("src\\windows\\style.py", True),
    ],
)
def test_default_tracking_rules(rel_path, tracked):
    assert TrackingPolicy().should_track(rel_path) is tracked


def test_custom_include_and_exclude():
    policy = TrackingPolicy.from_dict({"include": ["src/**"], "exclude": ["*.tmp"]})

    assert policy.should_track("src/app.py")
    assert not policy.should_track("lib/app.py")
    assert not policy.should_track("src/scratch.tmp")
