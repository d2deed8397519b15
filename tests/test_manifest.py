"""Tests for manifest loading and validation."""

import json

import pytest

from repo_status.exceptions import ManifestError
from repo_status.manifest import (
    load_manifest,
    parse_manifest,
    write_starter_manifest,
)


def _write(path, text):
    path.write_text(text)
    return path


class TestParseManifest:
    def test_defaults_are_filled_in(self):
        manifest = parse_manifest(
            {"checks": [{"kind": "file_exists", "path": "README.md"}]}
        )

        spec = manifest.checks[0]
        assert spec.id == "file_exists-1"
        assert spec.name == "file_exists-1"
        assert spec.category == "general"
        assert spec.severity == "error"
        assert spec.enabled is True
        assert spec.platforms == []
        assert spec.params == {"path": "README.md"}
        assert manifest.project is None
        assert manifest.threshold is None

    def test_extra_keys_become_params(self):
        manifest = parse_manifest(
            {
                "project": "demo",
                "threshold": 75,
                "checks": [
                    {
                        "id": "todo",
                        "name": "TODO progress",
                        "kind": "task_progress",
                        "path": "TODO.md",
                        "min_percent": 50,
                        "category": "Planning",
                        "severity": "INFO",
                        "platforms": "linux",
                        "recommendation": "Finish the TODO list",
                    }
                ],
            }
        )

        spec = manifest.get("todo")
        assert manifest.project == "demo"
        assert manifest.threshold == 75.0
        assert spec.name == "TODO progress"
        assert spec.category == "planning"
        assert spec.severity == "info"
        assert spec.platforms == ["linux"]
        assert spec.recommendation == "Finish the TODO list"
        assert spec.params == {"path": "TODO.md", "min_percent": 50}

    def test_regex_count_accepts_path_or_paths(self):
        manifest = parse_manifest(
            {
                "checks": [
                    {"id": "a", "kind": "regex_count", "pattern": "x", "path": "a.txt"},
                    {"id": "b", "kind": "regex_count", "pattern": "x", "paths": ["*.py"]},
                ]
            }
        )
        assert [spec.id for spec in manifest.checks] == ["a", "b"]

    @pytest.mark.parametrize(
        "data, message",
        [
            ([], "mapping"),
            ({}, "non-empty list"),
            ({"checks": []}, "non-empty list"),
            ({"checks": ["nope"]}, "must be a mapping"),
            ({"checks": [{"path": "x"}]}, "'kind' is required"),
            ({"checks": [{"kind": "teleport"}]}, "unknown kind"),
            ({"checks": [{"kind": "file_exists"}]}, "require 'path'"),
            ({"checks": [{"kind": "regex_count", "pattern": "x"}]}, "'path' or 'paths'"),
            ({"checks": [{"kind": "file_exists", "path": "a", "severity": "fatal"}]}, "severity"),
            ({"checks": [{"kind": "file_exists", "path": "a", "enabled": "yes"}]}, "enabled"),
            ({"checks": [{"kind": "file_exists", "path": "a", "id": "bad id"}]}, "invalid id"),
            ({"threshold": 150, "checks": [{"kind": "file_exists", "path": "a"}]}, "between 0 and 100"),
            ({"threshold": "lots", "checks": [{"kind": "file_exists", "path": "a"}]}, "threshold"),
        ],
    )
    def test_invalid_manifests(self, data, message):
        with pytest.raises(ManifestError) as excinfo:
            parse_manifest(data)
        assert message in str(excinfo.value)

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ManifestError, match="duplicate check id 'readme'"):
            parse_manifest(
                {
                    "checks": [
                        {"id": "readme", "kind": "file_exists", "path": "README.md"},
                        {"id": "readme", "kind": "file_exists", "path": "README.rst"},
                    ]
                }
            )

    def test_get_unknown_check(self):
        manifest = parse_manifest({"checks": [{"kind": "tool", "name": "git"}]})
        with pytest.raises(KeyError):
            manifest.get("missing")


class TestLoadManifest:
    def test_load_yaml(self, tmp_path):
        path = _write(
            tmp_path / "checks.yaml",
            "project: demo\nchecks:\n  - id: git\n    kind: tool\n    name: git\n",
        )

        manifest = load_manifest(path)
        assert manifest.project == "demo"
        assert manifest.source == path
        assert manifest.checks[0].kind == "tool"

    def test_load_json(self, tmp_path):
        path = _write(
            tmp_path / "checks.json",
            json.dumps({"checks": [{"id": "home", "kind": "env_var", "name": "HOME"}]}),
        )

        manifest = load_manifest(path)
        assert manifest.checks[0].params == {"name": "HOME"}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ManifestError, match="not found"):
            load_manifest(tmp_path / "nope.yaml")

    def test_unparsable_yaml(self, tmp_path):
        path = _write(tmp_path / "broken.yaml", "checks: [\n  - {kind: tool\n")
        with pytest.raises(ManifestError, match="could not parse"):
            load_manifest(path)

    def test_non_utf8_file(self, tmp_path):
        path = tmp_path / "binary.yaml"
        path.write_bytes(b"\xff\xfechecks: []\n")
        with pytest.raises(ManifestError, match="could not read manifest"):
            load_manifest(path)

    def test_error_message_names_the_file(self, tmp_path):
        path = _write(tmp_path / "empty.yaml", "project: x\n")
        with pytest.raises(ManifestError) as excinfo:
            load_manifest(path)
        assert str(path) in str(excinfo.value)


class TestStarterManifest:
    def test_starter_manifest_is_loadable(self, tmp_path):
        path = write_starter_manifest(tmp_path / "status-checks.yaml", "demo")

        manifest = load_manifest(path)
        assert manifest.project == "demo"
        assert manifest.threshold == 80.0
        assert {spec.kind for spec in manifest.checks} >= {"file_exists", "dir_exists", "command"}

    def test_refuses_to_overwrite(self, tmp_path):
        path = tmp_path / "status-checks.yaml"
        path.write_text("keep me")

        with pytest.raises(ManifestError, match="already exists"):
            write_starter_manifest(path, "demo")
        assert path.read_text() == "keep me"

        write_starter_manifest(path, "demo", force=True)
        assert "project: demo" in path.read_text()
