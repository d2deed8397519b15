"""Declarative check manifests.

A manifest is a YAML (or JSON) document holding an optional project name and
readiness threshold plus the ordered list of checks to run::

    project: my-app
    threshold: 80
    checks:
      - id: readme
        kind: file_exists
        path: README.md
        category: documentation
        severity: warning

Every key on a check that is not one of the common fields is passed to the
check runner as a parameter.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .exceptions import ManifestError

SEVERITIES = ("error", "warning", "info")

# kind -> parameter groups; each group needs at least one of its keys present
REQUIRED_PARAMS: dict[str, tuple[tuple[str, ...], ...]] = {
    "file_exists": (("path",),),
    "dir_exists": (("path",),),
    "glob_count": (("pattern",),),
    "regex_count": (("pattern",), ("path", "paths")),
    "task_progress": (("path",),),
    "command": (("command",),),
    "tool": (("name",),),
    "http": (("url",),),
    "env_var": (("name",),),
}

COMMON_FIELDS = {
    "id",
    "name",
    "kind",
    "category",
    "severity",
    "enabled",
    "platforms",
    "recommendation",
}

_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


@dataclass
class CheckSpec:
    """A single declared check."""

    id: str
    kind: str
    name: str
    category: str = "general"
    severity: str = "error"
    enabled: bool = True
    platforms: list[str] = field(default_factory=list)
    recommendation: Optional[str] = None
    params: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "category": self.category,
            "severity": self.severity,
        }
        if not self.enabled:
            payload["enabled"] = False
        if self.platforms:
            payload["platforms"] = list(self.platforms)
        if self.recommendation:
            payload["recommendation"] = self.recommendation
        payload.update(self.params)
        return payload


@dataclass
class Manifest:
    """A parsed manifest."""

    checks: list[CheckSpec]
    project: Optional[str] = None
    threshold: Optional[float] = None
    source: Optional[Path] = None

    def get(self, check_id: str) -> CheckSpec:
        for spec in self.checks:
            if spec.id == check_id:
                return spec
        raise KeyError(f"Check '{check_id}' not found")


def _parse_threshold(value: Any, source: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ManifestError("threshold must be a number", source)
    try:
        threshold = float(value)
    except (TypeError, ValueError):
        raise ManifestError(f"threshold must be a number, got {value!r}", source)
    if not 0 <= threshold <= 100:
        raise ManifestError(f"threshold must be between 0 and 100, got {threshold:g}", source)
    return threshold


def _parse_platforms(value: Any, where: str, source: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(p, str) and p.strip() for p in value):
        raise ManifestError(f"{where}: platforms must be a string or list of strings", source)
    return [p.strip().lower() for p in value]


def _parse_check(index: int, raw: Any, source: str) -> CheckSpec:
    where = f"checks[{index}]"
    if not isinstance(raw, Mapping):
        raise ManifestError(f"{where} must be a mapping", source)

    kind = raw.get("kind")
    if not isinstance(kind, str) or not kind.strip():
        raise ManifestError(f"{where}: 'kind' is required", source)
    kind = kind.strip().lower()
    if kind not in REQUIRED_PARAMS:
        raise ManifestError(
            f"{where}: unknown kind '{kind}' "
            f"(expected one of: {', '.join(sorted(REQUIRED_PARAMS))})",
            source,
        )

    check_id = raw.get("id")
    if check_id is None:
        check_id = f"{kind}-{index + 1}"
    check_id = str(check_id).strip()
    if not _ID_PATTERN.match(check_id):
        raise ManifestError(f"{where}: invalid id {check_id!r}", source)
    where = f"check '{check_id}'"

    severity = str(raw.get("severity", "error")).strip().lower()
    if severity not in SEVERITIES:
        raise ManifestError(
            f"{where}: severity must be one of {', '.join(SEVERITIES)}, got {severity!r}",
            source,
        )

    enabled = raw.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ManifestError(f"{where}: enabled must be true or false", source)

    params = {key: value for key, value in raw.items() if key not in COMMON_FIELDS}
    # tool and env_var checks use `name` as their target as well as their label
    if "name" in REQUIRED_PARAMS[kind][0] and "name" in raw:
        params["name"] = raw["name"]
    for group in REQUIRED_PARAMS[kind]:
        if not any(params.get(key) not in (None, "", []) for key in group):
            raise ManifestError(
                f"{where}: {kind} checks require '{' or '.join(group)}'", source
            )

    recommendation = raw.get("recommendation")
    name = raw.get("name") or check_id
    category = raw.get("category") or "general"

    return CheckSpec(
        id=check_id,
        kind=kind,
        name=str(name),
        category=str(category).strip().lower(),
        severity=severity,
        enabled=enabled,
        platforms=_parse_platforms(raw.get("platforms"), where, source),
        recommendation=str(recommendation) if recommendation else None,
        params=params,
    )


def parse_manifest(data: Any, source: str = "<manifest>") -> Manifest:
    """Validate an already-decoded manifest document."""
    if not isinstance(data, Mapping):
        raise ManifestError("manifest must be a mapping at the top level", source)

    raw_checks = data.get("checks")
    if not isinstance(raw_checks, list) or not raw_checks:
        raise ManifestError("'checks' must be a non-empty list", source)

    checks: list[CheckSpec] = []
    seen: set[str] = set()
    for index, raw in enumerate(raw_checks):
        spec = _parse_check(index, raw, source)
        if spec.id in seen:
            raise ManifestError(f"duplicate check id '{spec.id}'", source)
        seen.add(spec.id)
        checks.append(spec)

    project = data.get("project")
    return Manifest(
        checks=checks,
        project=str(project) if project else None,
        threshold=_parse_threshold(data.get("threshold"), source),
    )


def load_manifest(path: Path) -> Manifest:
    """Read and validate a manifest file."""
    path = Path(path)
    source = str(path)
    if not path.exists():
        raise ManifestError("manifest file not found", source)
    if not path.is_file():
        raise ManifestError("manifest path is not a file", source)

    try:
        text = path.read_text(encoding="utf-8")
    except (UnicodeDecodeError, OSError) as exc:
        raise ManifestError(f"could not read manifest: {exc}", source) from exc

    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ManifestError(f"could not parse manifest: {exc}", source) from exc

    manifest = parse_manifest(data, source)
    manifest.source = path
    return manifest


STARTER_MANIFEST = """\
# repo-status check manifest
#
# kinds: file_exists, dir_exists, glob_count, regex_count, task_progress,
#        command, tool, http, env_var
# severity: error (FAIL, exit 1) | warning | info (WARN, exit 2)
project: {project}
threshold: 80
checks:
  - id: readme
    kind: file_exists
    path: README.md
    category: documentation
    severity: warning
    recommendation: Add a README describing setup and usage.

  - id: tests-dir
    kind: dir_exists
    path: tests
    category: testing

  - id: test-files
    kind: glob_count
    pattern: "tests/**/test_*.py"
    min: 1
    category: testing
    severity: warning

  - id: todo-progress
    kind: task_progress
    path: TODO.md
    min_percent: 50
    category: planning
    severity: info

  - id: git
    kind: tool
    name: git
    category: tooling

  - id: git-clean
    kind: command
    command: git status --porcelain
    output_pattern: "^$"
    category: tooling
    severity: info
"""


def write_starter_manifest(path: Path, project: str, force: bool = False) -> Path:
    """Write a starter manifest; refuses to overwrite unless ``force``."""
    path = Path(path)
    if path.exists() and not force:
        raise ManifestError("manifest already exists (use --force to overwrite)", str(path))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(STARTER_MANIFEST.format(project=project), encoding="utf-8")
    return path
