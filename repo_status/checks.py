"""Check runners.

Each manifest ``kind`` maps to a runner that inspects the project tree, the
environment, a subprocess, or an HTTP endpoint and reports whether the check
passed. Runners never raise to the caller: ``run_check`` turns any failure
into a FAIL/WARN result.
"""

from __future__ import annotations

import logging
import os
import re
import shlex
import shutil
import subprocess
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

import requests

from .manifest import CheckSpec

logger = logging.getLogger(__name__)

STATUS_OK = "OK"
STATUS_WARN = "WARN"
STATUS_FAIL = "FAIL"
STATUS_SKIP = "SKIP"

DEFAULT_EXCLUDES = (".git", ".venv", "node_modules", "__pycache__")
PLACEHOLDER_VALUES = {
    "changeme",
    "change-me",
    "your_api_key_here",
    "YOUR_API_KEY_HERE",
    "YOUR_KEY_HERE",
    "TODO",
}
TASK_PATTERN = re.compile(r"^\s*[-*+]\s+\[([ xX])\]", re.MULTILINE)
_VAR_PATTERN = re.compile(r"\$\{(\w+)\}|\$(\w+)")


@dataclass
class CheckContext:
    """Everything a runner needs besides the check itself."""

    root: Path
    command_timeout: float = 60.0
    http_timeout: float = 2.0
    env: Mapping[str, str] = field(default_factory=lambda: dict(os.environ))
    platform: str = sys.platform


@dataclass
class CheckResult:
    """Result of a single check."""

    check_id: str
    name: str
    kind: str
    category: str
    severity: str
    status: str
    detail: str
    duration_ms: float = 0.0
    metrics: dict[str, Any] = field(default_factory=dict)
    recommendation: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.status == STATUS_OK

    @property
    def scored(self) -> bool:
        return self.status != STATUS_SKIP

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.check_id,
            "name": self.name,
            "kind": self.kind,
            "category": self.category,
            "severity": self.severity,
            "status": self.status,
            "detail": self.detail,
            "duration_ms": round(self.duration_ms, 1),
            "metrics": self.metrics,
            "recommendation": self.recommendation,
        }


@dataclass
class Outcome:
    passed: bool
    detail: str
    metrics: dict[str, Any] = field(default_factory=dict)


def format_bytes(size: int) -> str:
    units = ["Bytes", "KB", "MB", "GB"]
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    for unit in units:
        if value < 1024 or unit == units[-1]:
            if unit == "Bytes":
                return f"{int(value)} Bytes"
            return f"{round(value, 2):g} {unit}"
        value /= 1024
    return f"{size} Bytes"


def expand_vars(value: str, env: Mapping[str, str]) -> str:
    """Expand $VAR and ${VAR} from ``env``; unknown variables are left as-is."""

    def _sub(match: re.Match) -> str:
        key = match.group(1) or match.group(2)
        return env.get(key, match.group(0))

    return _VAR_PATTERN.sub(_sub, value)


def _resolve(ctx: CheckContext, raw: Any) -> Path:
    path = Path(expand_vars(str(raw), ctx.env)).expanduser()
    if not path.is_absolute():
        path = ctx.root / path
    return path


def _display(ctx: CheckContext, path: Path) -> str:
    try:
        return path.relative_to(ctx.root).as_posix()
    except ValueError:
        return str(path)


def _int_param(params: Mapping[str, Any], key: str, default: Optional[int]) -> Optional[int]:
    value = params.get(key, default)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"'{key}' must be an integer, got {value!r}")
    try:
        number = int(value)
    except ValueError:
        raise ValueError(f"'{key}' must be an integer, got {value!r}")
    if number < 0:
        raise ValueError(f"'{key}' must not be negative")
    return number


def _within(count: int, minimum: Optional[int], maximum: Optional[int]) -> bool:
    if minimum is not None and count < minimum:
        return False
    if maximum is not None and count > maximum:
        return False
    return True


def _describe_bounds(minimum: Optional[int], maximum: Optional[int]) -> str:
    if minimum is not None and maximum is not None:
        if minimum == maximum:
            return f"expected exactly {minimum}"
        return f"expected {minimum}-{maximum}"
    if maximum is not None:
        return f"expected <= {maximum}"
    return f"expected >= {minimum or 0}"


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return [str(value)]


def _glob_files(ctx: CheckContext, patterns: list[str], excludes: set[str]) -> list[Path]:
    files: list[Path] = []
    seen: set[Path] = set()
    for pattern in patterns:
        pattern = expand_vars(pattern, ctx.env)
        if Path(pattern).is_absolute():
            raise ValueError(f"glob patterns must be relative to the root: {pattern}")
        for match in sorted(ctx.root.glob(pattern)):
            if not match.is_file() or match in seen:
                continue
            relative_parts = match.relative_to(ctx.root).parts
            if any(part in excludes for part in relative_parts):
                continue
            seen.add(match)
            files.append(match)
    return files


def check_file_exists(spec: CheckSpec, ctx: CheckContext) -> Outcome:
    path = _resolve(ctx, spec.params["path"])
    shown = _display(ctx, path)
    min_size = _int_param(spec.params, "min_size", 0)

    if not path.exists():
        return Outcome(False, f"{shown} missing")
    if not path.is_file():
        return Outcome(False, f"{shown} is not a file")

    size = path.stat().st_size
    metrics = {"size": size}
    if size < min_size:
        return Outcome(
            False,
            f"{shown} is {format_bytes(size)} (expected >= {format_bytes(min_size)})",
            metrics,
        )
    return Outcome(True, f"{shown} found ({format_bytes(size)})", metrics)


def check_dir_exists(spec: CheckSpec, ctx: CheckContext) -> Outcome:
    path = _resolve(ctx, spec.params["path"])
    shown = _display(ctx, path)
    min_entries = _int_param(spec.params, "min_entries", 0)

    if not path.exists():
        return Outcome(False, f"{shown}/ missing")
    if not path.is_dir():
        return Outcome(False, f"{shown} is not a directory")

    entries = sum(1 for _ in path.iterdir())
    metrics = {"entries": entries}
    if entries < min_entries:
        return Outcome(
            False, f"{shown}/ has {entries} entries (expected >= {min_entries})", metrics
        )
    return Outcome(True, f"{shown}/ found ({entries} entries)", metrics)


def check_glob_count(spec: CheckSpec, ctx: CheckContext) -> Outcome:
    patterns = _as_list(spec.params["pattern"])
    excludes = set(_as_list(spec.params.get("exclude", list(DEFAULT_EXCLUDES))))
    minimum = _int_param(spec.params, "min", 1)
    maximum = _int_param(spec.params, "max", None)

    files = _glob_files(ctx, patterns, excludes)
    count = len(files)
    detail = (
        f"{count} file{'s' if count != 1 else ''} match {', '.join(patterns)} "
        f"({_describe_bounds(minimum, maximum)})"
    )
    return Outcome(_within(count, minimum, maximum), detail, {"count": count})


def check_regex_count(spec: CheckSpec, ctx: CheckContext) -> Outcome:
    flags = 0
    if spec.params.get("ignore_case"):
        flags |= re.IGNORECASE
    if spec.params.get("multiline"):
        flags |= re.MULTILINE
    pattern = re.compile(str(spec.params["pattern"]), flags)
    minimum = _int_param(spec.params, "min", 1)
    maximum = _int_param(spec.params, "max", None)

    if spec.params.get("path"):
        path = _resolve(ctx, spec.params["path"])
        if not path.is_file():
            return Outcome(False, f"{_display(ctx, path)} missing")
        files = [path]
        target = _display(ctx, path)
    else:
        patterns = _as_list(spec.params["paths"])
        excludes = set(_as_list(spec.params.get("exclude", list(DEFAULT_EXCLUDES))))
        files = _glob_files(ctx, patterns, excludes)
        target = f"{len(files)} file{'s' if len(files) != 1 else ''} ({', '.join(patterns)})"

    count = 0
    matched_files = 0
    for path in files:
        text = path.read_text(encoding="utf-8", errors="replace")
        found = sum(1 for _ in pattern.finditer(text))
        if found:
            matched_files += 1
        count += found

    detail = (
        f"{count} match{'es' if count != 1 else ''} for /{pattern.pattern}/ in {target} "
        f"({_describe_bounds(minimum, maximum)})"
    )
    metrics = {"matches": count, "files": len(files), "matched_files": matched_files}
    return Outcome(_within(count, minimum, maximum), detail, metrics)


def count_tasks(text: str) -> tuple[int, int]:
    """Count markdown checkbox tasks; returns (total, completed)."""
    total = 0
    completed = 0
    for match in TASK_PATTERN.finditer(text):
        total += 1
        if match.group(1) in ("x", "X"):
            completed += 1
    return total, completed


def check_task_progress(spec: CheckSpec, ctx: CheckContext) -> Outcome:
    path = _resolve(ctx, spec.params["path"])
    shown = _display(ctx, path)
    min_percent = float(spec.params.get("min_percent", 100))

    if not path.is_file():
        return Outcome(False, f"{shown} missing")

    total, completed = count_tasks(path.read_text(encoding="utf-8", errors="replace"))
    percentage = round(completed / total * 100, 1) if total else 0.0
    metrics = {"total": total, "completed": completed, "percentage": percentage}
    if total == 0:
        return Outcome(min_percent <= 0, f"no tasks found in {shown}", metrics)

    detail = f"{completed}/{total} tasks complete ({percentage:g}%, expected >= {min_percent:g}%)"
    return Outcome(percentage >= min_percent, detail, metrics)


def _command_argv(raw: Any, env: Mapping[str, str]) -> list[str]:
    if isinstance(raw, (list, tuple)):
        argv = [expand_vars(str(part), env) for part in raw]
    else:
        argv = shlex.split(expand_vars(str(raw), env), posix=os.name != "nt")
    if not argv:
        raise ValueError("command is empty")
    return argv


def _last_line(text: str) -> str:
    lines = [line.strip() for line in text.strip().splitlines() if line.strip()]
    return lines[-1][:200] if lines else ""


def check_command(spec: CheckSpec, ctx: CheckContext) -> Outcome:
    argv = _command_argv(spec.params["command"], ctx.env)
    expect_exit = _int_param(spec.params, "expect_exit", 0)
    timeout = float(spec.params.get("timeout", ctx.command_timeout))
    cwd = _resolve(ctx, spec.params["cwd"]) if spec.params.get("cwd") else ctx.root

    env = dict(ctx.env)
    for key, value in (spec.params.get("env") or {}).items():
        env[str(key)] = str(value)

    shown = " ".join(argv)
    logger.debug(f"Running command for {spec.id}: {shown} (cwd={cwd})")
    try:
        completed = subprocess.run(
            argv,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError:
        return Outcome(False, f"command not found: {argv[0]}")
    except PermissionError:
        return Outcome(False, f"command not executable: {argv[0]}")
    except subprocess.TimeoutExpired:
        return Outcome(False, f"`{shown}` timed out after {timeout:g}s")

    output = (completed.stdout or "") + (completed.stderr or "")
    metrics = {"exit_code": completed.returncode}
    detail = f"`{shown}` exited {completed.returncode}"
    tail = _last_line(output)
    if tail:
        detail = f"{detail}: {tail}"

    if completed.returncode != expect_exit:
        return Outcome(False, f"{detail} (expected {expect_exit})", metrics)

    output_pattern = spec.params.get("output_pattern")
    if output_pattern is not None and not re.search(str(output_pattern), output):
        return Outcome(False, f"{detail} (output did not match /{output_pattern}/)", metrics)
    return Outcome(True, detail, metrics)


def check_tool(spec: CheckSpec, ctx: CheckContext) -> Outcome:
    name = str(spec.params["name"])
    executable = shutil.which(name, path=ctx.env.get("PATH"))
    if executable is None:
        return Outcome(False, f"{name} not found on PATH")

    version_args = spec.params.get("version_args")
    if not version_args:
        return Outcome(True, f"{name} found at {executable}")

    argv = [executable, *_as_list(version_args)]
    try:
        completed = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            timeout=ctx.command_timeout,
            env=dict(ctx.env),
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        return Outcome(True, f"{name} found at {executable} (version unavailable: {exc})")

    first = ((completed.stdout or "") + (completed.stderr or "")).strip().splitlines()
    version = first[0].strip()[:120] if first else "unknown version"
    return Outcome(True, f"{name} found: {version}", {"version": version})


def check_http(spec: CheckSpec, ctx: CheckContext) -> Outcome:
    url = expand_vars(str(spec.params["url"]), ctx.env)
    expected = [int(code) for code in _as_list(spec.params.get("expect_status", [200]))]
    timeout = float(spec.params.get("timeout", ctx.http_timeout))
    headers = {
        str(key): expand_vars(str(value), ctx.env)
        for key, value in (spec.params.get("headers") or {}).items()
    }

    try:
        response = requests.get(url, headers=headers, timeout=timeout)
    except requests.exceptions.ConnectionError:
        return Outcome(False, f"{url}: connection refused")
    except requests.exceptions.Timeout:
        return Outcome(False, f"{url}: timeout after {timeout:g}s")
    except requests.exceptions.RequestException as exc:
        return Outcome(False, f"{url}: {exc}")

    metrics = {"status_code": response.status_code}
    detail = f"{url}: HTTP {response.status_code}"
    if response.status_code not in expected:
        expected_text = ", ".join(str(code) for code in expected)
        return Outcome(False, f"{detail} (expected {expected_text})", metrics)
    return Outcome(True, detail, metrics)


def check_env_var(spec: CheckSpec, ctx: CheckContext) -> Outcome:
    name = str(spec.params["name"])
    placeholders = PLACEHOLDER_VALUES | set(_as_list(spec.params.get("placeholders")))

    if name not in ctx.env:
        return Outcome(False, f"{name} is not set")
    value = ctx.env[name].strip()
    if not value:
        return Outcome(False, f"{name} is empty")
    if value in placeholders:
        return Outcome(False, f"{name} still has a placeholder value")

    pattern = spec.params.get("pattern")
    if pattern is not None and not re.fullmatch(str(pattern), value):
        return Outcome(False, f"{name} does not match /{pattern}/")
    # never echo the value, it may be a secret
    return Outcome(True, f"{name} is set")


RUNNERS: dict[str, Callable[[CheckSpec, CheckContext], Outcome]] = {
    "file_exists": check_file_exists,
    "dir_exists": check_dir_exists,
    "glob_count": check_glob_count,
    "regex_count": check_regex_count,
    "task_progress": check_task_progress,
    "command": check_command,
    "tool": check_tool,
    "http": check_http,
    "env_var": check_env_var,
}


def default_recommendation(spec: CheckSpec) -> str:
    params = spec.params
    if spec.kind == "file_exists":
        return f"Create {params['path']}"
    if spec.kind == "dir_exists":
        return f"Create directory {params['path']}/"
    if spec.kind == "glob_count":
        return f"Review files matching {', '.join(_as_list(params['pattern']))}"
    if spec.kind == "regex_count":
        return f"Review occurrences of /{params['pattern']}/"
    if spec.kind == "task_progress":
        return f"Complete outstanding tasks in {params['path']}"
    if spec.kind == "command":
        command = params["command"]
        if isinstance(command, (list, tuple)):
            command = " ".join(str(part) for part in command)
        return f"Fix `{command}` so it succeeds"
    if spec.kind == "tool":
        return f"Install {params['name']} and make sure it is on PATH"
    if spec.kind == "http":
        return f"Start the service behind {params['url']}"
    if spec.kind == "env_var":
        return f"Set {params['name']} in the environment or .env"
    return "Review and fix the check"


def _platform_matches(spec: CheckSpec, platform: str) -> bool:
    if not spec.platforms:
        return True
    return any(platform.lower().startswith(prefix) for prefix in spec.platforms)


def _result(spec: CheckSpec, status: str, detail: str, **extra: Any) -> CheckResult:
    return CheckResult(
        check_id=spec.id,
        name=spec.name,
        kind=spec.kind,
        category=spec.category,
        severity=spec.severity,
        status=status,
        detail=detail,
        **extra,
    )


def run_check(spec: CheckSpec, ctx: CheckContext) -> CheckResult:
    """Run a single check and convert its outcome into a result."""
    if not spec.enabled:
        return _result(spec, STATUS_SKIP, "disabled")
    if not _platform_matches(spec, ctx.platform):
        return _result(spec, STATUS_SKIP, f"not applicable on {ctx.platform}")

    runner = RUNNERS[spec.kind]
    started = time.perf_counter()
    try:
        outcome = runner(spec, ctx)
    except Exception as exc:
        logger.error(f"Check {spec.id} ({spec.kind}) raised: {exc}", exc_info=True)
        outcome = Outcome(False, f"error: {exc}")
    duration_ms = (time.perf_counter() - started) * 1000

    if outcome.passed:
        status = STATUS_OK
        recommendation = None
    else:
        status = STATUS_FAIL if spec.severity == "error" else STATUS_WARN
        recommendation = spec.recommendation or default_recommendation(spec)

    return _result(
        spec,
        status,
        outcome.detail,
        duration_ms=duration_ms,
        metrics=outcome.metrics,
        recommendation=recommendation,
    )
