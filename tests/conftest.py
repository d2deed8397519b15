from __future__ import annotations

from pathlib import Path
import fnmatch

import pytest


_INTEGRATION_PATTERNS = [
    "*/tests/test_command_checks.py",
]


def _is_integration_path(path: Path) -> bool:
    as_posix = path.as_posix()
    return any(fnmatch.fnmatch(as_posix, pattern) for pattern in _INTEGRATION_PATTERNS)


def pytest_collection_modifyitems(config, items) -> None:
    for item in items:
        if _is_integration_path(Path(str(item.fspath))):
            item.add_marker(
                pytest.mark.integration(
                    reason="Spawns real subprocesses (opt-in via -m integration)."
                )
            )


@pytest.fixture(autouse=True)
def isolated_state(monkeypatch, tmp_path):
    """Keep log files and env lookups away from the real user state."""
    monkeypatch.setenv("REPO_STATUS_STATE_DIR", str(tmp_path / "state"))
    for key in (
        "REPO_STATUS_ROOT",
        "REPO_STATUS_MANIFEST",
        "REPO_STATUS_REPORT_DIR",
        "REPO_STATUS_FORMATS",
        "REPO_STATUS_THRESHOLD",
        "REPO_STATUS_COMMAND_TIMEOUT",
        "REPO_STATUS_HTTP_TIMEOUT",
        "REPO_STATUS_WATCH_INTERVAL",
        "STATE_DIR",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def project(tmp_path):
    """A small project tree to run checks against."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "README.md").write_text("# Demo\n\nSome words about the demo project.\n")
    (root / "src").mkdir()
    (root / "src" / "app.py").write_text("import asyncio\n\nasync def main():\n    await asyncio.sleep(0)\n")
    (root / "src" / "cache.py").write_text("CACHE = {}\n# cache helpers\n")
    (root / "tests").mkdir()
    (root / "tests" / "test_app.py").write_text("def test_ok():\n    assert True\n")
    (root / "TODO.md").write_text(
        "# Tasks\n"
        "- [x] scaffold project\n"
        "- [x] add README\n"
        "- [ ] write docs\n"
        "* [X] set up CI\n"
    )
    return root
