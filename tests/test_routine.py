"""Tests for chaining manifests."""

from repo_status.checks import CheckContext
from repo_status.routine import run_routine


def write_manifest(path, *checks):
    lines = ["checks:"]
    for check in checks:
        lines.append(f"  - {check}")
    path.write_text("\n".join(lines) + "\n")
    return path


def test_all_steps_pass(project, tmp_path):
    first = write_manifest(tmp_path / "docs.yaml", "{kind: file_exists, path: README.md}")
    second = write_manifest(tmp_path / "tests.yaml", "{kind: dir_exists, path: tests}")

    result = run_routine([first, second], CheckContext(root=project))

    assert [step.exit_code for step in result.steps] == [0, 0]
    assert result.exit_code == 0
    assert not result.stopped_early


def test_partial_and_failure_aggregate_to_failure(project, tmp_path):
    warn = write_manifest(
        tmp_path / "warn.yaml", "{kind: file_exists, path: NOPE.md, severity: warning}"
    )
    fail = write_manifest(tmp_path / "fail.yaml", "{kind: file_exists, path: NOPE.md}")

    result = run_routine([warn, fail], CheckContext(root=project))

    assert [step.exit_code for step in result.steps] == [2, 1]
    assert result.exit_code == 1


def test_partial_does_not_stop_routine(project, tmp_path):
    warn = write_manifest(
        tmp_path / "warn.yaml", "{kind: file_exists, path: NOPE.md, severity: warning}"
    )
    ok = write_manifest(tmp_path / "ok.yaml", "{kind: file_exists, path: README.md}")

    result = run_routine([warn, ok], CheckContext(root=project), stop_on_failure=True)

    assert len(result.steps) == 2
    assert result.exit_code == 2


def test_stop_on_failure(project, tmp_path):
    fail = write_manifest(tmp_path / "fail.yaml", "{kind: file_exists, path: NOPE.md}")
    ok = write_manifest(tmp_path / "ok.yaml", "{kind: file_exists, path: README.md}")

    result = run_routine([fail, ok], CheckContext(root=project), stop_on_failure=True)

    assert len(result.steps) == 1
    assert result.stopped_early
    assert result.exit_code == 1


def test_unloadable_manifest_counts_as_failure(project, tmp_path):
    ok = write_manifest(tmp_path / "ok.yaml", "{kind: file_exists, path: README.md}")

    result = run_routine([tmp_path / "missing.yaml", ok], CheckContext(root=project))

    assert result.steps[0].report is None
    assert "not found" in result.steps[0].error
    assert result.steps[1].exit_code == 0
    assert result.exit_code == 1


def test_undecodable_manifest_does_not_abort_routine(project, tmp_path):
    binary = tmp_path / "binary.yaml"
    binary.write_bytes(b"\xff\xfe\x00checks")
    ok = write_manifest(tmp_path / "ok.yaml", "{kind: file_exists, path: README.md}")

    result = run_routine([binary, ok], CheckContext(root=project))

    assert [step.exit_code for step in result.steps] == [1, 0]
    assert "could not read manifest" in result.steps[0].error
    assert result.exit_code == 1


def test_threshold_applies_to_every_step(project, tmp_path):
    mixed = write_manifest(
        tmp_path / "mixed.yaml",
        "{kind: file_exists, path: README.md}",
        "{kind: file_exists, path: NOPE.md, enabled: false}",
    )

    result = run_routine([mixed], CheckContext(root=project), threshold=100)

    assert result.steps[0].report.threshold == 100
    assert result.exit_code == 0
