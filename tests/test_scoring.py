"""Tests for readiness, health score, rollups and exit codes."""

import pytest

from repo_status.checks import CheckResult
from repo_status.scoring import (
    EXIT_FAILURE,
    EXIT_OK,
    EXIT_PARTIAL,
    build_recommendations,
    collect_issues,
    component_rollup,
    count_statuses,
    determine_exit_code,
    health_score,
    readiness_percentage,
    worst_exit_code,
)


def result(check_id, status, category="general", severity="error", kind="file_exists", **extra):
    return CheckResult(
        check_id=check_id,
        name=check_id,
        kind=kind,
        category=category,
        severity=severity,
        status=status,
        detail=f"{check_id} detail",
        **extra,
    )


@pytest.fixture
def mixed():
    return [
        result("readme", "OK", category="documentation"),
        result("license", "WARN", category="documentation", severity="warning",
               recommendation="Add a LICENSE"),
        result("tests", "FAIL", category="testing", recommendation="Add tests"),
        result("windows", "SKIP", category="tooling"),
        result("todo", "WARN", category="planning", severity="info", kind="task_progress",
               metrics={"total": 4, "completed": 1, "percentage": 25.0},
               recommendation="Finish TODO.md"),
    ]


def test_count_statuses(mixed):
    assert count_statuses(mixed) == {"total": 5, "ok": 1, "warn": 2, "fail": 1, "skip": 1}


def test_readiness_excludes_skipped(mixed):
    assert readiness_percentage(mixed) == 25.0


def test_readiness_with_nothing_scored():
    assert readiness_percentage([]) == 100.0
    assert readiness_percentage([result("x", "SKIP")]) == 100.0


def test_health_score_penalties(mixed):
    # one error (10) + one warning (5) + one info (2)
    assert health_score(mixed) == 83


def test_health_score_floors_at_zero():
    failures = [result(f"c{i}", "FAIL") for i in range(12)]
    assert health_score(failures) == 0


def test_component_rollup(mixed):
    rollup = component_rollup(mixed)

    assert rollup["documentation"] == {"total": 2, "completed": 1, "percentage": 50.0}
    assert rollup["testing"] == {"total": 1, "completed": 0, "percentage": 0.0}
    assert "tooling" not in rollup
    assert rollup["todo"] == {"total": 4, "completed": 1, "percentage": 25.0}


def test_component_rollup_name_collision():
    results = [
        result("planning", "OK", category="planning", kind="task_progress",
               metrics={"total": 2, "completed": 2, "percentage": 100.0}),
    ]
    rollup = component_rollup(results)
    assert rollup["planning"]["total"] == 1
    assert rollup["planning (tasks)"]["total"] == 2


def test_collect_issues(mixed):
    assert collect_issues(mixed) == [
        "license: license detail",
        "tests: tests detail",
        "todo: todo detail",
    ]


def test_recommendations_grouped_and_prioritised(mixed):
    recs = build_recommendations(mixed, readiness=25.0, threshold=80)

    assert [rec["category"] for rec in recs] == ["testing", "documentation", "readiness", "planning"]
    assert recs[0] == {
        "category": "testing",
        "count": 1,
        "severity": "error",
        "priority": 3,
        "actions": ["Add tests"],
    }
    assert recs[1]["actions"] == ["Add a LICENSE"]
    assert "below the 80% threshold" in recs[2]["actions"][0]


def test_no_threshold_recommendation_when_ready():
    recs = build_recommendations([result("a", "OK")], readiness=100.0, threshold=80)
    assert recs == []


@pytest.mark.parametrize(
    "statuses, readiness, expected",
    [
        (["OK", "OK"], 100.0, EXIT_OK),
        (["OK", "SKIP"], 100.0, EXIT_OK),
        (["OK", "WARN"], 90.0, EXIT_PARTIAL),
        (["OK", "OK"], 50.0, EXIT_PARTIAL),
        (["OK", "FAIL", "WARN"], 33.3, EXIT_FAILURE),
    ],
)
def test_determine_exit_code(statuses, readiness, expected):
    results = [result(f"c{i}", status) for i, status in enumerate(statuses)]
    assert determine_exit_code(results, readiness, threshold=80) == expected


@pytest.mark.parametrize(
    "codes, expected",
    [
        ([], EXIT_OK),
        ([0, 0], EXIT_OK),
        ([0, 2, 0], EXIT_PARTIAL),
        ([2, 1, 0], EXIT_FAILURE),
        ([0, 7], EXIT_FAILURE),
    ],
)
def test_worst_exit_code(codes, expected):
    assert worst_exit_code(codes) == expected


def test_readiness_recommendation_ranks_above_info():
    results = [
        result("readme", "OK"),
        result("todo", "WARN", category="planning", severity="info"),
    ]
    recs = build_recommendations(results, readiness=50.0, threshold=80)

    assert [rec["category"] for rec in recs] == ["readiness", "planning"]
    assert [rec["priority"] for rec in recs] == [2, 1]
