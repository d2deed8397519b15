"""Scoring and aggregation of check results.

Exit codes:
    0: every scored check passed and readiness meets the threshold
    1: at least one check failed (severity ``error``)
    2: partial: warnings only, or readiness below the threshold
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from .checks import STATUS_FAIL, STATUS_OK, STATUS_SKIP, STATUS_WARN, CheckResult

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_PARTIAL = 2

SEVERITY_PRIORITY = {"error": 3, "warning": 2, "info": 1}
SEVERITY_PENALTY = {"error": 10, "warning": 5, "info": 2}

# worst first
_EXIT_ORDER = (EXIT_FAILURE, EXIT_PARTIAL, EXIT_OK)


def count_statuses(results: Iterable[CheckResult]) -> dict[str, int]:
    counts = {"total": 0, "ok": 0, "warn": 0, "fail": 0, "skip": 0}
    for result in results:
        counts["total"] += 1
        if result.status == STATUS_OK:
            counts["ok"] += 1
        elif result.status == STATUS_WARN:
            counts["warn"] += 1
        elif result.status == STATUS_FAIL:
            counts["fail"] += 1
        elif result.status == STATUS_SKIP:
            counts["skip"] += 1
    return counts


def readiness_percentage(results: Sequence[CheckResult]) -> float:
    """Share of scored (non-skipped) checks that passed."""
    scored = [r for r in results if r.scored]
    if not scored:
        return 100.0
    passed = sum(1 for r in scored if r.passed)
    return round(passed / len(scored) * 100, 1)


def health_score(results: Iterable[CheckResult]) -> int:
    """100 minus a per-severity penalty for every failing check, floored at 0."""
    penalty = 0
    for result in results:
        if result.scored and not result.passed:
            penalty += SEVERITY_PENALTY.get(result.severity, 0)
    return max(0, 100 - penalty)


def component_rollup(results: Iterable[CheckResult]) -> dict[str, dict[str, Any]]:
    """Per-category completion counters, plus task-progress counters by check id."""
    components: dict[str, dict[str, Any]] = {}
    task_components: dict[str, dict[str, Any]] = {}

    for result in results:
        if not result.scored:
            continue
        entry = components.setdefault(result.category, {"total": 0, "completed": 0})
        entry["total"] += 1
        if result.passed:
            entry["completed"] += 1

        if result.kind == "task_progress" and "total" in result.metrics:
            task_components[result.check_id] = {
                "total": result.metrics["total"],
                "completed": result.metrics["completed"],
            }

    rollup: dict[str, dict[str, Any]] = {}
    for name, entry in list(components.items()) + list(task_components.items()):
        total = entry["total"]
        completed = entry["completed"]
        key = name if name not in rollup else f"{name} (tasks)"
        rollup[key] = {
            "total": total,
            "completed": completed,
            "percentage": round(completed / total * 100, 1) if total else 0.0,
        }
    return rollup


def collect_issues(results: Iterable[CheckResult]) -> list[str]:
    return [
        f"{result.name}: {result.detail}"
        for result in results
        if result.scored and not result.passed
    ]


def build_recommendations(
    results: Sequence[CheckResult], readiness: float, threshold: float
) -> list[dict[str, Any]]:
    """Group recommendations of failing checks by category, highest priority first."""
    grouped: dict[str, list[CheckResult]] = {}
    for result in results:
        if result.scored and not result.passed:
            grouped.setdefault(result.category, []).append(result)

    recommendations: list[dict[str, Any]] = []
    for category, failing in grouped.items():
        severity = max(failing, key=lambda r: SEVERITY_PRIORITY.get(r.severity, 0)).severity
        actions: list[str] = []
        for result in failing:
            if result.recommendation and result.recommendation not in actions:
                actions.append(result.recommendation)
        recommendations.append(
            {
                "category": category,
                "count": len(failing),
                "severity": severity,
                "priority": SEVERITY_PRIORITY.get(severity, 0),
                "actions": actions,
            }
        )

    if readiness < threshold:
        recommendations.append(
            {
                "category": "readiness",
                "count": 0,
                "severity": "warning",
                "priority": SEVERITY_PRIORITY["warning"],
                "actions": [
                    f"Readiness {readiness:g}% is below the {threshold:g}% threshold; "
                    "address the failing checks above"
                ],
            }
        )

    # stable: categories keep manifest order within a priority
    recommendations.sort(key=lambda rec: rec["priority"], reverse=True)
    return recommendations


def determine_exit_code(
    results: Sequence[CheckResult], readiness: float, threshold: float
) -> int:
    statuses = {result.status for result in results}
    if STATUS_FAIL in statuses:
        return EXIT_FAILURE
    if STATUS_WARN in statuses or readiness < threshold:
        return EXIT_PARTIAL
    return EXIT_OK


def worst_exit_code(codes: Iterable[int]) -> int:
    """Aggregate exit codes: any failure wins over partial, partial over clean."""
    seen = set(codes)
    # unknown codes (e.g. from a crashed step) count as failure
    if seen - set(_EXIT_ORDER):
        return EXIT_FAILURE
    for code in _EXIT_ORDER:
        if code in seen:
            return code
    return EXIT_OK


def overall_status(exit_code: int) -> str:
    return {EXIT_OK: "passed", EXIT_FAILURE: "failed", EXIT_PARTIAL: "partial"}.get(
        exit_code, "failed"
    )
