"""Run a manifest's checks and assemble the status report."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Optional, Sequence

from .checks import STATUS_OK, STATUS_SKIP, CheckContext, CheckResult, run_check
from .manifest import Manifest
from .report import StatusReport
from .scoring import (
    build_recommendations,
    collect_issues,
    component_rollup,
    count_statuses,
    determine_exit_code,
    health_score,
    readiness_percentage,
)

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 80.0


def run_checks(manifest: Manifest, context: CheckContext) -> list[CheckResult]:
    """Run every check in manifest order."""
    results: list[CheckResult] = []
    for spec in manifest.checks:
        result = run_check(spec, context)
        if result.status in (STATUS_OK, STATUS_SKIP):
            logger.info(f"{result.status} {spec.id}: {result.detail}")
        else:
            logger.warning(f"{result.status} {spec.id}: {result.detail}")
        results.append(result)
    return results


def resolve_threshold(
    manifest: Manifest, threshold: Optional[float], default: float = DEFAULT_THRESHOLD
) -> float:
    """Explicit threshold, then the manifest's, then the configured default."""
    if threshold is not None:
        return float(threshold)
    if manifest.threshold is not None:
        return manifest.threshold
    return float(default)


def build_report(
    manifest: Manifest,
    context: CheckContext,
    results: Sequence[CheckResult],
    threshold: float,
    duration_ms: float = 0.0,
    generated_at: Optional[datetime] = None,
) -> StatusReport:
    readiness = readiness_percentage(results)
    stamp = generated_at or datetime.now(timezone.utc)
    return StatusReport(
        project=manifest.project or context.root.name,
        root=context.root,
        manifest=manifest.source,
        generated_at=stamp.isoformat(),
        threshold=threshold,
        readiness=readiness,
        health_score=health_score(results),
        exit_code=determine_exit_code(results, readiness, threshold),
        counts=count_statuses(results),
        results=list(results),
        components=component_rollup(results),
        issues=collect_issues(results),
        recommendations=build_recommendations(results, readiness, threshold),
        duration_ms=duration_ms,
    )


def run_manifest(
    manifest: Manifest,
    context: CheckContext,
    threshold: Optional[float] = None,
    default_threshold: float = DEFAULT_THRESHOLD,
) -> StatusReport:
    """Run ``manifest`` against ``context.root`` and return the report."""
    effective_threshold = resolve_threshold(manifest, threshold, default_threshold)
    logger.info(
        f"Running {len(manifest.checks)} checks from {manifest.source or '<inline>'} "
        f"against {context.root}"
    )

    started = time.perf_counter()
    results = run_checks(manifest, context)
    duration_ms = (time.perf_counter() - started) * 1000

    report = build_report(manifest, context, results, effective_threshold, duration_ms)
    logger.info(
        f"Run finished: status={report.status} readiness={report.readiness:g}% "
        f"health={report.health_score} exit={report.exit_code}"
    )
    return report
