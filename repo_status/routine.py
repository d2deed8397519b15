"""Run several manifests in sequence and aggregate their exit codes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from .checks import CheckContext
from .exceptions import ManifestError
from .manifest import load_manifest
from .report import StatusReport
from .runner import DEFAULT_THRESHOLD, run_manifest
from .scoring import EXIT_FAILURE, worst_exit_code

logger = logging.getLogger(__name__)


@dataclass
class RoutineStep:
    """Outcome of one manifest in a routine."""

    manifest: Path
    exit_code: int
    report: Optional[StatusReport] = None
    error: Optional[str] = None


@dataclass
class RoutineResult:
    steps: list[RoutineStep] = field(default_factory=list)
    stopped_early: bool = False

    @property
    def exit_code(self) -> int:
        return worst_exit_code(step.exit_code for step in self.steps)


def run_routine(
    manifest_paths: Sequence[Path],
    context: CheckContext,
    threshold: Optional[float] = None,
    default_threshold: float = DEFAULT_THRESHOLD,
    stop_on_failure: bool = False,
) -> RoutineResult:
    """Run each manifest in order.

    A manifest that fails to load counts as a failing step. With
    ``stop_on_failure`` the routine stops after the first failing step;
    partial results (exit code 2) never stop it.
    """
    result = RoutineResult()
    for index, raw_path in enumerate(manifest_paths):
        path = Path(raw_path)
        try:
            manifest = load_manifest(path)
        except ManifestError as exc:
            logger.error(f"Routine step {path} could not be loaded: {exc}")
            step = RoutineStep(manifest=path, exit_code=EXIT_FAILURE, error=str(exc))
        else:
            report = run_manifest(manifest, context, threshold, default_threshold)
            step = RoutineStep(manifest=path, exit_code=report.exit_code, report=report)
        result.steps.append(step)

        if stop_on_failure and step.exit_code == EXIT_FAILURE:
            remaining = len(manifest_paths) - index - 1
            if remaining:
                logger.warning(f"Stopping routine after {path}; {remaining} step(s) not run")
                result.stopped_early = True
            break
    return result
