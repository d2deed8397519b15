"""Poll loop for re-running checks on an interval."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from .report import StatusReport

logger = logging.getLogger(__name__)


def watch(
    run_once: Callable[[], StatusReport],
    interval: float,
    iterations: Optional[int] = None,
    on_report: Optional[Callable[[int, StatusReport], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
    stop_event: Optional[threading.Event] = None,
) -> int:
    """Run ``run_once`` every ``interval`` seconds.

    Stops after ``iterations`` runs, when ``stop_event`` is set, or on
    Ctrl+C. Returns the exit code of the last completed run (0 if none
    completed).
    """
    if interval <= 0:
        raise ValueError("interval must be positive")
    if iterations is not None and iterations < 1:
        raise ValueError("iterations must be at least 1")

    last_exit = 0
    count = 0
    try:
        while True:
            if stop_event is not None and stop_event.is_set():
                break
            report = run_once()
            count += 1
            last_exit = report.exit_code
            if on_report is not None:
                on_report(count, report)
            if iterations is not None and count >= iterations:
                break
            if stop_event is not None:
                if stop_event.wait(interval):
                    break
            else:
                sleep(interval)
    except KeyboardInterrupt:
        logger.info("Watch interrupted")
    logger.info(f"Watch stopped after {count} run(s), last exit code {last_exit}")
    return last_exit
