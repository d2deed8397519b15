#!/usr/bin/env python3
"""Concise status check for the current project (no report files)."""

import sys

from repo_status.checks import CheckContext
from repo_status.config import StatusConfig
from repo_status.exceptions import ManifestError
from repo_status.manifest import load_manifest
from repo_status.report import format_summary, format_table
from repo_status.runner import run_manifest
from repo_status.scoring import EXIT_FAILURE
from status_logging import get_logger


def main() -> int:
    logger = get_logger("repo_status")
    try:
        config = StatusConfig.from_env()
        config.validate()
        manifest = load_manifest(config.manifest_path)
    except (ValueError, ManifestError) as exc:
        logger.error(f"Healthcheck aborted: {exc}")
        print(f"healthcheck: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    report = run_manifest(
        manifest,
        CheckContext(
            root=config.root,
            command_timeout=config.command_timeout,
            http_timeout=config.http_timeout,
        ),
        default_threshold=config.threshold,
    )
    print(format_table(report.results))
    print()
    print(format_summary(report))
    logger.info(f"Healthcheck finished with exit code {report.exit_code}")
    return report.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
