"""CLI entrypoint for repo-status"""

import argparse
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from status_logging import setup_logging

from . import __version__
from .checks import CheckContext
from .config import StatusConfig, parse_formats
from .exceptions import ManifestError
from .manifest import Manifest, load_manifest, write_starter_manifest
from .report import (
    DEFAULT_BASENAME,
    StatusReport,
    format_details,
    format_summary,
    format_table,
    write_reports,
)
from .routine import run_routine
from .runner import run_manifest
from .scoring import EXIT_FAILURE, EXIT_OK, overall_status
from .watch import watch

logger = logging.getLogger(__name__)

EPILOG = """
Examples:
  # Run the checks in ./status-checks.yaml and write reports/status-report.{json,md}
  repo-status run

  # Run a specific manifest, print issues and recommendations, write HTML only
  repo-status run -m checks/release.yaml --detailed --format html

  # Re-run every 30 seconds until Ctrl+C
  repo-status watch --interval 30

  # Chain manifests the way a morning routine or pre-commit hook would
  repo-status routine checks/env.yaml checks/tests.yaml --stop-on-failure

Exit codes:
  0  all checks passed
  1  a check failed (severity error), or the manifest/config is invalid
  2  partial: warnings only, or readiness below the threshold

Environment Variables:
  REPO_STATUS_ROOT             Project root to check (default: current directory)
  REPO_STATUS_MANIFEST         Manifest path (default: status-checks.yaml)
  REPO_STATUS_REPORT_DIR       Report output directory (default: reports)
  REPO_STATUS_FORMATS          Report formats (default: json,md)
  REPO_STATUS_THRESHOLD        Readiness threshold percent (default: 80)
  REPO_STATUS_COMMAND_TIMEOUT  Command check timeout seconds (default: 60)
  REPO_STATUS_HTTP_TIMEOUT     HTTP check timeout seconds (default: 2.0)
  REPO_STATUS_WATCH_INTERVAL   Watch interval seconds (default: 10)
  REPO_STATUS_STATE_DIR        State/log directory (default: ~/.local/state/repo-status)
  LOG_LEVEL                    Log level (default: INFO)
"""


def _print_report(report: StatusReport, quiet: bool, detailed: bool) -> None:
    if not quiet:
        print(format_table(report.results))
        print()
    print(format_summary(report))
    if detailed:
        details = format_details(report)
        if details:
            print()
            print(details)


def _write(
    args: argparse.Namespace,
    config: StatusConfig,
    report: StatusReport,
    basename: str = DEFAULT_BASENAME,
) -> None:
    if args.no_report:
        return
    formats = parse_formats(args.format) if args.format else config.formats
    if not formats:
        return
    output_dir = Path(args.output_dir) if args.output_dir else config.report_dir
    for path in write_reports(report, output_dir, formats, basename=basename):
        logger.info(f"Report written: {path}")
        if not args.quiet:
            print(f"Report written: {path}")


def _load(args: argparse.Namespace, config: StatusConfig) -> Manifest:
    path = Path(args.manifest) if args.manifest else config.manifest_path
    return load_manifest(path)


def _cmd_run(args: argparse.Namespace, config: StatusConfig, context: CheckContext) -> int:
    manifest = _load(args, config)
    report = run_manifest(manifest, context, args.threshold, config.threshold)
    _print_report(report, args.quiet, args.detailed)
    _write(args, config, report)
    return report.exit_code


def _cmd_list(args: argparse.Namespace, config: StatusConfig, context: CheckContext) -> int:
    manifest = _load(args, config)
    rows = [("ID", "Kind", "Category", "Severity", "Enabled")]
    for spec in manifest.checks:
        rows.append((spec.id, spec.kind, spec.category, spec.severity, "yes" if spec.enabled else "no"))
    widths = [max(len(row[i]) for row in rows) for i in range(len(rows[0]))]
    for idx, row in enumerate(rows):
        print("  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip())
        if idx == 0:
            print("  ".join("-" * width for width in widths))
    return EXIT_OK


def _cmd_validate(args: argparse.Namespace, config: StatusConfig, context: CheckContext) -> int:
    manifest = _load(args, config)
    print(f"Manifest OK: {len(manifest.checks)} checks ({manifest.source})")
    return EXIT_OK


def _cmd_watch(args: argparse.Namespace, config: StatusConfig, context: CheckContext) -> int:
    manifest = _load(args, config)
    interval = args.interval if args.interval is not None else config.watch_interval

    def run_once() -> StatusReport:
        return run_manifest(manifest, context, args.threshold, config.threshold)

    def on_report(count: int, report: StatusReport) -> None:
        print(f"[{datetime.now().strftime('%H:%M:%S')}] run {count}")
        _print_report(report, args.quiet, args.detailed)
        _write(args, config, report)
        print()
        sys.stdout.flush()

    return watch(run_once, interval, iterations=args.iterations, on_report=on_report)


def _cmd_routine(args: argparse.Namespace, config: StatusConfig, context: CheckContext) -> int:
    paths = [Path(p) for p in args.manifests]
    result = run_routine(
        paths,
        context,
        threshold=args.threshold,
        default_threshold=config.threshold,
        stop_on_failure=args.stop_on_failure,
    )

    for step in result.steps:
        print(f"== {step.manifest}")
        if step.report is None:
            print(f"Manifest error: {step.error}", file=sys.stderr)
        else:
            _print_report(step.report, args.quiet, args.detailed)
            _write(args, config, step.report, basename=f"{step.manifest.stem}-report")
        print()

    skipped = len(paths) - len(result.steps)
    suffix = f" ({skipped} step(s) not run)" if result.stopped_early else ""
    print(f"Routine: {overall_status(result.exit_code)} (exit code {result.exit_code}){suffix}")
    return result.exit_code


def _cmd_init(args: argparse.Namespace, config: StatusConfig, context: CheckContext) -> int:
    path = Path(args.path) if args.path else config.manifest_path
    project = args.project or config.root.name
    written = write_starter_manifest(path, project, force=args.force)
    print(f"Wrote starter manifest: {written}")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repo-status",
        description="Run declarative project status checks and render a unified report.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )
    parser.add_argument("--env-file", help="Load environment variables from this .env file")
    parser.add_argument("--root", help="Project root to check (overrides REPO_STATUS_ROOT)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Echo log output to stderr")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    manifest_opts = argparse.ArgumentParser(add_help=False)
    manifest_opts.add_argument("-m", "--manifest", help="Manifest path (default: REPO_STATUS_MANIFEST)")

    run_opts = argparse.ArgumentParser(add_help=False)
    run_opts.add_argument("--threshold", type=float, help="Readiness threshold percent")
    run_opts.add_argument("-q", "--quiet", action="store_true", help="Only print the summary line")
    run_opts.add_argument("--detailed", action="store_true", help="Also print issues and recommendations")

    report_opts = argparse.ArgumentParser(add_help=False)
    report_opts.add_argument("--format", help="Comma separated report formats: json, md, html")
    report_opts.add_argument("--output-dir", help="Report directory (default: REPO_STATUS_REPORT_DIR)")
    report_opts.add_argument("--no-report", action="store_true", help="Do not write report files")

    sp = parser.add_subparsers(dest="command", required=True)

    run_p = sp.add_parser("run", parents=[manifest_opts, run_opts, report_opts], help="Run checks once")
    run_p.set_defaults(func=_cmd_run)

    list_p = sp.add_parser("list", parents=[manifest_opts], help="List the checks in a manifest")
    list_p.set_defaults(func=_cmd_list)

    validate_p = sp.add_parser("validate", parents=[manifest_opts], help="Validate a manifest")
    validate_p.set_defaults(func=_cmd_validate)

    watch_p = sp.add_parser(
        "watch", parents=[manifest_opts, run_opts, report_opts], help="Re-run checks on an interval"
    )
    watch_p.add_argument("--interval", type=float, help="Seconds between runs (default: REPO_STATUS_WATCH_INTERVAL)")
    watch_p.add_argument("--iterations", type=int, help="Stop after this many runs")
    watch_p.set_defaults(func=_cmd_watch)

    routine_p = sp.add_parser(
        "routine", parents=[run_opts, report_opts], help="Run several manifests in sequence"
    )
    routine_p.add_argument("manifests", nargs="+", help="Manifest files, run in order")
    routine_p.add_argument(
        "--stop-on-failure", action="store_true", help="Stop after the first failing manifest"
    )
    routine_p.set_defaults(func=_cmd_routine)

    init_p = sp.add_parser("init", help="Write a starter manifest")
    init_p.add_argument("path", nargs="?", help="Where to write it (default: REPO_STATUS_MANIFEST)")
    init_p.add_argument("--project", help="Project name (default: root directory name)")
    init_p.add_argument("--force", action="store_true", help="Overwrite an existing manifest")
    init_p.set_defaults(func=_cmd_init)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entrypoint"""
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides = {"REPO_STATUS_ROOT": args.root} if args.root else None
    try:
        config = StatusConfig.from_env(
            env_file=Path(args.env_file) if args.env_file else None,
            overrides=overrides,
        )
        config.validate()
        if getattr(args, "format", None):
            parse_formats(args.format)
        threshold = getattr(args, "threshold", None)
        if threshold is not None and not 0 <= threshold <= 100:
            raise ValueError(f"--threshold must be between 0 and 100: {threshold:g}")
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    setup_logging(
        "repo_status",
        log_dir=str(config.state_dir / "logs" / "repo_status"),
        log_level=config.log_level,
        console_output=args.verbose,
    )
    logger.debug(f"Command: {args.command} root={config.root}")

    context = CheckContext(
        root=config.root,
        command_timeout=config.command_timeout,
        http_timeout=config.http_timeout,
        env=dict(os.environ),
    )

    try:
        return args.func(args, config, context)
    except ManifestError as e:
        print(f"Manifest error: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_FAILURE
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    raise SystemExit(main())
