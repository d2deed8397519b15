"""Status report structure and renderers (console table, JSON, Markdown, HTML)."""

from __future__ import annotations

import html
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from .checks import CheckResult
from .config import SUPPORTED_FORMATS
from .scoring import overall_status

SCHEMA_VERSION = 1
DEFAULT_BASENAME = "status-report"
FORMAT_EXTENSIONS = {"json": "json", "md": "md", "html": "html"}


@dataclass
class StatusReport:
    """Aggregated result of one manifest run."""

    project: str
    root: Path
    generated_at: str
    threshold: float
    readiness: float
    health_score: int
    exit_code: int
    counts: dict[str, int]
    results: list[CheckResult]
    components: dict[str, dict[str, Any]] = field(default_factory=dict)
    issues: list[str] = field(default_factory=list)
    recommendations: list[dict[str, Any]] = field(default_factory=list)
    manifest: Optional[Path] = None
    duration_ms: float = 0.0

    @property
    def status(self) -> str:
        return overall_status(self.exit_code)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "schema_version": SCHEMA_VERSION,
            "project": {
                "name": self.project,
                "root": str(self.root),
                "manifest": str(self.manifest) if self.manifest else None,
                "generated_at": self.generated_at,
                "duration_ms": round(self.duration_ms, 1),
            },
            "summary": {
                **self.counts,
                "readiness": self.readiness,
                "health_score": self.health_score,
                "threshold": self.threshold,
                "status": self.status,
                "exit_code": self.exit_code,
            },
            "components": self.components,
            "issues": self.issues,
            "recommendations": self.recommendations,
            "results": [result.to_dict() for result in self.results],
        }


def format_table(results: Iterable[CheckResult]) -> str:
    rows = [("Check", "Status", "Category", "Detail")]
    for result in results:
        rows.append((result.name, result.status, result.category, result.detail))

    col_widths = [0, 0, 0, 0]
    for row in rows:
        for idx, cell in enumerate(row):
            col_widths[idx] = max(col_widths[idx], len(cell))

    lines = []
    for idx, row in enumerate(rows):
        padded = "  ".join(
            cell.ljust(col_widths[i]) for i, cell in enumerate(row)
        )
        lines.append(padded.rstrip())
        if idx == 0:
            lines.append(
                "  ".join("-" * width for width in col_widths).rstrip()
            )
    return "\n".join(lines)


def format_summary(report: StatusReport) -> str:
    counts = report.counts
    return (
        f"{report.project}: {report.status.upper()} | "
        f"{counts['ok']} ok, {counts['warn']} warn, {counts['fail']} fail, {counts['skip']} skip | "
        f"readiness {report.readiness:g}% (threshold {report.threshold:g}%) | "
        f"health {report.health_score}/100"
    )


def format_details(report: StatusReport) -> str:
    lines: list[str] = []
    if report.issues:
        lines.append("Issues:")
        lines.extend(f"  - {issue}" for issue in report.issues)
    if report.recommendations:
        if lines:
            lines.append("")
        lines.append("Recommendations:")
        for rec in report.recommendations:
            lines.append(f"  [{rec['severity']}] {rec['category']} ({rec['count']})")
            lines.extend(f"    - {action}" for action in rec["actions"])
    return "\n".join(lines)


def render_json(report: StatusReport) -> str:
    return json.dumps(report.to_dict(), indent=2) + "\n"


def _md_cell(value: Any) -> str:
    return str(value).replace("|", "\\|").replace("\n", " ")


def render_markdown(report: StatusReport) -> str:
    counts = report.counts
    lines = [
        f"# Status Report: {report.project}",
        "",
        f"**Generated:** {report.generated_at}",
        f"**Root:** `{report.root}`",
        f"**Status:** {report.status} (exit code {report.exit_code})",
        "",
        "## Summary",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Checks | {counts['total']} |",
        f"| OK | {counts['ok']} |",
        f"| Warnings | {counts['warn']} |",
        f"| Failures | {counts['fail']} |",
        f"| Skipped | {counts['skip']} |",
        f"| Readiness | {report.readiness:g}% (threshold {report.threshold:g}%) |",
        f"| Health score | {report.health_score}/100 |",
        "",
    ]

    if report.components:
        lines.extend(
            [
                "## Components",
                "",
                "| Component | Completed | Total | Percentage |",
                "|-----------|-----------|-------|------------|",
            ]
        )
        for name, comp in report.components.items():
            lines.append(
                f"| {_md_cell(name)} | {comp['completed']} | {comp['total']} | {comp['percentage']:g}% |"
            )
        lines.append("")

    lines.extend(
        [
            "## Checks",
            "",
            "| Check | Kind | Category | Status | Detail |",
            "|-------|------|----------|--------|--------|",
        ]
    )
    for result in report.results:
        lines.append(
            f"| {_md_cell(result.name)} | {result.kind} | {_md_cell(result.category)} "
            f"| {result.status} | {_md_cell(result.detail)} |"
        )
    lines.append("")

    if report.issues:
        lines.extend(["## Issues", ""])
        lines.extend(f"- {issue}" for issue in report.issues)
        lines.append("")

    if report.recommendations:
        lines.extend(["## Recommendations", ""])
        for rec in report.recommendations:
            lines.append(f"### {rec['category']} ({rec['severity']}, {rec['count']})")
            lines.append("")
            lines.extend(f"- {action}" for action in rec["actions"])
            lines.append("")

    return "\n".join(lines)


_HTML_STYLE = """
    body { font-family: system-ui, sans-serif; margin: 2rem; color: #1f2937; }
    table { border-collapse: collapse; margin-bottom: 1.5rem; }
    th, td { border: 1px solid #d1d5db; padding: .35rem .6rem; text-align: left; }
    th { background: #f3f4f6; }
    .OK { color: #15803d; } .WARN { color: #b45309; }
    .FAIL { color: #b91c1c; font-weight: bold; } .SKIP { color: #6b7280; }
"""


def render_html(report: StatusReport) -> str:
    esc = html.escape
    counts = report.counts

    component_rows = "\n".join(
        f"<tr><td>{esc(name)}</td><td>{comp['completed']}</td><td>{comp['total']}</td>"
        f"<td>{comp['percentage']:g}%</td></tr>"
        for name, comp in report.components.items()
    )
    check_rows = "\n".join(
        f"<tr><td>{esc(r.name)}</td><td>{esc(r.kind)}</td><td>{esc(r.category)}</td>"
        f"<td class=\"{esc(r.status)}\">{esc(r.status)}</td><td>{esc(r.detail)}</td></tr>"
        for r in report.results
    )
    issue_items = "\n".join(f"<li>{esc(issue)}</li>" for issue in report.issues)
    rec_items = "\n".join(
        f"<li><strong>{esc(rec['category'])}</strong> ({esc(rec['severity'])}, {rec['count']})<ul>"
        + "".join(f"<li>{esc(action)}</li>" for action in rec["actions"])
        + "</ul></li>"
        for rec in report.recommendations
    )

    sections = [
        f"<h1>Status Report: {esc(report.project)}</h1>",
        f"<p>Generated {esc(report.generated_at)} for <code>{esc(str(report.root))}</code>. "
        f"Status: <strong class=\"{'OK' if report.exit_code == 0 else 'FAIL'}\">"
        f"{esc(report.status)}</strong> (exit code {report.exit_code}).</p>",
        "<h2>Summary</h2>",
        "<table>",
        f"<tr><th>Checks</th><td>{counts['total']}</td></tr>",
        f"<tr><th>OK</th><td>{counts['ok']}</td></tr>",
        f"<tr><th>Warnings</th><td>{counts['warn']}</td></tr>",
        f"<tr><th>Failures</th><td>{counts['fail']}</td></tr>",
        f"<tr><th>Skipped</th><td>{counts['skip']}</td></tr>",
        f"<tr><th>Readiness</th><td>{report.readiness:g}% (threshold {report.threshold:g}%)</td></tr>",
        f"<tr><th>Health score</th><td>{report.health_score}/100</td></tr>",
        "</table>",
    ]
    if component_rows:
        sections.extend(
            [
                "<h2>Components</h2>",
                "<table>",
                "<tr><th>Component</th><th>Completed</th><th>Total</th><th>Percentage</th></tr>",
                component_rows,
                "</table>",
            ]
        )
    sections.extend(
        [
            "<h2>Checks</h2>",
            "<table>",
            "<tr><th>Check</th><th>Kind</th><th>Category</th><th>Status</th><th>Detail</th></tr>",
            check_rows,
            "</table>",
        ]
    )
    if issue_items:
        sections.extend(["<h2>Issues</h2>", "<ul>", issue_items, "</ul>"])
    if rec_items:
        sections.extend(["<h2>Recommendations</h2>", "<ul>", rec_items, "</ul>"])

    body = "\n".join(sections)
    return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{esc(report.project)} - Status Report</title>
  <style>{_HTML_STYLE}</style>
</head>
<body>
{body}
</body>
</html>
"""


RENDERERS = {
    "json": render_json,
    "md": render_markdown,
    "html": render_html,
}


def write_reports(
    report: StatusReport,
    output_dir: Path,
    formats: Sequence[str],
    basename: str = DEFAULT_BASENAME,
) -> list[Path]:
    """Render ``report`` in each format and write it under ``output_dir``."""
    for fmt in formats:
        if fmt not in SUPPORTED_FORMATS:
            raise ValueError(f"Unsupported report format: {fmt}")

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    written: list[Path] = []
    for fmt in formats:
        path = output_dir / f"{basename}.{FORMAT_EXTENSIONS[fmt]}"
        path.write_text(RENDERERS[fmt](report), encoding="utf-8")
        written.append(path)
    return written
