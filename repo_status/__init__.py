"""Declarative project status checks with JSON/Markdown/HTML reports."""

__version__ = "1.0.0"

from .checks import CheckContext, CheckResult, run_check
from .exceptions import ManifestError, RepoStatusError
from .manifest import CheckSpec, Manifest, load_manifest, parse_manifest
from .report import StatusReport, write_reports
from .routine import run_routine
from .runner import run_manifest

__all__ = [
    "CheckContext",
    "CheckResult",
    "CheckSpec",
    "Manifest",
    "ManifestError",
    "RepoStatusError",
    "StatusReport",
    "load_manifest",
    "parse_manifest",
    "run_check",
    "run_manifest",
    "run_routine",
    "write_reports",
]
