"""Configuration management for repo-status"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import dotenv_values, find_dotenv, load_dotenv

from .state_paths import resolve_state_dir

SUPPORTED_FORMATS = ("json", "md", "html")
FORMAT_ALIASES = {"markdown": "md", "htm": "html"}


def parse_formats(value: Optional[str]) -> list[str]:
    """Parse a comma separated format list into canonical format names."""
    if not value:
        return []
    formats: list[str] = []
    for raw in value.split(","):
        name = raw.strip().lower()
        if not name:
            continue
        name = FORMAT_ALIASES.get(name, name)
        if name not in SUPPORTED_FORMATS:
            raise ValueError(
                f"Unsupported report format '{raw.strip()}'. "
                f"Use one of: {', '.join(SUPPORTED_FORMATS)}"
            )
        if name not in formats:
            formats.append(name)
    return formats


@dataclass
class StatusConfig:
    """Configuration for a status run"""

    root: Path
    manifest_path: Path
    report_dir: Path
    formats: list[str]
    threshold: float
    command_timeout: float
    http_timeout: float
    watch_interval: float
    state_dir: Path
    log_level: str

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        env_file: Optional[Path] = None,
        overrides: Optional[Mapping[str, str]] = None,
    ) -> "StatusConfig":
        """Load configuration from environment variables.

        ``env_file`` values fill in anything not already present in the
        process environment; ``overrides`` (from CLI flags) win over both.
        """
        if env is None:
            if env_file is not None:
                if not Path(env_file).exists():
                    raise ValueError(f"env file not found: {env_file}")
                load_dotenv(env_file, override=False)
            else:
                load_dotenv(find_dotenv(usecwd=True))
            env = os.environ
        elif env_file is not None:
            if not Path(env_file).exists():
                raise ValueError(f"env file not found: {env_file}")
            merged = {k: v for k, v in dotenv_values(env_file).items() if v is not None}
            merged.update(env)
            env = merged

        if overrides:
            env = {**env, **overrides}

        def parse_number(key: str, default: str) -> float:
            raw = env.get(key, default)
            try:
                return float(raw)
            except (TypeError, ValueError):
                raise ValueError(f"{key} must be a number, got {raw!r}")

        root = Path(env.get("REPO_STATUS_ROOT") or os.getcwd()).expanduser().resolve()

        manifest_path = Path(env.get("REPO_STATUS_MANIFEST", "status-checks.yaml")).expanduser()
        if not manifest_path.is_absolute():
            manifest_path = root / manifest_path

        report_dir = Path(env.get("REPO_STATUS_REPORT_DIR", "reports")).expanduser()
        if not report_dir.is_absolute():
            report_dir = root / report_dir

        formats = parse_formats(env.get("REPO_STATUS_FORMATS", "json,md"))

        threshold = parse_number("REPO_STATUS_THRESHOLD", "80")
        command_timeout = parse_number("REPO_STATUS_COMMAND_TIMEOUT", "60")
        http_timeout = parse_number("REPO_STATUS_HTTP_TIMEOUT", "2.0")
        watch_interval = parse_number("REPO_STATUS_WATCH_INTERVAL", "10")

        state_dir = resolve_state_dir(env=env)
        log_level = env.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"

        return cls(
            root=root,
            manifest_path=manifest_path,
            report_dir=report_dir,
            formats=formats,
            threshold=threshold,
            command_timeout=command_timeout,
            http_timeout=http_timeout,
            watch_interval=watch_interval,
            state_dir=state_dir,
            log_level=log_level,
        )

    def validate(self) -> None:
        """Validate configuration"""
        if not self.root.exists():
            raise ValueError(f"REPO_STATUS_ROOT does not exist: {self.root}")
        if not self.root.is_dir():
            raise ValueError(f"REPO_STATUS_ROOT is not a directory: {self.root}")

        if not 0 <= self.threshold <= 100:
            raise ValueError(f"REPO_STATUS_THRESHOLD must be between 0 and 100: {self.threshold}")

        if self.command_timeout <= 0:
            raise ValueError("REPO_STATUS_COMMAND_TIMEOUT must be positive")
        if self.http_timeout <= 0:
            raise ValueError("REPO_STATUS_HTTP_TIMEOUT must be positive")
        if self.watch_interval <= 0:
            raise ValueError("REPO_STATUS_WATCH_INTERVAL must be positive")
