"""Shared helpers for resolving repo-status state paths.

Log files and other per-user state live outside the checked repository so a
status run never dirties the tree it is inspecting.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_STATE_DIR = Path.home() / ".local" / "state" / "repo-status"


def resolve_state_dir(
    base_dir: Optional[Path] = None, env: Optional[Mapping[str, str]] = None
) -> Path:
    """Resolve the base state directory.

    Handles both ~ and $HOME/$VAR expansion for compatibility with
    systemd EnvironmentFile and shell scripts.
    """
    if base_dir is not None:
        return Path(os.path.expandvars(str(base_dir))).expanduser()
    if env is None:
        env = os.environ
    env_dir = env.get("REPO_STATUS_STATE_DIR") or env.get("STATE_DIR")
    if env_dir:
        return Path(os.path.expandvars(env_dir)).expanduser()
    return DEFAULT_STATE_DIR


def resolve_state_subdir(name: str, base_dir: Optional[Path] = None) -> Path:
    """Resolve a named subdirectory within the state directory."""
    return resolve_state_dir(base_dir) / name


def resolve_log_dir(base_dir: Optional[Path] = None) -> Path:
    return resolve_state_subdir("logs", base_dir)
