from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional, Sequence


DEFAULT_PATTERNS = (r"\bfix(e[sd])?\b", r"\bbug\b")
DEFAULT_EXTENSIONS = (".c", ".h")


def _default_workspace() -> Path:
    override = os.environ.get("SEEKING_TROUBLE_WORKSPACE")
    if override:
        return Path(override).expanduser()
    return Path(__file__).resolve().parents[1] / "data"


@dataclass()
class RepositoryTarget:
    """Describes a single git repository to mine."""

    name: str
    path: Path
    # patterns: commit message regexes; empty means use RuntimeConfig.patterns
    patterns: Sequence[str] = ()
    rev: str = "HEAD"

    @property
    def has_patterns(self) -> bool:
        return len(self.patterns) > 0


@dataclass()
class RuntimeConfig:
    """Global runtime knobs for the miner."""

    workspace_root: Path = field(default_factory=_default_workspace)
    max_parallel_jobs: int = 2
    dry_run: bool = False

    # Commit selection
    patterns: Sequence[str] = DEFAULT_PATTERNS
    ignore_case: bool = True
    max_commits: Optional[int] = None  # None = every matching commit
    file_extensions: Sequence[str] = DEFAULT_EXTENSIONS

    # Extraction
    extract_mode: Literal["functions", "compounds", "lines"] = "functions"
    strict_parse: bool = False  # Reject sources with syntax errors

    git_timeout: int = 60  # Per git command (seconds)
