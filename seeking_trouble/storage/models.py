from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional, Sequence


@dataclass()
class RunContext:
    """Identifiers + paths for a single mining execution."""

    project: str
    run_id: str
    root: Path
    logs_dir: Path
    artifacts_dir: Path


@dataclass()
class MinedRegion:
    """One extracted unit of code touched by a matching commit."""

    commit: str
    file: str
    # Lines covered by the region, zero-based half-open
    start_line: int
    end_line: int
    kind: str
    text: str
    name: Optional[str] = None


@dataclass()
class MinedCommit:
    """Per-commit summary."""

    commit: str
    message: str
    files: Sequence[str] = ()
    regions_found: int = 0


@dataclass()
class MiningBatch:
    """Aggregate of mined regions + metadata for one repository run."""

    project: str
    run_id: str
    mode: Literal["functions", "compounds", "lines"]
    commits: list[MinedCommit] = field(default_factory=list)
    regions: list[MinedRegion] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    summary: str = ""
    failed: bool = False

    @property
    def commit_count(self) -> int:
        return len(self.commits)

    @property
    def region_count(self) -> int:
        return len(self.regions)
