from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .models import MiningBatch, RunContext


class LocalRunStore:
    """Filesystem-backed persistence for mining runs."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def allocate_run_context(self, project: str) -> RunContext:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        run_id, run_root = self._claim_run_root(project, timestamp)
        logs = run_root / "logs"
        artifacts = run_root / "artifacts"
        logs.mkdir(parents=True, exist_ok=True)
        artifacts.mkdir(parents=True, exist_ok=True)
        return RunContext(
            project=project,
            run_id=run_id,
            root=run_root,
            logs_dir=logs,
            artifacts_dir=artifacts,
        )

    def _claim_run_root(self, project: str, timestamp: str) -> tuple[str, Path]:
        """Create a run directory no other run has claimed yet."""
        project_root = self.root / project
        project_root.mkdir(parents=True, exist_ok=True)
        suffix = 0
        while True:
            run_id = timestamp if suffix == 0 else f"{timestamp}-{suffix}"
            run_root = project_root / run_id
            try:
                run_root.mkdir()
            except FileExistsError:
                suffix += 1
                continue
            return run_id, run_root

    def log_event(self, ctx: RunContext, message: str) -> None:
        log_file = ctx.logs_dir / "run.log"
        with log_file.open("a", encoding="utf-8") as fp:
            fp.write(
                f"{datetime.now(timezone.utc).isoformat()} "
                f"[{ctx.project}/{ctx.run_id}] {message}\n"
            )

    def persist_mining_batch(self, ctx: RunContext, batch: MiningBatch) -> Path:
        out_file = ctx.artifacts_dir / "mined_regions.json"
        payload: dict[str, Any] = {
            "project": batch.project,
            "run_id": batch.run_id,
            "mode": batch.mode,
            "summary": batch.summary,
            "commits": [asdict(c) | {"files": list(c.files)} for c in batch.commits],
            "regions": [asdict(r) for r in batch.regions],
            "errors": list(batch.errors),
            "failed": batch.failed,
        }
        with out_file.open("w", encoding="utf-8") as fp:
            json.dump(payload, fp, indent=2)
        return out_file
