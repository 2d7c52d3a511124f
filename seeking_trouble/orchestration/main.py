from __future__ import annotations

import asyncio
from typing import Iterable, Optional

from ..config import RepositoryTarget, RuntimeConfig
from ..pipelines.mining import MiningPipeline
from ..storage.local_store import LocalRunStore
from ..storage.models import MiningBatch
from ..tools.git_repository import GitCommandError


class MiningOrchestrator:
    """
    High-level coordinator for bug-fix mining.

    Responsibilities:
        * Allocate workspaces per repository run.
        * Launch the mining pipeline (commits -> change sets -> regions).
        * Persist normalized outputs for downstream consumers.
    """

    def __init__(
        self,
        runtime_config: RuntimeConfig,
        pipeline: Optional[MiningPipeline] = None,
        store: Optional[LocalRunStore] = None,
    ) -> None:
        self.runtime = runtime_config
        self.store = store or LocalRunStore(runtime_config.workspace_root)
        self.pipeline = pipeline or MiningPipeline(
            runtime_config=runtime_config,
            store=self.store,
        )

    async def run_targets(self, targets: Iterable[RepositoryTarget]) -> list[MiningBatch]:
        """Mine repositories with limited parallelism."""
        sem = asyncio.Semaphore(self.runtime.max_parallel_jobs)

        async def _guarded_run(target: RepositoryTarget) -> MiningBatch:
            async with sem:
                return await self.run_single_target(target)

        return list(await asyncio.gather(*(_guarded_run(t) for t in targets)))

    async def run_single_target(self, target: RepositoryTarget) -> MiningBatch:
        """Execute the full mining flow for a single repository."""
        run_ctx = self.store.allocate_run_context(target.name)

        self.store.log_event(run_ctx, f"Starting run for {target.name} ({target.path})")

        try:
            batch = await self.pipeline.execute(target=target, run_ctx=run_ctx)
        except (GitCommandError, FileNotFoundError) as e:
            self.store.log_event(run_ctx, f"Mining failed: {e}")
            batch = MiningBatch(
                project=target.name,
                run_id=run_ctx.run_id,
                mode=self.runtime.extract_mode,
                errors=[str(e)],
                failed=True,
                summary=f"Mining failed: {e}",
            )

        out_file = self.store.persist_mining_batch(run_ctx, batch)
        self.store.log_event(run_ctx, f"Wrote {out_file.name}: {batch.summary}")
        return batch
