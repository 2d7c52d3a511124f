from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Callable, Optional

from ..analysis import (
    ChangeSet,
    ChangeSetRangeError,
    CodeRegion,
    CParseError,
    CParser,
    any_kind,
    function_kind,
)
from ..config import RepositoryTarget, RuntimeConfig
from ..storage import LocalRunStore
from ..storage.models import MinedCommit, MinedRegion, MiningBatch, RunContext
from ..tools.git_repository import GitRepository

logger = logging.getLogger(__name__)

RepositoryFactory = Callable[[Path, int], GitRepository]


class MiningPipeline:
    """Runs commit selection, change-set building and region extraction."""

    def __init__(
        self,
        runtime_config: RuntimeConfig,
        parser: Optional[CParser] = None,
        store: Optional[LocalRunStore] = None,
        repository_factory: Optional[RepositoryFactory] = None,
    ) -> None:
        self.runtime = runtime_config
        self.parser = parser or CParser(strict=runtime_config.strict_parse)
        self.store = store
        self.repository_factory = repository_factory or GitRepository

    def compile_patterns(self, target: RepositoryTarget) -> list[re.Pattern[str]]:
        flags = re.IGNORECASE if self.runtime.ignore_case else 0
        sources = target.patterns if target.has_patterns else self.runtime.patterns
        return [re.compile(p, flags) for p in sources]

    async def execute(self, target: RepositoryTarget, run_ctx: RunContext) -> MiningBatch:
        loop = asyncio.get_running_loop()
        repository = await loop.run_in_executor(
            None, self.repository_factory, target.path, self.runtime.git_timeout
        )
        patterns = self.compile_patterns(target)
        commits = await loop.run_in_executor(
            None, repository.commits_matching, patterns, target.rev
        )
        if self.runtime.max_commits is not None:
            commits = commits[: self.runtime.max_commits]
        logger.info("%s: %d matching commits", target.name, len(commits))

        batch = MiningBatch(
            project=run_ctx.project,
            run_id=run_ctx.run_id,
            mode=self.runtime.extract_mode,
        )
        for commit in commits:
            if self.runtime.dry_run:
                message = await loop.run_in_executor(None, repository.commit_message, commit)
                batch.commits.append(MinedCommit(commit=commit, message=message))
                continue
            mined, regions, errors = await loop.run_in_executor(
                None, self.mine_commit, repository, commit
            )
            batch.commits.append(mined)
            batch.regions.extend(regions)
            batch.errors.extend(errors)

        batch.summary = (
            f"{batch.region_count} regions from {batch.commit_count} commits "
            f"({self.runtime.extract_mode}), {len(batch.errors)} errors."
        )
        if self.store is not None:
            self.store.log_event(run_ctx, batch.summary)
        return batch

    def mine_commit(
        self, repository: GitRepository, commit: str
    ) -> tuple[MinedCommit, list[MinedRegion], list[str]]:
        """Extract regions for every eligible file of one commit."""
        regions: list[MinedRegion] = []
        errors: list[str] = []
        change_sets = repository.change_sets(commit, self.runtime.file_extensions)
        for change_set in change_sets:
            try:
                regions.extend(self.mine_change_set(commit, change_set))
            except (ChangeSetRangeError, CParseError) as exc:
                logger.warning("%s %s: %s", commit[:12], change_set.filename, exc)
                errors.append(f"{commit}:{change_set.filename}: {exc}")

        mined = MinedCommit(
            commit=commit,
            message=repository.commit_message(commit),
            files=tuple(cs.filename for cs in change_sets),
            regions_found=len(regions),
        )
        return mined, regions, errors

    def mine_change_set(self, commit: str, change_set: ChangeSet) -> list[MinedRegion]:
        """
        Regions of one file touched by its change set.

        In "lines" mode the literal text of each merged interval is used;
        otherwise whole constructs are extracted, each reported once per
        file even when several intervals touch it.
        """
        intervals = change_set.ranges()
        if self.runtime.extract_mode == "lines":
            return [
                MinedRegion(
                    commit=commit,
                    file=change_set.filename,
                    start_line=interval.start,
                    end_line=interval.end,
                    kind="lines",
                    text=text,
                )
                for interval, text in zip(intervals, change_set.text_ranges())
            ]

        kind_filter = function_kind if self.runtime.extract_mode == "functions" else any_kind
        code = CodeRegion(change_set.source, self.parser)
        seen: set[tuple[int, int]] = set()
        mined: list[MinedRegion] = []
        for interval in intervals:
            for region in code.extract_regions(interval, kind_filter):
                key = (region.lines.start, region.lines.end)
                if key in seen:
                    continue
                seen.add(key)
                mined.append(
                    MinedRegion(
                        commit=commit,
                        file=change_set.filename,
                        start_line=region.lines.start,
                        end_line=region.lines.end,
                        kind=region.kind,
                        text=region.text,
                        name=region.name,
                    )
                )
        return mined
