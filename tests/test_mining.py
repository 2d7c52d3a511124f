"""
Tests for the mining pipeline, orchestrator and local store.

A fake repository stands in for git so these run without a git binary.
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

# Add the repository root to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest

from seeking_trouble.analysis.change_set import ChangeSet
from seeking_trouble.config import RepositoryTarget, RuntimeConfig
from seeking_trouble.orchestration.main import MiningOrchestrator
from seeking_trouble.pipelines.mining import MiningPipeline
from seeking_trouble.storage import LocalRunStore, RunContext
from seeking_trouble.tools.git_repository import GitCommandError


LIST_C = """#include <stdlib.h>

struct node {
    int value;
    struct node *next;
};

int length(struct node *n) {
    int count = 0;
    while (n) {
        count++;
        n = n->next;
    }
    return count;
}

void release(struct node *n) {
    free(n);
}
"""


def make_change_set(lines: list[int], source: str = LIST_C, filename: str = "list.c") -> ChangeSet:
    cs = ChangeSet(filename, source)
    cs.add_lines(lines)
    return cs


class FakeRepository:
    """In-memory stand-in for GitRepository."""

    def __init__(self, commits: dict[str, tuple[str, list[ChangeSet]]]) -> None:
        self.commits = commits
        self.requested_extensions = None

    def commits_matching(self, patterns, rev="HEAD"):
        return [
            commit
            for commit, (message, _) in self.commits.items()
            if any(p.search(message) for p in patterns)
        ]

    def commit_message(self, commit):
        return self.commits[commit][0]

    def change_sets(self, commit, extensions=(".c", ".h")):
        self.requested_extensions = tuple(extensions)
        return self.commits[commit][1]


def run_ctx(tmp_path: Path) -> RunContext:
    return RunContext(
        project="demo",
        run_id="run-1",
        root=tmp_path,
        logs_dir=tmp_path / "logs",
        artifacts_dir=tmp_path / "artifacts",
    )


# =============================================================================
# Test: MiningPipeline.mine_change_set
# =============================================================================

class TestMineChangeSet:
    def test_functions_mode(self, tmp_path):
        pipeline = MiningPipeline(RuntimeConfig(workspace_root=tmp_path))
        regions = pipeline.mine_change_set("abc", make_change_set([11]))
        assert len(regions) == 1
        region = regions[0]
        assert region.commit == "abc"
        assert region.file == "list.c"
        assert region.kind == "function_definition"
        assert region.name == "length"
        assert (region.start_line, region.end_line) == (7, 15)
        assert region.text.startswith("int length(struct node *n) {")

    def test_functions_mode_skips_struct(self, tmp_path):
        pipeline = MiningPipeline(RuntimeConfig(workspace_root=tmp_path))
        assert pipeline.mine_change_set("abc", make_change_set([3])) == []

    def test_compounds_mode_keeps_struct(self, tmp_path):
        runtime = RuntimeConfig(workspace_root=tmp_path, extract_mode="compounds")
        regions = MiningPipeline(runtime).mine_change_set("abc", make_change_set([3, 4, 8]))
        assert len(regions) == 2
        assert regions[0].kind in ("struct_specifier", "declaration")
        assert regions[1].name == "length"
        assert "struct node {" in regions[0].text

    def test_same_function_reported_once(self, tmp_path):
        pipeline = MiningPipeline(RuntimeConfig(workspace_root=tmp_path))
        regions = pipeline.mine_change_set("abc", make_change_set([8, 12, 14]))
        assert [r.name for r in regions] == ["length"]

    def test_two_functions(self, tmp_path):
        pipeline = MiningPipeline(RuntimeConfig(workspace_root=tmp_path))
        regions = pipeline.mine_change_set("abc", make_change_set([14, 18]))
        assert [r.name for r in regions] == ["length", "release"]

    def test_lines_mode(self, tmp_path):
        runtime = RuntimeConfig(workspace_root=tmp_path, extract_mode="lines")
        regions = MiningPipeline(runtime).mine_change_set("abc", make_change_set([16, 17]))
        assert len(regions) == 1
        assert regions[0].kind == "lines"
        assert regions[0].text == "void release(struct node *n) {\n    free(n);\n"
        assert (regions[0].start_line, regions[0].end_line) == (16, 18)


# =============================================================================
# Test: MiningPipeline.execute
# =============================================================================

class TestMiningPipeline:
    def _pipeline(self, runtime: RuntimeConfig, repository: FakeRepository) -> MiningPipeline:
        return MiningPipeline(runtime, repository_factory=lambda path, timeout: repository)

    def test_execute_collects_regions(self, tmp_path):
        repository = FakeRepository(
            {
                "c2": ("Fix crash in release", [make_change_set([18])]),
                "c1": ("Initial import", [make_change_set([11])]),
            }
        )
        runtime = RuntimeConfig(workspace_root=tmp_path)
        target = RepositoryTarget(name="demo", path=tmp_path)
        batch = asyncio.run(self._pipeline(runtime, repository).execute(target, run_ctx(tmp_path)))

        assert batch.commit_count == 1
        assert batch.commits[0].commit == "c2"
        assert batch.commits[0].files == ("list.c",)
        assert batch.commits[0].regions_found == 1
        assert [r.name for r in batch.regions] == ["release"]
        assert batch.errors == []
        assert "1 regions from 1 commits" in batch.summary
        assert repository.requested_extensions == (".c", ".h")

    def test_out_of_sync_file_is_recorded_not_raised(self, tmp_path):
        broken = make_change_set([500], filename="stale.c")
        good = make_change_set([18])
        repository = FakeRepository({"c1": ("bug: fix release", [broken, good])})
        runtime = RuntimeConfig(workspace_root=tmp_path, extract_mode="lines")
        target = RepositoryTarget(name="demo", path=tmp_path)
        batch = asyncio.run(self._pipeline(runtime, repository).execute(target, run_ctx(tmp_path)))

        assert len(batch.errors) == 1
        assert "stale.c" in batch.errors[0]
        assert batch.region_count == 1

    def test_strict_parse_errors_are_recorded(self, tmp_path):
        broken = make_change_set([0], source="int main( {\n", filename="broken.c")
        repository = FakeRepository({"c1": ("fix", [broken])})
        runtime = RuntimeConfig(workspace_root=tmp_path, strict_parse=True)
        target = RepositoryTarget(name="demo", path=tmp_path)
        batch = asyncio.run(self._pipeline(runtime, repository).execute(target, run_ctx(tmp_path)))

        assert batch.region_count == 0
        assert len(batch.errors) == 1
        assert "broken.c" in batch.errors[0]

    def test_max_commits(self, tmp_path):
        repository = FakeRepository(
            {
                "c3": ("fix three", [make_change_set([18])]),
                "c2": ("fix two", [make_change_set([11])]),
                "c1": ("fix one", [make_change_set([11])]),
            }
        )
        runtime = RuntimeConfig(workspace_root=tmp_path, max_commits=2)
        target = RepositoryTarget(name="demo", path=tmp_path)
        batch = asyncio.run(self._pipeline(runtime, repository).execute(target, run_ctx(tmp_path)))
        assert [c.commit for c in batch.commits] == ["c3", "c2"]

    def test_dry_run_lists_commits_only(self, tmp_path):
        repository = FakeRepository({"c1": ("Fix it", [make_change_set([18])])})
        runtime = RuntimeConfig(workspace_root=tmp_path, dry_run=True)
        target = RepositoryTarget(name="demo", path=tmp_path)
        batch = asyncio.run(self._pipeline(runtime, repository).execute(target, run_ctx(tmp_path)))
        assert [c.message for c in batch.commits] == ["Fix it"]
        assert batch.regions == []
        assert repository.requested_extensions is None

    def test_target_patterns_override_runtime(self, tmp_path):
        runtime = RuntimeConfig(workspace_root=tmp_path, patterns=("bug",))
        pipeline = MiningPipeline(runtime)
        default = pipeline.compile_patterns(RepositoryTarget(name="a", path=tmp_path))
        custom = pipeline.compile_patterns(
            RepositoryTarget(name="b", path=tmp_path, patterns=("CVE-\\d+",))
        )
        assert [p.pattern for p in default] == ["bug"]
        assert [p.pattern for p in custom] == ["CVE-\\d+"]
        assert default[0].search("BUG 12")

    def test_case_sensitive_patterns(self, tmp_path):
        runtime = RuntimeConfig(workspace_root=tmp_path, patterns=("bug",), ignore_case=False)
        patterns = MiningPipeline(runtime).compile_patterns(RepositoryTarget(name="a", path=tmp_path))
        assert not patterns[0].search("BUG 12")


# =============================================================================
# Test: MiningOrchestrator
# =============================================================================

class TestMiningOrchestrator:
    def test_run_single_target_persists_batch(self, tmp_path):
        repository = FakeRepository({"c1": ("Fix length", [make_change_set([12])])})
        runtime = RuntimeConfig(workspace_root=tmp_path / "workspace")
        store = LocalRunStore(runtime.workspace_root)
        pipeline = MiningPipeline(
            runtime, store=store, repository_factory=lambda path, timeout: repository
        )
        orchestrator = MiningOrchestrator(runtime, pipeline=pipeline, store=store)

        batch = asyncio.run(
            orchestrator.run_single_target(RepositoryTarget(name="demo", path=tmp_path))
        )

        assert not batch.failed
        run_dir = runtime.workspace_root / "demo" / batch.run_id
        payload = json.loads((run_dir / "artifacts" / "mined_regions.json").read_text())
        assert payload["project"] == "demo"
        assert payload["mode"] == "functions"
        assert payload["commits"][0]["files"] == ["list.c"]
        assert payload["regions"][0]["name"] == "length"
        assert payload["failed"] is False
        log = (run_dir / "logs" / "run.log").read_text()
        assert "Starting run for demo" in log
        assert "mined_regions.json" in log

    def test_git_failure_produces_failed_batch(self, tmp_path):
        def failing_factory(path, timeout):
            raise GitCommandError(["rev-parse", "--git-dir"], 128, "not a git repository")

        runtime = RuntimeConfig(workspace_root=tmp_path / "workspace")
        pipeline = MiningPipeline(runtime, repository_factory=failing_factory)
        orchestrator = MiningOrchestrator(runtime, pipeline=pipeline)

        batch = asyncio.run(
            orchestrator.run_single_target(RepositoryTarget(name="demo", path=tmp_path))
        )

        assert batch.failed
        assert "not a git repository" in batch.summary
        assert batch.errors

    def test_run_targets(self, tmp_path):
        repository = FakeRepository({"c1": ("fix", [make_change_set([18])])})
        runtime = RuntimeConfig(workspace_root=tmp_path / "workspace", max_parallel_jobs=1)
        pipeline = MiningPipeline(runtime, repository_factory=lambda path, timeout: repository)
        orchestrator = MiningOrchestrator(runtime, pipeline=pipeline)

        targets = [
            RepositoryTarget(name="one", path=tmp_path),
            RepositoryTarget(name="two", path=tmp_path),
        ]
        batches = asyncio.run(orchestrator.run_targets(targets))

        assert [b.project for b in batches] == ["one", "two"]
        assert all(b.region_count == 1 for b in batches)

    def test_same_named_targets_get_separate_run_dirs(self, tmp_path):
        repository = FakeRepository({"c1": ("fix", [make_change_set([18])])})
        runtime = RuntimeConfig(workspace_root=tmp_path / "workspace", max_parallel_jobs=2)
        pipeline = MiningPipeline(runtime, repository_factory=lambda path, timeout: repository)
        orchestrator = MiningOrchestrator(runtime, pipeline=pipeline)

        targets = [
            RepositoryTarget(name="proj", path=tmp_path / "a"),
            RepositoryTarget(name="proj", path=tmp_path / "b"),
        ]
        batches = asyncio.run(orchestrator.run_targets(targets))

        assert len({b.run_id for b in batches}) == 2
        artifacts = sorted((runtime.workspace_root / "proj").glob("*/artifacts/mined_regions.json"))
        assert len(artifacts) == 2
        for path in artifacts:
            assert len(json.loads(path.read_text())["regions"]) == 1


class TestLocalRunStore:
    def test_allocations_in_same_second_do_not_collide(self, tmp_path):
        store = LocalRunStore(tmp_path)

        first = store.allocate_run_context("proj")
        second = store.allocate_run_context("proj")

        assert first.run_id != second.run_id
        assert first.root != second.root
        assert first.root.is_dir() and second.root.is_dir()
