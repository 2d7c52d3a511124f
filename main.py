from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from dotenv import load_dotenv

from seeking_trouble import MiningOrchestrator, RepositoryTarget, RuntimeConfig
from seeking_trouble.config import DEFAULT_EXTENSIONS, DEFAULT_PATTERNS

# Load environment variables from .env file next to main.py
# (SEEKING_TROUBLE_WORKSPACE may be set there)
_env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=_env_path)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Extract C code changed by commits matching keywords"
    )

    # Target configuration
    parser.add_argument(
        "--repo",
        action="append",
        dest="repos",
        type=Path,
        default=[],
        help="Path to a git repository (can be repeated)",
    )
    parser.add_argument("--rev", default="HEAD", help="Revision to walk from (default: HEAD)")
    parser.add_argument(
        "--pattern",
        action="append",
        dest="patterns",
        default=[],
        help="Commit message regex (can be repeated; default: fix/bug keywords)",
    )
    parser.add_argument("--case-sensitive", action="store_true")
    parser.add_argument(
        "--extension",
        action="append",
        dest="extensions",
        default=[],
        help=f"File extension to mine (can be repeated; default: {' '.join(DEFAULT_EXTENSIONS)})",
    )

    # Extraction settings
    parser.add_argument(
        "--mode",
        choices=("functions", "compounds", "lines"),
        default="functions",
        help="What to extract for each changed range (default: functions)",
    )
    parser.add_argument("--max-commits", type=int, help="Stop after this many matching commits")
    parser.add_argument(
        "--strict-parse",
        action="store_true",
        help="Skip files whose source does not parse cleanly",
    )

    # Workspace settings
    parser.add_argument("--workspace", type=Path, help="Workspace root override")
    parser.add_argument("--max-parallel", type=int, default=2)
    parser.add_argument("--git-timeout", type=int, default=60)
    parser.add_argument("--dry-run", action="store_true", help="Only list matching commits")
    parser.add_argument("--log-level", default="WARNING")

    args = parser.parse_args(argv)
    if not args.repos:
        parser.error("At least one --repo is required")
    return args


def build_runtime(args: argparse.Namespace) -> RuntimeConfig:
    return RuntimeConfig(
        workspace_root=args.workspace
        if args.workspace
        else RuntimeConfig().workspace_root,
        max_parallel_jobs=args.max_parallel,
        dry_run=args.dry_run,
        patterns=tuple(args.patterns) or DEFAULT_PATTERNS,
        ignore_case=not args.case_sensitive,
        max_commits=args.max_commits,
        file_extensions=tuple(args.extensions) or DEFAULT_EXTENSIONS,
        extract_mode=args.mode,
        strict_parse=args.strict_parse,
        git_timeout=args.git_timeout,
    )


def build_targets(args: argparse.Namespace) -> list[RepositoryTarget]:
    return [
        RepositoryTarget(
            name=repo.expanduser().resolve().name,
            path=repo,
            rev=args.rev,
        )
        for repo in args.repos
    ]


async def _async_main(args: argparse.Namespace) -> int:
    runtime = build_runtime(args)
    orchestrator = MiningOrchestrator(runtime)
    batches = await orchestrator.run_targets(build_targets(args))

    failed = 0
    for batch in batches:
        print(f"\n{'='*60}")
        print(f"Mining Complete: {batch.project} ({batch.run_id})")
        print(f"{'='*60}")
        print(f"Summary: {batch.summary}")
        print(f"Commits: {batch.commit_count}, regions: {batch.region_count}")
        for error in batch.errors:
            print(f"  error: {error}")
        if batch.failed:
            failed += 1
    print(f"{'='*60}\n")
    return 1 if failed else 0


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    raise SystemExit(asyncio.run(_async_main(args)))


if __name__ == "__main__":
    main()
