"""
Git access for commit mining.

Lists commits whose message matches a set of regular expressions and turns
each commit into ChangeSets: the parent-side source of every modified file
together with the zero-based numbers of the lines the commit deleted.
All git access goes through the ``git`` command line.
"""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Pattern, Sequence, Union

from unidiff import PatchSet

from ..analysis.change_set import ChangeSet

logger = logging.getLogger(__name__)

# Field/record separators for `git log --format`, as git placeholders and as text
_FIELD_SEP, _FIELD_SEP_FORMAT = "\x00", "%x00"
_RECORD_SEP, _RECORD_SEP_FORMAT = "\x1e", "%x1e"

PatternLike = Union[str, Pattern[str]]


class GitCommandError(RuntimeError):
    """A git invocation failed."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str) -> None:
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"git {' '.join(args)} failed ({returncode}): {stderr.strip()}"
        )


@dataclass
class FileDeletions:
    """Old-side lines removed from one file by a diff."""
    old_path: Optional[str]
    new_path: Optional[str]
    lines: list[int] = field(default_factory=list)      # zero-based, old side
    contents: list[str] = field(default_factory=list)   # without the '-' prefix

    @property
    def path(self) -> str:
        return self.old_path or self.new_path or ""

    @property
    def is_new_file(self) -> bool:
        return self.old_path is None


def parse_deleted_lines(diff_text: str) -> list[FileDeletions]:
    """
    Collect deleted lines per file from unified diff output.

    unidiff reports one-based old-side line numbers; the returned line
    numbers are zero-based.
    """
    files: list[FileDeletions] = []
    for patched_file in PatchSet.from_string(diff_text):
        path = patched_file.path
        deletions = FileDeletions(
            old_path=None if patched_file.is_added_file else path,
            new_path=None if patched_file.is_removed_file else path,
        )
        for hunk in patched_file:
            for line in hunk:
                if line.is_removed and line.source_line_no is not None:
                    deletions.lines.append(line.source_line_no - 1)
                    deletions.contents.append(line.value.rstrip("\n"))
        files.append(deletions)
    return files


class GitRepository:
    """
    Read-only view of a git repository used for commit mining.

    Usage:
        repo = GitRepository("/path/to/repo")
        for commit in repo.commits_matching([re.compile("bug")]):
            for change_set in repo.change_sets(commit):
                print(change_set.filename, change_set.ranges())
    """

    def __init__(self, path: str | Path, timeout: int = 60) -> None:
        self.path = Path(path).expanduser().resolve()
        self.timeout = timeout
        if not self.path.exists():
            raise FileNotFoundError(f"repository {self.path} does not exist")
        self._run_git("rev-parse", "--git-dir")

    def _run(self, *args: str) -> subprocess.CompletedProcess:
        cmd = ["git", "-c", "core.quotePath=false", *args]
        try:
            return subprocess.run(
                cmd,
                cwd=str(self.path),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise GitCommandError(args, -1, f"timed out after {self.timeout}s") from exc
        except FileNotFoundError as exc:
            raise GitCommandError(args, -1, "git not found") from exc

    def _run_git(self, *args: str) -> str:
        """Run a git command and return its decoded stdout."""
        result = self._run(*args)
        if result.returncode != 0:
            raise GitCommandError(
                args, result.returncode, result.stderr.decode("utf-8", errors="replace")
            )
        # Decoded without newline translation so row numbers match git's.
        return result.stdout.decode("utf-8", errors="replace")

    def has_commits(self, rev: str = "HEAD") -> bool:
        result = self._run("rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}")
        return result.returncode == 0

    def iter_commits(self, rev: str = "HEAD") -> Iterable[tuple[str, str]]:
        """Yield ``(hash, message)`` pairs reachable from ``rev``, newest first."""
        if not self.has_commits(rev):
            return
        output = self._run_git(
            "log", f"--format=%H{_FIELD_SEP_FORMAT}%B{_RECORD_SEP_FORMAT}", rev
        )
        for record in output.split(_RECORD_SEP):
            record = record.lstrip("\n")
            if not record:
                continue
            commit, _, message = record.partition(_FIELD_SEP)
            yield commit, message

    def commits_matching(
        self, patterns: Sequence[PatternLike], rev: str = "HEAD"
    ) -> list[str]:
        """Commits whose message matches any of ``patterns``."""
        compiled = [re.compile(p) if isinstance(p, str) else p for p in patterns]
        if not compiled:
            return []
        return [
            commit
            for commit, message in self.iter_commits(rev)
            if any(p.search(message) for p in compiled)
        ]

    def commit_message(self, commit: str) -> str:
        return self._run_git("log", "-1", "--format=%B", commit).rstrip("\n")

    def parent_of(self, commit: str) -> Optional[str]:
        """First parent of ``commit``, or None for a root commit."""
        tokens = self._run_git("rev-list", "--parents", "-n", "1", commit).split()
        return tokens[1] if len(tokens) > 1 else None

    def show_file(self, commit: str, path: str) -> str:
        return self._run_git("show", f"{commit}:{path}")

    def diff_deletions(self, commit: str) -> list[FileDeletions]:
        """Per-file deletions of ``commit`` against its first parent."""
        parent = self.parent_of(commit)
        if parent is None:
            # Root commits only add content.
            return []
        diff_text = self._run_git(
            "diff", "-U0", "--no-color", "--no-ext-diff", "--no-renames",
            "--src-prefix=a/", "--dst-prefix=b/",
            parent, commit,
        )
        return parse_deleted_lines(diff_text)

    def get_changes(self, commit: str) -> str:
        """Concatenated text of every line ``commit`` deleted."""
        return "".join(
            content + "\n"
            for deletions in self.diff_deletions(commit)
            for content in deletions.contents
        )

    def change_sets(
        self, commit: str, extensions: Sequence[str] = (".c", ".h")
    ) -> list[ChangeSet]:
        """
        One ChangeSet per parent-side file with deleted lines.

        Each ChangeSet holds the file as it was before ``commit`` and the
        zero-based numbers of the deleted lines, in ascending order.
        """
        parent = self.parent_of(commit)
        if parent is None:
            return []

        suffixes = tuple(ext.lower() for ext in extensions)
        change_sets: list[ChangeSet] = []
        for deletions in self.diff_deletions(commit):
            if deletions.is_new_file or not deletions.lines:
                continue
            if suffixes and not deletions.path.lower().endswith(suffixes):
                continue
            source = self.show_file(parent, deletions.path)
            change_set = ChangeSet(deletions.path, source)
            change_set.add_lines(deletions.lines)
            change_sets.append(change_set)
            logger.debug(
                "%s %s: %d deleted lines", commit[:12], deletions.path, len(deletions.lines)
            )
        return change_sets
