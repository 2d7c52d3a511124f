from .git_repository import (
    FileDeletions,
    GitCommandError,
    GitRepository,
    parse_deleted_lines,
)

__all__ = [
    "FileDeletions",
    "GitCommandError",
    "GitRepository",
    "parse_deleted_lines",
]
