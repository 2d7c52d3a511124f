"""
seeking_trouble package entrypoint.

Extracts the source code changed by commits whose messages contain
certain keywords: commits are mined from git, their deleted lines are
merged into intervals, and the C functions and declarations those
intervals touch are extracted whole with tree-sitter.
"""

from .analysis import ChangeSet, CodeRegion, LineRange
from .config import RepositoryTarget, RuntimeConfig
from .orchestration.main import MiningOrchestrator
from .tools.git_repository import GitRepository

__all__ = [
    "ChangeSet",
    "CodeRegion",
    "GitRepository",
    "LineRange",
    "MiningOrchestrator",
    "RepositoryTarget",
    "RuntimeConfig",
]
