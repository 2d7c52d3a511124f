from .local_store import LocalRunStore
from .models import (
    MinedCommit,
    MinedRegion,
    MiningBatch,
    RunContext,
)

__all__ = [
    "LocalRunStore",
    "MinedCommit",
    "MinedRegion",
    "MiningBatch",
    "RunContext",
]
