"""Persistence layer for doclens: entry models, path codec, cost ledger, stores."""

from doclens_store.base import BaseStore
from doclens_store.errors import PersistenceError
from doclens_store.json_file import JSONFileStore
from doclens_store.memory import MemoryStore
from doclens_store.models import (
    DEFAULT_TARGET_SCORES,
    DIMENSIONS,
    CostAccounting,
    CostInfo,
    Database,
    Entry,
    ImprovementMetrics,
    OperationCost,
    OperationKind,
    ReviewRecord,
    Status,
)
from doclens_store.paths import PathCodec

__all__ = [
    "BaseStore",
    "JSONFileStore",
    "MemoryStore",
    "PersistenceError",
    "PathCodec",
    "DEFAULT_TARGET_SCORES",
    "DIMENSIONS",
    "CostAccounting",
    "CostInfo",
    "Database",
    "Entry",
    "ImprovementMetrics",
    "OperationCost",
    "OperationKind",
    "ReviewRecord",
    "Status",
]
