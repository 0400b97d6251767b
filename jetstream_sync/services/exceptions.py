"""Error taxonomy for the embedding sync pipeline.

Record-level errors (fetch, provider, persistence) are isolated per record by
the batch processor. ``SelectionError`` aborts only the current type's pass.
"""

from typing import List, Optional


class EmbeddingSyncError(Exception):
    """Base class for pipeline errors."""


class SelectionError(EmbeddingSyncError):
    """The store could not be queried for a type's pending records."""


class RecordFetchError(EmbeddingSyncError):
    """A selected record could not be read (vanished or store failure)."""

    def __init__(self, table: str, record_id: str, reason: Optional[str] = None):
        self.table = table
        self.record_id = record_id
        self.reason = reason or "Record not found"
        super().__init__(f"Failed to fetch {table} {record_id}: {self.reason}")


class EmbeddingProviderError(EmbeddingSyncError):
    """The embedding provider returned no usable vector."""


class PersistenceError(EmbeddingSyncError):
    """A vector could not be written to its target."""


class FallbackChainExhausted(EmbeddingSyncError):
    """Every strategy of a fallback chain failed."""

    def __init__(self, label: str, attempts: List["StrategyResult"]):  # noqa: F821
        self.label = label
        self.attempts = attempts
        detail = "; ".join(f"{a.strategy}: {a.error}" for a in attempts)
        super().__init__(f"{label}: all strategies failed ({detail})")
