# Embedding record models
from .embedding_models import RecordType, GeneratedText, EmbeddingRecord, RecordOutcome

# Pipeline models
from .embedding_sync_models import EmbeddingSyncSettings, BatchContext, EmbeddingBatchState, PassSummary

# Request/Response models
from .request_models import *
from .response_models import *

__all__ = [
    "RecordType",
    "GeneratedText",
    "EmbeddingRecord",
    "RecordOutcome",
    "EmbeddingSyncSettings",
    "BatchContext",
    "EmbeddingBatchState",
    "PassSummary",
]
