import logging
from typing import List, Protocol, TYPE_CHECKING

from jetstream_sync.models.embedding_models import EmbeddingRecord, GeneratedText
from jetstream_sync.database.supabase_client import SupabaseStore

if TYPE_CHECKING:
    from jetstream_sync.database.qdrant_client import QdrantVectorIndex
    from jetstream_sync.services.record_handlers import TypeHandler

logger = logging.getLogger(__name__)


class EmbeddingSink(Protocol):
    """Where a run writes its vectors"""
    name: str
    # Whether the handler's after-embed bookkeeping applies to this target
    runs_bookkeeping: bool

    async def persist(self, handler: "TypeHandler", generated: GeneratedText, vector: List[float]) -> None:
        ...


class DomainStoreSink:
    """Writes the vector back onto the record's own row"""
    name = "store"
    runs_bookkeeping = True

    def __init__(self, store: SupabaseStore):
        self.store = store

    async def persist(self, handler, generated, vector):
        strategy = await self.store.update_embedding(handler.table, handler.key_column, generated.record_id, vector)
        logger.debug(f"Stored embedding for {handler.table} {generated.record_id} ({strategy})")


class VectorIndexSink:
    """Upserts the vector, text and source row into the vector index"""
    name = "index"
    runs_bookkeeping = False

    def __init__(self, index: "QdrantVectorIndex"):
        self.index = index

    async def persist(self, handler, generated, vector):
        record = EmbeddingRecord(
            item_id=generated.record_id,
            record_type=handler.record_type,
            text=generated.text,
            embedding=vector,
            metadata=generated.source,
        )
        await self.index.upsert_record(record)
