# Models for the Embedding Sync Pipeline
import os
import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, List, Optional, Callable, Awaitable, TYPE_CHECKING
from typing_extensions import TypedDict
from pydantic import BaseModel

from jetstream_sync.models.embedding_models import RecordOutcome

if TYPE_CHECKING:
    from jetstream_sync.database.supabase_client import SupabaseStore
    from jetstream_sync.services.embedding_service import CohereEmbeddingClient
    from jetstream_sync.services.embedding_sinks import EmbeddingSink
    from jetstream_sync.services.record_handlers import TypeHandler


class EmbeddingSyncSettings(BaseModel):
    """Configuration for the embedding sync worker"""
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None

    cohere_api_key: Optional[str] = None
    cohere_model: str = "embed-english-v3.0"
    cohere_input_type: str = "search_document"

    qdrant_host: str = "localhost"
    qdrant_port: int = 6333
    qdrant_api_key: Optional[str] = None
    qdrant_collection: str = "jetstream_records"

    # Vector index dimension; provider output is padded/truncated to this
    expected_dimension: int = 1536

    # Slightly below the provider's 40 calls/min limit
    rate_limit_calls: int = 35
    rate_limit_window_seconds: float = 60.0
    rate_limit_buffer_seconds: float = 1.0

    chunk_size: int = 2
    chunk_pause_seconds: float = 2.0

    default_batch_size: int = 50
    default_interval_seconds: float = 300.0
    busy_interval_ceiling_seconds: float = 30.0

    archive_days_threshold: int = 90
    log_dir: str = "logs"

    @classmethod
    def from_env(cls) -> "EmbeddingSyncSettings":
        """Build settings from environment variables (call load_dotenv() first)"""
        return cls(
            supabase_url=os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL"),
            supabase_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY"),
            cohere_api_key=os.getenv("COHERE_API_KEY"),
            cohere_model=os.getenv("COHERE_EMBED_MODEL", "embed-english-v3.0"),
            qdrant_host=os.getenv("QDRANT_HOST", "localhost"),
            qdrant_port=int(os.getenv("QDRANT_PORT", "6333")),
            qdrant_api_key=os.getenv("QDRANT_API_KEY"),
            qdrant_collection=os.getenv("QDRANT_COLLECTION", "jetstream_records"),
            expected_dimension=int(os.getenv("EMBEDDING_DIMENSION", "1536")),
            rate_limit_calls=int(os.getenv("EMBEDDING_RATE_LIMIT", "35")),
            rate_limit_window_seconds=float(os.getenv("EMBEDDING_RATE_WINDOW_SECONDS", "60")),
        )


@dataclass
class BatchContext:
    """Collaborators and knobs for one type's batch; carried in the graph state"""
    handler: "TypeHandler"
    store: "SupabaseStore"
    embedder: "CohereEmbeddingClient"
    sink: "EmbeddingSink"
    expected_dimension: int = 1536
    chunk_size: int = 2
    chunk_pause_seconds: float = 2.0
    dry_run: bool = False
    select_all: bool = False
    sleep: Callable[[float], Awaitable[Any]] = field(default=asyncio.sleep)


class EmbeddingBatchState(TypedDict, total=False):
    """
    State object for one record type's embedding batch
    Compatible with LangGraph's state handling
    """
    # Input parameters
    record_type: str
    batch_size: Optional[int]  # None selects every key in bulk index mode
    context: BatchContext

    # Pipeline data
    record_ids: List[str]  # ids selected for this batch
    outcomes: List[RecordOutcome]  # one per processed id
    successful_ids: List[str]  # embedded and persisted
    chunk_count: int

    # Pipeline metadata
    batch_metrics: Dict[str, Any]
    pipeline_step: str
    errors: List[str]
    execution_time: Optional[float]


class PassSummary(BaseModel):
    """Per-type counts for one pass over all configured record types"""
    started_at: datetime
    results: Dict[str, int] = {}
    failed_types: List[str] = []
    archived_count: int = 0
    duration_seconds: float = 0.0
    dry_run: bool = False

    @property
    def total_processed(self) -> int:
        return sum(self.results.values())
