# Embedding Sync Orchestrator
from typing import Dict, Any, Optional, List, Callable, Awaitable
from datetime import datetime
import asyncio
import logging
import time
from langgraph.graph import StateGraph, END

from jetstream_sync.models.embedding_models import RecordType, RecordOutcome
from jetstream_sync.models.embedding_sync_models import (
    BatchContext,
    EmbeddingBatchState,
    EmbeddingSyncSettings,
    PassSummary,
)
from jetstream_sync.database.supabase_client import SupabaseStore
from jetstream_sync.services.embedding_service import CohereEmbeddingClient
from jetstream_sync.services.embedding_sinks import DomainStoreSink, EmbeddingSink, VectorIndexSink
from jetstream_sync.services.exceptions import EmbeddingSyncError
from jetstream_sync.services.rate_limiter import RateLimiter
from jetstream_sync.services.record_handlers import TypeHandler, get_handler, handlers_by_priority
from jetstream_sync.pipelines.embedding_sync import (
    select_records_node,
    embed_records_node,
    mark_embedded_node,
    monitor_batch_node,
)
from jetstream_sync.pipelines.embedding_sync.embed_records_node import embed_record

logger = logging.getLogger(__name__)


class EmbeddingSyncOrchestrator:
    """
    Orchestrator for the embedding sync pipeline

    Pipeline Flow (per record type, in priority order):
    1. Select records whose embedding is missing
    2. Generate text, embed and persist each record in small concurrent chunks
    3. Run type-specific bookkeeping for embedded records
    4. Log a batch report
    """

    def __init__(self,
                 store: SupabaseStore,
                 embedder: CohereEmbeddingClient,
                 settings: Optional[EmbeddingSyncSettings] = None,
                 sink: Optional[EmbeddingSink] = None,
                 rate_limiter: Optional[RateLimiter] = None,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
                 dry_run: bool = False,
                 select_all: bool = False):
        self.settings = settings or EmbeddingSyncSettings()
        self.store = store
        self.embedder = embedder
        self.sink = sink or DomainStoreSink(store)
        self.rate_limiter = rate_limiter or getattr(embedder, "rate_limiter", None)
        self.sleep = sleep
        self.dry_run = dry_run
        self.select_all = select_all

        self.graph = None
        self._build_graph()

    def _build_graph(self):
        """Build the embedding batch LangGraph workflow"""
        try:
            workflow = StateGraph(EmbeddingBatchState)

            # Add pipeline nodes
            workflow.add_node("select_records", select_records_node)
            workflow.add_node("embed_records", embed_records_node)
            workflow.add_node("mark_embedded", mark_embedded_node)
            workflow.add_node("monitor_batch", monitor_batch_node)

            # Define the pipeline flow
            workflow.set_entry_point("select_records")
            workflow.add_edge("select_records", "embed_records")
            workflow.add_edge("embed_records", "mark_embedded")
            workflow.add_edge("mark_embedded", "monitor_batch")
            workflow.add_edge("monitor_batch", END)

            self.graph = workflow.compile()
            logger.info("Embedding sync LangGraph workflow compiled successfully")

        except Exception as e:
            logger.error(f"Error building embedding sync LangGraph workflow: {str(e)}")
            self.graph = None

    def _context(self, handler: TypeHandler, dry_run: bool) -> BatchContext:
        return BatchContext(
            handler=handler,
            store=self.store,
            embedder=self.embedder,
            sink=self.sink,
            expected_dimension=self.settings.expected_dimension,
            chunk_size=self.settings.chunk_size,
            chunk_pause_seconds=self.settings.chunk_pause_seconds,
            dry_run=dry_run,
            select_all=self.select_all,
            sleep=self.sleep,
        )

    async def process_batch(self, handler: TypeHandler, batch_size: Optional[int], dry_run: Optional[bool] = None) -> int:
        """
        Embed up to batch_size pending records of one type (every record when
        batch_size is None in bulk index mode)

        Returns:
            Number of records embedded successfully

        Raises:
            EmbeddingSyncError: when the batch failed at type level (e.g. selection)
        """
        dry_run = self.dry_run if dry_run is None else dry_run

        initial_state: EmbeddingBatchState = {
            "record_type": handler.record_type.value,
            "batch_size": batch_size,
            "context": self._context(handler, dry_run),
            "record_ids": [],
            "outcomes": [],
            "successful_ids": [],
            "chunk_count": 0,
            "batch_metrics": {"started_at": datetime.utcnow()},
            "pipeline_step": "initialized",
            "errors": [],
            "execution_time": None
        }

        logger.info(f"Processing batch of {batch_size or 'all'} records from {handler.table}")

        if self.graph:
            result = await self.graph.ainvoke(initial_state)
        else:
            # Sequential execution fallback when LangGraph is not available
            logger.warning("LangGraph not available, using sequential execution")
            result = initial_state
            for node in (select_records_node, embed_records_node, mark_embedded_node, monitor_batch_node):
                result = await node(result)

        if result.get("pipeline_step") == "error":
            raise EmbeddingSyncError(f"{handler.table} batch failed: {'; '.join(result.get('errors', []))}")

        return len(result.get("successful_ids", []))

    async def run_housekeeping(self, dry_run: Optional[bool] = None) -> int:
        """Archive stale offers before embedding; failures never block the pass"""
        dry_run = self.dry_run if dry_run is None else dry_run
        if dry_run:
            logger.info("[DRY RUN] Skipping archiving of old offers")
            return 0

        try:
            archived = await self.store.archive_old_offers(self.settings.archive_days_threshold)
            logger.info(f"Archived {archived} old offers")
            return archived
        except Exception as e:
            logger.error(f"Error archiving old offers: {str(e)}")
            return 0

    async def run_pass(self,
                       only: Optional[RecordType] = None,
                       batch_size: Optional[int] = None,
                       dry_run: Optional[bool] = None) -> PassSummary:
        """
        Main entry point: one pass over every configured record type

        Args:
            only: restrict the pass to a single record type
            batch_size: max records per type (defaults to settings; unbounded in bulk index mode)
            dry_run: override the orchestrator's dry-run mode for this pass

        Returns:
            PassSummary with per-type success counts
        """
        started_at = datetime.utcnow()
        start = time.monotonic()
        if batch_size is None and not self.select_all:
            batch_size = self.settings.default_batch_size
        dry_run = self.dry_run if dry_run is None else dry_run

        summary = PassSummary(started_at=started_at, dry_run=dry_run)
        summary.archived_count = await self.run_housekeeping(dry_run)

        for handler in handlers_by_priority(only):
            try:
                summary.results[handler.record_type.value] = await self.process_batch(handler, batch_size, dry_run)
            except Exception as e:
                logger.error(f"Error processing {handler.table}: {str(e)}")
                summary.results[handler.record_type.value] = 0
                summary.failed_types.append(handler.record_type.value)

        summary.duration_seconds = time.monotonic() - start
        self._log_summary(summary)
        return summary

    def _log_summary(self, summary: PassSummary) -> None:
        logger.info("=== Embedding Sync Pass Summary ===")
        for record_type, count in summary.results.items():
            logger.info(f"{record_type}: {count} records embedded")
        if summary.failed_types:
            logger.warning(f"Failed types: {', '.join(summary.failed_types)}")
        logger.info(f"Archived offers: {summary.archived_count}")
        logger.info(f"Total: {summary.total_processed} records in {summary.duration_seconds:.2f}s")

    async def reindex_entity(self, record_type: RecordType, record_id: str,
                             dry_run: Optional[bool] = None) -> RecordOutcome:
        """Embed one record on demand, regardless of its current embedding state"""
        handler = get_handler(record_type)
        context = self._context(handler, self.dry_run if dry_run is None else dry_run)

        logger.info(f"Reindexing {handler.table} {record_id}")
        outcome = await embed_record(context, record_id)

        if outcome.success and outcome.persisted and self.sink.runs_bookkeeping and handler.mark_embedded_rpc:
            try:
                await handler.after_embed(self.store, record_id)
            except Exception as e:
                logger.error(f"Error marking {handler.table} {record_id} as embedded: {str(e)}")

        return outcome

    def status(self) -> Dict[str, Any]:
        handlers: List[Dict[str, Any]] = [
            {"record_type": h.record_type.value, "table": h.table, "priority": h.priority}
            for h in handlers_by_priority()
        ]
        limiter = self.rate_limiter.snapshot() if self.rate_limiter else {}
        return {
            "target": self.sink.name,
            "dry_run": self.dry_run,
            "handlers": handlers,
            "rate_limit": limiter,
        }


def build_orchestrator(settings: Optional[EmbeddingSyncSettings] = None,
                       target: str = "store",
                       dry_run: bool = False) -> EmbeddingSyncOrchestrator:
    """Wire the store, rate limiter, embedding client and sink from settings"""
    settings = settings or EmbeddingSyncSettings.from_env()

    if not settings.supabase_url or not settings.supabase_key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set in environment variables")
    if not settings.cohere_api_key:
        raise ValueError("COHERE_API_KEY must be set in environment variables")

    store = SupabaseStore(settings.supabase_url, settings.supabase_key)
    rate_limiter = RateLimiter(
        max_calls=settings.rate_limit_calls,
        window_seconds=settings.rate_limit_window_seconds,
        buffer_seconds=settings.rate_limit_buffer_seconds,
    )
    embedder = CohereEmbeddingClient(
        rate_limiter,
        api_key=settings.cohere_api_key,
        model=settings.cohere_model,
        input_type=settings.cohere_input_type,
    )

    if target == "index":
        from jetstream_sync.database.qdrant_client import QdrantVectorIndex
        index = QdrantVectorIndex(
            host=settings.qdrant_host,
            port=settings.qdrant_port,
            api_key=settings.qdrant_api_key,
            collection_name=settings.qdrant_collection,
            dimension=settings.expected_dimension,
        )
        sink: EmbeddingSink = VectorIndexSink(index)
    elif target == "store":
        sink = DomainStoreSink(store)
    else:
        raise ValueError(f"Unknown target: {target}")

    return EmbeddingSyncOrchestrator(
        store=store,
        embedder=embedder,
        settings=settings,
        sink=sink,
        rate_limiter=rate_limiter,
        dry_run=dry_run,
        select_all=(target == "index"),
    )
