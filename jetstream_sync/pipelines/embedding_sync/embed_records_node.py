from typing import List, TYPE_CHECKING
import asyncio
import logging
from langsmith import traceable

from jetstream_sync.models.embedding_models import RecordOutcome
from jetstream_sync.services.embedding_service import normalize_vector

if TYPE_CHECKING:
    from jetstream_sync.models.embedding_sync_models import BatchContext, EmbeddingBatchState

logger = logging.getLogger(__name__)


def chunk_ids(record_ids: List[str], chunk_size: int) -> List[List[str]]:
    """Split ids into consecutive chunks of at most chunk_size"""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be greater than 0")
    return [record_ids[i:i + chunk_size] for i in range(0, len(record_ids), chunk_size)]


@traceable(name="embed_record")
async def embed_record(context: 'BatchContext', record_id: str) -> RecordOutcome:
    """
    Text, embed, normalize and persist a single record.
    Never raises: any failure is logged and returned as an unsuccessful outcome.
    """
    handler = context.handler
    outcome = RecordOutcome(record_type=handler.record_type, record_id=record_id, success=False)

    try:
        generated = await handler.generate_text(context.store, record_id)
        outcome.text_strategy = generated.strategy
        logger.debug(f"Generated text for {handler.table} {record_id} via '{generated.strategy}' "
                     f"({len(generated.text)} chars)")

        raw_vector = await context.embedder.embed(generated.text)
        outcome.raw_dimension = len(raw_vector)
        vector = normalize_vector(raw_vector, context.expected_dimension)

        if context.dry_run:
            logger.info(f"[DRY RUN] Would store {len(vector)}-dim embedding for {handler.table} {record_id}")
        else:
            await context.sink.persist(handler, generated, vector)
            outcome.persisted = True
            logger.info(f"Updated embedding for {handler.table} {record_id}")

        outcome.success = True

    except Exception as e:
        outcome.error = str(e)
        outcome.error_type = type(e).__name__
        logger.error(f"Error updating embedding for {handler.table} {record_id}: {str(e)}")

    return outcome


async def embed_records_node(state: 'EmbeddingBatchState') -> 'EmbeddingBatchState':
    """
    Embed the selected records in small concurrent chunks

    Functionality:
    - Split selected ids into chunks (2 by default)
    - Process each chunk's records concurrently
    - Pause between chunks to spread provider calls
    - Isolate per-record failures; the batch always continues
    """
    record_ids = state.get("record_ids", [])
    if not record_ids:
        return state

    context = state["context"]
    handler = context.handler

    try:
        chunks = chunk_ids(record_ids, context.chunk_size)
        state["chunk_count"] = len(chunks)
        logger.info(f"Processing {len(record_ids)} {handler.table} records in {len(chunks)} chunks")

        for index, chunk in enumerate(chunks):
            outcomes = await asyncio.gather(*(embed_record(context, record_id) for record_id in chunk))
            state["outcomes"].extend(outcomes)

            if index < len(chunks) - 1:
                await context.sleep(context.chunk_pause_seconds)

        state["successful_ids"] = [o.record_id for o in state["outcomes"] if o.success]
        failed = len(state["outcomes"]) - len(state["successful_ids"])

        state["batch_metrics"]["embedded_count"] = len(state["successful_ids"])
        state["batch_metrics"]["failed_count"] = failed
        state["batch_metrics"]["chunk_count"] = len(chunks)
        state["batch_metrics"]["basic_text_count"] = sum(1 for o in state["outcomes"] if o.text_strategy == "basic")
        state["pipeline_step"] = "records_embedded"

        logger.info(f"Embedded {len(state['successful_ids'])}/{len(record_ids)} {handler.table} records")
        return state

    except Exception as e:
        logger.error(f"Error in embed_records_node: {str(e)}")
        state["errors"].append(f"Embedding error: {str(e)}")
        state["pipeline_step"] = "error"
        return state
