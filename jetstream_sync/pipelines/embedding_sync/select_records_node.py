from typing import TYPE_CHECKING
import logging

from jetstream_sync.services.exceptions import SelectionError

if TYPE_CHECKING:
    from jetstream_sync.models.embedding_sync_models import EmbeddingBatchState

logger = logging.getLogger(__name__)


async def select_records_node(state: 'EmbeddingBatchState') -> 'EmbeddingBatchState':
    """
    Select the records of one type that still need an embedding

    Functionality:
    - Ask the type handler for up to batch_size pending keys
    - In bulk index mode select keys regardless of embedding state, all of them unless limited
    - A selection failure is a type-level error: record it and stop the batch
    """
    context = state["context"]
    handler = context.handler
    batch_size = state.get("batch_size")

    try:
        logger.info(f"Selecting {'up to ' + str(batch_size) if batch_size else 'all'} {handler.table} records")

        if context.select_all:
            record_ids = await handler.select_all(context.store, batch_size)
        else:
            record_ids = await handler.select_batch(context.store, batch_size)

        state["record_ids"] = list(record_ids)
        state["batch_metrics"]["selected_count"] = len(record_ids)

        if record_ids:
            logger.info(f"Found {len(record_ids)} {handler.table} records to process")
            state["pipeline_step"] = "records_selected"
        else:
            logger.info(f"No {handler.table} records need embedding")
            state["pipeline_step"] = "nothing_to_process"

        return state

    except SelectionError as e:
        logger.error(f"Error selecting {handler.table} records: {str(e)}")
        state["record_ids"] = []
        state["errors"].append(f"Selection error: {str(e)}")
        state["pipeline_step"] = "error"
        return state
