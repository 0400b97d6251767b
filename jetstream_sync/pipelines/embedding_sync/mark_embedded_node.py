from typing import TYPE_CHECKING
import logging

if TYPE_CHECKING:
    from jetstream_sync.models.embedding_sync_models import EmbeddingBatchState

logger = logging.getLogger(__name__)


async def mark_embedded_node(state: 'EmbeddingBatchState') -> 'EmbeddingBatchState':
    """
    Run the type's post-embedding bookkeeping for every persisted record

    Functionality:
    - Call the handler's after_embed for each successful id
    - Skip on dry runs and for targets that do not write domain rows
    - Bookkeeping failures are logged and do not change the success count
    """
    context = state["context"]
    handler = context.handler
    successful_ids = state.get("successful_ids", [])

    if not successful_ids or handler.mark_embedded_rpc is None:
        return state

    if context.dry_run or not context.sink.runs_bookkeeping:
        logger.debug(f"Skipping {handler.mark_embedded_rpc} for {len(successful_ids)} records")
        return state

    marked = 0
    for record_id in successful_ids:
        try:
            await handler.after_embed(context.store, record_id)
            marked += 1
        except Exception as e:
            logger.error(f"Error marking {handler.table} {record_id} as embedded: {str(e)}")
            state["errors"].append(f"Bookkeeping error for {record_id}: {str(e)}")

    state["batch_metrics"]["marked_count"] = marked
    state["pipeline_step"] = "records_marked"
    logger.info(f"Marked {marked}/{len(successful_ids)} {handler.table} records as embedded")
    return state
