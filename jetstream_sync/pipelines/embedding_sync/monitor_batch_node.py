from typing import Dict, Any, TYPE_CHECKING
import logging
from datetime import datetime

if TYPE_CHECKING:
    from jetstream_sync.models.embedding_sync_models import EmbeddingBatchState

logger = logging.getLogger(__name__)

EXECUTION_TIME_THRESHOLD = 300  # 5 minutes
SUCCESS_RATE_THRESHOLD = 90  # 90%


async def monitor_batch_node(state: 'EmbeddingBatchState') -> 'EmbeddingBatchState':
    """
    Log a per-batch report and raise performance alerts

    Functionality:
    - Summarize selected, embedded and failed counts
    - Log the first few record errors
    - Alert on low success rate or slow batches
    """
    try:
        metrics = state["batch_metrics"]
        handler = state["context"].handler
        outcomes = state.get("outcomes", [])
        errors = state.get("errors", [])

        started_at = metrics.get("started_at")
        execution_time = (datetime.utcnow() - started_at).total_seconds() if started_at else 0.0
        state["execution_time"] = execution_time

        selected = metrics.get("selected_count", 0)
        embedded = metrics.get("embedded_count", 0)
        success_rate = (embedded / selected * 100) if selected else 100.0
        metrics["success_rate"] = success_rate

        if not selected and not errors:
            state["pipeline_step"] = "completed"
            return state

        logger.info(f"=== {handler.table} Embedding Batch Report ===")
        logger.info(f"Execution Time: {execution_time:.2f} seconds")
        logger.info(f"Selected: {selected}")
        logger.info(f"Embedded: {embedded}")
        logger.info(f"Failed: {metrics.get('failed_count', 0)}")
        logger.info(f"Chunks: {metrics.get('chunk_count', 0)}")
        if metrics.get("basic_text_count"):
            logger.info(f"Basic Text Fallbacks: {metrics['basic_text_count']}")
        logger.info(f"Success Rate: {success_rate:.1f}%")

        failures = [o for o in outcomes if not o.success]
        if failures:
            logger.warning("--- Failed Records ---")
            for outcome in failures[:5]:
                logger.warning(f"{outcome.record_id}: {outcome.error}")
            if len(failures) > 5:
                logger.warning(f"... and {len(failures) - 5} more failed records")

        _analyze_batch_performance({
            "table": handler.table,
            "execution_time_seconds": execution_time,
            "success_rate": success_rate,
            "selected": selected,
            "errors": errors,
        })

        if state.get("pipeline_step") != "error":
            state["pipeline_step"] = "completed"
        return state

    except Exception as e:
        logger.error(f"Error in monitor_batch_node: {str(e)}")
        state["errors"].append(f"Monitoring error: {str(e)}")
        return state


def _analyze_batch_performance(report: Dict[str, Any]) -> None:
    """
    Analyze batch performance and generate alerts if needed
    """
    table = report["table"]
    execution_time = report.get("execution_time_seconds", 0)
    success_rate = report.get("success_rate", 100.0)
    alerts = 0

    if execution_time > EXECUTION_TIME_THRESHOLD:
        alerts += 1
        logger.warning(f"ALERT: {table} batch time ({execution_time:.1f}s) exceeds threshold ({EXECUTION_TIME_THRESHOLD}s)")

    if report.get("selected") and success_rate < SUCCESS_RATE_THRESHOLD:
        alerts += 1
        logger.warning(f"ALERT: {table} success rate ({success_rate:.1f}%) below threshold ({SUCCESS_RATE_THRESHOLD}%)")

    errors = report.get("errors", [])
    if len(errors) > 10:
        alerts += 1
        logger.warning(f"ALERT: High error count ({len(errors)}) detected in {table} batch")

    if alerts:
        logger.warning("⚠ Batch performance issues detected - review alerts above")
    else:
        logger.info("✓ Batch performance within normal parameters")
