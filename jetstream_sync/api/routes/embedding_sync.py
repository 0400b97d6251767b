# API Routes for the Embedding Sync Pipeline
from fastapi import APIRouter, Depends, HTTPException
from functools import lru_cache
import logging

from jetstream_sync.models.request_models import RunPassRequest, ReindexEntityRequest
from jetstream_sync.models.response_models import (
    HandlerStatus,
    PassSummaryResponse,
    ReindexEntityResponse,
    SyncStatusResponse,
)
from jetstream_sync.pipelines.embedding_sync_orchestrator import EmbeddingSyncOrchestrator, build_orchestrator
from jetstream_sync.services.exceptions import RecordFetchError

logger = logging.getLogger(__name__)
router = APIRouter()


@lru_cache(maxsize=1)
def _shared_orchestrator() -> EmbeddingSyncOrchestrator:
    """Single orchestrator (and rate limiter) shared by every request"""
    return build_orchestrator()


def get_orchestrator() -> EmbeddingSyncOrchestrator:
    try:
        return _shared_orchestrator()
    except ValueError as e:
        logger.error(f"Embedding sync pipeline is not configured: {str(e)}")
        raise HTTPException(status_code=503, detail=f"Embedding sync pipeline is not configured: {str(e)}")


@router.post("/run-pass", response_model=PassSummaryResponse)
async def run_pass(request: RunPassRequest,
                   orchestrator: EmbeddingSyncOrchestrator = Depends(get_orchestrator)):
    """
    Run one embedding pass over every record type (or only one)
    """
    try:
        logger.info(f"Triggering embedding pass via API (only={request.only}, batch_size={request.batch_size})")
        summary = await orchestrator.run_pass(only=request.only, batch_size=request.batch_size,
                                              dry_run=request.dry_run)

        return PassSummaryResponse(
            success=not summary.failed_types,
            message=f"Embedded {summary.total_processed} records",
            results=summary.results,
            failed_types=summary.failed_types,
            archived_count=summary.archived_count,
            total_processed=summary.total_processed,
            duration_seconds=summary.duration_seconds,
            dry_run=summary.dry_run,
        )

    except Exception as e:
        logger.error(f"Error running embedding pass via API: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to run embedding pass: {str(e)}")


@router.post("/reindex-entity", response_model=ReindexEntityResponse)
async def reindex_entity(request: ReindexEntityRequest,
                         orchestrator: EmbeddingSyncOrchestrator = Depends(get_orchestrator)):
    """
    Re-embed a single record on demand
    """
    try:
        outcome = await orchestrator.reindex_entity(request.type, request.id, dry_run=request.dry_run)
    except Exception as e:
        logger.error(f"Error reindexing {request.type.value} {request.id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to reindex entity: {str(e)}")

    if not outcome.success:
        status_code = 404 if outcome.error_type == RecordFetchError.__name__ else 502
        raise HTTPException(status_code=status_code, detail=outcome.error)

    return ReindexEntityResponse(
        message=f"Reindexed {request.type.value} {request.id}",
        type=request.type.value,
        id=request.id,
        text_strategy=outcome.text_strategy,
        raw_dimension=outcome.raw_dimension,
        persisted=outcome.persisted,
    )


@router.get("/status", response_model=SyncStatusResponse)
def get_sync_status(orchestrator: EmbeddingSyncOrchestrator = Depends(get_orchestrator)):
    """
    Configured record types in processing order and the current rate window
    """
    status = orchestrator.status()
    rate_limit = status["rate_limit"]
    return SyncStatusResponse(
        message="Embedding sync pipeline is available",
        target=status["target"],
        dry_run=status["dry_run"],
        handlers=[HandlerStatus(**h) for h in status["handlers"]],
        calls_in_window=rate_limit.get("calls_in_window", 0),
        rate_limit_calls=rate_limit.get("max_calls", 0),
        rate_limit_window_seconds=rate_limit.get("window_seconds", 0.0),
    )
