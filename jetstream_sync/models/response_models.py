# Pydantic models for outgoing API responses
from pydantic import BaseModel
from typing import Dict, List, Optional

class BaseResponse(BaseModel):
    """Base response model for API endpoints"""
    success: bool = True
    message: Optional[str] = None

class PassSummaryResponse(BaseResponse):
    results: Dict[str, int]
    failed_types: List[str] = []
    archived_count: int = 0
    total_processed: int = 0
    duration_seconds: float = 0.0
    dry_run: bool = False

class ReindexEntityResponse(BaseResponse):
    type: str
    id: str
    text_strategy: Optional[str] = None
    raw_dimension: Optional[int] = None
    persisted: bool = False

class HandlerStatus(BaseModel):
    record_type: str
    table: str
    priority: int

class SyncStatusResponse(BaseResponse):
    target: str
    dry_run: bool = False
    handlers: List[HandlerStatus]
    calls_in_window: int = 0
    rate_limit_calls: int = 0
    rate_limit_window_seconds: float = 0.0
