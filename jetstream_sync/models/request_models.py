# Pydantic models for incoming API requests
from pydantic import BaseModel, Field
from typing import Optional

from jetstream_sync.models.embedding_models import RecordType

class RunPassRequest(BaseModel):
    only: Optional[RecordType] = None  # None runs every configured type
    batch_size: Optional[int] = Field(None, gt=0)  # None uses the configured default
    dry_run: bool = False

class ReindexEntityRequest(BaseModel):
    type: RecordType
    id: str
    dry_run: bool = False
