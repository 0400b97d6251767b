# Data classes for records flowing through the embedding sync pipeline
from enum import Enum
from pydantic import BaseModel
from typing import List, Dict, Any, Optional


class RecordType(str, Enum):
    """Closed set of domain record types the worker embeds"""
    OFFERS = "offers"
    FLIGHTS = "flights"
    CREWS = "crews"
    USERS = "users"
    SIMULATIONS = "simulations"
    AIRPORTS = "airports"
    AIRCRAFT = "aircraft"

    @property
    def type_tag(self) -> str:
        """Tag stored alongside vectors in the vector index"""
        return _TYPE_TAGS[self]


_TYPE_TAGS = {
    RecordType.OFFERS: "jetshare_offer",
    RecordType.FLIGHTS: "flight",
    RecordType.CREWS: "crew",
    RecordType.USERS: "user",
    RecordType.SIMULATIONS: "simulation",
    RecordType.AIRPORTS: "airport",
    RecordType.AIRCRAFT: "aircraft",
}


class GeneratedText(BaseModel):
    """Text produced for one record, with the strategy that produced it"""
    record_id: str
    text: str
    strategy: str
    source: Dict[str, Any] = {}


class EmbeddingRecord(BaseModel):
    """Point written to the vector index"""
    item_id: str
    record_type: RecordType
    text: str
    embedding: List[float]
    metadata: Dict[str, Any] = {}


class RecordOutcome(BaseModel):
    """Result of embedding a single record"""
    record_type: RecordType
    record_id: str
    success: bool
    text_strategy: Optional[str] = None
    raw_dimension: Optional[int] = None
    persisted: bool = False
    error: Optional[str] = None
    error_type: Optional[str] = None
