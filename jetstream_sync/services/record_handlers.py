"""Per-type handlers for the embeddable record types.

Each handler knows its table, key column and priority, how to pick the records
that still need a vector, how to render a record as text, and what bookkeeping
follows a successful embedding. ``HANDLERS`` maps every ``RecordType`` to its
handler and is read-only.
"""

import logging
from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from jetstream_sync.database.supabase_client import SupabaseStore
from jetstream_sync.models.embedding_models import GeneratedText, RecordType
from jetstream_sync.services.exceptions import (
    FallbackChainExhausted,
    RecordFetchError,
    SelectionError,
)
from jetstream_sync.services.fallback_chain import NamedStrategy, StrategyDeclined, run_fallback_chain
from jetstream_sync.services import record_text_service as texts

logger = logging.getLogger(__name__)

SELECT_ALL_PAGE_SIZE = 1000  # PostgREST's default max rows per response


class TypeHandler(ABC):
    record_type: RecordType
    table: str
    key_column: str = "id"
    priority: int

    # Optional database functions; None means the generic path is used
    selection_rpc: Optional[str] = None
    text_rpc: Optional[str] = None
    mark_embedded_rpc: Optional[str] = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(table={self.table!r}, priority={self.priority})"

    async def select_batch(self, store: SupabaseStore, limit: int) -> List[str]:
        """
        Keys of up to ``limit`` records whose embedding is null

        Raises:
            SelectionError: if neither the type's selection function nor the
                generic null filter could be queried
        """
        strategies = []
        if self.selection_rpc:
            strategies.append(NamedStrategy("selection_rpc", lambda: self._select_via_rpc(store, limit)))
        strategies.append(NamedStrategy(
            "null_embedding_filter",
            lambda: store.select_missing_embedding(self.table, self.key_column, limit),
        ))

        try:
            outcome = await run_fallback_chain(strategies, label=f"select {self.record_type.value}")
        except FallbackChainExhausted as e:
            raise SelectionError(str(e)) from e

        return outcome.value[:limit]

    async def _select_via_rpc(self, store: SupabaseStore, limit: int) -> List[str]:
        rows = await store.call_rpc(self.selection_rpc, {"limit_param": limit})
        if rows is None:
            raise StrategyDeclined(f"{self.selection_rpc} returned nothing")
        return [str(row[self.key_column]) if isinstance(row, dict) else str(row) for row in rows]

    async def select_all(self, store: SupabaseStore, limit: Optional[int] = None,
                         page_size: int = SELECT_ALL_PAGE_SIZE) -> List[str]:
        """
        Keys of every record regardless of embedding state, read page by page

        Stops at ``limit`` keys when given, otherwise at the first short page.
        """
        keys: List[str] = []
        try:
            while limit is None or len(keys) < limit:
                size = page_size if limit is None else min(page_size, limit - len(keys))
                page = await store.select_keys(self.table, self.key_column, size, offset=len(keys))
                keys.extend(page)
                if len(page) < size:
                    break
        except Exception as e:
            raise SelectionError(f"select all {self.record_type.value}: {str(e)}") from e

        logger.debug(f"Selected {len(keys)} {self.table} keys for bulk indexing")
        return keys

    async def generate_text(self, store: SupabaseStore, record_id: str) -> GeneratedText:
        """
        Render one record as text, trying the richest strategy first

        Raises:
            RecordFetchError: if every strategy failed
        """
        strategies = []
        if self.text_rpc:
            strategies.append(NamedStrategy("text_rpc", lambda: self._text_via_rpc(store, record_id)))
        strategies.append(NamedStrategy("rich", lambda: self.render_rich(store, record_id)))
        strategies.append(NamedStrategy("basic", lambda: self.render_basic(store, record_id)))

        try:
            outcome = await run_fallback_chain(strategies, label=f"text {self.record_type.value} {record_id}")
        except FallbackChainExhausted as e:
            last_error = e.attempts[-1].error if e.attempts else None
            raise RecordFetchError(self.table, record_id, last_error) from e

        text, source = outcome.value
        return GeneratedText(record_id=record_id, text=text, strategy=outcome.strategy, source=source)

    async def _text_via_rpc(self, store: SupabaseStore, record_id: str):
        text = await store.call_rpc(self.text_rpc, {"offer_id": record_id})
        if not text or not isinstance(text, str):
            raise StrategyDeclined(f"{self.text_rpc} returned no text")

        try:
            source = _source_payload(await self.fetch_record(store, record_id))
        except RecordFetchError as e:
            logger.warning(f"Could not load {self.table} {record_id} for its source payload: {str(e)}")
            source = {self.key_column: record_id}
        return text.strip(), source

    async def fetch_record(self, store: SupabaseStore, record_id: str) -> Dict[str, Any]:
        return await store.fetch_one(self.table, self.key_column, record_id)

    async def render_rich(self, store: SupabaseStore, record_id: str):
        """Record plus joined context; defaults to the basic rendering"""
        return await self.render_basic(store, record_id)

    async def render_basic(self, store: SupabaseStore, record_id: str):
        record = await self.fetch_record(store, record_id)
        return self.render(record), _source_payload(record)

    @abstractmethod
    def render(self, record: Dict[str, Any]) -> str:
        """Text for the record's own fields"""

    async def after_embed(self, store: SupabaseStore, record_id: str) -> None:
        """Type-specific bookkeeping once a record's vector is persisted"""
        if self.mark_embedded_rpc:
            await store.call_rpc(self.mark_embedded_rpc, {"offer_id": record_id})


def _source_payload(record: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in record.items() if k not in texts.PIPELINE_COLUMNS}


class OfferHandler(TypeHandler):
    record_type = RecordType.OFFERS
    table = "jetshare_offers"
    priority = 1
    selection_rpc = "get_jetshare_offers_needing_embedding"
    text_rpc = "generate_jetshare_offer_embedding_text"
    mark_embedded_rpc = "mark_jetshare_offer_as_embedded"

    async def render_rich(self, store, record_id):
        offer = await self.fetch_record(store, record_id)
        profile = await store.fetch_optional("profiles", "id", offer.get("user_id"))
        departure = await store.fetch_optional("airports", "code", offer.get("departure_location"),
                                               columns="name, city, country")
        arrival = await store.fetch_optional("airports", "code", offer.get("arrival_location"),
                                             columns="name, city, country")
        text = texts.render_offer_text(offer, departure=departure, arrival=arrival, profile=profile)
        return text, _source_payload(offer)

    def render(self, record):
        return texts.render_offer_text(record, enriched=False)


class FlightHandler(TypeHandler):
    record_type = RecordType.FLIGHTS
    table = "flights"
    priority = 2

    async def render_rich(self, store, record_id):
        flight = await self.fetch_record(store, record_id)
        jet = await store.fetch_optional("jets", "id", flight.get("jet_id"))
        return texts.render_flight_text(flight, jet=jet or {}), _source_payload(flight)

    def render(self, record):
        return texts.render_flight_text(record)


class AirportHandler(TypeHandler):
    record_type = RecordType.AIRPORTS
    table = "airports"
    key_column = "code"
    priority = 3

    def render(self, record):
        return texts.render_airport_text(record)


class AircraftHandler(TypeHandler):
    record_type = RecordType.AIRCRAFT
    table = "jets"
    priority = 4

    def render(self, record):
        return texts.render_aircraft_text(record)


class CrewHandler(TypeHandler):
    record_type = RecordType.CREWS
    table = "pilots_crews"
    priority = 5

    async def render_rich(self, store, record_id):
        crew = await self.fetch_record(store, record_id)
        certifications = await store.fetch_many("certifications", "crew_id", record_id)
        reviews = await store.fetch_many("reviews", "crew_id", record_id)
        text = texts.render_crew_text(crew, certifications=certifications, reviews=reviews)
        return text, _source_payload(crew)

    def render(self, record):
        return texts.render_crew_text(record)


class UserProfileHandler(TypeHandler):
    record_type = RecordType.USERS
    table = "profiles"
    priority = 6

    async def render_rich(self, store, record_id):
        profile = await self.fetch_record(store, record_id)
        enrichment = await self._enrich(store, record_id)
        return texts.render_user_text(profile, **enrichment), _source_payload(profile)

    async def _enrich(self, store: SupabaseStore, user_id: str) -> Dict[str, Any]:
        """
        Load the optional profile extensions.

        Each one is independent; a missing table or row only drops that
        section, it does not fail the rich rendering.
        """
        enrichment: Dict[str, Any] = {}

        try:
            enrichment["preferences"] = await store.fetch_optional("user_preferences", "user_id", user_id) or {}
        except Exception as e:
            logger.debug(f"No preferences found for user {user_id}: {str(e)}")

        try:
            enrichment["professional"] = await store.fetch_optional("professional_details", "user_id", user_id) or {}
        except Exception as e:
            logger.debug(f"No professional details found for user {user_id}: {str(e)}")

        try:
            rows = await store.fetch_many("user_interests", "user_id", user_id, columns="interest")
            enrichment["interests"] = [row.get("interest") for row in rows]
        except Exception as e:
            logger.debug(f"No interests found for user {user_id}: {str(e)}")

        try:
            enrichment["travel_history"] = await store.fetch_many("travel_history", "user_id", user_id)
        except Exception as e:
            logger.debug(f"No travel history found for user {user_id}: {str(e)}")

        return enrichment

    def render(self, record):
        return texts.render_user_text(record)


class SimulationLogHandler(TypeHandler):
    record_type = RecordType.SIMULATIONS
    table = "simulation_logs"
    priority = 7

    def render(self, record):
        return texts.render_simulation_text(record)


def _build_registry() -> Mapping[RecordType, TypeHandler]:
    handlers = [
        OfferHandler(),
        FlightHandler(),
        AirportHandler(),
        AircraftHandler(),
        CrewHandler(),
        UserProfileHandler(),
        SimulationLogHandler(),
    ]
    registry = {handler.record_type: handler for handler in handlers}

    missing = set(RecordType) - set(registry)
    if missing:
        raise RuntimeError(f"No handler registered for: {sorted(m.value for m in missing)}")

    priorities = [handler.priority for handler in handlers]
    if len(set(priorities)) != len(priorities):
        raise RuntimeError("Handler priorities must be unique")

    return MappingProxyType(registry)


HANDLERS: Mapping[RecordType, TypeHandler] = _build_registry()


def get_handler(record_type: RecordType) -> TypeHandler:
    return HANDLERS[RecordType(record_type)]


def handlers_by_priority(only: Optional[RecordType] = None) -> List[TypeHandler]:
    """Handlers to run in a pass, lowest priority number first"""
    if only is not None:
        return [get_handler(only)]
    return sorted(HANDLERS.values(), key=lambda handler: handler.priority)
