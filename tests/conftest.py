"""Shared fixtures: an in-memory store, a fake embedder and a controllable clock."""

import asyncio
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import pytest

from jetstream_sync.database.supabase_client import SupabaseStore
from jetstream_sync.models.embedding_sync_models import EmbeddingSyncSettings
from jetstream_sync.pipelines.embedding_sync_orchestrator import EmbeddingSyncOrchestrator
from jetstream_sync.services.exceptions import PersistenceError, RecordFetchError


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


class SleepRecorder:
    """Async sleep replacement that records durations and optionally advances a clock"""

    def __init__(self, clock: Optional[FakeClock] = None):
        self.calls: List[float] = []
        self.clock = clock

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.clock is not None:
            self.clock.now += seconds


class FakeStore(SupabaseStore):
    """
    In-memory stand-in for the Supabase tables.

    ``rpcs`` maps function names to a value or a callable taking the params;
    calling an unknown function raises like PostgREST does.
    """

    def __init__(self,
                 tables: Optional[Dict[str, List[Dict[str, Any]]]] = None,
                 rpcs: Optional[Dict[str, Union[Any, Callable[[Dict[str, Any]], Any]]]] = None,
                 no_timestamp_tables: Iterable[str] = ()):
        super().__init__(url="http://supabase.test", key="test-key")
        self.tables = {name: [dict(row) for row in rows] for name, rows in (tables or {}).items()}
        self.rpcs = dict(rpcs or {})
        self.no_timestamp_tables = set(no_timestamp_tables)
        self.calls: List[tuple] = []

        self.failing_selection_tables = set()
        self.failing_lookup_tables = set()
        self.failing_update_tables = set()
        self.missing_on_fetch = set()

    async def _get_client(self):
        raise AssertionError("FakeStore never opens a real client")

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def row(self, table: str, key: str, key_column: str = "id") -> Dict[str, Any]:
        return next(r for r in self.rows(table) if str(r.get(key_column)) == key)

    def selected_tables(self) -> List[str]:
        return [call[1] for call in self.calls if call[0] in ("select", "select_keys")]

    def rpc_calls(self, name: str) -> List[Dict[str, Any]]:
        return [call[2] for call in self.calls if call[0] == "rpc" and call[1] == name]

    async def call_rpc(self, function_name, params=None):
        self.calls.append(("rpc", function_name, params or {}))
        if function_name not in self.rpcs:
            raise Exception(f"Could not find the function public.{function_name}")
        handler = self.rpcs[function_name]
        return handler(params or {}) if callable(handler) else handler

    async def select_missing_embedding(self, table, key_column, limit):
        self.calls.append(("select", table, limit))
        if table in self.failing_selection_tables:
            raise Exception(f"relation {table} is unavailable")
        pending = [r for r in self.rows(table) if r.get("embedding") is None]
        return [str(r[key_column]) for r in pending[:limit]]

    async def select_keys(self, table, key_column, limit, offset=0):
        self.calls.append(("select_keys", table, limit))
        if table in self.failing_selection_tables:
            raise Exception(f"relation {table} is unavailable")
        ordered = sorted(self.rows(table), key=lambda r: str(r[key_column]))
        return [str(r[key_column]) for r in ordered[offset:offset + limit]]

    async def fetch_one(self, table, key_column, key, columns="*"):
        self.calls.append(("fetch", table, key))
        if (table, key) in self.missing_on_fetch:
            raise RecordFetchError(table, key)
        for row in self.rows(table):
            if str(row.get(key_column)) == key:
                return dict(row)
        raise RecordFetchError(table, key)

    async def fetch_optional(self, table, column, value, columns="*"):
        self.calls.append(("lookup", table, value))
        if table in self.failing_lookup_tables:
            raise Exception(f"relation {table} is unavailable")
        if value is None:
            return None
        for row in self.rows(table):
            if row.get(column) == value:
                return dict(row)
        return None

    async def fetch_many(self, table, column, value, columns="*", order_by=None):
        self.calls.append(("lookup", table, value))
        if table in self.failing_lookup_tables:
            raise Exception(f"relation {table} is unavailable")
        return [dict(row) for row in self.rows(table) if row.get(column) == value]

    async def update_row(self, table, key_column, key, values):
        self.calls.append(("update", table, key, sorted(values)))
        if table in self.failing_update_tables:
            raise PersistenceError(f"{table} is read only")
        if "embedding_updated_at" in values and table in self.no_timestamp_tables:
            raise Exception(f"column {table}.embedding_updated_at does not exist")
        for row in self.rows(table):
            if str(row.get(key_column)) == key:
                row.update(values)
                return dict(row)
        raise PersistenceError(f"No {table} row updated for {key_column}={key}")


class FakeEmbedder:
    """Returns a fixed-width vector per text and tracks how many calls overlap"""

    def __init__(self, dimension: int = 1536, fail_on: Optional[str] = None):
        self.dimension = dimension
        self.fail_on = fail_on
        self.rate_limiter = None
        self.texts: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def embed(self, text: str) -> List[float]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            self.texts.append(text)
            if self.fail_on and self.fail_on in text:
                raise RuntimeError("provider rejected the request")
            return [0.5] * self.dimension
        finally:
            self.in_flight -= 1


def sample_tables() -> Dict[str, List[Dict[str, Any]]]:
    """One pending record per type plus the rows they join to"""
    return {
        "jetshare_offers": [{
            "id": "offer-1", "status": "open", "user_id": "user-1",
            "departure_location": "JFK", "arrival_location": "LAX",
            "flight_date": "2026-11-02", "aircraft_model": "Gulfstream G650",
            "total_flight_cost": 48000, "requested_share_amount": 12000,
            "available_seats": 3, "total_seats": 8,
            "created_at": "2026-10-01T10:00:00Z", "embedding": None,
        }],
        "flights": [{
            "id": "flight-1", "jet_id": "jet-1", "departure_location": "JFK",
            "arrival_location": "MIA", "flight_date": "2026-11-05", "available_seats": 6,
            "status": "scheduled", "embedding": None,
        }],
        "airports": [
            {"code": "JFK", "name": "John F. Kennedy International", "city": "New York",
             "country": "USA", "embedding": None},
            {"code": "LAX", "name": "Los Angeles International", "city": "Los Angeles",
             "country": "USA", "embedding": None},
        ],
        "jets": [{
            "id": "jet-1", "model": "G650", "manufacturer": "Gulfstream", "range": 7000,
            "passenger_capacity": 14, "cruise_speed": 610, "embedding": None,
        }],
        "pilots_crews": [{
            "id": "crew-1", "name": "Dana Reyes", "role": "Captain", "experience_years": 12,
            "is_available": True, "embedding": None,
        }],
        "profiles": [{
            "id": "user-1", "first_name": "Sam", "last_name": "Okafor",
            "email": "sam@example.com", "embedding": None,
        }],
        "simulation_logs": [{
            "id": "sim-1", "scenario": "demand_spike", "result": {"bookings": 42}, "embedding": None,
        }],
    }


@pytest.fixture
def settings() -> EmbeddingSyncSettings:
    return EmbeddingSyncSettings(
        supabase_url="http://supabase.test",
        supabase_key="test-key",
        cohere_api_key="test-cohere-key",
    )


@pytest.fixture
def store() -> FakeStore:
    return FakeStore(sample_tables())


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def orchestrator(store, embedder, settings, sleep) -> EmbeddingSyncOrchestrator:
    return EmbeddingSyncOrchestrator(store=store, embedder=embedder, settings=settings, sleep=sleep)
