"""Ordered fallback strategies.

Store reads and writes often have a preferred path (a database function, a
joined query, an optional column) and one or more degraded paths. Instead of
nesting try/except blocks, callers list named strategies in order and
``run_fallback_chain`` tries them until one succeeds. Every attempt is
recorded so the order is auditable in logs and tests.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from jetstream_sync.services.exceptions import FallbackChainExhausted

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StrategyDeclined(Exception):
    """Raised by a strategy that ran but produced nothing usable."""


@dataclass(frozen=True)
class NamedStrategy(Generic[T]):
    name: str
    run: Callable[[], Awaitable[T]]


@dataclass(frozen=True)
class StrategyResult(Generic[T]):
    strategy: str
    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ChainOutcome(Generic[T]):
    """Winning result plus the failed attempts that preceded it"""
    result: StrategyResult[T]
    attempts: List[StrategyResult[Any]]

    @property
    def value(self) -> T:
        return self.result.value

    @property
    def strategy(self) -> str:
        return self.result.strategy


async def run_fallback_chain(strategies: Sequence[NamedStrategy[T]], label: str) -> ChainOutcome[T]:
    """
    Try each strategy in order and return the first success.

    Raises:
        FallbackChainExhausted: if every strategy raised. The last error is chained.
    """
    attempts: List[StrategyResult[Any]] = []
    last_error: Optional[BaseException] = None

    for strategy in strategies:
        try:
            value = await strategy.run()
        except Exception as e:
            last_error = e
            attempts.append(StrategyResult(strategy=strategy.name, error=str(e) or type(e).__name__))
            logger.debug(f"{label}: strategy '{strategy.name}' failed: {str(e)}")
            continue

        if attempts:
            logger.info(f"{label}: fell back to '{strategy.name}' after {len(attempts)} failed attempt(s)")
        return ChainOutcome(result=StrategyResult(strategy=strategy.name, value=value), attempts=attempts)

    raise FallbackChainExhausted(label, attempts) from last_error
