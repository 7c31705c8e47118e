"""
Multi-token query aggregator.

Fans a batch of token (or holder) lookups out to a lookup provider and
assembles the answers, in request order, under a single observation taken
from the observation clock. A batch either succeeds as a whole or raises;
no partial result is ever returned.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar

from .base import (
    DEFAULT_MAX_BATCH_SIZE,
    BalanceOnlyResult,
    BatchResult,
    HolderBalancesResult,
    LookupProvider,
    Observation,
    ObservationClock,
    SingleTokenResult,
    TokenInfo,
    TokenLookup,
    normalize_address,
    validate_batch,
)
from .errors import InvalidInput, LookupFailure, ObservationUnavailable, QueryError

T = TypeVar("T")

MAX_DECIMALS = 255


@dataclass
class AggregatorConfig:
    """Configuration for aggregated queries."""

    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
    max_concurrency: int = 1

    def __post_init__(self):
        if self.max_batch_size < 1:
            raise InvalidInput(f"max_batch_size must be positive, got {self.max_batch_size}")
        if self.max_concurrency < 1:
            raise InvalidInput(f"max_concurrency must be positive, got {self.max_concurrency}")

    @classmethod
    def from_settings(cls, settings: Any) -> "AggregatorConfig":
        """Build from a QueryConfig (or anything exposing the same attributes)."""
        return cls(
            max_batch_size=settings.MAX_BATCH_SIZE,
            max_concurrency=settings.MAX_CONCURRENCY,
        )


class MultiTokenAggregator:
    """
    Aggregates independent token lookups into one consistent snapshot.

    The observation is read once per call, before any lookup, and every
    lookup is pinned to its block. With max_concurrency == 1 lookups run
    strictly in request order; higher values run them concurrently while
    still returning results in request order.
    """

    def __init__(
        self,
        provider: LookupProvider,
        clock: ObservationClock,
        config: Optional[AggregatorConfig] = None,
    ):
        self.provider = provider
        self.clock = clock
        self.config = config or AggregatorConfig()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def query_multiple_tokens(
        self, holder: str, tokens: Sequence[str]
    ) -> BatchResult:
        """
        Fetch symbol, decimals and balance of every token for a holder.

        Args:
            holder: Address whose balances are requested
            tokens: Token addresses, may be empty or contain duplicates

        Returns:
            BatchResult with one TokenInfo per requested token, in request order

        Raises:
            InvalidInput: Malformed address or batch above the size ceiling
            ObservationUnavailable: The clock could not be read
            LookupFailure: Any single token lookup failed
        """
        holder = normalize_address(holder, "holder")
        tokens = validate_batch(tokens, self.config.max_batch_size, "tokens")

        observation = await self._observe()
        self.logger.debug(
            f"Querying {len(tokens)} tokens for {holder} at block {observation.block_number}"
        )

        async def _lookup(token: str) -> TokenInfo:
            answer = await self.provider.lookup(
                token, holder, block_identifier=observation.block_number
            )
            return self._to_token_info(token, answer)

        token_infos = await self._fan_out(tokens, _lookup)

        return BatchResult(
            query_address=holder,
            tokens=tuple(token_infos),
            timestamp=observation.timestamp,
            block_number=observation.block_number,
        )

    async def query_balances(
        self, holder: str, tokens: Sequence[str]
    ) -> BalanceOnlyResult:
        """
        Fetch only the holder's balance of every token.

        Same ordering, snapshot and failure rules as query_multiple_tokens,
        without fetching symbol and decimals.
        """
        holder = normalize_address(holder, "holder")
        tokens = validate_batch(tokens, self.config.max_batch_size, "tokens")

        observation = await self._observe()

        async def _balance(token: str) -> int:
            balance = await self.provider.balance_of(
                token, holder, block_identifier=observation.block_number
            )
            return self._checked_balance(token, balance)

        balances = await self._fan_out(tokens, _balance)

        return BalanceOnlyResult(
            balances=tuple(balances),
            timestamp=observation.timestamp,
            block_number=observation.block_number,
        )

    async def query_single_token(self, holder: str, token: str) -> SingleTokenResult:
        """Query one token; identical to indexing a one-element batch."""
        token = normalize_address(token, "token")
        batch = await self.query_multiple_tokens(holder, [token])
        return SingleTokenResult(
            query_address=batch.query_address,
            token=batch.tokens[0],
            timestamp=batch.timestamp,
            block_number=batch.block_number,
        )

    async def query_across_holders(
        self, holders: Sequence[str], token: str
    ) -> HolderBalancesResult:
        """
        Fetch one token's balance for many holders.

        LookupFailure raised from here carries the holder address that could
        not be looked up.
        """
        token = normalize_address(token, "token")
        holders = validate_batch(holders, self.config.max_batch_size, "holders")

        observation = await self._observe()

        async def _balance(holder: str) -> int:
            try:
                balance = await self.provider.balance_of(
                    token, holder, block_identifier=observation.block_number
                )
            except LookupFailure as e:
                raise LookupFailure(holder, f"{token}: {e.reason or e}") from e
            return self._checked_balance(holder, balance)

        balances = await self._fan_out(holders, _balance)

        return HolderBalancesResult(
            token_address=token,
            holders=tuple(holders),
            balances=tuple(balances),
            timestamp=observation.timestamp,
            block_number=observation.block_number,
        )

    async def _observe(self) -> Observation:
        try:
            observation = await self.clock.now()
        except ObservationUnavailable:
            raise
        except Exception as e:
            self.logger.error(f"Observation clock failed: {e}")
            raise ObservationUnavailable(f"Observation clock failed: {e}") from e

        if not isinstance(observation, Observation):
            raise ObservationUnavailable(
                f"Observation clock returned {type(observation).__name__}"
            )
        for name in ("timestamp", "block_number"):
            value = getattr(observation, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ObservationUnavailable(
                    f"Observation clock returned invalid {name}: {value!r}"
                )
        return observation

    async def _fan_out(
        self, identifiers: List[str], operation: Callable[[str], Awaitable[T]]
    ) -> List[T]:
        """
        Run operation for every identifier, returning results in input order.

        The first failure aborts the batch; outstanding lookups are cancelled.
        """
        if self.config.max_concurrency == 1 or len(identifiers) <= 1:
            results = []
            for identifier in identifiers:
                results.append(await self._guarded(identifier, operation))
            return results

        semaphore = asyncio.Semaphore(self.config.max_concurrency)

        async def _bounded(identifier: str) -> T:
            async with semaphore:
                return await self._guarded(identifier, operation)

        tasks = [asyncio.ensure_future(_bounded(i)) for i in identifiers]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _guarded(
        self, identifier: str, operation: Callable[[str], Awaitable[T]]
    ) -> T:
        try:
            return await operation(identifier)
        except QueryError as e:
            self.logger.warning(f"Batch aborted at {identifier}: {e}")
            raise
        except Exception as e:
            self.logger.warning(f"Batch aborted at {identifier}: {e}")
            raise LookupFailure(identifier, str(e)) from e

    def _to_token_info(self, token: str, answer: TokenLookup) -> TokenInfo:
        """Check the provider's answer and attach the token address."""
        if not isinstance(answer, TokenLookup):
            raise LookupFailure(token, f"unexpected response {type(answer).__name__}")
        if not isinstance(answer.symbol, str):
            raise LookupFailure(token, "symbol is missing or not text")
        if (
            not isinstance(answer.decimals, int)
            or isinstance(answer.decimals, bool)
            or not 0 <= answer.decimals <= MAX_DECIMALS
        ):
            raise LookupFailure(token, f"decimals out of range: {answer.decimals!r}")

        return TokenInfo(
            address=token,
            symbol=answer.symbol,
            decimals=answer.decimals,
            balance=self._checked_balance(token, answer.balance),
        )

    def _checked_balance(self, identifier: str, balance: Any) -> int:
        if not isinstance(balance, int) or isinstance(balance, bool) or balance < 0:
            raise LookupFailure(identifier, f"malformed balance: {balance!r}")
        return balance
