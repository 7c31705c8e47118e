"""Tests for MultiTokenAggregator."""

from unittest.mock import AsyncMock

import pytest

from src.multiquery.aggregator import AggregatorConfig, MultiTokenAggregator
from src.multiquery.base import Observation, TokenLookup
from src.multiquery.errors import InvalidInput, LookupFailure, ObservationUnavailable
from src.multiquery.tests.conftest import (
    BLOCK_NUMBER,
    DAI,
    HOLDER,
    OTHER_HOLDER,
    THIRD_HOLDER,
    TIMESTAMP,
    USDC,
    USDT,
    WETH,
    FakeLookupProvider,
)


class TestQueryMultipleTokens:
    """Test cases for the batch metadata and balance query."""

    @pytest.fixture
    def aggregator(self, provider, clock):
        return MultiTokenAggregator(provider, clock)

    @pytest.mark.asyncio
    async def test_stablecoin_example(self, aggregator):
        """USDC, USDT and DAI come back with their metadata and balances."""
        result = await aggregator.query_multiple_tokens(HOLDER, [USDC, USDT, DAI])

        assert result.query_address == HOLDER
        assert result.tokens[0].symbol == "USDC"
        assert result.tokens[1].balance == 2000 * 10**6
        assert result.tokens[2].decimals == 18
        assert result.timestamp > 0
        assert result.block_number == BLOCK_NUMBER

    @pytest.mark.asyncio
    async def test_results_follow_request_order(self, aggregator):
        request = [DAI, USDC, USDT]

        result = await aggregator.query_multiple_tokens(HOLDER, request)

        assert [token.address for token in result.tokens] == request
        assert [token.symbol for token in result.tokens] == ["DAI", "USDC", "USDT"]

    @pytest.mark.asyncio
    async def test_duplicates_are_looked_up_independently(self, aggregator, provider):
        request = [USDC, DAI, USDC, USDC]

        result = await aggregator.query_multiple_tokens(HOLDER, request)

        assert len(result.tokens) == len(request)
        assert [token.address for token in result.tokens] == request
        lookups = [call for call in provider.calls if call[0] == "lookup"]
        assert [call[1] for call in lookups] == request

    @pytest.mark.asyncio
    async def test_empty_batch_has_observation(self, aggregator, provider):
        result = await aggregator.query_multiple_tokens(HOLDER, [])

        assert result.tokens == ()
        assert result.timestamp == TIMESTAMP
        assert result.block_number == BLOCK_NUMBER
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_observation_is_read_once_and_pins_lookups(self, provider):
        clock = AsyncMock()
        clock.now.return_value = Observation(timestamp=TIMESTAMP, block_number=BLOCK_NUMBER)
        aggregator = MultiTokenAggregator(provider, clock)

        result = await aggregator.query_multiple_tokens(HOLDER, [USDC, USDT, DAI])

        clock.now.assert_awaited_once()
        assert result.observation == Observation(TIMESTAMP, BLOCK_NUMBER)
        assert {call[3] for call in provider.calls} == {BLOCK_NUMBER}
        assert {call[2] for call in provider.calls} == {HOLDER}

    @pytest.mark.asyncio
    async def test_lowercase_addresses_are_checksummed(self, aggregator):
        result = await aggregator.query_multiple_tokens(HOLDER.lower(), [USDC.lower()])

        assert result.query_address == HOLDER
        assert result.tokens[0].address == USDC

    @pytest.mark.asyncio
    async def test_failure_aborts_whole_batch(self, stablecoins, clock):
        provider = FakeLookupProvider(stablecoins, failing=[USDT])
        aggregator = MultiTokenAggregator(provider, clock)

        with pytest.raises(LookupFailure) as exc_info:
            await aggregator.query_multiple_tokens(HOLDER, [USDC, USDT, DAI])

        assert exc_info.value.identifier == USDT
        # Sequential lookups stop at the failing token
        assert [call[1] for call in provider.calls] == [USDC, USDT]

    @pytest.mark.asyncio
    async def test_unknown_token_surfaces_as_lookup_failure(self, aggregator):
        with pytest.raises(LookupFailure) as exc_info:
            await aggregator.query_multiple_tokens(HOLDER, [USDC, WETH])

        assert exc_info.value.identifier == WETH
        assert isinstance(exc_info.value.__cause__, KeyError)

    @pytest.mark.parametrize("bad_answer", [
        TokenLookup(symbol="BAD", decimals=256, balance=1),
        TokenLookup(symbol="BAD", decimals=-1, balance=1),
        TokenLookup(symbol="BAD", decimals=18, balance=-5),
        TokenLookup(symbol=None, decimals=18, balance=1),
        TokenLookup(symbol="BAD", decimals=18, balance=None),
    ])
    @pytest.mark.asyncio
    async def test_malformed_answer_is_lookup_failure(self, stablecoins, clock, bad_answer):
        stablecoins[WETH] = bad_answer
        aggregator = MultiTokenAggregator(FakeLookupProvider(stablecoins), clock)

        with pytest.raises(LookupFailure) as exc_info:
            await aggregator.query_multiple_tokens(HOLDER, [USDC, WETH])

        assert exc_info.value.identifier == WETH

    @pytest.mark.asyncio
    async def test_zero_balance_is_a_valid_answer(self, stablecoins, clock):
        stablecoins[WETH] = TokenLookup(symbol="WETH", decimals=18, balance=0)
        aggregator = MultiTokenAggregator(FakeLookupProvider(stablecoins), clock)

        result = await aggregator.query_multiple_tokens(HOLDER, [WETH])

        assert result.tokens[0].balance == 0

    @pytest.mark.asyncio
    async def test_unexpected_provider_error_is_wrapped(self, clock):
        provider = AsyncMock()
        provider.lookup.side_effect = RuntimeError("connection reset")
        aggregator = MultiTokenAggregator(provider, clock)

        with pytest.raises(LookupFailure, match="connection reset") as exc_info:
            await aggregator.query_multiple_tokens(HOLDER, [DAI])

        assert exc_info.value.identifier == DAI


class TestInputValidation:
    """Requests rejected before any lookup or clock read."""

    @pytest.fixture
    def clock(self):
        clock = AsyncMock()
        clock.now.return_value = Observation(timestamp=TIMESTAMP, block_number=BLOCK_NUMBER)
        return clock

    @pytest.mark.asyncio
    async def test_batch_above_ceiling(self, provider, clock):
        aggregator = MultiTokenAggregator(
            provider, clock, AggregatorConfig(max_batch_size=2)
        )

        with pytest.raises(InvalidInput, match="ceiling"):
            await aggregator.query_multiple_tokens(HOLDER, [USDC, USDT, DAI])

        assert provider.calls == []
        clock.now.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_batch_at_ceiling_is_accepted(self, provider, clock):
        aggregator = MultiTokenAggregator(
            provider, clock, AggregatorConfig(max_batch_size=3)
        )

        result = await aggregator.query_balances(HOLDER, [USDC, USDT, DAI])

        assert len(result.balances) == 3

    @pytest.mark.parametrize("holder,tokens", [
        ("0x1234", [USDC]),
        ("", [USDC]),
        (None, [USDC]),
        (HOLDER, [USDC, "not-an-address"]),
        (HOLDER, None),
        (HOLDER, USDC),
    ])
    @pytest.mark.asyncio
    async def test_malformed_request(self, provider, clock, holder, tokens):
        aggregator = MultiTokenAggregator(provider, clock)

        with pytest.raises(InvalidInput):
            await aggregator.query_multiple_tokens(holder, tokens)

        assert provider.calls == []
        clock.now.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_wrong_checksum_token_rejected(self, provider, clock):
        aggregator = MultiTokenAggregator(provider, clock)
        broken = USDC[:2] + USDC[2:].swapcase()

        with pytest.raises(InvalidInput):
            await aggregator.query_multiple_tokens(HOLDER, [broken])

        assert provider.calls == []
        clock.now.assert_not_awaited()

    def test_config_rejects_non_positive_limits(self):
        with pytest.raises(InvalidInput):
            AggregatorConfig(max_batch_size=0)
        with pytest.raises(InvalidInput):
            AggregatorConfig(max_concurrency=0)

    def test_config_from_settings(self):
        class Settings:
            MAX_BATCH_SIZE = 50
            MAX_CONCURRENCY = 4

        config = AggregatorConfig.from_settings(Settings())

        assert config.max_batch_size == 50
        assert config.max_concurrency == 4


class TestObservation:
    """Observation clock failures."""

    @pytest.mark.asyncio
    async def test_clock_error_is_observation_unavailable(self, provider):
        clock = AsyncMock()
        clock.now.side_effect = ConnectionError("node offline")
        aggregator = MultiTokenAggregator(provider, clock)

        with pytest.raises(ObservationUnavailable, match="node offline"):
            await aggregator.query_multiple_tokens(HOLDER, [USDC])

        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_clock_returning_garbage(self, provider):
        clock = AsyncMock()
        clock.now.return_value = (TIMESTAMP, BLOCK_NUMBER)
        aggregator = MultiTokenAggregator(provider, clock)

        with pytest.raises(ObservationUnavailable):
            await aggregator.query_balances(HOLDER, [USDC])

    @pytest.mark.parametrize("timestamp,block_number", [
        (None, BLOCK_NUMBER),
        (TIMESTAMP, None),
        (-1, BLOCK_NUMBER),
        (TIMESTAMP, -5),
        (True, BLOCK_NUMBER),
    ])
    @pytest.mark.asyncio
    async def test_clock_returning_invalid_values(self, provider, timestamp, block_number):
        clock = AsyncMock()
        clock.now.return_value = Observation(timestamp=timestamp, block_number=block_number)
        aggregator = MultiTokenAggregator(provider, clock)

        with pytest.raises(ObservationUnavailable, match="invalid"):
            await aggregator.query_multiple_tokens(HOLDER, [USDC])

        assert provider.calls == []


class TestQueryVariants:
    """Balance-only, single token and cross-holder queries."""

    @pytest.fixture
    def aggregator(self, provider, clock):
        return MultiTokenAggregator(provider, clock)

    @pytest.mark.asyncio
    async def test_query_balances(self, aggregator, provider):
        result = await aggregator.query_balances(HOLDER, [DAI, USDC])

        assert result.balances == (3000 * 10**18, 1000 * 10**6)
        assert result.timestamp == TIMESTAMP
        assert result.block_number == BLOCK_NUMBER
        assert {call[0] for call in provider.calls} == {"balance_of"}

    @pytest.mark.asyncio
    async def test_query_balances_failure(self, stablecoins, clock):
        aggregator = MultiTokenAggregator(
            FakeLookupProvider(stablecoins, failing=[DAI]), clock
        )

        with pytest.raises(LookupFailure) as exc_info:
            await aggregator.query_balances(HOLDER, [USDC, DAI])

        assert exc_info.value.identifier == DAI

    @pytest.mark.asyncio
    async def test_single_token_matches_batch_of_one(self, aggregator):
        single = await aggregator.query_single_token(HOLDER, USDT)
        batch = await aggregator.query_multiple_tokens(HOLDER, [USDT])

        assert single.token == batch.tokens[0]
        assert single.query_address == batch.query_address
        assert single.observation == batch.observation

    @pytest.mark.asyncio
    async def test_single_token_failure(self, stablecoins, clock):
        aggregator = MultiTokenAggregator(
            FakeLookupProvider(stablecoins, failing=[USDC]), clock
        )

        with pytest.raises(LookupFailure):
            await aggregator.query_single_token(HOLDER, USDC)

    @pytest.mark.asyncio
    async def test_query_across_holders(self, stablecoins, clock):
        provider = FakeLookupProvider(
            stablecoins,
            holder_balances={HOLDER: 5, OTHER_HOLDER: 0, THIRD_HOLDER: 7},
        )
        aggregator = MultiTokenAggregator(provider, clock)
        holders = [THIRD_HOLDER, HOLDER, OTHER_HOLDER]

        result = await aggregator.query_across_holders(holders, USDC)

        assert result.token_address == USDC
        assert result.holders == tuple(holders)
        assert result.balances == (7, 5, 0)
        assert result.observation == Observation(TIMESTAMP, BLOCK_NUMBER)
        assert [call[2] for call in provider.calls] == holders

    @pytest.mark.asyncio
    async def test_query_across_holders_failure_names_holder(self, stablecoins, clock):
        provider = FakeLookupProvider(
            stablecoins,
            holder_balances={HOLDER: 5, OTHER_HOLDER: 1},
            failing=[OTHER_HOLDER],
        )
        aggregator = MultiTokenAggregator(provider, clock)

        with pytest.raises(LookupFailure) as exc_info:
            await aggregator.query_across_holders([HOLDER, OTHER_HOLDER], USDC)

        assert exc_info.value.identifier == OTHER_HOLDER

    @pytest.mark.asyncio
    async def test_query_across_holders_ceiling(self, provider, clock):
        aggregator = MultiTokenAggregator(
            provider, clock, AggregatorConfig(max_batch_size=1)
        )

        with pytest.raises(InvalidInput):
            await aggregator.query_across_holders([HOLDER, OTHER_HOLDER], USDC)

        assert provider.calls == []


class TestConcurrentLookups:
    """Lookups running concurrently keep the sequential guarantees."""

    @pytest.mark.asyncio
    async def test_order_kept_when_completion_order_differs(self, stablecoins, clock):
        provider = FakeLookupProvider(
            stablecoins, delays={USDC: 0.05, USDT: 0.02, DAI: 0.0}
        )
        aggregator = MultiTokenAggregator(
            provider, clock, AggregatorConfig(max_concurrency=3)
        )

        result = await aggregator.query_multiple_tokens(HOLDER, [USDC, USDT, DAI])

        assert [token.symbol for token in result.tokens] == ["USDC", "USDT", "DAI"]
        assert {call[3] for call in provider.calls} == {BLOCK_NUMBER}

    @pytest.mark.asyncio
    async def test_failure_cancels_outstanding_lookups(self, stablecoins, clock):
        provider = FakeLookupProvider(
            stablecoins, failing=[USDT], delays={USDC: 5.0, DAI: 5.0}
        )
        aggregator = MultiTokenAggregator(
            provider, clock, AggregatorConfig(max_concurrency=3)
        )

        with pytest.raises(LookupFailure) as exc_info:
            await aggregator.query_multiple_tokens(HOLDER, [USDC, USDT, DAI])

        assert exc_info.value.identifier == USDT
        assert sorted(provider.cancelled) == sorted([USDC, DAI])

    @pytest.mark.asyncio
    async def test_concurrent_balances_for_holders(self, stablecoins, clock):
        provider = FakeLookupProvider(
            stablecoins,
            holder_balances={HOLDER: 1, OTHER_HOLDER: 2, THIRD_HOLDER: 3},
            delays={HOLDER: 0.03, OTHER_HOLDER: 0.01},
        )
        aggregator = MultiTokenAggregator(
            provider, clock, AggregatorConfig(max_concurrency=2)
        )

        result = await aggregator.query_across_holders(
            [HOLDER, OTHER_HOLDER, THIRD_HOLDER], DAI
        )

        assert result.balances == (1, 2, 3)
