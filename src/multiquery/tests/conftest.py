"""
Pytest configuration for multi-token query tests.
"""

import asyncio
from typing import Dict, Iterable, List, Optional

import pytest
from web3 import Web3

from src.multiquery.base import LookupProvider, TokenLookup
from src.multiquery.clock import FixedClock
from src.multiquery.errors import LookupFailure

USDC = Web3.to_checksum_address("0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48")
USDT = Web3.to_checksum_address("0xdac17f958d2ee523a2206206994597c13d831ec7")
DAI = Web3.to_checksum_address("0x6b175474e89094c44da98b954eedeac495271d0f")
WETH = Web3.to_checksum_address("0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2")

HOLDER = Web3.to_checksum_address("0x742d35cc6634c0532925a3b844bc454e4438f44e")
OTHER_HOLDER = Web3.to_checksum_address("0x28c6c06298d514db089934071355e5743bf21d60")
THIRD_HOLDER = Web3.to_checksum_address("0x47ac0fb4f2d84898e4d9e7b4dab3c24507a6d503")

TIMESTAMP = 1_700_000_000
BLOCK_NUMBER = 18_500_000


class FakeLookupProvider(LookupProvider):
    """In-memory lookup provider recording every call it receives."""

    def __init__(
        self,
        tokens: Dict[str, TokenLookup],
        holder_balances: Optional[Dict[str, int]] = None,
        failing: Iterable[str] = (),
        delays: Optional[Dict[str, float]] = None,
    ):
        self.tokens = tokens
        self.holder_balances = holder_balances or {}
        self.failing = set(failing)
        self.delays = delays or {}
        self.calls: List[tuple] = []
        self.cancelled: List[str] = []

    async def _maybe_wait(self, key: str):
        delay = self.delays.get(key, 0)
        if delay:
            try:
                await asyncio.sleep(delay)
            except asyncio.CancelledError:
                self.cancelled.append(key)
                raise

    async def lookup(self, token, holder, block_identifier="latest"):
        self.calls.append(("lookup", token, holder, block_identifier))
        await self._maybe_wait(token)
        if token in self.failing:
            raise LookupFailure(token, "token unreachable")
        return self.tokens[token]

    async def balance_of(self, token, holder, block_identifier="latest"):
        self.calls.append(("balance_of", token, holder, block_identifier))
        await self._maybe_wait(holder if holder in self.holder_balances else token)
        if token in self.failing or holder in self.failing:
            raise LookupFailure(token, "balance unreachable")
        if holder in self.holder_balances:
            return self.holder_balances[holder]
        return self.tokens[token].balance


@pytest.fixture
def stablecoins():
    """USDC, USDT and DAI metadata with the balances of the reference example."""
    return {
        USDC: TokenLookup(symbol="USDC", decimals=6, balance=1000 * 10**6),
        USDT: TokenLookup(symbol="USDT", decimals=6, balance=2000 * 10**6),
        DAI: TokenLookup(symbol="DAI", decimals=18, balance=3000 * 10**18),
    }


@pytest.fixture
def provider(stablecoins):
    return FakeLookupProvider(stablecoins)


@pytest.fixture
def clock():
    return FixedClock(timestamp=TIMESTAMP, block_number=BLOCK_NUMBER)
