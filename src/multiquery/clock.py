"""
Observation clocks.

A clock is read exactly once per query; the block it reports is the
snapshot every lookup of that query is pinned to.
"""

import asyncio
import logging

from web3 import Web3

from .base import BlockIdentifier, Observation, ObservationClock
from .errors import ObservationUnavailable


class Web3BlockClock(ObservationClock):
    """Reads the timestamp and number of a block header over web3."""

    def __init__(self, web3: Web3, block_identifier: BlockIdentifier = "latest"):
        self.web3 = web3
        self.block_identifier = block_identifier
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def now(self) -> Observation:
        loop = asyncio.get_event_loop()
        try:
            block = await loop.run_in_executor(
                None, self.web3.eth.get_block, self.block_identifier
            )
            observation = Observation(
                timestamp=int(block["timestamp"]),
                block_number=int(block["number"]),
            )
        except Exception as e:
            self.logger.error(f"Failed to read block {self.block_identifier}: {e}")
            raise ObservationUnavailable(
                f"Failed to read block {self.block_identifier}: {e}"
            ) from e

        self.logger.debug(
            f"Observed block {observation.block_number} at {observation.timestamp}"
        )
        return observation


class FixedClock(ObservationClock):
    """Always reports the same observation; used for replays and tests."""

    def __init__(self, timestamp: int, block_number: int):
        self.observation = Observation(timestamp=timestamp, block_number=block_number)

    async def now(self) -> Observation:
        return self.observation
