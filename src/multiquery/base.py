"""
Base types for multi-token queries.

This module defines the result structures returned by every query path, the
two collaborator interfaces a query depends on (token lookups and the
observation clock) and the input validation shared by all of them.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from web3 import Web3

from .errors import InvalidInput

logger = logging.getLogger(__name__)

BlockIdentifier = Union[int, str]

DEFAULT_MAX_BATCH_SIZE = 200


@dataclass(frozen=True)
class Observation:
    """Point in chain history a query result was taken at."""

    timestamp: int
    block_number: int


@dataclass(frozen=True)
class TokenLookup:
    """Raw answer of a lookup provider for one (token, holder) pair."""

    symbol: str
    decimals: int
    balance: int


@dataclass(frozen=True)
class TokenInfo:
    """Metadata and balance of one token for the queried holder."""

    address: str
    symbol: str
    decimals: int
    balance: int

    @property
    def formatted_balance(self) -> Decimal:
        """Balance scaled down by the token's decimals."""
        return Decimal(self.balance).scaleb(-self.decimals)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tokenAddress": self.address,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "balance": self.balance,
        }


@dataclass(frozen=True)
class BatchResult:
    """
    Metadata and balances of many tokens for a single holder.

    tokens[i] always corresponds to the i-th requested token and every entry
    shares the same timestamp and block number.
    """

    query_address: str
    tokens: Tuple[TokenInfo, ...]
    timestamp: int
    block_number: int

    @property
    def observation(self) -> Observation:
        return Observation(self.timestamp, self.block_number)

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation, field order matches the on-chain QueryResult."""
        return {
            "queryAddress": self.query_address,
            "tokens": [token.to_dict() for token in self.tokens],
            "timestamp": self.timestamp,
            "blockNumber": self.block_number,
        }


@dataclass(frozen=True)
class BalanceOnlyResult:
    """Balances of many tokens for a single holder, index-aligned with the request."""

    balances: Tuple[int, ...]
    timestamp: int
    block_number: int

    @property
    def observation(self) -> Observation:
        return Observation(self.timestamp, self.block_number)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "balances": list(self.balances),
            "timestamp": self.timestamp,
            "blockNumber": self.block_number,
        }


@dataclass(frozen=True)
class SingleTokenResult:
    """One token for one holder plus the observation it was taken at."""

    query_address: str
    token: TokenInfo
    timestamp: int
    block_number: int

    @property
    def observation(self) -> Observation:
        return Observation(self.timestamp, self.block_number)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "queryAddress": self.query_address,
            "token": self.token.to_dict(),
            "timestamp": self.timestamp,
            "blockNumber": self.block_number,
        }


@dataclass(frozen=True)
class HolderBalancesResult:
    """Balances of one token across many holders, balances[i] belongs to holders[i]."""

    token_address: str
    holders: Tuple[str, ...]
    balances: Tuple[int, ...]
    timestamp: int
    block_number: int

    @property
    def observation(self) -> Observation:
        return Observation(self.timestamp, self.block_number)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tokenAddress": self.token_address,
            "holders": list(self.holders),
            "balances": list(self.balances),
            "timestamp": self.timestamp,
            "blockNumber": self.block_number,
        }


class LookupProvider(ABC):
    """
    Answers metadata and balance questions for a single token.

    Implementations must be free of side effects and must signal failure by
    raising, never by returning a zero balance.
    """

    @abstractmethod
    async def lookup(
        self, token: str, holder: str, block_identifier: BlockIdentifier = "latest"
    ) -> TokenLookup:
        """
        Fetch symbol, decimals and the holder's balance of a token.

        Args:
            token: Token contract address
            holder: Address whose balance is requested
            block_identifier: Block to read state at

        Returns:
            TokenLookup for the pair
        """
        pass

    @abstractmethod
    async def balance_of(
        self, token: str, holder: str, block_identifier: BlockIdentifier = "latest"
    ) -> int:
        """Fetch only the holder's balance of a token."""
        pass


class ObservationClock(ABC):
    """Supplies the timestamp and block number a query is attributed to."""

    @abstractmethod
    async def now(self) -> Observation:
        pass


def normalize_address(address: Any, argument: str = "address") -> str:
    """
    Validate an address and return its checksummed form.

    Raises:
        InvalidInput: If the value is empty or not a 20-byte hex address
    """
    if not address:
        raise InvalidInput(f"{argument} is required")
    if not isinstance(address, str) or not Web3.is_address(address):
        raise InvalidInput(f"Malformed {argument}: {address!r}")
    # Mixed case must be a valid EIP-55 checksum
    digits = address[2:] if address[:2].lower() == "0x" else address
    if digits != digits.lower() and digits != digits.upper():
        if not Web3.is_checksum_address(address):
            raise InvalidInput(f"Bad checksum for {argument}: {address!r}")
    return Web3.to_checksum_address(address)


def validate_batch(
    addresses: Optional[Sequence[str]],
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
    argument: str = "tokens",
) -> List[str]:
    """
    Validate a batch of addresses, keeping order and duplicates.

    Args:
        addresses: Requested addresses, may be empty
        max_batch_size: Largest accepted batch
        argument: Argument name used in error messages

    Returns:
        Checksummed addresses in request order

    Raises:
        InvalidInput: If the batch is missing, too large or holds a malformed address
    """
    if addresses is None:
        raise InvalidInput(f"{argument} is required")
    if isinstance(addresses, str):
        raise InvalidInput(f"{argument} must be a sequence of addresses, not a string")

    addresses = list(addresses)
    if len(addresses) > max_batch_size:
        raise InvalidInput(
            f"{argument} holds {len(addresses)} entries, "
            f"exceeding the batch size ceiling of {max_batch_size}"
        )

    return [normalize_address(address, argument) for address in addresses]
