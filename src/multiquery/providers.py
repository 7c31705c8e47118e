"""
ERC-20 lookup provider.

This module answers token metadata and balance lookups with plain eth_call
requests for symbol(), decimals() and balanceOf(address), decoding the raw
return data with eth_abi.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector
from web3 import Web3

from .base import BlockIdentifier, LookupProvider, TokenLookup
from .errors import ErrorHandler, LookupFailure

SYMBOL_SELECTOR = function_signature_to_4byte_selector("symbol()")
DECIMALS_SELECTOR = function_signature_to_4byte_selector("decimals()")
BALANCE_OF_SELECTOR = function_signature_to_4byte_selector("balanceOf(address)")


@dataclass
class LookupConfig:
    """Configuration for lookup calls."""

    max_retries: int = 3
    retry_delay: float = 1.0


class ERC20LookupProvider(LookupProvider):
    """
    Lookup provider for ERC-20 tokens.

    Each lookup issues independent eth_call requests against the token
    contract. Transport errors are retried; anything that cannot be turned
    into a well-formed answer raises LookupFailure for the token.
    """

    def __init__(self, web3: Web3, config: Optional[LookupConfig] = None):
        self.web3 = web3
        self.config = config or LookupConfig()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.error_handler = ErrorHandler(self.logger)

    async def lookup(
        self, token: str, holder: str, block_identifier: BlockIdentifier = "latest"
    ) -> TokenLookup:
        symbol_data = await self._call(token, SYMBOL_SELECTOR, block_identifier)
        decimals_data = await self._call(token, DECIMALS_SELECTOR, block_identifier)
        balance = await self.balance_of(token, holder, block_identifier)

        return TokenLookup(
            symbol=self._decode_symbol(token, symbol_data),
            decimals=self._decode_uint(token, "uint8", decimals_data, "decimals"),
            balance=balance,
        )

    async def balance_of(
        self, token: str, holder: str, block_identifier: BlockIdentifier = "latest"
    ) -> int:
        call_data = BALANCE_OF_SELECTOR + encode(["address"], [holder])
        raw = await self._call(token, call_data, block_identifier)
        return self._decode_uint(token, "uint256", raw, "balanceOf")

    async def _call(
        self, token: str, call_data: bytes, block_identifier: BlockIdentifier
    ) -> bytes:
        """
        Execute an eth_call against a token with retry logic.

        Raises:
            LookupFailure: If the call keeps failing or returns no data
        """
        loop = asyncio.get_event_loop()
        tx = {"to": token, "data": "0x" + call_data.hex()}

        for attempt in range(self.config.max_retries):
            try:
                raw = await loop.run_in_executor(
                    None, self._eth_call, tx, block_identifier
                )
                break
            except Exception as e:
                self.error_handler.log_error(
                    e,
                    {
                        "attempt": attempt + 1,
                        "max_retries": self.config.max_retries,
                        "token": token,
                    },
                )

                if not self.error_handler.should_retry(
                    e, attempt, self.config.max_retries
                ):
                    raise LookupFailure(token, f"eth_call failed: {e}") from e

                delay = self.error_handler.get_retry_delay(
                    e, attempt, self.config.retry_delay
                )
                self.logger.info(
                    f"Retrying {token} in {delay}s... "
                    f"(attempt {attempt + 1}/{self.config.max_retries})"
                )
                await asyncio.sleep(delay)
        else:
            raise LookupFailure(token, "no lookup attempts configured")

        if not raw:
            raise LookupFailure(token, "empty response, not a token contract")
        return bytes(raw)

    def _eth_call(self, tx: dict, block_identifier: BlockIdentifier) -> Any:
        return self.web3.eth.call(tx, block_identifier=block_identifier)

    def _decode_symbol(self, token: str, raw: bytes) -> str:
        """Decode symbol() return data, accepting legacy bytes32 symbols."""
        try:
            (symbol,) = decode(["string"], raw)
            return symbol
        except (DecodingError, OverflowError, ValueError, UnicodeDecodeError):
            pass

        if len(raw) == 32:
            try:
                return raw.rstrip(b"\x00").decode("utf-8")
            except UnicodeDecodeError as e:
                raise LookupFailure(token, f"undecodable bytes32 symbol: {e}") from e

        raise LookupFailure(token, f"malformed symbol response: 0x{raw.hex()}")

    def _decode_uint(self, token: str, abi_type: str, raw: bytes, field: str) -> int:
        try:
            (value,) = decode([abi_type], raw)
        except (DecodingError, OverflowError, ValueError) as e:
            raise LookupFailure(token, f"malformed {field} response: {e}") from e
        return value
