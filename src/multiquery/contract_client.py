"""
Client for a deployed MultiTokenQuery contract.

The contract performs the whole batch inside a single eth_call and stamps
the result with its own block timestamp and number, so one round trip
returns a consistent snapshot.
"""

import asyncio
import logging
from typing import Any, Optional, Sequence

from web3 import Web3

from .abi import MULTI_TOKEN_QUERY_ABI, batch_result_from_tuple
from .aggregator import AggregatorConfig
from .base import (
    BalanceOnlyResult,
    BatchResult,
    BlockIdentifier,
    SingleTokenResult,
    normalize_address,
    validate_batch,
)
from .errors import LookupFailure


class MultiTokenQueryClient:
    """
    Query client bound to one deployed MultiTokenQuery contract.

    Offers the same single-holder operations as MultiTokenAggregator with the
    same validation and all-or-nothing failure rules.
    """

    def __init__(
        self,
        web3: Web3,
        contract_address: str,
        config: Optional[AggregatorConfig] = None,
    ):
        self.web3 = web3
        self.contract_address = normalize_address(contract_address, "contract_address")
        self.config = config or AggregatorConfig()
        self.contract = web3.eth.contract(
            address=self.contract_address, abi=MULTI_TOKEN_QUERY_ABI
        )
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @classmethod
    def connect(
        cls,
        rpc_url: str,
        contract_address: str,
        config: Optional[AggregatorConfig] = None,
        timeout: int = 30,
    ) -> "MultiTokenQueryClient":
        """Create a client over an HTTP RPC endpoint."""
        web3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        return cls(web3, contract_address, config)

    async def query_multiple_tokens(
        self,
        holder: str,
        tokens: Sequence[str],
        block_identifier: BlockIdentifier = "latest",
    ) -> BatchResult:
        """
        Call queryMultipleTokens for a holder.

        Raises:
            InvalidInput: Malformed address or batch above the size ceiling
            LookupFailure: The contract call failed or the response does not
                line up with the request
        """
        holder = normalize_address(holder, "holder")
        tokens = validate_batch(tokens, self.config.max_batch_size, "tokens")

        raw = await self._call("queryMultipleTokens", holder, tokens, block_identifier)
        try:
            result = batch_result_from_tuple(raw)
        except (TypeError, ValueError) as e:
            raise LookupFailure(self.contract_address, f"malformed response: {e}") from e

        if result.query_address != holder:
            raise LookupFailure(
                self.contract_address,
                f"contract answered for {result.query_address}, requested {holder}",
            )
        self._check_alignment(tokens, [token.address for token in result.tokens])
        self.logger.debug(
            f"Queried {len(tokens)} tokens for {holder} at block {result.block_number}"
        )
        return result

    async def query_balances(
        self,
        holder: str,
        tokens: Sequence[str],
        block_identifier: BlockIdentifier = "latest",
    ) -> BalanceOnlyResult:
        """Call queryBalances for a holder."""
        holder = normalize_address(holder, "holder")
        tokens = validate_batch(tokens, self.config.max_batch_size, "tokens")

        raw = await self._call("queryBalances", holder, tokens, block_identifier)
        try:
            balances, timestamp, block_number = raw
        except (TypeError, ValueError) as e:
            raise LookupFailure(self.contract_address, f"malformed response: {e}") from e

        if len(balances) != len(tokens):
            if len(balances) < len(tokens):
                offending = tokens[len(balances)]
            else:
                offending = self.contract_address
            raise LookupFailure(
                offending,
                f"contract returned {len(balances)} balances for {len(tokens)} tokens",
            )

        return BalanceOnlyResult(
            balances=tuple(balances), timestamp=timestamp, block_number=block_number
        )

    async def query_single_token(
        self, holder: str, token: str, block_identifier: BlockIdentifier = "latest"
    ) -> SingleTokenResult:
        token = normalize_address(token, "token")
        batch = await self.query_multiple_tokens(holder, [token], block_identifier)
        return SingleTokenResult(
            query_address=batch.query_address,
            token=batch.tokens[0],
            timestamp=batch.timestamp,
            block_number=batch.block_number,
        )

    async def _call(
        self,
        function_name: str,
        holder: str,
        tokens: Sequence[str],
        block_identifier: BlockIdentifier,
    ) -> Any:
        function = getattr(self.contract.functions, function_name)(holder, list(tokens))
        loop = asyncio.get_event_loop()
        try:
            return await loop.run_in_executor(
                None, lambda: function.call(block_identifier=block_identifier)
            )
        except Exception as e:
            self.logger.error(f"{function_name} call failed: {e}")
            raise LookupFailure(
                self.contract_address, f"{function_name} call failed: {e}"
            ) from e

    def _check_alignment(self, requested: Sequence[str], returned: Sequence[str]):
        """Raise LookupFailure for the first token the contract did not answer for."""
        for index, token in enumerate(requested):
            if index >= len(returned) or returned[index] != token:
                raise LookupFailure(
                    token, f"contract response misaligned at index {index}"
                )
        if len(returned) > len(requested):
            raise LookupFailure(
                returned[len(requested)], "contract returned an unrequested token"
            )
