"""
ABI definitions and codec for the on-chain MultiTokenQuery contract.

Results are encoded with exactly the contract's tuple layout, so payloads
produced here can be consumed by anything that already speaks to the
deployed contract.
"""

import json
from typing import Any, Sequence

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError
from eth_utils import to_checksum_address

from .base import BalanceOnlyResult, BatchResult, TokenInfo
from .errors import QueryError

TOKEN_INFO_TYPE = "(address,string,uint8,uint256)"
QUERY_RESULT_TYPE = f"(address,{TOKEN_INFO_TYPE}[],uint256,uint256)"
BALANCES_RESULT_TYPES = ["uint256[]", "uint256", "uint256"]

MULTI_TOKEN_QUERY_ABI = json.loads("""[
  {
    "inputs": [
      {"internalType": "address", "name": "user", "type": "address"},
      {"internalType": "address[]", "name": "tokenAddresses", "type": "address[]"}
    ],
    "name": "queryMultipleTokens",
    "outputs": [
      {
        "components": [
          {"internalType": "address", "name": "queryAddress", "type": "address"},
          {
            "components": [
              {"internalType": "address", "name": "tokenAddress", "type": "address"},
              {"internalType": "string", "name": "symbol", "type": "string"},
              {"internalType": "uint8", "name": "decimals", "type": "uint8"},
              {"internalType": "uint256", "name": "balance", "type": "uint256"}
            ],
            "internalType": "struct MultiTokenQuery.TokenInfo[]",
            "name": "tokens",
            "type": "tuple[]"
          },
          {"internalType": "uint256", "name": "timestamp", "type": "uint256"},
          {"internalType": "uint256", "name": "blockNumber", "type": "uint256"}
        ],
        "internalType": "struct MultiTokenQuery.QueryResult",
        "name": "result",
        "type": "tuple"
      }
    ],
    "stateMutability": "view",
    "type": "function"
  },
  {
    "inputs": [
      {"internalType": "address", "name": "user", "type": "address"},
      {"internalType": "address[]", "name": "tokenAddresses", "type": "address[]"}
    ],
    "name": "queryBalances",
    "outputs": [
      {"internalType": "uint256[]", "name": "balances", "type": "uint256[]"},
      {"internalType": "uint256", "name": "timestamp", "type": "uint256"},
      {"internalType": "uint256", "name": "blockNumber", "type": "uint256"}
    ],
    "stateMutability": "view",
    "type": "function"
  }
]""")


def batch_result_from_tuple(value: Sequence[Any]) -> BatchResult:
    """Build a BatchResult from a decoded QueryResult tuple."""
    query_address, tokens, timestamp, block_number = value
    return BatchResult(
        query_address=to_checksum_address(query_address),
        tokens=tuple(
            TokenInfo(
                address=to_checksum_address(address),
                symbol=symbol,
                decimals=decimals,
                balance=balance,
            )
            for address, symbol, decimals, balance in tokens
        ),
        timestamp=timestamp,
        block_number=block_number,
    )


def batch_result_to_tuple(result: BatchResult) -> tuple:
    return (
        result.query_address,
        [
            (token.address, token.symbol, token.decimals, token.balance)
            for token in result.tokens
        ],
        result.timestamp,
        result.block_number,
    )


def encode_batch_result(result: BatchResult) -> bytes:
    try:
        return encode([QUERY_RESULT_TYPE], [batch_result_to_tuple(result)])
    except (EncodingError, TypeError, ValueError) as e:
        raise QueryError(f"Failed to encode query result: {e}") from e


def decode_batch_result(data: bytes) -> BatchResult:
    try:
        (value,) = decode([QUERY_RESULT_TYPE], data)
    except (DecodingError, OverflowError, ValueError) as e:
        raise QueryError(f"Failed to decode query result: {e}") from e
    return batch_result_from_tuple(value)


def encode_balances_result(result: BalanceOnlyResult) -> bytes:
    try:
        return encode(
            BALANCES_RESULT_TYPES,
            [list(result.balances), result.timestamp, result.block_number],
        )
    except (EncodingError, TypeError, ValueError) as e:
        raise QueryError(f"Failed to encode balances result: {e}") from e


def decode_balances_result(data: bytes) -> BalanceOnlyResult:
    try:
        balances, timestamp, block_number = decode(BALANCES_RESULT_TYPES, data)
    except (DecodingError, OverflowError, ValueError) as e:
        raise QueryError(f"Failed to decode balances result: {e}") from e
    return BalanceOnlyResult(
        balances=tuple(balances), timestamp=timestamp, block_number=block_number
    )
