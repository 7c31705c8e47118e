#!/usr/bin/env python3
"""
Command-line interface for multi-token queries.

Usage:
    python -m src.scripts.query_tokens --holder 0x742d... --tokens usdc usdt dai
    python -m src.scripts.query_tokens --holder 0x742d... --tokens usdc --balances-only
    python -m src.scripts.query_tokens --holder 0x742d... --tokens usdc dai --contract 0xabc...
    python -m src.scripts.query_tokens --holders 0x742d... 0x28c6... --tokens usdc
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from typing import List, Optional

from web3 import Web3

from src.config import ConfigError, ConfigManager
from src.multiquery import (
    AggregatorConfig,
    BalanceOnlyResult,
    BatchResult,
    ERC20LookupProvider,
    HolderBalancesResult,
    LookupConfig,
    MultiTokenAggregator,
    MultiTokenQueryClient,
    QueryError,
    Web3BlockClock,
)

logger = logging.getLogger(__name__)


def format_timestamp(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def format_batch_result(result: BatchResult) -> List[str]:
    lines = [
        f"Query address: {result.query_address}",
        f"Timestamp: {result.timestamp}",
        f"Block number: {result.block_number}",
        f"Query time: {format_timestamp(result.timestamp)} UTC",
    ]
    for i, token in enumerate(result.tokens, 1):
        lines.append(
            f"Token {i} ({token.address}) {token.symbol}: "
            f"{token.formatted_balance} [{token.balance}]"
        )
    return lines


def format_balances_result(result: BalanceOnlyResult, tokens: List[str]) -> List[str]:
    lines = [
        f"Timestamp: {result.timestamp}",
        f"Block number: {result.block_number}",
        f"Query time: {format_timestamp(result.timestamp)} UTC",
    ]
    for i, (token, balance) in enumerate(zip(tokens, result.balances), 1):
        lines.append(f"Token {i} ({token}): {balance}")
    return lines


def format_holders_result(result: HolderBalancesResult) -> List[str]:
    lines = [
        f"Token address: {result.token_address}",
        f"Timestamp: {result.timestamp}",
        f"Block number: {result.block_number}",
        f"Query time: {format_timestamp(result.timestamp)} UTC",
    ]
    for i, (holder, balance) in enumerate(zip(result.holders, result.balances), 1):
        lines.append(f"Holder {i} ({holder}): {balance}")
    return lines


def build_aggregator(
    web3: Web3, config: ConfigManager, aggregator_config: AggregatorConfig
) -> MultiTokenAggregator:
    """Aggregator over per-token eth_calls, observed at the latest block."""
    provider = ERC20LookupProvider(
        web3,
        LookupConfig(
            max_retries=config.query.LOOKUP_MAX_RETRIES,
            retry_delay=config.query.LOOKUP_RETRY_DELAY,
        ),
    )
    return MultiTokenAggregator(provider, Web3BlockClock(web3), aggregator_config)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Query balances and metadata of many tokens at one block",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--holder", help="Address whose balances are queried")
    group.add_argument(
        "--holders", nargs="+", help="Query one token across several holders"
    )

    parser.add_argument(
        "--tokens",
        nargs="*",
        default=None,
        help="Token addresses or known symbols (default: DEFAULT_TOKENS)",
    )
    parser.add_argument(
        "--chain", default=None, help="Chain name (ethereum, base, arbitrum)"
    )
    parser.add_argument("--rpc-url", default=None, help="Override the chain RPC URL")
    parser.add_argument(
        "--contract",
        default=None,
        help="Deployed MultiTokenQuery contract to query instead of per-token calls",
    )
    parser.add_argument(
        "--balances-only", action="store_true", help="Skip symbol and decimals"
    )
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    return parser


async def run(args: argparse.Namespace, config: Optional[ConfigManager] = None) -> int:
    """Run a query described by parsed arguments and print its result."""
    config = config or ConfigManager()
    chain = args.chain or config.chains.DEFAULT_CHAIN

    try:
        chain_config = config.chains.get_chain_config(chain)
    except ValueError as e:
        logger.error(str(e))
        return 1

    rpc_url = args.rpc_url or chain_config["rpc_url"]
    requested = config.query.DEFAULT_TOKENS if args.tokens is None else args.tokens
    tokens = [config.chains.resolve_token(chain, token) for token in requested]
    web3 = Web3(
        Web3.HTTPProvider(
            rpc_url, request_kwargs={"timeout": config.query.REQUEST_TIMEOUT}
        )
    )

    contract_address = args.contract
    if not contract_address and config.query.PREFER_CONTRACT:
        contract_address = config.query.get_contract_address(chain)

    try:
        aggregator_config = AggregatorConfig.from_settings(config.query)
        if args.holders:
            if len(tokens) != 1:
                logger.error("--holders requires exactly one token")
                return 1
            aggregator = build_aggregator(web3, config, aggregator_config)
            result = await aggregator.query_across_holders(args.holders, tokens[0])
            lines = format_holders_result(result)
        else:
            if contract_address:
                logger.info(f"Querying through contract {contract_address} on {chain}")
                querier = MultiTokenQueryClient(web3, contract_address, aggregator_config)
            else:
                querier = build_aggregator(web3, config, aggregator_config)

            if args.balances_only:
                result = await querier.query_balances(args.holder, tokens)
                lines = format_balances_result(result, tokens)
            else:
                result = await querier.query_multiple_tokens(args.holder, tokens)
                lines = format_batch_result(result)

    except QueryError as e:
        logger.error(f"Query failed: {e}")
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        for line in lines:
            print(line)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = ConfigManager()
    except ConfigError as e:
        logger.error(str(e))
        return 1
    return asyncio.run(run(args, config))


if __name__ == "__main__":
    sys.exit(main())
