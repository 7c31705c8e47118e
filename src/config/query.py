"""
Query configuration for multiTokenQuery.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .base import BaseConfig


@dataclass
class QueryConfig(BaseConfig):
    """Batch ceilings, concurrency and lookup retry settings."""

    # Largest token (or holder) list accepted by a single query
    MAX_BATCH_SIZE: int = BaseConfig.get_env_int("MAX_BATCH_SIZE", 200)

    # 1 keeps lookups strictly sequential
    MAX_CONCURRENCY: int = BaseConfig.get_env_int("MAX_CONCURRENCY", 1)

    # Lookup provider retry policy
    LOOKUP_MAX_RETRIES: int = BaseConfig.get_env_int("LOOKUP_MAX_RETRIES", 3)
    LOOKUP_RETRY_DELAY: float = BaseConfig.get_env_float("LOOKUP_RETRY_DELAY", 1.0)

    # Tokens queried when the CLI is given no --tokens
    DEFAULT_TOKENS: List[str] = field(
        default_factory=lambda: BaseConfig.get_env_list(
            "DEFAULT_TOKENS", ["usdc", "usdt", "dai"]
        )
    )

    # Use a configured MultiTokenQuery contract when one is deployed
    PREFER_CONTRACT: bool = BaseConfig.get_env_bool("PREFER_CONTRACT", True)

    # RPC request timeout in seconds
    REQUEST_TIMEOUT: int = BaseConfig.get_env_int("REQUEST_TIMEOUT", 30)

    # Deployed MultiTokenQuery contracts, empty when not deployed
    ETHEREUM_MULTI_TOKEN_QUERY_ADDRESS: str = BaseConfig.get_env(
        "MULTI_TOKEN_QUERY_ADDRESS_ETHEREUM", ""
    )
    BASE_MULTI_TOKEN_QUERY_ADDRESS: str = BaseConfig.get_env(
        "MULTI_TOKEN_QUERY_ADDRESS_BASE", ""
    )
    ARBITRUM_MULTI_TOKEN_QUERY_ADDRESS: str = BaseConfig.get_env(
        "MULTI_TOKEN_QUERY_ADDRESS_ARBITRUM", ""
    )

    @property
    def contract_addresses(self) -> Dict[str, str]:
        return {
            "ethereum": self.ETHEREUM_MULTI_TOKEN_QUERY_ADDRESS,
            "base": self.BASE_MULTI_TOKEN_QUERY_ADDRESS,
            "arbitrum": self.ARBITRUM_MULTI_TOKEN_QUERY_ADDRESS,
        }

    def get_contract_address(self, chain_name: str) -> Optional[str]:
        """Get the deployed MultiTokenQuery contract for a chain, if any."""
        return self.contract_addresses.get(chain_name) or None
