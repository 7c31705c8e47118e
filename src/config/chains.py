"""
Chain-specific configuration for multiTokenQuery.
"""

from dataclasses import dataclass
from typing import Dict

from .base import BaseConfig


@dataclass
class ChainConfig(BaseConfig):
    """Chain-specific configuration for different blockchains."""

    # Default chain settings
    DEFAULT_CHAIN: str = BaseConfig.get_env("DEFAULT_CHAIN", "ethereum")

    # Chain-specific RPC URLs
    ETHEREUM_RPC_URL: str = BaseConfig.get_env(
        "ETHEREUM_RPC_URL", "https://eth.llamarpc.com"
    )
    BASE_RPC_URL: str = BaseConfig.get_env("BASE_RPC_URL", "https://mainnet.base.org")
    ARBITRUM_RPC_URL: str = BaseConfig.get_env(
        "ARBITRUM_RPC_URL", "https://arb1.arbitrum.io/rpc"
    )

    # Chain IDs
    ETHEREUM_CHAIN_ID: int = 1
    BASE_CHAIN_ID: int = 8453
    ARBITRUM_CHAIN_ID: int = 42161

    @property
    def supported_chains(self) -> Dict[str, Dict]:
        """Get configuration for all supported chains."""
        return {
            "ethereum": {
                "chain_id": self.ETHEREUM_CHAIN_ID,
                "rpc_url": self.ETHEREUM_RPC_URL,
                "native_token": "ETH",
                "explorer_url": "https://etherscan.io",
            },
            "base": {
                "chain_id": self.BASE_CHAIN_ID,
                "rpc_url": self.BASE_RPC_URL,
                "native_token": "ETH",
                "explorer_url": "https://basescan.org",
            },
            "arbitrum": {
                "chain_id": self.ARBITRUM_CHAIN_ID,
                "rpc_url": self.ARBITRUM_RPC_URL,
                "native_token": "ETH",
                "explorer_url": "https://arbiscan.io",
            },
        }

    @property
    def known_tokens(self) -> Dict[str, Dict[str, str]]:
        """Well-known token addresses per chain, keyed by lowercase symbol."""
        return {
            "ethereum": {
                "weth": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
                "usdc": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
                "usdt": "0xdAC17F958D2ee523a2206206994597C13D831ec7",
                "dai": "0x6B175474E89094C44Da98b954EedeAC495271d0F",
                "wbtc": "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599",
                "mkr": "0x9f8F72aA9304c8B593d555F12eF6589cC3A579A2",
            },
            "base": {
                "weth": "0x4200000000000000000000000000000000000006",
                "usdc": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
                "usdt": "0xfde4C96c8593536E31F229EA8f37b2ADa2699bb2",
                "dai": "0x50c5725949A6F0c72E6C4a641F24049A917DB0Cb",
            },
            "arbitrum": {
                "weth": "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",
                "usdc": "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
                "usdt": "0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9",
                "dai": "0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1",
                "wbtc": "0x2f2a2543B76A4166549F7aaB2e75Bef0aefC5B0f",
            },
        }

    def get_chain_config(self, chain_name: str) -> Dict:
        """Get configuration for a specific chain."""
        if chain_name not in self.supported_chains:
            raise ValueError(f"Unsupported chain: {chain_name}")
        return self.supported_chains[chain_name]

    def get_rpc_url(self, chain_name: str) -> str:
        """Get RPC URL for a specific chain."""
        return self.get_chain_config(chain_name)["rpc_url"]

    def get_chain_id(self, chain_name: str) -> int:
        """Get chain ID for a specific chain."""
        return self.get_chain_config(chain_name)["chain_id"]

    def resolve_token(self, chain_name: str, token: str) -> str:
        """
        Resolve a token symbol shortcut to its address.

        Values that are not known symbols are returned unchanged so callers
        can mix shortcuts and raw addresses.
        """
        self.get_chain_config(chain_name)
        return self.known_tokens.get(chain_name, {}).get(token.lower(), token)
