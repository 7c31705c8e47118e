"""
Configuration management for multiTokenQuery.

This module provides centralized configuration management for the query
tooling. Use get_config() to access all configuration settings.

Example:
    from src.config import get_config

    config = get_config()

    # Access chain settings
    ethereum_rpc = config.chains.get_rpc_url("ethereum")
    usdc = config.chains.resolve_token("ethereum", "usdc")

    # Access query settings
    ceiling = config.query.MAX_BATCH_SIZE
    contract = config.query.get_contract_address("ethereum")
"""

from .base import BaseConfig, ConfigError
from .chains import ChainConfig
from .manager import ConfigManager, get_config, reload_config
from .query import QueryConfig

__all__ = [
    "BaseConfig",
    "ConfigError",
    "ChainConfig",
    "QueryConfig",
    "ConfigManager",
    "get_config",
    "reload_config",
]
