"""
Configuration manager for multiTokenQuery.

This module provides a centralized way to access all configuration settings
across the application. It combines all configuration classes into a single
easy-to-use interface.
"""

import logging
from typing import Dict, Any
from .base import BaseConfig, ConfigError
from .chains import ChainConfig
from .query import QueryConfig

logger = logging.getLogger(__name__)


class ConfigManager:
    """
    Centralized configuration manager that combines all configuration classes.

    This class provides easy access to all configuration settings and ensures
    that configurations are properly initialized and validated.
    """

    def __init__(self, environment: str = None):
        """
        Initialize the configuration manager.

        Args:
            environment: Override the environment (local, dev, staging, production)
        """
        self._environment = environment
        self._base_config = None
        self._chain_config = None
        self._query_config = None
        self._initialize_configs()

    def _initialize_configs(self):
        """Initialize all configuration objects."""
        try:
            self._base_config = BaseConfig()
            if self._environment:
                self._base_config.ENVIRONMENT = self._environment
                self._base_config._validate_config()

            self._chain_config = ChainConfig()
            self._query_config = QueryConfig()

            logger.info(f"Configuration initialized for environment: {self.environment}")

        except Exception as e:
            logger.error(f"Failed to initialize configuration: {e}")
            raise ConfigError(f"Configuration initialization failed: {e}")

    @property
    def environment(self) -> str:
        """Get current environment."""
        return self._base_config.ENVIRONMENT

    @property
    def base(self) -> BaseConfig:
        """Get base configuration."""
        return self._base_config

    @property
    def chains(self) -> ChainConfig:
        """Get chain configuration."""
        return self._chain_config

    @property
    def query(self) -> QueryConfig:
        """Get query configuration."""
        return self._query_config

    def get_chain_query_config(self, chain_name: str) -> Dict[str, Any]:
        """
        Get combined chain and query configuration for a specific chain.

        Args:
            chain_name: Name of the blockchain (ethereum, base, arbitrum)

        Returns:
            Combined configuration dictionary
        """
        chain_config = self.chains.get_chain_config(chain_name)
        return {
            "chain_name": chain_name,
            "chain_id": chain_config["chain_id"],
            "rpc_url": chain_config["rpc_url"],
            "contract_address": self.query.get_contract_address(chain_name),
            "max_batch_size": self.query.MAX_BATCH_SIZE,
            "max_concurrency": self.query.MAX_CONCURRENCY,
            "request_timeout": self.query.REQUEST_TIMEOUT,
        }

    def validate_configuration(self) -> bool:
        """
        Validate all configuration settings.

        Returns:
            True if all configurations are valid

        Raises:
            ConfigError: If any configuration is invalid
        """
        try:
            if self.query.MAX_BATCH_SIZE < 1:
                raise ConfigError(
                    f"MAX_BATCH_SIZE must be positive, got {self.query.MAX_BATCH_SIZE}"
                )
            if self.query.MAX_CONCURRENCY < 1:
                raise ConfigError(
                    f"MAX_CONCURRENCY must be positive, got {self.query.MAX_CONCURRENCY}"
                )
            if self.query.LOOKUP_MAX_RETRIES < 1:
                raise ConfigError(
                    f"LOOKUP_MAX_RETRIES must be positive, got {self.query.LOOKUP_MAX_RETRIES}"
                )

            if not self.chains.supported_chains:
                raise ConfigError("No chains configured")

            for chain in self.chains.supported_chains:
                if not self.query.get_contract_address(chain):
                    logger.debug(f"No MultiTokenQuery contract configured for {chain}")

            logger.info("Configuration validation successful")
            return True

        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            raise ConfigError(f"Configuration validation failed: {e}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert all configurations to dictionary format."""
        return {
            "environment": self.environment,
            "base": self.base.to_dict() if self.base else {},
            "chains": self.chains.to_dict() if self.chains else {},
            "query": self.query.to_dict() if self.query else {},
        }

    def __repr__(self) -> str:
        """String representation of the configuration manager."""
        return f"ConfigManager(environment={self.environment})"


# Global configuration manager instance
_config_manager = None


def get_config(environment: str = None, force_reload: bool = False) -> ConfigManager:
    """
    Get the global configuration manager instance.

    Args:
        environment: Override environment
        force_reload: Force reload of configuration

    Returns:
        ConfigManager instance
    """
    global _config_manager

    if _config_manager is None or force_reload:
        _config_manager = ConfigManager(environment=environment)
        _config_manager.validate_configuration()

    return _config_manager


def reload_config(environment: str = None) -> ConfigManager:
    """
    Reload the global configuration manager.

    Args:
        environment: Override environment

    Returns:
        New ConfigManager instance
    """
    return get_config(environment=environment, force_reload=True)
