"""
Multi-token query utilities.

This package aggregates token metadata and balance lookups for many tokens
(or many holders) into a single call whose result is attributed to one
block, instead of N separate queries with N different staleness windows.
"""

from .aggregator import AggregatorConfig, MultiTokenAggregator
from .base import (
    BalanceOnlyResult,
    BatchResult,
    HolderBalancesResult,
    LookupProvider,
    Observation,
    ObservationClock,
    SingleTokenResult,
    TokenInfo,
    TokenLookup,
)
from .clock import FixedClock, Web3BlockClock
from .contract_client import MultiTokenQueryClient
from .errors import InvalidInput, LookupFailure, ObservationUnavailable, QueryError
from .providers import ERC20LookupProvider, LookupConfig

__all__ = [
    'AggregatorConfig',
    'MultiTokenAggregator',
    'BalanceOnlyResult',
    'BatchResult',
    'HolderBalancesResult',
    'LookupProvider',
    'Observation',
    'ObservationClock',
    'SingleTokenResult',
    'TokenInfo',
    'TokenLookup',
    'FixedClock',
    'Web3BlockClock',
    'MultiTokenQueryClient',
    'ERC20LookupProvider',
    'LookupConfig',
    'QueryError',
    'InvalidInput',
    'LookupFailure',
    'ObservationUnavailable',
]
