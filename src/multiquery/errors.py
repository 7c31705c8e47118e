"""
Error types and error handling utilities for multi-token queries.

Every failure of a batch query surfaces as one of the QueryError subclasses
below. ErrorHandler classifies transport errors raised by web3 so lookup
providers can decide whether a call is worth retrying.
"""

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class QueryError(Exception):
    """Base exception for multi-token query operations."""
    pass


class InvalidInput(QueryError, ValueError):
    """Raised before any lookup when the request itself is unacceptable."""
    pass


class LookupFailure(QueryError):
    """
    Raised when a single token (or holder) lookup cannot be completed.

    The whole batch fails with it, so the offending identifier is kept for
    callers that want to retry with a narrower request.
    """

    def __init__(self, identifier: str, reason: Optional[str] = None):
        self.identifier = identifier
        self.reason = reason
        message = f"Lookup failed for {identifier}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ObservationUnavailable(QueryError):
    """Raised when the observation clock cannot be read."""
    pass


class ErrorHandler:
    """
    Centralized error handling for lookup calls.

    Provides classification, logging, and retry strategies
    for the errors web3 raises during eth_call requests.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def classify_error(self, error: Exception) -> str:
        """
        Classify an error into a category for appropriate handling.

        Args:
            error: Exception to classify

        Returns:
            Error category string
        """
        if isinstance(error, InvalidInput):
            return 'validation'

        error_str = str(error).lower()

        if any(keyword in error_str for keyword in ['rate limit', 'too many requests', '429']):
            return 'rate_limit'

        if any(keyword in error_str for keyword in ['connection', 'timeout', 'timed out', 'network', 'dns']):
            return 'network'

        if any(keyword in error_str for keyword in ['revert', 'execution reverted', 'out of gas']):
            return 'contract'

        if any(keyword in error_str for keyword in ['invalid', 'bad request', '400']):
            return 'validation'

        return 'unknown'

    def should_retry(self, error: Exception, attempt: int, max_retries: int) -> bool:
        """
        Determine if an error should trigger a retry.

        Args:
            error: Exception that occurred
            attempt: Current attempt number (0-based)
            max_retries: Maximum number of attempts allowed

        Returns:
            True if operation should be retried
        """
        if attempt >= max_retries - 1:
            return False

        # Contract reverts and bad requests are deterministic
        return self.classify_error(error) in ('network', 'rate_limit', 'unknown')

    def get_retry_delay(self, error: Exception, attempt: int, base_delay: float = 1.0) -> float:
        """
        Calculate retry delay based on error type and attempt.

        Args:
            error: Exception that occurred
            attempt: Current attempt number (0-based)
            base_delay: Delay for the first retry in seconds

        Returns:
            Delay in seconds before retry
        """
        error_category = self.classify_error(error)

        delay = min(base_delay * 2 ** attempt, 60)

        if error_category == 'rate_limit':
            return delay * 2

        if error_category == 'network':
            return delay

        return delay * 1.5

    def log_error(self, error: Exception, context: Dict[str, Any]):
        """
        Log error with appropriate level and context.

        Args:
            error: Exception to log
            context: Additional context for logging
        """
        error_category = self.classify_error(error)

        log_data = {
            'error_type': type(error).__name__,
            'error_category': error_category,
            'error_message': str(error),
            **context
        }

        if error_category == 'validation':
            self.logger.warning("Validation error occurred", extra=log_data)
        elif error_category == 'contract':
            self.logger.error("Contract call reverted", extra=log_data)
        elif error_category == 'rate_limit':
            self.logger.info("Rate limit encountered", extra=log_data)
        else:
            self.logger.warning("Lookup call error", extra=log_data)
