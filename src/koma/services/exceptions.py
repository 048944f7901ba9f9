"""Service error hierarchy for upstream feed and ingestion operations.

This module defines the exception hierarchy for service-level errors:
- ServiceError: Base for all service errors
- TransientError: Retryable errors (network, rate limits, timeouts)
- PermanentError: Non-retryable errors (bad queries, malformed data)
"""


class ServiceError(Exception):
    """Base exception for all service errors."""

    pass


class TransientError(ServiceError):
    """Transient error that may succeed on retry.

    Examples:
    - Network timeouts
    - Rate limit exceeded (429)
    - Service unavailable (503)
    """

    pass


class PermanentError(ServiceError):
    """Permanent error that will not succeed on retry.

    Examples:
    - Invalid GraphQL query (400, GraphQL errors array)
    - Event payload that cannot be decoded
    """

    pass


# Subgraph-specific errors
class SubgraphError(ServiceError):
    """Base exception for subgraph errors."""

    pass


class SubgraphNetworkError(SubgraphError, TransientError):
    """Network timeout, connection failure or service unavailable."""

    pass


class SubgraphRateLimitError(SubgraphError, TransientError):
    """Rate limit exceeded (429)."""

    pass


class SubgraphQueryError(SubgraphError, PermanentError):
    """Query rejected by the subgraph or response without data."""

    pass


# Ingestion-specific errors
class EventDecodeError(PermanentError):
    """Raw upstream event has an unexpected field shape."""

    def __init__(self, category: str, field: str, message: str):
        self.category = category
        self.field = field
        super().__init__(f"{category}.{field}: {message}")
