"""Client error types for relay push service interactions."""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum


class ErrorKind(Enum):
    """Closed set of failure kinds a caller can match on."""

    FATAL_CONFIG = "fatal_config"
    RATE_LIMITED = "rate_limited"
    TRANSPORT_FAILURE = "transport_failure"
    PARTIAL_DELIVERY = "partial_delivery"


class RelayClientError(Exception):
    """Base error for relay push client failures."""

    kind: ErrorKind = ErrorKind.TRANSPORT_FAILURE


class RelayConfigError(RelayClientError):
    """Client configuration is unusable."""

    kind = ErrorKind.FATAL_CONFIG


class RelayTrustStoreError(RelayConfigError):
    """Bundled trust store could not be read or initialized."""


class RelayTimeout(RelayClientError):
    """Timeout while communicating with the service."""


class RelayConnectionError(RelayClientError):
    """Network connection to the service failed."""


class RelayProtocolError(RelayClientError):
    """Service response did not match the expected wire format."""


class RelayResponseError(RelayClientError):
    """Non-200 HTTP response from the service."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status


class RelayRateLimitError(RelayClientError):
    """Service rejected the request with HTTP 413."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(self, status: int, message: str = "Rate limit exceeded") -> None:
        super().__init__(f"{message}: {status}")
        self.status = status


class RelayDeliveryError(RelayClientError):
    """Message accepted but one or more recipients failed."""

    kind = ErrorKind.PARTIAL_DELIVERY

    def __init__(self, failures: Sequence[str]) -> None:
        super().__init__(f"Got send failure: {failures[0]}")
        self.recipient = failures[0]
        self.failures = tuple(failures)
