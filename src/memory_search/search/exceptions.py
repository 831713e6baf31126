"""
Custom exceptions for the search module.

Exception naming avoids shadowing Python builtins:
- InvalidQueryError rather than a bare ValueError subclass named after input
- SearchChannelError carries the failing channel and the underlying cause
"""

from __future__ import annotations


class SearchError(Exception):
    """Base exception for all search errors."""

    pass


class InvalidQueryError(SearchError, ValueError):
    """Raised when search input is rejected before any query runs."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and the offending field.

        Args:
            message: Human-readable error description
            field: Name of the invalid argument (query, limit, threshold, ...)
        """
        super().__init__(message)
        self.field = field


class CapabilityMissingError(SearchError):
    """Raised when a required backend capability cannot be verified.

    The message says what is missing and how to verify it; nothing is
    substituted in its place.
    """

    def __init__(
        self,
        message: str,
        capability: str,
        verification: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with remediation details.

        Args:
            message: Human-readable error description
            capability: Name of the missing capability
            verification: Command that verifies the capability
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.capability = capability
        self.verification = verification
        self.cause = cause


class SearchChannelError(SearchError):
    """Raised when a search channel's query fails."""

    def __init__(
        self,
        message: str,
        channel: str,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with message, channel name, and optional cause.

        Args:
            message: Human-readable error description
            channel: Channel that failed (exact, vector, wildcard)
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.channel = channel
        self.cause = cause


class FulltextIndexMissingError(SearchChannelError):
    """Raised when a fulltext index the exact channel requires is missing."""

    def __init__(
        self,
        message: str,
        missing_indexes: list[str],
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, channel="exact", cause=cause)
        self.missing_indexes = missing_indexes


class ChannelCancelledError(SearchChannelError):
    """Raised when a channel call is aborted by its cancellation signal."""

    pass
