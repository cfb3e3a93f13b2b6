"""
News Feed Exceptions - Custom error hierarchy.

Fetch and theme source errors propagate to the aggregator, which aborts
the whole refresh cycle. The scheduler is the only place they are caught
and logged; readers of the snapshot store never see them.
"""

from datetime import datetime
from typing import Any, Optional


class NewsFeedError(Exception):
    """Base exception for all news feed errors."""

    def __init__(
        self,
        message: str,
        source_name: str = "",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.source_name = source_name
        self.details = details or {}
        self.timestamp = datetime.utcnow()
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "source_name": self.source_name,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class FetchError(NewsFeedError):
    """Failed to fetch articles from the news provider."""

    def __init__(
        self,
        message: str,
        source_name: str = "",
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source_name, details)
        self.status_code = status_code
        self.url = url

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "status_code": self.status_code,
            "url": self.url,
        })
        return data


class RateLimitError(FetchError):
    """Rate limit exceeded for the news provider."""

    def __init__(
        self,
        message: str,
        source_name: str = "",
        retry_after_seconds: Optional[int] = None,
        status_code: Optional[int] = 429,
        url: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source_name, status_code, url, details)
        self.retry_after_seconds = retry_after_seconds

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["retry_after_seconds"] = self.retry_after_seconds
        return data


class AuthenticationError(FetchError):
    """The provider rejected the configured credential."""
    pass


class FetchTimeoutError(FetchError):
    """A single fetch exceeded the configured timeout."""

    def __init__(
        self,
        message: str,
        source_name: str = "",
        timeout_seconds: Optional[float] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source_name, details=details)
        self.timeout_seconds = timeout_seconds

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["timeout_seconds"] = self.timeout_seconds
        return data


class ParseError(NewsFeedError):
    """Failed to parse a response from the news provider."""

    def __init__(
        self,
        message: str,
        source_name: str = "",
        raw_data: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source_name, details)
        self.raw_data = raw_data[:500] if raw_data else None  # Truncate for safety

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "raw_data_preview": self.raw_data[:100] if self.raw_data else None,
        })
        return data


class ThemeSourceError(NewsFeedError):
    """The theme list could not be obtained."""
    pass


class ConfigurationError(NewsFeedError):
    """Invalid news feed configuration."""
    pass


class RefreshError(NewsFeedError):
    """A refresh cycle was aborted; no snapshot was produced."""

    def __init__(
        self,
        message: str,
        cycle_id: str = "",
        cause: Optional[BaseException] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        source_name = getattr(cause, "source_name", "") if cause else ""
        super().__init__(message, source_name, details)
        self.cycle_id = cycle_id
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "cycle_id": self.cycle_id,
            "cause": repr(self.cause) if self.cause else None,
        })
        return data
