"""
Error taxonomy for metaprobe.

Only URLValidationError escapes a fetch; every other kind is caught by the
extractors and recorded on the returned record.
"""

from __future__ import annotations


class MetadataError(Exception):
    """Base class for all extraction failures."""

    kind = "MetadataError"

    def __init__(self, message: str = "", *, url: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.url = url


class NetworkError(MetadataError):
    """DNS, connection or HTTP status failure."""

    kind = "NetworkError"

    def __init__(self, message: str = "", *, url: str | None = None, status: int | None = None) -> None:
        super().__init__(message, url=url)
        self.status = status


class FetchTimeoutError(MetadataError):
    """A network or render operation exceeded its configured bound."""

    kind = "TimeoutError"


class RenderError(MetadataError):
    """Headless browser crash, launch failure or navigation failure."""

    kind = "RenderError"


class ParseError(MetadataError):
    """Markup or JSON that defeated both the DOM and the regex parser."""

    kind = "ParseError"


class URLValidationError(MetadataError, ValueError):
    """Raised when the caller passes something that is not a fetchable URL."""

    kind = "ValidationError"
