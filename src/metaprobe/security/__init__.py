"""Input validation for metaprobe."""

from .validation import URLValidator, validate_url

__all__ = ["URLValidator", "validate_url"]
