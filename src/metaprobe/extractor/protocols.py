"""
Protocols for pluggable metadata extraction strategies.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from metaprobe.config.config import FetchOptions
from metaprobe.protocols import ExtractionResult, FetchMethod


@runtime_checkable
class Extractor(Protocol):
    """URL-to-ExtractionResult strategy."""

    method: FetchMethod

    async def extract(self, url: str, options: FetchOptions) -> ExtractionResult:
        """Extract metadata from a URL.

        Args:
            url: Validated absolute URL
            options: Per-call fetch options

        Returns:
            ExtractionResult; failures are recorded on the record, never raised
        """
        ...
