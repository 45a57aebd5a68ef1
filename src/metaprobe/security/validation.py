"""
URL validation for metaprobe.

The only caller error that fails a fetch outright: everything that is not an
absolute http(s) URL, plus optional blocking of loopback and private hosts.
"""

from __future__ import annotations

import ipaddress
from typing import Optional
from urllib.parse import urlparse

from metaprobe.config.config import SecurityConfig
from metaprobe.exceptions import URLValidationError


class URLValidator:
    """
    Validates caller supplied URLs before any network access.

    Features:
    - Scheme allowlist (http/https by default)
    - Host presence and maximum length checks
    - Blocked host names and private, loopback or link-local IPs
    """

    def __init__(self, rules: Optional[SecurityConfig] = None):
        self.rules = rules or SecurityConfig()

    def validate_url(self, url: object) -> str:
        """
        Validate a URL.

        Returns:
            The URL with surrounding whitespace removed

        Raises:
            URLValidationError: If the value is not a fetchable URL
        """
        if not isinstance(url, str) or not url.strip():
            raise URLValidationError("URL must be a non-empty string")

        url = url.strip()
        if len(url) > self.rules.max_url_length:
            raise URLValidationError(f"URL exceeds maximum length of {self.rules.max_url_length}", url=url)

        try:
            parsed = urlparse(url)
            hostname = parsed.hostname
            # Accessing .port raises on out-of-range values
            parsed.port
        except ValueError as e:
            raise URLValidationError(f"Invalid URL format: {e}", url=url) from e

        if parsed.scheme.lower() not in self.rules.allowed_schemes:
            raise URLValidationError(f"Invalid URL scheme: {parsed.scheme or '(none)'}", url=url)

        if not hostname:
            raise URLValidationError("URL has no host", url=url)

        if not self.rules.allow_private_ips:
            if hostname in self.rules.blocked_domains or hostname.endswith(".localhost"):
                raise URLValidationError(f"Blocked domain: {hostname}", url=url)
            if self._is_private_ip(hostname):
                raise URLValidationError(f"Private IP addresses not allowed: {hostname}", url=url)

        return url

    def _is_private_ip(self, hostname: str) -> bool:
        """Check if hostname is a private IP address."""
        try:
            ip = ipaddress.ip_address(hostname)
            return ip.is_private or ip.is_loopback or ip.is_link_local
        except ValueError:
            # Not an IP address
            return False


def validate_url(url: object, rules: Optional[SecurityConfig] = None) -> str:
    """Validate a URL with the given (or default) rules."""
    return URLValidator(rules).validate_url(url)
