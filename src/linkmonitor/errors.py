"""
Exception types raised by the link monitor.
"""
from __future__ import annotations

from typing import Optional


class LinkMonitorError(Exception):
    """Base class for link monitor errors."""


class InvalidSeedURLError(LinkMonitorError, ValueError):
    """The start URL cannot be resolved to an absolute http(s) URL."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Invalid start URL: {url}")
        self.url = url


class FetchError(LinkMonitorError):
    """A page could not be fetched during discovery."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason
        self.status_code = status_code
