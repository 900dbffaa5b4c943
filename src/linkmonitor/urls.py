"""
URL normalization and origin helpers.
"""
from __future__ import annotations

from typing import Optional, Tuple
from urllib.parse import urldefrag, urljoin, urlparse, urlunparse

Origin = Tuple[str, str]

# References that never point at a network resource
NON_NETWORK_PREFIXES: Tuple[str, ...] = ("mailto:", "tel:", "javascript:", "data:", "#")


def is_network_url(url: str) -> bool:
    """Return False for mailto:, tel:, javascript:, data: and in-page anchors."""
    stripped = (url or "").strip().lower()
    if not stripped:
        return False
    return not stripped.startswith(NON_NETWORK_PREFIXES)


def normalize_url(url: str, base: str) -> Optional[str]:
    """
    Normalize URL for deduplication and probing.

    - Joins relative URLs against base (the referencing page)
    - Drops fragments (#...)
    - Normalizes scheme/host case
    - Removes default ports (:80, :443)
    - Keeps querystrings (they matter for uniqueness)

    Returns None for non-http(s) or unparseable URLs.
    """
    if not url or not is_network_url(url):
        return None

    try:
        joined, _ = urldefrag(urljoin(base, url.strip()))
        parsed = urlparse(joined)
        port = parsed.port
    except ValueError:
        return None

    if parsed.scheme not in ("http", "https"):
        return None

    hostname = (parsed.hostname or "").lower()
    if not hostname:
        return None

    if (parsed.scheme == "http" and port == 80) or (parsed.scheme == "https" and port == 443):
        netloc = hostname
    elif port:
        netloc = f"{hostname}:{port}"
    else:
        netloc = hostname

    return urlunparse((
        parsed.scheme.lower(),
        netloc,
        parsed.path or "/",
        parsed.params,
        parsed.query,
        "",
    ))


def origin_of(url: str) -> Origin:
    """Scheme and netloc of an already normalized URL."""
    parsed = urlparse(url)
    return parsed.scheme, parsed.netloc


def is_internal(url: str, origin: Origin) -> bool:
    """Check if URL has the same scheme and netloc as the scan origin."""
    return origin_of(url) == origin
