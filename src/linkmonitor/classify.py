"""
Broken link classification and prioritization.
"""
from __future__ import annotations

from typing import Optional, Tuple
from urllib.parse import urlparse

from linkmonitor.models import (
    EXTERNAL, HIGH, IMAGE, INTERNAL, LOW, MEDIUM, SCRIPT, STYLESHEET,
    BrokenLink, DiscoveredResource, ProbeFailed, ProbeOutcome,
)
from linkmonitor.urls import Origin, is_internal

IMAGE_EXTENSIONS: frozenset[str] = frozenset((
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".ico", ".bmp", ".avif",
))
SCRIPT_EXTENSIONS: frozenset[str] = frozenset((".js", ".mjs"))
STYLESHEET_EXTENSIONS: frozenset[str] = frozenset((".css",))


def _type_from_extension(url: str) -> Optional[str]:
    path = urlparse(url).path.lower()
    dot = path.rfind(".")
    if dot == -1 or "/" in path[dot:]:
        return None
    ext = path[dot:]
    if ext in IMAGE_EXTENSIONS:
        return IMAGE
    if ext in SCRIPT_EXTENSIONS:
        return SCRIPT
    if ext in STYLESHEET_EXTENSIONS:
        return STYLESHEET
    return None


def link_type_for(url: str, origin: Origin) -> str:
    """File extension first, then origin."""
    return _type_from_extension(url) or (INTERNAL if is_internal(url, origin) else EXTERNAL)


def priority_for(link_type: str, status_code: Optional[int]) -> str:
    if status_code is not None and status_code >= 500:
        return HIGH
    if status_code is not None and status_code >= 400:
        if link_type in (INTERNAL, SCRIPT, STYLESHEET):
            return HIGH
        if link_type == IMAGE:
            return MEDIUM
    return LOW


def classify(url: str, origin: Origin, status_code: Optional[int] = None) -> Tuple[str, str]:
    """Return (link_type, priority) for a failing resource."""
    link_type = link_type_for(url, origin)
    return link_type, priority_for(link_type, status_code)


def describe_outcome(outcome: ProbeOutcome) -> str:
    if isinstance(outcome, ProbeFailed):
        return outcome.message
    return f"HTTP {outcome.status_code}"


def build_broken_link(resource: DiscoveredResource, outcome: ProbeOutcome, origin: Origin) -> BrokenLink:
    """Turn a failing probe into a BrokenLink entry."""
    status_code = outcome.status_code
    link_type, priority = classify(resource.url, origin, status_code)
    return BrokenLink(
        url=resource.url,
        source_url=resource.source_url,
        link_text=resource.link_text,
        link_type=link_type,
        status_code=status_code,
        error=describe_outcome(outcome),
        priority=priority,
    )
