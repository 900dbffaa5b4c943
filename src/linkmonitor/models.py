"""
Data structures for a single link scan.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from linkmonitor.errors import InvalidSeedURLError
from linkmonitor.urls import normalize_url, origin_of

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; LinkMonitor/1.0; +https://example.com/bot)"

# Link types
INTERNAL = "internal"
EXTERNAL = "external"
IMAGE = "image"
SCRIPT = "script"
STYLESHEET = "stylesheet"
OTHER = "other"
LINK_TYPES = (INTERNAL, EXTERNAL, IMAGE, SCRIPT, STYLESHEET, OTHER)

# Priorities
HIGH = "high"
MEDIUM = "medium"
LOW = "low"


def utc_now_iso() -> str:
    """Return current UTC time in ISO format."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


@dataclass(frozen=True, slots=True)
class ScanOptions:
    """Bounds and client settings for one scan."""
    max_pages: int = 50
    max_links_per_page: int = 100
    timeout_s: float = 10.0
    concurrency: int = 5
    user_agent: str = DEFAULT_USER_AGENT
    max_redirects: int = 5
    batch_delay_s: float = 0.1

    def __post_init__(self) -> None:
        for name in ("max_pages", "max_links_per_page", "concurrency"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")
        if self.timeout_s <= 0:
            raise ValueError("timeout_s must be positive")
        if self.max_redirects < 0 or self.batch_delay_s < 0:
            raise ValueError("max_redirects and batch_delay_s must not be negative")


@dataclass(frozen=True, slots=True)
class DiscoveredResource:
    """A URL referenced by a page, with the context it was found in."""
    url: str
    source_url: str
    link_text: str = ""
    tag: str = "a"
    rel: Optional[str] = None

    @property
    def is_page_link(self) -> bool:
        return self.tag == "a"


class ErrorKind(enum.Enum):
    TIMEOUT = "timeout"
    DNS = "dns"
    CONNECTION_REFUSED = "connection_refused"
    TOO_MANY_REDIRECTS = "too_many_redirects"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class ProbeOk:
    """The server answered; the status may still be an error code."""
    status_code: int

    @property
    def is_broken(self) -> bool:
        return self.status_code >= 400


@dataclass(frozen=True, slots=True)
class ProbeFailed:
    """No usable response: the request failed at the network level."""
    error: ErrorKind
    message: str
    status_code: Optional[int] = None

    @property
    def is_broken(self) -> bool:
        return True


ProbeOutcome = Union[ProbeOk, ProbeFailed]


@dataclass(frozen=True, slots=True)
class BrokenLink:
    """A resource whose probe indicated failure."""
    url: str
    source_url: str
    link_text: str
    link_type: str
    error: str
    priority: str
    status_code: Optional[int] = None
    checked_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "sourceUrl": self.source_url,
            "linkText": self.link_text or "No text",
            "linkType": self.link_type,
            "statusCode": self.status_code,
            "error": self.error,
            "priority": self.priority,
            "checkedAt": self.checked_at,
        }


@dataclass(slots=True)
class ScanProgress:
    """Running counters, mutated monotonically during a scan."""
    total_pages: int = 0
    scanned_pages: int = 0
    failed_pages: int = 0
    total_links: int = 0
    checked_links: int = 0
    broken_links: int = 0
    is_complete: bool = False
    started_at: str = field(default_factory=utc_now_iso)
    completed_at: Optional[str] = None

    def finish(self) -> None:
        """Mark the scan complete. Only the first call has an effect."""
        if self.is_complete:
            return
        self.is_complete = True
        self.completed_at = utc_now_iso()

    def snapshot(self) -> "ScanProgress":
        return replace(self)

    @property
    def duration_s(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        started = datetime.fromisoformat(self.started_at)
        completed = datetime.fromisoformat(self.completed_at)
        return (completed - started).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalPages": self.total_pages,
            "scannedPages": self.scanned_pages,
            "failedPages": self.failed_pages,
            "totalLinks": self.total_links,
            "checkedLinks": self.checked_links,
            "brokenLinks": self.broken_links,
            "isComplete": self.is_complete,
            "startedAt": self.started_at,
            "completedAt": self.completed_at,
        }


@dataclass(frozen=True, slots=True)
class ScanSummary:
    """Tally of broken links by type, derived once at the end of a scan."""
    total_links_found: int = 0
    broken_links_found: int = 0
    internal_broken_links: int = 0
    external_broken_links: int = 0
    image_broken_links: int = 0
    other_broken_links: int = 0

    @classmethod
    def from_broken_links(cls, total_links: int, broken_links: List[BrokenLink]) -> "ScanSummary":
        counts = {INTERNAL: 0, EXTERNAL: 0, IMAGE: 0}
        other = 0
        for link in broken_links:
            if link.link_type in counts:
                counts[link.link_type] += 1
            else:
                other += 1
        return cls(
            total_links_found=total_links,
            broken_links_found=len(broken_links),
            internal_broken_links=counts[INTERNAL],
            external_broken_links=counts[EXTERNAL],
            image_broken_links=counts[IMAGE],
            other_broken_links=other,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalLinksFound": self.total_links_found,
            "brokenLinksFound": self.broken_links_found,
            "internalBrokenLinks": self.internal_broken_links,
            "externalBrokenLinks": self.external_broken_links,
            "imageBrokenLinks": self.image_broken_links,
            "otherBrokenLinks": self.other_broken_links,
        }


@dataclass(slots=True)
class ScanResult:
    """Everything a caller needs to persist one scan."""
    broken_links: List[BrokenLink]
    progress: ScanProgress
    summary: ScanSummary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "brokenLinks": [link.to_dict() for link in self.broken_links],
            "progress": self.progress.to_dict(),
            "summary": self.summary.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class ScanTarget:
    """Normalized seed URL plus the bounds it is scanned with."""
    seed_url: str
    origin: Tuple[str, str]
    options: ScanOptions

    @classmethod
    def from_url(cls, url: str, options: Optional[ScanOptions] = None) -> "ScanTarget":
        seed = normalize_url(url, url)
        if not seed:
            raise InvalidSeedURLError(url)
        return cls(seed_url=seed, origin=origin_of(seed), options=options or ScanOptions())
