"""
HTTP collaborators: page fetching for discovery and resource probing.
"""
from __future__ import annotations

import logging
from typing import Optional, Protocol

import requests
from requests.adapters import HTTPAdapter

from linkmonitor.errors import FetchError
from linkmonitor.models import ErrorKind, ProbeFailed, ProbeOk, ProbeOutcome, ScanOptions
from linkmonitor.urls import is_network_url

logger = logging.getLogger(__name__)

# HEAD replies meaning "this server does not do HEAD", not "resource is gone"
HEAD_REJECTED_STATUSES: frozenset[int] = frozenset((405, 501))

_DNS_MARKERS = (
    "failed to resolve",
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "no address associated",
    "temporary failure in name resolution",
)
_REFUSED_MARKERS = ("connection refused", "actively refused", "errno 111")


class PageFetcher(Protocol):
    def fetch(self, url: str) -> str:
        """Return the HTML body of url, or raise FetchError."""


class ResourceProber(Protocol):
    def probe(self, url: str) -> ProbeOutcome:
        """Check url. Must not raise."""


def classify_exception(exc: requests.RequestException) -> ProbeFailed:
    """Map a requests exception to a typed probe failure."""
    if isinstance(exc, requests.Timeout):
        return ProbeFailed(ErrorKind.TIMEOUT, "Timeout")
    if isinstance(exc, requests.TooManyRedirects):
        return ProbeFailed(ErrorKind.TOO_MANY_REDIRECTS, "Too many redirects")
    if isinstance(exc, requests.ConnectionError):
        text = str(exc).lower()
        if any(marker in text for marker in _DNS_MARKERS):
            return ProbeFailed(ErrorKind.DNS, "Domain not found")
        if any(marker in text for marker in _REFUSED_MARKERS):
            return ProbeFailed(ErrorKind.CONNECTION_REFUSED, "Connection refused")
    status_code = exc.response.status_code if exc.response is not None else None
    return ProbeFailed(ErrorKind.OTHER, str(exc) or exc.__class__.__name__, status_code)


class HttpClient:
    """
    requests-backed page fetcher and resource prober.

    One Session is shared by the probe worker threads; its connection pool is
    sized to the scan's concurrency bound.
    """

    def __init__(self, options: Optional[ScanOptions] = None, session: Optional[requests.Session] = None) -> None:
        self.options = options or ScanOptions()
        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(pool_connections=self.options.concurrency, pool_maxsize=self.options.concurrency)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        session.headers["User-Agent"] = self.options.user_agent
        session.max_redirects = self.options.max_redirects
        self.session = session

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def fetch(self, url: str) -> str:
        """GET a page for link discovery. Non-HTML bodies yield an empty string."""
        try:
            resp = self.session.get(url, timeout=self.options.timeout_s, allow_redirects=True)
        except requests.RequestException as e:
            raise FetchError(url, str(e)) from e

        if resp.status_code >= 400:
            raise FetchError(url, f"HTTP {resp.status_code}", resp.status_code)

        content_type = (resp.headers.get("content-type") or "").lower()
        if "text/html" not in content_type and "xhtml" not in content_type:
            logger.debug("Skipping non-HTML page %s (%s)", url, content_type or "no content-type")
            return ""
        return resp.text

    def probe(self, url: str) -> ProbeOutcome:
        """HEAD first, then one GET fallback if the HEAD gave no usable answer."""
        if not is_network_url(url):
            return ProbeOk(200)

        try:
            resp = self.session.head(url, timeout=self.options.timeout_s, allow_redirects=True)
            if resp.status_code not in HEAD_REJECTED_STATUSES:
                return ProbeOk(resp.status_code)
            logger.debug("HEAD rejected with %s for %s, retrying with GET", resp.status_code, url)
        except requests.RequestException as e:
            logger.debug("HEAD failed for %s (%s), retrying with GET", url, e)

        try:
            with self.session.get(url, timeout=self.options.timeout_s, allow_redirects=True, stream=True) as resp:
                return ProbeOk(resp.status_code)
        except requests.RequestException as e:
            return classify_exception(e)
