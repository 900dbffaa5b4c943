"""
Core scanning logic: BFS page discovery followed by batched resource probing.
"""
from __future__ import annotations

import logging
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Deque, Dict, List, Optional, Set

from linkmonitor.classify import build_broken_link
from linkmonitor.client import HttpClient, PageFetcher, ResourceProber
from linkmonitor.errors import FetchError
from linkmonitor.extract import extract_resources
from linkmonitor.models import (
    BrokenLink, DiscoveredResource, ErrorKind, ProbeFailed, ProbeOutcome,
    ScanOptions, ScanProgress, ScanResult, ScanSummary, ScanTarget,
)
from linkmonitor.urls import is_internal

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ScanProgress], None]


class Frontier:
    """FIFO queue of pages to fetch plus the set of URLs ever enqueued."""

    def __init__(self, seed: str, capacity: int) -> None:
        self.capacity = capacity
        self.queue: Deque[str] = deque([seed])
        self.seen: Set[str] = {seed}
        self.visited: Set[str] = set()

    def __len__(self) -> int:
        return len(self.queue)

    def push(self, url: str) -> bool:
        """Enqueue url unless already seen or the queue is full."""
        if url in self.seen or len(self.queue) >= self.capacity:
            return False
        self.seen.add(url)
        self.queue.append(url)
        return True

    def pop(self) -> Optional[str]:
        """Next unvisited URL, marked visited before it is returned."""
        while self.queue:
            url = self.queue.popleft()
            if url in self.visited:
                continue
            self.visited.add(url)
            return url
        return None


class LinkScanner:
    """
    Scan a website for broken links, images, scripts and stylesheets.

    Each instance owns its own frontier and discovered set, so separate
    scanners never share state.
    """

    def __init__(
        self,
        seed_url: str,
        options: Optional[ScanOptions] = None,
        *,
        fetcher: Optional[PageFetcher] = None,
        prober: Optional[ResourceProber] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.target = ScanTarget.from_url(seed_url, options)
        self.options = self.target.options
        self._client: Optional[HttpClient] = None
        if fetcher is None or prober is None:
            self._client = HttpClient(self.options)
        self.fetcher: PageFetcher = fetcher or self._client
        self.prober: ResourceProber = prober or self._client
        self.on_progress = on_progress

        self.progress = ScanProgress()
        self.broken_links: List[BrokenLink] = []
        self.frontier = Frontier(self.target.seed_url, self.options.max_pages)
        self.resources: Dict[str, DiscoveredResource] = {}

    def get_progress(self) -> ScanProgress:
        return self.progress.snapshot()

    def _notify(self) -> None:
        if self.on_progress is not None:
            self.on_progress(self.progress.snapshot())

    def scan(self) -> ScanResult:
        """Run discovery and probing. Always returns a completed result."""
        logger.info("Starting link scan for %s", self.target.seed_url)
        try:
            self._discover()
            self._probe_all()
        except Exception:
            logger.exception("Link scan of %s aborted", self.target.seed_url)
        finally:
            if self._client is not None:
                self._client.close()

        self.progress.finish()
        self._notify()
        summary = ScanSummary.from_broken_links(len(self.resources), self.broken_links)
        logger.info(
            "Link scan completed for %s: %d broken out of %d links across %d pages",
            self.target.seed_url, summary.broken_links_found, summary.total_links_found,
            self.progress.scanned_pages,
        )
        return ScanResult(broken_links=list(self.broken_links), progress=self.progress, summary=summary)

    def _discover(self) -> None:
        max_pages = self.options.max_pages
        while self.frontier and self.progress.scanned_pages < max_pages:
            url = self.frontier.pop()
            if url is None:
                break

            logger.debug("Scanning page %d/%d: %s", self.progress.scanned_pages + 1, max_pages, url)
            try:
                html = self.fetcher.fetch(url)
                found = extract_resources(html, url, self.options.max_links_per_page)
            except FetchError as e:
                logger.warning("Failed to extract links from %s: %s", url, e.reason)
                self._record_failed_page()
                continue
            except Exception:
                logger.exception("Failed to extract links from %s", url)
                self._record_failed_page()
                continue

            new_pages = 0
            for resource in found:
                self.resources.setdefault(resource.url, resource)
                if resource.is_page_link and is_internal(resource.url, self.target.origin):
                    if self.frontier.push(resource.url):
                        new_pages += 1

            self.progress.scanned_pages += 1
            self._update_page_totals()
            logger.debug("%s: +%d pages, %d links known", url, new_pages, len(self.resources))
            self._notify()

    def _record_failed_page(self) -> None:
        self.progress.failed_pages += 1
        self._update_page_totals()
        self._notify()

    def _update_page_totals(self) -> None:
        progress = self.progress
        progress.total_pages = progress.scanned_pages + progress.failed_pages + len(self.frontier)
        progress.total_links = len(self.resources)

    def _probe_one(self, url: str) -> ProbeOutcome:
        try:
            return self.prober.probe(url)
        except Exception as e:
            logger.exception("Probe of %s raised", url)
            return ProbeFailed(ErrorKind.OTHER, str(e) or e.__class__.__name__)

    def _probe_all(self) -> None:
        resources = list(self.resources.values())
        self.progress.total_links = len(resources)
        logger.info(
            "Found %d links across %d pages. Checking for broken links...",
            len(resources), self.progress.scanned_pages,
        )

        batch_size = self.options.concurrency
        with ThreadPoolExecutor(max_workers=batch_size, thread_name_prefix="linkmonitor-probe") as pool:
            for start in range(0, len(resources), batch_size):
                batch = resources[start:start + batch_size]
                futures = [pool.submit(self._probe_one, r.url) for r in batch]
                # Counters are only touched here, on the coordinating thread.
                for resource, future in zip(batch, futures):
                    outcome = future.result()
                    self.progress.checked_links += 1
                    if outcome.is_broken:
                        self.broken_links.append(build_broken_link(resource, outcome, self.target.origin))
                        self.progress.broken_links += 1

                self._notify()
                if start + batch_size < len(resources) and self.options.batch_delay_s:
                    time.sleep(self.options.batch_delay_s)


def scan(
    seed_url: str,
    *,
    max_pages: int = 50,
    max_links_per_page: int = 100,
    timeout_ms: int = 10000,
    concurrency: int = 5,
    fetcher: Optional[PageFetcher] = None,
    prober: Optional[ResourceProber] = None,
    on_progress: Optional[ProgressCallback] = None,
    **options,
) -> ScanResult:
    """
    Scan a website for broken resources.

    Args:
        seed_url: Start URL; its origin decides what counts as internal.
        max_pages: Maximum number of pages to discover links on.
        max_links_per_page: Maximum resources taken from a single page.
        timeout_ms: Per-request timeout in milliseconds.
        concurrency: Maximum number of probes in flight at once.
        fetcher, prober: Optional replacements for the HTTP client.
        on_progress: Called with a progress snapshot after each page and batch.
        **options: Extra ScanOptions fields (user_agent, max_redirects, batch_delay_s).

    Raises:
        InvalidSeedURLError: seed_url is not an absolute http(s) URL.
    """
    scan_options = ScanOptions(
        max_pages=max_pages,
        max_links_per_page=max_links_per_page,
        timeout_s=timeout_ms / 1000,
        concurrency=concurrency,
        **options,
    )
    scanner = LinkScanner(seed_url, scan_options, fetcher=fetcher, prober=prober, on_progress=on_progress)
    return scanner.scan()
