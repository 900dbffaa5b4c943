import threading
import time
from typing import Dict, List, Optional, Union

from linkmonitor.errors import FetchError
from linkmonitor.models import ProbeFailed, ProbeOk


class FakeSite:
    """In-memory website standing in for both the page fetcher and the prober."""

    def __init__(
        self,
        pages: Optional[Dict[str, str]] = None,
        statuses: Optional[Dict[str, Union[int, ProbeFailed]]] = None,
        default_status: int = 200,
        probe_delay: float = 0.0,
    ):
        self.pages = pages or {}
        self.statuses = statuses or {}
        self.default_status = default_status
        self.probe_delay = probe_delay
        self.fetched: List[str] = []
        self.probed: List[str] = []
        self._lock = threading.Lock()
        self.in_flight = 0
        self.peak_in_flight = 0

    def fetch(self, url: str) -> str:
        self.fetched.append(url)
        if url not in self.pages:
            raise FetchError(url, "HTTP 404", 404)
        return self.pages[url]

    def probe(self, url: str):
        with self._lock:
            self.probed.append(url)
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.probe_delay:
                time.sleep(self.probe_delay)
            outcome = self.statuses.get(url, self.default_status)
            if isinstance(outcome, ProbeFailed):
                return outcome
            return ProbeOk(outcome)
        finally:
            with self._lock:
                self.in_flight -= 1


def page(*hrefs: str, images=(), scripts=(), stylesheets=()) -> str:
    """Build a small HTML page referencing the given resources."""
    body = "".join(f'<a href="{h}">link {i}</a>' for i, h in enumerate(hrefs))
    body += "".join(f'<img src="{s}" alt="image {i}">' for i, s in enumerate(images))
    head = "".join(f'<link rel="stylesheet" href="{s}">' for s in stylesheets)
    head += "".join(f'<script src="{s}"></script>' for s in scripts)
    return f"<html><head>{head}</head><body>{body}</body></html>"
