"""
Broken link monitor: BFS discovery of a website's internal pages followed by
bounded-concurrency health checks of every link, image, script and stylesheet.
"""
from linkmonitor.errors import FetchError, InvalidSeedURLError, LinkMonitorError
from linkmonitor.models import BrokenLink, ScanOptions, ScanProgress, ScanResult, ScanSummary
from linkmonitor.scanner import LinkScanner, scan

__version__ = "1.0.0"
__all__ = [
    "scan",
    "LinkScanner",
    "ScanOptions",
    "ScanResult",
    "ScanProgress",
    "ScanSummary",
    "BrokenLink",
    "LinkMonitorError",
    "InvalidSeedURLError",
    "FetchError",
]
