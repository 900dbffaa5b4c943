"""
Command-line interface for the link monitor.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from urllib.parse import urlparse

from linkmonitor.errors import InvalidSeedURLError
from linkmonitor.models import DEFAULT_USER_AGENT, ScanProgress, ScanResult
from linkmonitor.scanner import scan


def print_progress(progress: ScanProgress) -> None:
    """Print real-time progress to stderr."""
    line = (
        f"\r\033[K[{progress.scanned_pages}/{progress.total_pages}] Pages: {progress.scanned_pages}"
        f" | Links: {progress.checked_links}/{progress.total_links} | Broken: {progress.broken_links}"
    )
    sys.stderr.write(line)
    sys.stderr.flush()


def print_summary(result: ScanResult) -> None:
    """Print scan summary to stderr."""
    summary = result.summary
    sys.stderr.write("\n" + "=" * 50 + "\n")
    sys.stderr.write("LINK SCAN SUMMARY\n")
    sys.stderr.write("=" * 50 + "\n\n")

    sys.stderr.write(f"Pages scanned:          {result.progress.scanned_pages}\n")
    sys.stderr.write(f"Pages failed:           {result.progress.failed_pages}\n")
    sys.stderr.write(f"Links found:            {summary.total_links_found}\n")
    sys.stderr.write(f"Broken links:           {summary.broken_links_found}\n\n")

    if result.broken_links:
        sys.stderr.write("Broken by type:\n")
        sys.stderr.write(f"  Internal: {summary.internal_broken_links}\n")
        sys.stderr.write(f"  External: {summary.external_broken_links}\n")
        sys.stderr.write(f"  Images:   {summary.image_broken_links}\n")
        sys.stderr.write(f"  Other:    {summary.other_broken_links}\n\n")
        rank = {"high": 0, "medium": 1, "low": 2}
        for link in sorted(result.broken_links, key=lambda link: (rank.get(link.priority, 3), link.url)):
            status = link.status_code if link.status_code is not None else "ERR"
            sys.stderr.write(f"  [{link.priority}] {status} {link.url} (on {link.source_url})\n")
    else:
        sys.stderr.write("No broken links found.\n")

    sys.stderr.write("\n")


def generate_output_path(start_url: str) -> Path:
    """Generate output path: scans/{hostname}_{datetime}.json"""
    hostname = urlparse(start_url).hostname or "unknown"
    hostname_safe = hostname.replace(".", "_")
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return Path("scans") / f"{hostname_safe}_{timestamp}.json"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Scan a website for broken links, images, scripts and stylesheets."
    )
    parser.add_argument("start_url", help="Start URL (e.g. https://example.com)")
    parser.add_argument("--max-pages", type=int, default=50, help="Maximum pages to scan (default: 50)")
    parser.add_argument("--max-links-per-page", type=int, default=100, help="Maximum links taken from one page (default: 100)")
    parser.add_argument("--timeout", type=float, default=10.0, help="Request timeout in seconds (default: 10)")
    parser.add_argument("--concurrency", type=int, default=5, help="Maximum concurrent link checks (default: 5)")
    parser.add_argument("--user-agent", default=DEFAULT_USER_AGENT, help="User-Agent header")
    parser.add_argument("--out", help="Output file path, or '-' for stdout (default: auto-generated in scans/)")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    parser.add_argument("--verbose", action="store_true", help="Show progress and summary")
    parser.add_argument(
        "--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity level (default: WARNING)",
    )
    return parser


def main(argv=None) -> int:
    """Main entry point for the link monitor CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, args.log_level),
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        result = scan(
            args.start_url,
            max_pages=args.max_pages,
            max_links_per_page=args.max_links_per_page,
            timeout_ms=int(args.timeout * 1000),
            concurrency=args.concurrency,
            user_agent=args.user_agent,
            on_progress=print_progress if args.verbose else None,
        )
    except InvalidSeedURLError as e:
        sys.stderr.write(f"{e}\n")
        return 2
    except ValueError as e:
        parser.error(str(e))

    if args.verbose:
        print_summary(result)

    json_text = json.dumps(result.to_dict(), ensure_ascii=False, indent=2 if args.pretty else None)

    if args.out == "-":
        print(json_text)
    else:
        output_path = Path(args.out) if args.out else generate_output_path(args.start_url)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json_text, encoding="utf-8")
        if args.verbose:
            sys.stderr.write(f"Results written to: {output_path}\n")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
