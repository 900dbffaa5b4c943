"""
Resource extraction from static HTML.
"""
from __future__ import annotations

from typing import List, Optional

from bs4 import BeautifulSoup, SoupStrainer

from linkmonitor.models import DiscoveredResource
from linkmonitor.urls import normalize_url

# Element -> attribute holding the referenced URL
RESOURCE_ATTRS = {"a": "href", "img": "src", "link": "href", "script": "src"}

# <link> relations that are hints rather than fetchable resources
SKIP_LINK_RELS: frozenset[str] = frozenset(("preconnect", "dns-prefetch"))

RESOURCE_STRAINER = SoupStrainer(list(RESOURCE_ATTRS))


def _rel_of(element) -> Optional[str]:
    rel = element.get("rel")
    if not rel:
        return None
    if isinstance(rel, str):
        rel = rel.split()
    return " ".join(r.lower() for r in rel)


def _text_of(element) -> str:
    if element.name == "a":
        return " ".join(element.get_text(separator=" ", strip=True).split())
    if element.name == "img":
        return (element.get("alt") or "").strip()
    return ""


def extract_resources(html: str, page_url: str, limit: int) -> List[DiscoveredResource]:
    """
    Extract links, images, stylesheets and scripts referenced by a page.

    Relative references are resolved against page_url. References that are
    not network URLs or cannot be parsed are dropped. At most `limit`
    resources are returned, in document order.
    """
    if not html:
        return []

    soup = BeautifulSoup(html, "lxml", parse_only=RESOURCE_STRAINER)
    resources: List[DiscoveredResource] = []

    for element in soup.find_all(list(RESOURCE_ATTRS)):
        if len(resources) >= limit:
            break

        raw = element.get(RESOURCE_ATTRS[element.name])
        if not raw:
            continue

        rel = _rel_of(element) if element.name == "link" else None
        if rel and SKIP_LINK_RELS.intersection(rel.split()):
            continue

        url = normalize_url(raw, base=page_url)
        if not url:
            continue

        resources.append(DiscoveredResource(
            url=url,
            source_url=page_url,
            link_text=_text_of(element),
            tag=element.name,
            rel=rel,
        ))

    return resources
