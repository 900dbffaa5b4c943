import pytest

from conftest import FakeSite, page
from linkmonitor import InvalidSeedURLError, LinkScanner, ScanOptions, scan
from linkmonitor.models import ErrorKind, ProbeFailed
from linkmonitor.scanner import Frontier

SEED = "https://site.test/"


def run(site, seed=SEED, **kwargs):
    kwargs.setdefault("batch_delay_s", 0)
    return scan(seed, fetcher=site, prober=site, **kwargs)


def test_end_to_end_scenario():
    site = FakeSite(
        pages={
            SEED: page("/a", "/b", "/missing", images=["https://cdn.example.net/logo.png"]),
            "https://site.test/a": "<html><body>A</body></html>",
            "https://site.test/b": "<html><body>B</body></html>",
        },
        statuses={
            "https://site.test/missing": 404,
            "https://cdn.example.net/logo.png": 500,
        },
    )

    result = run(site)

    assert len(result.broken_links) == 2
    by_url = {link.url: link for link in result.broken_links}
    missing = by_url["https://site.test/missing"]
    assert (missing.link_type, missing.priority, missing.status_code) == ("internal", "high", 404)
    assert missing.source_url == SEED
    assert missing.link_text == "link 2"
    logo = by_url["https://cdn.example.net/logo.png"]
    assert (logo.link_type, logo.priority, logo.status_code) == ("image", "high", 500)

    assert result.summary.internal_broken_links == 1
    assert result.summary.image_broken_links == 1
    assert result.summary.total_links_found == 4
    assert result.progress.scanned_pages == 3
    assert result.progress.failed_pages == 1
    assert result.progress.checked_links == 4
    assert result.progress.broken_links == 2
    assert result.progress.is_complete


def test_site_with_no_broken_links():
    site = FakeSite(pages={
        SEED: page("/a", "https://other.example/", scripts=["/app.js"], stylesheets=["/site.css"]),
        "https://site.test/a": page("/"),
    })

    result = run(site)

    assert result.broken_links == []
    assert result.progress.is_complete
    assert result.progress.completed_at is not None
    assert result.summary.broken_links_found == 0
    assert result.summary.total_links_found == 5


def test_each_page_fetched_once_in_densely_linked_graph():
    urls = [f"https://site.test/p{i}" for i in range(6)]
    everything = page("/", *[u + "#frag" for u in urls], *urls)
    site = FakeSite(pages={SEED: everything, **{u: everything for u in urls}})

    result = run(site, max_pages=50)

    assert sorted(site.fetched) == sorted([SEED] + urls)
    assert len(site.probed) == len(set(site.probed)) == 7
    assert result.progress.scanned_pages == 7


class InfiniteSite(FakeSite):
    """Every page links to three new pages and back to the seed."""

    def fetch(self, url):
        self.fetched.append(url)
        n = int(url.rsplit("/", 1)[-1] or 0)
        return page("/", f"/{n * 3 + 1}", f"/{n * 3 + 2}", f"/{n * 3 + 3}")


@pytest.mark.parametrize("max_pages", [1, 5, 12])
def test_traversal_is_bounded_on_infinite_cyclic_graph(max_pages):
    site = InfiniteSite()

    result = run(site, max_pages=max_pages)

    assert result.progress.scanned_pages == max_pages
    assert len(site.fetched) == max_pages
    assert len(set(site.fetched)) == len(site.fetched)
    assert result.progress.total_pages <= 2 * max_pages


def test_traversal_is_breadth_first():
    site = InfiniteSite()
    run(site, max_pages=5)
    assert site.fetched == [SEED] + [f"https://site.test/{i}" for i in range(1, 5)]


def test_probe_concurrency_never_exceeds_bound():
    assets = [f"/img/{i}.png" for i in range(23)]
    site = FakeSite(pages={SEED: page(images=assets)}, probe_delay=0.01)

    result = run(site, concurrency=4)

    assert site.peak_in_flight <= 4
    assert site.peak_in_flight >= 2
    assert result.progress.checked_links == 23


def test_per_page_link_bound():
    site = FakeSite(pages={SEED: page(*[f"https://other.example/{i}" for i in range(30)])})
    result = run(site, max_links_per_page=10)
    assert result.summary.total_links_found == 10


def test_non_network_references_never_reported():
    site = FakeSite(
        pages={SEED: page("mailto:a@site.test", "tel:123", "#top", "javascript:void(0)", "/real")},
        default_status=404,
    )

    result = run(site)

    assert [link.url for link in result.broken_links] == ["https://site.test/real"]
    for probed in site.probed:
        assert probed.startswith("https://")


def test_network_errors_become_broken_links():
    site = FakeSite(
        pages={SEED: page("https://gone.example/", "https://slow.example/")},
        statuses={
            "https://gone.example/": ProbeFailed(ErrorKind.DNS, "Domain not found"),
            "https://slow.example/": ProbeFailed(ErrorKind.TIMEOUT, "Timeout"),
        },
    )

    result = run(site)

    errors = {link.url: link.error for link in result.broken_links}
    assert errors == {"https://gone.example/": "Domain not found", "https://slow.example/": "Timeout"}
    assert result.summary.external_broken_links == 2


def test_unreachable_seed_returns_complete_empty_result():
    site = FakeSite(pages={})

    result = run(site)

    assert result.progress.is_complete
    assert result.progress.scanned_pages == 0
    assert result.progress.failed_pages == 1
    assert result.broken_links == []
    assert result.summary.total_links_found == 0


def test_collaborator_exceptions_are_converted_to_data():
    class ExplodingSite(FakeSite):
        def fetch(self, url):
            if url != SEED:
                raise RuntimeError("parser blew up")
            return super().fetch(url)

        def probe(self, url):
            if url.endswith("/boom"):
                raise RuntimeError("boom")
            return super().probe(url)

    site = ExplodingSite(pages={SEED: page("/boom", "/fine")})

    result = run(site)

    assert result.progress.is_complete
    assert result.progress.failed_pages == 2
    assert [(l.url, l.error) for l in result.broken_links] == [("https://site.test/boom", "boom")]


def test_summary_counts_are_consistent():
    site = FakeSite(
        pages={SEED: page(
            "/missing", "https://other.example/x",
            images=["/a.png"], scripts=["/app.js"], stylesheets=["/site.css"],
        )},
        default_status=404,
    )

    result = run(site)
    summary = result.summary

    assert summary.broken_links_found == len(result.broken_links) == 5
    assert (
        summary.internal_broken_links + summary.external_broken_links
        + summary.image_broken_links + summary.other_broken_links
    ) == summary.broken_links_found
    assert summary.other_broken_links == 2


def test_progress_callback_receives_snapshots():
    seen = []
    site = FakeSite(pages={SEED: page("/a"), "https://site.test/a": page()})

    result = scan(SEED, fetcher=site, prober=site, on_progress=seen.append, batch_delay_s=0)

    assert seen[-1].is_complete
    assert [s.scanned_pages for s in seen[:2]] == [1, 2]
    assert seen[0] is not result.progress


def test_get_progress_is_a_copy():
    site = FakeSite(pages={SEED: page()})
    scanner = LinkScanner(SEED, ScanOptions(batch_delay_s=0), fetcher=site, prober=site)
    before = scanner.get_progress()
    scanner.scan()
    assert not before.is_complete
    assert scanner.get_progress().is_complete


def test_separate_scanners_do_not_share_state():
    site = FakeSite(pages={SEED: page("/a"), "https://site.test/a": page()})
    first = LinkScanner(SEED, fetcher=site, prober=site)
    second = LinkScanner(SEED, fetcher=site, prober=site)
    first.scan()
    assert second.frontier.visited == set()
    assert second.resources == {}


@pytest.mark.parametrize("bad", ["not a url", "ftp://site.test/", "mailto:x@site.test", ""])
def test_invalid_seed_raises(bad):
    with pytest.raises(InvalidSeedURLError):
        LinkScanner(bad, fetcher=FakeSite(), prober=FakeSite())
    with pytest.raises(ValueError):
        scan(bad, fetcher=FakeSite(), prober=FakeSite())


def test_invalid_options_raise():
    with pytest.raises(ValueError):
        scan(SEED, concurrency=0, fetcher=FakeSite(), prober=FakeSite())


def test_frontier_capacity_and_dedup():
    frontier = Frontier(SEED, capacity=2)
    assert not frontier.push(SEED)
    assert frontier.push("https://site.test/a")
    assert not frontier.push("https://site.test/b")
    assert frontier.pop() == SEED
    assert frontier.push("https://site.test/b")
    assert not frontier.push("https://site.test/a")
    assert frontier.pop() == "https://site.test/a"
    assert frontier.pop() == "https://site.test/b"
    assert frontier.pop() is None
    assert frontier.visited == {SEED, "https://site.test/a", "https://site.test/b"}


def test_to_dict_uses_camel_case_wire_format():
    site = FakeSite(pages={SEED: '<a href="/x"></a>'}, default_status=404)

    payload = run(site).to_dict()

    assert set(payload) == {"brokenLinks", "progress", "summary"}
    link = payload["brokenLinks"][0]
    assert link["sourceUrl"] == SEED
    assert link["linkText"] == "No text"
    assert link["linkType"] == "internal"
    assert link["statusCode"] == 404
    assert payload["progress"]["isComplete"] is True
    assert payload["summary"]["brokenLinksFound"] == 1


def test_extensionless_resources_are_typed_by_origin():
    html = (
        '<html><head><link rel="alternate" href="/feed"></head>'
        '<body><img src="https://cdn.other.example/photo?id=1" alt="Photo"></body></html>'
    )
    site = FakeSite(pages={SEED: html}, default_status=404)

    result = run(site)

    kinds = {(l.url, l.link_type, l.priority) for l in result.broken_links}
    assert kinds == {
        ("https://site.test/feed", "internal", "high"),
        ("https://cdn.other.example/photo?id=1", "external", "low"),
    }
    assert result.summary.internal_broken_links == 1
    assert result.summary.external_broken_links == 1


def test_total_pages_never_decreases_when_pages_fail():
    seen = []
    site = FakeSite(pages={SEED: page("/a", "/b")})

    result = scan(SEED, fetcher=site, prober=site, on_progress=seen.append, batch_delay_s=0)

    totals = [s.total_pages for s in seen]
    assert totals == sorted(totals)
    assert totals[0] == 3
    assert result.progress.total_pages == 3
    assert result.progress.failed_pages == 2


def test_failed_pages_are_reported_to_progress_callback():
    seen = []
    site = FakeSite(pages={SEED: page("/a", "/b")})

    scan(SEED, fetcher=site, prober=site, on_progress=seen.append, batch_delay_s=0)

    assert [s.failed_pages for s in seen[:3]] == [0, 1, 2]
