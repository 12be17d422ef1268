from __future__ import annotations

from typing import List, Optional

from newsscanner.core.models import ArticleAnalysis
from newsscanner.scrape.discovery import (
    STRATEGY_SEMANTIC,
    STRATEGY_STRUCTURAL,
    LinkDiscovery,
    compact_html,
    find_links_structural,
)

BASE = "https://a.example/"

HOMEPAGE = """
<html><head><script>window.ads = []</script></head><body>
  <a href="/politics/senate-passes-budget-bill">Senate passes the new budget bill</a>
  <a href="https://a.example/politics/senate-passes-budget-bill#comments">Senate passes the new budget bill</a>
  <a href="//a.example/news/governors-meet-in-abuja">Governors meet in Abuja over security</a>
  <a href="/category/politics/latest">All the latest politics news here</a>
  <a href="/author/jane-doe">Articles written by Jane Doe</a>
  <a href="https://other.example/news/story-x">A story on another site entirely</a>
  <a href="/news/gallery/photo.jpg">Photos from the rally in Kano</a>
  <a href="/news/short">Read more</a>
  <a href="/single-segment-story">This one has only one segment</a>
  <a href="#top">Back to the top of page</a>
  <a href="javascript:void(0)">Open the navigation menu now</a>
</body></html>
"""

EXPECTED = [
    "https://a.example/politics/senate-passes-budget-bill",
    "https://a.example/news/governors-meet-in-abuja",
]


class FakeClassifier:
    def __init__(self, links: Optional[List[str]] = None, error: Optional[Exception] = None) -> None:
        self.links = links or []
        self.error = error
        self.html_seen: List[str] = []

    def find_links(self, html: str, base_url: str) -> List[str]:
        self.html_seen.append(html)
        if self.error is not None:
            raise self.error
        return list(self.links)

    def analyze(self, text: str) -> ArticleAnalysis:  # pragma: no cover - unused here
        raise NotImplementedError


def _discovery(classifier: FakeClassifier) -> LinkDiscovery:
    return LinkDiscovery(lambda url: HOMEPAGE, classifier)


def test_structural_heuristics_filter_and_dedupe():
    assert find_links_structural(HOMEPAGE, BASE) == EXPECTED


def test_semantic_links_are_used_when_present():
    clf = FakeClassifier(links=["https://a.example/news/ai-picked-story", "/news/relative-story"])
    outcome = _discovery(clf).discover_from_html(HOMEPAGE, BASE)
    assert outcome.strategy == STRATEGY_SEMANTIC
    assert outcome.degradation is None
    assert outcome.links == [
        "https://a.example/news/ai-picked-story",
        "https://a.example/news/relative-story",
    ]


def test_empty_semantic_result_degrades_to_structural():
    outcome = _discovery(FakeClassifier(links=[])).discover_from_html(HOMEPAGE, BASE)
    assert outcome.strategy == STRATEGY_STRUCTURAL
    assert outcome.links == EXPECTED
    assert outcome.degradation is not None
    assert outcome.degradation.error is None


def test_failing_semantic_strategy_degrades_to_structural():
    clf = FakeClassifier(error=RuntimeError("model overloaded"))
    outcome = _discovery(clf).discover_from_html(HOMEPAGE, BASE)
    assert outcome.strategy == STRATEGY_STRUCTURAL
    assert outcome.links == EXPECTED
    assert "model overloaded" in (outcome.degradation.error or "")


def test_discover_fetches_homepage_and_reports_progress():
    fetched: List[str] = []
    messages: List[str] = []

    def fetch(url: str) -> str:
        fetched.append(url)
        return HOMEPAGE

    disc = LinkDiscovery(fetch, FakeClassifier(error=ValueError("bad json")))
    links = disc.discover(BASE, messages.append)

    assert fetched == [BASE]
    assert links == EXPECTED
    assert messages[0] == "Fetching links from a.example..."
    assert any("Falling back" in m for m in messages)


def test_classifier_receives_compacted_html():
    clf = FakeClassifier(links=["https://a.example/news/x-y"])
    _discovery(clf).discover_from_html(HOMEPAGE, BASE)
    assert "window.ads" not in clf.html_seen[0]
    assert "senate-passes-budget-bill" in clf.html_seen[0]


def test_compact_html_truncates():
    assert len(compact_html("<p>" + "x" * 500 + "</p>", limit=50)) == 50
