"""Find article links on a news homepage.

The semantic strategy asks the classifier to enumerate article links; the
structural strategy applies anchor heuristics. Selection between the two is
a separate, deterministic step: the structural result is used whenever the
semantic attempt raised or came back empty.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple
from urllib.parse import urldefrag, urljoin, urlparse

from bs4 import BeautifulSoup

from newsscanner.ai.classifier import Classifier
from newsscanner.core.errors import DiscoveryDegradation
from newsscanner.core.utils import unique
from newsscanner.infra.logging import get_unified_logger

STRATEGY_SEMANTIC = "semantic"
STRATEGY_STRUCTURAL = "structural"

EXCLUDED_PATH_PREFIXES = (
    "/author",
    "/category",
    "/tag",
    "/topics",
    "/about",
    "/contact",
    "/privacy",
    "/terms",
)
_MEDIA_EXT_RE = re.compile(r"\.(jpg|jpeg|png|gif|pdf|zip|mp3|mp4)$")

DEFAULT_DISCOVERY_HTML_LIMIT = 100_000

Fetch = Callable[[str], str]
Progress = Callable[[str], None]


@dataclass(frozen=True)
class DiscoveryOutcome:
    strategy: str
    links: List[str]
    degradation: Optional[DiscoveryDegradation] = None


def _absolute_http(href: str, base_url: str) -> Optional[str]:
    url, _frag = urldefrag(urljoin(base_url, href.strip()))
    if urlparse(url).scheme.lower() not in ("http", "https"):
        return None
    return url


def compact_html(html: str, limit: int = DEFAULT_DISCOVERY_HTML_LIMIT) -> str:
    """Drop non-content markup and cap the size of HTML sent to the classifier."""
    soup = BeautifulSoup(html or "", "html.parser")
    for el in soup.select("script, style, noscript, svg, iframe, template"):
        el.decompose()
    return str(soup)[: max(0, int(limit))]


def find_links_structural(html: str, base_url: str) -> List[str]:
    """Anchor heuristics for same-site article links.

    Keeps anchors on the source hostname, outside the excluded sections, not
    pointing at media files, with more than 3 words of text and at least two
    path segments.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    base_host = urlparse(base_url).hostname
    out: List[str] = []
    for a in soup.select("a[href]"):
        href = (a.get("href") or "").strip()
        if not href or href.startswith("#") or href.lower().startswith("javascript:"):
            continue
        try:
            absolute = _absolute_http(href, base_url)
            parsed = urlparse(absolute) if absolute else None
            host = parsed.hostname if parsed else None
        except ValueError:
            continue
        if not absolute or parsed is None or host != base_host:
            continue
        path = parsed.path.lower()
        if path in ("", "/") or path.startswith(EXCLUDED_PATH_PREFIXES):
            continue
        if _MEDIA_EXT_RE.search(path):
            continue
        text = a.get_text(" ", strip=True)
        if len(text.split()) <= 3:
            continue
        if len([seg for seg in path.split("/") if seg]) < 2:
            continue
        out.append(absolute)
    return unique(out)


def try_semantic(
    classifier: Classifier, html: str, base_url: str
) -> Tuple[List[str], Optional[Exception]]:
    """Run the classifier strategy, returning ``(links, error)`` instead of raising."""
    try:
        raw = classifier.find_links(html, base_url)
    except Exception as e:  # degrade on any classifier failure
        return [], e
    links: List[str] = []
    for item in raw or []:
        if not isinstance(item, str) or not item.strip():
            continue
        absolute = _absolute_http(item, base_url)
        if absolute:
            links.append(absolute)
    return unique(links), None


def select_strategy(
    source: str,
    semantic: Tuple[List[str], Optional[Exception]],
    structural: Callable[[], List[str]],
) -> DiscoveryOutcome:
    links, error = semantic
    if error is None and links:
        return DiscoveryOutcome(STRATEGY_SEMANTIC, links)
    if error is not None:
        why = DiscoveryDegradation(source, "semantic strategy failed", str(error) or repr(error))
    else:
        why = DiscoveryDegradation(source, "semantic strategy returned no links")
    return DiscoveryOutcome(STRATEGY_STRUCTURAL, structural(), why)


class LinkDiscovery:
    def __init__(
        self,
        fetch: Fetch,
        classifier: Classifier,
        html_limit: int = DEFAULT_DISCOVERY_HTML_LIMIT,
    ) -> None:
        self.fetch = fetch
        self.classifier = classifier
        self.html_limit = int(html_limit)
        self.logger = get_unified_logger("scrape", "discovery")

    def discover_from_html(self, html: str, source_url: str) -> DiscoveryOutcome:
        prompt_html = compact_html(html, self.html_limit)
        outcome = select_strategy(
            source_url,
            try_semantic(self.classifier, prompt_html, source_url),
            lambda: find_links_structural(html, source_url),
        )
        if outcome.degradation is not None:
            d = outcome.degradation
            self.logger.warning(
                "falling back to structural discovery for %s: %s%s",
                source_url,
                d.reason,
                f" ({d.error})" if d.error else "",
            )
        self.logger.info(
            "%d links from %s via %s", len(outcome.links), source_url, outcome.strategy
        )
        return outcome

    def discover(self, source_url: str, on_progress: Optional[Progress] = None) -> List[str]:
        """Return article links for ``source_url``.

        Only the homepage fetch can raise (:class:`RetrievalError`); strategy
        problems degrade to the structural fallback.
        """
        notify = on_progress or (lambda _m: None)
        host = urlparse(source_url).hostname or source_url
        notify(f"Fetching links from {host}...")
        html = self.fetch(source_url)
        notify("Using AI to find article links...")
        outcome = self.discover_from_html(html, source_url)
        if outcome.degradation is not None:
            notify("AI discovery failed. Falling back to standard link discovery...")
        return outcome.links


__all__ = [
    "LinkDiscovery",
    "DiscoveryOutcome",
    "find_links_structural",
    "try_semantic",
    "select_strategy",
    "compact_html",
    "STRATEGY_SEMANTIC",
    "STRATEGY_STRUCTURAL",
]
