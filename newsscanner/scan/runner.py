from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence
from urllib.parse import urlparse

from newsscanner.ai.classifier import ChatClassifier, Classifier
from newsscanner.cache.recency import DEFAULT_RECENCY_HOURS, RecencyCache, build_store
from newsscanner.core.config import as_list
from newsscanner.core.errors import ScanInputError, ScannerError
from newsscanner.core.models import (
    DEFAULT_CATEGORIES,
    NON_POLITICAL,
    CandidateLink,
    ScannedArticle,
    ScanResults,
    coerce_category,
)
from newsscanner.core.utils import bare_hostname, chunked, now_ms
from newsscanner.fetch.proxies import DEFAULT_FETCH_TIMEOUT, DEFAULT_PROXY_ORDER, ProxyFetcher
from newsscanner.infra.logging import (
    get_unified_logger,
    log_batch_processing,
    log_processing_step,
    log_task_end,
    log_task_start,
    mdc_scope,
)
from newsscanner.scan.concurrency import settle_all
from newsscanner.scrape.discovery import DEFAULT_DISCOVERY_HTML_LIMIT, LinkDiscovery
from newsscanner.scrape.extractor import MIN_EXTRACT_CHARS, ContentExtractor

DEFAULT_BATCH_SIZE = 5
MIN_ARTICLE_CHARS = 200

DEFAULT_SOURCES: List[str] = [
    "https://punchng.com/",
    "https://www.theguardian.ng/category/news/politics/",
    "https://www.premiumtimesng.com/",
    "https://www.vanguardngr.com/category/politics/",
    "https://thenationonlineng.net/politics/",
]

STATUS_OK = "ok"
STATUS_SHORT = "short"
STATUS_FAILED = "failed"

Progress = Callable[[str], None]


class Fetcher(Protocol):
    def fetch_text(self, url: str) -> str: ...


class Extractor(Protocol):
    def extract(self, html: str) -> str: ...


@dataclass
class ScanConfig:
    batch_size: int = DEFAULT_BATCH_SIZE
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    proxies: List[str] = field(default_factory=lambda: list(DEFAULT_PROXY_ORDER))
    min_extract_chars: int = MIN_EXTRACT_CHARS
    min_article_chars: int = MIN_ARTICLE_CHARS
    recency_hours: float = DEFAULT_RECENCY_HOURS
    # A transient failure still suppresses the URL for the whole window when on.
    mark_failures_seen: bool = True
    cache_backend: str = "json"
    cache_path: Optional[str] = None
    categories: List[str] = field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    discovery_html_limit: int = DEFAULT_DISCOVERY_HTML_LIMIT
    selectors_file: Optional[str] = None

    @classmethod
    def from_config(cls, conf: Dict[str, Any]) -> "ScanConfig":
        cfg = cls()
        for key in asdict(cfg):
            if conf.get(key) is not None:
                setattr(cfg, key, conf[key])
        cfg.batch_size = max(1, int(cfg.batch_size))
        cfg.fetch_timeout = float(cfg.fetch_timeout)
        cfg.min_extract_chars = int(cfg.min_extract_chars)
        cfg.min_article_chars = int(cfg.min_article_chars)
        cfg.recency_hours = float(cfg.recency_hours)
        cfg.discovery_html_limit = int(cfg.discovery_html_limit)
        cfg.proxies = as_list(cfg.proxies) or list(DEFAULT_PROXY_ORDER)
        cfg.categories = as_list(cfg.categories) or list(DEFAULT_CATEGORIES)
        if isinstance(cfg.mark_failures_seen, str):
            cfg.mark_failures_seen = cfg.mark_failures_seen.strip().lower() in {"1", "true", "yes", "on"}
        return cfg


@dataclass
class CandidateOutcome:
    link: CandidateLink
    status: str
    article: Optional[ScannedArticle] = None
    error: Optional[BaseException] = None


def fingerprint_key(fingerprint: str) -> str:
    return " ".join((fingerprint or "").split()).casefold()


def dedupe_by_fingerprint(articles: Sequence[ScannedArticle]) -> List[ScannedArticle]:
    """First occurrence of each fingerprint wins; empty fingerprints are dropped."""
    seen = set()
    out: List[ScannedArticle] = []
    for a in articles:
        key = fingerprint_key(a.fingerprint)
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(a)
    return out


def _normalize_sources(sources: Optional[Sequence[str]]) -> List[str]:
    return [s.strip() for s in (sources or []) if isinstance(s, str) and s.strip()]


class NewsScanner:
    """Drive discovery, recency filtering, batched analysis and dedup for one scan."""

    def __init__(
        self,
        cfg: Optional[ScanConfig] = None,
        *,
        fetcher: Optional[Fetcher] = None,
        extractor: Optional[Extractor] = None,
        classifier: Optional[Classifier] = None,
        cache: Optional[RecencyCache] = None,
        discovery: Optional[LinkDiscovery] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.cfg = cfg if cfg is not None else ScanConfig()
        if fetcher is None:
            fetcher = ProxyFetcher(self.cfg.proxies, timeout=self.cfg.fetch_timeout)
        if extractor is None:
            extractor = ContentExtractor.from_overrides(
                self.cfg.selectors_file, min_chars=self.cfg.min_extract_chars
            )
        if classifier is None:
            classifier = ChatClassifier(categories=self.cfg.categories)
        # RecencyCache defines __len__, so an empty injected cache is falsy
        if cache is None:
            cache = RecencyCache(
                build_store(self.cfg.cache_backend, self.cfg.cache_path), self.cfg.recency_hours
            )
        if discovery is None:
            discovery = LinkDiscovery(
                fetcher.fetch_text, classifier, html_limit=self.cfg.discovery_html_limit
            )
        self.fetcher = fetcher
        self.extractor = extractor
        self.classifier = classifier
        self.cache = cache
        self.discovery = discovery
        self.clock = clock
        self.logger = get_unified_logger("scan", "run")

    # ---------------- helpers ----------------

    def _emitter(self, on_progress: Optional[Progress]) -> Progress:
        def emit(message: str) -> None:
            self.logger.debug("progress: %s", message)
            if on_progress is None:
                return
            try:
                on_progress(message)
            except Exception as e:  # callback errors never abort a scan
                self.logger.warning("progress callback raised: %s", e)

        return emit

    def _collect_links(self, sources: List[str], progress: Progress) -> List[CandidateLink]:
        links: List[CandidateLink] = []
        for src in sources:
            with mdc_scope(source=urlparse(src).hostname or src):
                try:
                    for url in self.discovery.discover(src, progress):
                        links.append(CandidateLink(url=url, source=src))
                except Exception as e:
                    self.logger.warning("could not find any links from %s: %s", src, e)
        return links

    def _process_candidate(self, link: CandidateLink) -> CandidateOutcome:
        with mdc_scope(url=link.url):
            try:
                return self._analyze_link(link)
            except ScannerError as e:
                return CandidateOutcome(link, STATUS_FAILED, error=e)

    def _analyze_link(self, link: CandidateLink) -> CandidateOutcome:
        html = self.fetcher.fetch_text(link.url)
        text = self.extractor.extract(html)
        if len(text) < self.cfg.min_article_chars:
            self.logger.info("too short to classify (%d chars): %s", len(text), link.url)
            return CandidateOutcome(link, STATUS_SHORT)
        analysis = self.classifier.analyze(text)
        article = ScannedArticle(
            url=link.url,
            headline=analysis.headline,
            source=bare_hostname(link.url),
            category=coerce_category(analysis.category, self.cfg.categories),
            fingerprint=analysis.fingerprint,
        )
        return CandidateOutcome(link, STATUS_OK, article)

    def _run_batch(self, batch: List[CandidateLink], seen_at: int) -> List[ScannedArticle]:
        started = time.time()
        settled = settle_all(self._process_candidate, batch, max_workers=len(batch))
        articles: List[ScannedArticle] = []
        failed = 0
        for link, res in zip(batch, settled):
            outcome = res.value if res.ok else CandidateOutcome(link, STATUS_FAILED, error=res.error)
            if outcome is None:
                continue
            if outcome.status == STATUS_FAILED:
                failed += 1
                self.logger.warning("failed to process %s: %s", link.url, outcome.error)
                if self.cfg.mark_failures_seen:
                    self.cache.mark_seen(link.url, seen_at)
                continue
            self.cache.mark_seen(link.url, seen_at)
            if outcome.article is not None:
                articles.append(outcome.article)
        log_batch_processing(
            "scan",
            "batch",
            "analyze",
            len(batch),
            len(articles),
            failed,
            time.time() - started,
            "done",
        )
        return articles

    # ---------------- entry ----------------

    def scan(
        self,
        sources: Sequence[str],
        on_progress: Optional[Progress] = None,
        force: bool = False,
    ) -> ScanResults:
        srcs = _normalize_sources(sources)
        if not srcs:
            raise ScanInputError("Please provide at least one news source URL.")

        progress = self._emitter(on_progress)
        log_task_start("scan", "run", {"sources": len(srcs), "force": bool(force)})
        progress("Starting scan...")
        if force:
            self.cache.clear()
            progress("Cache cleared. Starting fresh scan...")

        now = int(self.clock())
        self.cache.load()
        pruned = self.cache.prune(now)
        if pruned:
            self.logger.info("pruned %d expired cache entries", pruned)

        seen_urls = set()
        candidates: List[CandidateLink] = []
        for link in self._collect_links(srcs, progress):
            if link.url in seen_urls:
                continue
            seen_urls.add(link.url)
            if self.cache.is_fresh(link.url, now):
                continue
            candidates.append(link)

        progress(f"Found {len(candidates)} new potential articles. Analyzing in batches...")
        batch_size = max(1, int(self.cfg.batch_size))
        total_batches = (len(candidates) + batch_size - 1) // batch_size
        analyzed: List[ScannedArticle] = []
        for n, batch in enumerate(chunked(candidates, batch_size), start=1):
            progress(f"Analyzing batch {n} of {total_batches} ({len(batch)} articles)...")
            analyzed.extend(self._run_batch(batch, now))

        relevant = [a for a in analyzed if a.category != NON_POLITICAL]
        progress(f"Deduplicating {len(relevant)} relevant articles...")
        articles = dedupe_by_fingerprint(relevant)
        log_processing_step(
            "scan",
            "run",
            "fingerprint dedup",
            {"relevant": len(relevant), "unique": len(articles)},
        )

        self.cache.persist()
        results = ScanResults(timestamp=now, articles=articles)
        if articles:
            progress(f"Scan complete! Found {len(articles)} unique political articles.")
        else:
            progress("No new articles found.")
        log_task_end(
            "scan",
            "run",
            True,
            {
                "candidates": len(candidates),
                "analyzed": len(analyzed),
                "relevant": len(relevant),
                "articles": len(articles),
            },
        )
        return results


def build_scanner(conf: Dict[str, Any]) -> NewsScanner:
    """Wire a scanner from a merged config dict."""
    cfg = ScanConfig.from_config(conf)
    return NewsScanner(cfg, classifier=ChatClassifier.from_config(conf))


__all__ = [
    "NewsScanner",
    "ScanConfig",
    "CandidateOutcome",
    "build_scanner",
    "dedupe_by_fingerprint",
    "fingerprint_key",
    "DEFAULT_SOURCES",
    "DEFAULT_BATCH_SIZE",
]
