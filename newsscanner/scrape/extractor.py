"""HTML content extraction with a three-tier fallback."""

from __future__ import annotations

import copy
from typing import List, Optional, Sequence, Union

from bs4 import BeautifulSoup, Tag
from bs4.element import CData, NavigableString, Script, Stylesheet

from newsscanner.core.errors import ExtractionError
from newsscanner.core.utils import collapse_whitespace
from newsscanner.infra.logging import get_unified_logger
from newsscanner.scrape.selectors import (
    CONTENT_SELECTORS,
    UNWANTED_SELECTORS,
    load_selector_overrides,
    merge_selectors,
)

MIN_EXTRACT_CHARS = 100

# Every string a DOM textContent would include, inline script and CSS too.
_ALL_TEXT_TYPES = (NavigableString, CData, Script, Stylesheet)


def _strip_unwanted(node: Union[Tag, BeautifulSoup], unwanted: Sequence[str]) -> None:
    for sel in unwanted:
        for el in node.select(sel):
            el.decompose()


def _text_of(node: Union[Tag, BeautifulSoup], types=None) -> str:
    if types is None:
        return collapse_whitespace(node.get_text(" "))
    return collapse_whitespace(node.get_text(" ", types=types))


class ContentExtractor:
    """Isolate article body text from raw HTML.

    Selectors are tried in priority order; the first match whose cleaned text
    is longer than ``min_chars`` wins. Then the cleaned body, then the raw
    body. The raw-body tier trades noise for availability, so callers must
    not assume the text is clean.
    """

    def __init__(
        self,
        content_selectors: Optional[Sequence[str]] = None,
        unwanted_selectors: Optional[Sequence[str]] = None,
        min_chars: int = MIN_EXTRACT_CHARS,
    ) -> None:
        self.content_selectors: List[str] = list(content_selectors or CONTENT_SELECTORS)
        self.unwanted_selectors: List[str] = list(unwanted_selectors or UNWANTED_SELECTORS)
        self.min_chars = int(min_chars)
        self.logger = get_unified_logger("scrape", "extract")

    @classmethod
    def from_overrides(cls, path: Optional[str], min_chars: int = MIN_EXTRACT_CHARS) -> "ContentExtractor":
        if not path:
            return cls(min_chars=min_chars)
        extra = load_selector_overrides(path)
        return cls(
            content_selectors=merge_selectors(CONTENT_SELECTORS, extra.get("content", [])),
            unwanted_selectors=merge_selectors(UNWANTED_SELECTORS, extra.get("remove", [])),
            min_chars=min_chars,
        )

    def _long_enough(self, text: str) -> bool:
        return len(text) > self.min_chars

    def extract(self, html: str) -> str:
        soup = BeautifulSoup(html or "", "html.parser")

        for sel in self.content_selectors:
            node = soup.select_one(sel)
            if node is None:
                continue
            clone = copy.copy(node)
            _strip_unwanted(clone, self.unwanted_selectors)
            text = _text_of(clone)
            if self._long_enough(text):
                self.logger.debug("extracted %d chars via %s", len(text), sel)
                return text

        body = soup.body or soup
        cleaned = copy.copy(body)
        _strip_unwanted(cleaned, self.unwanted_selectors)
        text = _text_of(cleaned)
        if self._long_enough(text):
            self.logger.debug("extracted %d chars from cleaned body", len(text))
            return text

        text = _text_of(body, _ALL_TEXT_TYPES)
        if self._long_enough(text):
            self.logger.debug("extracted %d chars from raw body", len(text))
            return text

        raise ExtractionError("no usable text content")


__all__ = ["ContentExtractor", "MIN_EXTRACT_CHARS"]
