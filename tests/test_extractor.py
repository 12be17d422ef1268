from __future__ import annotations

from pathlib import Path

import pytest

from newsscanner.core.errors import ExtractionError
from newsscanner.scrape.extractor import ContentExtractor

STORY = (
    "The National Assembly on Tuesday passed the amended electoral bill after a long "
    "debate, with lawmakers from both chambers agreeing on the timeline for primaries."
)
SIDEBAR = (
    "Trending now across the site: ten recipes for the weekend, the best football "
    "moments of the season, and a look at upcoming concerts in Lagos this month."
)


def test_high_priority_selector_beats_landmark_and_body():
    html = f"""
    <html><body>
      <main><p>{SIDEBAR}</p></main>
      <article><div class="entry-content"><p>{STORY}</p></div></article>
    </body></html>
    """
    text = ContentExtractor().extract(html)
    assert text == STORY


def test_unwanted_elements_are_stripped_from_the_match():
    html = f"""
    <html><body><article>
      <nav>Home | Politics | Business</nav>
      <script>var tracking = 1;</script>
      <div class="ads">Buy now</div>
      <p>{STORY}</p>
      <div class="social-share">Share on X</div>
      <section id="comments">First!</section>
    </article></body></html>
    """
    text = ContentExtractor().extract(html)
    assert STORY in text
    for noise in ("Home | Politics", "tracking", "Buy now", "Share on X", "First!"):
        assert noise not in text


def test_short_match_falls_through_to_next_selector():
    html = f"""
    <html><body>
      <article><p>Too short.</p></article>
      <div class="article-body"><p>{STORY}</p></div>
    </body></html>
    """
    assert ContentExtractor().extract(html) == STORY


def test_cleaned_body_fallback_when_no_selector_matches():
    html = f"<html><body><div><p>{STORY}</p></div><footer>Copyright 2025</footer></body></html>"
    text = ContentExtractor().extract(html)
    assert text == STORY


def test_raw_body_fallback_keeps_noisy_text():
    html = f"<html><body><nav>{SIDEBAR}</nav></body></html>"
    assert ContentExtractor().extract(html) == SIDEBAR


def test_whitespace_is_collapsed():
    spaced = STORY.replace(" ", "   \n\t ")
    html = f"<html><body><article><p>{spaced}</p></article></body></html>"
    assert ContentExtractor().extract(html) == STORY


def test_no_usable_text_raises():
    with pytest.raises(ExtractionError, match="no usable text content"):
        ContentExtractor().extract("<html><body><p>tiny</p></body></html>")


def test_selector_overrides_extend_remove_list(tmp_path: Path):
    overrides = tmp_path / "selectors.yml"
    overrides.write_text("remove:\n  - .promo-box\ncontent:\n  - .story-main\n", encoding="utf-8")
    extractor = ContentExtractor.from_overrides(str(overrides))
    assert extractor.content_selectors[-1] == ".story-main"

    html = f"""
    <html><body><article>
      <p>{STORY}</p>
      <div class="promo-box">Subscribe to our newsletter today</div>
    </article></body></html>
    """
    text = extractor.extract(html)
    assert "Subscribe" not in text
    assert STORY in text


def test_raw_body_fallback_keeps_inline_script_text():
    html = f'<html><body><script>window.story = "{STORY}";</script><!-- hidden --></body></html>'
    text = ContentExtractor().extract(html)
    assert STORY in text
    assert "hidden" not in text
