"""Prompt templates for the classifier service."""

from __future__ import annotations

LINKS_SYSTEM_PROMPT: str = (
    "You are a web scraper. You read HTML and answer with JSON only, no commentary."
)

LINKS_USER_PROMPT: str = """Analyze the following HTML document from the base URL: {base_url}.
Identify all the unique <a> tags that link to individual news articles hosted on the same domain.
- IGNORE links to category pages, author pages, ads, social media, privacy policies, or external sites.
- FOCUS on links whose path and text suggest they are distinct articles.
- Resolve all URLs to be absolute, using the base URL provided.
Return a JSON object of the form {{"links": ["https://example.com/article-1", "https://example.com/article-2"]}}.

HTML:
{text}"""

ANALYSIS_SYSTEM_PROMPT: str = (
    "You are a news desk editor for a Nigerian political news website. "
    "You answer with a single JSON object only."
)

ANALYSIS_USER_PROMPT: str = """Analyze the following news article. The text may be messy, focus on the core article content.
1. Decide if its main subject is Nigerian politics, governance, elections, policy, or civic matters.
2. If it IS politically relevant, choose the most fitting category from this list: {categories}.
3. If it is NOT politically relevant (e.g. sports, entertainment, listicles), the category MUST be "{non_political}".
4. Provide a compelling, factual, SEO-friendly headline.
5. Write a very short, one-sentence summary of the core event for deduplication.

Return a JSON object with keys: "category", "headline", "fingerprint".

Article:
{text}"""
