from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List

import yaml

# Highest priority first: content areas, then landmarks.
CONTENT_SELECTORS: List[str] = [
    "article .entry-content",
    ".entry-content",
    "article",
    '[role="article"]',
    ".post-content",
    ".article-body",
    ".story-content",
    '[role="main"]',
    "main",
    "#main",
    "#content",
]

UNWANTED_SELECTORS: List[str] = [
    "script",
    "style",
    "nav",
    "footer",
    "header",
    "aside",
    ".ad",
    ".ads",
    ".advert",
    ".advertisement",
    '[class*="ad-"]',
    ".social-share",
    ".related-posts",
    ".comments",
    "#comments",
]


def load_selector_overrides(path: str | Path) -> Dict[str, List[str]]:
    """Read ``content`` / ``remove`` selector lists from a YAML or JSON file."""
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in (".yml", ".yaml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)

    out: Dict[str, List[str]] = {}
    if not isinstance(data, dict):
        return out
    for k in ("content", "remove"):
        v = data.get(k)
        if isinstance(v, list):
            out[k] = [str(x) for x in v if isinstance(x, str) and x.strip()]
    return out


def merge_selectors(base: List[str], extra: List[str]) -> List[str]:
    """Append ``extra`` after ``base`` without duplicates; base order is kept."""
    return list(base) + [x for x in extra if x not in base]
