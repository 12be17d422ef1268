from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

NON_POLITICAL = "Non-Political"

DEFAULT_CATEGORIES: List[str] = [
    "Politics",
    "Elections",
    "Governance",
    "Policy",
    "Economy",
    "Security",
    "Legislature",
    "Judiciary",
    "States",
    "Opinion",
]


@dataclass(frozen=True)
class CandidateLink:
    url: str
    source: str


@dataclass(frozen=True)
class ArticleAnalysis:
    category: str
    headline: str
    fingerprint: str


@dataclass(frozen=True)
class ScannedArticle:
    url: str
    headline: str
    source: str
    category: str
    fingerprint: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ScanResults:
    timestamp: int
    articles: List[ScannedArticle] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "articles": [a.to_dict() for a in self.articles],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScanResults":
        arts: List[ScannedArticle] = []
        for a in data.get("articles") or []:
            if not isinstance(a, dict):
                continue
            arts.append(
                ScannedArticle(
                    url=str(a.get("url", "")),
                    headline=str(a.get("headline", "")),
                    source=str(a.get("source", "")),
                    category=str(a.get("category", "")),
                    fingerprint=str(a.get("fingerprint", "")),
                )
            )
        return cls(timestamp=int(data.get("timestamp") or 0), articles=arts)


def coerce_category(category: Any, allowed: List[str]) -> str:
    """Return ``category`` when it is in the allowed set, else ``Non-Political``."""
    if isinstance(category, str) and category in allowed:
        return category
    return NON_POLITICAL
