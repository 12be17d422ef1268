"""Classifier service boundary: link enumeration and article analysis over chat JSON."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from newsscanner.ai.chat import (
    DEFAULT_API_BASE,
    DEFAULT_CHAT_ATTEMPTS,
    DEFAULT_CHAT_TIMEOUT,
    chat_json,
)
from newsscanner.ai.prompts import (
    ANALYSIS_SYSTEM_PROMPT,
    ANALYSIS_USER_PROMPT,
    LINKS_SYSTEM_PROMPT,
    LINKS_USER_PROMPT,
)
from newsscanner.core.config import as_list
from newsscanner.core.errors import ClassificationError
from newsscanner.core.models import DEFAULT_CATEGORIES, NON_POLITICAL, ArticleAnalysis

TASK_LINKS = "links"
TASK_ANALYSIS = "analysis"

DEFAULT_ANALYSIS_CHAR_LIMIT = 12000

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@dataclass(frozen=True)
class ClassifierRequest:
    task: str
    input_text: str
    base_url: Optional[str] = None
    categories: List[str] = field(default_factory=lambda: list(DEFAULT_CATEGORIES))


class Classifier(Protocol):
    def find_links(self, html: str, base_url: str) -> List[str]: ...

    def analyze(self, text: str) -> ArticleAnalysis: ...


def parse_json_payload(raw: str) -> Any:
    """Decode a model answer, tolerating markdown code fences."""
    text = _FENCE_RE.sub("", (raw or "").strip()).strip()
    if not text:
        raise ClassificationError("classifier returned an empty response")
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ClassificationError(f"classifier returned malformed JSON: {e}") from e


def links_from_payload(payload: Any) -> List[str]:
    """Accept ``[..]`` or ``{"links": [..]}``; keep only non-empty strings."""
    if isinstance(payload, dict):
        payload = payload.get("links", payload.get("urls"))
    if not isinstance(payload, list):
        raise ClassificationError("link discovery answer is not a list")
    return [s.strip() for s in payload if isinstance(s, str) and s.strip()]


def analysis_from_payload(payload: Any) -> ArticleAnalysis:
    if not isinstance(payload, dict):
        raise ClassificationError("analysis answer is not an object")
    missing = [k for k in ("category", "headline", "fingerprint") if k not in payload]
    if missing:
        raise ClassificationError(f"analysis answer missing keys: {', '.join(missing)}")
    return ArticleAnalysis(
        category=str(payload.get("category") or "").strip(),
        headline=str(payload.get("headline") or "").strip(),
        fingerprint=str(payload.get("fingerprint") or "").strip(),
    )


class ChatClassifier:
    """Classifier backed by an OpenAI-compatible chat completions API."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        api_base: str = DEFAULT_API_BASE,
        models: Optional[List[str]] = None,
        timeout: int = DEFAULT_CHAT_TIMEOUT,
        attempts: int = DEFAULT_CHAT_ATTEMPTS,
        categories: Optional[List[str]] = None,
        analysis_char_limit: int = DEFAULT_ANALYSIS_CHAR_LIMIT,
        session: Any = None,
    ) -> None:
        self.api_key = api_key
        self.api_base = api_base
        self.models = list(models) if models else None
        self.timeout = int(timeout)
        self.attempts = int(attempts)
        self.categories = list(categories or DEFAULT_CATEGORIES)
        self.analysis_char_limit = int(analysis_char_limit)
        self.session = session

    @classmethod
    def from_config(cls, conf: Dict[str, Any]) -> "ChatClassifier":
        return cls(
            api_key=conf.get("openai_api_key"),
            api_base=str(conf.get("openai_api_base") or DEFAULT_API_BASE),
            models=as_list(conf.get("models")) or None,
            timeout=int(conf.get("chat_timeout") or DEFAULT_CHAT_TIMEOUT),
            attempts=int(conf.get("chat_attempts") or DEFAULT_CHAT_ATTEMPTS),
            categories=as_list(conf.get("categories")) or None,
            analysis_char_limit=int(conf.get("analysis_char_limit") or DEFAULT_ANALYSIS_CHAR_LIMIT),
        )

    def build_prompts(self, request: ClassifierRequest) -> tuple[str, str]:
        if request.task == TASK_LINKS:
            return LINKS_SYSTEM_PROMPT, LINKS_USER_PROMPT.format(
                base_url=request.base_url or "", text=request.input_text
            )
        if request.task == TASK_ANALYSIS:
            return ANALYSIS_SYSTEM_PROMPT, ANALYSIS_USER_PROMPT.format(
                categories=", ".join(request.categories),
                non_political=NON_POLITICAL,
                text=request.input_text[: self.analysis_char_limit],
            )
        raise ValueError(f"unknown classifier task: {request.task}")

    def complete(self, request: ClassifierRequest) -> Any:
        system_prompt, user_prompt = self.build_prompts(request)
        raw = chat_json(
            system_prompt,
            user_prompt,
            models=self.models,
            api_key=self.api_key,
            api_base=self.api_base,
            timeout=self.timeout,
            attempts=self.attempts,
            session=self.session,
        )
        return parse_json_payload(raw)

    def find_links(self, html: str, base_url: str) -> List[str]:
        req = ClassifierRequest(TASK_LINKS, html, base_url, self.categories)
        return links_from_payload(self.complete(req))

    def analyze(self, text: str) -> ArticleAnalysis:
        req = ClassifierRequest(TASK_ANALYSIS, text, None, self.categories)
        return analysis_from_payload(self.complete(req))


__all__ = [
    "Classifier",
    "ChatClassifier",
    "ClassifierRequest",
    "parse_json_payload",
    "links_from_payload",
    "analysis_from_payload",
    "TASK_LINKS",
    "TASK_ANALYSIS",
]
