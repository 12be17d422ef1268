from __future__ import annotations

import os
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlparse

import requests
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from newsscanner.core.errors import ClassificationError
from newsscanner.infra.logging import get_unified_logger

DEFAULT_API_BASE = "https://api.siliconflow.cn/v1"
DEFAULT_MODELS = ["Qwen/Qwen2.5-7B-Instruct"]
DEFAULT_CHAT_TIMEOUT = 60
DEFAULT_CHAT_ATTEMPTS = 3

_TRANSIENT_STATUS = {429, 500, 502, 503, 504}


class TransientChatError(RuntimeError):
    """Provider said try again later (429/5xx)."""


def _api_key(explicit: Optional[str]) -> Optional[str]:
    return explicit or os.getenv("NSC_API_KEY") or os.getenv("OPENAI_API_KEY")


def _headers(api_key: Optional[str]) -> Dict[str, str]:
    h = {"Content-Type": "application/json"}
    if api_key:
        h["Authorization"] = f"Bearer {api_key}"
    return h


def _completions_url(api_base: str) -> str:
    base = (api_base or DEFAULT_API_BASE).strip().rstrip("/")
    if urlparse(base).scheme.lower() != "https":
        raise ValueError(f"chat API base must use https: {base}")
    return f"{base}/chat/completions"


def _chat_once(
    session: Any,
    url: str,
    headers: Dict[str, str],
    body: Dict[str, Any],
    timeout: int,
) -> str:
    r = session.post(url, headers=headers, json=body, timeout=timeout)
    if r.status_code in _TRANSIENT_STATUS:
        raise TransientChatError(f"provider error {r.status_code}")
    if r.status_code != 200:
        msg = f"api error {r.status_code} | model={body.get('model')}"
        if r.status_code == 401:
            msg += " | check the API key"
        elif r.status_code == 404:
            msg += " | unknown model id or incompatible API path"
        raise ClassificationError(msg)
    try:
        data = r.json()
        return data["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise ClassificationError(f"unexpected chat response shape: {e}") from e


def chat_json(
    system_prompt: str,
    user_prompt: str,
    *,
    models: Optional[Iterable[str]] = None,
    api_key: Optional[str] = None,
    api_base: str = DEFAULT_API_BASE,
    timeout: int = DEFAULT_CHAT_TIMEOUT,
    attempts: int = DEFAULT_CHAT_ATTEMPTS,
    max_tokens: int = 2048,
    session: Any = None,
) -> str:
    """Ask the configured models in order for a JSON answer; first success wins.

    Transient provider errors (429/5xx/network) are retried per model with
    exponential backoff. Raises :class:`ClassificationError` once every model
    has failed.
    """
    logger = get_unified_logger("ai", "chat")
    ms = list(models) if models else list(DEFAULT_MODELS)
    url = _completions_url(api_base)
    headers = _headers(_api_key(api_key))
    sess = session if session is not None else requests
    last: Optional[BaseException] = None

    for model in ms:
        body = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": 0.2,
            "max_tokens": max_tokens,
            "response_format": {"type": "json_object"},
        }
        try:
            for attempt in Retrying(
                stop=stop_after_attempt(max(1, int(attempts))),
                wait=wait_exponential(multiplier=1, min=1, max=16),
                retry=retry_if_exception_type((requests.RequestException, TransientChatError)),
                reraise=True,
            ):
                with attempt:
                    content = _chat_once(sess, url, headers, body, timeout)
            if content and content.strip():
                return content
            last = ClassificationError(f"empty response from {model}")
        except (requests.RequestException, TransientChatError, ClassificationError) as e:
            last = e
        logger.warning("model %s failed: %s", model, last)

    raise ClassificationError(f"all models failed: {last}")


__all__ = ["chat_json", "TransientChatError", "DEFAULT_API_BASE", "DEFAULT_MODELS"]
