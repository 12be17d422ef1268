from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml


def as_list(value: Any) -> List[str]:
    """Normalize a list setting: comma-separated string, scalar or sequence."""
    if value is None:
        return []
    if isinstance(value, str):
        return [s.strip() for s in value.split(",") if s.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(s).strip() for s in value if str(s).strip()]
    return [str(value)]


# env var -> (config key, parser)
_ENV_KEYS: Dict[str, tuple[str, Callable[[str], Any]]] = {
    "NSC_SOURCES": ("sources", as_list),
    "NSC_BATCH_SIZE": ("batch_size", int),
    "NSC_FETCH_TIMEOUT": ("fetch_timeout", float),
    "NSC_PROXIES": ("proxies", as_list),
    "NSC_RECENCY_HOURS": ("recency_hours", float),
    "NSC_MARK_FAILURES_SEEN": (
        "mark_failures_seen",
        lambda v: v.strip().lower() in {"1", "true", "yes", "on"},
    ),
    "NSC_CACHE_BACKEND": ("cache_backend", str),
    "NSC_CACHE_PATH": ("cache_path", str),
    "NSC_API_BASE": ("openai_api_base", str),
    "NSC_API_KEY": ("openai_api_key", str),
    "NSC_MODELS": ("models", as_list),
    "NSC_CHAT_TIMEOUT": ("chat_timeout", int),
    "NSC_CHAT_ATTEMPTS": ("chat_attempts", int),
    "NSC_SELECTORS_FILE": ("selectors_file", str),
    "NSC_RUNS_DIR": ("runs_dir", str),
}


def load_config_file(path: Optional[str | Path]) -> Dict[str, Any]:
    """Load a YAML or JSON config file into a dict; missing file gives ``{}``."""
    if not path:
        return {}
    p = Path(path)
    if not p.exists():
        return {}

    with p.open("r", encoding="utf-8") as f:
        if p.suffix.lower() in (".yml", ".yaml"):
            data = yaml.safe_load(f) or {}
        else:
            data = json.load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"config root must be a mapping: {p}")
    return data


def load_env() -> Dict[str, Any]:
    """Collect ``NSC_*`` environment overrides."""
    out: Dict[str, Any] = {}
    for name, (key, parse) in _ENV_KEYS.items():
        raw = os.getenv(name)
        if raw is None or raw == "":
            continue
        try:
            out[key] = parse(raw)
        except ValueError as e:
            raise ValueError(f"invalid value for {name}: {raw!r}") from e
    if "openai_api_key" not in out and os.getenv("OPENAI_API_KEY"):
        out["openai_api_key"] = os.getenv("OPENAI_API_KEY")
    return out


def merge_config(*layers: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Merge config layers left to right; ``None`` values never override."""
    merged: Dict[str, Any] = {}
    for layer in layers:
        if not layer:
            continue
        for k, v in layer.items():
            if v is None:
                continue
            merged[k] = v
    return merged
