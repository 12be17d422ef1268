from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

from newsscanner.core.utils import ensure_directory, now_stamp


def runs_base_dir(conf: Optional[Dict[str, Any]] = None) -> Path:
    """Directory holding one sub-directory per saved scan (default ``runs``)."""
    if conf and conf.get("runs_dir"):
        return Path(str(conf["runs_dir"]))
    return Path("runs")


def new_run_dir(base: Optional[Path] = None) -> Path:
    base_dir = base or Path("runs")
    return ensure_directory(base_dir / now_stamp())


def latest_run_dir(base: Optional[Path] = None) -> Optional[Path]:
    """Newest run directory that contains a ``scan.json``; stamps sort lexically."""
    base_dir = base or Path("runs")
    if not base_dir.is_dir():
        return None
    runs = sorted(
        (p for p in base_dir.iterdir() if p.is_dir() and (p / "scan.json").exists()),
        key=lambda p: p.name,
    )
    return runs[-1] if runs else None
