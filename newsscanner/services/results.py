from __future__ import annotations

import json
from collections import OrderedDict
from pathlib import Path
from typing import Dict, List, Optional

from newsscanner.core.models import DEFAULT_CATEGORIES, ScannedArticle, ScanResults
from newsscanner.infra.logging import get_unified_logger
from newsscanner.services.runs import latest_run_dir, new_run_dir

RESULTS_FILENAME = "scan.json"


def save_scan_results(results: ScanResults, base: Optional[Path] = None) -> Path:
    """Write ``results`` to ``<runs>/<stamp>/scan.json`` and return the path."""
    run_dir = new_run_dir(base)
    out_path = run_dir / RESULTS_FILENAME
    out_path.write_text(
        json.dumps(results.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8"
    )
    get_unified_logger("services", "results").info("scan results saved: %s", out_path)
    return out_path


def load_scan_results(path: Path) -> ScanResults:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"not a scan results file: {path}")
    return ScanResults.from_dict(data)


def load_latest_results(base: Optional[Path] = None) -> Optional[ScanResults]:
    run_dir = latest_run_dir(base)
    if run_dir is None:
        return None
    return load_scan_results(run_dir / RESULTS_FILENAME)


def group_by_category(
    results: ScanResults,
    categories: Optional[List[str]] = None,
    limit: Optional[int] = 10,
) -> Dict[str, List[ScannedArticle]]:
    """Group articles in category-list order, skipping empty groups.

    Categories outside the list are appended after it in first-seen order.
    """
    order = list(categories or DEFAULT_CATEGORIES)
    groups: Dict[str, List[ScannedArticle]] = OrderedDict((c, []) for c in order)
    for a in results.articles:
        groups.setdefault(a.category or "Uncategorized", []).append(a)
    out: Dict[str, List[ScannedArticle]] = OrderedDict()
    for cat, arts in groups.items():
        if not arts:
            continue
        out[cat] = arts[:limit] if limit else arts
    return out
