from __future__ import annotations

import json
from pathlib import Path

from newsscanner.core.models import ScannedArticle, ScanResults
from newsscanner.services.results import (
    RESULTS_FILENAME,
    group_by_category,
    load_latest_results,
    load_scan_results,
    save_scan_results,
)
from newsscanner.services.runs import latest_run_dir, runs_base_dir


def _article(n: int, category: str) -> ScannedArticle:
    return ScannedArticle(
        url=f"https://a.example/news/{n}",
        headline=f"Headline {n}",
        source="a.example",
        category=category,
        fingerprint=f"event {n}",
    )


def test_save_and_load_roundtrip(tmp_path: Path):
    results = ScanResults(timestamp=1_700_000_000_000, articles=[_article(1, "Politics")])
    path = save_scan_results(results, tmp_path)
    assert path.name == RESULTS_FILENAME
    assert path.parent.parent == tmp_path

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["articles"][0]["category"] == "Politics"
    assert load_scan_results(path) == results


def test_latest_results_picks_newest_run(tmp_path: Path):
    assert load_latest_results(tmp_path) is None
    for stamp, ts in (("20250101_080000", 1), ("20250102_080000", 2)):
        d = tmp_path / stamp
        d.mkdir()
        (d / RESULTS_FILENAME).write_text(json.dumps({"timestamp": ts, "articles": []}), encoding="utf-8")
    (tmp_path / "20250103_080000").mkdir()  # no results file

    assert latest_run_dir(tmp_path).name == "20250102_080000"
    assert load_latest_results(tmp_path).timestamp == 2


def test_runs_base_dir_from_config(tmp_path: Path):
    assert runs_base_dir({"runs_dir": str(tmp_path)}) == tmp_path
    assert runs_base_dir({}) == Path("runs")


def test_group_by_category_orders_and_limits():
    arts = [_article(i, "Elections") for i in range(12)]
    arts.insert(0, _article(99, "Politics"))
    arts.append(_article(100, "Sports Desk"))
    groups = group_by_category(ScanResults(0, arts), ["Politics", "Economy", "Elections"])

    assert list(groups) == ["Politics", "Elections", "Sports Desk"]
    assert len(groups["Elections"]) == 10
    assert "Economy" not in groups
