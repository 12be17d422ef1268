from __future__ import annotations

from pathlib import Path

import pytest

from newsscanner.core.config import as_list, load_config_file, load_env, merge_config


def test_yaml_and_json_files(tmp_path: Path):
    y = tmp_path / "config.yml"
    y.write_text("batch_size: 3\nsources:\n  - https://a.example/\n", encoding="utf-8")
    assert load_config_file(y) == {"batch_size": 3, "sources": ["https://a.example/"]}

    j = tmp_path / "config.json"
    j.write_text('{"recency_hours": 6}', encoding="utf-8")
    assert load_config_file(j) == {"recency_hours": 6}


def test_missing_file_is_empty(tmp_path: Path):
    assert load_config_file(tmp_path / "nope.yml") == {}
    assert load_config_file(None) == {}


def test_non_mapping_root_is_rejected(tmp_path: Path):
    p = tmp_path / "bad.yml"
    p.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config_file(p)


def test_env_overrides_are_parsed(monkeypatch):
    monkeypatch.setenv("NSC_BATCH_SIZE", "7")
    monkeypatch.setenv("NSC_PROXIES", "corsproxy, direct")
    monkeypatch.setenv("NSC_MARK_FAILURES_SEEN", "no")
    monkeypatch.delenv("NSC_API_KEY", raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    env = load_env()

    assert env["batch_size"] == 7
    assert env["proxies"] == ["corsproxy", "direct"]
    assert env["mark_failures_seen"] is False
    assert env["openai_api_key"] == "sk-test"


def test_bad_env_value_names_the_variable(monkeypatch):
    monkeypatch.setenv("NSC_BATCH_SIZE", "lots")
    with pytest.raises(ValueError, match="NSC_BATCH_SIZE"):
        load_env()


def test_merge_config_skips_none():
    merged = merge_config({"batch_size": 5, "force": False}, None, {"batch_size": None, "models": ["m"]})
    assert merged == {"batch_size": 5, "force": False, "models": ["m"]}


def test_as_list_normalizes_scalars_and_sequences():
    assert as_list("allorigins") == ["allorigins"]
    assert as_list(" a, b ,,c ") == ["a", "b", "c"]
    assert as_list(["x", " y ", ""]) == ["x", "y"]
    assert as_list(None) == []
