from __future__ import annotations

import json
from typing import Any, Dict, List

import pytest

from newsscanner.ai.chat import chat_json
from newsscanner.ai.classifier import (
    TASK_ANALYSIS,
    ChatClassifier,
    ClassifierRequest,
    analysis_from_payload,
    links_from_payload,
    parse_json_payload,
)
from newsscanner.core.errors import ClassificationError


class FakeResponse:
    def __init__(self, status_code: int, payload: Any = None) -> None:
        self.status_code = status_code
        self._payload = payload

    def json(self) -> Any:
        return self._payload


def _content(text: str) -> Dict[str, Any]:
    return {"choices": [{"message": {"content": text}}]}


class FakeSession:
    def __init__(self, responses: List[FakeResponse]) -> None:
        self.responses = list(responses)
        self.bodies: List[Dict[str, Any]] = []
        self.urls: List[str] = []

    def post(self, url: str, headers=None, json=None, timeout=None):
        self.urls.append(url)
        self.bodies.append(json)
        return self.responses.pop(0)


def test_parse_json_payload_strips_fences():
    raw = '```json\n{"links": ["https://a.example/x/y"]}\n```'
    assert parse_json_payload(raw) == {"links": ["https://a.example/x/y"]}


@pytest.mark.parametrize("raw", ["", "   ", "not json at all", "{\"links\": ["])
def test_parse_json_payload_rejects_garbage(raw):
    with pytest.raises(ClassificationError):
        parse_json_payload(raw)


def test_links_payload_shapes():
    assert links_from_payload(["a", " b ", "", 3]) == ["a", "b"]
    assert links_from_payload({"links": ["a"]}) == ["a"]
    assert links_from_payload({"urls": ["u"]}) == ["u"]
    with pytest.raises(ClassificationError):
        links_from_payload({"items": "nope"})


def test_analysis_payload_requires_all_keys():
    got = analysis_from_payload({"category": " Politics ", "headline": "H", "fingerprint": "f"})
    assert got.category == "Politics"
    with pytest.raises(ClassificationError, match="fingerprint"):
        analysis_from_payload({"category": "Politics", "headline": "H"})
    with pytest.raises(ClassificationError):
        analysis_from_payload(["Politics"])


def test_chat_classifier_analyze_roundtrip():
    answer = {"category": "Elections", "headline": "INEC fixes date", "fingerprint": "inec-date"}
    session = FakeSession([FakeResponse(200, _content(json.dumps(answer)))])
    clf = ChatClassifier(api_key="k", models=["m1"], attempts=1, session=session)

    analysis = clf.analyze("INEC has fixed the date for the governorship election.")

    assert analysis.category == "Elections"
    assert analysis.fingerprint == "inec-date"
    assert session.urls == ["https://api.siliconflow.cn/v1/chat/completions"]
    body = session.bodies[0]
    assert body["model"] == "m1"
    assert body["response_format"] == {"type": "json_object"}
    assert "Non-Political" in body["messages"][1]["content"]


def test_chat_classifier_find_links_passes_base_url():
    session = FakeSession([FakeResponse(200, _content('{"links": ["/news/a-b"]}'))])
    clf = ChatClassifier(api_key="k", models=["m1"], attempts=1, session=session)
    assert clf.find_links("<a href='/news/a-b'>x</a>", "https://a.example/") == ["/news/a-b"]
    assert "https://a.example/" in session.bodies[0]["messages"][1]["content"]


def test_next_model_is_tried_after_failure():
    session = FakeSession(
        [
            FakeResponse(404, {}),
            FakeResponse(200, _content('{"links": []}')),
        ]
    )
    raw = chat_json("s", "u", models=["bad", "good"], api_key="k", attempts=1, session=session)
    assert json.loads(raw) == {"links": []}
    assert [b["model"] for b in session.bodies] == ["bad", "good"]


def test_all_models_failing_raises():
    session = FakeSession([FakeResponse(429, {}), FakeResponse(500, {})])
    with pytest.raises(ClassificationError, match="all models failed"):
        chat_json("s", "u", models=["a", "b"], api_key="k", attempts=1, session=session)


def test_empty_content_counts_as_failure():
    session = FakeSession([FakeResponse(200, _content("  "))])
    with pytest.raises(ClassificationError):
        chat_json("s", "u", models=["a"], api_key="k", attempts=1, session=session)


def test_api_base_must_be_https():
    with pytest.raises(ValueError):
        chat_json("s", "u", api_base="http://insecure.example/v1", session=FakeSession([]))


def test_analysis_prompt_truncates_long_text():
    clf = ChatClassifier(analysis_char_limit=50)
    _, user = clf.build_prompts(ClassifierRequest(TASK_ANALYSIS, "x" * 500))
    assert "x" * 50 in user
    assert "x" * 51 not in user


def test_unknown_task_is_rejected():
    with pytest.raises(ValueError):
        ChatClassifier().build_prompts(ClassifierRequest("summarize", "text"))


def test_from_config_accepts_a_single_model_string():
    clf = ChatClassifier.from_config({"models": "Qwen/Qwen2.5-7B-Instruct", "categories": "Politics"})
    assert clf.models == ["Qwen/Qwen2.5-7B-Instruct"]
    assert clf.categories == ["Politics"]
