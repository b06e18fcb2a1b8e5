from __future__ import annotations

from typing import Any, List

import pytest
import requests

from kami.generator import GeminiGenerator, GenerationError


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, invalid_json: bool = False) -> None:
        self.payload = payload
        self.status_code = status_code
        self.invalid_json = invalid_json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> Any:
        if self.invalid_json:
            raise ValueError("not json")
        return self.payload


class FakeSession:
    def __init__(self, *outcomes: Any) -> None:
        self.outcomes = list(outcomes)
        self.calls: List[dict] = []

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _reply(text: str) -> FakeResponse:
    return FakeResponse({"candidates": [{"content": {"parts": [{"text": text}]}}]})


def _generator(session: FakeSession, **kwargs: Any) -> GeminiGenerator:
    kwargs.setdefault("retry_delay", 0)
    return GeminiGenerator("test-key", "test-model", base_url="https://gen.example/v1", session=session, **kwargs)


def test_generate_posts_prompt_and_returns_text() -> None:
    session = FakeSession(_reply("  Peace be with you.  "))

    assert _generator(session, timeout=3).generate("hello") == "Peace be with you."
    call = session.calls[0]
    assert call["url"] == "https://gen.example/v1/models/test-model:generateContent"
    assert call["params"] == {"key": "test-key"}
    assert call["timeout"] == 3
    assert call["json"]["contents"][0]["parts"][0]["text"] == "hello"


def test_generate_retries_transient_failures() -> None:
    session = FakeSession(requests.Timeout("slow"), _reply("second time"))

    assert _generator(session, max_attempts=2).generate("hello") == "second time"
    assert len(session.calls) == 2


@pytest.mark.parametrize(
    "response",
    [
        FakeResponse({"candidates": []}),
        FakeResponse({"candidates": [{"content": {"parts": [{"text": "   "}]}}]}),
        FakeResponse(invalid_json=True),
        FakeResponse({}, status_code=503),
    ],
)
def test_generate_gives_up_after_bounded_attempts(response: FakeResponse) -> None:
    session = FakeSession(response, response, response)

    with pytest.raises(GenerationError):
        _generator(session, max_attempts=2).generate("hello")
    assert len(session.calls) == 2


def test_missing_api_key_fails_without_a_request() -> None:
    session = FakeSession()
    generator = GeminiGenerator("", session=session)

    with pytest.raises(GenerationError):
        generator.generate("hello")
    assert session.calls == []
