from __future__ import annotations

import json
from typing import List

import httpx
import pytest

from pinnote.errors import CorrectionFailed
from pinnote.services.correction.base import build_prompt
from pinnote.services.correction.dummy import DummyCorrectionService
from pinnote.services.correction.proxy import ProxyCorrectionService, completion_text


def _reply(content) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


def _service(responses: List[httpx.Response], requests: list, fallback_model="gpt-4") -> ProxyCorrectionService:
    pending = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(json.loads(request.read()))
        return pending.pop(0)

    client = httpx.Client(base_url="http://relay.test", transport=httpx.MockTransport(handler))
    return ProxyCorrectionService(
        route="/chat",
        model="o3-mini-2025-01-31",
        fallback_model=fallback_model,
        max_tokens=100,
        temperature=0.7,
        client=client,
    )


def test_prompt_wraps_transcript() -> None:
    assert build_prompt("I goes to school") == (
        'Output a grammatically correct version of \nI goes to school\n or output "No correction";'
    )


def test_silence_marker_skips_the_model() -> None:
    requests: list = []
    service = _service([], requests)

    assert service.correct("This audio might contain no speech.$") == "No correction"
    assert requests == []


def test_request_body_and_trimmed_suggestion() -> None:
    requests: list = []
    service = _service([_reply("  I go to school.\n")], requests)

    assert service.correct("I goes to school") == "I go to school."
    assert requests == [
        {
            "model": "o3-mini-2025-01-31",
            "messages": [{"role": "user", "content": build_prompt("I goes to school")}],
            "max_tokens": 100,
            "temperature": 0.7,
        }
    ]


def test_model_not_found_retries_once_on_fallback() -> None:
    requests: list = []
    service = _service(
        [
            httpx.Response(404, text='{"error": {"code": "MODEL_NOT_FOUND"}}'),
            _reply("I go to school."),
        ],
        requests,
    )

    assert service.correct("I goes to school") == "I go to school."
    assert [body["model"] for body in requests] == ["o3-mini-2025-01-31", "gpt-4"]


def test_failed_fallback_reports_fallback_error() -> None:
    requests: list = []
    service = _service(
        [
            httpx.Response(404, text="model_not_found"),
            httpx.Response(500, text="gpt-4 overloaded"),
        ],
        requests,
    )

    with pytest.raises(CorrectionFailed, match="Fallback Error: gpt-4 overloaded"):
        service.correct("I goes to school")
    assert len(requests) == 2


def test_other_errors_do_not_fall_back() -> None:
    requests: list = []
    service = _service([httpx.Response(429, text="rate limited")], requests)

    with pytest.raises(CorrectionFailed, match="rate limited"):
        service.correct("I goes to school")
    assert len(requests) == 1


def test_without_fallback_model_unavailable_is_final() -> None:
    requests: list = []
    service = _service([httpx.Response(404, text="model_not_found")], requests, fallback_model="")

    with pytest.raises(CorrectionFailed):
        service.correct("I goes to school")
    assert len(requests) == 1


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"choices": []}),
        httpx.Response(200, json={}),
        _reply("   "),
        _reply(None),
    ],
)
def test_empty_completion_yields_no_suggestion(response) -> None:
    service = _service([response], [])

    assert service.correct("I goes to school") == "(No Suggestion)"


def test_completion_text_ignores_malformed_payloads() -> None:
    assert completion_text(None) is None
    assert completion_text({"choices": ["oops"]}) is None
    assert completion_text({"choices": [{"message": {"content": "ok"}}]}) == "ok"


def test_dummy_service_echoes_transcript() -> None:
    service = DummyCorrectionService()

    assert service.correct("hello there") == "hello there"
    assert service.correct("silence $") == "No correction"
    assert len(service.prompts) == 1
