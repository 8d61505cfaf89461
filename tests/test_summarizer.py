from __future__ import annotations

import json

import httpx
import pytest
from conftest import run

from voicebot.core.constants import SYSTEM_PROMPT
from voicebot.services.summarizer import SummarizationClient, SummarizationError, SummaryResult


def _completion(content: str | None) -> dict[str, object]:
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 0,
        "model": "gpt-3.5-turbo",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
    }


async def _summarize(handler, text: str = "Hola mundo") -> SummaryResult:  # noqa: ANN001
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = SummarizationClient("sk-test", base_url="https://api.openai.test/v1", http_client=http_client)
    try:
        return await client.summarize(text)
    finally:
        await client.aclose()


def test_summarize_sends_fixed_prompt_and_parameters() -> None:
    seen: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer sk-test"
        seen.append(json.loads(request.content))
        return httpx.Response(200, json=_completion("  Un saludo al mundo.  \n"))

    result = run(_summarize(handler, "Hola mundo"))

    assert result == SummaryResult(text="Un saludo al mundo.")
    assert result.ok
    body = seen[0]
    assert body["model"] == "gpt-3.5-turbo"
    assert body["max_tokens"] == 150
    assert body["temperature"] == 0.7
    assert body["messages"] == [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": "Resume el siguiente texto en pocas oraciones:\n\nHola mundo"},
    ]


def test_server_error_degrades_instead_of_raising() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500, json={"error": {"message": "internal"}})

    result = run(_summarize(handler))

    assert result.ok is False
    assert result.text is None
    assert isinstance(result.error, SummarizationError)
    assert "status_code=500" in result.error.detail
    assert len(calls) == 1


def test_connection_error_degrades() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    assert run(_summarize(handler)).ok is False


@pytest.mark.parametrize("content", [None, "", "   "])
def test_empty_content_degrades(content: str | None) -> None:
    result = run(_summarize(lambda request: httpx.Response(200, json=_completion(content))))

    assert result.ok is False


def test_empty_choices_degrade() -> None:
    body = _completion("unused")
    body["choices"] = []

    assert run(_summarize(lambda request: httpx.Response(200, json=body))).ok is False


def test_non_json_body_degrades() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>", headers={"content-type": "text/html"})

    assert run(_summarize(handler)).ok is False


def test_invalid_json_body_degrades() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"{not json", headers={"content-type": "application/json"})

    assert run(_summarize(handler)).ok is False
