from __future__ import annotations

import asyncio
import json
import logging

import httpx
import pytest

from varianceqa.analysis import gemini
from varianceqa.core.config import GeminiConfig
from varianceqa.core.errors import ApiError, ConfigError, FormatError, TransportError


def _client(handler, api_key="test-key"):
    return gemini.GeminiClient(GeminiConfig(api_key=api_key), transport=httpx.MockTransport(handler))


def test_endpoint_url_uses_model_and_host():
    cfg = GeminiConfig(api_key="k", host="https://example.test/", model="gemini-test")
    assert gemini.gemini_endpoint_url(cfg) == "https://example.test/v1beta/models/gemini-test:generateContent"


def test_build_generate_payload_omits_generation_config_when_not_given():
    assert gemini.build_generate_payload("hello") == {"contents": [{"parts": [{"text": "hello"}]}]}
    payload = gemini.build_generate_payload("hello", {"responseMimeType": "application/json"})
    assert payload["generationConfig"] == {"responseMimeType": "application/json"}


def test_generate_text_posts_prompt_with_key_and_returns_first_candidate():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "answer"}]}}]})

    text = asyncio.run(_client(handler).generate_text("prompt text"))

    assert text == "answer"
    assert len(seen) == 1
    request = seen[0]
    assert request.method == "POST"
    assert request.url.params["key"] == "test-key"
    assert request.url.path.endswith(":generateContent")
    assert json.loads(request.content) == {"contents": [{"parts": [{"text": "prompt text"}]}]}


def test_generate_text_returns_none_when_response_has_no_candidates():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"candidates": []})

    assert asyncio.run(_client(handler).generate_text("p")) is None


def test_generate_text_raises_api_error_with_body_message(caplog):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": {"message": "API key not valid"}})

    with caplog.at_level(logging.WARNING):
        with pytest.raises(ApiError) as excinfo:
            asyncio.run(_client(handler).generate_text("p"))

    assert excinfo.value.message == "API key not valid"
    assert excinfo.value.status_code == 403
    assert "returned HTTP 403" in caplog.text


def test_generate_text_uses_generic_message_when_error_body_is_not_json():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>bad gateway</html>")

    with pytest.raises(ApiError) as excinfo:
        asyncio.run(_client(handler).generate_text("p"))
    assert excinfo.value.message == gemini.UNKNOWN_ERROR_MESSAGE


def test_generate_text_wraps_network_failures_as_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("network down", request=request)

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(_client(handler).generate_text("p"))
    assert "network down" in excinfo.value.message


def test_generate_text_rejects_non_json_success_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="not json")

    with pytest.raises(FormatError):
        asyncio.run(_client(handler).generate_text("p"))


def test_generate_text_fails_fast_without_api_key():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    with pytest.raises(ConfigError):
        asyncio.run(_client(handler, api_key=None).generate_text("p"))
    assert calls == []


def test_first_candidate_text_tolerates_malformed_shapes():
    assert gemini.first_candidate_text(None) is None
    assert gemini.first_candidate_text({"candidates": [None]}) is None
    assert gemini.first_candidate_text({"candidates": [{"content": {"parts": []}}]}) is None
    assert gemini.first_candidate_text({"candidates": [{"content": {"parts": [{"text": 3}]}}]}) is None
