"""Tests for the chat-completion HTTP client."""

import json

import httpx
import pytest

from edutest.config import Settings
from edutest.core.errors import ConfigurationMissingError
from edutest.services.ai_client import AIClient


def _client_with(handler, api_key: str = "sk-test") -> AIClient:
    config = Settings(AI_API_KEY=api_key, AI_BASE_URL="https://ai.example/v1", AI_MODEL="test-model")
    client = AIClient(config)
    client._http = httpx.Client(
        base_url="https://ai.example/v1", transport=httpx.MockTransport(handler)
    )
    return client


def test_complete_returns_message_content():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "hello"}}]})

    client = _client_with(handler)
    assert client.complete("Write questions") == "hello"
    assert seen["path"] == "/v1/chat/completions"
    assert seen["body"]["model"] == "test-model"
    assert seen["body"]["messages"][-1] == {"role": "user", "content": "Write questions"}


def test_missing_api_key_raises_configuration_missing():
    client = _client_with(lambda r: httpx.Response(200), api_key="  ")
    with pytest.raises(ConfigurationMissingError):
        client.complete("prompt")


def test_error_status_raises():
    client = _client_with(lambda r: httpx.Response(429, json={"error": "rate limited"}))
    with pytest.raises(httpx.HTTPStatusError):
        client.complete("prompt")


def test_transport_error_drops_pooled_client():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = _client_with(handler)
    with pytest.raises(httpx.TransportError):
        client.complete("prompt")
    assert client._http is None


def test_null_content_yields_empty_text():
    reply = {"choices": [{"message": {"content": None}}]}
    client = _client_with(lambda r: httpx.Response(200, json=reply))
    assert client.complete("prompt") == ""


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>gateway</html>"),
        httpx.Response(200, json={"choices": []}),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, json={"choices": ["oops"]}),
        httpx.Response(200, json={"choices": [{"message": {"content": {"questions": []}}}]}),
    ],
    ids=["html", "no-choices", "list-body", "string-choice", "non-text-content"],
)
def test_malformed_success_body_raises_decoding_error(response: httpx.Response):
    client = _client_with(lambda r: response)
    with pytest.raises(httpx.DecodingError):
        client.complete("prompt")
