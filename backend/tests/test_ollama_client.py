"""
Test Ollama Client

Request shape and probe behaviour against a mocked transport.
"""

import asyncio
import json

import httpx
import pytest

from llm.ollama_client import OllamaClient


def client_with(handler):
    client = OllamaClient()
    client._http = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        base_url="http://ollama.test",
    )
    return client


class TestGenerate:
    def test_request_body(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"response": '{"metrics": {}}'})

        client = client_with(handler)
        reply = asyncio.run(client.generate("extract this", system="be terse"))

        assert reply == '{"metrics": {}}'
        assert seen["path"] == "/api/generate"
        assert seen["body"]["system"] == "be terse"
        assert seen["body"]["format"] == "json"
        assert seen["body"]["stream"] is False

    def test_plain_mode(self):
        body = OllamaClient().request_body("hi", None, json_mode=False)

        assert "format" not in body
        assert "system" not in body

    def test_error_status(self):
        client = client_with(lambda request: httpx.Response(500))

        with pytest.raises(httpx.HTTPStatusError):
            asyncio.run(client.generate("extract this"))

    def test_missing_response(self):
        client = client_with(lambda request: httpx.Response(200, json={}))

        assert asyncio.run(client.generate("extract this")) == ""

    def test_body_not_json(self):
        client = client_with(lambda request: httpx.Response(200, content=b"<html>busy</html>"))

        with pytest.raises(ValueError):
            asyncio.run(client.generate("extract this"))


class TestProbe:
    def test_available(self):
        calls = []

        def handler(request):
            calls.append(request.url.path)
            return httpx.Response(200, json={"models": []})

        client = client_with(handler)

        assert asyncio.run(client.is_available()) is True
        assert asyncio.run(client.is_available()) is True
        assert calls == ["/api/tags"]

    def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        assert asyncio.run(client_with(handler).is_available()) is False

    def test_malformed_tags_response_is_unavailable(self):
        def handler(request):
            raise ValueError("malformed response")

        assert asyncio.run(client_with(handler).is_available()) is False

    def test_disabled(self, monkeypatch):
        client = client_with(lambda request: httpx.Response(200))
        monkeypatch.setattr(client.settings.ollama, "enabled", False)

        assert asyncio.run(client.is_available()) is False

    def test_close_resets_probe(self):
        client = client_with(lambda request: httpx.Response(200))
        asyncio.run(client.is_available())
        asyncio.run(client.close())

        assert client._probe is None
        assert client._http is None
