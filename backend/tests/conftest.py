import json
from typing import List

import httpx
import pytest
from openai import AsyncOpenAI
from fastapi.testclient import TestClient

from sark.app import create_app
import sark.services.relay as relay


SSE_BODY = (
    b": OPENROUTER PROCESSING\n\n"
    b'data: {"id":"gen-1","choices":[{"index":0,"delta":{"role":"assistant","content":"<!DOCTYPE html>\\n"}}]}\n\n'
    b'data: {"id":"gen-1","choices":[{"index":0,"delta":{"content":"<html><body><h1>Bakery</h1></body></html>\\n"}}]}\n\n'
    b'data: {"id":"gen-1","choices":[{"index":0,"delta":{},"finish_reason":"stop"}]}\n\n'
    b"data: [DONE]\n\n"
)
SSE_DOCUMENT = "<!DOCTYPE html>\n<html><body><h1>Bakery</h1></body></html>"


class FakeUpstream:
    """Records chat-completion requests and answers them with a canned response."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.status_code = 200
        self.body = SSE_BODY
        self.content_type = "text/event-stream"
        self.error = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, content=self.body, headers={"content-type": self.content_type})

    @property
    def payloads(self) -> List[dict]:
        return [json.loads(r.content) for r in self.requests]

    def client_factory(self, **kwargs) -> AsyncOpenAI:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return AsyncOpenAI(http_client=http_client, **kwargs)


@pytest.fixture
def upstream(monkeypatch) -> FakeUpstream:
    fake = FakeUpstream()
    monkeypatch.setattr(relay, "AsyncOpenAI", fake.client_factory)
    return fake


@pytest.fixture
def relay_env(monkeypatch):
    monkeypatch.setenv("DOTENV_DISABLED", "1")
    monkeypatch.setenv("OPENROUTER_API_KEY", "test-key")
    monkeypatch.delenv("CORS_ALLOW_ORIGINS", raising=False)
    monkeypatch.delenv("UPSTREAM_MODEL", raising=False)


@pytest.fixture
def app(relay_env, upstream):
    return create_app()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
