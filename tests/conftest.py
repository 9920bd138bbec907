"""Shared test fixtures: an in-process fake Ollama server."""

import json
import random
from typing import Callable, List, Optional

import httpx
import pytest

from llm_deployer.catalog import ModelCatalog
from llm_deployer.config import config
from llm_deployer.gateway import InferenceGateway
from llm_deployer.mock import MockResponder
from llm_deployer.ollama_client import OllamaClient
from llm_deployer.prober import AvailabilityProber
from llm_deployer.selector import ModelSelector

BASE_URL = "http://localhost:11434"
PROBE_URLS = ["http://localhost:11434", "http://127.0.0.1:11434"]


class FakeOllama:
    """Routes /api/* requests to configurable canned behaviour."""

    def __init__(self):
        self.models: List[str] = ["llama3.2:3b", "mistral:7b"]
        self.version_status = 200
        self.reply = "real reply"
        self.refuse_hosts: List[str] = []
        self.tags: Optional[Callable[[httpx.Request], httpx.Response]] = None
        self.generate: Optional[Callable[[httpx.Request], httpx.Response]] = None
        self.requests: List[httpx.Request] = []

    def down(self):
        self.refuse_hosts = ["localhost", "127.0.0.1"]

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]

    def generate_payloads(self) -> List[dict]:
        return [json.loads(r.content) for r in self.requests if r.url.path == "/api/generate"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host in self.refuse_hosts:
            raise httpx.ConnectError("Connection refused", request=request)

        path = request.url.path
        if path == "/api/version":
            return httpx.Response(self.version_status, json={"version": "0.5.7"})
        if path == "/api/tags":
            if self.tags:
                return self.tags(request)
            return httpx.Response(200, json={"models": [{"name": n, "size": 1} for n in self.models]})
        if path == "/api/generate":
            if self.generate:
                return self.generate(request)
            return httpx.Response(200, json={"response": self.reply, "done": True})
        return httpx.Response(404, json={"error": "not found"})


@pytest.fixture(autouse=True)
def _fixed_config(monkeypatch: pytest.MonkeyPatch) -> None:
    """Deterministic memory and timing regardless of the host and env."""
    monkeypatch.setattr(config, "available_memory_gb", 16.0)
    monkeypatch.setattr(config, "probe_max_age", 1.0)
    monkeypatch.setattr(config, "init_grace", 0.5)
    monkeypatch.setattr(config, "max_tokens", 100)
    monkeypatch.setattr(config, "temperature", 0.7)


@pytest.fixture
def fake_ollama() -> FakeOllama:
    return FakeOllama()


@pytest.fixture
async def client(fake_ollama: FakeOllama):
    c = OllamaClient(base_url=BASE_URL, transport=httpx.MockTransport(fake_ollama.handler))
    yield c
    await c.close()


@pytest.fixture
def mock_responder() -> MockResponder:
    return MockResponder(random.Random(1234))


@pytest.fixture
def gateway(client: OllamaClient, mock_responder: MockResponder) -> InferenceGateway:
    return InferenceGateway(
        client=client,
        catalog=ModelCatalog(client),
        selector=ModelSelector(),
        prober=AvailabilityProber(client, PROBE_URLS),
        mock=mock_responder,
    )
