"""Tests for the inference gateway and its fallback policy."""

import asyncio

import httpx
import pytest

from llm_deployer.errors import InferenceTimeoutError, InvalidArgumentError
from llm_deployer.gateway import InferenceGateway
from llm_deployer.models import ProbeState
from llm_deployer.ollama_client import ollama

from .conftest import FakeOllama


def _timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("timed out", request=request)


# -- Preconditions -------------------------------------------------------------


@pytest.mark.parametrize("prompt", ["", "   ", "\n\t"])
async def test_blank_prompt_rejected(gateway: InferenceGateway, prompt: str) -> None:
    with pytest.raises(InvalidArgumentError):
        await gateway.infer("mistral:7b", prompt)


async def test_blank_prompt_rejected_when_server_down(
    gateway: InferenceGateway, fake_ollama: FakeOllama
) -> None:
    fake_ollama.down()
    with pytest.raises(InvalidArgumentError):
        await gateway.infer("mistral:7b", " ")
    assert fake_ollama.requests == []


# -- Happy path ----------------------------------------------------------------


async def test_uses_requested_model_when_in_catalog(
    gateway: InferenceGateway, fake_ollama: FakeOllama
) -> None:
    await gateway.catalog.list_models()

    reply = await gateway.infer("mistral:7b", "Why is the sky blue?", max_tokens=64)

    assert reply == "real reply"
    payload = fake_ollama.generate_payloads()[0]
    assert payload["model"] == "mistral:7b"
    assert payload["num_predict"] == 64
    assert payload["stream"] is False


async def test_default_max_tokens(gateway: InferenceGateway, fake_ollama: FakeOllama) -> None:
    await gateway.infer("whatever", "hi")
    assert fake_ollama.generate_payloads()[0]["num_predict"] == 100


async def test_unknown_model_uses_selected(gateway: InferenceGateway, fake_ollama: FakeOllama) -> None:
    gateway.selector.set_selected("llama3.2:3b")

    await gateway.infer("session-model", "hi")

    assert fake_ollama.generate_payloads()[0]["model"] == "llama3.2:3b"


async def test_no_selection_lists_and_adopts_first(
    gateway: InferenceGateway, fake_ollama: FakeOllama
) -> None:
    reply = await gateway.infer("m1", "hi")

    assert reply == "real reply"
    assert "/api/tags" in fake_ollama.paths()
    assert gateway.selector.selected == "llama3.2:3b"
    assert not gateway.selector.pinned
    assert fake_ollama.generate_payloads()[0]["model"] == "llama3.2:3b"


async def test_generation_goes_to_probed_address(
    gateway: InferenceGateway, fake_ollama: FakeOllama
) -> None:
    fake_ollama.refuse_hosts = ["localhost"]

    assert await gateway.infer("m1", "hi") == "real reply"
    generate = [r for r in fake_ollama.requests if r.url.path == "/api/generate"]
    assert generate[0].url.host == "127.0.0.1"


async def test_recent_probe_is_reused(gateway: InferenceGateway, fake_ollama: FakeOllama) -> None:
    await gateway.infer("m1", "first")
    await gateway.infer("m1", "second")
    assert fake_ollama.paths().count("/api/version") == 1


# -- Fallbacks -----------------------------------------------------------------


async def test_unreachable_server_uses_mock_without_generating(
    gateway: InferenceGateway, fake_ollama: FakeOllama
) -> None:
    fake_ollama.down()

    reply = await gateway.infer("mistral:7b", "Hello there")

    assert reply in gateway.mock.candidates("Hello there")
    assert "/api/generate" not in fake_ollama.paths()
    assert gateway.prober.state == ProbeState.UNREACHABLE


async def test_empty_catalog_uses_mock(gateway: InferenceGateway, fake_ollama: FakeOllama) -> None:
    fake_ollama.models = []

    reply = await gateway.infer("m1", "what is love")

    assert reply in gateway.mock.candidates("what is love")
    assert "/api/generate" not in fake_ollama.paths()


async def test_generate_connection_refused_uses_mock(
    gateway: InferenceGateway, fake_ollama: FakeOllama
) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    fake_ollama.generate = refuse

    reply = await gateway.infer("m1", "asdkjasd")

    assert reply
    assert reply in gateway.mock.candidates("asdkjasd")


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"done": True}),
        httpx.Response(200, text="not json"),
        httpx.Response(500, json={"error": "model is loading"}),
    ],
)
async def test_protocol_failures_use_mock(
    gateway: InferenceGateway, fake_ollama: FakeOllama, response: httpx.Response
) -> None:
    fake_ollama.generate = lambda req: response
    reply = await gateway.infer("m1", "thanks")
    assert reply in gateway.mock.candidates("thanks")


async def test_timeout_is_masked_by_default(gateway: InferenceGateway, fake_ollama: FakeOllama) -> None:
    fake_ollama.generate = _timeout
    reply = await gateway.infer("m1", "help me")
    assert reply in gateway.mock.candidates("help me")


async def test_timeout_propagates_when_requested(
    gateway: InferenceGateway, fake_ollama: FakeOllama
) -> None:
    fake_ollama.generate = _timeout
    gateway.propagate_timeouts = True

    with pytest.raises(InferenceTimeoutError) as exc_info:
        await gateway.infer("m1", "help me")
    assert isinstance(exc_info.value.__cause__, httpx.TimeoutException)


async def test_no_retries(gateway: InferenceGateway, fake_ollama: FakeOllama) -> None:
    fake_ollama.generate = lambda req: httpx.Response(503)
    await gateway.infer("m1", "hi")
    assert fake_ollama.paths().count("/api/generate") == 1


# -- Initialization ------------------------------------------------------------


async def test_initialize_ranks_catalog(gateway: InferenceGateway) -> None:
    gateway.initialize()
    assert await gateway.ready(1.0)

    assert gateway.catalog.cached == ["llama3.2:3b", "mistral:7b"]
    assert gateway.selector.selected == "mistral:7b"


async def test_refresh_keeps_pinned_override(gateway: InferenceGateway) -> None:
    gateway.selector.set_selected("llama3.2:3b")
    await gateway.refresh()
    assert gateway.selector.selected == "llama3.2:3b"


async def test_emptied_catalog_drops_stale_model(
    gateway: InferenceGateway, fake_ollama: FakeOllama
) -> None:
    await gateway.refresh()
    assert gateway.selector.selected == "mistral:7b"

    fake_ollama.models = []
    assert await gateway.refresh() == []
    assert gateway.catalog.cached == []
    assert gateway.selector.selected is None

    reply = await gateway.infer("mistral:7b", "hi")

    assert reply in gateway.mock.candidates("hi")
    assert "/api/generate" not in fake_ollama.paths()


async def test_failed_listing_keeps_selection(
    gateway: InferenceGateway, fake_ollama: FakeOllama
) -> None:
    await gateway.refresh()

    fake_ollama.tags = lambda req: httpx.Response(500)
    await gateway.refresh()

    assert gateway.catalog.cached == ["llama3.2:3b", "mistral:7b"]
    assert gateway.selector.selected == "mistral:7b"


async def test_emptied_catalog_keeps_pinned_override(
    gateway: InferenceGateway, fake_ollama: FakeOllama
) -> None:
    gateway.selector.set_selected("phi3:mini")
    fake_ollama.models = []
    await gateway.refresh()
    assert gateway.selector.selected == "phi3:mini"


async def test_defaults_to_shared_client() -> None:
    gateway = InferenceGateway()
    assert gateway.client is ollama
    assert gateway.catalog.client is ollama


async def test_ready_without_initialize(gateway: InferenceGateway) -> None:
    assert await gateway.ready(0.01)


async def test_ready_times_out_but_keeps_task(gateway: InferenceGateway) -> None:
    release = asyncio.Event()

    async def slow_refresh():
        await release.wait()
        return []

    gateway.refresh = slow_refresh
    task = gateway.initialize()

    assert not await gateway.ready(0.01)
    assert not task.done()
    assert gateway.initialize() is task

    release.set()
    assert await gateway.ready(1.0)


async def test_infer_waits_for_pending_initialization(
    gateway: InferenceGateway, fake_ollama: FakeOllama
) -> None:
    async def delayed_refresh():
        await asyncio.sleep(0.05)
        gateway.selector.adopt("mistral:7b")
        return ["mistral:7b"]

    gateway.refresh = delayed_refresh
    gateway.initialize()

    await gateway.infer("session-model", "hi")

    assert fake_ollama.generate_payloads()[0]["model"] == "mistral:7b"


async def test_infer_proceeds_after_grace_period(
    gateway: InferenceGateway, fake_ollama: FakeOllama
) -> None:
    release = asyncio.Event()

    async def stuck_refresh():
        await release.wait()
        return []

    gateway.refresh = stuck_refresh
    gateway.initialize()

    reply = await asyncio.wait_for(gateway.infer("m1", "hi"), timeout=5)

    assert reply == "real reply"
    release.set()
    assert await gateway.ready(1.0)
