"""Ollama HTTP API client."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import config
from .errors import InferenceTimeoutError, ProtocolError, ServerUnreachableError

logger = logging.getLogger(__name__)


class OllamaClient:
    """
    Async client for the Ollama HTTP API.

    Handles:
    - Model listing (/api/tags), fail-soft to an empty list
    - Version checks (/api/version) for availability probing
    - Single-shot generation (/api/generate, stream=false)

    Every call carries its own timeout: listing and probing are short,
    generation is long enough to absorb a cold model load on the server.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or config.ollama_url
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.generate_timeout, connect=10.0),
            transport=transport,
        )

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()

    async def list_models(self, base_url: Optional[str] = None) -> List[str]:
        """
        List model names from Ollama.

        Returns an empty list on any failure: network error, non-2xx
        status, malformed JSON or an unexpected payload shape. Never raises.
        """
        return await self.fetch_models(base_url) or []

    async def fetch_models(self, base_url: Optional[str] = None) -> Optional[List[str]]:
        """
        Like list_models, but None on failure so an empty server is
        distinguishable from an unusable answer.
        """
        url = f"{base_url or self.base_url}/api/tags"
        try:
            resp = await self.client.get(url, timeout=config.catalog_timeout)
            resp.raise_for_status()
            data = resp.json()
        except Exception as e:
            logger.warning(f"Failed to list models: {e}")
            return None

        models = data.get("models") if isinstance(data, dict) else None
        if not isinstance(models, list):
            logger.warning(f"Unexpected /api/tags payload: {str(data)[:100]}")
            return None

        names = []
        for entry in models:
            name = entry.get("name") if isinstance(entry, dict) else None
            if isinstance(name, str) and name.strip():
                names.append(name)
        logger.debug(f"Listed {len(names)} models from {url}")
        return names

    async def version(self, base_url: Optional[str] = None) -> Dict[str, Any]:
        """
        Lightweight health check.

        Raises httpx errors unchanged so the prober can classify them.
        """
        resp = await self.client.get(
            f"{base_url or self.base_url}/api/version",
            timeout=config.probe_timeout,
        )
        resp.raise_for_status()
        try:
            return resp.json()
        except ValueError:
            return {}

    async def generate(
        self,
        model: str,
        prompt: str,
        max_tokens: int = 100,
        temperature: Optional[float] = None,
        base_url: Optional[str] = None,
    ) -> str:
        """
        Non-streaming generation.

        Raises:
            InferenceTimeoutError: the request exceeded the generation timeout
            ServerUnreachableError: connection failed or transport broke
            ProtocolError: non-2xx status, bad JSON or missing `response`
        """
        if temperature is None:
            temperature = config.temperature

        payload = {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "num_predict": max_tokens,
            "temperature": temperature,
            # Ollama reads sampling parameters from options
            "options": {"num_predict": max_tokens, "temperature": temperature},
        }

        url = f"{base_url or self.base_url}/api/generate"
        logger.info(f"Generate: model={model}, prompt={len(prompt)} chars, num_predict={max_tokens}")

        try:
            resp = await self.client.post(url, json=payload, timeout=config.generate_timeout)
        except httpx.TimeoutException as e:
            raise InferenceTimeoutError(
                f"Generation timed out after {config.generate_timeout}s") from e
        except httpx.TransportError as e:
            raise ServerUnreachableError(f"Cannot reach {url}: {e}") from e

        if resp.is_error:
            raise ProtocolError(
                f"Ollama HTTP error: {resp.status_code}", status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise ProtocolError(f"Malformed JSON from /api/generate: {e}") from e

        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str):
            raise ProtocolError("Generation payload has no 'response' field")

        logger.debug(f"Generated {len(text)} chars (eval_count={data.get('eval_count')})")
        return text


# Global instance
ollama = OllamaClient()
