"""
Inference gateway: bounded-time generation with mock fallback.

The gateway is the policy layer around the Ollama generate call. Server
failures (unreachable, timeout, bad payload) never reach the caller; they
degrade into replies from the mock responder. Only a blank prompt, which
is a caller bug, is raised.
"""

import asyncio
import logging
from typing import List, Optional

from .catalog import ModelCatalog
from .config import config
from .errors import GatewayError, InferenceTimeoutError, InvalidArgumentError
from .mock import MockResponder
from .ollama_client import OllamaClient, ollama
from .prober import AvailabilityProber
from .resources import available_memory_gb
from .selector import ModelSelector

logger = logging.getLogger(__name__)


class InferenceGateway:
    """
    Sequences probe, model resolution and generation for one prompt.

    Handles:
    - Background catalog refresh with a bounded readiness wait
    - Probe reuse within probe_max_age
    - Model resolution against the catalog and selector
    - Fallback to the mock responder on any server failure
    """

    def __init__(
        self,
        client: Optional[OllamaClient] = None,
        catalog: Optional[ModelCatalog] = None,
        selector: Optional[ModelSelector] = None,
        prober: Optional[AvailabilityProber] = None,
        mock: Optional[MockResponder] = None,
        propagate_timeouts: bool = False,
    ):
        self.client = client or ollama
        self.catalog = catalog or ModelCatalog(self.client)
        self.selector = selector or ModelSelector(config.ollama_model)
        self.prober = prober or AvailabilityProber(self.client)
        self.mock = mock or MockResponder()
        self.propagate_timeouts = propagate_timeouts
        self._init_task: Optional[asyncio.Task] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def initialize(self) -> asyncio.Task:
        """Start the catalog refresh in the background. Idempotent while pending."""
        if self._init_task is None or self._init_task.done():
            self._init_task = asyncio.create_task(self.refresh())
            logger.info("Model initialization started")
        return self._init_task

    @property
    def initializing(self) -> bool:
        return self._init_task is not None and not self._init_task.done()

    async def ready(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for initialization, at most `timeout` seconds.

        Returns True when initialization has finished. The refresh keeps
        running in the background if the wait times out.
        """
        if self._init_task is None:
            return True
        if timeout is None:
            timeout = config.init_grace
        try:
            await asyncio.wait_for(asyncio.shield(self._init_task), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Model initialization still pending after {timeout}s, continuing")
            return False
        except Exception as e:
            logger.error(f"Model initialization failed: {e}")
        return True

    async def refresh(self) -> List[str]:
        """Re-list models and re-rank unless an override is pinned."""
        names = await self.catalog.list_models(self.prober.reachable_url)
        if self.selector.pinned:
            return names
        if names:
            self.selector.choose(names, available_memory_gb())
        elif self.catalog.last_ok:
            self.selector.clear()
        return names

    async def close(self):
        """Cancel pending initialization and close the HTTP client."""
        if self.initializing:
            self._init_task.cancel()
            try:
                await self._init_task
            except asyncio.CancelledError:
                pass
        await self.client.close()

    # =========================================================================
    # Inference
    # =========================================================================

    async def infer(self, model_name: str, prompt: str, max_tokens: Optional[int] = None) -> str:
        """
        Generate a reply, falling back to the mock responder.

        Raises:
            InvalidArgumentError: prompt is blank
            InferenceTimeoutError: only when propagate_timeouts is set
        """
        if not prompt or not prompt.strip():
            raise InvalidArgumentError("Prompt cannot be empty")
        if max_tokens is None:
            max_tokens = config.max_tokens

        if self.initializing:
            await self.ready(config.init_grace)

        if self.prober.is_fresh(config.probe_max_age):
            probe = self.prober.last_result
        else:
            probe = await self.prober.probe_once()
        if not probe.reachable:
            logger.info(f"Server unreachable ({probe.error_kind.value}), using mock reply")
            return self.mock.reply(prompt)

        model = await self._resolve_model(model_name, probe.base_url)
        if model is None:
            logger.warning("No models available on server, using mock reply")
            return self.mock.reply(prompt)

        try:
            return await self.client.generate(
                model, prompt, max_tokens=max_tokens, base_url=probe.base_url)
        except InferenceTimeoutError as e:
            if self.propagate_timeouts:
                raise
            logger.warning(f"{e}, using mock reply")
        except GatewayError as e:
            logger.warning(f"Generation failed ({type(e).__name__}: {e}), using mock reply")
        return self.mock.reply(prompt)

    async def _resolve_model(self, model_name: str, base_url: Optional[str]) -> Optional[str]:
        if model_name and model_name in self.catalog.cached:
            return model_name
        if self.selector.selected:
            return self.selector.selected

        names = await self.catalog.list_models(base_url)
        if not names:
            return None
        self.selector.adopt(names[0])
        return names[0]
