"""Availability probing of the inference server."""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import httpx

from .config import config
from .models import ProbeErrorKind, ProbeState
from .ollama_client import OllamaClient, ollama
from .state import ProbeResult

logger = logging.getLogger(__name__)


def classify_error(exc: Exception) -> ProbeResult:
    """Map a probe exception onto an UNREACHABLE result."""
    if isinstance(exc, httpx.TimeoutException):
        kind, status = ProbeErrorKind.TIMEOUT, None
    elif isinstance(exc, httpx.ConnectError):
        kind, status = ProbeErrorKind.CONNECTION_REFUSED, None
    elif isinstance(exc, httpx.HTTPStatusError):
        kind, status = ProbeErrorKind.HTTP_ERROR, exc.response.status_code
    else:
        kind, status = ProbeErrorKind.OTHER, None
    return ProbeResult(
        state=ProbeState.UNREACHABLE,
        error_kind=kind,
        status_code=status,
        detail=str(exc) or type(exc).__name__,
    )


class AvailabilityProber:
    """
    Tracks whether the inference server is reachable.

    State machine: UNKNOWN -> REACHABLE <-> UNREACHABLE. The timer lives
    outside; callers invoke probe_once() on their own schedule. Failures
    are recorded as status and never raised.
    """

    def __init__(
        self,
        client: Optional[OllamaClient] = None,
        base_urls: Optional[List[str]] = None,
    ):
        self.client = client or ollama
        self.base_urls = config.probe_urls if base_urls is None else base_urls
        self._last: Optional[ProbeResult] = None

    @property
    def state(self) -> ProbeState:
        return self._last.state if self._last else ProbeState.UNKNOWN

    @property
    def last_result(self) -> Optional[ProbeResult]:
        return self._last

    @property
    def last_error(self) -> Optional[ProbeErrorKind]:
        return self._last.error_kind if self._last else None

    @property
    def reachable_url(self) -> Optional[str]:
        """Base URL that answered the last successful probe."""
        if self._last and self._last.reachable:
            return self._last.base_url
        return None

    def is_fresh(self, max_age: float) -> bool:
        if self._last is None:
            return False
        age = datetime.now(timezone.utc) - self._last.checked_at
        return age <= timedelta(seconds=max_age)

    async def probe_once(self) -> ProbeResult:
        """Check each base URL in order, stopping at the first success."""
        result: Optional[ProbeResult] = None
        for base_url in self.base_urls:
            try:
                await self.client.version(base_url)
            except Exception as e:
                result = classify_error(e)
                logger.debug(f"Probe {base_url} failed: {result.error_kind.value} ({result.detail})")
                continue
            result = ProbeResult(state=ProbeState.REACHABLE, base_url=base_url)
            break

        if result is None:
            result = ProbeResult(
                state=ProbeState.UNREACHABLE,
                error_kind=ProbeErrorKind.OTHER,
                detail="No base URLs configured",
            )

        previous = self.state
        self._last = result
        if result.state != previous:
            if result.reachable:
                logger.info(f"Ollama reachable at {result.base_url}")
            else:
                logger.warning(f"Ollama unreachable: {result.error_kind.value} ({result.detail})")
        return result
