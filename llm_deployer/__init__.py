"""
LLM Deployer

Chat client for a local Ollama server with graceful offline fallback.

Components:
- ollama_client: Ollama HTTP API client (tags, version, generate)
- catalog: Cached model listing and loaded-model bookkeeping
- selector: Memory-aware model ranking with explicit override
- prober: Availability probing with error classification
- gateway: Bounded-time inference with mock fallback
- mock: Keyword-matched offline replies
- chat: Session and history management
- api / main: HTTP surface
- console: Interactive console chat
"""

from .main import app

__version__ = "0.1.0"
