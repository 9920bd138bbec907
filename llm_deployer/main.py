"""
LLM Deployer - HTTP Entry Point

Chat API in front of a local Ollama server. Replies come from the server
when it is reachable and from the offline mock responder otherwise.

Usage:
    python -m llm_deployer.main

Environment Variables:
    LLMD_HOST           - Server host (default: 127.0.0.1)
    LLMD_PORT           - Server port (default: 8000)
    LLMD_OLLAMA_HOST    - Ollama host (default: localhost)
    LLMD_OLLAMA_PORT    - Ollama port (default: 11434)
    OLLAMA_MODEL        - Pinned model; ranked from the catalog when unset
    PROBE_INTERVAL      - Seconds between availability probes (default: 1)
    GENERATE_TIMEOUT    - Generation timeout in seconds (default: 300)
    AVAILABLE_MEMORY_GB - Override sampled host memory for model selection
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import router as api_router
from .chat import ChatOrchestrator
from .config import config
from .errors import ChatError, InvalidArgumentError, InvalidStateError, NotFoundError
from .gateway import InferenceGateway
from .prober import AvailabilityProber

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    InvalidArgumentError: 400,
    NotFoundError: 404,
    InvalidStateError: 409,
}


def configure_logging():
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


async def probe_loop(gateway: InferenceGateway, interval: float):
    """Probe on a fixed interval; refresh the catalog once the server appears."""
    prober: AvailabilityProber = gateway.prober
    while True:
        result = await prober.probe_once()
        if result.reachable and not gateway.catalog.cached and not gateway.initializing:
            gateway.initialize()
        await asyncio.sleep(interval)


def create_app(chat: Optional[ChatOrchestrator] = None, probe_interval: Optional[float] = None) -> FastAPI:
    """
    Build the FastAPI app.

    With no `chat`, the lifespan builds a gateway against the configured
    Ollama server and starts model initialization and the probe loop.
    A probe_interval of 0 disables the loop.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("=" * 60)
        logger.info("LLM Deployer Starting")
        logger.info("=" * 60)

        owned = chat is None
        app.state.chat = chat or ChatOrchestrator(InferenceGateway())
        gateway = app.state.chat.gateway

        if owned:
            gateway.initialize()

        interval = config.probe_interval if probe_interval is None else probe_interval
        probe_task = asyncio.create_task(probe_loop(gateway, interval)) if interval > 0 else None

        logger.info(f"Ollama URL: {config.ollama_url}")
        logger.info(f"Probe URLs: {', '.join(gateway.prober.base_urls)}")
        logger.info(f"Pinned model: {config.ollama_model or '(auto)'}")
        logger.info(f"Generate timeout: {config.generate_timeout}s")
        logger.info("-" * 60)
        logger.info(f"Server ready at http://{config.host}:{config.port}")
        logger.info("=" * 60)

        yield

        logger.info("Shutting down...")
        if probe_task:
            probe_task.cancel()
            try:
                await probe_task
            except asyncio.CancelledError:
                pass
        if owned:
            await gateway.close()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="LLM Deployer",
        description=(
            "Chat sessions over a local Ollama server with availability "
            "probing, model selection and offline mock fallback."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ChatError)
    async def chat_error_handler(request: Request, exc: ChatError):
        code = next((c for t, c in ERROR_STATUS.items() if isinstance(exc, t)), 400)
        return JSONResponse(status_code=code, content={"error": type(exc).__name__, "detail": str(exc)})

    app.include_router(api_router)

    @app.get("/health")
    async def health(request: Request):
        """Health check endpoint."""
        gateway = request.app.state.chat.gateway
        return {
            "status": "healthy",
            "ollama": gateway.prober.state.value,
            "model": gateway.selector.selected,
            "session_count": request.app.state.chat.session_count,
        }

    return app


app = create_app()


def main():
    """Run the HTTP server."""
    configure_logging()
    uvicorn.run(
        "llm_deployer.main:app",
        host=config.host,
        port=config.port,
        reload=False,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
