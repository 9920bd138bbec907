"""LLM Deployer configuration."""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

LOOPBACK_HOSTS = ("localhost", "127.0.0.1")


def _optional_float(name: str) -> Optional[float]:
    value = os.getenv(name, "").strip()
    return float(value) if value else None


@dataclass
class Config:
    """Configuration loaded from environment variables."""

    # Server
    host: str = field(default_factory=lambda: os.getenv("LLMD_HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("LLMD_PORT", "8000")))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Ollama
    ollama_host: str = field(default_factory=lambda: os.getenv("LLMD_OLLAMA_HOST", "localhost"))
    ollama_port: int = field(default_factory=lambda: int(os.getenv("LLMD_OLLAMA_PORT", "11434")))
    ollama_model: str = field(default_factory=lambda: os.getenv("OLLAMA_MODEL", ""))

    # Timeouts (seconds)
    catalog_timeout: float = field(default_factory=lambda: float(os.getenv("CATALOG_TIMEOUT", "3")))
    probe_timeout: float = field(default_factory=lambda: float(os.getenv("PROBE_TIMEOUT", "2")))
    generate_timeout: float = field(default_factory=lambda: float(os.getenv("GENERATE_TIMEOUT", "300")))

    # Probing
    probe_interval: float = field(default_factory=lambda: float(os.getenv("PROBE_INTERVAL", "1")))
    probe_max_age: float = field(default_factory=lambda: float(os.getenv("PROBE_MAX_AGE", "1")))

    # Inference
    init_grace: float = field(default_factory=lambda: float(os.getenv("INIT_GRACE", "2")))
    max_tokens: int = field(default_factory=lambda: int(os.getenv("MAX_TOKENS", "100")))
    temperature: float = field(default_factory=lambda: float(os.getenv("TEMPERATURE", "0.7")))

    # Host memory override for model selection (GB); sampled via psutil when unset
    available_memory_gb: Optional[float] = field(
        default_factory=lambda: _optional_float("AVAILABLE_MEMORY_GB"))

    @property
    def ollama_url(self) -> str:
        """Primary base URL for the Ollama server."""
        return f"http://{self.ollama_host}:{self.ollama_port}"

    @property
    def probe_urls(self) -> List[str]:
        """Equivalent loopback addresses tried in order by the prober."""
        if self.ollama_host not in LOOPBACK_HOSTS:
            return [self.ollama_url]
        return [f"http://{alias}:{self.ollama_port}" for alias in LOOPBACK_HOSTS]


# Global config instance
config = Config()
