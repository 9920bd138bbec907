"""Model catalog: cached server listing and loaded-model bookkeeping."""

import logging
from pathlib import PurePath
from typing import Dict, List, Optional

from .errors import InvalidArgumentError, NotFoundError
from .ollama_client import OllamaClient, ollama
from .state import LoadedModel

logger = logging.getLogger(__name__)

WEIGHT_SUFFIXES = (".bin", ".gguf", ".safetensors")


def model_name_from_path(path: str) -> str:
    """Display name for a model reference: weight files lose dir and suffix."""
    ref = path.strip()
    if ref.lower().endswith(WEIGHT_SUFFIXES):
        return PurePath(ref.replace("\\", "/")).stem
    return ref


class ModelCatalog:
    """
    Client-side view of the models the inference server offers.

    Handles:
    - Listing via /api/tags with the last successful listing cached
    - LoadedModel records for load requests and newly discovered names
    """

    def __init__(self, client: Optional[OllamaClient] = None):
        self.client = client or ollama
        self._cached: List[str] = []
        self._models: Dict[str, LoadedModel] = {}
        self.last_ok = False

    @property
    def cached(self) -> List[str]:
        """Last successful listing."""
        return list(self._cached)

    async def list_models(self, base_url: Optional[str] = None) -> List[str]:
        """
        List models, caching the result on success. Empty on any failure.

        A server that answers with no models empties the cache; a failed
        request leaves it untouched.
        """
        names = await self.client.fetch_models(base_url)
        self.last_ok = names is not None
        if names is None:
            return []

        self._cached = list(names)
        known = {m.name for m in self._models.values()}
        for name in names:
            if name not in known:
                self._record(LoadedModel(name=name))
        logger.info(f"Catalog refreshed: {len(names)} models")
        return list(names)

    def load_model(self, path: str) -> LoadedModel:
        """Record a load request for a model name or weight file path."""
        if not path or not path.strip():
            raise InvalidArgumentError("Model path cannot be empty")

        model = LoadedModel(name=model_name_from_path(path), path=path)
        self._record(model)
        logger.info(f"Loaded model {model.name} ({model.id})")
        return model

    def unload_model(self, model_id: str) -> LoadedModel:
        """Forget a loaded model."""
        if model_id not in self._models:
            raise NotFoundError(f"Model with ID {model_id} not found")
        model = self._models.pop(model_id)
        logger.info(f"Unloaded model {model.name} ({model_id})")
        return model

    def get_loaded_models(self) -> List[LoadedModel]:
        return list(self._models.values())

    def _record(self, model: LoadedModel) -> None:
        self._models[model.id] = model
