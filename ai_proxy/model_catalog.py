"""Per-provider model listing with TTL caching."""

import asyncio
import json
import logging
import time
from typing import Dict, List, Optional

from pydantic import ValidationError

from .cache import Cache
from .config import Provider, Settings, get_settings
from .credentials import CredentialStore
from .errors import UpstreamConnectionFailed
from .openai_models import ModelData
from .upstream_client import UpstreamClient, join_url

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "models"

# Anthropic has no model discovery endpoint
ANTHROPIC_MODEL_IDS = [
    "claude-3-5-sonnet-20241022",
    "claude-3-5-sonnet-20240620",
    "claude-3-sonnet-20240229",
    "claude-3-opus-20240229",
    "claude-3-haiku-20240307",
]


def cache_key(provider: Provider) -> str:
    return f"{CACHE_KEY_PREFIX}-{provider.value}"


class ModelCatalog:
    """
    Lists models available from a provider.

    ``list`` never raises: an empty list means the models could not be
    retrieved. Only non-empty results fetched from upstream are cached.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        upstream: UpstreamClient,
        cache: Cache,
        settings: Optional[Settings] = None,
    ):
        self.settings: Settings = settings or get_settings()
        self.credentials = credentials
        self.upstream = upstream
        self.cache = cache
        self._locks: Dict[str, asyncio.Lock] = {}

    async def list(self, provider: Provider) -> List[ModelData]:
        if not self.credentials.has_credential(provider):
            logger.info(f"No API key for provider {provider.value}, model list unavailable")
            return []

        if provider is Provider.ANTHROPIC:
            return self._static_models(provider, ANTHROPIC_MODEL_IDS)

        return await self._cached_models(provider)

    def _static_models(self, provider: Provider, model_ids: List[str]) -> List[ModelData]:
        created = int(time.time())
        return [ModelData(id=model_id, created=created, owned_by=provider.value) for model_id in model_ids]

    async def _cached_models(self, provider: Provider) -> List[ModelData]:
        key = cache_key(provider)
        cached = self.cache.get(key)
        if cached:
            return list(cached)

        # Concurrent misses for the same key share one upstream fetch
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            cached = self.cache.get(key)
            if cached:
                return list(cached)

            models = await self._fetch_models(provider)
            if models:
                self.cache.set(key, models, self.settings.MODELS_CACHE_TTL)
                logger.info(f"Cached {len(models)} models for {provider.value}")
            return list(models)

    async def _fetch_models(self, provider: Provider) -> List[ModelData]:
        url = join_url(self.settings.OPENAI_API_ROOT, "models")
        headers = self.upstream.build_headers(provider, self.credentials.api_key(provider))

        try:
            resp = await self.upstream.send(url, "GET", headers, timeout=self.settings.MODELS_TIMEOUT)
        except UpstreamConnectionFailed as e:
            logger.warning(f"Failed to list models for {provider.value}: {e.message}")
            return []

        if not resp.content:
            return []

        try:
            payload = json.loads(resp.content)
        except ValueError:
            logger.warning(f"Model list for {provider.value} is not valid JSON (status={resp.status_code})")
            return []

        if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
            logger.warning(f"Model list for {provider.value} has no data array (status={resp.status_code})")
            return []

        models: List[ModelData] = []
        for entry in payload["data"]:
            if not isinstance(entry, dict):
                continue
            try:
                models.append(ModelData.model_validate(entry))
            except ValidationError as e:
                logger.debug(f"Skipping malformed model entry {entry!r}: {e}")
        return models
