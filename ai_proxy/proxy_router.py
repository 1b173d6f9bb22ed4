"""
Request dispatch for the AI API proxy.

Chooses between the synthesized endpoints (healthcheck, models), the
translate-and-forward path for providers that are not OpenAI-shaped, and
plain pass-through to the OpenAI API.
"""

import json
import logging
from typing import Iterable, Mapping, Optional, Tuple

from pydantic import ValidationError

from .config import Provider, Settings, get_settings
from .credentials import CredentialStore
from .errors import InvalidRequestBody, ModelListUnavailable
from .model_catalog import ModelCatalog
from .openai_models import ChatCompletionsRequest, ModelList
from .translator import ChatTranslator, get_chat_translator
from .upstream_client import UpstreamClient, UpstreamResponse, filter_query_params, join_url

logger = logging.getLogger(__name__)

HEALTHCHECK_PATH = "healthcheck"
MODELS_PATH = "models"
CHAT_COMPLETIONS_PATH = "chat/completions"

JSON_HEADERS = {"Content-Type": "application/json"}


def parse_chat_request(body: bytes) -> ChatCompletionsRequest:
    """
    Parse and validate an inbound chat-completions body.

    Raises:
        InvalidRequestBody: if the body is not a JSON object or fails validation.
    """
    try:
        data = json.loads(body or b"")
    except ValueError:
        raise InvalidRequestBody("Invalid JSON in request body.")

    if not isinstance(data, dict) or not data:
        raise InvalidRequestBody("Invalid JSON in request body.")

    try:
        return ChatCompletionsRequest.model_validate(data)
    except ValidationError as e:
        logger.debug(f"Chat request validation failed: {e}")
        raise InvalidRequestBody(f"Invalid chat completion request: {e.error_count()} validation error(s).")


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


class ProxyRouter:
    """Entry point for every gateway request. Holds no state between calls."""

    def __init__(
        self,
        credentials: CredentialStore,
        upstream: UpstreamClient,
        catalog: ModelCatalog,
        settings: Optional[Settings] = None,
    ):
        self.settings: Settings = settings or get_settings()
        self.credentials = credentials
        self.upstream = upstream
        self.catalog = catalog

    def _api_root(self, provider: Provider) -> str:
        if provider is Provider.ANTHROPIC:
            return self.settings.ANTHROPIC_API_ROOT
        return self.settings.OPENAI_API_ROOT

    async def handle(
        self,
        path: str,
        method: str,
        headers: Mapping[str, str],
        body: bytes = b"",
        query_params: Iterable[Tuple[str, str]] = (),
    ) -> UpstreamResponse:
        path = path.strip("/")

        if path == HEALTHCHECK_PATH:
            return self.healthcheck()
        if path == MODELS_PATH:
            return await self.list_models()

        provider = self.credentials.provider
        translator = None
        if path == CHAT_COMPLETIONS_PATH:
            translator = get_chat_translator(provider, self.settings)

        if translator is not None:
            return await self.proxy_translated_chat(translator, body)
        return await self.proxy_passthrough(path, method, headers, body, query_params)

    def healthcheck(self) -> UpstreamResponse:
        """Report whether the active provider has a credential. Never calls upstream."""
        provider = self.credentials.provider
        configured = self.credentials.has_credential()
        return UpstreamResponse(
            status_code=200 if configured else 500,
            headers=dict(JSON_HEADERS),
            data={
                "status": "OK" if configured else "Configuration Error",
                "provider": provider.value,
            },
            is_json=True,
        )

    async def list_models(self) -> UpstreamResponse:
        provider = self.credentials.provider
        models = await self.catalog.list(provider)
        if not models:
            raise ModelListUnavailable("Unable to retrieve model lists from the configured provider.")

        model_list = ModelList(
            data=[m.model_copy(update={"owned_by": provider.value}) for m in models]
        )
        return UpstreamResponse(
            status_code=200,
            headers=dict(JSON_HEADERS),
            data=model_list.model_dump(),
            is_json=True,
        )

    async def proxy_translated_chat(self, translator: ChatTranslator, body: bytes) -> UpstreamResponse:
        # Fail fast before any translation or upstream call
        request = parse_chat_request(body)
        payload = translator.translate_request(request)

        provider = translator.provider
        url = join_url(self._api_root(provider), translator.upstream_path)
        headers = self.upstream.build_headers(provider, self.credentials.api_key(provider), has_body=True)

        resp = await self.upstream.send(
            url,
            "POST",
            headers,
            json.dumps(payload).encode("utf-8"),
            timeout=self.settings.PROXY_TIMEOUT,
        )

        # Upstream errors are relayed as the vendor sent them
        if resp.is_json and 200 <= resp.status_code < 300 and isinstance(resp.data, dict):
            try:
                resp.data = translator.translate_response(resp.data)
            except ValidationError as e:
                logger.warning(f"Could not translate {provider.value} response, relaying it unchanged: {e}")
        return resp

    async def proxy_passthrough(
        self,
        path: str,
        method: str,
        headers: Mapping[str, str],
        body: bytes = b"",
        query_params: Iterable[Tuple[str, str]] = (),
    ) -> UpstreamResponse:
        # Non-chat paths always go to the OpenAI API with its credential
        provider = Provider.OPENAI
        url = join_url(self._api_root(provider), path)
        outgoing = self.upstream.build_headers(
            provider,
            self.credentials.api_key(provider),
            content_type=_header(headers, "content-type"),
            has_body=bool(body),
        )
        return await self.upstream.send(
            url,
            method,
            outgoing,
            body,
            timeout=self.settings.PROXY_TIMEOUT,
            params=filter_query_params(query_params),
        )
