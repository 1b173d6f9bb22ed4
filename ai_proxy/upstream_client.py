"""Async HTTP client for vendor APIs: auth injection, header filtering, error mapping."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx

from .config import Provider, Settings, USER_AGENT, get_settings
from .errors import UpstreamConnectionFailed

logger = logging.getLogger(__name__)

# Query parameters added by client frameworks that must never reach a vendor
EXCLUDED_QUERY_PARAMS = {"_envelope", "_locale"}

# Only these upstream response headers are relayed to the caller
RELAYED_RESPONSE_HEADERS = {
    "content-type": "Content-Type",
    "x-request-id": "X-Request-ID",
}

SENSITIVE_HEADERS = {"authorization", "x-api-key", "cookie"}


def is_json_content_type(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


def filter_query_params(params: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
    return [(k, v) for k, v in params if k not in EXCLUDED_QUERY_PARAMS]


def join_url(root: str, path: str) -> str:
    return f"{root.rstrip('/')}/{path.lstrip('/')}"


def redact_headers(headers: Dict[str, str]) -> Dict[str, str]:
    return {k: ("****" if k.lower() in SENSITIVE_HEADERS else v) for k, v in headers.items()}


@dataclass
class UpstreamResponse:
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    content: bytes = b""
    # Decoded body when the upstream declared and sent valid JSON
    data: Any = None
    is_json: bool = False


class UpstreamClient:
    """Executes single upstream calls. Holds no per-request state."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None):
        self.settings: Settings = settings or get_settings()
        self.client = client or httpx.AsyncClient(timeout=self.settings.PROXY_TIMEOUT)

    def build_headers(
        self,
        provider: Provider,
        api_key: str,
        content_type: Optional[str] = None,
        has_body: bool = False,
    ) -> Dict[str, str]:
        """Outgoing headers for a provider; empty values are dropped."""
        if provider is Provider.ANTHROPIC:
            headers = {
                "Content-Type": "application/json",
                "User-Agent": USER_AGENT,
                "x-api-key": api_key,
                "anthropic-version": self.settings.ANTHROPIC_API_VERSION,
            }
        else:
            headers = {
                "Content-Type": content_type or ("application/json" if has_body else ""),
                "User-Agent": USER_AGENT,
                "Authorization": f"Bearer {api_key}",
            }
        return {k: v for k, v in headers.items() if v}

    async def send(
        self,
        url: str,
        method: str,
        headers: Dict[str, str],
        body: Optional[bytes] = None,
        timeout: Optional[float] = None,
        params: Optional[List[Tuple[str, str]]] = None,
    ) -> UpstreamResponse:
        """
        Perform one upstream request. There are no retries.

        Raises:
            UpstreamConnectionFailed: on connection errors and timeouts.
        """
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Upstream request %s %s - headers=%s params=%s body_len=%s",
                method,
                url,
                redact_headers(headers),
                params,
                len(body or b""),
            )
        else:
            logger.info("Upstream request %s %s", method, url)

        try:
            resp = await self.client.request(
                method,
                url,
                headers=headers,
                content=body or None,
                params=params or None,
                timeout=timeout if timeout is not None else self.settings.PROXY_TIMEOUT,
            )
        except httpx.RequestError as e:
            logger.warning(f"Network error calling {url}: {type(e).__name__}: {e}")
            raise UpstreamConnectionFailed("Failed to connect to the AI service.") from e

        relayed = {
            name: resp.headers[key]
            for key, name in RELAYED_RESPONSE_HEADERS.items()
            if key in resp.headers
        }

        result = UpstreamResponse(
            status_code=resp.status_code,
            headers=relayed,
            content=resp.content,
        )
        if is_json_content_type(relayed.get("Content-Type")):
            try:
                result.data = resp.json()
                result.is_json = True
            except ValueError:
                logger.debug("Upstream declared JSON but body did not decode, relaying raw body")

        logger.debug("Upstream response %s %s - status=%s", method, url, resp.status_code)
        return result

    async def close(self):
        """Close underlying HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
