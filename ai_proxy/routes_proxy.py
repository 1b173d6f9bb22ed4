import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from .cache import MemoryCache
from .config import Settings, check_gateway_api_key, get_settings
from .credentials import CredentialStore
from .errors import ProxyError, Unauthorized, map_generic_error, map_proxy_error
from .model_catalog import ModelCatalog
from .proxy_router import HEALTHCHECK_PATH, MODELS_PATH, ProxyRouter
from .upstream_client import UpstreamClient, UpstreamResponse

logger = logging.getLogger(__name__)

router = APIRouter()

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def _get_settings(req: Request) -> Settings:
    return getattr(req.app.state, "settings", None) or get_settings()


def _get_upstream(req: Request) -> UpstreamClient:
    client = getattr(req.app.state, "upstream_client", None)
    if client is None:
        client = UpstreamClient(_get_settings(req))
        req.app.state.upstream_client = client
    return client


def _get_cache(req: Request) -> MemoryCache:
    cache = getattr(req.app.state, "models_cache", None)
    if cache is None:
        cache = MemoryCache()
        req.app.state.models_cache = cache
    return cache


def _get_catalog(req: Request) -> ModelCatalog:
    # The catalog owns per-key fetch locks, so it lives as long as the app
    catalog = getattr(req.app.state, "model_catalog", None)
    if catalog is None:
        settings = _get_settings(req)
        catalog = ModelCatalog(CredentialStore(settings), _get_upstream(req), _get_cache(req), settings)
        req.app.state.model_catalog = catalog
    return catalog


def _get_proxy(req: Request) -> ProxyRouter:
    settings = _get_settings(req)
    return ProxyRouter(CredentialStore(settings), _get_upstream(req), _get_catalog(req), settings)


def _auth_guard(req: Request) -> None:
    auth = req.headers.get("authorization")
    if not auth:
        raise Unauthorized("Sorry, you are not allowed to access this endpoint.")
    if not check_gateway_api_key(auth, _get_settings(req)):
        raise Unauthorized("Sorry, you are not allowed to access this endpoint.", status_code=403)


def _to_response(result: UpstreamResponse) -> Response:
    if result.is_json:
        return JSONResponse(content=result.data, status_code=result.status_code, headers=result.headers)
    return Response(
        content=result.content,
        status_code=result.status_code,
        headers=result.headers,
    )


async def _dispatch(request: Request, path: str) -> Response:
    try:
        _auth_guard(request)
        body = await request.body()
        result = await _get_proxy(request).handle(
            path,
            request.method,
            request.headers,
            body,
            request.query_params.multi_items(),
        )
        return _to_response(result)
    except ProxyError as e:
        return map_proxy_error(e)
    except Exception as e:
        return map_generic_error(e)


@router.get("/healthcheck")
async def healthcheck(request: Request):
    return await _dispatch(request, HEALTHCHECK_PATH)


@router.get("/models")
async def list_models(request: Request):
    return await _dispatch(request, MODELS_PATH)


@router.api_route("/{api_path:path}", methods=PROXY_METHODS)
async def proxy(request: Request, api_path: str):
    return await _dispatch(request, api_path)


def include_proxy_routes(app, settings: Optional[Settings] = None) -> bool:
    """Mount the proxy routes when a gateway key is configured."""
    s = settings or get_settings()
    if not s.GATEWAY_API_KEY:
        logger.debug("AI API proxy routes disabled (GATEWAY_API_KEY not set)")
        return False
    app.include_router(router, prefix=s.PROXY_ROUTE_PREFIX.rstrip("/"))
    logger.info(f"AI API proxy routes mounted at {s.PROXY_ROUTE_PREFIX}")
    return True
