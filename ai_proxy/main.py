"""FastAPI entrypoint for the AI API proxy gateway"""

from contextlib import asynccontextmanager
import logging
import os
import sys
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from .config import APP_VERSION, Settings, get_settings
from .credentials import CredentialStore
from .routes_proxy import include_proxy_routes

# Configure logging
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)


def _truncate(body: bytes, max_len: int) -> str:
    preview = body.decode("utf-8", errors="replace")
    if len(preview) > max_len:
        preview = preview[:max_len] + "...(truncated)"
    return preview


@asynccontextmanager
async def lifespan(app: FastAPI):
    # on startup
    settings: Settings = app.state.settings
    logger.info(f"Starting AI API proxy (provider={settings.AI_API_PROVIDER.value})")

    notice = CredentialStore(settings).missing_credential_notice()
    if notice:
        logger.warning(notice)

    # app.state.upstream_client is created lazily in routes
    yield
    # on shutdown
    logger.info("Shutting down AI API proxy")
    client = getattr(app.state, "upstream_client", None)
    if client:
        try:
            await client.close()
            logger.info("HTTP client closed successfully")
        except Exception as e:
            logger.error(f"Error closing HTTP client: {e}")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="AI API Proxy",
        version=APP_VERSION,
        description="OpenAI-compatible gateway in front of OpenAI and Anthropic",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Optional CORS for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=False,
    )

    proxy_prefix = settings.PROXY_ROUTE_PREFIX.rstrip("/")

    # Log proxied requests; bodies and headers only at DEBUG
    @app.middleware("http")
    async def log_request_response_middleware(request: Request, call_next):
        if not request.url.path.startswith(proxy_prefix):
            return await call_next(request)

        if logger.isEnabledFor(logging.DEBUG):
            body = await request.body()
            headers = {k.lower(): v for k, v in request.headers.items()}
            if "authorization" in headers:
                token = headers["authorization"] or ""
                parts = token.split()
                headers["authorization"] = (parts[0] + " ****") if len(parts) > 1 else "****"
            if "cookie" in headers:
                headers["cookie"] = "<redacted>"
            logger.debug(
                "Incoming %s %s - headers=%s body=%s",
                request.method,
                request.url.path,
                headers,
                _truncate(body, settings.LOG_REQUEST_BODY_MAX_LENGTH),
            )

            response = await call_next(request)

            response_body = b""
            async for chunk in response.body_iterator:
                response_body += chunk
            logger.debug(
                "Response for %s %s - status=%s body=%s",
                request.method,
                request.url.path,
                response.status_code,
                _truncate(response_body, settings.LOG_REQUEST_BODY_MAX_LENGTH),
            )
            # Recreate response with body
            return Response(
                content=response_body,
                status_code=response.status_code,
                headers=dict(response.headers),
                media_type=response.media_type,
            )

        logger.info("Incoming %s %s", request.method, request.url.path)
        response = await call_next(request)
        logger.info("Response for %s %s - status=%s", request.method, request.url.path, response.status_code)
        return response

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    include_proxy_routes(app, settings)
    return app


app = create_app()


def main():
    """Entry point for the application"""
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
