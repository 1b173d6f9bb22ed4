import logging
import traceback
from typing import Optional

from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ProxyError(Exception):
    """Base error surfaced to callers as a structured JSON envelope."""

    status_code: int = 500
    error_type: str = "proxy_error"

    def __init__(self, message: str, status_code: Optional[int] = None, error_type: Optional[str] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_type is not None:
            self.error_type = error_type
        super().__init__(self.message)


class Unauthorized(ProxyError):
    """Caller did not present valid gateway credentials."""
    status_code = 401
    error_type = "rest_forbidden"


class InvalidRequestBody(ProxyError):
    status_code = 400
    error_type = "invalid_request_body"


class ModelListUnavailable(ProxyError):
    status_code = 500
    error_type = "model_list_failed"


class UpstreamConnectionFailed(ProxyError):
    """Transport-level failure reaching a vendor (connection error, timeout)."""
    status_code = 502
    error_type = "proxy_request_failed"


class ConfigurationError(ProxyError):
    status_code = 500
    error_type = "configuration_error"


def error_response(message: str, err_type: str, status_code: int, code: Optional[int] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "message": message,
                "type": err_type,
                "code": code if code is not None else status_code,
            }
        },
    )


def map_proxy_error(err: ProxyError) -> JSONResponse:
    """Map ProxyError to its HTTP response with logging."""
    # Expected failures (bad input, upstream down) are warnings, not errors
    logger.warning(
        f"Proxy error: {err.message} (status_code={err.status_code})",
        extra={"status_code": err.status_code, "error_type": type(err).__name__}
    )
    return error_response(err.message, err.error_type, err.status_code)


def map_generic_error(err: Exception) -> JSONResponse:
    """Map unexpected exceptions to 500 error with detailed logging."""
    logger.error(
        f"Unexpected error: {type(err).__name__}: {str(err)}",
        exc_info=True,
        extra={
            "error_type": type(err).__name__,
            "error_message": str(err),
            "traceback": traceback.format_exc(),
        }
    )

    # Avoid leaking internal details to client
    return error_response("Internal server error", "internal_error", 500)
