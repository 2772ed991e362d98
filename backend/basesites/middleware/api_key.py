"""
BaseSites Backend: Client API Key Middleware
============================================

What:  Rejects requests that do not carry the shared client key in the
       `x-api-key` header.
How:   Missing header → 401, wrong value → 403, both in the shared error
       envelope. The comparison is constant-time.

Exempt paths:
    /health, the OpenAPI docs, and /subscriptions/webhook (called by the
    billing provider, which cannot send our key). CORS preflight requests
    are let through so browsers can negotiate before sending the header.
"""

import hmac
import logging
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from basesites.config import settings
from basesites.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

EXEMPT_PATHS = {"/health", "/openapi.json", "/redoc", "/subscriptions/webhook"}
EXEMPT_PREFIXES = ("/docs",)


def is_exempt(path: str) -> bool:
    return path in EXEMPT_PATHS or path.startswith(EXEMPT_PREFIXES)


def _reject(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, message=message).model_dump(),
    )


class ApiKeyMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, api_key: Optional[str] = None):
        super().__init__(app)
        self.api_key = settings.api_key if api_key is None else api_key

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method == "OPTIONS" or is_exempt(request.url.path):
            return await call_next(request)

        provided = request.headers.get("x-api-key")
        if not provided:
            return _reject(401, "unauthorized", "API key required. Include x-api-key header.")

        if not self.api_key or not hmac.compare_digest(provided.encode(), self.api_key.encode()):
            client_ip = request.client.host if request.client else "unknown"
            logger.warning("Invalid API key from %s on %s", client_ip, request.url.path)
            return _reject(403, "forbidden", "Invalid API key")

        return await call_next(request)
