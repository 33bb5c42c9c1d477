"""aiohttp middlewares for the faucet API.

Order matters: request ids are bound first, CORS headers are applied to every
response including errors, metrics see the final status, and errors are
mapped to responses innermost.
"""

import logging
import time
import uuid
from collections.abc import Awaitable, Callable

from aiohttp import web

from drip.core.errors import FaucetError
from drip.observability.logging import clear_request_id, set_request_id
from drip.observability.metrics import REQUEST_DURATION, REQUESTS

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

REQUEST_ID_HEADER = "X-Request-ID"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
}

PREFLIGHT_HEADERS = {
    **CORS_HEADERS,
    "Access-Control-Allow-Methods": "GET, POST",
    "Access-Control-Allow-Headers": "Content-Type",
}


@web.middleware
async def request_id_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Bind a request id to the logging context for the request's lifetime."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    set_request_id(request_id)
    try:
        response = await handler(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
    finally:
        clear_request_id()


@web.middleware
async def cors_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Allow any origin, and answer preflight requests directly."""
    if request.method == "OPTIONS" and "Access-Control-Request-Method" in request.headers:
        return web.Response(headers=PREFLIGHT_HEADERS)

    response = await handler(request)
    response.headers.update(CORS_HEADERS)
    return response


@web.middleware
async def metrics_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Count requests and time them per route."""
    route = request.match_info.route.resource
    endpoint = route.canonical if route is not None else "unmatched"

    start = time.perf_counter()
    response = await handler(request)
    REQUEST_DURATION.labels(endpoint=endpoint).observe(time.perf_counter() - start)
    REQUESTS.labels(endpoint=endpoint, status=str(response.status)).inc()
    return response


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Map exceptions to responses.

    Faucet errors answer with their message as a plain-text body. Framework
    rejections and unexpected exceptions answer with JSON ``{code, message}``.
    """
    try:
        return await handler(request)
    except FaucetError as e:
        log = logger.warning if e.status < 500 else logger.error
        log(
            "Request failed",
            extra={
                "path": request.path,
                "status": e.status,
                "error": e.message,
                "error_type": type(e).__name__,
            },
        )
        return web.Response(text=e.message, status=e.status)
    except web.HTTPException as e:
        if e.status < 400:
            raise
        return web.json_response({"code": e.status, "message": e.reason}, status=e.status)
    except Exception:
        logger.exception("Unhandled error", extra={"path": request.path})
        return web.json_response(
            {"code": 500, "message": "internal server error"},
            status=500,
        )


MIDDLEWARES = [request_id_middleware, cors_middleware, metrics_middleware, error_middleware]
