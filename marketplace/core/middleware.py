"""Request id and access logging middleware, plus CORS setup."""

import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from marketplace.core.config import settings

logger = logging.getLogger("marketplace")

REQUEST_ID_HEADER = "X-Request-Id"


def principal_label(request: Request) -> str:
    """``<type>:<id>`` of the principal the gates attached, or ``anonymous``."""
    current = getattr(request.state, "principal", None)
    if current is None:
        return "anonymous"
    # Read from the verified claims; the ORM row may be detached by now.
    return f"{current.principal_type.value}:{current.claims.principal_id}"


def access_outcome(request: Request, status_code: int) -> str:
    denied = getattr(request.state, "access_denied", None)
    if denied:
        return f"denied ({denied})"
    if status_code == 401:
        return "unauthenticated"
    if getattr(request.state, "principal", None) is None:
        return "public"
    return "granted"


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Logs one line per request naming the caller and the gate outcome.

    The request id is taken from the incoming header when present and echoed
    back on the response.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        response = await call_next(request)

        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.log(
            logging.WARNING if response.status_code >= 500 else logging.INFO,
            "%s %s %s principal=%s access=%s request_id=%s %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            principal_label(request),
            access_outcome(request, response.status_code),
            request_id,
            elapsed_ms,
        )
        return response


def setup_middleware(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(AccessLogMiddleware)
