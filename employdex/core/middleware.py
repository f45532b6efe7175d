"""CORS and request-id/timing middleware."""

import re
import uuid
import time
import logging
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from employdex.core.config import settings
from employdex.core.security import decode_claims

logger = logging.getLogger("employdex.http")

# Caller-supplied ids end up in logs and response headers.
REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")
QUIET_PATHS = {"/api/health"}


def resolve_request_id(incoming: Optional[str]) -> str:
    """Reuse a well-formed upstream id, otherwise mint one."""
    if incoming and REQUEST_ID_PATTERN.match(incoming):
        return incoming
    return str(uuid.uuid4())


def actor_id(request: Request) -> Optional[int]:
    """User id from the bearer token, for the access log only."""
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    claims = decode_claims(auth[len("Bearer "):])
    return claims.id if claims else None


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Stamp every response with a request id and its duration, and log the call."""

    async def dispatch(self, request: Request, call_next):
        request_id = resolve_request_id(request.headers.get("X-Request-Id"))
        request.state.request_id = request_id
        start_time = time.perf_counter()

        response: Response = await call_next(request)

        duration = round((time.perf_counter() - start_time) * 1000, 2)
        response.headers["X-Request-Id"] = request_id
        response.headers["X-Response-Time-Ms"] = str(duration)

        if response.status_code >= 500:
            level = logging.WARNING
        elif request.url.path in QUIET_PATHS:
            level = logging.DEBUG
        else:
            level = logging.INFO
        logger.log(
            level,
            "%s %s %s %sms user=%s [%s]",
            request.method,
            request.url.path,
            response.status_code,
            duration,
            actor_id(request),
            request_id,
        )
        return response


def setup_middleware(app: FastAPI) -> None:
    """Install CORS and request-id middleware on the app."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
        expose_headers=["X-Request-Id", "X-Response-Time-Ms"],
    )
    app.add_middleware(RequestIdMiddleware)
