"""Middleware registration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from validatex.config import Settings
from validatex.middleware.error_handler import setup_error_handlers
from validatex.middleware.logging import setup_logging
from validatex.middleware.rate_limit import RateLimitMiddleware
from validatex.middleware.request_id import RequestIdMiddleware

# Headers the web client reads back: request correlation and remaining quota.
EXPOSED_HEADERS = ["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit"]


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Install logging, error handlers and the middleware stack.

    Starlette runs middleware in reverse-add order, so the stack is, from the
    outside in: CORS, request id, rate limit. CORS therefore also decorates
    429 responses, and throttled requests still get a request id.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
        expose_headers=EXPOSED_HEADERS,
    )
