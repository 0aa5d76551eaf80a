"""Middleware registration."""

from fastapi import FastAPI

from codeclub.config import Settings
from codeclub.middleware.cors import setup_cors
from codeclub.middleware.error_handler import setup_error_handlers
from codeclub.middleware.logging import setup_logging
from codeclub.middleware.rate_limit import RateLimitMiddleware
from codeclub.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Install logging, error handlers and the middleware stack.

    Starlette runs middleware outermost-last, so CORS is added after the
    rate limiter to decorate its 429 responses too.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
