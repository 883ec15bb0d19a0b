"""FastAPI application factory.

Routers
-------
    /preview   — link preview extraction (rate limited per client address)
    /health    — liveness probe

State
-----
``app.state.rate_limiter`` holds the :class:`~linkpreview.ratelimit.RateLimiter`
used by the preview router; pass a different one to :func:`create_app` to
share quotas across processes.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from linkpreview.api.routers import preview as preview_router
from linkpreview.config import settings
from linkpreview.ratelimit import InMemoryRateLimiter, RateLimiter


def create_app(rate_limiter: RateLimiter | None = None) -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="Link Preview API",
        description=(
            "Fetches a public web page and returns its preview metadata: "
            "title, image, price, currency and site name."
        ),
        version="1.0.0",
    )

    app.state.rate_limiter = rate_limiter or InMemoryRateLimiter(
        points=settings.rate_limit_points,
        window=settings.rate_limit_window,
    )

    # Only the local frontends may call the API from a browser.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        allow_credentials=True,
    )

    app.include_router(preview_router.router, prefix="/preview", tags=["preview"])

    @app.get("/health", tags=["system"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return app


# Module-level instance used by uvicorn:
#   uvicorn linkpreview.api.app:app --reload
app = create_app()
