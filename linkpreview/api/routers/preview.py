"""Preview endpoint.

Routes
------
POST /preview    Body: {"url": "https://..."}    → build_preview

Errors are returned as ``{"error": "<message>"}``: 429 when the caller's
quota is spent, 400 for everything else.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from linkpreview.config import settings
from linkpreview.logger import get_logger
from linkpreview.preview.errors import InvalidInput, PreviewError, RateLimited
from linkpreview.preview.service import build_preview

logger = get_logger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class PreviewRequest(BaseModel):
    url: Optional[str] = None


class PreviewResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    image: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    site_name: str = Field(alias="siteName")
    source_url: str = Field(alias="sourceUrl")


class ErrorResponse(BaseModel):
    error: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _client_identity(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _error_response(exc: PreviewError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


async def _read_url(request: Request) -> str:
    """Pull ``url`` out of the raw JSON body.

    Called after the quota check; an empty body counts as a missing ``url``.

    Raises:
        InvalidInput: The body is not JSON, or ``url`` is missing, empty or
            not a string.
    """
    raw = await request.body()
    if not raw.strip():
        raise InvalidInput("url is required")
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise InvalidInput("Request body must be valid JSON") from exc

    url = payload.get("url") if isinstance(payload, dict) else None
    if url is None or url == "":
        raise InvalidInput("url is required")
    if not isinstance(url, str):
        raise InvalidInput("url must be a string")
    return url


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=PreviewResponse,
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": PreviewRequest.model_json_schema()}},
        }
    },
)
async def preview_endpoint(request: Request) -> Any:
    """Fetch the page at the body's ``url`` and return its preview metadata."""
    identity = _client_identity(request)
    if not request.app.state.rate_limiter.consume(identity):
        logger.warning("Rate limit exceeded for %s", identity)
        return _error_response(RateLimited(settings.rate_limit_message))

    try:
        url = await _read_url(request)
    except InvalidInput as exc:
        return _error_response(exc)

    try:
        result = await build_preview(url)
    except PreviewError as exc:
        logger.warning("Error fetching preview for %r: %s", url, exc)
        return _error_response(exc)

    return result.to_dict()
