"""HTTP fetcher with a size cap, an HTML-only gate and redirect re-validation."""

from __future__ import annotations

import asyncio

import httpx

from linkpreview.config import settings
from linkpreview.logger import get_logger
from linkpreview.preview.errors import FetchFailed, TooLarge, WrongContentType
from linkpreview.preview.models import FetchedDocument
from linkpreview.preview.validator import Resolver, check_host

logger = get_logger(__name__)

_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"

_HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")


def _default_headers() -> dict[str, str]:
    return {
        "User-Agent": settings.user_agent,
        "Accept": _ACCEPT,
        "Accept-Language": settings.accept_language,
    }


def is_html(content_type: str) -> bool:
    """Return ``True`` if a ``Content-Type`` header value denotes an HTML page."""
    lowered = content_type.lower()
    return any(kind in lowered for kind in _HTML_CONTENT_TYPES)


def _too_large() -> TooLarge:
    return TooLarge(f"HTML exceeds max size ({settings.max_body_bytes} bytes)")


def _redirect_guard(resolver: Resolver | None):
    """Build a request hook that re-runs the SSRF check on every redirect hop.

    The first request is skipped: its URL was validated before the fetch.
    """
    seen_first = False

    async def guard(request: httpx.Request) -> None:
        nonlocal seen_first
        if not seen_first:
            seen_first = True
            return
        logger.debug("Re-validating redirect target %s", request.url)
        await check_host(request.url.host, resolver)

    return guard


async def _read_capped(response: httpx.Response, limit: int) -> bytes:
    """Read the streamed body, aborting as soon as it grows past *limit* bytes."""
    declared = response.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise _too_large()

    body = bytearray()
    async for chunk in response.aiter_bytes():
        body.extend(chunk)
        if len(body) > limit:
            raise _too_large()
    return bytes(body)


async def _exchange(client: httpx.AsyncClient, url: str) -> FetchedDocument:
    async with client.stream("GET", url) as response:
        if not response.is_success:
            raise FetchFailed(f"Request failed with status code {response.status_code}")

        content_type = response.headers.get("content-type", "")
        if not is_html(content_type):
            raise WrongContentType("URL did not return HTML")

        body = await _read_capped(response, settings.max_body_bytes)
        return FetchedDocument(
            final_url=str(response.url),
            content_type=content_type,
            byte_length=len(body),
            body=body,
            encoding=response.charset_encoding or "utf-8",
        )


async def fetch_page(url: str, resolver: Resolver | None = None) -> FetchedDocument:
    """GET *url* and return its HTML body as a :class:`FetchedDocument`.

    The whole exchange (connect, redirects and body read) shares one
    ``settings.request_timeout`` budget.  Redirects are followed up to
    ``settings.max_redirects`` hops; with ``settings.validate_redirects`` on,
    each hop must pass the same SSRF check as the original URL.

    Raises:
        FetchFailed: Network/DNS error, timeout, non-2xx status or too many
            redirects.
        WrongContentType: The response is not HTML.  The body is not read.
        TooLarge: The body exceeds ``settings.max_body_bytes``.
        UnsafeUrl: A redirect hop points at a blocked address.
    """
    event_hooks = {}
    if settings.validate_redirects:
        event_hooks["request"] = [_redirect_guard(resolver)]

    timeout_message = f"timeout of {int(settings.request_timeout * 1000)}ms exceeded"

    async with httpx.AsyncClient(
        headers=_default_headers(),
        timeout=httpx.Timeout(settings.request_timeout),
        follow_redirects=True,
        max_redirects=settings.max_redirects,
        event_hooks=event_hooks,
    ) as client:
        try:
            return await asyncio.wait_for(
                _exchange(client, url), timeout=settings.request_timeout
            )
        except asyncio.TimeoutError as exc:
            raise FetchFailed(timeout_message) from exc
        except httpx.TooManyRedirects as exc:
            raise FetchFailed("Maximum number of redirects exceeded") from exc
        except httpx.TimeoutException as exc:
            raise FetchFailed(timeout_message) from exc
        except httpx.HTTPError as exc:
            raise FetchFailed(str(exc) or type(exc).__name__) from exc
