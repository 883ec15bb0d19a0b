"""Metadata extraction: turns a :class:`ParsedPage` into a :class:`PreviewResult`.

Extraction is a chain of stages, each a pure function
``(PreviewDraft, ParsedPage) -> PreviewDraft``.  Stages run from the most
portable source (Open Graph tags) to the most site-specific scraping, and a
stage never raises: malformed embedded JSON simply contributes nothing.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, replace
from functools import reduce
from typing import Any, Callable, Iterator
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup

from linkpreview.logger import get_logger
from linkpreview.preview.models import ParsedPage, PreviewDraft, PreviewResult

logger = get_logger(__name__)

Stage = Callable[[PreviewDraft, ParsedPage], PreviewDraft]

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------
_INLINE_PRICE = re.compile(r'"price"\s*:\s*"₹?([0-9,.]+)"', re.IGNORECASE)
_INLINE_IMAGES = re.compile(r'"images":\s*\[(\s*".*?")\]')
_NON_PRICE_CHARS = re.compile(r"[^0-9.]")
_FLOAT_PREFIX = re.compile(r"\s*([+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)")

_CURRENCY_SYMBOLS = {"₹": "INR", "$": "USD"}


# ---------------------------------------------------------------------------
# JSON parsing
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class JsonParse:
    """Outcome of parsing an embedded JSON snippet: a value or an error."""

    value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def parse_json(text: str) -> JsonParse:
    try:
        return JsonParse(value=json.loads(text))
    except (ValueError, RecursionError) as exc:
        return JsonParse(error=str(exc))


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _meta_content(soup: BeautifulSoup, key: str) -> str | None:
    """Return the ``content`` of ``<meta property=key>`` or ``<meta name=key>``."""
    for attr in ("property", "name"):
        tag = soup.find("meta", attrs={attr: key})
        if tag is not None:
            content = tag.get("content")
            if content:
                return content
    return None


def _first_text(soup: BeautifulSoup, selector: str) -> str:
    tag = soup.select_one(selector)
    return tag.get_text().strip() if tag is not None else ""


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _text_value(value: Any) -> str | None:
    """Coerce a JSON-LD scalar to a non-empty string (numbers included)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value) if value else None
    if isinstance(value, str) and value:
        return value
    return None


def _image_url(value: Any) -> str | None:
    value = _first(value)
    if isinstance(value, dict):
        value = value.get("url")
    return value if isinstance(value, str) and value else None


def _json_ld_objects(value: Any) -> Iterator[dict[str, Any]]:
    """Yield the top-level object(s) of a JSON-LD block and any ``@graph`` members."""
    items = value if isinstance(value, list) else [value]
    for item in items:
        if not isinstance(item, dict):
            continue
        yield item
        graph = item.get("@graph")
        if isinstance(graph, list):
            yield from (node for node in graph if isinstance(node, dict))


def _is_product(obj: dict[str, Any]) -> bool:
    kind = obj.get("@type")
    return kind == "Product" or (isinstance(kind, list) and "Product" in kind)


def _apply_product(draft: PreviewDraft, product: dict[str, Any]) -> PreviewDraft:
    name = product.get("name")
    title = name if isinstance(name, str) and name else draft.title
    image = _image_url(product.get("image")) or draft.image

    price, currency = draft.price, draft.currency
    offers = _first(product.get("offers"))
    if isinstance(offers, dict):
        price = _text_value(offers.get("price")) or price
        currency = _text_value(offers.get("priceCurrency")) or currency

    return replace(draft, title=title, image=image, price=price, currency=currency)


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

def meta_tags_stage(draft: PreviewDraft, page: ParsedPage) -> PreviewDraft:
    """Open Graph / Twitter Card title and image, then ``link[rel=image_src]``."""
    soup = page.soup
    title = (
        draft.title
        or _meta_content(soup, "og:title")
        or _meta_content(soup, "twitter:title")
    )
    image = draft.image or _meta_content(soup, "og:image") or _meta_content(soup, "twitter:image")
    if not image:
        link = soup.find("link", rel="image_src")
        image = (link.get("href") or None) if link is not None else None
    return replace(draft, title=title, image=image)


def document_title_stage(draft: PreviewDraft, page: ParsedPage) -> PreviewDraft:
    if draft.title:
        return draft
    tag = page.soup.find("title")
    return replace(draft, title=tag.get_text() if tag is not None else None)


def product_data_stage(draft: PreviewDraft, page: ParsedPage) -> PreviewDraft:
    """schema.org ``Product`` blocks override title and image and supply the offer.

    Later blocks win over earlier ones.
    """
    for script in page.soup.find_all("script", attrs={"type": "application/ld+json"}):
        parsed = parse_json(script.string or "{}")
        if not parsed.ok:
            logger.debug("Skipping malformed JSON-LD block: %s", parsed.error)
            continue
        for obj in _json_ld_objects(parsed.value):
            if _is_product(obj):
                draft = _apply_product(draft, obj)
    return draft


def inline_json_stage(draft: PreviewDraft, page: ParsedPage) -> PreviewDraft:
    """Scan the raw page for embedded ``"price"`` and ``"images"`` JSON fragments.

    A price found this way is assumed to be in rupees.
    """
    if draft.price and draft.image:
        return draft

    price, currency, image = draft.price, draft.currency, draft.image

    if not price:
        match = _INLINE_PRICE.search(page.html)
        if match:
            price = match.group(1).replace(",", "")
            currency = "INR"

    if not image:
        match = _INLINE_IMAGES.search(page.html)
        if match:
            parsed = parse_json(f"[{match.group(1)}]")
            if not parsed.ok:
                logger.debug("Skipping malformed inline images array: %s", parsed.error)
            elif parsed.value and isinstance(parsed.value[0], str):
                image = parsed.value[0]

    return replace(draft, price=price, currency=currency, image=image)


def dom_fallback_stage(draft: PreviewDraft, page: ParsedPage) -> PreviewDraft:
    """Storefront price and currency-symbol elements."""
    price, currency = draft.price, draft.currency

    if not price:
        whole = _first_text(page.soup, ".a-price-whole")
        price = _NON_PRICE_CHARS.sub("", whole) or None

    if not currency:
        symbol = _first_text(page.soup, ".a-price-symbol") or _first_text(
            page.soup, "span.priceSymbol"
        )
        if symbol:
            currency = _CURRENCY_SYMBOLS.get(symbol, symbol)

    return replace(draft, price=price, currency=currency)


STAGES: tuple[Stage, ...] = (
    meta_tags_stage,
    document_title_stage,
    product_data_stage,
    inline_json_stage,
    dom_fallback_stage,
)


# ---------------------------------------------------------------------------
# Post-processing
# ---------------------------------------------------------------------------

def parse_price(raw: str | None) -> float | None:
    """Parse the leading number of *raw* (``"1299."`` -> ``1299.0``)."""
    if not raw:
        return None
    match = _FLOAT_PREFIX.match(raw)
    if not match:
        return None
    value = float(match.group(1))
    return value if math.isfinite(value) else None


def resolve_image(image: str | None, base_url: str) -> str | None:
    if not image or not image.strip():
        return None
    try:
        return urljoin(base_url, image.strip())
    except ValueError:
        return None


def site_name(url: str) -> str:
    try:
        return urlsplit(url).hostname or ""
    except ValueError:
        return ""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_preview(page: ParsedPage, final_url: str) -> PreviewResult:
    """Build the best available preview for *page* served from *final_url*.

    Never raises; anything that cannot be found is ``None``.  ``site_name``
    is always the hostname of *final_url*.
    """
    draft = reduce(lambda acc, stage: stage(acc, page), STAGES, PreviewDraft())

    title = (draft.title or "").strip() or None
    return PreviewResult(
        title=title,
        image=resolve_image(draft.image, final_url),
        price=parse_price(draft.price),
        currency=draft.currency or None,
        site_name=site_name(final_url),
        source_url=final_url,
    )
