"""Data models for the preview pipeline."""

from __future__ import annotations

import codecs
from dataclasses import dataclass
from typing import Any

from bs4 import BeautifulSoup


@dataclass(frozen=True)
class FetchedDocument:
    """The HTML body of a fetch that passed the content-type and size checks."""

    final_url: str
    content_type: str
    byte_length: int
    body: bytes
    encoding: str = "utf-8"

    def text(self) -> str:
        """Decode the body with the declared charset, falling back to UTF-8."""
        try:
            codecs.lookup(self.encoding)
        except LookupError:
            return self.body.decode("utf-8", errors="replace")
        return self.body.decode(self.encoding, errors="replace")


@dataclass(frozen=True)
class ParsedPage:
    """A parsed DOM together with the decoded text it was built from."""

    soup: BeautifulSoup
    html: str


@dataclass(frozen=True)
class PreviewDraft:
    """Partial preview threaded through the extraction stages.

    ``price`` stays a raw string until post-processing.
    """

    title: str | None = None
    image: str | None = None
    price: str | None = None
    currency: str | None = None


@dataclass(frozen=True)
class PreviewResult:
    """Normalised link preview returned to callers."""

    title: str | None
    image: str | None
    price: float | None
    currency: str | None
    site_name: str
    source_url: str

    def to_dict(self) -> dict[str, Any]:
        """Serialise with the camelCase keys used on the wire."""
        return {
            "title": self.title,
            "image": self.image,
            "price": self.price,
            "currency": self.currency,
            "siteName": self.site_name,
            "sourceUrl": self.source_url,
        }
