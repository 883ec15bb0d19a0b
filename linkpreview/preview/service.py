"""Preview pipeline: validate → fetch → parse → extract.

``build_preview`` is the single entry point shared by the HTTP endpoint and
the CLI.  Errors from any step propagate as :class:`PreviewError` subclasses;
extraction itself never fails.
"""

from __future__ import annotations

from bs4 import BeautifulSoup

from linkpreview.logger import get_logger
from linkpreview.preview.extractor import extract_preview
from linkpreview.preview.fetcher import fetch_page
from linkpreview.preview.models import FetchedDocument, ParsedPage, PreviewResult
from linkpreview.preview.validator import Resolver, validate_url

logger = get_logger(__name__)


def parse_document(document: FetchedDocument) -> ParsedPage:
    """Decode and parse a fetched HTML document."""
    html = document.text()
    return ParsedPage(soup=BeautifulSoup(html, "html.parser"), html=html)


async def build_preview(raw_url: str, resolver: Resolver | None = None) -> PreviewResult:
    """Return the link preview for *raw_url*.

    Raises:
        UnsafeUrl: The URL is malformed or resolves to a blocked address.
        FetchFailed, WrongContentType, TooLarge: The fetch did not yield
            usable HTML.
    """
    url = await validate_url(raw_url, resolver)
    logger.info("Fetching preview for %s", url)

    document = await fetch_page(url, resolver)
    logger.debug(
        "Fetched %d bytes (%s) from %s",
        document.byte_length,
        document.content_type,
        document.final_url,
    )

    return extract_preview(parse_document(document), document.final_url)
