"""Preview package — SSRF validation, page fetch & metadata extraction."""

from linkpreview.preview.errors import (
    FetchFailed,
    InvalidInput,
    PreviewError,
    RateLimited,
    TooLarge,
    UnsafeUrl,
    WrongContentType,
)
from linkpreview.preview.extractor import extract_preview
from linkpreview.preview.fetcher import fetch_page
from linkpreview.preview.models import FetchedDocument, ParsedPage, PreviewResult
from linkpreview.preview.service import build_preview, parse_document
from linkpreview.preview.validator import validate_url

__all__ = [
    "build_preview",
    "parse_document",
    "validate_url",
    "fetch_page",
    "extract_preview",
    "FetchedDocument",
    "ParsedPage",
    "PreviewResult",
    "PreviewError",
    "InvalidInput",
    "UnsafeUrl",
    "RateLimited",
    "WrongContentType",
    "TooLarge",
    "FetchFailed",
]
