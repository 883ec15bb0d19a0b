"""Error taxonomy for the preview pipeline.

Every error is terminal for the request.  ``status_code`` is the HTTP status
the API answers with; the message is what the caller sees.
"""

from __future__ import annotations


class PreviewError(Exception):
    """Base error for anything that stops a preview from being built."""

    status_code = 400


class InvalidInput(PreviewError):
    """The request did not carry a usable URL."""


class UnsafeUrl(PreviewError):
    """The URL is malformed or resolves to a blocked address."""


class RateLimited(PreviewError):
    """The caller exhausted its request quota."""

    status_code = 429


class WrongContentType(PreviewError):
    """The target answered with something other than HTML."""


class TooLarge(PreviewError):
    """The response body exceeds the configured size cap."""


class FetchFailed(PreviewError):
    """Network, DNS, timeout, status or redirect-limit failure."""
