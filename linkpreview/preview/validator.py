"""SSRF guard: only URLs whose host resolves to public addresses may be fetched.

The check is point-in-time.  A hostname can resolve differently when the
fetcher connects (DNS rebinding); that residual risk is accepted.
"""

from __future__ import annotations

import asyncio
import ipaddress
import socket
from typing import Awaitable, Callable, Iterable
from urllib.parse import urlsplit, urlunsplit

from linkpreview.logger import get_logger
from linkpreview.preview.errors import UnsafeUrl

logger = get_logger(__name__)

Resolver = Callable[[str], Awaitable[list[str]]]

UNSAFE_URL_MESSAGE = "Invalid or unsafe URL."

_ALLOWED_SCHEMES = {"http", "https"}
_DEFAULT_PORTS = {"http": 80, "https": 443}

_BLOCKED_NETWORKS = [
    ipaddress.ip_network(cidr)
    for cidr in (
        "0.0.0.0/8",
        "10.0.0.0/8",
        "127.0.0.0/8",
        "169.254.0.0/16",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "::/128",
        "::1/128",
        "fc00::/7",
        "fe80::/10",
    )
]


def is_blocked_address(address: str) -> bool:
    """Return ``True`` if *address* is private, loopback, link-local or unparsable."""
    try:
        ip = ipaddress.ip_address(address.split("%", 1)[0])
    except ValueError:
        return True
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return any(ip in net for net in _BLOCKED_NETWORKS if net.version == ip.version)


def canonicalize_url(raw_url: str) -> tuple[str, str]:
    """Return ``(canonical_url, hostname)`` for an absolute http(s) URL.

    Scheme and host are lower-cased, a default port is dropped and an empty
    path becomes ``/``.  Applying it to its own output is a no-op.

    Raises:
        ValueError: If *raw_url* is not an absolute http(s) URL.
    """
    parts = urlsplit(raw_url.strip())
    scheme = parts.scheme.lower()
    if scheme not in _ALLOWED_SCHEMES:
        raise ValueError(f"unsupported scheme {parts.scheme!r}")
    host = parts.hostname
    if not host:
        raise ValueError("missing hostname")
    port = parts.port  # raises ValueError when out of range

    netloc = f"[{host}]" if ":" in host else host
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        netloc = f"{netloc}:{port}"
    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    path = parts.path or "/"
    return urlunsplit((scheme, netloc, path, parts.query, parts.fragment)), host


async def resolve_host(host: str) -> list[str]:
    """Resolve *host* to every IPv4 and IPv6 address without blocking the loop."""
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, None, type=socket.SOCK_STREAM)
    return list(dict.fromkeys(info[4][0] for info in infos))


def _first_blocked(addresses: Iterable[str]) -> str | None:
    for address in addresses:
        if is_blocked_address(address):
            return address
    return None


async def check_host(host: str, resolver: Resolver | None = None) -> None:
    """Raise :class:`UnsafeUrl` unless *host* resolves only to public addresses."""
    resolve = resolver or resolve_host
    try:
        addresses = await resolve(host)
    except (OSError, UnicodeError) as exc:
        logger.warning("DNS lookup failed for %s: %s", host, exc)
        raise UnsafeUrl(UNSAFE_URL_MESSAGE) from exc

    if not addresses:
        logger.warning("DNS lookup for %s returned no addresses", host)
        raise UnsafeUrl(UNSAFE_URL_MESSAGE)

    blocked = _first_blocked(addresses)
    if blocked is not None:
        logger.warning("Blocked %s: resolves to %s (SSRF protection)", host, blocked)
        raise UnsafeUrl(UNSAFE_URL_MESSAGE)


async def validate_url(raw_url: str, resolver: Resolver | None = None) -> str:
    """Return the canonical form of *raw_url* if it is safe to fetch.

    Args:
        raw_url: Untrusted URL string from the caller.
        resolver: Async ``host -> [address, ...]`` callable.  Defaults to
            :func:`resolve_host`; tests inject a fake.

    Raises:
        UnsafeUrl: If the URL is malformed, does not resolve, or any of its
            addresses is in a blocked range.
    """
    try:
        canonical, host = canonicalize_url(raw_url)
    except ValueError as exc:
        logger.warning("Rejected malformed URL %r: %s", raw_url, exc)
        raise UnsafeUrl(UNSAFE_URL_MESSAGE) from exc

    await check_host(host, resolver)
    return canonical
