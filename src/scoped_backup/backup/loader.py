"""Archive source loading.

``DIRECT`` sources pass their bytes through.  ``OSS_URL`` sources are
fetched with ``httpx`` under three guards:

- every URL, including each redirect target, must be a public HTTP(S)
  host (private, loopback, link-local and reserved addresses rejected)
- at most ``max_redirects`` hops are followed
- the body is read through a byte ceiling and the fetch aborts as soon
  as it is exceeded

Usage:
    from scoped_backup.backup.loader import load_backup_source

    loaded = await load_backup_source(OssUrlSource(url="https://cdn.example.com/a.json"))
    print(loaded.size_bytes)
"""

import asyncio
import ipaddress
import logging
import socket
from collections.abc import Awaitable, Callable

import httpx

from scoped_backup.backup.constants import OSS_IMPORT_LIMIT_BYTES
from scoped_backup.backup.errors import (
    SizeLimitExceededError,
    SourceFetchError,
    UnsafeSourceUrlError,
)
from scoped_backup.backup.models import DirectSource, LoadedSource, OssUrlSource

logger = logging.getLogger(__name__)

Resolver = Callable[[str, int], Awaitable[list[str]]]


# ----------------------------------------------------------------------------
# Public URL validation
# ----------------------------------------------------------------------------


async def _resolve_host(host: str, port: int) -> list[str]:
    """Resolve ``host`` to its IP addresses with the event loop resolver."""
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    return [info[4][0] for info in infos]


def _is_public_address(address: str) -> bool:
    ip = ipaddress.ip_address(address.split("%", 1)[0])
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return ip.is_global and not ip.is_multicast


async def assert_public_http_url(
    url: str | httpx.URL, resolver: Resolver | None = None
) -> httpx.URL:
    """Validate that ``url`` points at a public HTTP(S) host.

    IP-literal hosts are checked directly; names are resolved and every
    resolved address must be public.

    Returns:
        The parsed URL.

    Raises:
        UnsafeSourceUrlError: If the URL is malformed, not HTTP(S), or
            resolves to a non-public address.
    """
    try:
        parsed = httpx.URL(str(url))
    except httpx.InvalidURL as e:
        raise UnsafeSourceUrlError(f"Invalid source URL: {url}") from e

    if parsed.scheme not in ("http", "https"):
        raise UnsafeSourceUrlError("Source URL must use http or https")
    host = parsed.host
    if not host:
        raise UnsafeSourceUrlError("Source URL has no host")
    if host == "localhost" or host.endswith(".localhost"):
        raise UnsafeSourceUrlError(f"Source URL host is not public: {host}")

    try:
        addresses = [str(ipaddress.ip_address(host))]
    except ValueError:
        port = parsed.port or (443 if parsed.scheme == "https" else 80)
        try:
            addresses = await (resolver or _resolve_host)(host, port)
        except (OSError, socket.gaierror) as e:
            raise UnsafeSourceUrlError(f"Cannot resolve source host: {host}") from e

    if not addresses:
        raise UnsafeSourceUrlError(f"Cannot resolve source host: {host}")
    for address in addresses:
        if not _is_public_address(address):
            raise UnsafeSourceUrlError(f"Source URL host is not public: {host}")

    return parsed


# ----------------------------------------------------------------------------
# Size-limited body reading
# ----------------------------------------------------------------------------


async def read_body_with_limit(response: httpx.Response, limit_bytes: int) -> bytes:
    """Read a streamed response body, aborting once ``limit_bytes`` is exceeded.

    Raises:
        SizeLimitExceededError: If the declared or received size exceeds
            the limit.
    """
    declared = response.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit_bytes:
        raise SizeLimitExceededError(limit_bytes)

    chunks: list[bytes] = []
    received = 0
    async for chunk in response.aiter_bytes():
        received += len(chunk)
        if received > limit_bytes:
            raise SizeLimitExceededError(limit_bytes)
        chunks.append(chunk)
    return b"".join(chunks)


# ----------------------------------------------------------------------------
# Loader
# ----------------------------------------------------------------------------


async def load_backup_source(
    source: DirectSource | OssUrlSource,
    *,
    limit_bytes: int = OSS_IMPORT_LIMIT_BYTES,
    timeout: float = 30.0,
    max_redirects: int = 5,
    client: httpx.AsyncClient | None = None,
    resolver: Resolver | None = None,
) -> LoadedSource:
    """Retrieve the bytes of a backup source.

    Args:
        source: ``DirectSource`` or ``OssUrlSource``.
        limit_bytes: Ceiling for remote bodies.
        timeout: Per-request timeout in seconds (connect and read).
        max_redirects: Redirect hops to follow before giving up.
        client: Optional ``httpx.AsyncClient`` (redirect following is
            handled here, not by the client).
        resolver: Optional async ``(host, port) -> [address]`` resolver.

    Raises:
        UnsafeSourceUrlError: If any hop is not a public HTTP(S) URL.
        SourceFetchError: On non-2xx status, too many redirects, timeout
            or transport failure.
        SizeLimitExceededError: If the body exceeds ``limit_bytes``.
    """
    if isinstance(source, DirectSource):
        content = source.content
        raw = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        return LoadedSource(content=raw, size_bytes=len(raw), source_type="DIRECT")

    url = await assert_public_http_url(source.url, resolver)
    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=timeout)

    try:
        for _ in range(max_redirects + 1):
            async with http.stream("GET", url, follow_redirects=False) as response:
                if response.is_redirect:
                    location = response.headers.get("location")
                    if not location:
                        raise SourceFetchError(
                            f"Redirect without location (HTTP {response.status_code})"
                        )
                    url = await assert_public_http_url(url.join(location), resolver)
                    logger.debug("Following redirect to %s", url.host)
                    continue

                if not response.is_success:
                    raise SourceFetchError(
                        f"Failed to download backup file (HTTP {response.status_code})"
                    )

                body = await read_body_with_limit(response, limit_bytes)
                logger.info("Fetched backup source from %s (%d bytes)", url.host, len(body))
                return LoadedSource(
                    content=body, size_bytes=len(body), source_type="OSS_URL"
                )

        raise SourceFetchError(f"Too many redirects (more than {max_redirects})")
    except httpx.TimeoutException as e:
        raise SourceFetchError("Timed out downloading backup file") from e
    except httpx.HTTPError as e:
        raise SourceFetchError(f"Failed to download backup file: {e}") from e
    finally:
        if owns_client:
            await http.aclose()
