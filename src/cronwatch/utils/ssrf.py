"""
SSRF protection for outbound webhook URLs.

Resolves hostnames and rejects private, loopback, link-local, metadata
and otherwise non-global addresses before any request is made.
"""
from __future__ import annotations

import asyncio
import ipaddress
import socket
from urllib.parse import urlsplit

import structlog

from cronwatch.utils.exceptions import UnsafeURLError

logger = structlog.get_logger(__name__)

ALLOWED_SCHEMES = ("http", "https")

BLOCKED_HOSTNAMES = frozenset(
    {
        "localhost",
        "metadata.google.internal",
        "instance-data",
    }
)

# Not all of these are flagged by ipaddress.is_private on every Python version.
EXTRA_BLOCKED_NETWORKS = (
    ipaddress.ip_network("100.64.0.0/10"),  # CGNAT
    ipaddress.ip_network("198.18.0.0/15"),  # Benchmarking
    ipaddress.ip_network("169.254.0.0/16"),  # Link-local / cloud metadata
)


def is_blocked_address(address: str) -> bool:
    """Return True if the IP address is not safe to send requests to."""
    ip = ipaddress.ip_address(address.split("%", 1)[0])

    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped

    if (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_multicast
        or ip.is_reserved
        or ip.is_unspecified
        or not ip.is_global
    ):
        return True

    if isinstance(ip, ipaddress.IPv4Address):
        return any(ip in network for network in EXTRA_BLOCKED_NETWORKS)
    return False


async def resolve_host(hostname: str, port: int | None = None) -> list[str]:
    """Resolve a hostname to the list of IP addresses it maps to."""
    loop = asyncio.get_event_loop()
    infos = await loop.getaddrinfo(hostname, port, type=socket.SOCK_STREAM)
    return sorted({info[4][0] for info in infos})


async def validate_url_not_internal(url: str) -> None:
    """
    Validate that a URL is safe to fetch.

    Args:
        url: Candidate webhook URL

    Raises:
        UnsafeURLError: If the scheme is not http(s) or the host is, or
            resolves to, an internal address
    """
    parts = urlsplit(url)
    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        raise UnsafeURLError(url, "Only http and https URLs are supported")

    hostname = (parts.hostname or "").rstrip(".").lower()
    if not hostname:
        raise UnsafeURLError(url, "URL has no host")

    if hostname in BLOCKED_HOSTNAMES:
        raise UnsafeURLError(url, f"Blocked: {hostname} is a reserved internal hostname")

    try:
        ipaddress.ip_address(hostname)
    except ValueError:
        pass
    else:
        if is_blocked_address(hostname):
            raise UnsafeURLError(
                url, f"Blocked: {hostname} is a private/internal IP address"
            )
        return

    try:
        addresses = await resolve_host(hostname, parts.port)
    except (OSError, UnicodeError, ValueError) as exc:
        logger.warning("ssrf_dns_resolution_failed", hostname=hostname, error=str(exc))
        raise UnsafeURLError(url, f"Blocked: {hostname} could not be resolved") from exc

    if not addresses:
        raise UnsafeURLError(url, f"Blocked: {hostname} could not be resolved")

    for address in addresses:
        if is_blocked_address(address):
            logger.warning(
                "ssrf_blocked_address",
                hostname=hostname,
                address=address,
            )
            raise UnsafeURLError(
                url, f"Blocked: {hostname} resolves to private IP {address}"
            )
