"""
Scan target validation.

URL normalization is always applied. The private-address guard is opt-in
(BLOCK_PRIVATE_TARGETS) since the scanner historically accepts any host.
"""
import os
import re
import socket
import ipaddress
from typing import List
from urllib.parse import urlparse

SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)

INTERNAL_HOSTNAMES = {"localhost", "ip6-localhost", "ip6-loopback"}
INTERNAL_SUFFIXES = (".local", ".internal", ".localhost")


class InvalidTargetError(ValueError):
    """The submitted URL cannot be scanned."""


def normalize_url(raw_url: str) -> str:
    """
    Force an https scheme onto scheme-less input and check for a hostname.

    >>> normalize_url("example.com")
    'https://example.com'
    """
    url = (raw_url or "").strip()
    if not url:
        raise InvalidTargetError("URL is required")

    if not SCHEME_PATTERN.match(url):
        url = f"https://{url}"

    try:
        hostname = urlparse(url).hostname
    except ValueError:
        hostname = None
    if not hostname:
        raise InvalidTargetError(f"Invalid URL: {raw_url}")

    return url


def private_targets_blocked() -> bool:
    return os.getenv("BLOCK_PRIVATE_TARGETS", "false").lower() == "true"


def _is_public_ip(ip: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    """Returns True if IP is public, False if private/reserved/loopback."""
    return not (
        ip.is_private or
        ip.is_loopback or
        ip.is_reserved or
        ip.is_link_local or
        ip.is_multicast
    )


def _resolve(hostname: str) -> List[str]:
    return [info[4][0] for info in socket.getaddrinfo(hostname, None)]


def is_safe_target(url: str) -> bool:
    """
    True if every address the URL's host resolves to is public.
    Unresolvable hosts fail closed.
    """
    hostname = (urlparse(url).hostname or "").lower()
    if not hostname:
        return False

    if hostname in INTERNAL_HOSTNAMES or hostname.endswith(INTERNAL_SUFFIXES):
        return False

    try:
        return _is_public_ip(ipaddress.ip_address(hostname))
    except ValueError:
        pass  # Not a literal IP

    try:
        addresses = _resolve(hostname)
    except (socket.error, UnicodeError):
        return False

    for address in addresses:
        try:
            ip = ipaddress.ip_address(address.split("%")[0])
        except ValueError:
            continue
        if not _is_public_ip(ip):
            return False

    return bool(addresses)
