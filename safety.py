"""SSRF checks and the recipe-site allowlist.

Both checks look only at the URL itself. Numeric hosts are read as addresses,
but names are never resolved, so a public name pointing at a private address
is not caught here; the allowlist is the second line of defense for that case.
"""

import ipaddress
import logging
import re
import socket
from urllib.parse import urlparse

from config import DEFAULT_ALLOWED_DOMAINS

logger = logging.getLogger(__name__)

BLOCKED_HOSTS = {"localhost", "0.0.0.0", "::1", "[::1]"}
METADATA_HOSTS = {"metadata.google.internal", "metadata.google.com"}

PRIVATE_IPV4_NETWORKS = [
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("0.0.0.0/8"),
]

# Hosts made only of these characters may be a numeric IPv4 address
_NUMERIC_HOST_RE = re.compile(r"^[0-9a-fx.]+$")


def _parse(url: str):
    """Parses a URL, returning None if it has no usable scheme and hostname."""
    if not isinstance(url, str):
        return None
    try:
        parsed = urlparse(url.strip())
        # Accessing .port validates it and raises ValueError when out of range
        parsed.port
    except ValueError:
        return None
    if not parsed.scheme or not parsed.hostname:
        return None
    return parsed


def _host_address(hostname: str):
    """
    Reads a hostname as an IP address the way browsers and resolvers do.

    Besides dotted quads this accepts shorthand ("127.1"), whole-number
    ("2130706433"), hex and octal IPv4 forms, and any IPv6 spelling.
    Returns None for an ordinary domain name.
    """
    hostname = hostname.strip("[]").rstrip(".")
    if ":" in hostname:
        try:
            return ipaddress.ip_address(hostname)
        except ValueError:
            return None

    if not _NUMERIC_HOST_RE.match(hostname):
        return None
    try:
        return ipaddress.IPv4Address(socket.inet_aton(hostname))
    except OSError:
        return None


def _is_private_address(address) -> bool:
    if isinstance(address, ipaddress.IPv6Address):
        if address.ipv4_mapped is not None:
            return _is_private_address(address.ipv4_mapped)
        return address.is_loopback or address.is_unspecified or address.is_link_local
    return any(address in network for network in PRIVATE_IPV4_NETWORKS)


def is_url_safe(url: str) -> bool:
    """Returns True if the URL may be fetched at all."""
    parsed = _parse(url)
    if parsed is None:
        logger.warning(f"Unparseable URL blocked: {url!r}")
        return False

    # Only allow https
    if parsed.scheme.lower() != "https":
        logger.warning(f"Invalid URL scheme: {parsed.scheme}")
        return False

    # Block credentials in URL
    if parsed.username or parsed.password:
        logger.warning("URL with embedded credentials blocked")
        return False

    hostname = parsed.hostname.lower()

    if hostname in BLOCKED_HOSTS:
        logger.warning(f"Blocked hostname: {hostname}")
        return False

    address = _host_address(hostname)
    if address is not None and _is_private_address(address):
        logger.warning(f"Private/reserved IP blocked: {hostname} ({address})")
        return False

    if hostname in METADATA_HOSTS:
        logger.warning(f"Cloud metadata host blocked: {hostname}")
        return False

    return True


def is_domain_allowed(url: str, allowed_domains=None) -> bool:
    """
    Checks the URL's host against the recipe-site allowlist.

    A single leading "www." is ignored. Matching is exact, so subdomains of an
    allowed site are rejected.
    """
    parsed = _parse(url)
    if parsed is None:
        return False

    if allowed_domains is None:
        allowed_domains = DEFAULT_ALLOWED_DOMAINS

    hostname = parsed.hostname.lower()
    if hostname.startswith("www."):
        hostname = hostname[4:]

    if hostname not in allowed_domains:
        logger.warning(f"Domain not on allowlist: {hostname}")
        return False
    return True
