"""Request pipeline: validate, rate-limit, fetch, extract, sanitize, cache."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import requests

from cache import RecipeCache
from config import Config
from extractor import RecipeNotFoundError, extract_recipe
from rate_limiter import RateLimiter
from safety import is_domain_allowed, is_url_safe
from sanitizer import sanitize_recipe

logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

MSG_METHOD_NOT_ALLOWED = "Method not allowed"
MSG_RATE_LIMITED = "Too many requests. Please wait a minute before trying again."
MSG_URL_REQUIRED = "URL is required"
MSG_INVALID_URL = "Invalid URL. Please use an https:// link."
MSG_SITE_NOT_SUPPORTED = (
    "This recipe site is not supported yet. Try a major recipe site like "
    "RecipeTin Eats, BBC Good Food, or Allrecipes."
)
MSG_FETCH_FAILED = "Could not fetch recipe page"
MSG_PAGE_TOO_LARGE = "Page too large to process"
MSG_TIMEOUT = "Recipe page took too long to respond"
MSG_NOT_FOUND = "No recipe found on this page"
MSG_INTERNAL = "Failed to process recipe"

CACHE_HEADER = "X-Cache"
CHUNK_SIZE = 64 * 1024
UNKNOWN_CLIENT = "unknown"


# =============================================================================
# ERRORS
# =============================================================================

class GatewayError(Exception):
    """Terminal failure of a request, carrying the HTTP status to answer with."""
    status = 500

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status


class ClientError(GatewayError):
    status = 400


class MethodNotAllowedError(ClientError):
    status = 405


class RateLimitedError(GatewayError):
    status = 429


class UpstreamError(GatewayError):
    status = 502


class FetchTimeoutError(GatewayError):
    status = 504


class RecipeNotFound(GatewayError):
    status = 404


class InternalError(GatewayError):
    status = 500


# =============================================================================
# REQUEST / RESPONSE
# =============================================================================

@dataclass
class GatewayRequest:
    method: str
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    peer: str | None = None  # transport-level client address


@dataclass
class GatewayResponse:
    status: int
    body: dict | None = None
    headers: dict[str, str] = field(default_factory=dict)


def _header(headers: dict, name: str) -> str | None:
    name = name.lower()
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def client_id_from(headers: dict, peer: str | None = None) -> str:
    """
    Derives the rate-limit key for a request.

    Forwarding headers are trusted as sent, so a client can spoof them. This
    only matters for abuse throttling, never for access control.
    """
    forwarded = _header(headers, "x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = _header(headers, "x-real-ip")
    if real_ip:
        return real_ip

    return peer or UNKNOWN_CLIENT


def _decode(response, content: bytes) -> str:
    """Decodes a body with its declared charset, else UTF-8."""
    encoding = "utf-8"
    content_type = response.headers.get("Content-Type", "")
    if "charset" in content_type.lower() and response.encoding:
        encoding = response.encoding
    try:
        return content.decode(encoding, errors="replace")
    except LookupError:
        logger.debug(f"Unknown charset {encoding!r}, decoding as UTF-8")
        return content.decode("utf-8", errors="replace")


# =============================================================================
# GATEWAY
# =============================================================================

class RecipeGateway:
    """
    Turns a recipe page URL into a sanitized recipe.

    Holds the cache, rate limiter and HTTP session for the lifetime of the
    process. Safe to call handle() from several threads at once.
    """

    def __init__(
        self,
        config: Config | None = None,
        cache: RecipeCache | None = None,
        limiter: RateLimiter | None = None,
        session: requests.Session | None = None,
        clock=time.monotonic,
    ):
        self.config = config or Config()

        if cache is None:
            cache = RecipeCache(
                max_entries=self.config.cache.max_entries,
                ttl_seconds=self.config.cache.ttl_seconds,
            )
        if limiter is None:
            limiter = RateLimiter(
                max_requests=self.config.rate_limit.max_requests,
                window_seconds=self.config.rate_limit.window_seconds,
            )
        if session is None:
            session = requests.Session()
            session.headers.update({
                "User-Agent": self.config.fetch.user_agent,
                "Accept": self.config.fetch.accept,
                "Accept-Language": self.config.fetch.accept_language,
            })

        self.cache = cache
        self.limiter = limiter
        self.session = session
        self._clock = clock
        self.allowed_domains = frozenset(self.config.allowed_domains)

    def start(self) -> None:
        self.limiter.start_sweeper(self.config.rate_limit.sweep_interval_seconds)

    def close(self) -> None:
        self.limiter.stop_sweeper()
        self.session.close()

    def handle(self, request: GatewayRequest) -> GatewayResponse:
        """Runs one request through the pipeline. Never raises."""
        try:
            return self._process(request)
        except GatewayError as e:
            return GatewayResponse(status=e.status, body={"error": e.message})
        except Exception:
            logger.exception("Unexpected error while processing recipe request")
            return GatewayResponse(status=500, body={"error": MSG_INTERNAL})

    def _process(self, request: GatewayRequest) -> GatewayResponse:
        method = (request.method or "").upper()
        if method == "OPTIONS":
            return GatewayResponse(status=200)
        if method != "POST":
            raise MethodNotAllowedError(MSG_METHOD_NOT_ALLOWED)

        # Invalid submissions below still use up a slot
        client_id = client_id_from(request.headers, request.peer)
        if not self.limiter.check(client_id):
            raise RateLimitedError(MSG_RATE_LIMITED)

        url = request.body.get("url") if isinstance(request.body, dict) else None
        if not url:
            raise ClientError(MSG_URL_REQUIRED)

        if not is_url_safe(url):
            raise ClientError(MSG_INVALID_URL)

        if not is_domain_allowed(url, self.allowed_domains):
            raise ClientError(MSG_SITE_NOT_SUPPORTED)

        cached = self.cache.get(url)
        if cached is not None:
            logger.info(f"Cache hit: {url}")
            return GatewayResponse(status=200, body=cached.to_dict(), headers={CACHE_HEADER: "HIT"})

        logger.info(f"Cache miss, fetching: {url}")
        html = self.fetch_page(url)

        try:
            recipe = extract_recipe(html)
        except RecipeNotFoundError as e:
            logger.info(f"No recipe on {url}: {e}")
            raise RecipeNotFound(MSG_NOT_FOUND) from e

        sanitize_recipe(recipe)
        self.cache.set(url, recipe)

        return GatewayResponse(status=200, body=recipe.to_dict(), headers={CACHE_HEADER: "MISS"})

    def fetch_page(self, url: str) -> str:
        """
        Downloads a page, following redirects.

        The timeout bounds the whole download, not only each socket read, so
        a server sending a few bytes at a time cannot hold the request open.
        Reading stops as soon as the body passes the size ceiling.

        Raises:
            FetchTimeoutError: If the page is not complete in time.
            UpstreamError: For a non-2xx status or an oversized body.
            InternalError: For any other transport failure.
        """
        timeout = self.config.fetch.timeout_seconds
        max_bytes = self.config.fetch.max_body_bytes
        deadline = self._clock() + timeout

        try:
            response = self.session.get(
                url,
                timeout=timeout,
                allow_redirects=True,
                stream=True,
            )
        except requests.Timeout as e:
            logger.warning(f"Timeout fetching {url}: {e}")
            raise FetchTimeoutError(MSG_TIMEOUT) from e
        except requests.RequestException as e:
            logger.warning(f"Could not fetch {url}: {e}")
            raise InternalError(MSG_INTERNAL) from e

        with response:
            if not 200 <= response.status_code < 300:
                logger.warning(f"Upstream returned {response.status_code} for {url}")
                raise UpstreamError(MSG_FETCH_FAILED)

            content = bytearray()
            try:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if self._clock() > deadline:
                        logger.warning(f"Download of {url} took longer than {timeout}s")
                        raise FetchTimeoutError(MSG_TIMEOUT)
                    content.extend(chunk)
                    if len(content) > max_bytes:
                        logger.warning(f"Page too large (over {max_bytes} bytes): {url}")
                        raise UpstreamError(MSG_PAGE_TOO_LARGE)
            except requests.RequestException as e:
                # A stalled read surfaces as ConnectionError from iter_content
                if isinstance(e, requests.Timeout) or self._clock() > deadline:
                    logger.warning(f"Timeout reading {url}: {e}")
                    raise FetchTimeoutError(MSG_TIMEOUT) from e
                logger.warning(f"Could not read {url}: {e}")
                raise InternalError(MSG_INTERNAL) from e

            return _decode(response, bytes(content))
