"""Configuration management for Recipe Gateway."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


# Recipe sites the gateway is willing to fetch from (hostnames without "www.")
DEFAULT_ALLOWED_DOMAINS = [
    "recipetineats.com",
    "budgetbytes.com",
    "allrecipes.com",
    "foodnetwork.com",
    "simplyrecipes.com",
    "bonappetit.com",
    "seriouseats.com",
    "tasty.co",
    "delish.com",
    "epicurious.com",
    "cookieandkate.com",
    "minimalistbaker.com",
    "halfbakedharvest.com",
    "damndelicious.net",
    "pinchofyum.com",
    "smittenkitchen.com",
    "loveandlemons.com",
    "thepioneerwoman.com",
    "food52.com",
    "eatingwell.com",
    "skinnytaste.com",
    "hellofresh.com",
    "bbcgoodfood.com",
    "jamieoliver.com",
    "nigella.com",
    "themodernproper.com",
]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class CacheConfig:
    max_entries: int = 200
    ttl_seconds: float = 60 * 60


@dataclass
class RateLimitConfig:
    max_requests: int = 10
    window_seconds: float = 60
    sweep_interval_seconds: float = 5 * 60


@dataclass
class FetchConfig:
    timeout_seconds: float = 10
    max_body_bytes: int = 2 * 1024 * 1024
    user_agent: str = DEFAULT_USER_AGENT
    accept: str = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
    accept_language: str = "en-US,en;q=0.9"


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"


@dataclass
class Config:
    cache: CacheConfig = field(default_factory=CacheConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    allowed_domains: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_DOMAINS))


def _expand_env(value: str) -> str:
    """Replaces ${ENV_VAR} with environment variables."""
    if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
        env_var = value[2:-1]
        return os.environ.get(env_var, "")
    return value


def _number(raw: dict, key: str, default, cast=float):
    """Reads a positive number from a config section, falling back to the default."""
    value = _expand_env(raw.get(key, default))
    if value in ("", None):
        return default
    try:
        number = cast(value)
    except (ValueError, TypeError):
        logger.warning(f"Invalid value for '{key}': {value!r}, using default {default}")
        return default
    if number <= 0:
        logger.warning(f"'{key}' must be positive, got {number}, using default {default}")
        return default
    return number


def _validate_domains(raw_domains: list) -> list[str]:
    """Normalizes allowlist entries to lowercase hostnames without 'www.'."""
    domains = []
    for domain in raw_domains:
        if not isinstance(domain, str) or not domain.strip():
            logger.warning(f"Ignoring invalid allowed domain: {domain!r}")
            continue
        domain = domain.strip().lower()
        if domain.startswith("www."):
            domain = domain[4:]
        domains.append(domain)
    return domains


def load_config(config_path: Path | None = None) -> Config:
    """Loads configuration from YAML file."""
    if config_path is None:
        config_path = Path(__file__).parent / "config.yaml"

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    cache_raw = raw.get("cache") or {}
    cache = CacheConfig(
        max_entries=_number(cache_raw, "max_entries", CacheConfig.max_entries, int),
        ttl_seconds=_number(cache_raw, "ttl_seconds", CacheConfig.ttl_seconds),
    )

    rate_raw = raw.get("rate_limit") or {}
    rate_limit = RateLimitConfig(
        max_requests=_number(rate_raw, "max_requests", RateLimitConfig.max_requests, int),
        window_seconds=_number(rate_raw, "window_seconds", RateLimitConfig.window_seconds),
        sweep_interval_seconds=_number(
            rate_raw, "sweep_interval_seconds", RateLimitConfig.sweep_interval_seconds
        ),
    )

    fetch_raw = raw.get("fetch") or {}
    fetch = FetchConfig(
        timeout_seconds=_number(fetch_raw, "timeout_seconds", FetchConfig.timeout_seconds),
        max_body_bytes=_number(fetch_raw, "max_body_bytes", FetchConfig.max_body_bytes, int),
        user_agent=_expand_env(fetch_raw.get("user_agent", DEFAULT_USER_AGENT)) or DEFAULT_USER_AGENT,
        accept=fetch_raw.get("accept", FetchConfig.accept),
        accept_language=fetch_raw.get("accept_language", FetchConfig.accept_language),
    )

    server_raw = raw.get("server") or {}
    cors_origins = server_raw.get("cors_origins") or ["*"]
    if isinstance(cors_origins, str):
        cors_origins = [cors_origins]
    elif not isinstance(cors_origins, list):
        logger.warning(f"cors_origins must be a list, got {cors_origins!r}, allowing any origin")
        cors_origins = ["*"]
    log_level = str(server_raw.get("log_level", "INFO")).upper()
    if log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        logger.warning(f"Invalid log level '{log_level}', defaulting to 'INFO'")
        log_level = "INFO"
    server = ServerConfig(
        host=_expand_env(server_raw.get("host", "0.0.0.0")) or "0.0.0.0",
        port=_number(server_raw, "port", ServerConfig.port, int),
        cors_origins=[_expand_env(origin) for origin in cors_origins],
        log_level=log_level,
    )

    raw_domains = raw.get("allowed_domains")
    if isinstance(raw_domains, list):
        allowed_domains = _validate_domains(raw_domains)
    else:
        if raw_domains is not None:
            logger.warning(f"allowed_domains must be a list, got {raw_domains!r}, using built-in list")
        allowed_domains = list(DEFAULT_ALLOWED_DOMAINS)

    return Config(
        cache=cache,
        rate_limit=rate_limit,
        fetch=fetch,
        server=server,
        allowed_domains=allowed_domains,
    )
