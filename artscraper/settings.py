import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from urllib.parse import urlparse

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, ValidationError, field_validator

from .errors import ConfigurationError

PROJECT_ROOT = Path(__file__).resolve().parents[1]

logger = logging.getLogger(__name__)

PROXY_SCHEMES = {"http", "https", "socks", "socks5"}


class ProxySettings(BaseModel):
    """
    Outbound proxy every backend request is routed through.

    http/https proxies are handed to aiohttp directly, socks/socks5 go
    through an aiohttp-socks connector (see http_client.py).
    """
    url: str

    @field_validator("url")
    @classmethod
    def _check_scheme(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in PROXY_SCHEMES:
            raise ValueError("unknown client proxy protocol, specify http, https, socks or socks5")
        if not parsed.hostname:
            raise ValueError(f"proxy URL has no host: {v!r}")
        return v

    @property
    def scheme(self) -> str:
        return urlparse(self.url).scheme

    @property
    def is_socks(self) -> bool:
        return self.scheme in {"socks", "socks5"}

    @property
    def connector_url(self) -> str:
        # aiohttp-socks only understands the versioned scheme
        if self.scheme == "socks":
            return "socks5" + self.url[len("socks"):]
        return self.url


class CamoSettings(BaseModel):
    """Signing key and public host of the camo image proxy."""
    key: str
    host: str

    @field_validator("key")
    @classmethod
    def _check_key(cls, v: str) -> str:
        if not v:
            raise ValueError("camo key is empty")
        return v

    @field_validator("host")
    @classmethod
    def _check_host(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in {"http", "https"} or not parsed.hostname:
            raise ValueError(f"camo host must be an absolute http(s) URL, got {v!r}")
        return v.rstrip("/")


@dataclass
class ScrapeConfig:
    """
    Central configuration for the scraper service.

    Values can be overridden via scrape_config.yaml at the project root and,
    on top of that, via environment variables (see ENV_VARS).
    Invalid proxy or camo settings raise ConfigurationError on construction.
    """

    # Front door
    listen_on: str = "localhost:8080"
    allowed_origins: str = "localhost,localhost:8080"
    allow_empty_origin: bool = False
    check_csrf_presence: bool = False
    enable_get_request: bool = False

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"

    # Upstream access
    proxy_url: str | None = None
    tumblr_api_key: str | None = None
    preferred_nitter_instance_host: str | None = None

    # Camo
    camo_key: str | None = None
    camo_host: str | None = None

    # HTTP client tuning
    user_agent: str = "curl/7.83.1"
    http_timeout_s: float = 5.0
    http_connect_timeout_s: float = 2.5

    # Result cache
    cache_capacity: int = 1000
    cache_time_to_idle_s: float = 10 * 60
    cache_time_to_live_s: float = 100 * 60

    # Per-backend request cache
    cache_http_duration_s: float = 60

    proxy: ProxySettings | None = field(default=None, init=False, repr=False)
    camo: CamoSettings | None = field(default=None, init=False, repr=False)

    def __post_init__(self):
        try:
            if self.proxy_url:
                self.proxy = ProxySettings(url=self.proxy_url)
            # camo degrades to the identity transform unless both halves are set
            if self.camo_key and self.camo_host:
                self.camo = CamoSettings(key=self.camo_key, host=self.camo_host)
        except ValidationError as e:
            raise ConfigurationError(f"invalid configuration: {e}") from e

    @property
    def origins(self) -> list[str]:
        return [o for o in self.allowed_origins.split(",") if o]

    @property
    def bind(self) -> tuple[str, int]:
        host, _, port = self.listen_on.rpartition(":")
        try:
            return host or "localhost", int(port)
        except ValueError as e:
            raise ConfigurationError(f"LISTEN_ON is not host:port: {self.listen_on!r}") from e

    def __repr__(self) -> str:
        # keys and proxy credentials stay out of logs
        return (
            f"ScrapeConfig(listen_on={self.listen_on!r}, origins={self.origins!r}, "
            f"proxy={'set' if self.proxy else 'unset'}, camo={'set' if self.camo else 'unset'}, "
            f"tumblr_api_key={'set' if self.tumblr_api_key else 'unset'})"
        )


ENV_VARS = {
    "LISTEN_ON": "listen_on",
    "ALLOWED_ORIGINS": "allowed_origins",
    "ALLOW_EMPTY_ORIGIN": "allow_empty_origin",
    "CHECK_CSRF_PRESENCE": "check_csrf_presence",
    "ENABLE_GET_REQUEST": "enable_get_request",
    "LOG_LEVEL": "log_level",
    "LOG_FORMAT": "log_format",
    "HTTP_PROXY": "proxy_url",
    "TUMBLR_API_KEY": "tumblr_api_key",
    "PREFERRED_NITTER_INSTANCE_HOST": "preferred_nitter_instance_host",
    "CAMO_KEY": "camo_key",
    "CAMO_HOST": "camo_host",
    "CACHE_HTTP_DURATION": "cache_http_duration_s",
}


def _coerce(name: str, raw: str):
    kind = {f.name: f.type for f in fields(ScrapeConfig)}[name]
    if kind in (bool, "bool"):
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    if kind in (float, "float"):
        return float(raw)
    if kind in (int, "int"):
        return int(raw)
    return raw


def env_overrides(environ=None) -> dict:
    environ = os.environ if environ is None else environ
    out = {}
    for var, name in ENV_VARS.items():
        raw = environ.get(var)
        if raw is None or raw == "":
            continue
        try:
            out[name] = _coerce(name, raw)
        except ValueError as e:
            raise ConfigurationError(f"{var} has an invalid value: {raw!r}") from e
    return out


def load_scrape_config(
    path: str | Path | None = None,
    environ=None,
    dotenv_path: str | Path | None = None,
) -> ScrapeConfig:
    """
    Load ScrapeConfig from YAML if present; otherwise use defaults.

    By default, looks for `scrape_config.yaml` at the project root.
    Variables from a `.env` file (the working directory's by default) sit
    under the real environment, and both win over YAML values.
    """

    if path is None:
        path = os.environ.get("SCRAPER_CONFIG") or PROJECT_ROOT / "scrape_config.yaml"

    path = Path(path)

    data = {}
    if not path.exists():
        logger.info("config YAML not found at %s, using defaults", path)
    else:
        raw = path.read_text(encoding="utf-8")
        loaded = yaml.safe_load(raw) or {}
        if isinstance(loaded, dict):
            data = loaded
        else:
            logger.warning("expected mapping in %s, got %s, using defaults", path, type(loaded).__name__)

    allowed_keys = {f.name for f in fields(ScrapeConfig) if f.init}
    filtered = {k: v for k, v in data.items() if k in allowed_keys}
    dropped = sorted(set(data) - allowed_keys)
    if dropped:
        logger.warning("ignoring unknown config keys: %s", ", ".join(dropped))

    environ = os.environ if environ is None else environ
    dotenv_path = Path(dotenv_path) if dotenv_path is not None else Path.cwd() / ".env"
    if dotenv_path.exists():
        logger.info("loading environment from %s", dotenv_path)
        environ = {**{k: v for k, v in dotenv_values(dotenv_path).items() if v is not None}, **environ}

    filtered.update(env_overrides(environ))
    return ScrapeConfig(**filtered)
