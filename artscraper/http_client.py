import logging
from dataclasses import dataclass

import aiohttp
from aiohttp_socks import ProxyConnector

from .settings import ScrapeConfig

logger = logging.getLogger(__name__)


@dataclass
class HeadResult:
    """
    Status and the headers backends care about from a HEAD (or bodiless) probe.
    """
    status: int
    content_type: str | None = None
    location: str | None = None


class HttpClient:
    """
    Shared upstream HTTP client built on one aiohttp.ClientSession.

    - Bounded by a connect timeout and an overall request timeout
    - Optional outbound proxy (http/https per request, socks via connector)
    - Cookie jar shared across requests
    - Redirects are not followed; backends that care read `Location`
    - Non-2xx statuses raise aiohttp.ClientResponseError from the
      get_*/post_* helpers; head() and location() report them instead

    Safe for concurrent use by every backend once entered.
    """

    def __init__(self, config: ScrapeConfig, session: aiohttp.ClientSession | None = None):
        self.config = config
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self):
        if self._session is None:
            self._session = self._build_session()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def _build_session(self) -> aiohttp.ClientSession:
        cfg = self.config
        connector = None
        if cfg.proxy is not None and cfg.proxy.is_socks:
            connector = ProxyConnector.from_url(cfg.proxy.connector_url)
        timeout = aiohttp.ClientTimeout(total=cfg.http_timeout_s, connect=cfg.http_connect_timeout_s)
        return aiohttp.ClientSession(
            connector=connector,
            timeout=timeout,
            cookie_jar=aiohttp.CookieJar(),
            headers={"User-Agent": cfg.user_agent},
        )

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("HttpClient used outside of its async context")
        return self._session

    def _request_kwargs(self, headers: dict | None) -> dict:
        kwargs = {"allow_redirects": False}
        proxy = self.config.proxy
        if proxy is not None and not proxy.is_socks:
            kwargs["proxy"] = proxy.url
        if headers:
            kwargs["headers"] = headers
        return kwargs

    async def get_text(self, url: str, headers: dict | None = None, check_status: bool = True) -> str:
        logger.debug("GET %s", url)
        async with self.session.get(url, **self._request_kwargs(headers)) as resp:
            if check_status:
                resp.raise_for_status()
            return await resp.text()

    async def get_json(self, url: str, headers: dict | None = None):
        logger.debug("GET %s (json)", url)
        async with self.session.get(url, **self._request_kwargs(headers)) as resp:
            resp.raise_for_status()
            return await resp.json(content_type=None)

    async def post_json(self, url: str, headers: dict | None = None, json=None):
        logger.debug("POST %s (json)", url)
        async with self.session.post(url, json=json, **self._request_kwargs(headers)) as resp:
            resp.raise_for_status()
            return await resp.json(content_type=None)

    async def head(self, url: str) -> HeadResult:
        logger.debug("HEAD %s", url)
        async with self.session.head(url, **self._request_kwargs(None)) as resp:
            return HeadResult(
                status=resp.status,
                content_type=resp.headers.get("Content-Type"),
                location=resp.headers.get("Location"),
            )

    async def location(self, url: str) -> str | None:
        """GET without following redirects and return the Location header, if any."""
        logger.debug("GET %s (redirect probe)", url)
        async with self.session.get(url, **self._request_kwargs(None)) as resp:
            return resp.headers.get("Location")
