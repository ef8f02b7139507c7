import aiohttp
import pytest

from artscraper.backends.base import BackendContext
from artscraper.cache import AsyncTTLCache
from artscraper.http_client import HeadResult
from artscraper.settings import ScrapeConfig


class FakeHttpClient:
    """
    Stand-in for HttpClient that serves canned responses.

    Each table maps a URL to a value or to an exception instance, which is
    raised instead. Unknown URLs fail like an unreachable host, except HEAD
    which answers 404.
    """

    def __init__(self):
        self.texts: dict = {}
        self.json: dict = {}
        self.posts: dict = {}
        self.heads: dict = {}
        self.locations: dict = {}
        self.calls: list[tuple[str, str]] = []

    def _answer(self, table: dict, method: str, url: str, default=None):
        self.calls.append((method, url))
        if url not in table:
            if default is not None:
                return default
            raise aiohttp.ClientConnectionError(f"cannot connect to {url}")
        value = table[url]
        if isinstance(value, BaseException):
            raise value
        return value

    def count(self, method: str, url: str) -> int:
        return self.calls.count((method, url))

    async def get_text(self, url, headers=None, check_status=True):
        return self._answer(self.texts, "GET", url)

    async def get_json(self, url, headers=None):
        return self._answer(self.json, "GET", url)

    async def post_json(self, url, headers=None, json=None):
        return self._answer(self.posts, "POST", url)

    async def head(self, url):
        return self._answer(self.heads, "HEAD", url, default=HeadResult(status=404))

    async def location(self, url):
        self.calls.append(("GET", url))
        value = self.locations.get(url)
        if isinstance(value, BaseException):
            raise value
        return value


@pytest.fixture
def config() -> ScrapeConfig:
    return ScrapeConfig()


@pytest.fixture
def camo_config() -> ScrapeConfig:
    return ScrapeConfig(camo_key="s3cret", camo_host="https://camo.example.net")


@pytest.fixture
def fake_client() -> FakeHttpClient:
    return FakeHttpClient()


@pytest.fixture
def ctx(config, fake_client) -> BackendContext:
    return BackendContext(config=config, client=fake_client, request_cache=AsyncTTLCache(time_to_live=60))


@pytest.fixture
def camo_ctx(camo_config, fake_client) -> BackendContext:
    return BackendContext(config=camo_config, client=fake_client, request_cache=AsyncTTLCache(time_to_live=60))
