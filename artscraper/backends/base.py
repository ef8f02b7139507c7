import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable

from ..cache import AsyncTTLCache, CacheKey
from ..camo import camouflage
from ..http_client import HttpClient
from ..models import ScrapeImage, ScrapeResult
from ..settings import ScrapeConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackendContext:
    """
    Shared, process-wide collaborators handed to every backend.

        config        : Validated ScrapeConfig.
        client        : The one HttpClient every upstream request goes through.
        request_cache : Per-backend request cache, keyed by CacheKey.
    """
    config: ScrapeConfig
    client: HttpClient
    request_cache: AsyncTTLCache


class Backend(ABC):
    """
    One platform's URL recognizer and extractor.

    classify() answers "do I own this URL" and may do network I/O.
    extract() fetches and normalizes the post; returning None means the URL
    has the right shape but names nothing this backend can turn into a post.
    Only operational faults (network, parse, missing required data) raise.
    """

    name: str = "backend"

    def __init__(self, ctx: BackendContext):
        self.ctx = ctx

    @property
    def config(self) -> ScrapeConfig:
        return self.ctx.config

    @property
    def client(self) -> HttpClient:
        return self.ctx.client

    @abstractmethod
    async def classify(self, url: str) -> bool:
        ...

    @abstractmethod
    async def extract(self, url: str) -> ScrapeResult:
        ...

    def camo(self, url: str) -> str:
        return camouflage(self.config, url)

    def image(self, url: str, preview: str | None = None) -> ScrapeImage:
        """Build a ScrapeImage, camouflaging `preview` (defaults to `url`)."""
        return ScrapeImage(url=url, camo_url=self.camo(preview or url))

    async def cached(self, key: CacheKey, compute: Callable[[], Awaitable]):
        return await self.ctx.request_cache.get_or_fetch(key, compute)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
