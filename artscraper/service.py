import logging

from .backends.base import BackendContext
from .backends.registry import build_backends
from .cache import AsyncTTLCache
from .camo import camouflage
from .dispatcher import Dispatcher
from .http_client import HttpClient
from .models import ScrapeResult, ScrapeResultError
from .settings import ScrapeConfig

logger = logging.getLogger(__name__)

NO_MATCH_ERROR = "URL invalid"


class ScrapeService:
    """
    The scraper core as seen by the front door.

        scrape(url)     : cached classify + extract, always answers with a
                          ScrapeResultData or ScrapeResultError
        camouflage(url) : the camo rewrite for a single URL

    Results are cached per raw input string; concurrent requests for the
    same string share one classify + extract run.
    """

    def __init__(self, config: ScrapeConfig, client: HttpClient, dispatcher: Dispatcher | None = None):
        self.config = config
        self.client = client
        self.request_cache = AsyncTTLCache(
            time_to_live=config.cache_http_duration_s,
            name="request_cache",
        )
        self.result_cache = AsyncTTLCache(
            time_to_idle=config.cache_time_to_idle_s,
            time_to_live=config.cache_time_to_live_s,
            max_capacity=config.cache_capacity,
            name="result_cache",
        )
        if dispatcher is None:
            ctx = BackendContext(config=config, client=client, request_cache=self.request_cache)
            dispatcher = Dispatcher(build_backends(ctx))
        self.dispatcher = dispatcher

    async def get_result(self, url: str) -> ScrapeResult:
        """Cached dispatch. Raises on failure; None when no backend matched."""
        return await self.result_cache.get_or_fetch(url, lambda: self.dispatcher.scrape(url))

    async def scrape(self, url: str) -> ScrapeResult:
        try:
            result = await self.get_result(url)
        except Exception as e:
            logger.info("scrape of %s failed: %s", url, e)
            return ScrapeResultError.from_exception(e)
        if result is None:
            return ScrapeResultError.from_message(NO_MATCH_ERROR)
        return result

    def camouflage(self, url: str) -> str:
        return camouflage(self.config, url)
