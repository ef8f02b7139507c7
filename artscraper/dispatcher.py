"""
Dispatcher: decides which backend owns a URL and runs its extraction.

The logic is:
- every backend classifies concurrently
- any classification fault fails the whole resolution
- among the backends that said yes, the earliest in priority order wins
"""

import asyncio
import logging

from .backends.base import Backend
from .errors import ClassificationError, ExtractionError
from .models import ScrapeResult
from .utils import parse_url

logger = logging.getLogger(__name__)


class Dispatcher:
    def __init__(self, backends: list[Backend]):
        # order is the tie-break order
        self.backends = list(backends)

    async def resolve(self, url: str) -> Backend | None:
        answers = await asyncio.gather(*(self._classify(backend, url) for backend in self.backends))
        matched = [backend for backend, owns in zip(self.backends, answers) if owns]
        if not matched:
            logger.debug("no backend claims %s", url)
            return None
        if len(matched) > 1:
            logger.debug("%s claimed by %s, picking %s", url, [b.name for b in matched], matched[0].name)
        return matched[0]

    async def _classify(self, backend: Backend, url: str) -> bool:
        try:
            owns = await backend.classify(url)
        except Exception as e:
            raise ClassificationError(f"{backend.name} classification failed") from e
        if owns:
            logger.debug("%s claims %s", backend.name, url)
        return bool(owns)

    async def execute(self, backend: Backend, url: str) -> ScrapeResult:
        try:
            return await backend.extract(url)
        except Exception as e:
            raise ExtractionError(f"{backend.name} parser failed") from e

    async def scrape(self, url: str) -> ScrapeResult:
        """
        Classify and extract `url`. Returns None when no backend owns it;
        raises ScrapeError subclasses on failure.
        """
        url = parse_url(url)
        backend = await self.resolve(url)
        if backend is None:
            return None
        logger.debug("scraping %s with %s", url, backend.name)
        return await self.execute(backend, url)
