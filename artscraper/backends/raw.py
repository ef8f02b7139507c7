import logging
from dataclasses import dataclass, field

from ..models import ScrapeResult, ScrapeResultData
from .base import Backend

logger = logging.getLogger(__name__)

MIME_TYPES = (
    "image/gif",
    "image/jpeg",
    "image/png",
    "image/svg",
    "image/svg+xml",
    "video/webm",
)


@dataclass(frozen=True)
class RawPatterns:
    mime_types: frozenset = field(default_factory=lambda: frozenset(MIME_TYPES))


class RawBackend(Backend):
    """
    A direct link to an image or video file.

    Owns any URL whose HEAD answers 200 with an allow-listed content type.
    Lowest priority: every platform backend wins a tie against it.
    """

    name = "Raw"

    def __init__(self, ctx, patterns: RawPatterns | None = None):
        super().__init__(ctx)
        self.patterns = patterns or RawPatterns()

    async def classify(self, url: str) -> bool:
        head = await self.client.head(url)
        if head.status != 200 or not head.content_type:
            return False
        mime = head.content_type.split(";", 1)[0].strip().lower()
        logger.debug("raw probe %s: %s", url, mime)
        return mime in self.patterns.mime_types

    async def extract(self, url: str) -> ScrapeResult:
        return ScrapeResultData(source_url=url, images=[self.image(url)])
