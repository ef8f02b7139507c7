import logging
import re
from dataclasses import dataclass

from pydantic import BaseModel

from ..cache import CacheKey
from ..errors import ScrapeError, error_context
from ..models import ScrapeResult, ScrapeResultData
from ..utils import blank_to_none, parse_url
from .base import Backend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhilomenaSite:
    """A Philomena booru: how its post URLs look and where its JSON API lives."""
    name: str
    url: re.Pattern
    api_url: str

    def to_api(self, url: str) -> str | None:
        m = self.url.match(url)
        if m is None:
            return None
        return self.api_url.format(image_id=m.group("image_id"))


DERPIBOORU = PhilomenaSite(
    name="derpibooru",
    url=re.compile(r"^https://derpibooru\.org/(images/)?(?P<image_id>\d+).*$"),
    api_url="https://derpibooru.org/api/v1/json/images/{image_id}",
)

PHILOMENA_SITES = (DERPIBOORU,)


class PhilomenaImage(BaseModel):
    tags: list[str] = []
    source_url: str | None = None
    uploader: str | None = None
    description: str | None = None
    view_url: str


class PhilomenaResponse(BaseModel):
    image: PhilomenaImage


class PhilomenaBackend(Backend):
    """
    Image pages of Philomena boorus, read from the site's image API.
    The artist is the first `artist:` tag; blank fields come back as None.
    """

    name = "Philomena"

    def __init__(self, ctx, sites: tuple[PhilomenaSite, ...] = PHILOMENA_SITES):
        super().__init__(ctx)
        self.sites = sites

    def _site(self, url: str) -> PhilomenaSite | None:
        for site in self.sites:
            if site.url.match(url):
                logger.debug("%s matched on URL pattern", site.name)
                return site
        return None

    async def classify(self, url: str) -> bool:
        return self._site(url) is not None

    async def extract(self, url: str) -> ScrapeResult:
        site = self._site(url)
        if site is None:
            raise ScrapeError("Tried URL that isn't known philomena")
        api_url = site.to_api(url)
        if api_url is None:
            raise ScrapeError("URL did not match and returned empty")

        with error_context("could not query philomena"):
            resp = await self.cached(CacheKey.of("philomena.api", api_url), lambda: self._api_request(api_url))
        image = resp.image

        with error_context(f"invalid view url: {image.view_url!r}"):
            view_url = parse_url(image.view_url)
        source_url = blank_to_none(image.source_url)
        logger.debug("source_url: %r", source_url)
        if source_url is not None:
            with error_context(f"source url: {image.source_url!r}"):
                source_url = parse_url(source_url)

        artist = next((t.removeprefix("artist:") for t in image.tags if t.startswith("artist:")), None)
        return ScrapeResultData(
            source_url=source_url,
            author_name=artist,
            description=blank_to_none(image.description),
            images=[self.image(view_url)],
        )

    async def _api_request(self, api_url: str) -> PhilomenaResponse:
        logger.debug("running api request %s", api_url)
        with error_context("request to philomena failed"):
            data = await self.client.get_json(api_url)
        with error_context("could not parse philomena"):
            return PhilomenaResponse.model_validate(data)
