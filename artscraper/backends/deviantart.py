import asyncio
import logging
import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

from ..errors import ScrapeError, error_context
from ..models import ScrapeImage, ScrapeResult, ScrapeResultData
from ..utils import host_of, parse_url, to_base36
from .base import Backend

logger = logging.getLogger(__name__)

OLD_HIRES_URL = "http://orig01.deviantart.net/x_by_x-d{base36}.png"


@dataclass(frozen=True)
class DeviantArtPatterns:
    artist: re.Pattern = re.compile(r"https://www\.deviantart\.com/([^/]*)/art")
    serial: re.Pattern = re.compile(r"https://www\.deviantart\.com/(?:.*?)-(\d+)\Z")
    cdn: re.Pattern = re.compile(
        r"(https://images-wixmp-[0-9a-f]+\.wixmp\.com)(?:/intermediary)?/f/([^/]*)/([^/?]*)"
    )
    # preview renditions: ".../v1/fill/<ops>/<slug>-pre.png" has a full size sibling without "-pre"
    png: re.Pattern = re.compile(
        r"(https://[0-9a-z\-.]+(?:/intermediary)?/f/[0-9a-f\-]+/[0-9a-z\-]+\.png/v1/fill/[0-9a-z_,]+/[0-9a-z_\-]+?)"
        r"-pre(\.png)(.*)"
    )
    jpg: re.Pattern = re.compile(
        r"(https://[0-9a-z\-.]+(?:/intermediary)?/f/[0-9a-f\-]+/[0-9a-z\-]+\.jpg/v1/fill/w_[0-9]+,h_[0-9]+,q_)"
        r"([0-9]+)(,[a-z]+/[0-9a-z_\-]+\.jpe?g.*)"
    )


class DeviantArtBackend(Backend):
    """
    DeviantArt deviation pages.

    The page gives the preview image, the canonical deviation URL and, from
    that, the artist. Three hi-res strategies then run in order, each one
    appending what it finds:

    1. rewrite a tiered CDN preview URL to its full quality sibling
    2. probe the "intermediary" CDN path with HEAD
    3. guess the legacy orig01 URL from the deviation id and follow its redirect
    """

    name = "DeviantArt"

    def __init__(self, ctx, patterns: DeviantArtPatterns | None = None):
        super().__init__(ctx)
        self.patterns = patterns or DeviantArtPatterns()

    async def classify(self, url: str) -> bool:
        host = host_of(url)
        if host is None:
            return False
        return host == "deviantart.com" or host.endswith(".deviantart.com")

    async def extract(self, url: str) -> ScrapeResult:
        with error_context("image request failed"):
            body = await self.client.get_text(url, check_status=False)
        with error_context("could not extract DA page data"):
            image_url, source_url, artist = self._page_data(body)
        logger.debug("deviant capture: %s %s %s", image_url, source_url, artist)

        base = self.image(image_url)
        images = [base]
        images = self.try_new_hires(images)
        images = await self.try_intermediary_hires(images)
        with error_context("old_hires conversion failed"):
            images = await self.try_old_hires(source_url, images, base.camo_url)

        return ScrapeResultData(
            source_url=source_url,
            author_name=artist,
            images=images,
        )

    def _page_data(self, body: str) -> tuple[str, str, str]:
        soup = BeautifulSoup(body, "html.parser")
        preload = soup.select_one('link[rel~="preload"][as="image"][href]')
        if preload is None:
            raise ScrapeError("no image found")
        canonical = soup.select_one('link[rel~="canonical"][href]')
        if canonical is None:
            raise ScrapeError("no source found")
        source = canonical["href"]
        artist = self.patterns.artist.search(source)
        if artist is None:
            raise ScrapeError("no artist found")
        with error_context("could not parse image URL"):
            image_url = parse_url(preload["href"])
        with error_context("source URL not valid URL"):
            source = parse_url(source)
        return image_url, source, artist.group(1)

    def try_new_hires(self, images: list[ScrapeImage]) -> list[ScrapeImage]:
        out = list(images)
        for image in images:
            if self.patterns.png.search(image.url):
                png = self.patterns.png.sub(r"\1\2\3", image.url, count=1)
                out.append(ScrapeImage(url=png, camo_url=image.camo_url))
            if self.patterns.jpg.search(image.url):
                jpg = self.patterns.jpg.sub(r"\g<1>100\g<3>", image.url, count=1)
                out.append(ScrapeImage(url=jpg, camo_url=image.camo_url))
        return out

    async def try_intermediary_hires(self, images: list[ScrapeImage]) -> list[ScrapeImage]:
        candidates = []
        for image in images:
            m = self.patterns.cdn.search(image.url)
            if m is None:
                continue
            domain, object_uuid, object_name = m.groups()
            candidates.append((image, f"{domain}/intermediary/f/{object_uuid}/{object_name}"))
        if not candidates:
            return images

        with error_context("HEAD request to DA URL failed"):
            heads = await asyncio.gather(*(self.client.head(built) for _, built in candidates))
        out = list(images)
        for (image, built), head in zip(candidates, heads):
            if head.status == 200:
                out.append(ScrapeImage(url=built, camo_url=image.camo_url))
        return out

    async def try_old_hires(self, source_url: str, images: list[ScrapeImage], camo_url: str) -> list[ScrapeImage]:
        serial = self.patterns.serial.search(source_url)
        if serial is None:
            raise ScrapeError("no serial captured")
        with error_context("integer could not be parsed"):
            number = int(serial.group(1))
        built = OLD_HIRES_URL.format(base36=to_base36(number))

        with error_context("old hires request failed"):
            location = await self.client.location(built)
        if not location:
            return images
        with error_context("new old_hires location is not valid URL"):
            location = parse_url(location)
        return [*images, ScrapeImage(url=location, camo_url=camo_url)]
