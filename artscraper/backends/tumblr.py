import asyncio
import ipaddress
import logging
import re
import socket
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from bs4 import BeautifulSoup

from ..cache import CacheKey
from ..errors import ScrapeError, error_context
from ..models import ScrapeImage, ScrapeResult, ScrapeResultData
from ..utils import host_of
from .base import Backend

logger = logging.getLogger(__name__)

API_URL = "https://api.tumblr.com/v2/blog/{host}/posts/photo?id={post_id}&api_key={api_key}"

TUMBLR_RANGES = (
    "66.6.32.0/24",
    "66.6.33.0/24",
    "66.6.44.0/24",
    "74.114.152.0/24",
    "74.114.153.0/24",
    "74.114.154.0/24",
    "74.114.155.0/24",
)

# Largest first; upsizing keeps the first tier that exists.
TUMBLR_SIZES = (1280, 540, 500, 400, 250, 100, 75)

PREVIEW_WIDTH = 400


@dataclass(frozen=True)
class TumblrPatterns:
    url: re.Pattern = re.compile(r"https?://(.*)/(image|post)/(\d+).*")
    size: re.Pattern = re.compile(r"_(\d+)(\..+)\Z")
    networks: tuple = field(
        default_factory=lambda: tuple(ipaddress.collapse_addresses(ipaddress.ip_network(n) for n in TUMBLR_RANGES))
    )
    sizes: tuple = TUMBLR_SIZES


async def resolve_host(host: str) -> list[str]:
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, None, type=socket.SOCK_STREAM)
    return [info[4][0] for info in infos]


class TumblrBackend(Backend):
    """
    Tumblr posts, on tumblr.com or on a custom domain served by Tumblr.

    A URL is Tumblr's if it looks like /post/<id> or /image/<id>, or if its
    host resolves into one of Tumblr's networks. Every photo is upsized by
    probing the known size tiers, largest first.
    """

    name = "Tumblr"

    def __init__(
        self,
        ctx,
        patterns: TumblrPatterns | None = None,
        resolver: Callable[[str], Awaitable[list[str]]] = resolve_host,
    ):
        super().__init__(ctx)
        self.patterns = patterns or TumblrPatterns()
        self.resolver = resolver

    async def classify(self, url: str) -> bool:
        if self.patterns.url.match(url):
            logger.debug("tumblr matched on regex URL")
            return True
        logger.debug("tumblr didn't match on regex, trying host resolver")
        host = host_of(url)
        if host is None:
            return False
        return await self._is_tumblr_host(host)

    async def _is_tumblr_host(self, host: str) -> bool:
        addresses = await self.resolver(host)
        logger.debug("got addresses for %s: %s", host, addresses)
        for address in addresses:
            ip = ipaddress.ip_address(address.split("%", 1)[0])
            if any(ip in net for net in self.patterns.networks if net.version == ip.version):
                return True
        logger.debug("host %s not in tumblr ranges", host)
        return False

    async def extract(self, url: str) -> ScrapeResult:
        m = self.patterns.url.match(url)
        if m is None:
            return None
        post_id = m.group(3)
        host = host_of(url)
        if host is None:
            return None

        api_url = API_URL.format(host=host, post_id=post_id, api_key=self.config.tumblr_api_key or "")
        logger.debug("requesting post %s of %s from the tumblr API", post_id, host)
        with error_context("request to tumblr failed"):
            resp = await self.cached(
                CacheKey.of("tumblr.api", host, post_id),
                lambda: self.client.get_json(api_url),
            )

        if not isinstance(resp, dict) or (resp.get("meta") or {}).get("status") != 200:
            raise ScrapeError("tumblr returned non-200 error")

        posts = (resp.get("response") or {}).get("posts") or [{}]
        post = posts[0]

        post_type = post.get("type")
        if post_type == "photo":
            logger.debug("photo post, sending to photo scraper")
            images = await self._photo_images(post)
        elif post_type == "text":
            logger.debug("text post, sending to post scraper")
            images = await self._text_images(post)
        else:
            logger.debug("post is type %r, couldn't handle that", post_type)
            return None

        if images is None:
            return None
        return ScrapeResultData(
            source_url=post.get("post_url"),
            author_name=post.get("blog_name"),
            description=post.get("summary"),
            images=images,
        )

    async def _photo_images(self, post: dict) -> list[ScrapeImage] | None:
        photos = post.get("photos")
        if not isinstance(photos, list):
            logger.debug("found no photos, bailing")
            return None
        upsized = await asyncio.gather(
            *(self.upsize((photo.get("original_size") or {}).get("url")) for photo in photos)
        )
        images = []
        for photo, image in zip(photos, upsized):
            if image is None:
                continue
            previews = [
                alt["url"] for alt in photo.get("alt_sizes") or []
                if alt.get("width") == PREVIEW_WIDTH and isinstance(alt.get("url"), str)
            ]
            preview = previews[-1] if previews else image
            images.append(self.image(image, preview=preview))
        return images

    async def _text_images(self, post: dict) -> list[ScrapeImage] | None:
        body = post.get("body")
        if not isinstance(body, str):
            return None
        soup = BeautifulSoup(body, "html.parser")
        sources = [img["src"] for img in soup.find_all("img", src=True)]
        if not sources:
            logger.debug("text post has no inline images")
            return None
        upsized = await asyncio.gather(*(self.upsize(src) for src in sources))
        images = [self.image(image) for image in upsized if image is not None]
        return images or None

    async def upsize(self, image_url) -> str | None:
        """
        Return the largest size tier of `image_url` that answers HEAD with 200.

        Probes run concurrently; the pick is made in tier order so the result
        does not depend on which probe finishes first.
        """
        if not isinstance(image_url, str):
            logger.debug("no upsized image, returning")
            return None
        logger.debug("mapping %s to alt_size", image_url)
        candidates = [
            self.patterns.size.sub(lambda m, size=size: f"_{size}{m.group(2)}", image_url, count=1)
            for size in self.patterns.sizes
        ]
        found = await asyncio.gather(*(self._url_ok(candidate) for candidate in candidates))
        for candidate, ok in zip(candidates, found):
            if ok:
                logger.debug("url found valid: %s", candidate)
                return candidate
        return None

    async def _url_ok(self, url: str) -> bool:
        async def probe():
            head = await self.client.head(url)
            logger.debug("checking url %s for response: %d", url, head.status)
            return head.status == 200

        return await self.cached(CacheKey.of("tumblr.url_ok", url), probe)
