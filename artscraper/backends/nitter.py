import logging
import re
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from ..errors import ScrapeError, error_context
from ..models import ScrapeResult, ScrapeResultData
from ..utils import host_of, replace_host, replace_path
from .base import Backend

logger = logging.getLogger(__name__)

NITTER_INSTANCES = (
    "nitter.net",
    "nitter.42l.fr",
    "nitter.nixnet.services",
    "nitter.mastodont.cat",
    "nitter.tedomum.net",
    "nitter.fdn.fr",
    "nitter.kavin.rocks",
    "tweet.lambda.dance",
    "nitter.cc",
    "nitter.vxempire.xyz",
    "nitter.unixfox.eu",
    "nitter.domain.glass",
    "nitter.eu",
    "nitter.ethibox.fr",
    "nitter.namazso.eu",
    "nitter.mailstation.de",
    "nitter.actionsack.com",
    "nitter.cattube.org",
    "nitter.dark.fail",
    "birdsite.xanny.family",
    "nitter.40two.app",
    "nitter.skrep.in",
)


@dataclass(frozen=True)
class NitterPatterns:
    instances: frozenset = field(default_factory=lambda: frozenset(NITTER_INSTANCES))
    tweet: re.Pattern = re.compile(r"/([A-Za-z\d_]+)/status/(\d+)")


class NitterBackend(Backend):
    """
    Tweets viewed through a Nitter mirror.

    The page is fetched from the preferred mirror when one is configured;
    source_url always points back at twitter.com for the same tweet.
    """

    name = "Nitter"

    def __init__(self, ctx, patterns: NitterPatterns | None = None):
        super().__init__(ctx)
        patterns = patterns or NitterPatterns()
        preferred = ctx.config.preferred_nitter_instance_host
        if preferred and preferred not in patterns.instances:
            patterns = NitterPatterns(instances=patterns.instances | {preferred}, tweet=patterns.tweet)
        self.patterns = patterns

    async def classify(self, url: str) -> bool:
        host = host_of(url)
        if host is None or host not in self.patterns.instances:
            return False
        return self.patterns.tweet.search(urlsplit(url).path) is not None

    async def extract(self, url: str) -> ScrapeResult:
        tweet = self.patterns.tweet.search(urlsplit(url).path)
        if tweet is None:
            raise ScrapeError("could not parse tweet url")
        canonical = f"https://twitter.com/{tweet.group(1)}/status/{tweet.group(2)}"

        request_url = url
        preferred = self.config.preferred_nitter_instance_host
        if preferred:
            with error_context("could not set preferred host"):
                request_url = replace_host(url, preferred)

        with error_context("request to nitter failed"):
            body = await self.client.get_text(request_url)

        soup = BeautifulSoup(body, "html.parser")
        main = soup.select_one("div.main-tweet")

        author = None
        if main is not None:
            username = main.select_one("a.username")
            if username is not None:
                author = username.get_text(strip=True).lstrip("@")

        content = soup.select_one("div.tweet-content")
        description = content.get_text() if content is not None else None

        source_url = canonical
        link = soup.select_one('[title="Open in Twitter"]')
        href = link.get("href") if link is not None else None
        if href and host_of(href) is not None:
            linked = self.patterns.tweet.search(urlsplit(href).path)
            if linked is not None:
                source_url = f"https://twitter.com/{linked.group(1)}/status/{linked.group(2)}"

        images = []
        attachments = main.select("div.attachments div.image") if main is not None else []
        for index, attachment in enumerate(attachments):
            still = attachment.select_one("a.still-image")
            href = still.get("href") if still is not None else None
            if not href:
                logger.debug("no valid URL attribute in attachment")
                continue
            logger.debug("found image url %d: %r", index, href)
            images.append(self.image(replace_path(url, href)))

        return ScrapeResultData(
            source_url=source_url,
            author_name=author,
            description=description,
            images=images,
        )
