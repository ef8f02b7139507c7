import logging
import re
from dataclasses import dataclass

from ..cache import CacheKey
from ..errors import ScrapeError, error_context
from ..models import ScrapeResult, ScrapeResultData
from ..utils import parse_url
from .base import Backend

logger = logging.getLogger(__name__)

ACTIVATION_URL = "https://api.twitter.com/1.1/guest/activate.json"
API_URL = "https://api.twitter.com/2/timeline/conversation/{status_id}.json?tweet_mode=extended"


@dataclass(frozen=True)
class TwitterPatterns:
    url: re.Pattern = re.compile(r"\Ahttps?://(?:mobile\.)?twitter\.com/([A-Za-z\d_]+)/status/(\d+)/?")
    script: re.Pattern = re.compile(
        r'="(https://abs\.twimg\.com/responsive-web/client-web(?:-legacy)?/main\.[\da-z]+\.js)'
    )
    bearer: re.Pattern = re.compile(r'(AAAAAAAAAAAAA[^"]*)')


class TwitterBackend(Backend):
    """
    Tweets, through the guest-token flow of the web client.

    page -> main.js URL -> bearer token in main.js -> guest token from the
    activation endpoint -> conversation API. Every leg goes through the
    request cache, so the bearer and guest token are reused across tweets.
    """

    name = "Twitter"

    def __init__(self, ctx, patterns: TwitterPatterns | None = None):
        super().__init__(ctx)
        self.patterns = patterns or TwitterPatterns()

    async def classify(self, url: str) -> bool:
        return self.patterns.url.match(url) is not None

    async def extract(self, url: str) -> ScrapeResult:
        m = self.patterns.url.match(url)
        if m is None:
            raise ScrapeError("could not parse tweet url")
        user, status_id = m.group(1), m.group(2)
        page_url = f"https://twitter.com/{user}/status/{status_id}"
        api_url = API_URL.format(status_id=status_id)

        bearer = await self._bearer(page_url)
        with error_context("could not get guest token"):
            guest_token = await self.cached(
                CacheKey.of("twitter.guest_token", bearer),
                lambda: self._activate(bearer),
            )
        with error_context("invalid api response"):
            data = await self.cached(
                CacheKey.of("twitter.api", api_url, guest_token, bearer),
                lambda: self._api_request(api_url, bearer, guest_token),
            )

        tweet = ((data.get("globalObjects") or {}).get("tweets") or {}).get(status_id) or {}
        media = (tweet.get("entities") or {}).get("media") or []

        images = []
        for item in media:
            url_orig = item.get("media_url_https") or ""
            url_noorig = url_orig.removesuffix(":orig")
            url_orig = _valid_or(url_orig, page_url)
            url_noorig = _valid_or(url_noorig, page_url)
            logger.debug("urls: %s, noorig: %s", url_orig, url_noorig)
            images.append(self.image(url_noorig, preview=url_orig))

        if not images:
            logger.debug("tweet %s has no media", status_id)
            return None

        description = tweet.get("text")
        if not isinstance(description, str):
            description = tweet.get("full_text") if isinstance(tweet.get("full_text"), str) else None

        return ScrapeResultData(
            source_url=page_url,
            author_name=user,
            description=description,
            images=images,
        )

    async def _bearer(self, page_url: str) -> str:
        with error_context("initial page request failed"):
            page = await self.cached(
                CacheKey.of("twitter.page", page_url),
                lambda: self.client.get_text(page_url),
            )
        script = self.patterns.script.search(page)
        if script is None:
            raise ScrapeError("could not get script")
        script_url = script.group(1)
        logger.debug("script url: %s", script_url)

        with error_context("invalid script_data response"):
            script_data = await self.cached(
                CacheKey.of("twitter.script", script_url),
                lambda: self.client.get_text(script_url),
            )
        bearer = self.patterns.bearer.search(script_data)
        if bearer is None:
            raise ScrapeError("could not get bearer")
        return bearer.group(0)

    async def _activate(self, bearer: str) -> str:
        logger.debug("making GT activation request")
        with error_context("could not complete activation request"):
            data = await self.client.post_json(ACTIVATION_URL, headers={"Authorization": f"Bearer {bearer}"})
        if not isinstance(data, dict) or "guest_token" not in data:
            raise ScrapeError("no GT in twitter API response")
        guest_token = data["guest_token"]
        if not isinstance(guest_token, str):
            raise ScrapeError("invalid GT in twitter API response")
        return guest_token

    async def _api_request(self, api_url: str, bearer: str, guest_token: str) -> dict:
        logger.debug("making api request: %s", api_url)
        headers = {"Authorization": f"Bearer {bearer}", "x-guest-token": guest_token}
        with error_context("API request failed"):
            data = await self.client.get_json(api_url, headers=headers)
        if not isinstance(data, dict):
            raise ScrapeError("response is not a JSON object")
        return data


def _valid_or(url: str, fallback: str) -> str:
    try:
        return parse_url(url)
    except ScrapeError:
        return fallback
