import logging
import re
from dataclasses import dataclass

from ..cache import CacheKey
from ..errors import ScrapeError, error_context
from ..models import ScrapeResult, ScrapeResultData
from ..utils import blank_to_none
from .base import Backend

logger = logging.getLogger(__name__)

GRAPHQL_URL = "https://graphql.buzzly.art/graphql"
SUBMISSIONS_HOST = "https://submissions.buzzly.art"

GET_SUBMISSION = """
query GetSubmission($username: String!, $slug: String!) {
  fetchSubmissionByUsernameAndSlug(username: $username, slug: $slug) {
    submission {
      account {
        username
      }
      description
      path
      thumbnailPath
      tags
    }
  }
}
""".strip()


@dataclass(frozen=True)
class BuzzlyPatterns:
    url: re.Pattern = re.compile(r"https?://buzzly\.art/~(.*)/art/(.*)")


class BuzzlyBackend(Backend):
    """Buzzly submissions, through the site's GraphQL API."""

    name = "Buzzly"

    def __init__(self, ctx, patterns: BuzzlyPatterns | None = None):
        super().__init__(ctx)
        self.patterns = patterns or BuzzlyPatterns()

    async def classify(self, url: str) -> bool:
        logger.debug("buzzly on %r?", url)
        return self.patterns.url.match(url) is not None

    async def extract(self, url: str) -> ScrapeResult:
        m = self.patterns.url.match(url)
        if m is None:
            raise ScrapeError("could not parse buzzly url")
        username, slug = m.group(1), m.group(2)

        with error_context("buzzly request failed"):
            data = await self.cached(
                CacheKey.of("buzzly.submission", url),
                lambda: self._submission_request(username, slug),
            )

        fetched = data.get("fetchSubmissionByUsernameAndSlug")
        if not fetched:
            raise ScrapeError("missing data in response")
        submission = fetched.get("submission")
        if not submission:
            raise ScrapeError("missing submission metadata")
        account = submission.get("account")
        if not account:
            raise ScrapeError("missing account metadata")
        author_name = account.get("username") or username

        path = submission.get("path")
        thumbnail_path = submission.get("thumbnailPath")
        if not path or not thumbnail_path:
            raise ScrapeError("missing image path")
        tags = submission.get("tags")
        if tags is None:
            raise ScrapeError("missing tags fields")
        tags = [t for t in tags if t is not None]
        tags.append(f"artist:{author_name}")

        return ScrapeResultData(
            source_url=url,
            author_name=author_name,
            additional_tags=tags,
            description=blank_to_none(submission.get("description")),
            images=[self.image(f"{SUBMISSIONS_HOST}{path}", preview=f"{SUBMISSIONS_HOST}{thumbnail_path}")],
        )

    async def _submission_request(self, username: str, slug: str) -> dict:
        query = {
            "operationName": "GetSubmission",
            "query": GET_SUBMISSION,
            "variables": {"slug": slug, "username": username},
        }
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        resp = await self.client.post_json(GRAPHQL_URL, headers=headers, json=query)
        data = resp.get("data") if isinstance(resp, dict) else None
        if data is None:
            raise ScrapeError("missing response data")
        return data
