import pytest

from artscraper.backends.buzzly import GRAPHQL_URL, BuzzlyBackend
from artscraper.errors import ScrapeError
from artscraper.models import ScrapeImage, ScrapeResultData

URL = "https://buzzly.art/~sketchy/art/morning-coffee"


def submission(**overrides) -> dict:
    """Helper: a GraphQL reply for one submission."""
    body = {
        "account": {"username": "sketchy"},
        "description": "",
        "path": "/full/morning-coffee.png",
        "thumbnailPath": "/thumb/morning-coffee.png",
        "tags": ["coffee", None, "sketch"],
    }
    body.update(overrides)
    return {"data": {"fetchSubmissionByUsernameAndSlug": {"submission": body}}}


@pytest.mark.asyncio
async def test_classify(ctx):
    backend = BuzzlyBackend(ctx)
    assert await backend.classify(URL)
    assert not await backend.classify("https://buzzly.art/~sketchy")


@pytest.mark.asyncio
async def test_extract(ctx, fake_client):
    fake_client.posts[GRAPHQL_URL] = submission()

    result = await BuzzlyBackend(ctx).extract(URL)

    assert result == ScrapeResultData(
        source_url=URL,
        author_name="sketchy",
        additional_tags=["coffee", "sketch", "artist:sketchy"],
        description=None,
        images=[ScrapeImage(
            url="https://submissions.buzzly.art/full/morning-coffee.png",
            camo_url="https://submissions.buzzly.art/thumb/morning-coffee.png",
        )],
    )


@pytest.mark.asyncio
async def test_missing_fields_are_named(ctx, fake_client):
    cases = [
        ({"data": {}}, "missing data in response"),
        ({"data": {"fetchSubmissionByUsernameAndSlug": {"submission": None}}}, "missing submission metadata"),
        (submission(account=None), "missing account metadata"),
        (submission(path=None), "missing image path"),
        (submission(tags=None), "missing tags fields"),
    ]
    for index, (reply, message) in enumerate(cases):
        url = f"{URL}-{index}"
        fake_client.posts[GRAPHQL_URL] = reply
        with pytest.raises(ScrapeError, match=message):
            await BuzzlyBackend(ctx).extract(url)


@pytest.mark.asyncio
async def test_reply_without_data(ctx, fake_client):
    fake_client.posts[GRAPHQL_URL] = {"errors": [{"message": "not found"}]}
    with pytest.raises(ScrapeError, match="buzzly request failed"):
        await BuzzlyBackend(ctx).extract(URL)
