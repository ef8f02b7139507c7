import pytest

from artscraper.backends.raw import RawBackend
from artscraper.camo import camouflage
from artscraper.http_client import HeadResult
from artscraper.models import ScrapeImage, ScrapeResultData

URL = "https://static.example.org/uploads/sunset.PNG"


@pytest.mark.asyncio
@pytest.mark.parametrize("content_type, expected", [
    ("image/png", True),
    ("IMAGE/JPEG; charset=binary", True),
    ("video/webm", True),
    ("text/html; charset=utf-8", False),
    (None, False),
])
async def test_classify_on_content_type(ctx, fake_client, content_type, expected):
    fake_client.heads[URL] = HeadResult(status=200, content_type=content_type)
    assert await RawBackend(ctx).classify(URL) is expected


@pytest.mark.asyncio
async def test_non_200_is_not_raw(ctx, fake_client):
    fake_client.heads[URL] = HeadResult(status=302, content_type="image/png", location="https://x.test/")
    assert await RawBackend(ctx).classify(URL) is False


@pytest.mark.asyncio
async def test_extract_is_the_url_itself(camo_ctx, camo_config):
    result = await RawBackend(camo_ctx).extract(URL)
    assert result == ScrapeResultData(
        source_url=URL,
        images=[ScrapeImage(url=URL, camo_url=camouflage(camo_config, URL))],
    )
