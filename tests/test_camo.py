import hashlib
import hmac

from artscraper.camo import camouflage
from artscraper.settings import ScrapeConfig

ASSET = "https://static.example.org/img/view/2021/3/20/4010154.png"


def test_identity_without_camo_settings(config):
    for url in (ASSET, "https://pbs.twimg.com/media/EwxvzkEXAAMFg7k.jpg", "http://x.test/a?b=c"):
        assert camouflage(config, url) == url


def test_signed_proxy_url_layout(camo_config):
    digest = hmac.new(b"s3cret", ASSET.encode(), hashlib.sha1).hexdigest()
    assert camouflage(camo_config, ASSET) == f"https://camo.example.net/{digest}/{ASSET.encode().hex()}"


def test_deterministic(camo_config):
    assert camouflage(camo_config, ASSET) == camouflage(camo_config, ASSET)


def test_key_changes_signature(camo_config):
    other = ScrapeConfig(camo_key="another", camo_host="https://camo.example.net")
    assert camouflage(camo_config, ASSET) != camouflage(other, ASSET)


def test_trailing_slash_on_host_is_ignored():
    a = ScrapeConfig(camo_key="k", camo_host="https://camo.example.net/")
    b = ScrapeConfig(camo_key="k", camo_host="https://camo.example.net")
    assert camouflage(a, ASSET) == camouflage(b, ASSET)
