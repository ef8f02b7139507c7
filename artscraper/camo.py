import hashlib
import hmac

from .settings import ScrapeConfig


def camouflage(config: ScrapeConfig, url: str) -> str:
    """
    Rewrite an asset URL so it is fetched through the camo proxy.

    The proxy URL is `<camo_host>/<hex hmac-sha1(key, url)>/<hex url>`, the
    layout camo servers expect. Without a configured key and host the URL is
    returned unchanged.
    """
    camo = config.camo
    if camo is None:
        return url
    digest = hmac.new(camo.key.encode("utf-8"), url.encode("utf-8"), hashlib.sha1).hexdigest()
    encoded = url.encode("utf-8").hex()
    return f"{camo.host}/{digest}/{encoded}"
