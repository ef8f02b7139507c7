import asyncio
from urllib.parse import urlsplit, urlunsplit

import aiohttp

from .errors import ScrapeError

# Lower-level connectivity failures. They are logged, but never shown to
# the caller of the scrape endpoint.
TRANSPORT_ERRORS = (
    aiohttp.ClientError,
    asyncio.TimeoutError,
    OSError,
)


def is_transport_error(exc: BaseException) -> bool:
    return isinstance(exc, TRANSPORT_ERRORS)


def exception_chain(exc: BaseException):
    """
    Yield `exc` and every exception it was raised from, outermost first.
    Follows explicit causes, then implicit context unless suppressed.
    """
    seen = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        yield exc
        if exc.__cause__ is not None:
            exc = exc.__cause__
        elif not exc.__suppress_context__:
            exc = exc.__context__
        else:
            exc = None


def parse_url(url: str) -> str:
    """
    Validate that `url` is an absolute http(s) URL and return it stripped,
    with scheme and host lowercased. Path, query and fragment are kept as is.
    """
    url = (url or "").strip()
    try:
        parts = urlsplit(url)
        parts.port  # raises on garbage ports
    except ValueError as e:
        raise ScrapeError("could not parse URL for scraper") from e
    scheme = parts.scheme.lower()
    if scheme not in {"http", "https"} or not parts.hostname:
        raise ScrapeError("could not parse URL for scraper")
    userinfo, at, hostport = parts.netloc.rpartition("@")
    return urlunsplit(parts._replace(scheme=scheme, netloc=f"{userinfo}{at}{hostport.lower()}"))


def host_of(url: str) -> str | None:
    return urlsplit(url).hostname


def replace_host(url: str, host: str) -> str:
    parts = urlsplit(url)
    netloc = host
    if parts.port:
        netloc = f"{host}:{parts.port}"
    return parts._replace(netloc=netloc).geturl()


def replace_path(url: str, path: str) -> str:
    """Swap the path of `url`, keeping its query string and dropping the fragment."""
    parts = urlsplit(url)
    if not path.startswith("/"):
        path = "/" + path
    path = path.replace("?", "%3F").replace("#", "%23")
    return parts._replace(path=path, fragment="").geturl()


def to_base36(n: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if n == 0:
        return "0"
    sign = "-" if n < 0 else ""
    n = abs(n)
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(digits[r])
    return sign + "".join(reversed(out))


def blank_to_none(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value
