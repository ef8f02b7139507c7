import logging
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, TypeAdapter

from .utils import exception_chain, is_transport_error

logger = logging.getLogger(__name__)


class ScrapeImage(BaseModel):
    """
    One discovered asset.

    Fields:
        url      : Original (or highest resolution found) asset URL.
        camo_url : The same asset behind the camo proxy (or `url` itself
                   when camo is not configured).

    Two images are equal when both URLs match ignoring ASCII case;
    upstream platforms are not consistent about URL casing.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str
    camo_url: str

    def __eq__(self, other):
        if not isinstance(other, ScrapeImage):
            return NotImplemented
        return (
            self.url.lower() == other.url.lower()
            and self.camo_url.lower() == other.camo_url.lower()
        )

    def __hash__(self):
        return hash((self.url.lower(), self.camo_url.lower()))


class ScrapeResultData(BaseModel):
    """
    Normalized post metadata returned by a backend.

    `images` keeps discovery order. Backends that try several hi-res
    strategies append every variant they find, so one asset may show up
    more than once at different resolutions.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    source_url: Optional[str] = None
    author_name: Optional[str] = None
    additional_tags: Optional[list[str]] = None
    description: Optional[str] = None
    images: list[ScrapeImage] = []


class ScrapeResultError(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    errors: list[str]

    @classmethod
    def from_message(cls, message: str) -> "ScrapeResultError":
        return cls(errors=[message])

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ScrapeResultError":
        """
        Reduce a failure to the user-facing error list.

        Walks the whole cause chain, outermost first, and drops every layer
        that is a transport error (connection, DNS, timeout, bad status).
        """
        logger.debug("request error: %s", exc)
        errors = []
        for layer in exception_chain(exc):
            if is_transport_error(layer):
                logger.debug("request error chain (hidden): %r", layer)
                continue
            message = str(layer) or type(layer).__name__
            logger.debug("request error chain %d: %s", len(errors), message)
            errors.append(message)
        return cls(errors=errors)


# Untagged on the wire: the JSON shape alone tells the variants apart.
# None means no backend recognized the URL.
ScrapeResult = Union[ScrapeResultError, ScrapeResultData, None]

_result_adapter = TypeAdapter(ScrapeResult)


def dump_result(result: ScrapeResult) -> bytes:
    return _result_adapter.dump_json(result)


def parse_result(raw: str | bytes) -> ScrapeResult:
    return _result_adapter.validate_json(raw)
