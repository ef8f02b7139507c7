from .base import Backend, BackendContext
from .buzzly import BuzzlyBackend
from .deviantart import DeviantArtBackend
from .nitter import NitterBackend
from .philomena import PhilomenaBackend
from .raw import RawBackend
from .tumblr import TumblrBackend
from .twitter import TwitterBackend

# Tie-break order, most specific first. When several backends claim a URL
# the one listed earlier wins; Raw is the catch-all and goes last.
BACKEND_PRIORITY: tuple[type[Backend], ...] = (
    TwitterBackend,
    NitterBackend,
    TumblrBackend,
    DeviantArtBackend,
    PhilomenaBackend,
    BuzzlyBackend,
    RawBackend,
)


def build_backends(ctx: BackendContext) -> list[Backend]:
    return [backend_cls(ctx) for backend_cls in BACKEND_PRIORITY]
