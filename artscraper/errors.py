"""
Exception taxonomy.

Every layer of a failure keeps its cause (`raise ... from e`), so the
chain reads top-down from "which backend" to "what went wrong". The chain
is reduced to the user-facing error list by ScrapeResultError.from_exception.
"""

from contextlib import contextmanager


class ScrapeError(Exception):
    """A semantic failure with a human-readable message."""


class ClassificationError(ScrapeError):
    """A backend could not answer whether it owns a URL."""


class ExtractionError(ScrapeError):
    """The owning backend failed to produce a result."""


class ConfigurationError(ScrapeError):
    """Invalid process configuration. Raised before anything is served."""


@contextmanager
def error_context(message: str, exc_type: type[ScrapeError] = ScrapeError):
    """
    Wrap any exception raised in the block as `exc_type(message)`.

        with error_context("could not read GT response"):
            data = await client.post_json(...)
    """
    try:
        yield
    except Exception as e:
        raise exc_type(message) from e
