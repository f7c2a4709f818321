"""
Error taxonomy for the ingestion core.

Only input validation and missing capabilities surface to callers as
exceptions. Upstream fetch failures and per-partition write failures are
caught where they happen and reported as counts/messages instead.
"""


class PMNewsError(Exception):
    """Base class for errors raised by pmnews."""


class InvalidRequestError(PMNewsError, ValueError):
    """Caller input rejected before any work is done (dates, id lists)."""


class NotConfiguredError(PMNewsError, RuntimeError):
    """An upstream capability (e.g. the render/scrape API) has no credentials."""


class UpstreamError(PMNewsError, RuntimeError):
    """A network call or upstream parse failed."""


class PersistenceError(PMNewsError, RuntimeError):
    """A write to the article store failed."""
