"""Exception taxonomy for the ranking and rewards engine.

Pure computation functions raise only :class:`InvalidArgument` and
:class:`ConfigurationError`.  :class:`UpstreamUnavailable` marks a failing
storage collaborator; read paths swallow it inside the resolution policy,
write paths let it bubble to the HTTP layer.
"""

from __future__ import annotations


class HallOfEliteError(Exception):
    """Base class for all engine errors."""


class InvalidArgument(HallOfEliteError, ValueError):
    """A caller-supplied value violates a numeric or format precondition."""

    def __init__(self, detail: str, field: str | None = None) -> None:
        self.detail = detail
        self.field = field
        super().__init__(detail)


class ConfigurationError(HallOfEliteError):
    """An engine-internal table is inconsistent (overlapping bands, bad weights)."""


class UpstreamUnavailable(HallOfEliteError):
    """A storage collaborator errored or is not provisioned."""

    def __init__(self, source: str, detail: str) -> None:
        self.source = source
        self.detail = detail
        super().__init__(f"{source} unavailable: {detail}")


class NotFound(HallOfEliteError):
    """Raised by the HTTP layer when a resource legitimately does not exist."""
