"""Exceptions raised while resolving nested archive references."""
from __future__ import annotations

__all__ = [
    "NestjarError",
    "InvalidReference",
    "ContainerUnavailable",
    "ContainerCorrupt",
    "EntryTooLarge",
    "EntryNotFound",
]


class NestjarError(Exception):
    """Base class of every error raised by nestjar."""


class InvalidReference(NestjarError, ValueError):
    """The reference string is malformed; raised before any I/O happens."""


class ContainerUnavailable(NestjarError):
    """The outermost location could not be opened or read."""

    def __init__(self, location: str, reason: object = None):
        self.location = location
        self.reason = reason
        message = f"cannot open {location!r}"
        if reason is not None:
            message += f": {reason}"
        super().__init__(message)


class ContainerCorrupt(NestjarError):
    """The zip decoder rejected the container found at *depth*.

    Depth 1 is the outermost container, depth 2 the archive stored inside
    it and so on.
    """

    def __init__(self, depth: int, name: str, reason: object = None):
        self.depth = depth
        self.name = name
        self.reason = reason
        message = f"corrupt container {name!r} at depth {depth}"
        if reason is not None:
            message += f": {reason}"
        super().__init__(message)


class EntryTooLarge(NestjarError):
    """A nested archive is bigger than the configured copy limit."""

    def __init__(self, name: str, limit: int):
        self.name = name
        self.limit = limit
        super().__init__(f"entry {name!r} exceeds the {limit} byte limit")


class EntryNotFound(NestjarError, LookupError):
    """Nothing matched where the caller required a match."""

    def __init__(self, reference: object):
        self.reference = reference
        super().__init__(f"no entry matches {str(reference)!r}")
