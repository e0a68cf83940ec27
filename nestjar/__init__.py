"""nestjar package - read files nested inside zip/jar archives without extracting them.

This package provides:
    • Reference – parse ``outer.jar!/lib/inner.jar!/foo`` style references.
    • resolve – descend through the nested archives and hand the entry to a callback.
    • read_bytes / open_entry / list_entries – convenience helpers built on resolve.
    • CLI utilities under nestjar.cli (Click).

Everything happens in memory; intermediate archives never touch the disk.
"""

__all__ = [
    "Reference",
    "Payload",
    "ResolvedEntry",
    "EntryInfo",
    "Resolver",
    "ResolverOptions",
    "resolve",
    "read_bytes",
    "resolve_name",
    "exists",
    "open_entry",
    "list_entries",
    "NestjarError",
    "InvalidReference",
    "ContainerUnavailable",
    "ContainerCorrupt",
    "EntryTooLarge",
    "EntryNotFound",
]

from .errors import (  # noqa: E402
    ContainerCorrupt,
    ContainerUnavailable,
    EntryNotFound,
    EntryTooLarge,
    InvalidReference,
    NestjarError,
)
from .reference import Reference  # noqa: E402
from .resolver import (  # noqa: E402
    EntryInfo,
    Payload,
    ResolvedEntry,
    Resolver,
    ResolverOptions,
    exists,
    list_entries,
    open_entry,
    read_bytes,
    resolve,
    resolve_name,
)
