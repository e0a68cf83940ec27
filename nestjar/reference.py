"""
Parsing of nested archive references.

A reference names a file that may sit inside one or more archives.
Segments are separated by a delimiter (``!`` unless configured otherwise)::

    /data/outer.jar                              depth 1, the file itself
    /data/outer.jar!/foo                         depth 2
    jar:file:/data/outer.jar!/lib/inner.jar!/foo depth 3
    https://example.org/outer.zip!/inner.zip!/a  depth 3, remote outermost

The first segment is the location of the outermost container, either a
local path or a URL.  Every following segment is an archive path starting
with ``/``; it is matched against entry names by prefix.  The optional
``jar:`` scheme in front of the whole reference is accepted and dropped.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

import fsspec

from .errors import InvalidReference

__all__ = [
    "Reference",
    "DEFAULT_DELIMITER",
    "location_scheme",
]

DEFAULT_DELIMITER = "!"

_REFERENCE_SCHEME = "jar:"
_SCHEME_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]*):")


@dataclass(frozen=True)
class Reference:
    """An immutable, already split nested reference."""

    raw: str
    segments: Tuple[str, ...]
    delimiter: str = DEFAULT_DELIMITER

    @property
    def location(self) -> str:
        return self.segments[0]

    @property
    def entry_path(self) -> Tuple[str, ...]:
        return self.segments[1:]

    @property
    def depth(self) -> int:
        return len(self.segments)

    @property
    def is_nested(self) -> bool:
        return self.depth > 1

    @property
    def leaf(self) -> str:
        return self.segments[-1]

    @property
    def scheme(self) -> Optional[str]:
        """URL scheme of the location, ``None`` for plain paths."""
        return location_scheme(self.location)

    def __str__(self) -> str:
        return self.delimiter.join(self.segments)

    @classmethod
    def parse(
        cls,
        raw: str,
        *,
        delimiter: str = DEFAULT_DELIMITER,
        max_depth: Optional[int] = None,
    ) -> "Reference":
        """Split *raw* into segments and validate its shape.

        Raises :class:`InvalidReference` for anything that cannot name a
        nested entry; nothing is opened here.
        """
        if not isinstance(raw, str) or not raw:
            raise InvalidReference(f"reference must be a non-empty string, got {raw!r}")
        if not delimiter:
            raise InvalidReference("delimiter must not be empty")

        body = raw[len(_REFERENCE_SCHEME):] if raw.startswith(_REFERENCE_SCHEME) else raw
        segments = tuple(body.split(delimiter))

        location = segments[0]
        if not location:
            raise InvalidReference(f"missing container location in {raw!r}")
        scheme = location_scheme(location)
        if scheme is not None and scheme != "file" and scheme not in fsspec.available_protocols():
            raise InvalidReference(f"unsupported location scheme {scheme!r} in {raw!r}")

        for index, segment in enumerate(segments[1:], start=1):
            if not segment.startswith("/") or segment == "/":
                raise InvalidReference(
                    f"segment {index} of {raw!r} must be an archive path starting with '/', got {segment!r}"
                )

        if max_depth is not None and len(segments) > max_depth:
            raise InvalidReference(f"{raw!r} is nested {len(segments)} levels deep, limit is {max_depth}")

        return cls(raw=raw, segments=segments, delimiter=delimiter)


def location_scheme(location: str) -> Optional[str]:
    m = _SCHEME_RE.match(location)
    # single letters are drive names such as C:/Temp/outer.jar
    if m is None or len(m.group(1)) == 1:
        return None
    return m.group(1).lower()
