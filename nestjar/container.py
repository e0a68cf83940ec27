"""
Reading one archive layer.

Every layer of a nested reference is a zip container read with the standard
library :mod:`zipfile`.  The outermost layer comes from a local path or a URL
(opened through ``fsspec``); deeper layers are matched entries copied into
memory first, because an entry stream is a forward-only view tied to the
archive it was opened from and cannot be handed to a second decoder.

Nothing is ever extracted to disk.
"""
from __future__ import annotations

import contextlib
import io
import logging
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Iterator, Optional
from urllib.parse import urlsplit
from urllib.request import url2pathname

import fsspec

from .errors import ContainerCorrupt, ContainerUnavailable, EntryTooLarge
from .reference import location_scheme

__all__ = [
    "Entry",
    "Container",
    "open_location",
    "open_container",
    "materialize",
    "decoder_errors",
    "DEFAULT_CHUNK_SIZE",
]

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024

# what zipfile raises for damaged, truncated, encrypted or exotic archives
_DECODER_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError, RuntimeError)


@dataclass(frozen=True)
class Entry:
    """One record of a container scan."""

    name: str
    is_dir: bool
    size: Optional[int] = None
    info: Optional[zipfile.ZipInfo] = field(default=None, repr=False, compare=False)

    @property
    def qualified_name(self) -> str:
        return "/" + self.name


@contextlib.contextmanager
def decoder_errors(depth: int, name: str):
    """Turn zipfile failures inside the block into :class:`ContainerCorrupt`."""
    try:
        yield
    except _DECODER_ERRORS as exc:
        raise ContainerCorrupt(depth, name, exc) from exc


def materialize(
    stream: BinaryIO,
    size: Optional[int] = None,
    *,
    name: str = "<stream>",
    limit: Optional[int] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> io.BytesIO:
    """Copy *stream* into a fresh, rewound :class:`io.BytesIO`.

    With a known non-negative *size* exactly that many bytes are read, never
    asking the stream for more than what is left, so a decoder that would
    hand out bytes past the entry cannot leak them into the copy.  Otherwise
    the stream is read to its end.  A stream that ends early yields a shorter
    buffer.
    """
    if size is not None and size >= 0:
        remaining: Optional[int] = size
        if limit is not None and size > limit:
            raise EntryTooLarge(name, limit)
    else:
        remaining = None

    buf = io.BytesIO()
    while remaining is None or remaining > 0:
        want = chunk_size if remaining is None else min(chunk_size, remaining)
        chunk = stream.read(want)
        if not chunk:
            break
        buf.write(chunk)
        if remaining is not None:
            remaining -= len(chunk)
        if limit is not None and buf.tell() > limit:
            raise EntryTooLarge(name, limit)
    buf.seek(0)
    return buf


def _open_raw(location: str):
    scheme = location_scheme(location)
    if scheme is None:
        return Path(location).expanduser().open("rb")
    if scheme == "file":
        return Path(url2pathname(urlsplit(location).path)).open("rb")
    return fsspec.open(location, "rb")


@contextlib.contextmanager
def open_location(location: str, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[BinaryIO]:
    """Yield a readable, seekable binary file for the outermost container."""
    with contextlib.ExitStack() as stack:
        try:
            fp = stack.enter_context(_open_raw(location))
            if not fp.seekable():
                # zipfile needs random access to find the central directory
                logger.debug("Location %s is not seekable, buffering it in memory", location)
                fp = stack.enter_context(materialize(fp, name=location, chunk_size=chunk_size))
        except OSError as exc:
            raise ContainerUnavailable(location, exc) from exc
        logger.debug("Opened location %s", location)
        yield fp


class Container:
    """A zip archive being scanned at a given nesting *depth*."""

    def __init__(self, archive: zipfile.ZipFile, depth: int, name: str, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._archive = archive
        self.depth = depth
        self.name = name
        self.chunk_size = chunk_size

    def entries(self) -> Iterator[Entry]:
        """Yield the entries in archive order."""
        with decoder_errors(self.depth, self.name):
            infos = self._archive.infolist()
        for info in infos:
            yield Entry(name=info.filename, is_dir=info.is_dir(), size=info.file_size, info=info)

    def open(self, entry: Entry) -> BinaryIO:
        with decoder_errors(self.depth, self.name):
            return self._archive.open(entry.info or entry.name)

    def materialize(self, entry: Entry, *, limit: Optional[int] = None) -> io.BytesIO:
        """Copy *entry* out of the archive so it can be scanned as a container."""
        with decoder_errors(self.depth, self.name):
            with self._archive.open(entry.info or entry.name) as stream:
                return materialize(
                    stream,
                    entry.size,
                    name=entry.qualified_name,
                    limit=limit,
                    chunk_size=self.chunk_size,
                )


@contextlib.contextmanager
def open_container(
    source: BinaryIO,
    depth: int,
    name: str,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Iterator[Container]:
    """Open *source* as a zip archive; *source* itself stays open."""
    with decoder_errors(depth, name):
        archive = zipfile.ZipFile(source)
    with archive:
        logger.debug("Scanning %s at depth %d (%d entries)", name, depth, len(archive.infolist()))
        yield Container(archive, depth, name, chunk_size)
