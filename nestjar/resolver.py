"""
Resolution of nested archive references.

``resolve`` walks down the reference one archive at a time: it opens the
outermost container, looks for the first file entry whose ``/``-qualified
name starts with the next segment and either hands that entry to the caller
(last segment) or copies it into memory and scans it as the next container.
A nested scan that finds nothing lets the outer scan carry on with the
following entries.

The handler is called at most once.  Finding nothing is not an error:
``resolve`` returns ``False`` and the handler is never called.

Example:
>>> def show(entry):
...     print(entry.name, entry.read())
>>> resolve("outer.jar!/inner.jar!/hello.txt", show)
/hello.txt b'hi'
True
"""
from __future__ import annotations

import contextlib
import enum
import io
import logging
from dataclasses import dataclass
from typing import BinaryIO, Callable, Iterator, List, Optional, Union

from .container import DEFAULT_CHUNK_SIZE, Container, decoder_errors, materialize, open_container, open_location
from .errors import EntryNotFound, InvalidReference
from .reference import DEFAULT_DELIMITER, Reference

__all__ = [
    "Payload",
    "ResolvedEntry",
    "EntryInfo",
    "ResolverOptions",
    "Resolver",
    "resolve",
    "read_bytes",
    "resolve_name",
    "exists",
    "open_entry",
    "list_entries",
]

logger = logging.getLogger(__name__)

ReferenceLike = Union[str, Reference]


class Payload(enum.Enum):
    """What the handler receives besides the entry name."""

    NAME = "name"
    CONTENT = "content"


@dataclass(frozen=True)
class ResolvedEntry:
    name: str
    depth: int
    payload: Payload
    size: Optional[int] = None
    stream: Optional[BinaryIO] = None
    # archive holding the entry, None when the entry is the location itself
    container: Optional[str] = None

    def _reading(self):
        if self.stream is None:
            raise ValueError(f"{self.name!r} was resolved without its content")
        if self.container is None:
            return contextlib.nullcontext()
        return decoder_errors(self.depth - 1, self.container)

    def read(self) -> bytes:
        """Return the rest of the content; a damaged entry raises ContainerCorrupt."""
        with self._reading():
            return self.stream.read()

    def copy(self, *, limit: Optional[int] = None, chunk_size: int = DEFAULT_CHUNK_SIZE) -> io.BytesIO:
        """Copy the content into a seekable in-memory buffer."""
        with self._reading():
            return materialize(self.stream, self.size, name=self.name, limit=limit, chunk_size=chunk_size)


@dataclass(frozen=True)
class EntryInfo:
    name: str
    is_dir: bool
    size: Optional[int] = None


Handler = Callable[[ResolvedEntry], object]


@dataclass(frozen=True)
class ResolverOptions:
    """Tunables shared by all calls made through one :class:`Resolver`.

    max_depth: int
        Deepest reference accepted, counting the outermost location.
    max_entry_size: int | None
        Refuse to copy nested containers larger than this many bytes.
    """

    delimiter: str = DEFAULT_DELIMITER
    max_depth: int = 64
    max_entry_size: Optional[int] = None
    chunk_size: int = DEFAULT_CHUNK_SIZE


class Resolver:
    def __init__(self, options: Optional[ResolverOptions] = None):
        self.options = options or ResolverOptions()

    def parse(self, reference: ReferenceLike) -> Reference:
        if isinstance(reference, Reference):
            if reference.depth > self.options.max_depth:
                raise InvalidReference(
                    f"{reference.raw!r} is nested {reference.depth} levels deep, limit is {self.options.max_depth}"
                )
            return reference
        return Reference.parse(reference, delimiter=self.options.delimiter, max_depth=self.options.max_depth)

    def resolve(self, reference: ReferenceLike, handler: Handler, *, payload: Payload = Payload.CONTENT) -> bool:
        """Call *handler* with the entry *reference* points to.

        Returns ``True`` when the handler was called and ``False`` when some
        segment matched nothing.
        """
        if handler is None or not callable(handler):
            raise TypeError("handler must be callable")
        ref = self.parse(reference)
        payload = Payload(payload)

        with open_location(ref.location, chunk_size=self.options.chunk_size) as source:
            if not ref.is_nested:
                logger.debug("Reference %s is not nested, delivering the location itself", ref)
                handler(ResolvedEntry(
                    name=ref.location,
                    depth=1,
                    payload=payload,
                    stream=source if payload is Payload.CONTENT else None,
                ))
                return True
            found = self._descend(source, 1, ref.location, ref, handler, payload)

        if not found:
            logger.debug("Nothing matches %s", ref)
        return found

    def _descend(
        self,
        source: BinaryIO,
        depth: int,
        name: str,
        ref: Reference,
        handler: Handler,
        payload: Payload,
    ) -> bool:
        segment = ref.segments[depth]
        innermost = depth == ref.depth - 1

        with open_container(source, depth, name, chunk_size=self.options.chunk_size) as container:
            for entry in container.entries():
                if entry.is_dir or not entry.qualified_name.startswith(segment):
                    continue
                logger.debug("Entry %s with size %s matches %s at depth %d", entry.name, entry.size, segment, depth)

                if innermost:
                    self._deliver(container, entry, handler, payload)
                    return True

                with container.materialize(entry, limit=self.options.max_entry_size) as buffer:
                    if self._descend(buffer, depth + 1, entry.qualified_name, ref, handler, payload):
                        return True
        return False

    @staticmethod
    def _deliver(container: Container, entry, handler: Handler, payload: Payload) -> None:
        if payload is Payload.NAME:
            handler(ResolvedEntry(name=entry.qualified_name, depth=container.depth + 1, payload=payload, size=entry.size))
            return
        with container.open(entry) as stream:
            handler(ResolvedEntry(
                name=entry.qualified_name,
                depth=container.depth + 1,
                payload=payload,
                size=entry.size,
                stream=stream,
                container=container.name,
            ))

    # convenience helpers built on resolve()

    def read_bytes(self, reference: ReferenceLike, *, required: bool = False) -> Optional[bytes]:
        result: List[bytes] = []
        if not self.resolve(reference, lambda entry: result.append(entry.read())):
            if required:
                raise EntryNotFound(reference)
            return None
        return result[0]

    def resolve_name(self, reference: ReferenceLike) -> Optional[str]:
        names: List[str] = []
        self.resolve(reference, lambda entry: names.append(entry.name), payload=Payload.NAME)
        return names[0] if names else None

    def exists(self, reference: ReferenceLike) -> bool:
        return self.resolve(reference, lambda entry: None, payload=Payload.NAME)

    @contextlib.contextmanager
    def open_entry(self, reference: ReferenceLike) -> Iterator[BinaryIO]:
        """Yield a seekable in-memory copy of the entry *reference* names."""
        buffers = []

        def _copy(entry: ResolvedEntry) -> None:
            buffers.append(entry.copy(chunk_size=self.options.chunk_size))

        if not self.resolve(reference, _copy):
            raise EntryNotFound(reference)
        with buffers[0] as fp:
            yield fp

    def list_entries(self, reference: ReferenceLike) -> Optional[List[EntryInfo]]:
        """List the container *reference* points to, ``None`` if it is not found."""
        ref = self.parse(reference)
        listing: List[EntryInfo] = []

        def _scan(entry: ResolvedEntry) -> None:
            with contextlib.ExitStack() as stack:
                source = entry.stream
                # the location itself is seekable, nested entry streams are not
                if entry.depth > 1:
                    source = stack.enter_context(
                        entry.copy(limit=self.options.max_entry_size, chunk_size=self.options.chunk_size)
                    )
                with open_container(source, entry.depth, entry.name, chunk_size=self.options.chunk_size) as container:
                    listing.extend(EntryInfo(e.qualified_name, e.is_dir, e.size) for e in container.entries())

        if not self.resolve(ref, _scan):
            return None
        return listing


def resolve(
    reference: ReferenceLike,
    handler: Handler,
    *,
    payload: Payload = Payload.CONTENT,
    options: Optional[ResolverOptions] = None,
) -> bool:
    return Resolver(options).resolve(reference, handler, payload=payload)


def read_bytes(
    reference: ReferenceLike, *, required: bool = False, options: Optional[ResolverOptions] = None
) -> Optional[bytes]:
    """Return the content of the entry *reference* names, ``None`` if absent."""
    return Resolver(options).read_bytes(reference, required=required)


def resolve_name(reference: ReferenceLike, *, options: Optional[ResolverOptions] = None) -> Optional[str]:
    return Resolver(options).resolve_name(reference)


def exists(reference: ReferenceLike, *, options: Optional[ResolverOptions] = None) -> bool:
    return Resolver(options).exists(reference)


def open_entry(reference: ReferenceLike, *, options: Optional[ResolverOptions] = None):
    return Resolver(options).open_entry(reference)


def list_entries(reference: ReferenceLike, *, options: Optional[ResolverOptions] = None) -> Optional[List[EntryInfo]]:
    return Resolver(options).list_entries(reference)
