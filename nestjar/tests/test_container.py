import io
from pathlib import Path

import pytest

from nestjar.container import Entry, materialize, open_container, open_location
from nestjar.errors import ContainerCorrupt, ContainerUnavailable, EntryTooLarge


class ChunkyStream(io.RawIOBase):
    """Hands out at most a few bytes per read and records every request."""

    def __init__(self, data: bytes, pattern=(3, 1, 7, 2)):
        self._data = data
        self._pos = 0
        self._pattern = pattern
        self._calls = 0
        self.requests: list[int] = []

    def readable(self):
        return True

    def read(self, n=-1):
        self.requests.append(n)
        step = self._pattern[self._calls % len(self._pattern)]
        self._calls += 1
        if n is None or n < 0:
            n = len(self._data)
        chunk = self._data[self._pos:self._pos + min(n, step)]
        self._pos += len(chunk)
        return chunk

    @property
    def position(self) -> int:
        return self._pos


@pytest.mark.parametrize("chunk_size", [1, 4, 5, 1024])
def test_materialize_copies_exactly_declared_size(chunk_size):
    data = bytes(range(256)) * 4
    stream = ChunkyStream(data)

    buf = materialize(stream, 100, chunk_size=chunk_size)

    assert buf.getvalue() == data[:100]
    assert stream.position == 100
    assert buf.tell() == 0


def test_materialize_never_asks_for_more_than_left():
    stream = ChunkyStream(b"x" * 50)
    materialize(stream, 10, chunk_size=8)
    assert stream.requests[0] == 8
    assert all(n <= 8 for n in stream.requests)
    assert stream.position == 10


@pytest.mark.parametrize("size", [None, -1])
def test_materialize_unknown_size_reads_to_end(size):
    data = b"abc" * 1000
    assert materialize(ChunkyStream(data), size, chunk_size=64).getvalue() == data


def test_materialize_short_stream():
    assert materialize(io.BytesIO(b"short"), 100).getvalue() == b"short"


def test_materialize_zero_size():
    stream = ChunkyStream(b"data")
    assert materialize(stream, 0).getvalue() == b""
    assert stream.requests == []


def test_materialize_limit():
    with pytest.raises(EntryTooLarge):
        materialize(io.BytesIO(b"x" * 20), 20, name="/big", limit=10)
    with pytest.raises(EntryTooLarge) as err:
        materialize(io.BytesIO(b"x" * 20), None, name="/big", limit=10, chunk_size=4)
    assert err.value.name == "/big"
    assert err.value.limit == 10
    assert materialize(io.BytesIO(b"x" * 10), 10, limit=10).getvalue() == b"x" * 10


def test_open_location_local_and_file_url(tmp_path: Path):
    path = tmp_path / "plain.bin"
    path.write_bytes(b"payload")

    with open_location(str(path)) as fp:
        assert fp.read() == b"payload"
    assert fp.closed

    with open_location(path.as_uri()) as fp:
        assert fp.read() == b"payload"


def test_open_location_missing(tmp_path: Path):
    missing = tmp_path / "missing.jar"
    with pytest.raises(ContainerUnavailable) as err:
        with open_location(str(missing)):
            pass
    assert err.value.location == str(missing)
    assert isinstance(err.value.__cause__, FileNotFoundError)


def test_container_entries(build_zip):
    source = io.BytesIO(build_zip({"dir/": b"", "dir/a.txt": b"aaa", "b.txt": b""}))

    with open_container(source, 1, "test.zip") as container:
        entries = list(container.entries())
        assert [e.qualified_name for e in entries] == ["/dir/", "/dir/a.txt", "/b.txt"]
        assert [e.is_dir for e in entries] == [True, False, False]
        assert entries[1].size == 3
        with container.open(entries[1]) as fp:
            assert fp.read() == b"aaa"
        assert container.materialize(entries[1]).getvalue() == b"aaa"

    assert not source.closed


def test_entry_qualified_name():
    assert Entry("lib/inner.jar", False, 10).qualified_name == "/lib/inner.jar"


def test_open_container_corrupt():
    with pytest.raises(ContainerCorrupt) as err:
        with open_container(io.BytesIO(b"not a zip at all"), 3, "/inner.jar"):
            pass
    assert err.value.depth == 3
    assert err.value.name == "/inner.jar"
