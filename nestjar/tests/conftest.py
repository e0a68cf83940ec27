"""Pytest configuration for nestjar tests."""
from __future__ import annotations

import io
import sys
import zipfile
from pathlib import Path

import pytest

# Ensure project root is importable
PROJECT_ROOT = Path(__file__).resolve().parents[2]  # directory holding the nestjar package
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


def zip_bytes(entries: dict) -> bytes:
    """Build a zip archive in memory.

    Values are bytes, or dicts which become nested archives.  Names ending
    in ``/`` are written as directory entries.
    """
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries.items():
            if isinstance(data, dict):
                data = zip_bytes(data)
            zf.writestr(name, b"" if name.endswith("/") else data)
    return buf.getvalue()


@pytest.fixture()
def make_zip(tmp_path: Path):
    def _make(name: str, entries: dict) -> Path:
        path = tmp_path / name
        path.write_bytes(zip_bytes(entries))
        return path

    return _make


@pytest.fixture()
def outer_jar(make_zip) -> Path:
    """``outer.jar`` with ``inner.jar`` -> ``hello.txt`` and ``lib/inner.jar`` -> ``data.txt``."""
    return make_zip(
        "outer.jar",
        {
            "META-INF/": b"",
            "META-INF/MANIFEST.MF": b"Manifest-Version: 1.0\n",
            "inner.jar": {"hello.txt": b"hi"},
            "lib/": b"",
            "lib/inner.jar": {
                "META-INF/": b"",
                "data.txt": b"nested data\n" * 100,
            },
        },
    )


@pytest.fixture()
def build_zip():
    return zip_bytes


@pytest.fixture()
def damaged_jar(make_zip) -> Path:
    """``outer.jar`` -> ``inner.jar`` -> stored ``hello.txt`` with one byte flipped."""
    payload = b"hello from a stored entry"
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_STORED) as zf:
        zf.writestr("hello.txt", payload)
    inner = bytearray(buf.getvalue())
    inner[inner.index(payload)] ^= 0x01
    return make_zip("damaged.jar", {"inner.jar": bytes(inner)})
