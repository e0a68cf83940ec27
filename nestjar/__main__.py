"""
Provides the same behaviour as the ``nestjar`` console script, e.g.
``python -m nestjar cat outer.jar!/lib/inner.jar!/foo``.
"""
from __future__ import annotations

from .cli import cli

if __name__ == "__main__":
    cli()
