"""Command-line interface for nestjar."""
from __future__ import annotations

import logging
import shutil
from pathlib import Path

import click

from .errors import EntryNotFound, NestjarError
from .reference import DEFAULT_DELIMITER
from .resolver import Payload, Resolver, ResolverOptions

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


@click.group()
@click.option("--delimiter", default=DEFAULT_DELIMITER, show_default=True, help="Segment separator.")
@click.option("--max-depth", default=64, show_default=True, type=int, help="Deepest nesting accepted.")
@click.option("--max-entry-size", default=None, type=int, help="Refuse nested archives larger than this (bytes).")
@click.option("-v", "--verbose", is_flag=True, help="Log every container and match.")
@click.pass_context
def cli(ctx, delimiter: str, max_depth: int, max_entry_size: int | None, verbose: bool):
    """Read files nested inside zip/jar archives, e.g. ``outer.jar!/lib/inner.jar!/foo``."""
    if verbose:
        logging.getLogger("nestjar").setLevel(logging.DEBUG)
    ctx.obj = Resolver(ResolverOptions(delimiter=delimiter, max_depth=max_depth, max_entry_size=max_entry_size))


@cli.command("cat", help="Write the content of REFERENCE to stdout.")
@click.argument("reference")
@click.option("-o", "--output", type=click.Path(dir_okay=False, writable=True, path_type=Path), help="Write to a file instead.")
@click.pass_obj
def cat(resolver: Resolver, reference: str, output: Path | None):
    # buffer the whole entry first so a damaged archive writes nothing
    try:
        with resolver.open_entry(reference) as content:
            with click.open_file(str(output) if output is not None else "-", "wb") as out:
                shutil.copyfileobj(content, out)
    except EntryNotFound as exc:
        raise click.ClickException(f"nothing matches {reference}") from exc
    except NestjarError as exc:
        raise click.ClickException(str(exc)) from exc
    if output is not None:
        click.echo(f"Wrote {output}", err=True)


@cli.command("name", help="Print the archive path REFERENCE resolves to.")
@click.argument("reference")
@click.pass_obj
def name(resolver: Resolver, reference: str):
    _run(resolver, reference, lambda entry: click.echo(entry.name), payload=Payload.NAME)


@cli.command("ls", help="List the entries of the archive REFERENCE points to.")
@click.argument("reference")
@click.pass_obj
def ls(resolver: Resolver, reference: str):
    try:
        entries = resolver.list_entries(reference)
    except NestjarError as exc:
        raise click.ClickException(str(exc)) from exc
    if entries is None:
        raise click.ClickException(f"nothing matches {reference}")
    for entry in entries:
        size = "" if entry.size is None else entry.size
        click.echo(f"{'d' if entry.is_dir else '-'} {size:>10} {entry.name}")


def _run(resolver: Resolver, reference: str, handler, payload: Payload = Payload.CONTENT) -> None:
    try:
        found = resolver.resolve(reference, handler, payload=payload)
    except NestjarError as exc:
        raise click.ClickException(str(exc)) from exc
    if not found:
        raise click.ClickException(f"nothing matches {reference}")


if __name__ == "__main__":  # pragma: no cover
    cli()
