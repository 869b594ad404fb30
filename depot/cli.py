"""CLI entry point — Click group over the storage contract."""
from __future__ import annotations

import logging
import sys

import click
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from depot.config import config_from_env, load_environment
from depot.core import StorageConfigError, StorageError, StorageResult, ZERO_TIME, build_registry
from depot.core.storage.base import StorageBackend

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)


def _backend(ctx: click.Context) -> StorageBackend:
    return ctx.obj["backend"]


def _report(result: StorageResult, message: str) -> None:
    """Print the outcome of a write-style command; exit 1 on failure."""
    if result:
        console.print(f"[green]✓[/green] {escape(message)}")
        return
    kind = result.kind.value if result.kind else "unknown"
    detail = result.error.message if result.error else ""
    err_console.print(f"[red]✗[/red] {escape(f'{message} failed [{kind}] {detail}')}")
    sys.exit(1)


@click.group()
@click.option("--backend", "backend_name", default="", help="Backend name (default: FILESYSTEM_TYPE)")
@click.option("--verbose", is_flag=True, help="Verbose output")
@click.option("--debug", is_flag=True, help="Debug output")
@click.pass_context
def main(ctx: click.Context, backend_name: str, verbose: bool, debug: bool) -> None:
    """depot — put/get/copy/move files on local disk or S3."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )
    load_environment()

    try:
        registry = build_registry(config_from_env())
    except StorageConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    except OSError as exc:
        raise click.ClickException(f"Unable to prepare storage directories: {exc}") from exc

    backend = registry.instance(backend_name or None)
    if backend is None:
        raise click.ClickException(
            f"No storage backend named '{backend_name or registry.default_name}'. "
            f"Available: {', '.join(registry.names())}"
        )
    ctx.obj = {"registry": registry, "backend": backend}


@main.command()
@click.argument("path")
@click.argument("text", required=False)
@click.option("--from-file", "from_file", type=click.Path(exists=True, dir_okay=False),
              help="Upload a local file instead of TEXT")
@click.pass_context
def put(ctx: click.Context, path: str, text: str | None, from_file: str | None) -> None:
    """Write TEXT (or a local file, or stdin) to PATH."""
    backend = _backend(ctx)
    if from_file:
        with open(from_file, "rb") as source:
            result = backend.put_from_file(path, source)
    elif text is not None:
        result = backend.put(path, text)
    else:
        result = backend.put_data(path, click.get_binary_stream("stdin").read())
    _report(result, f"put {path}")


@main.command()
@click.argument("path")
@click.pass_context
def get(ctx: click.Context, path: str) -> None:
    """Print the contents of PATH."""
    try:
        data = _backend(ctx).get(path)
    except StorageError as exc:
        err_console.print(f"[red]✗[/red] {escape(f'get {path} failed [{exc.kind.value}] {exc.message}')}")
        sys.exit(1)
    click.get_binary_stream("stdout").write(data)


@main.command(name="rm")
@click.argument("path")
@click.pass_context
def rm_cmd(ctx: click.Context, path: str) -> None:
    """Delete a file."""
    _report(_backend(ctx).delete(path), f"delete {path}")


@main.command(name="cp")
@click.argument("src")
@click.argument("dst")
@click.pass_context
def cp_cmd(ctx: click.Context, src: str, dst: str) -> None:
    """Copy SRC to DST."""
    _report(_backend(ctx).copy(src, dst), f"copy {src} -> {dst}")


@main.command(name="mv")
@click.argument("src")
@click.argument("dst")
@click.pass_context
def mv_cmd(ctx: click.Context, src: str, dst: str) -> None:
    """Move SRC to DST."""
    _report(_backend(ctx).move(src, dst), f"move {src} -> {dst}")


@main.command()
@click.argument("path")
@click.pass_context
def exists(ctx: click.Context, path: str) -> None:
    """Exit 0 if PATH exists, 1 otherwise."""
    found = _backend(ctx).exists(path)
    console.print("yes" if found else "no")
    sys.exit(0 if found else 1)


@main.command()
@click.argument("path")
@click.pass_context
def stat(ctx: click.Context, path: str) -> None:
    """Show size, modification time and URL of PATH."""
    backend = _backend(ctx)
    modified = backend.last_modified(path)

    table = Table(box=box.SIMPLE, show_header=False)
    table.add_column("field", style="bold")
    table.add_column("value")
    table.add_row("path", path)
    table.add_row("size", str(backend.size(path)))
    table.add_row("modified", "-" if modified == ZERO_TIME else modified.isoformat())
    table.add_row("url", backend.url(path))
    console.print(table)


@main.command()
@click.argument("path")
@click.pass_context
def url(ctx: click.Context, path: str) -> None:
    """Print the public URL of PATH."""
    click.echo(_backend(ctx).url(path))


@main.command()
@click.argument("path")
@click.pass_context
def mkdir(ctx: click.Context, path: str) -> None:
    """Create a directory (a marker object on S3)."""
    _report(_backend(ctx).make_dir(path), f"mkdir {path}")


@main.command()
@click.argument("path")
@click.pass_context
def rmdir(ctx: click.Context, path: str) -> None:
    """Remove a directory (must be empty on local disk)."""
    _report(_backend(ctx).delete_dir(path), f"rmdir {path}")


@main.command()
@click.argument("path")
@click.argument("text")
@click.pass_context
def append(ctx: click.Context, path: str, text: str) -> None:
    """Append TEXT to PATH."""
    _report(_backend(ctx).append(path, text), f"append {path}")


@main.command()
@click.pass_context
def backends(ctx: click.Context) -> None:
    """List registered storage backends."""
    registry = ctx.obj["registry"]
    table = Table(title="Storage backends", box=box.ROUNDED)
    table.add_column("Name", style="cyan")
    table.add_column("Default")
    table.add_column("Backend")
    for name in registry.names():
        table.add_row(
            name,
            "✓" if name == registry.default_name else "",
            repr(registry.instance(name)),
        )
    console.print(table)
