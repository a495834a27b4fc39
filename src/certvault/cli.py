"""CLI for certvault."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .cert_storage import CertStorage
from .config import load_storage_config
from .errors import ConfigError, InvalidKeyError, NotExistError, TransientStoreError
from .utils import format_timestamp, humanize_size


app = typer.Typer(help="""\
Certificate storage on an object store (filesystem, Azure Blob, S3).
Store and inspect blobs, and take the same distributed locks ACME
clients use while issuing or renewing certificates.""")

console = Console()

_state = {"config_path": None}


@app.callback()
def main_callback(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file (default: ./certvault.yaml)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Global options."""
    _state["config_path"] = config
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def _get_storage() -> CertStorage:
    """Build storage from config, exit on configuration errors."""
    try:
        config = load_storage_config(_state["config_path"])
        return CertStorage.from_config(config)
    except ConfigError as e:
        console.print(f"[red]error:[/red] {e}")
        raise typer.Exit(1)


def _fail(e: Exception) -> None:
    """Print a storage error and exit."""
    if isinstance(e, NotExistError):
        console.print(f"[red]error:[/red] not found: {e.key}")
    else:
        console.print(f"[red]error:[/red] {e}")
    raise typer.Exit(1)


@app.command()
def put(
    key: str = typer.Argument(..., help="Key to store under"),
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to upload"),
):
    """Store a file's content under KEY."""
    storage = _get_storage()
    data = file.read_bytes()
    try:
        storage.store(key, data)
    except (InvalidKeyError, TransientStoreError) as e:
        _fail(e)
    console.print(f"[green]✓[/green] Stored {key} ({humanize_size(len(data))})")


@app.command()
def get(
    key: str = typer.Argument(..., help="Key to load"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to file instead of stdout"),
):
    """Load the content stored under KEY."""
    storage = _get_storage()
    try:
        data = storage.load(key)
    except (NotExistError, InvalidKeyError, TransientStoreError) as e:
        _fail(e)

    if output:
        output.write_bytes(data)
        console.print(f"[green]✓[/green] Wrote {output} ({humanize_size(len(data))})")
    else:
        typer.echo(data.decode("utf-8", errors="replace"), nl=False)


@app.command()
def rm(key: str = typer.Argument(..., help="Key to delete")):
    """Delete KEY."""
    storage = _get_storage()
    try:
        storage.delete(key)
    except (NotExistError, InvalidKeyError, TransientStoreError) as e:
        _fail(e)
    console.print(f"[green]✓[/green] Deleted {key}")


@app.command()
def exists(key: str = typer.Argument(..., help="Key to check")):
    """Exit 0 if KEY exists, 1 otherwise."""
    storage = _get_storage()
    if storage.exists(key):
        console.print(f"{key}: [green]exists[/green]")
    else:
        console.print(f"{key}: [yellow]missing[/yellow]")
        raise typer.Exit(1)


@app.command()
def stat(key: str = typer.Argument(..., help="Key to inspect")):
    """Show metadata for KEY."""
    storage = _get_storage()
    try:
        info = storage.stat(key)
    except (NotExistError, InvalidKeyError, TransientStoreError) as e:
        _fail(e)

    console.print(f"[bold]Key:[/bold]       {info.key}")
    console.print(f"[bold]Type:[/bold]      {'directory' if info.is_directory else 'file'}")
    if not info.is_directory:
        console.print(f"[bold]Size:[/bold]      {humanize_size(info.size)}")
    if info.modified:
        console.print(f"[bold]Modified:[/bold]  {format_timestamp(info.modified)}")


@app.command()
def ls(
    prefix: str = typer.Argument("", help="Key prefix (default: root)"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="List all levels"),
):
    """List keys under PREFIX."""
    storage = _get_storage()
    try:
        keys = storage.list(prefix, recursive=recursive)
    except (InvalidKeyError, TransientStoreError) as e:
        _fail(e)

    if not keys:
        console.print("[dim]No keys found[/dim]")
        return
    for key in sorted(keys):
        console.print(key, highlight=False)


@app.command()
def lock(key: str = typer.Argument(..., help="Resource key to lock")):
    """Acquire the lock on KEY (waits while another holder has it)."""
    storage = _get_storage()
    with console.status(f"Waiting for lock {key}..."):
        try:
            storage.lock(key)
        except InvalidKeyError as e:
            _fail(e)
    console.print(f"[green]✓[/green] Locked {key}")


@app.command()
def unlock(key: str = typer.Argument(..., help="Resource key to unlock")):
    """Release the lock on KEY (no error if it is not held)."""
    storage = _get_storage()
    try:
        storage.unlock(key)
    except (InvalidKeyError, TransientStoreError) as e:
        _fail(e)
    console.print(f"[green]✓[/green] Unlocked {key}")


@app.command()
def status(key: str = typer.Argument(..., help="Resource key to inspect")):
    """Show who holds the lock on KEY."""
    storage = _get_storage()
    try:
        record = storage.locks.holder_of(key)
    except (InvalidKeyError, TransientStoreError) as e:
        _fail(e)

    if record is None:
        console.print(f"{key}: [green]unlocked[/green]")
        return

    table = Table(show_header=False, box=None)
    table.add_row("Lock", storage.locks.lock_key(key))
    table.add_row("Holder", record.holder)
    table.add_row("Acquired", format_timestamp(record.acquired_at))
    table.add_row("Age", f"{record.age():.1f}s")
    if record.is_stale(storage.locks.stale_after):
        table.add_row("State", "[yellow]stale (will be reclaimed)[/yellow]")
    else:
        table.add_row("State", "[red]held[/red]")
    console.print(table)


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
