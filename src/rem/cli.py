"""rem CLI entry point."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

import click

from rem import __version__
from rem.errors import RemError

logger = logging.getLogger(__name__)


def _open_manager(ctx: click.Context):
    """Build the stack manager from the CLI options and config file."""
    from rem.config.loader import load_config
    from rem.fs.scoped import ScopedFS
    from rem.stack.manager import StackManager

    try:
        config = load_config(ctx.obj["config_path"])
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    history = ctx.obj["history"]
    if history is None:
        history = config.history_location

    try:
        fs = ScopedFS.for_history(history)
    except RemError as e:
        raise click.ClickException(str(e)) from e
    return StackManager(fs, max_size=config.history_limit), config


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--history",
    envvar="REM_HISTORY",
    default=None,
    help="History directory (absolute, or relative to ~/.config/rem)",
)
@click.option("--config", "-c", type=click.Path(), default=None, help="Config file path")
@click.option("--log-level", default="WARNING", help="Log level")
@click.option("--json-logs", is_flag=True, help="JSON log output")
@click.pass_context
def main(
    ctx: click.Context,
    history: str | None,
    config: str | None,
    log_level: str,
    json_logs: bool,
) -> None:
    """rem - persistent LIFO clipboard history."""
    from rem.config.loader import default_config_path
    from rem.logging_config import setup_logging

    setup_logging(level=log_level, json_output=json_logs)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else default_config_path()
    ctx.obj["history"] = history


@main.command()
@click.argument("files", nargs=-1, type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--title",
    "-t",
    default=None,
    help="Title shown for this push only; list derives titles from content",
)
@click.pass_context
def store(ctx: click.Context, files: tuple[str, ...], title: str | None) -> None:
    """Push stdin or FILES onto the stack."""
    manager, _ = _open_manager(ctx)

    try:
        if not files:
            item = manager.push(click.get_binary_stream("stdin"), title)
            click.echo(f"Stored: {item.title}")
            return
        for filename in files:
            with open(filename, "rb") as f:
                item = manager.push(f, title)
            click.echo(f"Stored from {filename}: {item.title}")
    except RemError as e:
        raise click.ClickException(f"failed to store content: {e}") from e


@main.command("list")
@click.pass_context
def list_items(ctx: click.Context) -> None:
    """List stored items, newest first."""
    manager, config = _open_manager(ctx)
    try:
        items = manager.list()
    except RemError as e:
        raise click.ClickException(str(e)) from e

    if not items:
        click.echo("Stack is empty.")
        return

    hidden = 0
    for index, item in enumerate(items):
        if item.is_binary and not config.show_binary:
            hidden += 1
            continue
        stamp = item.timestamp.strftime("%Y-%m-%d %H:%M:%S")
        click.echo(f"{index:>3}  {stamp}  {item.size:>8}  {item.title}")
    if hidden:
        click.echo(f"{hidden} binary item(s) hidden (set show-binary to true to list them)")


@main.command()
@click.argument("index", type=click.IntRange(min=0))
@click.argument("output", required=False, type=click.Path(dir_okay=False))
@click.pass_context
def get(ctx: click.Context, index: int, output: str | None) -> None:
    """Write the item at INDEX to stdout or OUTPUT."""
    manager, _ = _open_manager(ctx)
    try:
        item = manager.get(index)
        reader = manager.get_content(item.id)
    except RemError as e:
        raise click.ClickException(f"failed to get item at index {index}: {e}") from e

    with reader:
        if output:
            with open(output, "wb") as out:
                shutil.copyfileobj(reader, out)
            click.echo(f"Written to {output}: {item.title}")
        else:
            stdout = click.get_binary_stream("stdout")
            shutil.copyfileobj(reader, stdout)
            stdout.flush()


@main.command()
@click.argument("index", type=click.IntRange(min=0))
@click.pass_context
def delete(ctx: click.Context, index: int) -> None:
    """Delete the item at INDEX."""
    manager, _ = _open_manager(ctx)
    try:
        item = manager.get(index)
        manager.delete_by_id(item.id)
    except RemError as e:
        raise click.ClickException(f"failed to delete item at index {index}: {e}") from e
    click.echo(f"Deleted: {item.title}")


@main.command()
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def clear(ctx: click.Context, force: bool) -> None:
    """Remove every item from the stack."""
    manager, _ = _open_manager(ctx)
    try:
        count = manager.size()
        if count == 0:
            click.echo("Stack is already empty.")
            return
        if not force and not click.confirm(
            f"This will delete {count} item(s) from history. Continue?", default=False
        ):
            click.echo("Cancelled.")
            return
        removed = manager.clear()
    except RemError as e:
        raise click.ClickException(f"failed to clear history: {e}") from e
    click.echo(f"Cleared {removed} item(s) from history.")


@main.command()
@click.pass_context
def size(ctx: click.Context) -> None:
    """Print the number of stored items."""
    manager, _ = _open_manager(ctx)
    try:
        click.echo(str(manager.size()))
    except RemError as e:
        raise click.ClickException(str(e)) from e


@main.group("config")
def config_group() -> None:
    """Manage rem configuration."""


@config_group.command("get")
@click.argument("key")
@click.pass_context
def config_get(ctx: click.Context, key: str) -> None:
    """Print one configuration value."""
    from rem.config.loader import get_value, load_config

    try:
        click.echo(get_value(load_config(ctx.obj["config_path"]), key))
    except ValueError as e:
        raise click.ClickException(str(e)) from e


@config_group.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Set a configuration value."""
    from rem.config.loader import load_config, save_config, set_value

    path = ctx.obj["config_path"]
    try:
        config = set_value(load_config(path), key, value)
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    save_config(config, path)
    logger.info("Updated %s in %s", key, path)
    click.echo(f"Set {key} = {value}")


@config_group.command("list")
@click.pass_context
def config_list(ctx: click.Context) -> None:
    """List all configuration values."""
    from rem.config.loader import list_values, load_config

    try:
        values = list_values(load_config(ctx.obj["config_path"]))
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    click.echo("Current configuration:")
    for key, value in values.items():
        click.echo(f"  {key} = {value}")
