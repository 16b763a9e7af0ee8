"""Command-line interface for the XDT mini client MCP server."""

import sys
import json
import asyncio
from typing import Any, Awaitable, Callable, Optional

import click

from .config import load_config
from .database import StoreError, ValidationError
from .logging_utils import setup_logging
from .relay_client import RelayError
from .services.item_service import ImportFormatError
from .mcp_server.container import ServiceContainer
from .utils.serialization import safe_json_dumps


@click.group()
@click.option('--log-level', default=None, help='Logging level (DEBUG, INFO, WARNING, ERROR)')
@click.option('--config', '--config-file', help='Path to configuration file (YAML, TOML, or JSON)')
@click.pass_context
def cli(ctx, log_level: Optional[str], config: Optional[str]):
    """XDT mini client tools - send commands and manage the item catalog."""
    ctx.ensure_object(dict)

    app_config = load_config(config_file=config)
    ctx.obj['config'] = app_config

    # CLI flag overrides config
    setup_logging(log_level or app_config.log_level, log_dir=app_config.log_dir)


def _run(ctx, action: Callable[[ServiceContainer], Awaitable[Any]]) -> Any:
    """Run an async action against an initialized container, then shut it down."""
    container = ServiceContainer(ctx.obj['config'])

    async def runner():
        await container.initialize()
        try:
            return await action(container)
        finally:
            await container.shutdown()

    try:
        return asyncio.run(runner())
    except ValidationError as e:
        click.echo(f"❌ Invalid input: {e}", err=True)
        sys.exit(1)
    except StoreError as e:
        click.echo(f"❌ Store error: {e}", err=True)
        sys.exit(1)
    except RelayError as e:
        click.echo(f"❌ Relay error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.pass_context
def health(ctx):
    """Check the document store connection."""

    async def action(container):
        return container.get_service('database').health()

    status = _run(ctx, action)
    click.echo(json.dumps(status, indent=2))
    if status.get('state') != 'connected':
        sys.exit(1)


@cli.command('list-commands')
@click.pass_context
def list_commands(ctx):
    """List the commands the mini client supports."""

    async def action(container):
        return await container.get_service('dispatcher').list_commands()

    click.echo(_run(ctx, action))


@cli.command('send-command')
@click.argument('command_name')
@click.option('--data', 'data', default=None, help='Command payload as a JSON string')
@click.pass_context
def send_command(ctx, command_name: str, data: Optional[str]):
    """Send COMMAND_NAME to the mini client bot."""
    try:
        command_data = json.loads(data) if data else {}
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"Invalid JSON: {e}", param_hint='--data')

    async def action(container):
        return await container.get_service('dispatcher').dispatch(command_name, command_data)

    result = _run(ctx, action)
    for warning in result.warnings:
        click.echo(f"⚠️  {warning}", err=True)

    if result.success:
        click.echo(result.to_text())
    else:
        click.echo(f"❌ {result.to_text()}", err=True)
        sys.exit(1)


@cli.command('search-items')
@click.argument('name')
@click.option('--category', type=int, default=None, help='Exact item category value')
@click.option('--limit', type=int, default=10, show_default=True, help='Maximum number of results')
@click.option('--json', 'as_json', is_flag=True, help='Print results as JSON')
@click.pass_context
def search_items(ctx, name: str, category: Optional[int], limit: int, as_json: bool):
    """Search items whose name contains NAME."""

    async def action(container):
        return await container.get_service('item_service').search_by_name(name, category=category, limit=limit)

    items = _run(ctx, action)

    if as_json:
        click.echo(safe_json_dumps(items))
        return

    if not items:
        click.echo("No items found.")
        return

    click.echo(f"Found {len(items)} items:")
    for item in items:
        click.echo(f"  {item.item_id:>8}  {item.name}  [{item.category_name}]")


@cli.command('import-items')
@click.argument('file_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--yes', is_flag=True, help='Skip confirmation prompt')
@click.pass_context
def import_items(ctx, file_path: str, yes: bool):
    """Replace all bag items with the items in FILE_PATH."""
    if not yes:
        click.confirm("This deletes all existing bag items before importing. Continue?", abort=True)

    async def action(container):
        return await container.get_service('item_service').import_bag_items_from_json(file_path)

    try:
        result = _run(ctx, action)
    except ImportFormatError as e:
        click.echo(f"❌ Invalid import file: {e}", err=True)
        sys.exit(1)

    click.echo(f"✅ Imported {len(result.imported_items)} items (deleted {result.deleted_count})")
    if result.failed_item_ids:
        click.echo(f"⚠️  Skipped items without a name: {result.failed_item_ids}")


if __name__ == '__main__':
    cli()
