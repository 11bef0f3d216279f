"""Command line tools for provisioning the session table."""

import asyncio
import logging
from typing import Optional

import click

from kvsession.config import load_config
from kvsession.logging_config import configure_logging
from kvsession.modules.storage import StorageModule
from kvsession.modules.table import TableAdmin

logger = logging.getLogger("kvsession.table")


async def _create(config, wait: bool) -> bool:
    storage = StorageModule(config.redis_url)
    client = await storage.connect()
    try:
        admin = TableAdmin(client, logger)
        return await admin.create_table(
            config.table_name,
            key_attribute=config.table_key,
            index_names=config.index_keys,
            read_capacity=config.read_capacity,
            write_capacity=config.write_capacity,
            wait=wait,
        )
    finally:
        await storage.disconnect()


async def _delete(config, wait: bool) -> int:
    storage = StorageModule(config.redis_url)
    client = await storage.connect()
    try:
        return await TableAdmin(client, logger).delete_table(config.table_name, wait=wait)
    finally:
        await storage.disconnect()


@click.group()
@click.option("--config-file", "config_file", default=None, help="YAML configuration file")
@click.option("--table-name", "table_name", default=None, help="Override the table name")
@click.option("--redis-url", "redis_url", default=None, help="Override the Redis URL")
@click.pass_context
def main(ctx, config_file: Optional[str], table_name: Optional[str], redis_url: Optional[str]):
    """Manage kvsession tables."""
    overrides = {}
    if table_name:
        overrides["table_name"] = table_name
    if redis_url:
        overrides["redis_url"] = redis_url
    config = load_config(config_file=config_file, **overrides)
    configure_logging(config.log_level)
    ctx.obj = config


@main.command("create-table")
@click.option("--no-wait", is_flag=True, default=False, help="Return without waiting for ACTIVE")
@click.pass_obj
def create_table(config, no_wait: bool):
    """Create the session table (no-op when it exists)."""
    created = asyncio.run(_create(config, wait=not no_wait))
    click.echo(f"{config.table_name}: {'created' if created else 'already exists'}")


@main.command("delete-table")
@click.option("--no-wait", is_flag=True, default=False, help="Return without waiting for removal")
@click.confirmation_option(prompt="Delete the table and every session in it?")
@click.pass_obj
def delete_table(config, no_wait: bool):
    """Delete the session table and all sessions in it."""
    removed = asyncio.run(_delete(config, wait=not no_wait))
    click.echo(f"{config.table_name}: deleted ({removed} keys)")


if __name__ == "__main__":
    main()
