"""Schnitzarchiv management commands."""

import asyncio

import click
from loguru import logger

from schnitzarchiv.database import async_session_maker, init_db
from schnitzarchiv.log_setup import setup_logging
from schnitzarchiv.services.cooccurrence import TagCooccurrenceStore
from schnitzarchiv.services.query_queue import SearchQueryQueue


@click.group()
def cli():
    """Schnitzarchiv - source pipeline manager"""
    setup_logging("cli")


@cli.command("init-db")
def init_db_command():
    """Create all tables (local setups without alembic)."""
    asyncio.run(init_db())
    click.echo("✅ Database initialized")


@cli.command()
@click.argument("query_id", type=int)
def process(query_id):
    """Run the pipeline for one query with the worker budget."""
    from schnitzarchiv.tasks.processing import process_query_task

    result = asyncio.run(process_query_task({}, query_id))
    click.echo(
        f"✅ Query {query_id}: {result['new_sources_added']} added, "
        f"{result['total_for_query']} total, {result['errors_count']} errors"
        f"{' (cancelled)' if result['cancelled'] else ''}"
    )


@cli.command("process-pending")
@click.option("--limit", type=int, default=10, help="Maximum number of pending queries to run")
def process_pending(limit):
    """Run the pipeline for the oldest pending queries."""
    from schnitzarchiv.tasks.processing import process_pending_task

    result = asyncio.run(process_pending_task({}, limit=limit))
    click.echo(
        f"✅ {result['processed']} processed, {result['failed']} failed, "
        f"{result['sources_added']} sources added"
    )


@cli.command("add-query")
@click.argument("text")
def add_query(text):
    """Queue a new search query."""
    if not text.strip():
        raise click.BadParameter("query text must not be empty")

    async def _add():
        async with async_session_maker() as session:
            return await SearchQueryQueue(session).create(text)

    query = asyncio.run(_add())
    click.echo(f"✅ Queued query {query.id}: {query.query}")


@cli.command("rebuild-tags")
def rebuild_tags():
    """Recompute tag co-occurrence counts from all sources."""
    async def _rebuild():
        async with async_session_maker() as session:
            return await TagCooccurrenceStore(session).rebuild()

    pairs = asyncio.run(_rebuild())
    logger.info(f"Rebuilt {pairs} tag pairs")
    click.echo(f"✅ Rebuilt co-occurrence: {pairs} tag pairs")


if __name__ == "__main__":
    cli()
