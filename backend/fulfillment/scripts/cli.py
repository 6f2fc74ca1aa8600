"""Sequence administration CLI.

Usage:
    fulfillment-admin --role admin peek finished_goods_receipt --scope D1
    fulfillment-admin --role admin reset finished_goods_receipt --scope D1 --value 100
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import click
import structlog

from fulfillment.db import async_session_maker, dispose_engine
from fulfillment.logging import setup_logging
from fulfillment.models.enums import DocumentType
from fulfillment.services.exceptions import ServiceError
from fulfillment.services.permissions import Actor, Role
from fulfillment.services.sequences.admin_service import SequenceAdminService

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DOCUMENT_TYPE = click.Choice([t.value for t in DocumentType])


def _run(operation: Callable[[SequenceAdminService], Awaitable[T]]) -> T:
    """Run one admin command in a fresh session and turn service errors into CLI errors."""

    async def _main() -> T:
        try:
            async with async_session_maker() as session:
                return await operation(SequenceAdminService(session))
        finally:
            await dispose_engine()

    try:
        return asyncio.run(_main())
    except ServiceError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.option("--actor-id", default="cli", show_default=True, help="Identity recorded in the audit log.")
@click.option("--role", type=click.Choice([r.value for r in Role]), default=None, help="Role to act as.")
@click.pass_context
def cli(ctx: click.Context, actor_id: str, role: str | None) -> None:
    """Document sequence administration."""
    setup_logging()
    ctx.obj = Actor(id=actor_id, role=Role(role) if role else None)


@cli.command()
@click.argument("document_type", type=DOCUMENT_TYPE)
@click.option("--scope", default=None, help="Destination scope (scoped document types only).")
@click.pass_obj
def peek(actor: Actor, document_type: str, scope: str | None) -> None:
    """Show the current counter value without consuming a number."""
    result = _run(lambda admin: admin.peek_sequence(actor, DocumentType(document_type), scope))
    formatted = result.formatted or click.style("(none minted)", dim=True)
    click.echo(f"{result.document_type} [{result.scope}] = {result.current_value}  {formatted}")


@cli.command(name="list")
@click.pass_obj
def list_counters(actor: Actor) -> None:
    """List all counters."""
    counters = _run(lambda admin: admin.list_sequences(actor))
    if not counters:
        click.echo("No counters yet.")
        return
    for counter in counters:
        click.echo(f"{counter.document_type:<24} {counter.scope:<16} {counter.value}")


@cli.command()
@click.argument("document_type", type=DOCUMENT_TYPE)
@click.option("--scope", default=None, help="Destination scope (scoped document types only).")
@click.pass_obj
def generate(actor: Actor, document_type: str, scope: str | None) -> None:
    """Mint the next document number."""
    number = _run(lambda admin: admin.generate_sequence(actor, DocumentType(document_type), scope))
    click.echo(click.style(number.number, fg="green", bold=True))


@cli.command()
@click.argument("document_type", type=DOCUMENT_TYPE)
@click.argument("record_id")
@click.argument("document_number")
@click.option("--scope", default=None, help="Scope recorded in the audit log (default: record destination).")
@click.pass_obj
def override(actor: Actor, document_type: str, record_id: str, document_number: str, scope: str | None) -> None:
    """Stamp DOCUMENT_NUMBER on RECORD_ID without moving the counter."""
    record = _run(
        lambda admin: admin.override_sequence(actor, DocumentType(document_type), record_id, document_number, scope)
    )
    click.echo(f"{record_id} -> {record.document_number}")


@cli.command()
@click.argument("document_type", type=DOCUMENT_TYPE)
@click.option("--scope", default=None, help="Destination scope (scoped document types only).")
@click.option("--value", type=int, required=True, help="New counter value; the next number is value + 1.")
@click.confirmation_option(prompt="Resetting a counter can produce duplicate document numbers. Continue?")
@click.pass_obj
def reset(actor: Actor, document_type: str, scope: str | None, value: int) -> None:
    """Set a counter to an explicit value."""
    previous = _run(lambda admin: admin.reset_sequence(actor, DocumentType(document_type), scope, value))
    click.echo(f"{document_type}: {previous} -> {value}")


@cli.command(name="init")
@click.argument("document_type", type=DOCUMENT_TYPE)
@click.argument("scope")
@click.pass_obj
def initialize(actor: Actor, document_type: str, scope: str) -> None:
    """Create a counter at 0 for a new destination SCOPE."""
    created = _run(lambda admin: admin.initialize_scope(actor, DocumentType(document_type), scope))
    click.echo("Created." if created else "Already exists.")


if __name__ == "__main__":
    cli()
