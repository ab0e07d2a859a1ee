"""Client management commands."""

import click
from visadesk.cli.error_handling import handle_domain_error
from visadesk.domain.client import ClientService
from visadesk.domain.errors import DomainError


@click.group()
def client_group():
    """Manage clients."""
    pass


@client_group.command("create")
@click.argument("name", metavar="CLIENT_NAME")
@click.option("--remark", help="Free-form note")
@click.pass_context
def create_client(ctx, name: str, remark: str | None):
    """Create a new client.

    Examples:
        visadesk client create "Sunrise Travel"
        visadesk client create "Li Wei" --remark "walk-in"
    """
    service = ClientService(ctx.obj["db"])
    try:
        client_id = service.create_client(name=name, remark=remark, user_id=ctx.obj["user_id"])
        click.echo(f"Created client '{name.strip()}' (ID: {client_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@client_group.command("list")
@click.pass_context
def list_clients(ctx):
    """List all clients."""
    service = ClientService(ctx.obj["db"])

    clients = service.list_clients()
    if not clients:
        click.echo("No clients found.")
        return

    click.echo("\nClients:")
    click.echo("-" * 60)
    for c in clients:
        click.echo(f"ID: {c.id:3d} | {c.name:24s} | {c.remark or ''}")


@client_group.command("update")
@click.argument("client_id", type=int)
@click.option("--name", help="New client name")
@click.option("--remark", help="New remark")
@click.pass_context
def update_client(ctx, client_id: int, name: str | None, remark: str | None) -> None:
    """Rename a client or change its remark."""
    if name is None and remark is None:
        click.echo("Error: Nothing to update; pass --name and/or --remark.", err=True)
        ctx.exit(1)

    service = ClientService(ctx.obj["db"])
    try:
        updated = service.update_client(client_id, name=name, remark=remark, user_id=ctx.obj["user_id"])
        click.echo(f"Updated client {client_id} ('{updated.name}')")
    except DomainError as e:
        handle_domain_error(ctx, e)


@client_group.command("delete")
@click.argument("client_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_client(ctx, client_id: int, yes: bool) -> None:
    """Delete a client.

    The client can only be deleted once it has no passports, orders or bills.
    """
    service = ClientService(ctx.obj["db"])
    client = service.get_client(client_id)
    if client is None:
        click.echo(f"Error: Client {client_id} not found", err=True)
        ctx.exit(1)

    if not yes and not click.confirm(f"Are you sure you want to delete client '{client.name}' (ID: {client_id})?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_client(client_id, user_id=ctx.obj["user_id"])
        click.echo(f"Deleted client '{client.name}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register client commands with main CLI."""
    cli.add_command(client_group, name="client")
