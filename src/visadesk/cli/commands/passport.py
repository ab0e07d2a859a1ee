"""Passport management commands."""

import click
from visadesk.cli.error_handling import handle_domain_error
from visadesk.domain.errors import DomainError
from visadesk.domain.passport import PassportService
from visadesk.utils.date_parser import parse_date


def _optional_date(ctx, label: str, value: str | None):
    if value is None:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


@click.group()
def passport_group():
    """Manage passports."""
    pass


@passport_group.command("add")
@click.argument("passport_no")
@click.option("--client", "client_id", type=int, required=True, help="Client ID")
@click.option("--name", "full_name", required=True, help="Holder's full name")
@click.option("--country", required=True, help="Issuing country")
@click.option("--gender", help="Holder's gender")
@click.option("--birth-date", help="Date of birth (YYYY-MM-DD)")
@click.option("--issue-date", help="Issue date (YYYY-MM-DD)")
@click.option("--expiry-date", help="Expiry date (YYYY-MM-DD)")
@click.option("--remark", help="Free-form note")
@click.pass_context
def add_passport(
    ctx,
    passport_no: str,
    client_id: int,
    full_name: str,
    country: str,
    gender: str | None,
    birth_date: str | None,
    issue_date: str | None,
    expiry_date: str | None,
    remark: str | None,
):
    """Register a passport for a client.

    Examples:
        visadesk passport add E12345678 --client 1 --name "Li Wei" --country CN
        visadesk passport add P998877 --client 2 --name "Ana Cruz" --country PH --expiry-date 2030-05-01
    """
    service = PassportService(ctx.obj["db"])
    try:
        passport_id = service.create_passport(
            passport_no=passport_no,
            client_id=client_id,
            country=country,
            full_name=full_name,
            gender=gender,
            date_of_birth=_optional_date(ctx, "birth date", birth_date),
            issue_date=_optional_date(ctx, "issue date", issue_date),
            expiry_date=_optional_date(ctx, "expiry date", expiry_date),
            remark=remark,
            user_id=ctx.obj["user_id"],
        )
        click.echo(f"Added passport {passport_no} for {full_name} (ID: {passport_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@passport_group.command("list")
@click.option("--client", "client_id", type=int, help="Only passports of this client")
@click.pass_context
def list_passports(ctx, client_id: int | None):
    """List passports."""
    service = PassportService(ctx.obj["db"])
    passports = service.list_passports(client_id=client_id)
    if not passports:
        click.echo("No passports found.")
        return

    click.echo("\nPassports:")
    click.echo("-" * 80)
    for p in passports:
        expiry = p.expiry_date.isoformat() if p.expiry_date else "-"
        click.echo(
            f"ID: {p.id:3d} | {p.passport_no:12s} | {p.full_name:20s} | {p.country:6s} | "
            f"Client: {p.client_id} | Expires: {expiry}"
        )


@passport_group.command("expiring")
@click.option("--days", type=int, help="Only passports expiring within this many days")
@click.option("--expired", is_flag=True, help="Only passports that have already expired")
@click.pass_context
def list_expiring(ctx, days: int | None, expired: bool):
    """List passports by expiry date, soonest first.

    Examples:
        visadesk passport expiring --days 90
        visadesk passport expiring --expired
    """
    service = PassportService(ctx.obj["db"])
    try:
        rows = service.list_expiring(days=days, expired=expired)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not rows:
        click.echo("No passports found.")
        return

    if expired:
        click.echo("\nExpired passports:")
    elif days is not None:
        click.echo(f"\nPassports expiring within {days} days:")
    else:
        click.echo("\nPassports by expiry date:")
    click.echo("-" * 80)
    for row in rows:
        p = row.passport
        expiry = p.expiry_date.isoformat() if p.expiry_date else "-"
        click.echo(f"{expiry:10s} | {p.passport_no:12s} | {p.full_name:20s} | {p.country:6s} | {row.client.name}")


@passport_group.command("expiry-report")
@click.pass_context
def expiry_report(ctx):
    """Count passports by how soon they expire."""
    service = PassportService(ctx.obj["db"])
    buckets = service.expiry_buckets()
    labels = {
        "expired": "Expired",
        "le15": "Within 15 days",
        "le30": "16-30 days",
        "le90": "31-90 days",
        "le180": "91-180 days",
        "gt180": "More than 180 days",
    }
    for key, label in labels.items():
        click.echo(f"{label:20s} {buckets[key]:5d}")


@passport_group.command("delete")
@click.argument("passport_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_passport(ctx, passport_id: int, yes: bool):
    """Delete a passport."""
    service = PassportService(ctx.obj["db"])
    passport = service.get_passport(passport_id)
    if passport is None:
        click.echo(f"Error: Passport {passport_id} not found", err=True)
        ctx.exit(1)

    if not yes and not click.confirm(f"Delete passport {passport.passport_no} ({passport.full_name})?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_passport(passport_id, user_id=ctx.obj["user_id"])
        click.echo(f"Deleted passport {passport.passport_no}")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register passport commands with main CLI."""
    cli.add_command(passport_group, name="passport")
