"""Audit trail commands."""

import json
from datetime import UTC

import click
from visadesk.cli.error_handling import handle_domain_error
from visadesk.domain.audit import AuditService
from visadesk.domain.errors import DomainError
from visadesk.utils.date_parser import end_of_day, parse_date, start_of_day


@click.group()
def audit_group():
    """Review and prune the audit trail."""
    pass


@audit_group.command("list")
@click.option("--entity", help="Entity tag, e.g. BILL, ORDER, PASSPORT")
@click.option("--label", "entity_id", help="Exact record label as shown in the listing")
@click.option("--from", "date_from", help="Earliest day (YYYY-MM-DD or relative like '7 days ago')")
@click.option("--to", "date_to", help="Latest day (YYYY-MM-DD or 'today')")
@click.option("--limit", type=int, default=200, show_default=True, help="At most 500")
@click.option("--offset", type=int, default=0, show_default=True)
@click.option("--diff/--no-diff", "show_diff", default=True, help="Show the recorded payload")
@click.pass_context
def list_entries(
    ctx,
    entity: str | None,
    entity_id: str | None,
    date_from: str | None,
    date_to: str | None,
    limit: int,
    offset: int,
    show_diff: bool,
):
    """List audit entries, newest first.

    Examples:
        visadesk audit list --entity BILL
        visadesk audit list --from "7 days ago" --limit 50
    """
    # Days are local; entries are stored in UTC
    start = end = None
    try:
        if date_from:
            start = start_of_day(parse_date(date_from)).astimezone(UTC)
        if date_to:
            end = end_of_day(parse_date(date_to)).astimezone(UTC)
    except ValueError as e:
        click.echo(f"Error: Invalid date: {e}", err=True)
        ctx.exit(1)

    service = AuditService(ctx.obj["db"])
    try:
        entries = service.list_entries(
            entity=entity.upper() if entity else None,
            entity_id=entity_id,
            date_from=start,
            date_to=end,
            limit=limit,
            offset=offset,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not entries:
        click.echo("No audit entries found.")
        return

    for entry in entries:
        # Stored naive in UTC; shown in local time like the --from/--to days
        created = entry.created_at.replace(tzinfo=UTC).astimezone()
        user = f"user {entry.user_id}" if entry.user_id is not None else "system"
        click.echo(
            f"{created:%Y-%m-%d %H:%M:%S} | {entry.action:6s} | {entry.entity:10s} | "
            f"{entry.entity_id} | {user}"
        )
        if show_diff:
            click.echo(f"    {json.dumps(entry.diff_json, ensure_ascii=False, sort_keys=True)}")


@audit_group.command("cleanup")
@click.argument("days", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def cleanup(ctx, days: int, yes: bool):
    """Delete audit entries older than DAYS days.

    This cannot be undone. The purge itself is recorded as a new entry.
    """
    service = AuditService(ctx.obj["db"])
    try:
        cutoff = service.cutoff_for_days(days)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not yes and not click.confirm(f"Delete every audit entry before {cutoff:%Y-%m-%d %H:%M}?"):
        click.echo("Cleanup cancelled.")
        return

    deleted = service.cleanup_days(days, user_id=ctx.obj["user_id"])
    click.echo(f"Deleted {deleted} audit entr{'y' if deleted == 1 else 'ies'}")


def register_commands(cli):
    """Register audit commands with main CLI."""
    cli.add_command(audit_group, name="audit")
