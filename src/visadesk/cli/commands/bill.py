"""Bill management commands."""

import click
from visadesk.cli.commands.order import echo_order_detail
from visadesk.cli.error_handling import handle_domain_error
from visadesk.domain.billing import BillingService
from visadesk.domain.entities import BILL_STATUSES
from visadesk.domain.errors import DomainError


@click.group()
def bill_group():
    """Manage bills."""
    pass


@bill_group.command("create")
@click.argument("order_ids", nargs=-1, type=int, required=True)
@click.pass_context
def create_bill(ctx, order_ids: tuple[int, ...]):
    """Bill one client for a set of unbilled orders.

    Examples:
        visadesk bill create 4
        visadesk bill create 4 5 9
    """
    service = BillingService(ctx.obj["db"])
    try:
        bill = service.create_bill(list(order_ids), user_id=ctx.obj["user_id"])
        click.echo(f"Created bill {bill.id} for {bill.order_count} order(s), total {bill.total_amount}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@bill_group.command("list")
@click.option("--search", help="Match client name")
@click.option("--client", "client_id", type=int, help="Client ID")
@click.option("--status", type=click.Choice(BILL_STATUSES), help="Bill status")
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--page-size", type=int, default=10, show_default=True)
@click.pass_context
def list_bills(ctx, search: str | None, client_id: int | None, status: str | None, page: int, page_size: int):
    """List bills, newest first."""
    service = BillingService(ctx.obj["db"])
    try:
        result = service.list_bills(
            search_text=search, client_id=client_id, bill_status=status, page=page, page_size=page_size
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not result.items:
        click.echo("No bills found.")
        return

    click.echo(f"\nBills (page {result.page}/{result.total_pages}, {result.total} total):")
    click.echo("-" * 90)
    for b in result.items:
        click.echo(
            f"ID: {b.id:3d} | Client: {b.client_id:3d} | Orders: {b.order_count:2d} | "
            f"Total: {b.total_amount:>10} | Paid: {b.paid_amount:>10} | "
            f"Remaining: {b.remaining_amount:>10} | {b.bill_status}"
        )


@bill_group.command("show")
@click.argument("bill_id", type=int)
@click.pass_context
def show_bill(ctx, bill_id: int):
    """Show a bill with its payments and orders."""
    service = BillingService(ctx.obj["db"])
    try:
        detail = service.get_bill(bill_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    bill = detail.bill
    client_name = detail.client.name if detail.client is not None else f"client {bill.client_id}"
    click.echo(f"\nBill {bill.id} for {client_name} [{bill.bill_status}]")
    click.echo(f"  Total: {bill.total_amount} | Paid: {bill.paid_amount} | Remaining: {bill.remaining_amount}")

    if detail.payments:
        click.echo("\n  Payments:")
        for p in detail.payments:
            click.echo(f"    ID: {p.id:3d} | {p.payment_date.isoformat()} | {p.amount:>10} | {p.remark or ''}")
    else:
        click.echo("\n  No payments yet.")

    for order_detail in detail.orders:
        echo_order_detail(order_detail)


@bill_group.command("delete")
@click.argument("bill_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_bill(ctx, bill_id: int, yes: bool):
    """Delete a bill and release its orders.

    A bill with payments cannot be deleted; delete the payments first.
    """
    if not yes and not click.confirm(f"Delete bill {bill_id}?"):
        click.echo("Deletion cancelled.")
        return

    service = BillingService(ctx.obj["db"])
    try:
        bill = service.delete_bill(bill_id, user_id=ctx.obj["user_id"])
        click.echo(f"Deleted bill {bill_id}; {len(bill.order_ids)} order(s) are unbilled again")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register bill commands with main CLI."""
    cli.add_command(bill_group, name="bill")
