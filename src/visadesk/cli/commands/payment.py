"""Payment commands."""

import click
from visadesk.cli.error_handling import handle_domain_error
from visadesk.domain.billing import BillingService
from visadesk.domain.errors import DomainError
from visadesk.utils.amount_parser import parse_amount
from visadesk.utils.date_parser import parse_date


@click.group()
def payment_group():
    """Record and remove bill payments."""
    pass


@payment_group.command("add")
@click.argument("bill_id", type=int)
@click.argument("amount")
@click.option("--date", "payment_date", default="today", show_default=True, help="Payment date (YYYY-MM-DD or 'today', 'yesterday')")
@click.option("--remark", help="Free-form note")
@click.pass_context
def add_payment(ctx, bill_id: int, amount: str, payment_date: str, remark: str | None):
    """Record a payment against a bill.

    Examples:
        visadesk payment add 3 60
        visadesk payment add 3 "¥1,200.00" --date 2024-05-02 --remark "bank transfer"
    """
    try:
        parsed_amount = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)
    try:
        parsed_date = parse_date(payment_date)
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)

    service = BillingService(ctx.obj["db"])
    try:
        payment, bill = service.add_payment(
            bill_id, parsed_amount, parsed_date, remark=remark, user_id=ctx.obj["user_id"]
        )
        click.echo(f"Recorded payment {payment.id} of {payment.amount} on bill {bill_id}")
        click.echo(f"Bill is {bill.bill_status}: paid {bill.paid_amount}, remaining {bill.remaining_amount}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@payment_group.command("delete")
@click.argument("payment_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_payment(ctx, payment_id: int, yes: bool):
    """Delete a payment; its bill is recomputed from the payments left."""
    if not yes and not click.confirm(f"Delete payment {payment_id}?"):
        click.echo("Deletion cancelled.")
        return

    service = BillingService(ctx.obj["db"])
    try:
        bill = service.delete_payment(payment_id, user_id=ctx.obj["user_id"])
        click.echo(f"Deleted payment {payment_id}")
        click.echo(f"Bill {bill.id} is {bill.bill_status}: paid {bill.paid_amount}, remaining {bill.remaining_amount}")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register payment commands with main CLI."""
    cli.add_command(payment_group, name="payment")
