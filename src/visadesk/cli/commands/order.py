"""Order management commands."""

import click
from visadesk.cli.error_handling import handle_domain_error
from visadesk.cli.order_items import parse_items_or_exit
from visadesk.domain.entities import ORDER_BILL_STATUSES, ORDER_STATUSES, OrderDetail
from visadesk.domain.errors import DomainError
from visadesk.domain.order import OrderService
from visadesk.domain.product import ProductService


def echo_order_detail(detail: OrderDetail) -> None:
    """Print an order and its lines."""
    order = detail.order
    click.echo(f"\nOrder {order.id}: {order.customer_name} ({order.passport_number}, {order.country})")
    click.echo(f"  Client: {order.client_id} | Status: {order.order_status} | Billing: {order.bill_status}")
    click.echo(f"  Total: {order.total_amount} | Cost: {order.total_cost}")
    if order.remark:
        click.echo(f"  Remark: {order.remark}")
    for line in detail.lines:
        name = line.product.name if line.product is not None else f"product {line.item.product_id}"
        click.echo(
            f"    - {name:28s} | Sale: {line.item.sale_price:>10} | Cost: {line.item.cost_price:>10} | {line.item.status}"
        )


@click.group()
def order_group():
    """Manage orders."""
    pass


@order_group.command("create")
@click.option("--passport", "passport_no", required=True, help="Passport number the order is for")
@click.option(
    "--item",
    "items",
    multiple=True,
    required=True,
    help="PRODUCT_ID[:SALE[:COST[:STATUS]]]; repeat for several lines",
)
@click.option("--remark", help="Free-form note")
@click.pass_context
def create_order(ctx, passport_no: str, items: tuple[str, ...], remark: str | None):
    """Create an order.

    Prices default to the product's current prices.

    Examples:
        visadesk order create --passport E12345678 --item 1
        visadesk order create --passport E12345678 --item 1:150 --item 2:60:40:processing
    """
    db = ctx.obj["db"]
    new_items = parse_items_or_exit(ctx, items, ProductService(db))
    service = OrderService(db)
    try:
        detail = service.create_order(passport_no, new_items, remark=remark, user_id=ctx.obj["user_id"])
        click.echo(f"Created order {detail.order.id} for {detail.order.customer_name} (total {detail.order.total_amount})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@order_group.command("update")
@click.argument("order_id", type=int)
@click.option("--item", "items", multiple=True, required=True, help="PRODUCT_ID[:SALE[:COST[:STATUS]]]")
@click.option("--remark", help="Free-form note")
@click.pass_context
def update_order(ctx, order_id: int, items: tuple[str, ...], remark: str | None):
    """Replace an order's items; totals and status are recomputed."""
    db = ctx.obj["db"]
    new_items = parse_items_or_exit(ctx, items, ProductService(db))
    service = OrderService(db)
    try:
        detail = service.update_order(order_id, new_items, remark=remark, user_id=ctx.obj["user_id"])
        click.echo(f"Updated order {order_id}: total {detail.order.total_amount}, status {detail.order.order_status}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@order_group.command("status")
@click.argument("order_id", type=int)
@click.argument("status", type=click.Choice(ORDER_STATUSES))
@click.pass_context
def set_status(ctx, order_id: int, status: str):
    """Set an order's status."""
    service = OrderService(ctx.obj["db"])
    try:
        service.update_status(order_id, status, user_id=ctx.obj["user_id"])
        click.echo(f"Order {order_id} is now {status}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@order_group.command("show")
@click.argument("order_id", type=int)
@click.pass_context
def show_order(ctx, order_id: int):
    """Show an order with its items."""
    service = OrderService(ctx.obj["db"])
    try:
        echo_order_detail(service.get_order(order_id))
    except DomainError as e:
        handle_domain_error(ctx, e)


@order_group.command("list")
@click.option("--search", help="Match customer, passport number, country or client name")
@click.option("--client", "client_id", type=int, help="Client ID")
@click.option("--status", type=click.Choice(ORDER_STATUSES), help="Order status")
@click.option("--billing", type=click.Choice(ORDER_BILL_STATUSES), help="Billing status")
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--page-size", type=int, default=10, show_default=True)
@click.pass_context
def list_orders(
    ctx,
    search: str | None,
    client_id: int | None,
    status: str | None,
    billing: str | None,
    page: int,
    page_size: int,
):
    """List orders, newest first."""
    service = OrderService(ctx.obj["db"])
    try:
        result = service.list_orders(
            search_text=search,
            client_id=client_id,
            order_status=status,
            bill_status=billing,
            page=page,
            page_size=page_size,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not result.items:
        click.echo("No orders found.")
        return

    click.echo(f"\nOrders (page {result.page}/{result.total_pages}, {result.total} total):")
    click.echo("-" * 90)
    for o in result.items:
        click.echo(
            f"ID: {o.id:3d} | {o.customer_name:20s} | {o.passport_number:12s} | "
            f"Total: {o.total_amount:>10} | {o.order_status:10s} | {o.bill_status}"
        )


@order_group.command("delete")
@click.argument("order_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_order(ctx, order_id: int, yes: bool):
    """Delete an order. Billed orders cannot be deleted."""
    if not yes and not click.confirm(f"Delete order {order_id}?"):
        click.echo("Deletion cancelled.")
        return

    service = OrderService(ctx.obj["db"])
    try:
        service.delete_order(order_id, user_id=ctx.obj["user_id"])
        click.echo(f"Deleted order {order_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register order commands with main CLI."""
    cli.add_command(order_group, name="order")
