"""Product management commands."""

import click
from visadesk.cli.error_handling import handle_domain_error
from visadesk.domain.errors import DomainError
from visadesk.domain.product import ProductService
from visadesk.utils.amount_parser import parse_amount


def _amount_or_exit(ctx, label: str, value: str):
    try:
        return parse_amount(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


@click.group()
def product_group():
    """Manage products and services."""
    pass


@product_group.command("create")
@click.argument("name")
@click.option("--price", required=True, help="List price (e.g., 120.00)")
@click.option("--cost", "cost", required=True, help="Cost price (e.g., 80.00)")
@click.option("--supplier", "supplier_id", type=int, help="Supplier ID")
@click.option("--remark", help="Free-form note")
@click.pass_context
def create_product(ctx, name: str, price: str, cost: str, supplier_id: int | None, remark: str | None):
    """Create a product.

    Examples:
        visadesk product create "Japan tourist visa" --price 120 --cost 80
    """
    service = ProductService(ctx.obj["db"])
    try:
        product_id = service.create_product(
            name=name,
            price=_amount_or_exit(ctx, "price", price),
            cost_price=_amount_or_exit(ctx, "cost", cost),
            supplier_id=supplier_id,
            remark=remark,
            user_id=ctx.obj["user_id"],
        )
        click.echo(f"Created product '{name}' (ID: {product_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@product_group.command("list")
@click.pass_context
def list_products(ctx):
    """List all products."""
    service = ProductService(ctx.obj["db"])
    products = service.list_products()
    if not products:
        click.echo("No products found.")
        return

    click.echo("\nProducts:")
    click.echo("-" * 70)
    for p in products:
        click.echo(f"ID: {p.id:3d} | {p.name:28s} | Price: {p.price:>10} | Cost: {p.cost_price:>10} | {p.status}")


@product_group.command("update")
@click.argument("product_id", type=int)
@click.option("--name", help="New name")
@click.option("--price", help="New list price")
@click.option("--cost", help="New cost price")
@click.option("--status", help="New status")
@click.option("--remark", help="New remark")
@click.pass_context
def update_product(
    ctx,
    product_id: int,
    name: str | None,
    price: str | None,
    cost: str | None,
    status: str | None,
    remark: str | None,
):
    """Update a product. Orders already placed keep their prices."""
    fields = {}
    if name is not None:
        fields["name"] = name
    if price is not None:
        fields["price"] = _amount_or_exit(ctx, "price", price)
    if cost is not None:
        fields["cost_price"] = _amount_or_exit(ctx, "cost", cost)
    if status is not None:
        fields["status"] = status
    if remark is not None:
        fields["remark"] = remark
    if not fields:
        click.echo("Error: Nothing to update.", err=True)
        ctx.exit(1)

    service = ProductService(ctx.obj["db"])
    try:
        service.update_product(product_id, user_id=ctx.obj["user_id"], **fields)
        click.echo(f"Updated product {product_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@product_group.command("delete")
@click.argument("product_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_product(ctx, product_id: int, yes: bool):
    """Delete a product."""
    service = ProductService(ctx.obj["db"])
    product = service.get_product(product_id)
    if product is None:
        click.echo(f"Error: Product {product_id} not found", err=True)
        ctx.exit(1)

    if not yes and not click.confirm(f"Delete product '{product.name}' (ID: {product_id})?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_product(product_id, user_id=ctx.obj["user_id"])
        click.echo(f"Deleted product '{product.name}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register product commands with main CLI."""
    cli.add_command(product_group, name="product")
