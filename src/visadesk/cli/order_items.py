"""CLI helpers for turning --item options into order lines."""

import click
from visadesk.domain.entities import ORDER_STATUSES, NewOrderItem
from visadesk.domain.product import ProductService
from visadesk.utils.amount_parser import parse_amount


def parse_item_spec(spec: str, product_service: ProductService) -> NewOrderItem:
    """Parse ``PRODUCT_ID[:SALE_PRICE[:COST_PRICE[:STATUS]]]``.

    Missing prices default to the product's current list and cost prices.

    Raises:
        ValueError: If the item text is malformed or the product doesn't exist
    """
    parts = [part.strip() for part in spec.split(":")]
    if not parts[0] or len(parts) > 4:
        raise ValueError(f"Invalid item '{spec}'. Expected PRODUCT_ID[:SALE[:COST[:STATUS]]]")
    try:
        product_id = int(parts[0])
    except ValueError:
        raise ValueError(f"Invalid product ID '{parts[0]}' in item '{spec}'")

    product = product_service.get_product(product_id)
    if product is None:
        raise ValueError(f"Product {product_id} not found")

    sale_price = parse_amount(parts[1]) if len(parts) > 1 and parts[1] else product.price
    cost_price = parse_amount(parts[2]) if len(parts) > 2 and parts[2] else product.cost_price
    status = parts[3] if len(parts) > 3 and parts[3] else "pending"
    if status not in ORDER_STATUSES:
        raise ValueError(f"Invalid status '{status}' in item '{spec}'")

    return NewOrderItem(product_id=product_id, sale_price=sale_price, cost_price=cost_price, status=status)


def parse_items_or_exit(
    ctx: click.Context, specs: tuple[str, ...], product_service: ProductService
) -> list[NewOrderItem]:
    """Parse every --item option, or exit with a CLI error."""
    try:
        return [parse_item_spec(spec, product_service) for spec in specs]
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)
