"""Order domain service."""

import logging
from decimal import Decimal
from typing import Optional

from visadesk.database.base import Database
from visadesk.domain.audit import AuditService, audit_best_effort
from visadesk.domain.entities import (
    ORDER_BILL_STATUSES,
    ORDER_STATUSES,
    NewOrderItem,
    Order as OrderEntity,
    OrderDetail,
    Page,
)
from visadesk.domain.errors import (
    DependencyError,
    NotFoundError,
    ValidationError,
    order_already_billed,
    order_items_frozen,
    order_not_found,
    passport_not_found,
)
from visadesk.domain.money import to_money

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def derive_order_status(item_statuses: list[str]) -> str:
    """Order status implied by its items' statuses.

    All items completed makes the order completed; any item in progress
    makes it processing; anything else leaves it pending.
    """
    if item_statuses and all(status == "completed" for status in item_statuses):
        return "completed"
    if any(status == "processing" for status in item_statuses):
        return "processing"
    return "pending"


class OrderService:
    """Service for managing orders and their items."""

    def __init__(self, db: Database, audit: Optional[AuditService] = None):
        """Initialize order service.

        Args:
            db: Database instance
            audit: Audit recorder; defaults to one over the same database
        """
        self.db = db
        self.audit = audit if audit is not None else AuditService(db)

    def _validate_items(self, items: list[NewOrderItem]) -> None:
        if not items:
            raise ValidationError("Order must have at least one item")
        for item in items:
            if item.status not in ORDER_STATUSES:
                raise ValidationError(f"Unknown item status '{item.status}'")
            sale_price = to_money(item.sale_price, "Sale price")
            cost_price = to_money(item.cost_price, "Cost price")
            if sale_price < ZERO or cost_price < ZERO:
                raise ValidationError("Item prices cannot be negative")
        product_ids = {item.product_id for item in items}
        found = {product.id for product in self.db.get_products_by_ids(list(product_ids))}
        missing = sorted(product_ids - found)
        if missing:
            raise ValidationError(f"Some products not found: {', '.join(str(i) for i in missing)}")

    def _unbilled_order(self, order_id: int, billed_message: str) -> OrderEntity:
        # Call inside a unit of work so no bill can claim the order before the write
        order = self.db.get_order(order_id, for_update=True)
        if order is None:
            raise NotFoundError(order_not_found(order_id))
        if order.bill_status == "billed":
            raise DependencyError(billed_message)
        return order

    def create_order(
        self,
        passport_no: str,
        items: list[NewOrderItem],
        remark: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> OrderDetail:
        """Create an order for a passport.

        Customer, client and country are copied from the passport; totals
        are the sums of the item prices.

        Args:
            passport_no: Passport number the order is for
            items: Order lines with the prices agreed at sale
            remark: Optional note
            user_id: Acting user, if any

        Returns:
            The created order with its lines

        Raises:
            NotFoundError: If the passport doesn't exist
            ValidationError: If there are no items or a product is unknown
        """
        passport = self.db.get_passport_by_number(passport_no)
        if passport is None:
            raise NotFoundError(passport_not_found(passport_no))
        self._validate_items(items)

        with self.db.unit_of_work():
            order_id = self.db.create_order(
                client_id=passport.client_id,
                passport_no=passport.passport_no,
                customer_name=passport.full_name,
                passport_number=passport.passport_no,
                country=passport.country,
                total_amount=sum((item.sale_price for item in items), ZERO),
                total_cost=sum((item.cost_price for item in items), ZERO),
                remark=remark,
            )
            self.db.add_order_items(order_id, items)

        detail = self.db.get_order_details([order_id])[0]
        logger.info("Created order %d for %s, total %s", order_id, passport_no, detail.order.total_amount)
        audit_best_effort(self.audit.record_create, "ORDER", detail.order, user_id=user_id)
        return detail

    def get_order(self, order_id: int) -> OrderDetail:
        """Get an order with its lines.

        Raises:
            NotFoundError: If the order doesn't exist
        """
        details = self.db.get_order_details([order_id])
        if not details:
            raise NotFoundError(order_not_found(order_id))
        return details[0]

    def update_order(
        self,
        order_id: int,
        items: list[NewOrderItem],
        remark: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> OrderDetail:
        """Replace an order's items and recompute totals and status.

        Raises:
            NotFoundError: If the order doesn't exist
            DependencyError: If the order is billed, since its bill total would go stale
            ValidationError: If there are no items or a product is unknown
        """
        self._validate_items(items)

        fields = {
            "total_amount": sum((item.sale_price for item in items), ZERO),
            "total_cost": sum((item.cost_price for item in items), ZERO),
            "order_status": derive_order_status([item.status for item in items]),
        }
        if remark is not None:
            fields["remark"] = remark

        with self.db.unit_of_work():
            before = self._unbilled_order(order_id, order_items_frozen(order_id))
            self.db.delete_order_items(order_id)
            self.db.add_order_items(order_id, items)
            self.db.update_order(order_id, **fields)

        detail = self.db.get_order_details([order_id])[0]
        audit_best_effort(self.audit.record_update, "ORDER", before, detail.order, user_id=user_id)
        return detail

    def update_status(self, order_id: int, order_status: str, user_id: Optional[int] = None) -> OrderEntity:
        """Set an order's status directly.

        Raises:
            NotFoundError: If the order doesn't exist
            ValidationError: If the status is unknown
        """
        if order_status not in ORDER_STATUSES:
            raise ValidationError(
                f"Unknown order status '{order_status}'. Expected one of: {', '.join(ORDER_STATUSES)}"
            )
        before = self.db.get_order(order_id)
        if before is None:
            raise NotFoundError(order_not_found(order_id))

        self.db.update_order(order_id, order_status=order_status)
        after = self.db.get_order(order_id)
        audit_best_effort(self.audit.record_update, "ORDER", before, after, user_id=user_id)
        return after

    def delete_order(self, order_id: int, user_id: Optional[int] = None) -> None:
        """Delete an order that is not on a bill.

        Raises:
            NotFoundError: If the order doesn't exist
            DependencyError: If the order is billed
        """
        with self.db.unit_of_work():
            before = self._unbilled_order(order_id, order_already_billed(order_id))
            self.db.delete_order(order_id)
        logger.info("Deleted order %d", order_id)
        audit_best_effort(self.audit.record_delete, "ORDER", before, user_id=user_id)

    def list_orders(
        self,
        search_text: Optional[str] = None,
        client_id: Optional[int] = None,
        order_status: Optional[str] = None,
        bill_status: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Page:
        """List orders, newest first.

        Raises:
            ValidationError: If a status filter or paging value is invalid
        """
        if order_status is not None and order_status not in ORDER_STATUSES:
            raise ValidationError(f"Unknown order status '{order_status}'")
        if bill_status is not None and bill_status not in ORDER_BILL_STATUSES:
            raise ValidationError(f"Unknown bill status '{bill_status}'")
        if page < 1 or page_size < 1:
            raise ValidationError("Page and page size must be at least 1")
        return self.db.list_orders(
            search_text=search_text,
            client_id=client_id,
            order_status=order_status,
            bill_status=bill_status,
            page=page,
            page_size=page_size,
        )
