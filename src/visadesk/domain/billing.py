"""Billing domain service.

Drives the order → bill → payment lifecycle. Orders move between
``unbilled`` and ``billed`` only through bill creation and deletion; a bill's
``paid_amount``, ``remaining_amount`` and ``bill_status`` move only through
payments.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from visadesk.database.base import Database
from visadesk.domain.audit import AuditService, audit_best_effort
from visadesk.domain.entities import BILL_STATUSES, Bill, BillDetail, Page, Payment
from visadesk.domain.errors import (
    DependencyError,
    NotFoundError,
    ValidationError,
    bill_has_payments,
    bill_not_found,
    payment_not_found,
)
from visadesk.domain.money import to_money

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def derive_bill_status(total_amount: Decimal, paid_amount: Decimal) -> str:
    """Bill status for the given totals.

    ``paid`` once nothing remains, ``partial`` once anything is paid,
    ``unpaid`` otherwise.
    """
    if total_amount - paid_amount == ZERO:
        return "paid"
    if paid_amount > ZERO:
        return "partial"
    return "unpaid"


class BillingService:
    """Service for bills and payments."""

    def __init__(self, db: Database, audit: Optional[AuditService] = None):
        """Initialize billing service.

        Args:
            db: Database instance
            audit: Audit recorder; defaults to one over the same database
        """
        self.db = db
        self.audit = audit if audit is not None else AuditService(db)

    def _paid_total(self, bill_id: int) -> Decimal:
        return sum((p.amount for p in self.db.list_payments(bill_id)), ZERO)

    def _store_totals(self, bill: Bill) -> None:
        # Sum what is stored rather than adding deltas, so earlier drift heals
        paid_amount = self._paid_total(bill.id)
        self.db.update_bill_amounts(
            bill.id,
            paid_amount=paid_amount,
            remaining_amount=bill.total_amount - paid_amount,
            bill_status=derive_bill_status(bill.total_amount, paid_amount),
        )

    def create_bill(self, order_ids: list[int], user_id: Optional[int] = None) -> Bill:
        """Group one client's unbilled orders into a bill.

        Args:
            order_ids: IDs of the orders to bill, in display order
            user_id: Acting user, if any

        Returns:
            The created bill

        Raises:
            ValidationError: If the list is empty, contains unknown or
                repeated IDs, spans several clients, or includes a billed order
        """
        if not order_ids:
            raise ValidationError("Bill must have at least one order")

        with self.db.unit_of_work():
            orders = self.db.get_orders_by_ids(order_ids)
            # Repeated IDs collapse to fewer rows, so they fail here too
            if len(orders) != len(order_ids):
                raise ValidationError("Some orders not found")

            client_ids = {order.client_id for order in orders}
            if len(client_ids) > 1:
                raise ValidationError("All orders must belong to the same client")

            billed = [order.id for order in orders if order.bill_status == "billed"]
            if billed:
                raise ValidationError(
                    f"Some orders have already been billed: {', '.join(str(i) for i in billed)}"
                )

            total_amount = sum((order.total_amount for order in orders), ZERO)
            bill_id = self.db.create_bill(
                client_id=client_ids.pop(),
                order_ids=list(order_ids),
                total_amount=total_amount,
            )
            self.db.set_orders_bill_status(list(order_ids), "billed")

        bill = self.db.get_bill(bill_id)
        logger.info("Created bill %d over %d orders, total %s", bill.id, bill.order_count, bill.total_amount)
        audit_best_effort(self.audit.record_create, "BILL", bill, user_id=user_id)
        return bill

    def add_payment(
        self,
        bill_id: int,
        amount: Decimal,
        payment_date: date,
        remark: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> tuple[Payment, Bill]:
        """Apply a payment to a bill.

        Args:
            bill_id: Bill to pay
            amount: Payment amount, positive and at most the remaining amount
            payment_date: Date the money was received
            remark: Optional note
            user_id: Acting user, if any

        Returns:
            The payment and the updated bill

        Raises:
            NotFoundError: If the bill doesn't exist
            ValidationError: If the amount is not positive, has fractions of a
                cent, or exceeds what remains
        """
        amount = to_money(amount, "Payment amount")
        with self.db.unit_of_work():
            bill = self.db.get_bill(bill_id, for_update=True)
            if bill is None:
                raise NotFoundError(bill_not_found(bill_id))
            if amount <= ZERO:
                raise ValidationError("Payment amount must be greater than 0")
            remaining_amount = bill.total_amount - self._paid_total(bill_id)
            if amount > remaining_amount:
                raise ValidationError(
                    f"Payment amount {amount} cannot exceed remaining amount {remaining_amount}"
                )

            payment_id = self.db.create_payment(
                bill_id=bill_id, amount=amount, payment_date=payment_date, remark=remark
            )
            self._store_totals(bill)

        payment = self.db.get_payment(payment_id)
        updated = self.db.get_bill(bill_id)
        logger.info("Recorded payment %s on bill %d, now %s", amount, bill_id, updated.bill_status)
        audit_best_effort(self.audit.record_create, "PAYMENT", payment, user_id=user_id)
        return payment, updated

    def delete_bill(self, bill_id: int, user_id: Optional[int] = None) -> Bill:
        """Delete a bill with no payments and release its orders.

        Returns:
            The bill as it was before deletion

        Raises:
            NotFoundError: If the bill doesn't exist
            DependencyError: If the bill has payments (a ValidationError)
        """
        with self.db.unit_of_work():
            bill = self.db.get_bill(bill_id, for_update=True)
            if bill is None:
                raise NotFoundError(bill_not_found(bill_id))
            payments = self.db.list_payments(bill_id)
            if payments:
                raise DependencyError(bill_has_payments(bill_id, len(payments)))

            self.db.set_orders_bill_status(list(bill.order_ids), "unbilled")
            self.db.delete_bill(bill_id)

        logger.info("Deleted bill %d, released %d orders", bill_id, len(bill.order_ids))
        audit_best_effort(self.audit.record_delete, "BILL", bill, user_id=user_id)
        return bill

    def delete_payment(self, payment_id: int, user_id: Optional[int] = None) -> Bill:
        """Delete a payment and recompute its bill from the payments left.

        Returns:
            The updated bill

        Raises:
            NotFoundError: If the payment doesn't exist
        """
        with self.db.unit_of_work():
            payment = self.db.get_payment(payment_id)
            if payment is None:
                raise NotFoundError(payment_not_found(payment_id))
            bill = self.db.get_bill(payment.bill_id, for_update=True)
            if bill is None:
                raise NotFoundError(bill_not_found(payment.bill_id))

            self.db.delete_payment(payment_id)
            self._store_totals(bill)

        updated = self.db.get_bill(bill.id)
        logger.info("Deleted payment %d from bill %d, now %s", payment_id, bill.id, updated.bill_status)
        audit_best_effort(self.audit.record_delete, "PAYMENT", payment, user_id=user_id)
        return updated

    def list_bills(
        self,
        search_text: Optional[str] = None,
        client_id: Optional[int] = None,
        bill_status: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Page:
        """List bills, newest first.

        Args:
            search_text: Optional client name fragment
            client_id: Optional client filter
            bill_status: Optional status filter (unpaid, partial, paid)
            page: 1-based page number
            page_size: Bills per page

        Raises:
            ValidationError: If the status or paging values are invalid
        """
        if bill_status is not None and bill_status not in BILL_STATUSES:
            raise ValidationError(
                f"Unknown bill status '{bill_status}'. Expected one of: {', '.join(BILL_STATUSES)}"
            )
        if page < 1 or page_size < 1:
            raise ValidationError("Page and page size must be at least 1")
        return self.db.list_bills(
            search_text=search_text,
            client_id=client_id,
            bill_status=bill_status,
            page=page,
            page_size=page_size,
        )

    def get_bill(self, bill_id: int) -> BillDetail:
        """Get a bill with its client, payments and resolved orders.

        Raises:
            NotFoundError: If the bill doesn't exist
        """
        bill = self.db.get_bill(bill_id)
        if bill is None:
            raise NotFoundError(bill_not_found(bill_id))
        return BillDetail(
            bill=bill,
            client=self.db.get_client(bill.client_id),
            payments=self.db.list_payments(bill_id),
            orders=self.db.get_order_details(list(bill.order_ids)),
        )
