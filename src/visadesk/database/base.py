"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

# Import entities directly; the domain package imports services lazily
from visadesk.domain.entities import (
    AuditEntry,
    Bill,
    Client,
    NewOrderItem,
    Order,
    OrderDetail,
    Page,
    Passport,
    Payment,
    Product,
)


class Database(ABC):
    """Abstract database interface for visadesk.

    Every write commits on its own unless it runs inside ``unit_of_work()``,
    in which case all writes commit together when the block exits normally
    and are rolled back if it raises.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def unit_of_work(self) -> AbstractContextManager[None]:
        """Group writes into one transaction.

        Usage::

            with db.unit_of_work():
                db.create_bill(...)
                db.set_orders_bill_status(...)

        Nested blocks join the outermost one.
        """
        pass

    # Client operations
    @abstractmethod
    def create_client(self, name: str, remark: Optional[str] = None) -> int:
        """Create a client. Returns client ID."""
        pass

    @abstractmethod
    def get_client(self, client_id: int) -> Optional[Client]:
        """Get client by ID."""
        pass

    @abstractmethod
    def get_client_by_name(self, name: str) -> Optional[Client]:
        """Get client by exact name."""
        pass

    @abstractmethod
    def list_clients(self) -> list[Client]:
        """List all clients ordered by name."""
        pass

    @abstractmethod
    def update_client(self, client_id: int, name: Optional[str] = None, remark: Optional[str] = None) -> None:
        """Update client fields that are not None."""
        pass

    @abstractmethod
    def delete_client(self, client_id: int) -> None:
        """Delete a client."""
        pass

    @abstractmethod
    def get_client_dependency_counts(self, client_id: int) -> tuple[int, int, int]:
        """Return (passport_count, order_count, bill_count) for a client."""
        pass

    # Passport operations
    @abstractmethod
    def create_passport(self, passport_no: str, client_id: int, country: str, full_name: str, **fields: Any) -> int:
        """Create a passport. Extra keyword fields match Passport attributes. Returns passport ID."""
        pass

    @abstractmethod
    def get_passport(self, passport_id: int) -> Optional[Passport]:
        """Get passport by ID."""
        pass

    @abstractmethod
    def get_passport_by_number(self, passport_no: str) -> Optional[Passport]:
        """Get passport by passport number."""
        pass

    @abstractmethod
    def list_passports(self, client_id: Optional[int] = None) -> list[Passport]:
        """List passports, optionally filtered by client."""
        pass

    @abstractmethod
    def list_passports_by_expiry(
        self, after: Optional[date] = None, until: Optional[date] = None
    ) -> list[tuple[Passport, Client]]:
        """List passports whose expiry date is after ``after`` and on or before ``until``.

        Either bound may be None. Results are ordered by expiry date, soonest
        first, with passports lacking an expiry date last; each comes with its client.
        """
        pass

    @abstractmethod
    def count_passports_by_expiry(self, after: Optional[date] = None, until: Optional[date] = None) -> int:
        """Count passports with an expiry date in (after, until]."""
        pass

    @abstractmethod
    def update_passport(self, passport_id: int, **fields: Any) -> None:
        """Update the given passport fields."""
        pass

    @abstractmethod
    def delete_passport(self, passport_id: int) -> None:
        """Delete a passport."""
        pass

    # Product operations
    @abstractmethod
    def create_product(
        self,
        name: str,
        price: Decimal,
        cost_price: Decimal,
        supplier_id: Optional[int] = None,
        status: str = "active",
        remark: Optional[str] = None,
    ) -> int:
        """Create a product. Returns product ID."""
        pass

    @abstractmethod
    def get_product(self, product_id: int) -> Optional[Product]:
        """Get product by ID."""
        pass

    @abstractmethod
    def get_products_by_ids(self, product_ids: list[int]) -> list[Product]:
        """Get the products whose IDs are in the given list."""
        pass

    @abstractmethod
    def list_products(self) -> list[Product]:
        """List all products ordered by name."""
        pass

    @abstractmethod
    def update_product(self, product_id: int, **fields: Any) -> None:
        """Update the given product fields."""
        pass

    @abstractmethod
    def delete_product(self, product_id: int) -> None:
        """Delete a product."""
        pass

    # Order operations
    @abstractmethod
    def create_order(
        self,
        client_id: int,
        passport_no: str,
        customer_name: str,
        passport_number: str,
        country: str,
        total_amount: Decimal,
        total_cost: Decimal,
        remark: Optional[str] = None,
    ) -> int:
        """Create an order without items. Returns order ID."""
        pass

    @abstractmethod
    def get_order(self, order_id: int, for_update: bool = False) -> Optional[Order]:
        """Get order by ID, locking it like ``get_bill`` when ``for_update`` is set."""
        pass

    @abstractmethod
    def get_orders_by_ids(self, order_ids: list[int]) -> list[Order]:
        """Get the distinct orders whose IDs are in the given list."""
        pass

    @abstractmethod
    def get_order_details(self, order_ids: list[int]) -> list[OrderDetail]:
        """Get orders with their items and products, in the order of ``order_ids``."""
        pass

    @abstractmethod
    def update_order(self, order_id: int, **fields: Any) -> None:
        """Update the given order fields."""
        pass

    @abstractmethod
    def set_orders_bill_status(self, order_ids: list[int], bill_status: str) -> None:
        """Set bill_status on every listed order."""
        pass

    @abstractmethod
    def delete_order(self, order_id: int) -> None:
        """Delete an order and its items."""
        pass

    @abstractmethod
    def list_orders(
        self,
        search_text: Optional[str] = None,
        client_id: Optional[int] = None,
        order_status: Optional[str] = None,
        bill_status: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Page:
        """List orders, newest first, one page at a time.

        ``search_text`` matches customer name, passport number, country or
        client name, case-insensitively.
        """
        pass

    # Order item operations
    @abstractmethod
    def add_order_items(self, order_id: int, items: list[NewOrderItem]) -> list[int]:
        """Attach items to an order. Returns item IDs."""
        pass

    @abstractmethod
    def delete_order_items(self, order_id: int) -> None:
        """Remove every item from an order."""
        pass

    # Bill operations
    @abstractmethod
    def create_bill(
        self,
        client_id: int,
        order_ids: list[int],
        total_amount: Decimal,
    ) -> int:
        """Create an unpaid bill. Returns bill ID."""
        pass

    @abstractmethod
    def get_bill(self, bill_id: int, for_update: bool = False) -> Optional[Bill]:
        """Get bill by ID.

        With ``for_update`` the row is locked until the surrounding unit of
        work ends, on backends that support row locks.
        """
        pass

    @abstractmethod
    def update_bill_amounts(
        self, bill_id: int, paid_amount: Decimal, remaining_amount: Decimal, bill_status: str
    ) -> None:
        """Store recomputed payment totals and status on a bill."""
        pass

    @abstractmethod
    def delete_bill(self, bill_id: int) -> None:
        """Delete a bill."""
        pass

    @abstractmethod
    def list_bills(
        self,
        search_text: Optional[str] = None,
        client_id: Optional[int] = None,
        bill_status: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Page:
        """List bills, newest first; ``search_text`` matches the client name."""
        pass

    # Payment operations
    @abstractmethod
    def create_payment(
        self, bill_id: int, amount: Decimal, payment_date: date, remark: Optional[str] = None
    ) -> int:
        """Create a payment. Returns payment ID."""
        pass

    @abstractmethod
    def get_payment(self, payment_id: int) -> Optional[Payment]:
        """Get payment by ID."""
        pass

    @abstractmethod
    def list_payments(self, bill_id: int) -> list[Payment]:
        """List a bill's payments, latest payment date first."""
        pass

    @abstractmethod
    def delete_payment(self, payment_id: int) -> None:
        """Delete a payment."""
        pass

    # Audit operations
    @abstractmethod
    def create_audit_entry(
        self,
        user_id: Optional[int],
        action: str,
        entity: str,
        entity_id: str,
        diff_json: Optional[dict[str, Any]],
    ) -> int:
        """Append an audit entry. Returns entry ID."""
        pass

    @abstractmethod
    def list_audit_entries(
        self,
        entity: Optional[str] = None,
        entity_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: int = 200,
        offset: int = 0,
    ) -> list[AuditEntry]:
        """List audit entries matching the filters, newest first."""
        pass

    @abstractmethod
    def delete_audit_entries_before(self, cutoff: datetime) -> int:
        """Delete entries created before cutoff. Returns the number deleted."""
        pass
