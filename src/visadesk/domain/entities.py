"""Domain model entities for visadesk.

These are pure data classes representing business concepts, independent of
database schema. Services receive and return these; the database layer maps
ORM rows onto them.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from typing import Any, Optional

ORDER_STATUSES = ("pending", "processing", "completed")
ORDER_BILL_STATUSES = ("unbilled", "billed")
BILL_STATUSES = ("unpaid", "partial", "paid")
AUDIT_ACTIONS = ("create", "update", "delete")


@dataclass(frozen=True)
class Client:
    """Agency client domain entity."""

    id: int
    name: str
    remark: Optional[str]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Passport:
    """Passport held on file for a client."""

    id: int
    passport_no: str
    client_id: int
    country: str
    full_name: str
    gender: Optional[str]
    date_of_birth: Optional[date]
    issue_date: Optional[date]
    expiry_date: Optional[date]
    in_stock: bool
    is_following: bool
    status: Optional[str]
    remark: Optional[str]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Product:
    """Sellable product or service."""

    id: int
    name: str
    price: Decimal
    cost_price: Decimal
    supplier_id: Optional[int]
    status: str
    remark: Optional[str]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class OrderItem:
    """One line of an order, priced at the time of sale."""

    id: int
    order_id: int
    product_id: int
    sale_price: Decimal
    cost_price: Decimal
    status: str
    remark: Optional[str]


@dataclass(frozen=True)
class Order:
    """Sale transaction tied to one passport."""

    id: int
    client_id: int
    passport_no: str
    customer_name: str
    passport_number: str
    country: str
    total_amount: Decimal
    total_cost: Decimal
    order_status: str
    bill_status: str
    remark: Optional[str]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Bill:
    """Billing aggregate over one client's orders."""

    id: int
    client_id: int
    order_ids: tuple[int, ...]
    order_count: int
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    bill_status: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Payment:
    """Payment applied to a bill."""

    id: int
    bill_id: int
    amount: Decimal
    payment_date: date
    remark: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class AuditEntry:
    """Immutable record of one state-changing action."""

    id: int
    user_id: Optional[int]
    action: str
    entity: str
    entity_id: str
    diff_json: dict[str, Any]
    created_at: datetime


@dataclass(frozen=True)
class NewOrderItem:
    """Input for an order line before it is stored."""

    product_id: int
    sale_price: Decimal
    cost_price: Decimal
    status: str = "pending"
    remark: Optional[str] = None


@dataclass(frozen=True)
class OrderLine:
    """Order item resolved with its product."""

    item: OrderItem
    product: Optional[Product]


@dataclass(frozen=True)
class OrderDetail:
    """Order with its lines."""

    order: Order
    lines: list[OrderLine] = field(default_factory=list)


@dataclass(frozen=True)
class BillDetail:
    """Bill with its client, payments and the orders it groups."""

    bill: Bill
    client: Optional[Client]
    payments: list[Payment]
    orders: list[OrderDetail]


@dataclass(frozen=True)
class PassportExpiry:
    """Passport listed for expiry follow-up, with the client who holds it."""

    passport: Passport
    client: Client


@dataclass(frozen=True)
class Page:
    """One page of a paginated listing."""

    items: list[Any]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.page_size - 1) // self.page_size
