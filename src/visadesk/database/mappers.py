"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic so services never see ORM rows.
"""

from decimal import Decimal
from typing import Optional

from visadesk.domain import entities as domain
from visadesk.database.models import (
    AuditLog as ORMAuditLog,
    Bill as ORMBill,
    Client as ORMClient,
    Order as ORMOrder,
    OrderItem as ORMOrderItem,
    Passport as ORMPassport,
    Payment as ORMPayment,
    Product as ORMProduct,
)


def _money(value) -> Decimal:
    # Numeric columns can come back as float on some backends
    return value if isinstance(value, Decimal) else Decimal(str(value))


def client_to_domain(orm_client: ORMClient) -> domain.Client:
    """Convert SQLAlchemy Client model to domain Client entity."""
    return domain.Client(
        id=orm_client.id,
        name=orm_client.name,
        remark=orm_client.remark,
        created_at=orm_client.created_at,
        updated_at=orm_client.updated_at,
    )


def passport_to_domain(orm_passport: ORMPassport) -> domain.Passport:
    """Convert SQLAlchemy Passport model to domain Passport entity."""
    return domain.Passport(
        id=orm_passport.id,
        passport_no=orm_passport.passport_no,
        client_id=orm_passport.client_id,
        country=orm_passport.country,
        full_name=orm_passport.full_name,
        gender=orm_passport.gender,
        date_of_birth=orm_passport.date_of_birth,
        issue_date=orm_passport.issue_date,
        expiry_date=orm_passport.expiry_date,
        in_stock=orm_passport.in_stock,
        is_following=orm_passport.is_following,
        status=orm_passport.status,
        remark=orm_passport.remark,
        created_at=orm_passport.created_at,
        updated_at=orm_passport.updated_at,
    )


def product_to_domain(orm_product: ORMProduct) -> domain.Product:
    """Convert SQLAlchemy Product model to domain Product entity."""
    return domain.Product(
        id=orm_product.id,
        name=orm_product.name,
        price=_money(orm_product.price),
        cost_price=_money(orm_product.cost_price),
        supplier_id=orm_product.supplier_id,
        status=orm_product.status,
        remark=orm_product.remark,
        created_at=orm_product.created_at,
        updated_at=orm_product.updated_at,
    )


def order_to_domain(orm_order: ORMOrder) -> domain.Order:
    """Convert SQLAlchemy Order model to domain Order entity."""
    return domain.Order(
        id=orm_order.id,
        client_id=orm_order.client_id,
        passport_no=orm_order.passport_no,
        customer_name=orm_order.customer_name,
        passport_number=orm_order.passport_number,
        country=orm_order.country,
        total_amount=_money(orm_order.total_amount),
        total_cost=_money(orm_order.total_cost),
        order_status=orm_order.order_status,
        bill_status=orm_order.bill_status,
        remark=orm_order.remark,
        created_at=orm_order.created_at,
        updated_at=orm_order.updated_at,
    )


def order_item_to_domain(orm_item: ORMOrderItem) -> domain.OrderItem:
    """Convert SQLAlchemy OrderItem model to domain OrderItem entity."""
    return domain.OrderItem(
        id=orm_item.id,
        order_id=orm_item.order_id,
        product_id=orm_item.product_id,
        sale_price=_money(orm_item.sale_price),
        cost_price=_money(orm_item.cost_price),
        status=orm_item.status,
        remark=orm_item.remark,
    )


def order_to_detail(orm_order: ORMOrder) -> domain.OrderDetail:
    """Convert an ORM Order with loaded items into an OrderDetail."""
    lines = []
    for orm_item in orm_order.items:
        product: Optional[domain.Product] = None
        if orm_item.product is not None:
            product = product_to_domain(orm_item.product)
        lines.append(domain.OrderLine(item=order_item_to_domain(orm_item), product=product))
    return domain.OrderDetail(order=order_to_domain(orm_order), lines=lines)


def bill_to_domain(orm_bill: ORMBill) -> domain.Bill:
    """Convert SQLAlchemy Bill model to domain Bill entity."""
    return domain.Bill(
        id=orm_bill.id,
        client_id=orm_bill.client_id,
        order_ids=tuple(orm_bill.order_ids or ()),
        order_count=orm_bill.order_count,
        total_amount=_money(orm_bill.total_amount),
        paid_amount=_money(orm_bill.paid_amount),
        remaining_amount=_money(orm_bill.remaining_amount),
        bill_status=orm_bill.bill_status,
        created_at=orm_bill.created_at,
        updated_at=orm_bill.updated_at,
    )


def payment_to_domain(orm_payment: ORMPayment) -> domain.Payment:
    """Convert SQLAlchemy Payment model to domain Payment entity."""
    return domain.Payment(
        id=orm_payment.id,
        bill_id=orm_payment.bill_id,
        amount=_money(orm_payment.amount),
        payment_date=orm_payment.payment_date,
        remark=orm_payment.remark,
        created_at=orm_payment.created_at,
    )


def audit_entry_to_domain(orm_entry: ORMAuditLog) -> domain.AuditEntry:
    """Convert SQLAlchemy AuditLog model to domain AuditEntry entity."""
    return domain.AuditEntry(
        id=orm_entry.id,
        user_id=orm_entry.user_id,
        action=orm_entry.action,
        entity=orm_entry.entity,
        entity_id=orm_entry.entity_id,
        diff_json=dict(orm_entry.diff_json or {}),
        created_at=orm_entry.created_at,
    )
