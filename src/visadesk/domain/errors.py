"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or a violated business rule."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class DependencyError(ValidationError):
    """Operation blocked due to dependent domain data."""


class StorageError(RuntimeError):
    """The backing store failed; the whole operation had no effect."""


class AuditWriteError(StorageError):
    """An audit entry could not be written."""


def client_not_found(client_id: int) -> str:
    """Return message for missing client."""
    return f"Client {client_id} not found"


def passport_not_found(passport_no: str) -> str:
    """Return message for missing passport."""
    return f"Passport '{passport_no}' not found"


def product_not_found(product_id: int) -> str:
    """Return message for missing product."""
    return f"Product {product_id} not found"


def order_not_found(order_id: int) -> str:
    """Return message for missing order."""
    return f"Order {order_id} not found"


def bill_not_found(bill_id: int) -> str:
    """Return message for missing bill."""
    return f"Bill {bill_id} not found"


def payment_not_found(payment_id: int) -> str:
    """Return message for missing payment."""
    return f"Payment {payment_id} not found"


def bill_has_payments(bill_id: int, payment_count: int) -> str:
    """Return message when a bill still has payments attached."""
    return (
        f"Bill {bill_id} has {payment_count} payment{'s' if payment_count != 1 else ''}: "
        "该账单已有付款记录，无法删除。请先删除相关付款记录。"
    )


def order_already_billed(order_id: int) -> str:
    """Return message when a billed order is deleted."""
    return f"Order {order_id} is billed: 该订单已生成账单，无法删除。请先删除相关账单。"


def client_delete_blocked(
    client_id: int, passport_count: int, order_count: int, bill_count: int
) -> str:
    """Return message when client has dependent passports, orders or bills."""
    parts = []
    if passport_count > 0:
        parts.append(f"{passport_count} passport{'s' if passport_count != 1 else ''}")
    if order_count > 0:
        parts.append(f"{order_count} order{'s' if order_count != 1 else ''}")
    if bill_count > 0:
        parts.append(f"{bill_count} bill{'s' if bill_count != 1 else ''}")
    return (
        f"Cannot delete client {client_id}: it has {', '.join(parts)}. "
        "Please delete them first."
    )


def order_items_frozen(order_id: int) -> str:
    """Return message when a billed order's items are changed."""
    return f"Order {order_id} is billed; delete its bill before changing items"
