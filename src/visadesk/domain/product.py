"""Product domain service."""

import logging
from decimal import Decimal
from typing import Any, Optional

from visadesk.database.base import Database
from visadesk.domain.audit import AuditService, audit_best_effort
from visadesk.domain.entities import Product as ProductEntity
from visadesk.domain.errors import NotFoundError, ValidationError, product_not_found
from visadesk.domain.money import to_money

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"name", "price", "cost_price", "supplier_id", "status", "remark"})


def _check_prices(fields: dict[str, Any]) -> None:
    for key in ("price", "cost_price"):
        if key in fields and fields[key] is not None:
            label = key.replace("_", " ").capitalize()
            if to_money(fields[key], label) < 0:
                raise ValidationError(f"{label} cannot be negative")


class ProductService:
    """Service for managing products and services on sale."""

    def __init__(self, db: Database, audit: Optional[AuditService] = None):
        self.db = db
        self.audit = audit if audit is not None else AuditService(db)

    def create_product(
        self,
        name: str,
        price: Decimal,
        cost_price: Decimal,
        supplier_id: Optional[int] = None,
        status: str = "active",
        remark: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> int:
        """Create a product.

        Returns:
            Product ID

        Raises:
            ValidationError: If the name is blank or a price is negative
        """
        if not name.strip():
            raise ValidationError("Product name cannot be empty")
        _check_prices({"price": price, "cost_price": cost_price})

        product_id = self.db.create_product(
            name=name.strip(),
            price=Decimal(price),
            cost_price=Decimal(cost_price),
            supplier_id=supplier_id,
            status=status,
            remark=remark,
        )
        logger.info("Created product %d '%s'", product_id, name)
        audit_best_effort(self.audit.record_create, "PRODUCT", self.db.get_product(product_id), user_id=user_id)
        return product_id

    def get_product(self, product_id: int) -> Optional[ProductEntity]:
        return self.db.get_product(product_id)

    def list_products(self) -> list[ProductEntity]:
        return self.db.list_products()

    def update_product(self, product_id: int, user_id: Optional[int] = None, **fields: Any) -> ProductEntity:
        """Update product fields.

        Existing orders keep the prices they were sold at.

        Raises:
            NotFoundError: If the product doesn't exist
            ValidationError: If a field is unknown or a price is negative
        """
        before = self.db.get_product(product_id)
        if before is None:
            raise NotFoundError(product_not_found(product_id))
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update product field(s): {', '.join(sorted(unknown))}")
        _check_prices(fields)

        self.db.update_product(product_id, **fields)
        after = self.db.get_product(product_id)
        audit_best_effort(self.audit.record_update, "PRODUCT", before, after, user_id=user_id)
        return after

    def delete_product(self, product_id: int, user_id: Optional[int] = None) -> None:
        """Delete a product.

        Raises:
            NotFoundError: If the product doesn't exist
        """
        before = self.db.get_product(product_id)
        if before is None:
            raise NotFoundError(product_not_found(product_id))
        self.db.delete_product(product_id)
        audit_best_effort(self.audit.record_delete, "PRODUCT", before, user_id=user_id)
