"""Client domain service."""

import logging
from typing import Optional

from visadesk.database.base import Database
from visadesk.domain.audit import AuditService, audit_best_effort
from visadesk.domain.entities import Client as ClientEntity
from visadesk.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
    client_delete_blocked,
    client_not_found,
)

logger = logging.getLogger(__name__)


class ClientService:
    """Service for managing clients."""

    def __init__(self, db: Database, audit: Optional[AuditService] = None):
        """Initialize client service.

        Args:
            db: Database instance
            audit: Audit recorder; defaults to one over the same database
        """
        self.db = db
        self.audit = audit if audit is not None else AuditService(db)

    def create_client(self, name: str, remark: Optional[str] = None, user_id: Optional[int] = None) -> int:
        """Create a new client.

        Returns:
            Client ID

        Raises:
            ValidationError: If the name is blank
            ConflictError: If a client with that name exists
        """
        name = name.strip()
        if not name:
            raise ValidationError("Client name cannot be empty")
        if self.db.get_client_by_name(name) is not None:
            raise ConflictError(f"Client with name '{name}' already exists")

        client_id = self.db.create_client(name=name, remark=remark)
        logger.info("Created client %d '%s'", client_id, name)
        audit_best_effort(self.audit.record_create, "CLIENT", self.db.get_client(client_id), user_id=user_id)
        return client_id

    def get_client(self, client_id: int) -> Optional[ClientEntity]:
        """Get client by ID."""
        return self.db.get_client(client_id)

    def list_clients(self) -> list[ClientEntity]:
        """List all clients."""
        return self.db.list_clients()

    def update_client(
        self,
        client_id: int,
        name: Optional[str] = None,
        remark: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> ClientEntity:
        """Rename a client or change its remark.

        Raises:
            NotFoundError: If the client doesn't exist
            ConflictError: If the new name belongs to another client
        """
        before = self.db.get_client(client_id)
        if before is None:
            raise NotFoundError(client_not_found(client_id))
        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError("Client name cannot be empty")
            existing = self.db.get_client_by_name(name)
            if existing is not None and existing.id != client_id:
                raise ConflictError(f"Client with name '{name}' already exists")

        self.db.update_client(client_id, name=name, remark=remark)
        after = self.db.get_client(client_id)
        audit_best_effort(self.audit.record_update, "CLIENT", before, after, user_id=user_id)
        return after

    def delete_client(self, client_id: int, user_id: Optional[int] = None) -> None:
        """Delete a client that has no passports, orders or bills.

        Raises:
            NotFoundError: If the client doesn't exist
            DependencyError: If anything still references the client
        """
        before = self.db.get_client(client_id)
        if before is None:
            raise NotFoundError(client_not_found(client_id))

        passport_count, order_count, bill_count = self.db.get_client_dependency_counts(client_id)
        if passport_count or order_count or bill_count:
            raise DependencyError(client_delete_blocked(client_id, passport_count, order_count, bill_count))

        self.db.delete_client(client_id)
        logger.info("Deleted client %d '%s'", client_id, before.name)
        audit_best_effort(self.audit.record_delete, "CLIENT", before, user_id=user_id)
