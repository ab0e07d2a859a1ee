"""Passport domain service."""

import logging
from datetime import date, timedelta
from typing import Any, Optional

from visadesk.database.base import Database
from visadesk.domain.audit import AuditService, audit_best_effort
from visadesk.domain.entities import Passport as PassportEntity, PassportExpiry
from visadesk.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    client_not_found,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({
    "client_id", "country", "full_name", "gender", "date_of_birth", "issue_date",
    "expiry_date", "in_stock", "is_following", "status", "remark",
})

# Upper bounds of the expiry report buckets, in days from today
EXPIRY_BUCKET_DAYS = (15, 30, 90, 180)


def _check_days(days: int) -> None:
    if isinstance(days, bool) or not isinstance(days, int) or days < 1:
        raise ValidationError(f"Days must be a positive integer, got {days!r}")


class PassportService:
    """Service for managing passports held for clients."""

    def __init__(self, db: Database, audit: Optional[AuditService] = None):
        self.db = db
        self.audit = audit if audit is not None else AuditService(db)

    def create_passport(
        self,
        passport_no: str,
        client_id: int,
        country: str,
        full_name: str,
        gender: Optional[str] = None,
        date_of_birth: Optional[date] = None,
        issue_date: Optional[date] = None,
        expiry_date: Optional[date] = None,
        remark: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> int:
        """Register a passport for a client.

        Returns:
            Passport ID

        Raises:
            NotFoundError: If the client doesn't exist
            ConflictError: If the passport number is already on file
            ValidationError: If the issue date is after the expiry date
        """
        if self.db.get_client(client_id) is None:
            raise NotFoundError(client_not_found(client_id))
        if self.db.get_passport_by_number(passport_no) is not None:
            raise ConflictError(f"Passport '{passport_no}' already exists")
        if issue_date is not None and expiry_date is not None and issue_date > expiry_date:
            raise ValidationError("Issue date cannot be after expiry date")

        passport_id = self.db.create_passport(
            passport_no=passport_no,
            client_id=client_id,
            country=country,
            full_name=full_name,
            gender=gender,
            date_of_birth=date_of_birth,
            issue_date=issue_date,
            expiry_date=expiry_date,
            remark=remark,
        )
        logger.info("Created passport %s for client %d", passport_no, client_id)
        audit_best_effort(
            self.audit.record_create, "PASSPORT", self.db.get_passport(passport_id), user_id=user_id
        )
        return passport_id

    def get_passport(self, passport_id: int) -> Optional[PassportEntity]:
        return self.db.get_passport(passport_id)

    def get_passport_by_number(self, passport_no: str) -> Optional[PassportEntity]:
        return self.db.get_passport_by_number(passport_no)

    def list_passports(self, client_id: Optional[int] = None) -> list[PassportEntity]:
        return self.db.list_passports(client_id=client_id)

    def list_expiring(
        self, days: Optional[int] = None, expired: bool = False, today: Optional[date] = None
    ) -> list[PassportExpiry]:
        """List passports for expiry follow-up, soonest expiry first.

        Args:
            days: Only passports still valid today that expire within this many days
            expired: Only passports that expire today or earlier; takes
                precedence over ``days``
            today: Reference day, defaults to the current date

        With neither filter every passport is listed.

        Raises:
            ValidationError: If days is not a positive integer
        """
        if today is None:
            today = date.today()
        if expired:
            rows = self.db.list_passports_by_expiry(until=today)
        elif days is not None:
            _check_days(days)
            rows = self.db.list_passports_by_expiry(after=today, until=today + timedelta(days=days))
        else:
            rows = self.db.list_passports_by_expiry()
        return [PassportExpiry(passport=passport, client=client) for passport, client in rows]

    def expiry_buckets(self, today: Optional[date] = None) -> dict[str, int]:
        """Count passports by how soon they expire.

        Returns:
            Counts keyed ``expired``, ``le15``, ``le30``, ``le90``, ``le180``
            and ``gt180``; each bucket starts where the previous one ends.
            Passports without an expiry date are not counted.
        """
        if today is None:
            today = date.today()
        counts = {"expired": self.db.count_passports_by_expiry(until=today)}
        after = today
        for days in EXPIRY_BUCKET_DAYS:
            until = today + timedelta(days=days)
            counts[f"le{days}"] = self.db.count_passports_by_expiry(after=after, until=until)
            after = until
        counts[f"gt{EXPIRY_BUCKET_DAYS[-1]}"] = self.db.count_passports_by_expiry(after=after)
        return counts

    def update_passport(self, passport_id: int, user_id: Optional[int] = None, **fields: Any) -> PassportEntity:
        """Update passport fields.

        Raises:
            NotFoundError: If the passport or a new client doesn't exist
            ValidationError: If a field cannot be updated
        """
        before = self.db.get_passport(passport_id)
        if before is None:
            raise NotFoundError(f"Passport {passport_id} not found")
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update passport field(s): {', '.join(sorted(unknown))}")
        if "client_id" in fields and self.db.get_client(fields["client_id"]) is None:
            raise NotFoundError(client_not_found(fields["client_id"]))

        self.db.update_passport(passport_id, **fields)
        after = self.db.get_passport(passport_id)
        audit_best_effort(self.audit.record_update, "PASSPORT", before, after, user_id=user_id)
        return after

    def delete_passport(self, passport_id: int, user_id: Optional[int] = None) -> None:
        """Delete a passport.

        Raises:
            NotFoundError: If the passport doesn't exist
        """
        before = self.db.get_passport(passport_id)
        if before is None:
            raise NotFoundError(f"Passport {passport_id} not found")
        self.db.delete_passport(passport_id)
        audit_best_effort(self.audit.record_delete, "PASSPORT", before, user_id=user_id)
