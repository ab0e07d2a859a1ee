"""Audit trail recording.

Every create/update/delete in visadesk ends with a call into
:class:`AuditService`. Payloads are filtered through a per-entity allow-list
before they are stored and each entry carries a human-readable label for
the affected record, built by the entity's descriptor in ``ENTITY_REGISTRY``.
"""

import dataclasses
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta, UTC
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional

from visadesk.database.base import Database
from visadesk.domain.entities import AuditEntry
from visadesk.domain.errors import AuditWriteError, StorageError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 200
MAX_LIST_LIMIT = 500
DEFAULT_EXCLUDE_KEYS = ("updatedAt", "createdAt")


@dataclass(frozen=True)
class EntityDescriptor:
    """How one entity kind is filtered and labelled in the audit trail."""

    allowed_fields: frozenset[str]
    display_name: Callable[[Mapping[str, Any]], str]


def _or(value: Any, fallback: Any) -> Any:
    return value if value not in (None, "", 0) else fallback


def _label(value: Any) -> str:
    return "" if value is None else str(value)


ENTITY_REGISTRY: dict[str, EntityDescriptor] = {
    "USER": EntityDescriptor(
        frozenset({"username", "isActive"}),
        lambda o: _label(_or(o.get("username"), o.get("id"))),
    ),
    "CLIENT": EntityDescriptor(
        frozenset({"name", "remark"}),
        lambda o: _label(_or(o.get("name"), o.get("id"))),
    ),
    "PASSPORT": EntityDescriptor(
        frozenset({
            "passportNo", "clientId", "country", "fullName", "gender", "dateOfBirth",
            "issueDate", "expiryDate", "inStock", "isFollowing", "status", "remark",
        }),
        lambda o: f"{_or(o.get('fullName'), '未知')} ({_or(o.get('passportNo'), o.get('id'))})",
    ),
    "VISA": EntityDescriptor(
        frozenset({"id", "passportNo", "country", "visaName", "expiryDate", "status"}),
        lambda o: f"{_or(o.get('visaName'), '未知签证')} ({_or(o.get('country'), '未知国家')})",
    ),
    "NOTIFY": EntityDescriptor(
        frozenset({
            "enabled", "telegramBotToken", "threshold15", "threshold30", "threshold90",
            "threshold180", "chatId", "displayName", "isActive",
        }),
        lambda o: _label(_or(o.get("displayName"), "通知设置")),
    ),
    "SUPPLIER": EntityDescriptor(
        frozenset({"name", "remark"}),
        lambda o: _label(_or(o.get("name"), o.get("id"))),
    ),
    "PRODUCT": EntityDescriptor(
        frozenset({"name", "price", "costPrice", "supplierId", "status", "remark"}),
        lambda o: _label(_or(o.get("name"), o.get("id"))),
    ),
    "ORDER": EntityDescriptor(
        frozenset({
            "passportNo", "clientId", "customerName", "passportNumber", "country",
            "billStatus", "totalAmount", "totalCost", "orderStatus", "remark",
        }),
        lambda o: (
            f"订单 - {_or(o.get('customerName'), '未知客户')} "
            f"({_or(o.get('passportNumber'), o.get('id'))})"
        ),
    ),
    "ORDER_ITEM": EntityDescriptor(
        frozenset({"orderId", "productId", "salePrice", "costPrice", "status", "remark"}),
        lambda o: f"订单明细 - {_or(o.get('productId'), o.get('id'))}",
    ),
    "BILL": EntityDescriptor(
        frozenset({
            "orderIds", "orderCount", "clientId", "totalAmount", "paidAmount",
            "remainingAmount", "billStatus",
        }),
        lambda o: f"账单 - {o.get('orderCount') or 0}个订单",
    ),
    "PAYMENT": EntityDescriptor(
        frozenset({"billId", "amount", "paymentDate", "remark"}),
        lambda o: f"付款记录 - ${o.get('amount') or 0}",
    ),
}


def register_entity(tag: str, descriptor: EntityDescriptor) -> None:
    """Register (or replace) the audit descriptor for an entity kind."""
    ENTITY_REGISTRY[tag] = descriptor


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def snapshot(obj: Any) -> Optional[dict[str, Any]]:
    """Turn a domain object into a flat dict keyed by camelCase field names.

    Dataclasses are converted field by field (nested dataclasses are not
    expanded); mappings are copied as they are.
    """
    if obj is None:
        return None
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {_camel(f.name): getattr(obj, f.name) for f in dataclasses.fields(obj)}
    if isinstance(obj, Mapping):
        return dict(obj)
    raise TypeError(f"Cannot snapshot {type(obj).__name__} for the audit log")


def to_jsonable(value: Any) -> Any:
    """Convert a value into plain JSON types for storage."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(snapshot(value))
    return value


def sanitize(entity: str, obj: Any) -> Optional[dict[str, Any]]:
    """Keep only the fields the entity's allow-list names.

    Entities without a descriptor pass through unfiltered.
    """
    data = snapshot(obj)
    if data is None:
        return None
    descriptor = ENTITY_REGISTRY.get(entity)
    if descriptor is None:
        return data
    return {key: value for key, value in data.items() if key in descriptor.allowed_fields}


def display_name(entity: str, obj: Any) -> str:
    """Human-facing label for a record; never used as a lookup key."""
    data = snapshot(obj) or {}
    descriptor = ENTITY_REGISTRY.get(entity)
    if descriptor is None:
        return _label(data.get("id"))
    return descriptor.display_name(data)


def _epoch_millis(value: date) -> int:
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day, tzinfo=UTC)
    elif value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp() * 1000)


def _canonical(value: Any) -> str:
    if isinstance(value, Decimal):
        # 100 and 100.00 are the same amount
        value = format(value.normalize(), "f")
    elif isinstance(value, (list, tuple)):
        return json.dumps([_canonical(v) for v in value], ensure_ascii=False)
    elif isinstance(value, Mapping):
        return json.dumps({str(k): _canonical(v) for k, v in value.items()}, sort_keys=True, ensure_ascii=False)
    return json.dumps(to_jsonable(value), sort_keys=True, ensure_ascii=False)


def values_equal(before: Any, after: Any) -> bool:
    """Date-aware equality used by the shallow diff.

    Two dates compare by epoch milliseconds. Everything else compares by
    canonical JSON, which ignores mapping key order.
    """
    if isinstance(before, date) and isinstance(after, date):
        return _epoch_millis(before) == _epoch_millis(after)
    return _canonical(before) == _canonical(after)


def compute_shallow_diff(
    before: Optional[Mapping[str, Any]],
    after: Optional[Mapping[str, Any]],
    exclude_keys: Iterable[str] = (),
) -> dict[str, dict[str, Any]]:
    """Return ``{field: {"from": old, "to": new}}`` for every changed field."""
    before = before or {}
    after = after or {}
    excluded = set(exclude_keys)
    changes: dict[str, dict[str, Any]] = {}
    # Preserve first-seen field order for readable output
    keys = list(dict.fromkeys([*before.keys(), *after.keys()]))
    for key in keys:
        if key in excluded:
            continue
        old = before.get(key)
        new = after.get(key)
        if not values_equal(old, new):
            changes[key] = {"from": old, "to": new}
    return changes


class AuditService:
    """Service for writing and querying the audit trail."""

    def __init__(self, db: Database):
        """Initialize audit service.

        Args:
            db: Database instance
        """
        self.db = db

    def _write(
        self, action: str, entity: str, label: str, diff: dict[str, Any], user_id: Optional[int]
    ) -> int:
        try:
            entry_id = self.db.create_audit_entry(
                user_id=user_id,
                action=action,
                entity=entity,
                entity_id=label,
                diff_json=to_jsonable(diff),
            )
        except StorageError as e:
            raise AuditWriteError(f"Could not record {action} of {entity} '{label}': {e}") from e
        logger.debug("Recorded %s %s '%s'", action, entity, label)
        return entry_id

    def record_create(self, entity: str, after: Any, user_id: Optional[int] = None) -> int:
        """Record creation of a record.

        Args:
            entity: Entity tag, e.g. "BILL"
            after: The created object (dataclass or mapping)
            user_id: Acting user, if any

        Returns:
            Audit entry ID

        Raises:
            AuditWriteError: If the entry could not be stored
        """
        return self._write(
            "create", entity, display_name(entity, after), {"after": sanitize(entity, after)}, user_id
        )

    def record_update(
        self,
        entity: str,
        before: Any,
        after: Any,
        user_id: Optional[int] = None,
        exclude_keys: Iterable[str] = DEFAULT_EXCLUDE_KEYS,
    ) -> int:
        """Record an update as the set of changed allowed fields.

        Args:
            entity: Entity tag
            before: Object state before the update
            after: Object state after the update
            user_id: Acting user, if any
            exclude_keys: Fields never reported as changes

        Returns:
            Audit entry ID

        Raises:
            AuditWriteError: If the entry could not be stored
        """
        changes = compute_shallow_diff(
            sanitize(entity, before), sanitize(entity, after), exclude_keys
        )
        return self._write(
            "update", entity, display_name(entity, after), {"changes": changes}, user_id
        )

    def record_delete(self, entity: str, before: Any, user_id: Optional[int] = None) -> int:
        """Record deletion of a record.

        Raises:
            AuditWriteError: If the entry could not be stored
        """
        return self._write(
            "delete", entity, display_name(entity, before), {"before": sanitize(entity, before)}, user_id
        )

    def list_entries(
        self,
        entity: Optional[str] = None,
        entity_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[AuditEntry]:
        """List audit entries, newest first.

        Args:
            entity: Optional entity tag filter
            entity_id: Optional exact display label filter
            date_from: Optional inclusive lower bound on creation time
            date_to: Optional inclusive upper bound on creation time
            limit: Page size; defaults to 200 and is capped at 500
            offset: Number of entries to skip

        Raises:
            ValidationError: If limit or offset is out of range
        """
        if limit is None:
            limit = DEFAULT_LIST_LIMIT
        if limit < 1:
            raise ValidationError(f"Limit must be at least 1, got {limit}")
        if offset < 0:
            raise ValidationError(f"Offset cannot be negative, got {offset}")
        return self.db.list_audit_entries(
            entity=entity,
            entity_id=entity_id,
            date_from=date_from,
            date_to=date_to,
            limit=min(limit, MAX_LIST_LIMIT),
            offset=offset,
        )

    def cleanup_older_than(self, cutoff: datetime) -> int:
        """Delete every entry created before ``cutoff``.

        Returns:
            Number of entries deleted
        """
        deleted = self.db.delete_audit_entries_before(cutoff)
        logger.info("Deleted %d audit entries older than %s", deleted, cutoff.isoformat())
        return deleted

    @staticmethod
    def cutoff_for_days(days: int, now: Optional[datetime] = None) -> datetime:
        """Resolve a retention window in days to a cutoff timestamp.

        Raises:
            ValidationError: If days is not a positive integer
        """
        if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
            raise ValidationError(f"Retention days must be a positive integer, got {days!r}")
        if now is None:
            now = datetime.now(UTC)
        return now - timedelta(days=days)

    def cleanup_days(self, days: int, user_id: Optional[int] = None) -> int:
        """Delete entries older than ``days`` days and log the purge itself."""
        deleted = self.cleanup_older_than(self.cutoff_for_days(days))
        audit_best_effort(
            self.record_create,
            "AUDIT",
            {"id": f"cleanup{days}", "days": days, "deleted": deleted},
            user_id=user_id,
        )
        return deleted


def audit_best_effort(record: Callable[..., int], entity: str, *args: Any, **kwargs: Any) -> Optional[int]:
    """Call an ``AuditService.record_*`` method after a committed mutation.

    A failed audit write never undoes the mutation; it is logged at ERROR
    so operators can see the gap in the trail.

    Returns:
        Audit entry ID, or None if the entry could not be written
    """
    try:
        return record(entity, *args, **kwargs)
    except AuditWriteError:
        logger.exception("Audit trail is missing an entry for %s", entity)
        return None
