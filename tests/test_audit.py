"""Tests for the audit recorder."""

import logging
import pytest
from datetime import date, datetime, timedelta, timezone, UTC
from decimal import Decimal

from visadesk.domain.audit import (
    ENTITY_REGISTRY,
    AuditService,
    EntityDescriptor,
    audit_best_effort,
    compute_shallow_diff,
    display_name,
    register_entity,
    sanitize,
    snapshot,
    values_equal,
)
from visadesk.domain.entities import Bill
from visadesk.domain.errors import AuditWriteError, StorageError, ValidationError


class TestSanitize:
    """Tests for per-entity allow-lists."""

    def test_passport_drops_unlisted_fields(self):
        """Test PASSPORT payloads keep only allow-listed fields."""
        data = sanitize(
            "PASSPORT",
            {"fullName": "Li Wei", "passportNo": "E1", "password": "secret", "internalNote": "x"},
        )
        assert data == {"fullName": "Li Wei", "passportNo": "E1"}

    def test_unknown_entity_passes_through(self):
        data = sanitize("GADGET", {"id": 1, "anything": True})
        assert data == {"id": 1, "anything": True}

    def test_dataclass_snapshot_uses_camel_case(self):
        """Test dataclasses are flattened with camelCase keys."""
        now = datetime(2024, 5, 1, 12, 0)
        bill = Bill(
            id=1,
            client_id=2,
            order_ids=(3, 4),
            order_count=2,
            total_amount=Decimal("100.00"),
            paid_amount=Decimal("0"),
            remaining_amount=Decimal("100.00"),
            bill_status="unpaid",
            created_at=now,
            updated_at=now,
        )
        data = snapshot(bill)
        assert data["orderIds"] == (3, 4)
        assert data["remainingAmount"] == Decimal("100.00")
        assert "createdAt" in data

        assert set(sanitize("BILL", bill)) == {
            "orderIds", "orderCount", "clientId", "totalAmount", "paidAmount",
            "remainingAmount", "billStatus",
        }

    def test_snapshot_rejects_other_types(self):
        with pytest.raises(TypeError):
            snapshot(42)


class TestDisplayName:
    """Tests for human-readable labels."""

    def test_passport_label(self):
        assert display_name("PASSPORT", {"fullName": "Li Wei", "passportNo": "E1"}) == "Li Wei (E1)"

    def test_passport_label_fallbacks(self):
        assert display_name("PASSPORT", {"id": 9}) == "未知 (9)"

    def test_order_label(self):
        label = display_name("ORDER", {"customerName": "Li Wei", "passportNumber": "E1"})
        assert label == "订单 - Li Wei (E1)"

    def test_visa_label_fallbacks(self):
        assert display_name("VISA", {}) == "未知签证 (未知国家)"

    def test_notify_label_fallback(self):
        assert display_name("NOTIFY", {"id": 1}) == "通知设置"

    def test_client_label_falls_back_to_id(self):
        assert display_name("CLIENT", {"id": 5, "name": ""}) == "5"

    def test_bill_and_payment_labels(self):
        assert display_name("BILL", {"orderCount": 3}) == "账单 - 3个订单"
        assert display_name("PAYMENT", {"amount": Decimal("12.50")}) == "付款记录 - $12.50"

    def test_unknown_entity_uses_id(self):
        assert display_name("GADGET", {"id": 77}) == "77"

    def test_register_entity(self, monkeypatch):
        """Test that new entity kinds can be registered."""
        monkeypatch.setitem(
            ENTITY_REGISTRY,
            "VOUCHER",
            EntityDescriptor(frozenset({"code"}), lambda o: f"voucher {o.get('code')}"),
        )
        assert display_name("VOUCHER", {"code": "X1", "secret": 1}) == "voucher X1"
        assert sanitize("VOUCHER", {"code": "X1", "secret": 1}) == {"code": "X1"}

    def test_register_entity_replaces(self, monkeypatch):
        monkeypatch.setitem(ENTITY_REGISTRY, "CLIENT", ENTITY_REGISTRY["CLIENT"])
        register_entity("CLIENT", EntityDescriptor(frozenset({"name"}), lambda o: "someone"))
        assert display_name("CLIENT", {"name": "A"}) == "someone"


class TestValuesEqual:
    """Tests for date-aware equality."""

    def test_dates_compare_by_instant(self):
        aware = datetime(2024, 5, 1, 8, 0, tzinfo=timezone(timedelta(hours=8)))
        utc = datetime(2024, 5, 1, 0, 0, tzinfo=UTC)
        assert values_equal(aware, utc)

    def test_naive_datetime_is_utc(self):
        assert values_equal(datetime(2024, 5, 1), datetime(2024, 5, 1, tzinfo=UTC))

    def test_date_and_midnight(self):
        assert values_equal(date(2024, 5, 1), datetime(2024, 5, 1, tzinfo=UTC))
        assert not values_equal(date(2024, 5, 1), date(2024, 5, 2))

    def test_mapping_key_order_ignored(self):
        assert values_equal({"a": 1, "b": [1, 2]}, {"b": [1, 2], "a": 1})

    def test_list_order_matters(self):
        assert not values_equal([1, 2], [2, 1])

    def test_decimal_scale_ignored(self):
        assert values_equal(Decimal("100"), Decimal("100.00"))
        assert not values_equal(Decimal("100"), Decimal("100.01"))

    def test_none_vs_empty(self):
        assert not values_equal(None, "")


class TestShallowDiff:
    """Tests for compute_shallow_diff."""

    def test_only_changed_fields(self):
        diff = compute_shallow_diff({"a": 1, "b": 2}, {"a": 1, "b": 3})
        assert diff == {"b": {"from": 2, "to": 3}}

    def test_added_and_removed_fields(self):
        diff = compute_shallow_diff({"a": 1}, {"b": 2})
        assert diff == {"a": {"from": 1, "to": None}, "b": {"from": None, "to": 2}}

    def test_excluded_keys(self):
        diff = compute_shallow_diff({"a": 1, "updatedAt": 1}, {"a": 1, "updatedAt": 2}, ["updatedAt"])
        assert diff == {}


class TestAuditService:
    """Tests for recording and querying entries."""

    def test_record_update_passport(self, audit_service, temp_db):
        """Test only the changed allowed field is recorded."""
        audit_service.record_update(
            "PASSPORT",
            {"fullName": "A", "remark": "x", "updatedAt": datetime(2024, 1, 1), "createdAt": 1},
            {"fullName": "B", "remark": "x", "updatedAt": datetime(2024, 2, 1), "createdAt": 2},
        )

        entry = temp_db.list_audit_entries(entity="PASSPORT")[0]
        assert entry.action == "update"
        assert entry.diff_json == {"changes": {"fullName": {"from": "A", "to": "B"}}}

    def test_passport_entries_stay_inside_allow_list(self, audit_service, temp_db):
        """Test create and delete payloads are sanitized too."""
        source = {"passportNo": "E1", "fullName": "Li Wei", "password": "secret", "token": "t"}
        audit_service.record_create("PASSPORT", source)
        audit_service.record_delete("PASSPORT", source)

        allowed = ENTITY_REGISTRY["PASSPORT"].allowed_fields
        for entry in temp_db.list_audit_entries(entity="PASSPORT"):
            payload = entry.diff_json.get("after") or entry.diff_json.get("before")
            assert set(payload) <= allowed

    def test_record_create_serializes_values(self, audit_service, temp_db):
        """Test Decimal and date values are stored as strings."""
        audit_service.record_create(
            "PAYMENT", {"billId": 1, "amount": Decimal("12.50"), "paymentDate": date(2024, 5, 1)}, user_id=4
        )

        entry = temp_db.list_audit_entries(entity="PAYMENT")[0]
        assert entry.user_id == 4
        assert entry.entity_id == "付款记录 - $12.50"
        assert entry.diff_json == {"after": {"billId": 1, "amount": "12.50", "paymentDate": "2024-05-01"}}

    def test_entries_written_by_services(self, client_service, temp_db):
        """Test client create, update and delete each leave one entry."""
        client_id = client_service.create_client("Acme", user_id=1)
        client_service.update_client(client_id, remark="vip", user_id=1)
        client_service.delete_client(client_id, user_id=1)

        entries = temp_db.list_audit_entries(entity="CLIENT")
        assert [e.action for e in entries] == ["delete", "update", "create"]
        assert all(e.entity_id == "Acme" for e in entries)
        assert entries[1].diff_json == {"changes": {"remark": {"from": None, "to": "vip"}}}

    def test_list_filters(self, audit_service):
        audit_service.record_create("CLIENT", {"id": 1, "name": "A"})
        audit_service.record_create("CLIENT", {"id": 2, "name": "B"})
        audit_service.record_create("PRODUCT", {"id": 1, "name": "Visa"})

        assert len(audit_service.list_entries()) == 3
        assert len(audit_service.list_entries(entity="CLIENT")) == 2
        assert [e.entity_id for e in audit_service.list_entries(entity_id="B")] == ["B"]

    def test_list_newest_first_with_offset(self, audit_service):
        for name in ("first", "second", "third"):
            audit_service.record_create("CLIENT", {"name": name})

        assert [e.entity_id for e in audit_service.list_entries()] == ["third", "second", "first"]
        assert [e.entity_id for e in audit_service.list_entries(limit=1, offset=1)] == ["second"]

    def test_list_date_range(self, audit_service):
        audit_service.record_create("CLIENT", {"name": "A"})
        now = datetime.now(UTC)

        assert len(audit_service.list_entries(date_from=now - timedelta(hours=1))) == 1
        assert audit_service.list_entries(date_to=now - timedelta(hours=1)) == []

    def test_list_limit_is_clamped(self, temp_db):
        """Test limits above 500 are capped and the default is 200."""
        seen = {}

        class RecordingDb:
            def list_audit_entries(self, **kwargs):
                seen.update(kwargs)
                return []

        service = AuditService(RecordingDb())
        service.list_entries(limit=10_000)
        assert seen["limit"] == 500
        service.list_entries()
        assert seen["limit"] == 200

    @pytest.mark.parametrize("kwargs", [{"limit": 0}, {"offset": -1}])
    def test_list_rejects_bad_paging(self, audit_service, kwargs):
        with pytest.raises(ValidationError):
            audit_service.list_entries(**kwargs)


class TestCleanup:
    """Tests for retention cleanup."""

    def test_cleanup_is_idempotent(self, audit_service, temp_db):
        """Test that a second run with the same cutoff deletes nothing."""
        audit_service.record_create("CLIENT", {"name": "A"})
        audit_service.record_create("CLIENT", {"name": "B"})
        cutoff = datetime.now(UTC) + timedelta(seconds=1)

        assert audit_service.cleanup_older_than(cutoff) == 2
        assert audit_service.cleanup_older_than(cutoff) == 0

    def test_cleanup_keeps_newer_entries(self, audit_service):
        audit_service.record_create("CLIENT", {"name": "A"})

        assert audit_service.cleanup_older_than(datetime.now(UTC) - timedelta(days=1)) == 0
        assert len(audit_service.list_entries()) == 1

    def test_cutoff_for_days(self):
        now = datetime(2024, 5, 31, tzinfo=UTC)
        assert AuditService.cutoff_for_days(30, now=now) == datetime(2024, 5, 1, tzinfo=UTC)

    @pytest.mark.parametrize("days", [0, -7, 1.5, True, "30"])
    def test_cutoff_rejects_invalid_days(self, days):
        with pytest.raises(ValidationError, match="positive integer"):
            AuditService.cutoff_for_days(days)

    def test_cleanup_days_survives_audit_failure(self, temp_db, monkeypatch, caplog):
        """Test a failed self-record after the purge is logged, not raised."""
        service = AuditService(temp_db)
        service.record_create("CLIENT", {"name": "A"})

        def broken_audit_write(**kwargs):
            raise StorageError("disk full")

        monkeypatch.setattr(temp_db, "create_audit_entry", broken_audit_write)

        with caplog.at_level(logging.ERROR, logger="visadesk.domain.audit"):
            assert service.cleanup_days(30) == 0

        assert "Audit trail is missing an entry for AUDIT" in caplog.text

    def test_cleanup_days_records_itself(self, audit_service):
        """Test the purge leaves an AUDIT entry behind."""
        audit_service.record_create("CLIENT", {"name": "A"})

        assert audit_service.cleanup_days(30, user_id=9) == 0

        entry = audit_service.list_entries(entity="AUDIT")[0]
        assert entry.entity_id == "cleanup30"
        assert entry.user_id == 9
        assert entry.diff_json == {"after": {"id": "cleanup30", "days": 30, "deleted": 0}}


class TestBestEffort:
    """Tests for audit_best_effort."""

    class FailingDb:
        def create_audit_entry(self, **kwargs):
            raise StorageError("database is locked")

    def test_write_failure_raises_audit_error(self):
        service = AuditService(self.FailingDb())
        with pytest.raises(AuditWriteError, match="database is locked"):
            service.record_create("CLIENT", {"name": "A"})

    def test_best_effort_logs_and_returns_none(self, caplog):
        service = AuditService(self.FailingDb())

        with caplog.at_level(logging.ERROR, logger="visadesk.domain.audit"):
            result = audit_best_effort(service.record_create, "CLIENT", {"name": "A"})

        assert result is None
        assert "Audit trail is missing an entry for CLIENT" in caplog.text

    def test_best_effort_returns_entry_id(self, audit_service):
        entry_id = audit_best_effort(audit_service.record_create, "CLIENT", {"name": "A"})
        assert isinstance(entry_id, int)
