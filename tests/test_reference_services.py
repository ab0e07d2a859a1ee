"""Tests for client, passport and product services."""

import pytest
from datetime import date
from decimal import Decimal

from visadesk.domain.errors import ConflictError, DependencyError, NotFoundError, ValidationError


class TestClientService:
    """Tests for ClientService."""

    def test_create_client(self, client_service):
        client_id = client_service.create_client("  Acme  ", remark="walk-in")

        client = client_service.get_client(client_id)
        assert client.name == "Acme"
        assert client.remark == "walk-in"

    def test_create_duplicate_client(self, client_service, sample_client):
        with pytest.raises(ConflictError, match="already exists"):
            client_service.create_client(sample_client.name)

    def test_create_blank_client(self, client_service):
        with pytest.raises(ValidationError):
            client_service.create_client("   ")

    def test_list_clients_sorted(self, client_service):
        client_service.create_client("Zed")
        client_service.create_client("Alpha")
        assert [c.name for c in client_service.list_clients()] == ["Alpha", "Zed"]

    def test_update_client(self, client_service, sample_client):
        updated = client_service.update_client(sample_client.id, name="Sunset Travel")
        assert updated.name == "Sunset Travel"
        assert updated.remark == sample_client.remark

    def test_update_client_to_taken_name(self, client_service, sample_client, other_client):
        with pytest.raises(ConflictError):
            client_service.update_client(other_client.id, name=sample_client.name)

    def test_update_missing_client(self, client_service):
        with pytest.raises(NotFoundError):
            client_service.update_client(404, name="x")

    def test_delete_client(self, client_service):
        client_id = client_service.create_client("Temporary")
        client_service.delete_client(client_id)
        assert client_service.get_client(client_id) is None

    def test_delete_client_with_dependents(self, client_service, sample_client, sample_orders):
        """Test deletion is blocked while passports or orders exist."""
        with pytest.raises(DependencyError) as exc_info:
            client_service.delete_client(sample_client.id)

        message = str(exc_info.value)
        assert "1 passport" in message
        assert "2 orders" in message


class TestPassportService:
    """Tests for PassportService."""

    def test_create_passport(self, passport_service, sample_client):
        passport_id = passport_service.create_passport(
            passport_no="G1234567",
            client_id=sample_client.id,
            country="CN",
            full_name="Zhang San",
            gender="M",
            date_of_birth=date(1990, 1, 2),
            issue_date=date(2020, 1, 1),
            expiry_date=date(2030, 1, 1),
        )

        passport = passport_service.get_passport(passport_id)
        assert passport.passport_no == "G1234567"
        assert passport.expiry_date == date(2030, 1, 1)
        assert passport.in_stock is True
        assert passport.is_following is False

    def test_create_passport_unknown_client(self, passport_service):
        with pytest.raises(NotFoundError, match="Client 404"):
            passport_service.create_passport("G1", client_id=404, country="CN", full_name="A")

    def test_create_duplicate_passport(self, passport_service, sample_passport):
        with pytest.raises(ConflictError):
            passport_service.create_passport(
                sample_passport.passport_no, client_id=sample_passport.client_id, country="CN", full_name="B"
            )

    def test_issue_after_expiry(self, passport_service, sample_client):
        with pytest.raises(ValidationError, match="after expiry"):
            passport_service.create_passport(
                "G2",
                client_id=sample_client.id,
                country="CN",
                full_name="A",
                issue_date=date(2030, 1, 1),
                expiry_date=date(2020, 1, 1),
            )

    def test_update_passport_is_audited(self, passport_service, temp_db, sample_passport):
        passport_service.update_passport(sample_passport.id, full_name="Li Wei Jr", in_stock=False)

        entry = temp_db.list_audit_entries(entity="PASSPORT")[0]
        assert entry.entity_id == "Li Wei Jr (E12345678)"
        assert entry.diff_json["changes"] == {
            "fullName": {"from": "Li Wei", "to": "Li Wei Jr"},
            "inStock": {"from": True, "to": False},
        }

    def test_update_passport_rejects_unknown_field(self, passport_service, sample_passport):
        with pytest.raises(ValidationError, match="passport_no"):
            passport_service.update_passport(sample_passport.id, passport_no="X")

    def test_list_passports_by_client(self, passport_service, sample_passport, other_passport, other_client):
        assert len(passport_service.list_passports()) == 2
        passports = passport_service.list_passports(client_id=other_client.id)
        assert [p.passport_no for p in passports] == [other_passport.passport_no]

    def test_delete_passport(self, passport_service, sample_passport):
        passport_service.delete_passport(sample_passport.id)
        assert passport_service.get_passport_by_number(sample_passport.passport_no) is None

    @pytest.fixture
    def expiring_passports(self, passport_service, sample_client, other_client):
        """Passports around a reference day of 2024-06-01, keyed by passport number."""
        expiries = {
            "EXP0501": (sample_client, date(2024, 5, 1)),
            "EXP0601": (other_client, date(2024, 6, 1)),
            "EXP0610": (sample_client, date(2024, 6, 10)),
            "EXP0801": (other_client, date(2024, 8, 1)),
            "EXP2025": (sample_client, date(2025, 1, 1)),
            "NOEXPIRY": (sample_client, None),
        }
        for passport_no, (client, expiry) in expiries.items():
            passport_service.create_passport(
                passport_no, client_id=client.id, country="CN", full_name=passport_no.title(), expiry_date=expiry
            )
        return date(2024, 6, 1)

    def test_list_expired(self, passport_service, expiring_passports, other_client):
        """Test a passport expiring today already counts as expired."""
        rows = passport_service.list_expiring(expired=True, today=expiring_passports)

        assert [r.passport.passport_no for r in rows] == ["EXP0501", "EXP0601"]
        assert rows[1].client == other_client

    def test_list_expiring_within_days(self, passport_service, expiring_passports):
        today = expiring_passports

        assert [r.passport.passport_no for r in passport_service.list_expiring(days=15, today=today)] == [
            "EXP0610"
        ]
        assert [r.passport.passport_no for r in passport_service.list_expiring(days=90, today=today)] == [
            "EXP0610",
            "EXP0801",
        ]

    def test_expired_takes_precedence_over_days(self, passport_service, expiring_passports):
        rows = passport_service.list_expiring(days=90, expired=True, today=expiring_passports)
        assert [r.passport.passport_no for r in rows] == ["EXP0501", "EXP0601"]

    def test_list_all_by_expiry(self, passport_service, expiring_passports):
        rows = passport_service.list_expiring(today=expiring_passports)
        assert [r.passport.passport_no for r in rows] == [
            "EXP0501", "EXP0601", "EXP0610", "EXP0801", "EXP2025", "NOEXPIRY",
        ]

    @pytest.mark.parametrize("days", [0, -30, True])
    def test_list_expiring_rejects_bad_days(self, passport_service, days):
        with pytest.raises(ValidationError, match="positive integer"):
            passport_service.list_expiring(days=days)

    def test_expiry_buckets(self, passport_service, expiring_passports):
        assert passport_service.expiry_buckets(today=expiring_passports) == {
            "expired": 2,
            "le15": 1,
            "le30": 0,
            "le90": 1,
            "le180": 0,
            "gt180": 1,
        }


class TestProductService:
    """Tests for ProductService."""

    def test_negative_price_rejected(self, product_service):
        with pytest.raises(ValidationError, match="cannot be negative"):
            product_service.create_product("Visa", price=Decimal("-1"), cost_price=Decimal("0"))

    def test_price_in_fractions_of_a_cent_rejected(self, product_service, sample_products):
        with pytest.raises(ValidationError, match="two decimal places"):
            product_service.create_product("Visa", price=Decimal("60.005"), cost_price=Decimal("35"))
        with pytest.raises(ValidationError, match="Cost price"):
            product_service.update_product(sample_products["visa"].id, cost_price=Decimal("0.001"))

    def test_update_product(self, product_service, sample_products):
        visa = sample_products["visa"]
        updated = product_service.update_product(visa.id, price=Decimal("75"))
        assert updated.price == Decimal("75")

    def test_update_product_negative_cost(self, product_service, sample_products):
        with pytest.raises(ValidationError):
            product_service.update_product(sample_products["visa"].id, cost_price=Decimal("-2"))

    def test_existing_orders_keep_their_prices(
        self, product_service, order_service, sample_orders, sample_products
    ):
        product_service.update_product(sample_products["visa"].id, price=Decimal("999"))

        detail = order_service.get_order(sample_orders[0].id)
        assert detail.order.total_amount == Decimal("60.00")
        assert detail.lines[0].item.sale_price == Decimal("60.00")

    def test_delete_product_leaves_order_lines(
        self, product_service, order_service, sample_orders, sample_products
    ):
        product_service.delete_product(sample_products["visa"].id)

        detail = order_service.get_order(sample_orders[0].id)
        assert detail.lines[0].product is None
        assert detail.lines[0].item.product_id == sample_products["visa"].id

    def test_delete_missing_product(self, product_service):
        with pytest.raises(NotFoundError):
            product_service.delete_product(404)
