"""
Sale transaction tests.

Verifies:
- direct sales check stock for every line before writing anything
- order sales skip the stock check and create the linked order
- totals are computed in integer cents
- annulment restores stock for direct sales and is terminal
"""

from datetime import date
from decimal import Decimal

import pytest

from deliciasoft.errors import (
    ConflictError,
    InsufficientInventoryError,
    NotFoundError,
    ValidationError,
)
from deliciasoft.extensions import db
from deliciasoft.models import Order, Sale, SaleLine
from deliciasoft.services import sales_service

from conftest import put_stock, stock_of


def _direct(location, *lines, **extra):
    payload = {
        "location_id": location.id,
        "sale_kind": "direct",
        "lines": [{"product_id": p.id, "quantity": q} for p, q in lines],
    }
    payload.update(extra)
    return payload


# =============================================================================
# DIRECT SALES
# =============================================================================


class TestDirectSale:

    def test_insufficient_stock_aborts_everything(self, db_session, bread, north):
        put_stock(bread, north, 3)

        with pytest.raises(InsufficientInventoryError) as exc:
            sales_service.create_sale(_direct(north, (bread, 5)))

        assert exc.value.code == "INSUFFICIENT_INVENTORY"
        assert exc.value.available == Decimal("3")
        assert exc.value.requested == Decimal("5")
        assert stock_of(bread, north) == Decimal("3")
        assert db.session.query(Sale).count() == 0

    def test_commit_decrements_stock(self, db_session, bread, north):
        put_stock(bread, north, 10)

        sale = sales_service.create_sale(_direct(north, (bread, 4)), today=date(2025, 1, 5))

        assert sale.status == "COMPLETED"
        assert sale.kind == "DIRECT"
        assert sale.sale_date == date(2025, 1, 5)
        assert stock_of(bread, north) == Decimal("6")
        assert sale.total_cents == 4 * 2500
        assert sale.order is None

    def test_second_line_short_leaves_first_line_untouched(self, db_session, bread, cake, north):
        put_stock(bread, north, 10)
        put_stock(cake, north, 1)

        with pytest.raises(InsufficientInventoryError):
            sales_service.create_sale(_direct(north, (bread, 2), (cake, 2)))

        assert stock_of(bread, north) == Decimal("10")
        assert stock_of(cake, north) == Decimal("1")
        assert db.session.query(SaleLine).count() == 0

    def test_same_product_on_two_lines_is_summed(self, db_session, bread, north):
        put_stock(bread, north, 5)

        with pytest.raises(InsufficientInventoryError) as exc:
            sales_service.create_sale(_direct(north, (bread, 3), (bread, 3)))

        assert exc.value.requested == Decimal("6")
        assert stock_of(bread, north) == Decimal("5")

    def test_stock_at_other_location_does_not_count(self, db_session, bread, north, south):
        put_stock(bread, south, 50)

        with pytest.raises(InsufficientInventoryError):
            sales_service.create_sale(_direct(north, (bread, 1)))

    def test_explicit_price_and_half_up_rounding(self, db_session, bread, north):
        put_stock(bread, north, 5)
        payload = _direct(north, (bread, "1.5"))
        payload["lines"][0]["unit_price_cents"] = 333
        payload["lines"][0]["tax_cents"] = 50

        sale = sales_service.create_sale(payload)

        # 1.5 * 333 = 499.5 -> 500
        assert sale.lines[0].subtotal_cents == 500
        assert sale.subtotal_cents == 500
        assert sale.tax_cents == 50
        assert sale.total_cents == 550
        assert stock_of(bread, north) == Decimal("3.5")

    def test_default_sale_date_is_business_today(self, db_session, bread, north, monkeypatch):
        put_stock(bread, north, 1)
        monkeypatch.setattr(sales_service, "business_today", lambda tz: date(2024, 12, 24))

        sale = sales_service.create_sale(_direct(north, (bread, 1)))

        assert sale.sale_date == date(2024, 12, 24)

    def test_unknown_product_writes_nothing(self, db_session, bread, north):
        put_stock(bread, north, 5)
        payload = _direct(north, (bread, 1))
        payload["lines"].append({"product_id": 999999, "quantity": 1})

        with pytest.raises(NotFoundError):
            sales_service.create_sale(payload)

        assert db.session.query(Sale).count() == 0
        assert stock_of(bread, north) == Decimal("5")

    def test_unknown_location(self, db_session, bread):
        with pytest.raises(NotFoundError):
            sales_service.create_sale({
                "location_id": 999999,
                "sale_kind": "direct",
                "lines": [{"product_id": bread.id, "quantity": 1}],
            })


# =============================================================================
# ORDER SALES
# =============================================================================


class TestOrderSale:

    def test_order_skips_stock_and_creates_order(self, db_session, bread, north, customer):
        put_stock(bread, north, 1)

        sale = sales_service.create_sale({
            "location_id": north.id,
            "sale_kind": "pedido",
            "customer_id": customer.id,
            "delivery_date": "2025-01-10",
            "notes": "Sin azucar",
            "lines": [{"product_id": bread.id, "quantity": 40}],
        })

        assert sale.kind == "ORDER"
        assert sale.status == "PENDING"
        assert sale.order.delivery_date == date(2025, 1, 10)
        assert sale.order.notes == "Sin azucar"
        assert sale.order.balance_cents == 40 * 2500
        assert stock_of(bread, north) == Decimal("1")
        assert db.session.query(Order).count() == 1

    def test_order_with_no_inventory_record_at_all(self, db_session, cake, north):
        sale = sales_service.create_sale({
            "location_id": north.id,
            "sale_kind": "order",
            "delivery_date": "2025-01-10",
            "lines": [{"product_id": cake.id, "quantity": 1}],
        })
        assert sale.customer_id is None
        assert stock_of(cake, north) is None


# =============================================================================
# INPUT VALIDATION
# =============================================================================


class TestSaleValidation:

    def test_every_missing_field_is_listed(self, db_session):
        with pytest.raises(ValidationError) as exc:
            sales_service.create_sale({})
        assert exc.value.missing_fields == ["location_id", "sale_kind", "lines"]

    def test_order_requires_delivery_date(self, db_session, bread, north):
        with pytest.raises(ValidationError) as exc:
            sales_service.create_sale({
                "sale_kind": "Pedido",
                "lines": [{"product_id": bread.id, "quantity": 1}],
            })
        assert exc.value.missing_fields == ["location_id", "delivery_date"]

    def test_missing_line_fields_are_listed(self, db_session, north):
        with pytest.raises(ValidationError) as exc:
            sales_service.create_sale({
                "location_id": north.id,
                "sale_kind": "direct",
                "lines": [{"quantity": 1}, {"product_id": 1}],
            })
        assert exc.value.missing_fields == ["lines[0].product_id", "lines[1].quantity"]

    @pytest.mark.parametrize("raw,expected", [
        ("direct", "DIRECT"),
        ("Directa", "DIRECT"),
        ("VENTA DIRECTA", "DIRECT"),
        ("  venta   directa ", "DIRECT"),
        ("order", "ORDER"),
        ("Pedido", "ORDER"),
    ])
    def test_sale_kind_aliases(self, raw, expected):
        assert sales_service.normalize_sale_kind(raw) == expected

    def test_unknown_sale_kind(self):
        with pytest.raises(ValidationError):
            sales_service.normalize_sale_kind("wholesale")

    @pytest.mark.parametrize("quantity", [0, -2, "abc", "1.2345", "1e30", "1e12"])
    def test_bad_quantity(self, db_session, bread, north, quantity):
        with pytest.raises(ValidationError):
            sales_service.create_sale(_direct(north, (bread, quantity)))

    def test_float_price_rejected(self, db_session, bread, north):
        payload = _direct(north, (bread, 1))
        payload["lines"][0]["unit_price_cents"] = 12.5
        with pytest.raises(ValidationError):
            sales_service.create_sale(payload)


# =============================================================================
# STATUS CHANGES
# =============================================================================


class TestSaleStatus:

    def test_annul_direct_sale_restores_stock(self, db_session, bread, north):
        put_stock(bread, north, 10)
        sale = sales_service.create_sale(_direct(north, (bread, 4)))

        sales_service.update_status(sale.id, "annulled")

        assert sale.status == "ANNULLED"
        assert sale.annulled_at is not None
        assert stock_of(bread, north) == Decimal("10")

    def test_annul_twice_conflicts(self, db_session, bread, north):
        put_stock(bread, north, 10)
        sale = sales_service.create_sale(_direct(north, (bread, 4)))
        sales_service.update_status(sale.id, "ANNULLED")

        with pytest.raises(ConflictError):
            sales_service.update_status(sale.id, "ANNULLED")
        assert stock_of(bread, north) == Decimal("10")

    def test_annulled_is_terminal(self, db_session, bread, north):
        sale = sales_service.create_sale({
            "location_id": north.id,
            "sale_kind": "order",
            "delivery_date": "2025-01-10",
            "lines": [{"product_id": bread.id, "quantity": 1}],
        })
        sales_service.update_status(sale.id, "ANNULLED")

        with pytest.raises(ConflictError):
            sales_service.update_status(sale.id, "DELIVERED")

    def test_annul_order_does_not_touch_stock(self, db_session, bread, north):
        put_stock(bread, north, 2)
        sale = sales_service.create_sale({
            "location_id": north.id,
            "sale_kind": "order",
            "delivery_date": "2025-01-10",
            "lines": [{"product_id": bread.id, "quantity": 1}],
        })
        sales_service.update_status(sale.id, "ANNULLED")
        assert stock_of(bread, north) == Decimal("2")

    def test_unknown_status(self, db_session):
        with pytest.raises(ValidationError):
            sales_service.update_status(1, "LOST")

    def test_update_order_delivery_date(self, db_session, bread, north):
        sale = sales_service.create_sale({
            "location_id": north.id,
            "sale_kind": "order",
            "delivery_date": "2025-01-10",
            "lines": [{"product_id": bread.id, "quantity": 1}],
        })

        order = sales_service.update_order(sale.order.id, {"delivery_date": "2025-01-12"})

        assert order.delivery_date == date(2025, 1, 12)

        with pytest.raises(ValidationError):
            sales_service.update_order(sale.order.id, {"total_cents": 1})
