"""
Production run tests.

Verifies:
- factory runs write one line per positive location quantity and raise stock
- unknown location names are logged and skipped for the stock update only
- order runs get sequential P-NNN numbers and never move stock
- any failure rolls back the whole run
"""

import logging
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from deliciasoft.errors import ConflictError, NotFoundError, ValidationError
from deliciasoft.extensions import db
from deliciasoft.models import Location, ProductionLine, ProductionRun
from deliciasoft.services import concurrency, inventory_service, production_service

from conftest import put_stock, stock_of


@pytest.fixture
def north_named(db_session):
    """Location literally called "North" so the quantity map can address it."""
    location = Location(name="North", is_active=True)
    db_session.add(location)
    db_session.commit()
    return location


def _factory(product, quantities, key="cantidadesPorSede"):
    return {
        "kind": "fabrica",
        "name": "Morning batch",
        "products": [{"product_id": product.id, key: quantities}],
    }


def _order_run(product, quantity=1):
    return {
        "kind": "pedido",
        "name": "Wedding cake",
        "delivery_date": "2025-02-14",
        "products": [{"product_id": product.id, "quantity": quantity}],
    }


class TestFactoryProduction:

    def test_unknown_location_is_logged_and_skipped(self, app, db_session, bread, north_named, caplog):
        with caplog.at_level(logging.WARNING, logger=app.logger.name):
            run = production_service.create_production(_factory(bread, {"North": 5, "South": 3}))

        quantities = sorted(
            (line.location_name, Decimal(line.quantity))
            for line in db.session.query(ProductionLine).filter_by(run_id=run.id)
        )
        assert quantities == [("North", Decimal("5")), ("South", Decimal("3"))]
        assert stock_of(bread, north_named) == Decimal("5")
        assert any("South" in r.getMessage() for r in caplog.records if r.levelno == logging.WARNING)

    def test_adds_to_existing_stock(self, db_session, bread, north_named):
        put_stock(bread, north_named, 2)
        production_service.create_production(_factory(bread, {"North": "4.5"}, key="quantities_by_location"))
        assert stock_of(bread, north_named) == Decimal("6.5")

    def test_location_name_is_case_insensitive(self, db_session, bread, north_named):
        production_service.create_production(_factory(bread, {"north": 1}))
        assert stock_of(bread, north_named) == Decimal("1")

    def test_inactive_location_is_not_resolved(self, db_session, bread, north_named):
        north_named.is_active = False
        db_session.commit()

        run = production_service.create_production(_factory(bread, {"North": 1}))

        assert len(run.lines) == 1
        assert stock_of(bread, north_named) is None

    def test_lock_contention_is_retried(self, db_session, bread, north_named, monkeypatch):
        real_increment = inventory_service.increment
        calls = []

        def locked_once(product_id, location_id, amount):
            calls.append(product_id)
            if len(calls) == 1:
                raise OperationalError("UPDATE inventory_records", {}, Exception("database is locked"))
            return real_increment(product_id, location_id, amount)

        monkeypatch.setattr(inventory_service, "increment", locked_once)
        monkeypatch.setattr(concurrency.time, "sleep", lambda seconds: None)

        production_service.create_production(_factory(bread, {"North": 4}))

        assert len(calls) == 2
        assert db.session.query(ProductionRun).count() == 1
        assert db.session.query(ProductionLine).count() == 1
        assert stock_of(bread, north_named) == Decimal("4")

    def test_zero_quantities_are_ignored(self, db_session, bread, north_named):
        run = production_service.create_production(_factory(bread, {"North": 0, "South": None}))
        assert run.lines == []
        assert stock_of(bread, north_named) is None

    def test_factory_run_has_no_order_number(self, db_session, bread, north_named):
        run = production_service.create_production(_factory(bread, {"North": 1}), today=date(2025, 1, 3))
        assert run.kind == "FACTORY"
        assert run.run_status == "FACTORY"
        assert run.order_number is None
        assert run.order_status is None
        assert run.request_date == date(2025, 1, 3)

    def test_failure_mid_run_rolls_back_everything(self, db_session, bread, cake, north_named, monkeypatch):
        real_increment = inventory_service.increment
        calls = []

        def flaky_increment(product_id, location_id, amount):
            calls.append(product_id)
            if len(calls) == 2:
                raise SQLAlchemyError("disk full")
            return real_increment(product_id, location_id, amount)

        monkeypatch.setattr(inventory_service, "increment", flaky_increment)

        payload = {
            "kind": "factory",
            "name": "Two products",
            "products": [
                {"product_id": bread.id, "cantidadesPorSede": {"North": 5}},
                {"product_id": cake.id, "cantidadesPorSede": {"North": 2}},
            ],
        }
        with pytest.raises(SQLAlchemyError):
            production_service.create_production(payload)

        assert db.session.query(ProductionRun).count() == 0
        assert db.session.query(ProductionLine).count() == 0
        assert stock_of(bread, north_named) is None

    def test_factory_product_requires_location_map(self, db_session, bread):
        with pytest.raises(ValidationError):
            production_service.create_production({
                "kind": "factory",
                "name": "x",
                "products": [{"product_id": bread.id, "quantity": 3}],
            })


class TestOrderProduction:

    def test_first_order_number(self, db_session, bread):
        run = production_service.create_production(_order_run(bread))
        assert run.order_number == "P-001"
        assert run.run_status == "PENDING_ORDER"
        assert run.order_status == "IN_PROGRESS"
        assert run.delivery_date == date(2025, 2, 14)

    def test_numbers_continue_from_latest(self, db_session, bread):
        db_session.add(ProductionRun(
            kind="ORDER", name="old", request_date=date(2024, 1, 1),
            order_number="P-007", run_status="FINISHED", order_status="DELIVERED",
        ))
        db_session.commit()

        first = production_service.create_production(_order_run(bread))
        second = production_service.create_production(_order_run(bread))

        assert first.order_number == "P-008"
        assert second.order_number == "P-009"

    def test_unparseable_previous_number_uses_timestamp(self, db_session, bread, monkeypatch):
        db_session.add(ProductionRun(
            kind="ORDER", name="legacy", request_date=date(2024, 1, 1),
            order_number="LEGACY", run_status="FINISHED",
        ))
        db_session.commit()
        monkeypatch.setattr(production_service.time, "time", lambda: 1700000000.5)

        run = production_service.create_production(_order_run(bread))

        assert run.order_number == "P-500"

    def test_timestamp_fallback_skips_zero(self, db_session, bread, monkeypatch):
        db_session.add(ProductionRun(
            kind="ORDER", name="legacy", request_date=date(2024, 1, 1),
            order_number="LEGACY", run_status="FINISHED",
        ))
        db_session.commit()
        monkeypatch.setattr(production_service.time, "time", lambda: 1700000000.0)

        run = production_service.create_production(_order_run(bread))

        assert run.order_number == "P-001"

    def test_order_run_does_not_move_stock(self, db_session, bread, north):
        put_stock(bread, north, 3)
        production_service.create_production(_order_run(bread, quantity=10))
        assert stock_of(bread, north) == Decimal("3")

    def test_products_are_optional(self, db_session):
        run = production_service.create_production({"kind": "order", "name": "Draft"})
        assert run.lines == []
        assert run.order_number == "P-001"


class TestProductionValidation:

    def test_missing_kind_and_name(self, db_session):
        with pytest.raises(ValidationError) as exc:
            production_service.create_production({"products": []})
        assert exc.value.missing_fields == ["kind", "name"]

    def test_unknown_kind(self, db_session):
        with pytest.raises(ValidationError):
            production_service.create_production({"kind": "bakery", "name": "x"})

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFoundError):
            production_service.create_production({
                "kind": "order", "name": "x",
                "products": [{"product_id": 999999, "quantity": 1}],
            })
        assert db.session.query(ProductionRun).count() == 0


class TestProductionStatus:

    def test_order_status_only_for_order_runs(self, db_session, bread, north_named):
        run = production_service.create_production(_factory(bread, {"North": 1}))
        with pytest.raises(ValidationError):
            production_service.update_status(run.id, {"order_status": "READY"})

    def test_update_order_run(self, db_session, bread):
        run = production_service.create_production(_order_run(bread))
        updated = production_service.update_status(run.id, {"run_status": "in_production", "order_status": "ready"})
        assert updated.run_status == "IN_PRODUCTION"
        assert updated.order_status == "READY"

    def test_cancelled_is_final(self, db_session, bread):
        run = production_service.create_production(_order_run(bread))
        production_service.update_status(run.id, {"run_status": "CANCELLED"})
        with pytest.raises(ConflictError):
            production_service.update_status(run.id, {"run_status": "FINISHED"})
