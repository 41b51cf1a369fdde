# Overview: Per-(product, location) stock ledger primitives used by sales and production.

"""
Inventory ledger.

increment/decrement never commit: they run inside the caller's transaction
so the stock change commits or rolls back together with the sale or
production rows that caused it. Both take a row lock on the record first.
"""

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..errors import InsufficientInventoryError, NotFoundError, ValidationError
from ..models import InventoryRecord, Location, Product
from ..validation import MAX_QUANTITY, parse_quantity
from .concurrency import lock_for_update, run_with_retry


def _locked_record(product_id: int, location_id: int) -> InventoryRecord | None:
    return lock_for_update(
        db.session.query(InventoryRecord).filter_by(product_id=product_id, location_id=location_id)
    ).first()


def get_record(product_id: int, location_id: int) -> InventoryRecord | None:
    return db.session.query(InventoryRecord).filter_by(
        product_id=product_id, location_id=location_id
    ).first()


def get_quantity(product_id: int, location_id: int) -> Decimal:
    record = get_record(product_id, location_id)
    return Decimal(record.quantity) if record else Decimal("0")


def increment(product_id: int, location_id: int, amount) -> InventoryRecord:
    """Add stock, creating the record on the first movement for the pair. Does not commit."""
    amount = Decimal(amount)
    if amount <= 0:
        raise ValidationError("Inventory increment must be > 0")

    record = _locked_record(product_id, location_id)
    if record is None:
        record = InventoryRecord(product_id=product_id, location_id=location_id, quantity=amount)
        db.session.add(record)
    else:
        total = Decimal(record.quantity) + amount
        if total > MAX_QUANTITY:
            raise ValidationError(f"Stock for product {product_id} at location {location_id} cannot exceed {MAX_QUANTITY}")
        record.quantity = total
    db.session.flush()
    return record


def decrement(product_id: int, location_id: int, amount) -> InventoryRecord:
    """
    Remove stock. Raises InsufficientInventoryError when the record is
    missing or holds less than amount; never writes a negative quantity.
    Does not commit.
    """
    amount = Decimal(amount)
    if amount <= 0:
        raise ValidationError("Inventory decrement must be > 0")

    record = _locked_record(product_id, location_id)
    available = Decimal(record.quantity) if record else Decimal("0")
    if record is None or available < amount:
        raise InsufficientInventoryError(product_id, location_id, available, amount)

    record.quantity = available - amount
    db.session.flush()
    return record


def check_available(requirements: dict[tuple[int, int], Decimal]) -> None:
    """
    Verify every (product_id, location_id) -> quantity requirement against
    locked records before any write happens.
    """
    for (product_id, location_id), requested in requirements.items():
        record = _locked_record(product_id, location_id)
        available = Decimal(record.quantity) if record else Decimal("0")
        if record is None or available < requested:
            raise InsufficientInventoryError(product_id, location_id, available, requested)


def stub_record(product_id: int, location_id: int) -> dict:
    """Zero-quantity view of a pair that has never moved."""
    return {
        "product_id": product_id,
        "product_name": None,
        "location_id": location_id,
        "location_name": None,
        "quantity": "0",
        "updated_at": None,
    }


def list_for_product(product_id: int) -> tuple[list[InventoryRecord], Decimal]:
    if db.session.get(Product, product_id) is None:
        raise NotFoundError("Product not found")
    records = (
        db.session.query(InventoryRecord)
        .join(Location, InventoryRecord.location_id == Location.id)
        .filter(InventoryRecord.product_id == product_id)
        .order_by(Location.name.asc())
        .all()
    )
    total = sum((Decimal(r.quantity) for r in records), Decimal("0"))
    return records, total


def list_for_location(location_id: int) -> list[InventoryRecord]:
    if db.session.get(Location, location_id) is None:
        raise NotFoundError("Location not found")
    return (
        db.session.query(InventoryRecord)
        .join(Product, InventoryRecord.product_id == Product.id)
        .filter(InventoryRecord.location_id == location_id)
        .order_by(Product.name.asc())
        .all()
    )


def list_all() -> list[InventoryRecord]:
    return (
        db.session.query(InventoryRecord)
        .join(Location, InventoryRecord.location_id == Location.id)
        .join(Product, InventoryRecord.product_id == Product.id)
        .order_by(Location.name.asc(), Product.name.asc())
        .all()
    )


def set_quantity(product_id: int, location_id: int, quantity) -> InventoryRecord:
    """Manual absolute stock count for a pair (upsert). Commits."""
    qty = parse_quantity(quantity, "quantity", allow_zero=True)

    def _op():
        if db.session.get(Product, product_id) is None:
            raise NotFoundError("Product not found")
        if db.session.get(Location, location_id) is None:
            raise NotFoundError("Location not found")

        record = _locked_record(product_id, location_id)
        if record is None:
            record = InventoryRecord(product_id=product_id, location_id=location_id, quantity=qty)
            db.session.add(record)
        else:
            record.quantity = qty
        db.session.commit()
        return record

    try:
        return run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise
