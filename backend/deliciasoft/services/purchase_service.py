# Overview: Supply purchases and the supply stock they move.

"""
Purchase Service

An ACTIVE purchase has added its line quantities to each supply's stock.
Annulling takes them back out (refused if any supply would go negative);
re-activating adds them again. Each move is one transaction.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..errors import ConflictError, NotFoundError, ValidationError, require_fields
from ..models import Purchase, PurchaseLine, Supplier, Supply
from ..models.purchases import PURCHASE_STATUS_ACTIVE, PURCHASE_STATUS_ANNULLED
from ..time_utils import business_today
from ..validation import line_amount_cents, parse_cents, parse_date_field, parse_quantity
from .concurrency import lock_for_update, run_with_retry


def _locked_supply(supply_id: int) -> Supply | None:
    return lock_for_update(db.session.query(Supply).filter_by(id=supply_id)).first()


def _apply_lines(purchase: Purchase, sign: int) -> None:
    for line in purchase.lines:
        supply = _locked_supply(line.supply_id)
        current = Decimal(supply.quantity or 0)
        new_quantity = current + sign * Decimal(line.quantity)
        if new_quantity < 0:
            raise ConflictError(
                f"Supply {supply.name} would go negative",
                details={
                    "supply_id": supply.id,
                    "available": str(current),
                    "requested": str(line.quantity),
                },
            )
        supply.quantity = new_quantity


def _parse_lines(raw_lines) -> list[dict]:
    if not isinstance(raw_lines, list) or not raw_lines:
        raise ValidationError("At least one line item is required", missing_fields=["lines"])
    missing = []
    for i, raw in enumerate(raw_lines):
        if not isinstance(raw, dict):
            raise ValidationError(f"lines[{i}] must be an object")
        for f in ("supply_id", "quantity", "unit_cost_cents"):
            if raw.get(f) in (None, ""):
                missing.append(f"lines[{i}].{f}")
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing_fields=missing)

    parsed = []
    for i, raw in enumerate(raw_lines):
        try:
            supply_id = int(raw["supply_id"])
        except (TypeError, ValueError):
            raise ValidationError(f"lines[{i}].supply_id must be an integer")
        parsed.append({
            "supply_id": supply_id,
            "quantity": parse_quantity(raw["quantity"], f"lines[{i}].quantity"),
            "unit_cost_cents": parse_cents(raw["unit_cost_cents"], f"lines[{i}].unit_cost_cents"),
        })
    return parsed


def create_purchase(payload: dict) -> Purchase:
    require_fields(payload, ["supplier_id", "lines"])
    try:
        supplier_id = int(payload["supplier_id"])
    except (TypeError, ValueError):
        raise ValidationError("supplier_id must be an integer")
    lines = _parse_lines(payload["lines"])
    purchase_date = parse_date_field(payload.get("purchase_date") or None, "purchase_date")
    if purchase_date is None:
        purchase_date = business_today(current_app.config.get("BUSINESS_TIMEZONE", "America/Bogota"))

    def _op():
        supplier = db.session.get(Supplier, supplier_id)
        if supplier is None:
            raise NotFoundError("Supplier not found")
        if not supplier.is_active:
            raise ConflictError("Supplier is inactive")
        for line in lines:
            if db.session.get(Supply, line["supply_id"]) is None:
                raise NotFoundError(f"Supply {line['supply_id']} not found")

        purchase = Purchase(
            supplier_id=supplier_id,
            purchase_date=purchase_date,
            status=PURCHASE_STATUS_ACTIVE,
            notes=payload.get("notes"),
        )
        total = 0
        for line in lines:
            subtotal = line_amount_cents(line["quantity"], line["unit_cost_cents"])
            purchase.lines.append(PurchaseLine(
                supply_id=line["supply_id"],
                quantity=line["quantity"],
                unit_cost_cents=line["unit_cost_cents"],
                subtotal_cents=subtotal,
            ))
            total += subtotal
        purchase.total_cents = total
        db.session.add(purchase)
        db.session.flush()

        _apply_lines(purchase, +1)
        db.session.commit()
        return purchase

    try:
        return run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise


def get_purchase(purchase_id: int) -> Purchase:
    purchase = db.session.get(Purchase, purchase_id)
    if purchase is None:
        raise NotFoundError("Purchase not found")
    return purchase


def list_purchases(*, status: str | None = None, supplier_id: int | None = None) -> list[Purchase]:
    query = db.session.query(Purchase)
    if status:
        query = query.filter(Purchase.status == status.upper())
    if supplier_id is not None:
        query = query.filter(Purchase.supplier_id == supplier_id)
    return query.order_by(Purchase.purchase_date.desc(), Purchase.id.desc()).all()


def _set_status(purchase_id: int, target: str) -> Purchase:
    def _op():
        purchase = lock_for_update(db.session.query(Purchase).filter_by(id=purchase_id)).first()
        if purchase is None:
            raise NotFoundError("Purchase not found")
        if purchase.status == target:
            raise ConflictError(f"Purchase is already {target.lower()}")
        _apply_lines(purchase, -1 if target == PURCHASE_STATUS_ANNULLED else +1)
        purchase.status = target
        db.session.commit()
        return purchase

    try:
        return run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise


def annul_purchase(purchase_id: int) -> Purchase:
    return _set_status(purchase_id, PURCHASE_STATUS_ANNULLED)


def activate_purchase(purchase_id: int) -> Purchase:
    return _set_status(purchase_id, PURCHASE_STATUS_ACTIVE)


def add_supply_stock(supply_id: int, quantity) -> Supply:
    """Manual stock entry for a supply outside a purchase."""
    qty = parse_quantity(quantity, "quantity")

    def _op():
        supply = _locked_supply(supply_id)
        if supply is None:
            raise NotFoundError("Supply not found")
        supply.quantity = Decimal(supply.quantity or 0) + qty
        db.session.commit()
        return supply

    try:
        return run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise
