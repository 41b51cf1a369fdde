# Overview: Production transaction (factory restock and order runs) and its order-number sequence.

"""
Production Service

FACTORY runs restock shelves: each product carries a map of location name ->
quantity, one ProductionLine is written per positive entry and the stock at
that location is raised in the same transaction.

ORDER runs are made against pending orders: one line per product with a
flat quantity, a "P-NNN" order number, and no stock movement.

A location name that does not match an active location is logged and
skipped for the stock update only; its ProductionLine is still kept.
Any other failure rolls back the whole run.
"""

from __future__ import annotations

import time
from datetime import date
from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import Location, Product, ProductionLine, ProductionRun
from ..models.production import (
    ORDER_NUMBER_PREFIX,
    ORDER_STATUS_IN_PROGRESS,
    ORDER_STATUSES,
    PRODUCTION_KIND_FACTORY,
    PRODUCTION_KIND_ORDER,
    RUN_STATUS_CANCELLED,
    RUN_STATUS_FACTORY,
    RUN_STATUS_PENDING_ORDER,
    RUN_STATUSES,
)
from ..time_utils import business_today
from ..validation import parse_date_field, parse_decimal, parse_quantity
from . import inventory_service
from .concurrency import lock_for_update, run_with_retry


PRODUCTION_KIND_ALIASES = {
    "factory": PRODUCTION_KIND_FACTORY,
    "fabrica": PRODUCTION_KIND_FACTORY,
    "fábrica": PRODUCTION_KIND_FACTORY,
    "order": PRODUCTION_KIND_ORDER,
    "pedido": PRODUCTION_KIND_ORDER,
}

# Accepted keys for the per-location quantity map of a factory product
LOCATION_QUANTITY_KEYS = ("quantities_by_location", "cantidadesPorSede")


def normalize_production_kind(value) -> str:
    kind = PRODUCTION_KIND_ALIASES.get(str(value).strip().lower())
    if kind is None:
        raise ValidationError(f"Invalid production kind: {value!r} (expected factory or order)")
    return kind


def format_order_number(n: int) -> str:
    return f"{ORDER_NUMBER_PREFIX}{n:03d}"


def next_order_number() -> str:
    """
    Next "P-NNN" number: the most recently created numbered run + 1, or
    P-001 when none exists. An unparseable previous number falls back to
    the last three digits of the current millisecond timestamp (never P-000).

    Reads the previous run under a row lock inside the caller's transaction.
    """
    last = lock_for_update(
        db.session.query(ProductionRun)
        .filter(ProductionRun.order_number.isnot(None), ProductionRun.order_number != "")
        .order_by(ProductionRun.id.desc())
    ).first()

    if last is None:
        return format_order_number(1)

    try:
        suffix = last.order_number.strip()
        if not suffix.startswith(ORDER_NUMBER_PREFIX):
            raise ValueError(suffix)
        return format_order_number(int(suffix[len(ORDER_NUMBER_PREFIX):]) + 1)
    except ValueError:
        current_app.logger.warning(
            "Could not parse production order number %r; using timestamp fallback", last.order_number
        )
        return format_order_number(int(time.time() * 1000) % 1000 or 1)


def find_active_location_by_name(name: str) -> Location | None:
    """Case-insensitive lookup among active locations."""
    if not name or not name.strip():
        return None
    return (
        db.session.query(Location)
        .filter(func.lower(Location.name) == name.strip().lower(), Location.is_active.is_(True))
        .first()
    )


def _location_quantities(entry: dict, index: int) -> dict[str, Decimal]:
    raw = None
    for key in LOCATION_QUANTITY_KEYS:
        if entry.get(key) is not None:
            raw = entry[key]
            break
    if raw is None:
        raise ValidationError(
            f"products[{index}].quantities_by_location is required for factory production",
            missing_fields=[f"products[{index}].quantities_by_location"],
        )
    if not isinstance(raw, dict):
        raise ValidationError(f"products[{index}].quantities_by_location must be an object")

    result: dict[str, Decimal] = {}
    for location_name, qty in raw.items():
        if qty in (None, ""):
            continue
        q = parse_decimal(qty, f"products[{index}].quantities_by_location.{location_name}")
        if q > 0:
            result[str(location_name).strip()] = parse_quantity(q, f"products[{index}].quantities_by_location.{location_name}")
    return result


def _parse_products(raw_products, kind: str) -> list[dict]:
    if raw_products is None:
        return []
    if not isinstance(raw_products, list):
        raise ValidationError("products must be a list")

    parsed = []
    for i, entry in enumerate(raw_products):
        if not isinstance(entry, dict):
            raise ValidationError(f"products[{i}] must be an object")
        if entry.get("product_id") in (None, ""):
            raise ValidationError(
                f"Missing required fields: products[{i}].product_id",
                missing_fields=[f"products[{i}].product_id"],
            )
        try:
            product_id = int(entry["product_id"])
        except (TypeError, ValueError):
            raise ValidationError(f"products[{i}].product_id must be an integer")

        if kind == PRODUCTION_KIND_FACTORY:
            parsed.append({"product_id": product_id, "by_location": _location_quantities(entry, i)})
        else:
            location_name = entry.get("location_name")
            parsed.append({
                "product_id": product_id,
                "quantity": parse_quantity(entry.get("quantity"), f"products[{i}].quantity"),
                "location_name": str(location_name).strip() if location_name else None,
            })
    return parsed


def create_production(payload: dict, *, created_by_user_id: int | None = None, today: date | None = None) -> ProductionRun:
    """
    Create a production run with its lines, raising stock for FACTORY runs.

    payload keys: kind, name, request_date?, delivery_date? (ORDER only),
    products[{product_id, quantities_by_location | cantidadesPorSede}] for
    FACTORY or products[{product_id, quantity, location_name?}] for ORDER.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    name = str(payload.get("name") or "").strip()
    missing = []
    if payload.get("kind") in (None, "") or not str(payload.get("kind")).strip():
        missing.append("kind")
    if not name:
        missing.append("name")
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing_fields=missing)

    kind = normalize_production_kind(payload["kind"])
    products = _parse_products(payload.get("products"), kind)

    request_date = parse_date_field(payload.get("request_date") or None, "request_date")
    if request_date is None:
        request_date = today or business_today(current_app.config.get("BUSINESS_TIMEZONE", "America/Bogota"))

    delivery_date = None
    if kind == PRODUCTION_KIND_ORDER:
        delivery_date = parse_date_field(payload.get("delivery_date") or None, "delivery_date")

    def _op():
        for entry in products:
            if db.session.get(Product, entry["product_id"]) is None:
                raise NotFoundError(f"Product {entry['product_id']} not found")

        run = ProductionRun(
            kind=kind,
            name=name,
            request_date=request_date,
            delivery_date=delivery_date,
            created_by_user_id=created_by_user_id,
        )
        if kind == PRODUCTION_KIND_ORDER:
            run.order_number = next_order_number()
            run.run_status = RUN_STATUS_PENDING_ORDER
            run.order_status = ORDER_STATUS_IN_PROGRESS
        else:
            run.run_status = RUN_STATUS_FACTORY
            run.order_status = None
        db.session.add(run)

        lines: list[ProductionLine] = []
        for entry in products:
            if kind == PRODUCTION_KIND_FACTORY:
                for location_name, qty in entry["by_location"].items():
                    lines.append(ProductionLine(
                        product_id=entry["product_id"],
                        quantity=qty,
                        location_name=location_name,
                    ))
            else:
                lines.append(ProductionLine(
                    product_id=entry["product_id"],
                    quantity=entry["quantity"],
                    location_name=entry["location_name"],
                ))
        run.lines.extend(lines)
        db.session.flush()

        if kind == PRODUCTION_KIND_FACTORY:
            resolved: dict[str, Location | None] = {}
            for line in lines:
                key = line.location_name.lower()
                if key not in resolved:
                    resolved[key] = find_active_location_by_name(line.location_name)
                location = resolved[key]
                if location is None:
                    current_app.logger.warning(
                        "Production run %s: location %r not found among active locations; "
                        "line for product %s kept without inventory update",
                        run.id, line.location_name, line.product_id,
                    )
                    continue
                inventory_service.increment(line.product_id, location.id, line.quantity)

        db.session.commit()
        current_app.logger.info(
            "Production run %s created: kind=%s lines=%s order_number=%s",
            run.id, run.kind, len(lines), run.order_number,
        )
        return run

    try:
        return run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise


def get_run(run_id: int) -> ProductionRun:
    run = db.session.get(ProductionRun, run_id)
    if run is None:
        raise NotFoundError("Production run not found")
    return run


def list_runs(*, kind: str | None = None, run_status: str | None = None) -> list[ProductionRun]:
    query = db.session.query(ProductionRun)
    if kind:
        query = query.filter(ProductionRun.kind == normalize_production_kind(kind))
    if run_status:
        query = query.filter(ProductionRun.run_status == run_status.upper())
    return query.order_by(ProductionRun.id.desc()).all()


def update_status(run_id: int, payload: dict) -> ProductionRun:
    """Change run_status and/or order_status. Order status only exists on ORDER runs."""
    if not isinstance(payload, dict) or not any(payload.get(k) for k in ("run_status", "order_status")):
        raise ValidationError(
            "Missing required fields: run_status or order_status",
            missing_fields=["run_status", "order_status"],
        )

    run_status = payload.get("run_status")
    order_status = payload.get("order_status")
    if run_status:
        run_status = str(run_status).strip().upper()
        if run_status not in RUN_STATUSES:
            raise ValidationError(f"run_status must be one of {', '.join(sorted(RUN_STATUSES))}")
    if order_status:
        order_status = str(order_status).strip().upper()
        if order_status not in ORDER_STATUSES:
            raise ValidationError(f"order_status must be one of {', '.join(sorted(ORDER_STATUSES))}")

    try:
        run = lock_for_update(db.session.query(ProductionRun).filter_by(id=run_id)).first()
        if run is None:
            raise NotFoundError("Production run not found")
        if run.run_status == RUN_STATUS_CANCELLED:
            raise ConflictError("Cannot change a cancelled production run")
        if order_status and run.kind != PRODUCTION_KIND_ORDER:
            raise ValidationError("order_status only applies to order production runs")

        if run_status:
            run.run_status = run_status
        if order_status:
            run.order_status = order_status
        db.session.commit()
        return run
    except Exception:
        db.session.rollback()
        raise
