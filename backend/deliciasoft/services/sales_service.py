# Overview: Sale transaction (direct sales and orders) plus sale/order queries and status changes.

"""
Sales Service

A sale is created in one database transaction: header, lines, the stock
decrement for DIRECT sales, and the linked Order for ORDER sales. Stock is
checked for every line before the first write, so an insufficient line
leaves no trace.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import (
    ConflictError,
    NotFoundError,
    ReferentialIntegrityError,
    ValidationError,
)
from ..models import Customer, Location, Order, Product, Sale, SaleLine
from ..models.sales import (
    SALE_KIND_DIRECT,
    SALE_KIND_ORDER,
    SALE_STATUS_ANNULLED,
    SALE_STATUS_COMPLETED,
    SALE_STATUS_DELIVERED,
    SALE_STATUS_PENDING,
    SALE_STATUSES,
)
from ..time_utils import business_today, utcnow
from ..validation import line_amount_cents, parse_cents, parse_date_field, parse_quantity
from . import inventory_service
from .concurrency import lock_for_update, run_with_retry


SALE_KIND_ALIASES = {
    "direct": SALE_KIND_DIRECT,
    "directa": SALE_KIND_DIRECT,
    "venta directa": SALE_KIND_DIRECT,
    "order": SALE_KIND_ORDER,
    "pedido": SALE_KIND_ORDER,
}

PAYMENT_METHODS = {"CASH", "CARD", "TRANSFER", "OTHER"}


def normalize_sale_kind(value) -> str:
    """Map a client-supplied sale kind (any case, Spanish aliases) to DIRECT/ORDER."""
    key = " ".join(str(value).strip().lower().split())
    kind = SALE_KIND_ALIASES.get(key)
    if kind is None:
        raise ValidationError(
            f"Invalid sale kind: {value!r} (expected direct/directa/venta directa or order/pedido)"
        )
    return kind


def _as_int(value, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")


def _parse_lines(raw_lines) -> list[dict]:
    if not isinstance(raw_lines, list) or not raw_lines:
        raise ValidationError("At least one line item is required", missing_fields=["lines"])

    missing: list[str] = []
    for i, raw in enumerate(raw_lines):
        if not isinstance(raw, dict):
            raise ValidationError(f"lines[{i}] must be an object")
        for field in ("product_id", "quantity"):
            if raw.get(field) in (None, ""):
                missing.append(f"lines[{i}].{field}")
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing_fields=missing)

    parsed = []
    for i, raw in enumerate(raw_lines):
        unit_price = raw.get("unit_price_cents")
        parsed.append({
            "product_id": _as_int(raw["product_id"], f"lines[{i}].product_id"),
            "quantity": parse_quantity(raw["quantity"], f"lines[{i}].quantity"),
            "unit_price_cents": (
                parse_cents(unit_price, f"lines[{i}].unit_price_cents") if unit_price is not None else None
            ),
            "tax_cents": parse_cents(raw.get("tax_cents", 0), f"lines[{i}].tax_cents"),
        })
    return parsed


def create_sale(payload: dict, *, created_by_user_id: int | None = None, today: date | None = None) -> Sale:
    """
    Create a DIRECT or ORDER sale.

    payload keys: location_id, sale_kind, lines[{product_id, quantity,
    unit_price_cents?, tax_cents?}], customer_id?, payment_method?,
    sale_date?, delivery_date (ORDER only, required), notes?

    Raises ValidationError (every missing field listed at once),
    NotFoundError, InsufficientInventoryError, ReferentialIntegrityError.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = ["location_id", "sale_kind", "lines"]
    missing = [f for f in required if payload.get(f) in (None, "", [])]
    kind = None
    if payload.get("sale_kind") not in (None, ""):
        kind = normalize_sale_kind(payload["sale_kind"])
        if kind == SALE_KIND_ORDER and payload.get("delivery_date") in (None, ""):
            missing.append("delivery_date")
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing_fields=missing)

    location_id = _as_int(payload["location_id"], "location_id")
    customer_id = payload.get("customer_id")
    customer_id = _as_int(customer_id, "customer_id") if customer_id not in (None, "") else None
    lines = _parse_lines(payload["lines"])

    payment_method = str(payload.get("payment_method") or "CASH").strip().upper()
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of {', '.join(sorted(PAYMENT_METHODS))}")

    if payload.get("sale_date") not in (None, ""):
        sale_date = parse_date_field(payload["sale_date"], "sale_date")
    else:
        sale_date = today or business_today(current_app.config.get("BUSINESS_TIMEZONE", "America/Bogota"))

    delivery_date = None
    if kind == SALE_KIND_ORDER:
        delivery_date = parse_date_field(payload["delivery_date"], "delivery_date")
    notes = payload.get("notes")

    def _op():
        location = db.session.get(Location, location_id)
        if location is None:
            raise NotFoundError(f"Location {location_id} not found")
        if customer_id is not None and db.session.get(Customer, customer_id) is None:
            raise NotFoundError(f"Customer {customer_id} not found")

        products: dict[int, Product] = {}
        for line in lines:
            pid = line["product_id"]
            if pid not in products:
                product = db.session.get(Product, pid)
                if product is None:
                    raise NotFoundError(f"Product {pid} not found")
                products[pid] = product

        # First pass: stock for every line (same product on two lines is summed)
        if kind == SALE_KIND_DIRECT:
            needed: dict[tuple[int, int], Decimal] = {}
            for line in lines:
                key = (line["product_id"], location_id)
                needed[key] = needed.get(key, Decimal("0")) + line["quantity"]
            inventory_service.check_available(needed)

        # Second pass: writes
        sale = Sale(
            sale_date=sale_date,
            customer_id=customer_id,
            location_id=location_id,
            payment_method=payment_method,
            kind=kind,
            status=SALE_STATUS_COMPLETED if kind == SALE_KIND_DIRECT else SALE_STATUS_PENDING,
            created_by_user_id=created_by_user_id,
        )
        db.session.add(sale)

        subtotal = 0
        tax = 0
        for line in lines:
            unit_price = line["unit_price_cents"]
            if unit_price is None:
                unit_price = products[line["product_id"]].price_cents
            line_subtotal = line_amount_cents(line["quantity"], unit_price)
            sale.lines.append(SaleLine(
                product_id=line["product_id"],
                quantity=line["quantity"],
                unit_price_cents=unit_price,
                subtotal_cents=line_subtotal,
                tax_cents=line["tax_cents"],
            ))
            subtotal += line_subtotal
            tax += line["tax_cents"]

            if kind == SALE_KIND_DIRECT:
                inventory_service.decrement(line["product_id"], location_id, line["quantity"])

        sale.subtotal_cents = subtotal
        sale.tax_cents = tax
        sale.total_cents = subtotal + tax

        if kind == SALE_KIND_ORDER:
            sale.order = Order(delivery_date=delivery_date, notes=notes)

        db.session.commit()
        current_app.logger.info(
            "Sale %s created: kind=%s location=%s total_cents=%s",
            sale.id, sale.kind, sale.location_id, sale.total_cents,
        )
        return sale

    try:
        return run_with_retry(_op)
    except IntegrityError as exc:
        db.session.rollback()
        raise ReferentialIntegrityError(
            "Sale references a record that does not exist",
            details={"db_error": str(exc.orig)},
        )
    except Exception:
        db.session.rollback()
        raise


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale


def list_sales(
    *,
    kind: str | None = None,
    status: str | None = None,
    customer_id: int | None = None,
    location_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[Sale]:
    query = db.session.query(Sale)
    if kind:
        query = query.filter(Sale.kind == normalize_sale_kind(kind))
    if status:
        query = query.filter(Sale.status == status.upper())
    if customer_id is not None:
        query = query.filter(Sale.customer_id == customer_id)
    if location_id is not None:
        query = query.filter(Sale.location_id == location_id)
    if date_from is not None:
        query = query.filter(Sale.sale_date >= date_from)
    if date_to is not None:
        query = query.filter(Sale.sale_date <= date_to)
    return query.order_by(Sale.sale_date.desc(), Sale.id.desc()).all()


# Allowed status moves; ANNULLED is terminal
_STATUS_TRANSITIONS = {
    SALE_STATUS_PENDING: {SALE_STATUS_COMPLETED, SALE_STATUS_DELIVERED, SALE_STATUS_ANNULLED},
    SALE_STATUS_COMPLETED: {SALE_STATUS_DELIVERED, SALE_STATUS_ANNULLED},
    SALE_STATUS_DELIVERED: {SALE_STATUS_ANNULLED},
    SALE_STATUS_ANNULLED: set(),
}


def update_status(sale_id: int, new_status: str) -> Sale:
    """
    Move a sale to a new status. Annulling a DIRECT sale puts its line
    quantities back into the location's stock in the same transaction.
    """
    if not new_status:
        raise ValidationError("Missing required fields: status", missing_fields=["status"])
    new_status = str(new_status).strip().upper()
    if new_status not in SALE_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(sorted(SALE_STATUSES))}")

    def _op():
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if sale is None:
            raise NotFoundError("Sale not found")
        if sale.status == new_status:
            if new_status == SALE_STATUS_ANNULLED:
                raise ConflictError("Sale is already annulled")
            return sale
        if new_status not in _STATUS_TRANSITIONS.get(sale.status, set()):
            raise ConflictError(f"Cannot change sale status from {sale.status} to {new_status}")

        if new_status == SALE_STATUS_ANNULLED:
            if sale.kind == SALE_KIND_DIRECT:
                for line in sale.lines:
                    inventory_service.increment(line.product_id, sale.location_id, line.quantity)
            sale.annulled_at = utcnow()

        sale.status = new_status
        db.session.commit()
        return sale

    try:
        return run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    return order


def list_orders(*, customer_id: int | None = None) -> list[Order]:
    query = db.session.query(Order).join(Sale, Order.sale_id == Sale.id)
    if customer_id is not None:
        query = query.filter(Sale.customer_id == customer_id)
    return query.order_by(Order.delivery_date.asc(), Order.id.asc()).all()


def update_order(order_id: int, payload: dict) -> Order:
    """Edit delivery date and notes of an order that is not annulled."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    allowed = {"delivery_date", "notes"}
    unknown = set(payload) - allowed
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    order = get_order(order_id)
    if order.sale.status == SALE_STATUS_ANNULLED:
        raise ConflictError("Cannot edit an annulled order")

    if "delivery_date" in payload:
        delivery_date = parse_date_field(payload["delivery_date"], "delivery_date")
        if delivery_date is None:
            raise ValidationError("delivery_date cannot be null")
        order.delivery_date = delivery_date
    if "notes" in payload:
        order.notes = payload["notes"]

    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return order


def ensure_customer_may_order(payload: dict, customer_id: int) -> dict:
    """Customers may only place ORDER sales for themselves."""
    data = dict(payload or {})
    if data.get("sale_kind") not in (None, "") and normalize_sale_kind(data["sale_kind"]) != SALE_KIND_ORDER:
        raise ValidationError("Customers can only place orders")
    data["sale_kind"] = "order"
    data["customer_id"] = customer_id
    return data


def sale_detail(sale: Sale) -> dict:
    data = sale.to_dict(include_lines=True)
    data["order"] = sale.order.to_dict(include_installments=True) if sale.order else None
    return data

