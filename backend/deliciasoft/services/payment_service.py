# Overview: Payment installments ("abonos") recorded against orders.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import ConflictError, NotFoundError, ValidationError, require_fields
from ..models import Image, Order, PaymentInstallment
from ..models.sales import INSTALLMENT_STATUS_ACTIVE, INSTALLMENT_STATUS_ANNULLED, SALE_STATUS_ANNULLED
from ..time_utils import utcnow
from ..validation import parse_cents
from .concurrency import lock_for_update, run_with_retry
from .sales_service import PAYMENT_METHODS


def record_installment(payload: dict) -> PaymentInstallment:
    """
    Record a partial payment. amount must be > 0 and not exceed the
    order's outstanding balance. Commits; proof images are attached later.
    """
    require_fields(payload, ["order_id", "amount_cents"])
    try:
        order_id = int(payload["order_id"])
    except (TypeError, ValueError):
        raise ValidationError("order_id must be an integer")
    amount = parse_cents(payload["amount_cents"], "amount_cents", allow_zero=False)

    payment_method = str(payload.get("payment_method") or "CASH").strip().upper()
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of {', '.join(sorted(PAYMENT_METHODS))}")

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if order is None:
            raise NotFoundError("Order not found")
        if order.sale.status == SALE_STATUS_ANNULLED:
            raise ConflictError("Cannot record payments against an annulled order")

        balance = order.balance_cents
        if amount > balance:
            raise ValidationError(
                "Payment exceeds the outstanding balance",
                details={"balance_cents": balance, "amount_cents": amount},
            )

        installment = PaymentInstallment(
            payment_method=payment_method,
            amount_cents=amount,
            total_paid_cents=order.paid_cents + amount,
            status=INSTALLMENT_STATUS_ACTIVE,
        )
        order.installments.append(installment)
        db.session.commit()
        return installment

    try:
        return run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise


def attach_proof(installment_id: int, image: Image) -> PaymentInstallment:
    installment = db.session.get(PaymentInstallment, installment_id)
    if installment is None:
        raise NotFoundError("Payment installment not found")
    installment.image_id = image.id
    db.session.commit()
    return installment


def list_for_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    return order


def annul_installment(installment_id: int) -> PaymentInstallment:
    def _op():
        installment = lock_for_update(
            db.session.query(PaymentInstallment).filter_by(id=installment_id)
        ).first()
        if installment is None:
            raise NotFoundError("Payment installment not found")
        if installment.status == INSTALLMENT_STATUS_ANNULLED:
            raise ConflictError("Payment installment is already annulled")
        installment.status = INSTALLMENT_STATUS_ANNULLED
        installment.annulled_at = utcnow()
        db.session.commit()
        current_app.logger.info(
            "Payment installment %s annulled (order %s, %s cents)",
            installment.id, installment.order_id, installment.amount_cents,
        )
        return installment

    try:
        return run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise
