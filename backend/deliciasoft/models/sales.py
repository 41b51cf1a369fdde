from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date
from ._helpers import format_quantity

SALE_KIND_DIRECT = "DIRECT"
SALE_KIND_ORDER = "ORDER"

SALE_STATUS_COMPLETED = "COMPLETED"
SALE_STATUS_PENDING = "PENDING"
SALE_STATUS_DELIVERED = "DELIVERED"
SALE_STATUS_ANNULLED = "ANNULLED"
SALE_STATUSES = {SALE_STATUS_COMPLETED, SALE_STATUS_PENDING, SALE_STATUS_DELIVERED, SALE_STATUS_ANNULLED}

INSTALLMENT_STATUS_ACTIVE = "ACTIVE"
INSTALLMENT_STATUS_ANNULLED = "ANNULLED"


class Sale(db.Model):
    """
    Sale header ("venta").

    DIRECT sales take stock off the shelf at their location when created.
    ORDER sales ("pedido") are produced later and always own exactly one Order.
    All amounts in cents.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_location_date", "location_id", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_date = db.Column(db.Date, nullable=False, index=True)

    # NULL means the generic walk-in customer
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)

    payment_method = db.Column(db.String(32), nullable=False, default="CASH")
    kind = db.Column(db.String(16), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    annulled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    location = db.relationship("Location")
    lines = db.relationship(
        "SaleLine",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleLine.id",
    )
    order = db.relationship("Order", back_populates="sale", uselist=False, cascade="all, delete-orphan")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "sale_date": to_iso_date(self.sale_date),
            "customer_id": self.customer_id,
            "customer_name": self.customer.full_name if self.customer else "Generic customer",
            "location_id": self.location_id,
            "location_name": self.location.name if self.location else None,
            "payment_method": self.payment_method,
            "kind": self.kind,
            "status": self.status,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "annulled_at": to_utc_z(self.annulled_at) if self.annulled_at else None,
            "order_id": self.order.id if self.order else None,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    """Line item of a sale; immutable once created."""
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)

    sale = db.relationship("Sale", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": format_quantity(self.quantity),
            "unit_price_cents": self.unit_price_cents,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
        }


class Order(db.Model):
    """Fulfillment record ("pedido") spawned by an ORDER sale."""
    __tablename__ = "orders"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, unique=True)
    delivery_date = db.Column(db.Date, nullable=False, index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", back_populates="order")
    installments = db.relationship(
        "PaymentInstallment",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="PaymentInstallment.id",
    )

    @property
    def paid_cents(self) -> int:
        return sum(i.amount_cents for i in self.installments if i.status == INSTALLMENT_STATUS_ACTIVE)

    @property
    def balance_cents(self) -> int:
        total = self.sale.total_cents if self.sale else 0
        return total - self.paid_cents

    def to_dict(self, include_installments: bool = False) -> dict:
        data = {
            "id": self.id,
            "sale_id": self.sale_id,
            "delivery_date": to_iso_date(self.delivery_date),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "total_cents": self.sale.total_cents if self.sale else None,
            "paid_cents": self.paid_cents,
            "balance_cents": self.balance_cents,
            "sale_status": self.sale.status if self.sale else None,
        }
        if include_installments:
            data["installments"] = [i.to_dict() for i in self.installments]
        return data


class PaymentInstallment(db.Model):
    """
    Partial payment ("abono") against an order.

    total_paid_cents is the running total of active installments including
    this one, as of its creation.
    """
    __tablename__ = "payment_installments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_method = db.Column(db.String(32), nullable=False, default="CASH")
    amount_cents = db.Column(db.Integer, nullable=False)
    total_paid_cents = db.Column(db.Integer, nullable=False)
    image_id = db.Column(db.Integer, db.ForeignKey("images.id"), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=INSTALLMENT_STATUS_ACTIVE, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    annulled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    order = db.relationship("Order", back_populates="installments")
    image = db.relationship("Image")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "payment_method": self.payment_method,
            "amount_cents": self.amount_cents,
            "total_paid_cents": self.total_paid_cents,
            "image_id": self.image_id,
            "image_url": self.image.url if self.image else None,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "annulled_at": to_utc_z(self.annulled_at) if self.annulled_at else None,
        }
