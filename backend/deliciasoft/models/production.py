from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date
from ._helpers import format_quantity

PRODUCTION_KIND_FACTORY = "FACTORY"
PRODUCTION_KIND_ORDER = "ORDER"

RUN_STATUS_FACTORY = "FACTORY"
RUN_STATUS_PENDING_ORDER = "PENDING_ORDER"
RUN_STATUS_IN_PRODUCTION = "IN_PRODUCTION"
RUN_STATUS_FINISHED = "FINISHED"
RUN_STATUS_CANCELLED = "CANCELLED"
RUN_STATUSES = {
    RUN_STATUS_FACTORY,
    RUN_STATUS_PENDING_ORDER,
    RUN_STATUS_IN_PRODUCTION,
    RUN_STATUS_FINISHED,
    RUN_STATUS_CANCELLED,
}

ORDER_STATUS_IN_PROGRESS = "IN_PROGRESS"
ORDER_STATUS_READY = "READY"
ORDER_STATUS_DELIVERED = "DELIVERED"
ORDER_STATUSES = {ORDER_STATUS_IN_PROGRESS, ORDER_STATUS_READY, ORDER_STATUS_DELIVERED}

ORDER_NUMBER_PREFIX = "P-"


class ProductionRun(db.Model):
    """
    Production run header.

    FACTORY runs restock shelves (their lines raise per-location inventory).
    ORDER runs are made against pending orders, carry a "P-NNN" number and
    a delivery date, and never touch inventory.
    """
    __tablename__ = "production_runs"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(16), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    request_date = db.Column(db.Date, nullable=False)
    delivery_date = db.Column(db.Date, nullable=True)
    order_number = db.Column(db.String(16), nullable=True, index=True)
    run_status = db.Column(db.String(16), nullable=False, index=True)
    order_status = db.Column(db.String(16), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "ProductionLine",
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="ProductionLine.id",
    )

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "kind": self.kind,
            "name": self.name,
            "request_date": to_iso_date(self.request_date),
            "delivery_date": to_iso_date(self.delivery_date),
            "order_number": self.order_number,
            "run_status": self.run_status,
            "order_status": self.order_status,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class ProductionLine(db.Model):
    __tablename__ = "production_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    run_id = db.Column(db.Integer, db.ForeignKey("production_runs.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    # Location as requested by name; not resolved for ORDER runs
    location_name = db.Column(db.String(128), nullable=True)

    run = db.relationship("ProductionRun", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "run_id": self.run_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": format_quantity(self.quantity),
            "location_name": self.location_name,
        }
