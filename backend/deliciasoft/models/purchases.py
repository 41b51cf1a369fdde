from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date
from ._helpers import format_quantity

PURCHASE_STATUS_ACTIVE = "ACTIVE"
PURCHASE_STATUS_ANNULLED = "ANNULLED"


class Purchase(db.Model):
    """Supply purchase ("compra") from a supplier; active purchases count toward supply stock."""
    __tablename__ = "purchases"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    purchase_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=PURCHASE_STATUS_ACTIVE, index=True)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    supplier = db.relationship("Supplier")
    lines = db.relationship(
        "PurchaseLine",
        back_populates="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseLine.id",
    )

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "purchase_date": to_iso_date(self.purchase_date),
            "status": self.status,
            "total_cents": self.total_cents,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class PurchaseLine(db.Model):
    __tablename__ = "purchase_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False, index=True)
    supply_id = db.Column(db.Integer, db.ForeignKey("supplies.id"), nullable=False)
    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    purchase = db.relationship("Purchase", back_populates="lines")
    supply = db.relationship("Supply")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "supply_id": self.supply_id,
            "supply_name": self.supply.name if self.supply else None,
            "quantity": format_quantity(self.quantity),
            "unit_cost_cents": self.unit_cost_cents,
            "subtotal_cents": self.subtotal_cents,
        }
