from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ._helpers import format_quantity


class InventoryRecord(db.Model):
    """
    On-hand quantity of a product at a location.

    Keyed by (product_id, location_id). Created on the first stock movement
    for the pair and never deleted implicitly. quantity >= 0 after every
    committed transaction; sales decrement it, factory production increments it.
    """
    __tablename__ = "inventory_records"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_inventory_records_quantity_non_negative"),
    )

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), primary_key=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), primary_key=True, index=True)
    quantity = db.Column(db.Numeric(12, 3), nullable=False, default=0)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product")
    location = db.relationship("Location")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "location_id": self.location_id,
            "location_name": self.location.name if self.location else None,
            "quantity": format_quantity(self.quantity),
            "updated_at": to_utc_z(self.updated_at),
        }
