from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ._helpers import format_quantity


class Location(db.Model):
    """
    Physical sales/stock location ("sede").

    Names are unique so factory production can address locations by name.
    """
    __tablename__ = "locations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True, index=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    image_url = db.Column(db.String(512), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "image_url": self.image_url,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Image(db.Model):
    """Reference to an image held by the external image storage service."""
    __tablename__ = "images"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    url = db.Column(db.String(512), nullable=False)
    file_id = db.Column(db.String(128), nullable=True)
    name = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "file_id": self.file_id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }


class ProductCategory(db.Model):
    __tablename__ = "product_categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    image_id = db.Column(db.Integer, db.ForeignKey("images.id"), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    image = db.relationship("Image")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "image_id": self.image_id,
            "image_url": self.image.url if self.image else None,
            "is_active": self.is_active,
        }


class SupplyCategory(db.Model):
    __tablename__ = "supply_categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
        }


class Supply(db.Model):
    """
    Raw material ("insumo") bought from suppliers and consumed by recipes.

    quantity is the on-hand stock, raised by purchases.
    """
    __tablename__ = "supplies"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    category_id = db.Column(db.Integer, db.ForeignKey("supply_categories.id"), nullable=True, index=True)
    unit = db.Column(db.String(32), nullable=False, default="unit")
    quantity = db.Column(db.Numeric(12, 3), nullable=False, default=0)
    min_stock = db.Column(db.Numeric(12, 3), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    category = db.relationship("SupplyCategory", backref=db.backref("supplies", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "unit": self.unit,
            "quantity": format_quantity(self.quantity),
            "min_stock": format_quantity(self.min_stock),
            "is_active": self.is_active,
        }


class Recipe(db.Model):
    __tablename__ = "recipes"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    instructions = db.Column(db.Text, nullable=True)

    lines = db.relationship(
        "RecipeLine",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeLine.id",
    )

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "instructions": self.instructions,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class RecipeLine(db.Model):
    """Supply quantity needed by a recipe."""
    __tablename__ = "recipe_lines"
    __table_args__ = (
        db.UniqueConstraint("recipe_id", "supply_id", name="uq_recipe_lines_recipe_supply"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    supply_id = db.Column(db.Integer, db.ForeignKey("supplies.id"), nullable=False)
    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    unit = db.Column(db.String(32), nullable=True)

    recipe = db.relationship("Recipe", back_populates="lines")
    supply = db.relationship("Supply")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "recipe_id": self.recipe_id,
            "supply_id": self.supply_id,
            "supply_name": self.supply.name if self.supply else None,
            "quantity": format_quantity(self.quantity),
            "unit": self.unit or (self.supply.unit if self.supply else None),
        }


class Product(db.Model):
    """Sellable bakery product ("producto general")."""
    __tablename__ = "products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True, index=True)
    description = db.Column(db.Text, nullable=True)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    category_id = db.Column(db.Integer, db.ForeignKey("product_categories.id"), nullable=True, index=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey("recipes.id"), nullable=True)
    image_id = db.Column(db.Integer, db.ForeignKey("images.id"), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    category = db.relationship("ProductCategory", backref=db.backref("products", lazy=True))
    recipe = db.relationship("Recipe")
    image = db.relationship("Image")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "recipe_id": self.recipe_id,
            "image_id": self.image_id,
            "image_url": self.image.url if self.image else None,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    # PERSON or COMPANY
    kind = db.Column(db.String(16), nullable=False, default="COMPANY")
    document = db.Column(db.String(32), nullable=True, unique=True)
    contact_name = db.Column(db.String(128), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "document": self.document,
            "contact_name": self.contact_name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "is_active": self.is_active,
        }
