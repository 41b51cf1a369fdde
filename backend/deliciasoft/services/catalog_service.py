# Overview: Generic list/get/create/update/toggle/delete for the reference catalogs.

"""
Each catalog (locations, categories, suppliers, customers, products,
supplies, roles) is described by a CatalogResource: its model, the
validation policy for client payloads, extra business rules, and the
foreign keys that must point at existing rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConflictError, NotFoundError, ReferentialIntegrityError, ValidationError
from ..models import (
    Customer,
    Image,
    Location,
    Product,
    ProductCategory,
    Recipe,
    Role,
    Supplier,
    Supply,
    SupplyCategory,
    User,
)
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_email,
    enforce_rules_product,
    enforce_rules_supplier,
    validate_payload,
)
from . import auth_service


@dataclass(frozen=True)
class CatalogResource:
    label: str
    model: type
    policy: ModelValidationPolicy
    rules: tuple[Callable[[dict], None], ...] = ()
    references: dict = field(default_factory=dict)
    search_fields: tuple[str, ...] = ("name",)
    order_by: str = "name"


LOCATIONS = CatalogResource(
    label="Location",
    model=Location,
    policy=ModelValidationPolicy(
        writable_fields={"name", "phone", "address", "image_url", "is_active"},
        required_on_create={"name"},
    ),
)

PRODUCT_CATEGORIES = CatalogResource(
    label="Product category",
    model=ProductCategory,
    policy=ModelValidationPolicy(
        writable_fields={"name", "description", "image_id", "is_active"},
        required_on_create={"name"},
    ),
    references={"image_id": Image},
)

SUPPLY_CATEGORIES = CatalogResource(
    label="Supply category",
    model=SupplyCategory,
    policy=ModelValidationPolicy(
        writable_fields={"name", "description", "is_active"},
        required_on_create={"name"},
    ),
)

SUPPLIERS = CatalogResource(
    label="Supplier",
    model=Supplier,
    policy=ModelValidationPolicy(
        writable_fields={"name", "kind", "document", "contact_name", "phone", "email", "address", "is_active"},
        required_on_create={"name"},
    ),
    rules=(enforce_rules_supplier, enforce_rules_email),
    search_fields=("name", "document", "contact_name"),
)

CUSTOMERS = CatalogResource(
    label="Customer",
    model=Customer,
    policy=ModelValidationPolicy(
        writable_fields={"document_type", "document", "first_name", "last_name", "email", "phone", "address", "is_active"},
        required_on_create={"first_name"},
    ),
    rules=(enforce_rules_email,),
    search_fields=("first_name", "last_name", "document", "email"),
    order_by="first_name",
)

PRODUCTS = CatalogResource(
    label="Product",
    model=Product,
    policy=ModelValidationPolicy(
        writable_fields={"name", "description", "price_cents", "category_id", "recipe_id", "image_id", "is_active"},
        required_on_create={"name", "price_cents"},
    ),
    rules=(enforce_rules_product,),
    references={"category_id": ProductCategory, "recipe_id": Recipe, "image_id": Image},
)

SUPPLIES = CatalogResource(
    label="Supply",
    model=Supply,
    policy=ModelValidationPolicy(
        # quantity only moves through purchases and add-stock
        writable_fields={"name", "category_id", "unit", "min_stock", "is_active"},
        required_on_create={"name", "unit"},
    ),
    references={"category_id": SupplyCategory},
)

ROLES = CatalogResource(
    label="Role",
    model=Role,
    policy=ModelValidationPolicy(
        writable_fields={"name", "description", "is_active"},
        required_on_create={"name"},
    ),
)


def _check_references(resource: CatalogResource, patch: dict) -> None:
    for column, target in resource.references.items():
        ref_id = patch.get(column)
        if ref_id is not None and db.session.get(target, ref_id) is None:
            raise ReferentialIntegrityError(
                f"{column} references a {target.__name__} that does not exist",
                details={"field": column, "value": ref_id},
            )


def _translate_integrity_error(resource: CatalogResource, exc: IntegrityError):
    message = str(exc.orig).lower()
    if "unique" in message or "duplicate" in message:
        return ConflictError(f"{resource.label} already exists", details={"db_error": str(exc.orig)})
    return ReferentialIntegrityError(
        f"{resource.label} violates a reference constraint",
        details={"db_error": str(exc.orig)},
    )


def _commit(resource: CatalogResource) -> None:
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise _translate_integrity_error(resource, exc)


def _clean(resource: CatalogResource, payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=resource.model, payload=payload, policy=resource.policy, partial=partial)
    for rule in resource.rules:
        rule(patch)
    _check_references(resource, patch)
    return patch


def list_entities(resource: CatalogResource, *, active: bool | None = None, search: str | None = None) -> list:
    model = resource.model
    query = db.session.query(model)
    if active is not None:
        query = query.filter(model.is_active.is_(active))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(*[getattr(model, f).ilike(pattern) for f in resource.search_fields]))
    return query.order_by(getattr(model, resource.order_by).asc(), model.id.asc()).all()


def get_entity(resource: CatalogResource, entity_id: int):
    entity = db.session.get(resource.model, entity_id)
    if entity is None:
        raise NotFoundError(f"{resource.label} not found")
    return entity


def create_entity(resource: CatalogResource, payload: dict):
    patch = _clean(resource, payload, partial=False)
    entity = resource.model(**patch)
    db.session.add(entity)
    _commit(resource)
    return entity


def update_entity(resource: CatalogResource, entity_id: int, payload: dict):
    entity = get_entity(resource, entity_id)
    patch = _clean(resource, payload, partial=True)
    for key, value in patch.items():
        setattr(entity, key, value)
    _commit(resource)
    return entity


def toggle_active(resource: CatalogResource, entity_id: int):
    entity = get_entity(resource, entity_id)
    entity.is_active = not entity.is_active
    _commit(resource)
    return entity


def delete_entity(resource: CatalogResource, entity_id: int) -> None:
    """Hard delete. Rows still referenced elsewhere are refused; deactivate them instead."""
    entity = get_entity(resource, entity_id)
    try:
        db.session.delete(entity)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ReferentialIntegrityError(
            f"{resource.label} is referenced by other records; deactivate it instead"
        )


def create_customer(payload: dict) -> Customer:
    """Customers may be created with an optional login password."""
    data = dict(payload or {})
    password = data.pop("password", None)
    patch = _clean(CUSTOMERS, data, partial=False)
    if password and not patch.get("email"):
        raise ValidationError("email is required when a password is set", missing_fields=["email"])
    if patch.get("email"):
        account_type, _ = auth_service.find_account(patch["email"])
        if account_type is not None:
            raise ConflictError("Email is already registered")
    customer = Customer(**patch)
    if password:
        customer.password_hash = auth_service.hash_password(password)
    db.session.add(customer)
    _commit(CUSTOMERS)
    return customer


USERS = CatalogResource(
    label="User",
    model=User,
    policy=ModelValidationPolicy(
        writable_fields={"name", "email", "document", "role_id", "is_active"},
        required_on_create={"name", "email"},
    ),
    rules=(enforce_rules_email,),
    references={"role_id": Role},
    search_fields=("name", "email", "document"),
)


def create_user(payload: dict) -> User:
    data = dict(payload or {})
    password = data.pop("password", None)
    patch = _clean(USERS, data, partial=False)
    if not password:
        raise ValidationError("Missing required fields: password", missing_fields=["password"])
    return auth_service.create_user(
        name=patch["name"],
        email=patch["email"],
        password=password,
        role_id=patch.get("role_id"),
        document=patch.get("document"),
    )
