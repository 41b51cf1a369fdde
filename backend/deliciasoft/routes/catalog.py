# Overview: Flask API routes for the reference catalogs, built from one blueprint factory.

"""
Every catalog exposes the same surface:

    GET    /            list (?active=true|false, ?q=search)
    GET    /<id>        fetch one
    POST   /            create
    PUT    /<id>        partial update
    PATCH  /<id>/toggle flip is_active
    DELETE /<id>        delete (refused while referenced)
"""

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import AppError, error_response, internal_error_response, require_fields
from ..services import catalog_service, purchase_service
from ..services.catalog_service import CatalogResource


def _active_filter():
    raw = request.args.get("active")
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in ("1", "true", "yes")


def make_catalog_blueprint(
    name: str,
    url_prefix: str,
    resource: CatalogResource,
    *,
    singular: str,
    plural: str,
    view_permission: str = "VIEW_CATALOG",
    manage_permission: str = "MANAGE_CATALOG",
    create=None,
) -> Blueprint:
    bp = Blueprint(name, __name__, url_prefix=url_prefix)
    create = create or (lambda payload: catalog_service.create_entity(resource, payload))

    @bp.get("")
    @require_auth
    @require_permission(view_permission)
    def list_route():
        try:
            items = catalog_service.list_entities(resource, active=_active_filter(), search=request.args.get("q"))
            return jsonify({plural: [i.to_dict() for i in items]}), 200
        except AppError as e:
            return error_response(e)
        except Exception as e:
            return internal_error_response(e, f"Failed to list {plural}")

    @bp.get("/<int:entity_id>")
    @require_auth
    @require_permission(view_permission)
    def get_route(entity_id: int):
        try:
            return jsonify({singular: catalog_service.get_entity(resource, entity_id).to_dict()}), 200
        except AppError as e:
            return error_response(e)
        except Exception as e:
            return internal_error_response(e, f"Failed to load {singular}")

    @bp.post("")
    @require_auth
    @require_permission(manage_permission)
    def create_route():
        try:
            entity = create(request.get_json(silent=True) or {})
            return jsonify({singular: entity.to_dict()}), 201
        except AppError as e:
            return error_response(e)
        except Exception as e:
            return internal_error_response(e, f"Failed to create {singular}")

    @bp.put("/<int:entity_id>")
    @require_auth
    @require_permission(manage_permission)
    def update_route(entity_id: int):
        try:
            entity = catalog_service.update_entity(resource, entity_id, request.get_json(silent=True) or {})
            return jsonify({singular: entity.to_dict()}), 200
        except AppError as e:
            return error_response(e)
        except Exception as e:
            return internal_error_response(e, f"Failed to update {singular}")

    @bp.patch("/<int:entity_id>/toggle")
    @require_auth
    @require_permission(manage_permission)
    def toggle_route(entity_id: int):
        try:
            entity = catalog_service.toggle_active(resource, entity_id)
            return jsonify({singular: entity.to_dict()}), 200
        except AppError as e:
            return error_response(e)
        except Exception as e:
            return internal_error_response(e, f"Failed to toggle {singular}")

    @bp.delete("/<int:entity_id>")
    @require_auth
    @require_permission(manage_permission)
    def delete_route(entity_id: int):
        try:
            catalog_service.delete_entity(resource, entity_id)
            return jsonify({"ok": True}), 200
        except AppError as e:
            return error_response(e)
        except Exception as e:
            return internal_error_response(e, f"Failed to delete {singular}")

    return bp


locations_bp = make_catalog_blueprint(
    "locations", "/api/locations", catalog_service.LOCATIONS,
    singular="location", plural="locations",
)
product_categories_bp = make_catalog_blueprint(
    "product_categories", "/api/product-categories", catalog_service.PRODUCT_CATEGORIES,
    singular="category", plural="categories",
)
supply_categories_bp = make_catalog_blueprint(
    "supply_categories", "/api/supply-categories", catalog_service.SUPPLY_CATEGORIES,
    singular="category", plural="categories",
)
suppliers_bp = make_catalog_blueprint(
    "suppliers", "/api/suppliers", catalog_service.SUPPLIERS,
    singular="supplier", plural="suppliers",
)
customers_bp = make_catalog_blueprint(
    "customers", "/api/customers", catalog_service.CUSTOMERS,
    singular="customer", plural="customers",
    view_permission="VIEW_CUSTOMERS", manage_permission="MANAGE_CUSTOMERS",
    create=catalog_service.create_customer,
)
products_bp = make_catalog_blueprint(
    "products", "/api/products", catalog_service.PRODUCTS,
    singular="product", plural="products",
)
supplies_bp = make_catalog_blueprint(
    "supplies", "/api/supplies", catalog_service.SUPPLIES,
    singular="supply", plural="supplies",
)


@supplies_bp.post("/<int:supply_id>/add-stock")
@require_auth
@require_permission("ADJUST_INVENTORY")
def add_supply_stock_route(supply_id: int):
    """Body: {"quantity": > 0}"""
    try:
        data = request.get_json(silent=True) or {}
        require_fields(data, ["quantity"])
        supply = purchase_service.add_supply_stock(supply_id, data["quantity"])
        return jsonify({"supply": supply.to_dict()}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to add supply stock")


CATALOG_BLUEPRINTS = (
    locations_bp,
    product_categories_bp,
    supply_categories_bp,
    suppliers_bp,
    customers_bp,
    products_bp,
    supplies_bp,
)
