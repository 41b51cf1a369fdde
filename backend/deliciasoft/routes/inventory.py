# Overview: Flask API routes for per-location product stock.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import AppError, ValidationError, error_response, internal_error_response, require_fields
from ..services import inventory_service
from ..models._helpers import format_quantity

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_inventory_route():
    """Single (product, location) record; a zero stub when it never moved."""
    try:
        product_id = request.args.get("product_id", type=int)
        location_id = request.args.get("location_id", type=int)
        missing = [name for name, value in (("product_id", product_id), ("location_id", location_id)) if value is None]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing_fields=missing)

        record = inventory_service.get_record(product_id, location_id)
        body = record.to_dict() if record else inventory_service.stub_record(product_id, location_id)
        return jsonify({"inventory": body}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to load inventory")


@inventory_bp.get("/products/<int:product_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def product_inventory_route(product_id: int):
    try:
        records, total = inventory_service.list_for_product(product_id)
        return jsonify({
            "product_id": product_id,
            "total": format_quantity(total),
            "locations": [r.to_dict() for r in records],
        }), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to load product inventory")


@inventory_bp.get("/locations/<int:location_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def location_inventory_route(location_id: int):
    try:
        records = inventory_service.list_for_location(location_id)
        return jsonify({"location_id": location_id, "products": [r.to_dict() for r in records]}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to load location inventory")


@inventory_bp.get("/general")
@require_auth
@require_permission("VIEW_INVENTORY")
def general_inventory_route():
    try:
        return jsonify({"inventory": [r.to_dict() for r in inventory_service.list_all()]}), 200
    except Exception as e:
        return internal_error_response(e, "Failed to load inventory")


@inventory_bp.post("")
@require_auth
@require_permission("ADJUST_INVENTORY")
def set_inventory_route():
    """Absolute stock count. Body: product_id, location_id, quantity (>= 0)."""
    try:
        data = request.get_json(silent=True) or {}
        require_fields(data, ["product_id", "location_id", "quantity"])
        try:
            product_id = int(data["product_id"])
            location_id = int(data["location_id"])
        except (TypeError, ValueError):
            raise ValidationError("product_id and location_id must be integers")
        record = inventory_service.set_quantity(product_id, location_id, data["quantity"])
        return jsonify({"inventory": record.to_dict()}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to set inventory")
