# Overview: Flask API routes for supply purchases (compras).

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import AppError, error_response, internal_error_response
from ..services import purchase_service

purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.post("")
@require_auth
@require_permission("MANAGE_PURCHASES")
def create_purchase_route():
    """Body: supplier_id, purchase_date?, notes?, lines[{supply_id, quantity, unit_cost_cents}]"""
    try:
        purchase = purchase_service.create_purchase(request.get_json(silent=True) or {})
        return jsonify({"purchase": purchase.to_dict(include_lines=True)}), 201
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to create purchase")


@purchases_bp.get("")
@require_auth
@require_permission("VIEW_PURCHASES")
def list_purchases_route():
    try:
        purchases = purchase_service.list_purchases(
            status=request.args.get("status"),
            supplier_id=request.args.get("supplier_id", type=int),
        )
        return jsonify({"purchases": [p.to_dict() for p in purchases]}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to list purchases")


@purchases_bp.get("/<int:purchase_id>")
@require_auth
@require_permission("VIEW_PURCHASES")
def get_purchase_route(purchase_id: int):
    try:
        purchase = purchase_service.get_purchase(purchase_id)
        return jsonify({"purchase": purchase.to_dict(include_lines=True)}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to load purchase")


@purchases_bp.put("/<int:purchase_id>/annul")
@require_auth
@require_permission("MANAGE_PURCHASES")
def annul_purchase_route(purchase_id: int):
    try:
        purchase = purchase_service.annul_purchase(purchase_id)
        return jsonify({"purchase": purchase.to_dict(include_lines=True)}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to annul purchase")


@purchases_bp.put("/<int:purchase_id>/activate")
@require_auth
@require_permission("MANAGE_PURCHASES")
def activate_purchase_route(purchase_id: int):
    try:
        purchase = purchase_service.activate_purchase(purchase_id)
        return jsonify({"purchase": purchase.to_dict(include_lines=True)}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to activate purchase")
