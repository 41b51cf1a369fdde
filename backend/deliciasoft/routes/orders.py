# Overview: Flask API routes for orders (pedidos) spawned by order-kind sales.

from flask import Blueprint, jsonify, request

from ..decorators import current_customer_id, require_auth, require_permission
from ..errors import AppError, NotFoundError, error_response, internal_error_response
from ..services import sales_service

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _visible_order(order_id: int):
    order = sales_service.get_order(order_id)
    customer_id = current_customer_id()
    if customer_id is not None and order.sale.customer_id != customer_id:
        raise NotFoundError("Order not found")
    return order


@orders_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_orders_route():
    try:
        customer_id = current_customer_id()
        if customer_id is None:
            customer_id = request.args.get("customer_id", type=int)
        orders = sales_service.list_orders(customer_id=customer_id)
        return jsonify({"orders": [o.to_dict() for o in orders]}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to list orders")


@orders_bp.get("/<int:order_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_order_route(order_id: int):
    try:
        order = _visible_order(order_id)
        data = order.to_dict(include_installments=True)
        data["sale"] = order.sale.to_dict(include_lines=True)
        return jsonify({"order": data}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to load order")


@orders_bp.patch("/<int:order_id>")
@require_auth
@require_permission("MANAGE_SALES")
def update_order_route(order_id: int):
    """Body: delivery_date?, notes?"""
    try:
        order = sales_service.update_order(order_id, request.get_json(silent=True) or {})
        return jsonify({"order": order.to_dict()}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to update order")
