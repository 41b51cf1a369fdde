# Overview: Flask API routes for sales; parses input and returns JSON responses.

"""
Sales API routes.

Customers may call POST /api/sales too: their sale is always an order for
themselves, and they only ever see their own sales.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import current_customer_id, require_auth, require_permission
from ..errors import AppError, NotFoundError, error_response, internal_error_response
from ..services import sales_service
from ..validation import parse_date_field

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
@require_permission("CREATE_SALE")
def create_sale_route():
    """
    Create a direct sale or an order.

    Body: location_id, sale_kind, lines[], customer_id?, payment_method?,
    sale_date?, delivery_date (orders), notes?
    """
    try:
        data = request.get_json(silent=True) or {}
        customer_id = current_customer_id()
        created_by = None
        if customer_id is not None:
            data = sales_service.ensure_customer_may_order(data, customer_id)
        else:
            created_by = g.current_account.id

        sale = sales_service.create_sale(data, created_by_user_id=created_by)
        return jsonify({"sale": sales_service.sale_detail(sale)}), 201
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to create sale")


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales_route():
    """
    Query params: kind, status, customer_id, location_id, date_from, date_to
    """
    try:
        customer_id = current_customer_id()
        if customer_id is None:
            customer_id = request.args.get("customer_id", type=int)
        sales = sales_service.list_sales(
            kind=request.args.get("kind"),
            status=request.args.get("status"),
            customer_id=customer_id,
            location_id=request.args.get("location_id", type=int),
            date_from=parse_date_field(request.args.get("date_from") or None, "date_from"),
            date_to=parse_date_field(request.args.get("date_to") or None, "date_to"),
        )
        return jsonify({"sales": [s.to_dict() for s in sales]}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to list sales")


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
        customer_id = current_customer_id()
        if customer_id is not None and sale.customer_id != customer_id:
            raise NotFoundError("Sale not found")
        return jsonify({"sale": sales_service.sale_detail(sale)}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to load sale")


@sales_bp.patch("/<int:sale_id>/status")
@require_auth
@require_permission("MANAGE_SALES")
def update_sale_status_route(sale_id: int):
    """Body: {"status": "COMPLETED" | "PENDING" | "DELIVERED" | "ANNULLED"}"""
    try:
        data = request.get_json(silent=True) or {}
        sale = sales_service.update_status(sale_id, data.get("status"))
        return jsonify({"sale": sales_service.sale_detail(sale)}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to update sale status")
