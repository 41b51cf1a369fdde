# Overview: Flask API routes for production runs.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import AppError, error_response, internal_error_response
from ..services import production_service

production_bp = Blueprint("production", __name__, url_prefix="/api/production")


@production_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTION")
def create_production_route():
    """
    Body: kind ("factory" | "order"), name, request_date?, delivery_date?,
    products[] with quantities_by_location (factory) or quantity (order).
    """
    try:
        run = production_service.create_production(
            request.get_json(silent=True) or {},
            created_by_user_id=g.current_account.id,
        )
        return jsonify({"production": run.to_dict(include_lines=True)}), 201
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to create production run")


@production_bp.get("")
@require_auth
@require_permission("VIEW_PRODUCTION")
def list_production_route():
    try:
        runs = production_service.list_runs(
            kind=request.args.get("kind"),
            run_status=request.args.get("run_status"),
        )
        return jsonify({"production": [r.to_dict() for r in runs]}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to list production runs")


@production_bp.get("/<int:run_id>")
@require_auth
@require_permission("VIEW_PRODUCTION")
def get_production_route(run_id: int):
    try:
        run = production_service.get_run(run_id)
        return jsonify({"production": run.to_dict(include_lines=True)}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to load production run")


@production_bp.patch("/<int:run_id>/status")
@require_auth
@require_permission("MANAGE_PRODUCTION")
def update_production_status_route(run_id: int):
    """Body: run_status?, order_status?"""
    try:
        run = production_service.update_status(run_id, request.get_json(silent=True) or {})
        return jsonify({"production": run.to_dict(include_lines=True)}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to update production status")
