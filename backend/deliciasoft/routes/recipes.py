# Overview: Flask API routes for recipes and their supply lines.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import AppError, error_response, internal_error_response
from ..services import recipe_service

recipes_bp = Blueprint("recipes", __name__, url_prefix="/api/recipes")


@recipes_bp.get("")
@require_auth
@require_permission("VIEW_CATALOG")
def list_recipes_route():
    try:
        return jsonify({"recipes": [r.to_dict(include_lines=False) for r in recipe_service.list_recipes()]}), 200
    except Exception as e:
        return internal_error_response(e, "Failed to list recipes")


@recipes_bp.get("/<int:recipe_id>")
@require_auth
@require_permission("VIEW_CATALOG")
def get_recipe_route(recipe_id: int):
    try:
        return jsonify({"recipe": recipe_service.get_recipe(recipe_id).to_dict()}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to load recipe")


@recipes_bp.post("")
@require_auth
@require_permission("MANAGE_CATALOG")
def create_recipe_route():
    """Body: name, description?, instructions?, lines[{supply_id, quantity, unit?}]"""
    try:
        recipe = recipe_service.create_recipe(request.get_json(silent=True) or {})
        return jsonify({"recipe": recipe.to_dict()}), 201
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to create recipe")


@recipes_bp.put("/<int:recipe_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def update_recipe_route(recipe_id: int):
    try:
        recipe = recipe_service.update_recipe(recipe_id, request.get_json(silent=True) or {})
        return jsonify({"recipe": recipe.to_dict()}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to update recipe")


@recipes_bp.delete("/<int:recipe_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def delete_recipe_route(recipe_id: int):
    try:
        recipe_service.delete_recipe(recipe_id)
        return jsonify({"ok": True}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to delete recipe")
