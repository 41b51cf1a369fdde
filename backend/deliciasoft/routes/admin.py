# Overview: Flask API routes for staff users, roles and role permissions.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import AppError, error_response, internal_error_response
from ..extensions import db
from ..models import Permission
from ..services import catalog_service, permission_service
from .catalog import make_catalog_blueprint

users_bp = make_catalog_blueprint(
    "users", "/api/users", catalog_service.USERS,
    singular="user", plural="users",
    view_permission="VIEW_USERS", manage_permission="MANAGE_USERS",
    create=catalog_service.create_user,
)

roles_bp = make_catalog_blueprint(
    "roles", "/api/roles", catalog_service.ROLES,
    singular="role", plural="roles",
    view_permission="VIEW_USERS", manage_permission="MANAGE_PERMISSIONS",
)

permissions_bp = Blueprint("permissions", __name__, url_prefix="/api/permissions")


@roles_bp.get("/<int:role_id>/permissions")
@require_auth
@require_permission("VIEW_USERS")
def get_role_permissions_route(role_id: int):
    try:
        role = catalog_service.get_entity(catalog_service.ROLES, role_id)
        codes = permission_service.get_role_permissions(role.id)
        return jsonify({"role": role.to_dict(), "permissions": sorted(codes)}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to load role permissions")


@roles_bp.put("/<int:role_id>/permissions")
@require_auth
@require_permission("MANAGE_PERMISSIONS")
def set_role_permissions_route(role_id: int):
    """Replace the role's permissions. Body: {"permission_codes": [...]}"""
    try:
        data = request.get_json(silent=True) or {}
        role = permission_service.set_role_permissions(role_id, data.get("permission_codes", []))
        codes = permission_service.get_role_permissions(role.id)
        return jsonify({"role": role.to_dict(), "permissions": sorted(codes)}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to update role permissions")


@permissions_bp.get("")
@require_auth
@require_permission("VIEW_USERS")
def list_permissions_route():
    permissions = db.session.query(Permission).order_by(Permission.category, Permission.code).all()
    return jsonify({"permissions": [p.to_dict() for p in permissions]}), 200
