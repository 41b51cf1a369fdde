# Overview: Flask API routes for image uploads to external image storage.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import AppError, ValidationError, error_response, internal_error_response
from ..services import image_service

images_bp = Blueprint("images", __name__, url_prefix="/api/images")


@images_bp.post("/upload")
@require_auth
@require_permission("MANAGE_IMAGES")
def upload_image_route():
    """multipart/form-data with an "image" file (JPEG, PNG, GIF or WebP)."""
    try:
        file = request.files.get("image")
        if file is None or not file.filename:
            raise ValidationError("Missing required fields: image", missing_fields=["image"])
        image = image_service.upload_image(file.read(), file.filename, file.mimetype)
        return jsonify({"image": image.to_dict()}), 201
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to upload image")


@images_bp.get("")
@require_auth
@require_permission("VIEW_CATALOG")
def list_images_route():
    try:
        return jsonify({"images": [i.to_dict() for i in image_service.list_images()]}), 200
    except Exception as e:
        return internal_error_response(e, "Failed to list images")


@images_bp.get("/<int:image_id>")
@require_auth
@require_permission("VIEW_CATALOG")
def get_image_route(image_id: int):
    try:
        return jsonify({"image": image_service.get_image(image_id).to_dict()}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to load image")


@images_bp.delete("/<int:image_id>")
@require_auth
@require_permission("MANAGE_IMAGES")
def delete_image_route(image_id: int):
    try:
        image_service.delete_image(image_id)
        return jsonify({"ok": True}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to delete image")
