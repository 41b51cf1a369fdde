# Overview: Image uploads to ImageKit and the local Image records that point at them.

from __future__ import annotations

import os
import tempfile

from flask import current_app
from imagekitio import ImageKit
from imagekitio.models.UploadFileRequestOptions import UploadFileRequestOptions
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import NotFoundError, ReferentialIntegrityError, UpstreamServiceError, ValidationError
from ..models import Image

ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}


def get_client() -> ImageKit:
    client = current_app.extensions.get("imagekit")
    if client is None:
        cfg = current_app.config
        if not (cfg.get("IMAGEKIT_PUBLIC_KEY") and cfg.get("IMAGEKIT_PRIVATE_KEY") and cfg.get("IMAGEKIT_URL_ENDPOINT")):
            raise UpstreamServiceError("Image storage is not configured")
        client = ImageKit(
            public_key=cfg["IMAGEKIT_PUBLIC_KEY"],
            private_key=cfg["IMAGEKIT_PRIVATE_KEY"],
            url_endpoint=cfg["IMAGEKIT_URL_ENDPOINT"],
        )
        current_app.extensions["imagekit"] = client
    return client


def validate_image(data: bytes, filename: str, content_type: str | None) -> None:
    if not data:
        raise ValidationError("Image file is empty")
    max_bytes = current_app.config.get("MAX_UPLOAD_BYTES", 5 * 1024 * 1024)
    if len(data) > max_bytes:
        raise ValidationError(f"Image size must be at most {max_bytes // (1024 * 1024)}MB")

    ext = os.path.splitext(filename or "")[1].lower().lstrip(".")
    content_type = (content_type or "").split(";")[0].strip().lower()
    if content_type and content_type != "application/octet-stream":
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationError("Only JPEG, PNG, GIF and WebP images are allowed")
    elif ext not in ALLOWED_EXTENSIONS:
        raise ValidationError("Only JPEG, PNG, GIF and WebP images are allowed")


def upload_to_storage(data: bytes, filename: str, folder: str) -> dict:
    """Send bytes to ImageKit; returns {"url", "file_id", "name"}."""
    client = get_client()
    suffix = os.path.splitext(filename)[1] or ".jpg"
    temp_path = None
    try:
        # The SDK wants a file object opened in binary mode
        with tempfile.NamedTemporaryFile(delete=False, suffix=suffix, mode="wb") as tmp:
            tmp.write(data)
            temp_path = tmp.name

        options = UploadFileRequestOptions(folder=folder, use_unique_file_name=True, is_private_file=False)
        with open(temp_path, "rb") as fh:
            upload = client.upload_file(file=fh, file_name=filename, options=options)
    except Exception as exc:
        current_app.logger.error("Image upload to storage failed: %s", exc)
        raise UpstreamServiceError("Image upload failed", details={"reason": str(exc)})
    finally:
        if temp_path and os.path.exists(temp_path):
            os.unlink(temp_path)

    if not upload or not getattr(upload, "url", None):
        raise UpstreamServiceError("Image upload returned no URL")
    return {"url": upload.url, "file_id": upload.file_id, "name": upload.name}


def upload_image(data: bytes, filename: str, content_type: str | None = None, *, folder: str = "deliciasoft") -> Image:
    """Validate, upload and record an image. Commits the Image row."""
    filename = filename or "image.jpg"
    validate_image(data, filename, content_type)
    stored = upload_to_storage(data, filename, folder)

    image = Image(url=stored["url"], file_id=stored["file_id"], name=stored["name"] or filename)
    db.session.add(image)
    db.session.commit()
    return image


def get_image(image_id: int) -> Image:
    image = db.session.get(Image, image_id)
    if image is None:
        raise NotFoundError("Image not found")
    return image


def list_images() -> list[Image]:
    return db.session.query(Image).order_by(Image.id.desc()).all()


def delete_image(image_id: int) -> None:
    """
    Remove the Image row, then the stored file. A storage failure is only
    logged; the file is orphaned at the provider.
    """
    image = get_image(image_id)
    file_id = image.file_id
    try:
        db.session.delete(image)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ReferentialIntegrityError("Image is still referenced and cannot be deleted")

    if file_id:
        try:
            get_client().delete_file(file_id=file_id)
        except Exception as exc:
            current_app.logger.warning("Could not delete stored image %s: %s", file_id, exc)
