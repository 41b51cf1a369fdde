# Overview: Flask API routes for payment installments (abonos) against orders.

"""
POST /api/payments accepts JSON or multipart/form-data. With multipart, an
optional "proof" file is uploaded to image storage after the installment
has been committed; an upload failure is reported in the response but the
installment stays recorded.
"""

from flask import Blueprint, current_app, jsonify, request

from ..decorators import current_customer_id, require_auth, require_permission
from ..errors import AppError, NotFoundError, error_response, internal_error_response
from ..services import image_service, payment_service

payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.post("")
@require_auth
@require_permission("MANAGE_PAYMENTS")
def create_payment_route():
    try:
        if request.mimetype == "multipart/form-data":
            data = request.form.to_dict()
            proof = request.files.get("proof")
        else:
            data = request.get_json(silent=True) or {}
            proof = None

        installment = payment_service.record_installment(data)

        proof_status = None
        if proof is not None and proof.filename:
            try:
                image = image_service.upload_image(
                    proof.read(), proof.filename, proof.mimetype, folder="deliciasoft/payments"
                )
                installment = payment_service.attach_proof(installment.id, image)
                proof_status = "uploaded"
            except AppError as e:
                current_app.logger.warning(
                    "Proof upload for payment installment %s failed: %s", installment.id, e.message
                )
                proof_status = f"failed: {e.message}"

        body = {"installment": installment.to_dict(), "order": installment.order.to_dict()}
        if proof_status is not None:
            body["proof_upload"] = proof_status
        return jsonify(body), 201
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to record payment")


@payments_bp.get("/orders/<int:order_id>")
@require_auth
@require_permission("VIEW_SALES")
def list_order_payments_route(order_id: int):
    try:
        order = payment_service.list_for_order(order_id)
        customer_id = current_customer_id()
        if customer_id is not None and order.sale.customer_id != customer_id:
            raise NotFoundError("Order not found")
        return jsonify({
            "order": order.to_dict(),
            "installments": [i.to_dict() for i in order.installments],
        }), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to list payments")


@payments_bp.patch("/<int:installment_id>/annul")
@require_auth
@require_permission("MANAGE_PAYMENTS")
def annul_payment_route(installment_id: int):
    try:
        installment = payment_service.annul_installment(installment_id)
        return jsonify({"installment": installment.to_dict(), "order": installment.order.to_dict()}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to annul payment")
