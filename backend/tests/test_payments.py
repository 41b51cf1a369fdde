"""
Payment installment (abono) tests.

Verifies:
- installments accumulate toward the order total and never exceed it
- annulled installments no longer count as paid
- a failed proof upload does not lose the recorded installment
"""

import io

import pytest

from deliciasoft.errors import ConflictError, UpstreamServiceError, ValidationError
from deliciasoft.services import image_service, payment_service, sales_service


@pytest.fixture
def order(db_session, cake, north, customer):
    """Pending order worth 2 x 45000 cents."""
    sale = sales_service.create_sale({
        "location_id": north.id,
        "sale_kind": "pedido",
        "customer_id": customer.id,
        "delivery_date": "2025-05-10",
        "lines": [{"product_id": cake.id, "quantity": 2}],
    })
    return sale.order


class TestRecordInstallment:

    def test_running_total(self, order):
        first = payment_service.record_installment({"order_id": order.id, "amount_cents": 30000})
        second = payment_service.record_installment({"order_id": order.id, "amount_cents": "20000", "payment_method": "transfer"})

        assert first.total_paid_cents == 30000
        assert second.total_paid_cents == 50000
        assert second.payment_method == "TRANSFER"
        assert order.paid_cents == 50000
        assert order.balance_cents == 40000

    def test_cannot_exceed_balance(self, order):
        payment_service.record_installment({"order_id": order.id, "amount_cents": 85000})
        with pytest.raises(ValidationError) as exc:
            payment_service.record_installment({"order_id": order.id, "amount_cents": 5001})
        assert exc.value.details["balance_cents"] == 5000

    def test_exact_balance_is_allowed(self, order):
        payment_service.record_installment({"order_id": order.id, "amount_cents": 90000})
        assert order.balance_cents == 0

    @pytest.mark.parametrize("amount", [0, -100, 10.5, "ten"])
    def test_invalid_amount(self, order, amount):
        with pytest.raises(ValidationError):
            payment_service.record_installment({"order_id": order.id, "amount_cents": amount})

    def test_missing_fields(self, db_session):
        with pytest.raises(ValidationError) as exc:
            payment_service.record_installment({})
        assert exc.value.missing_fields == ["order_id", "amount_cents"]

    def test_annulled_order_refuses_payments(self, order):
        sales_service.update_status(order.sale_id, "ANNULLED")
        with pytest.raises(ConflictError):
            payment_service.record_installment({"order_id": order.id, "amount_cents": 100})


class TestAnnulInstallment:

    def test_annulled_installment_frees_balance(self, order):
        installment = payment_service.record_installment({"order_id": order.id, "amount_cents": 90000})
        payment_service.annul_installment(installment.id)

        assert installment.status == "ANNULLED"
        assert order.paid_cents == 0
        assert order.balance_cents == 90000

        with pytest.raises(ConflictError):
            payment_service.annul_installment(installment.id)


class TestPaymentsApi:

    def test_json_payment(self, client, employee_headers, order):
        resp = client.post("/api/payments", headers=employee_headers, json={
            "order_id": order.id, "amount_cents": 10000,
        })
        assert resp.status_code == 201
        assert resp.json["installment"]["total_paid_cents"] == 10000
        assert resp.json["order"]["balance_cents"] == 80000
        assert "proof_upload" not in resp.json

    def test_proof_upload_failure_keeps_installment(self, client, employee_headers, order, monkeypatch):
        def boom(data, filename, folder):
            raise UpstreamServiceError("Image storage is not configured")

        monkeypatch.setattr(image_service, "upload_to_storage", boom)

        resp = client.post(
            "/api/payments",
            headers=employee_headers,
            data={
                "order_id": str(order.id),
                "amount_cents": "10000",
                "proof": (io.BytesIO(b"\x89PNG fake"), "receipt.png", "image/png"),
            },
            content_type="multipart/form-data",
        )
        assert resp.status_code == 201
        assert resp.json["proof_upload"].startswith("failed")
        assert resp.json["installment"]["image_id"] is None
        assert order.paid_cents == 10000

    def test_proof_upload_success(self, client, employee_headers, order, monkeypatch):
        monkeypatch.setattr(
            image_service,
            "upload_to_storage",
            lambda data, filename, folder: {"url": "https://ik.example/r.png", "file_id": "f1", "name": filename},
        )

        resp = client.post(
            "/api/payments",
            headers=employee_headers,
            data={
                "order_id": str(order.id),
                "amount_cents": "10000",
                "proof": (io.BytesIO(b"\x89PNG fake"), "receipt.png", "image/png"),
            },
            content_type="multipart/form-data",
        )
        assert resp.status_code == 201
        assert resp.json["proof_upload"] == "uploaded"
        assert resp.json["installment"]["image_url"] == "https://ik.example/r.png"

    def test_customer_sees_own_payments_only(self, client, customer_headers, order, other_customer, cake, north):
        payment_service.record_installment({"order_id": order.id, "amount_cents": 1000})
        resp = client.get(f"/api/payments/orders/{order.id}", headers=customer_headers)
        assert resp.status_code == 200
        assert len(resp.json["installments"]) == 1

        other = sales_service.create_sale({
            "location_id": north.id, "sale_kind": "order", "customer_id": other_customer.id,
            "delivery_date": "2025-05-10", "lines": [{"product_id": cake.id, "quantity": 1}],
        })
        resp = client.get(f"/api/payments/orders/{other.order.id}", headers=customer_headers)
        assert resp.status_code == 404

    def test_customer_cannot_record_payment(self, client, customer_headers, order):
        resp = client.post("/api/payments", headers=customer_headers, json={"order_id": order.id, "amount_cents": 1})
        assert resp.status_code == 403
