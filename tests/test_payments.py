# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
import json
import pytest
from app.api.deps import get_mercadopago, get_pagseguro
from app.clients.mercadopago import MercadoPagoClient
from app.clients.pagseguro import PagSeguroClient, PagSeguroUnavailable, SANDBOX_URL, PRODUCTION_URL, base_url
from app.main import start_server
from app.services.order_store import Order

CHARGE = {"referenceId": "PED-1001", "amount": 49.9, "description": "Pedido loja",
          "customer": {"name": "Maria", "email": "maria@exemplo.com", "tax_id": "123.456.789-09"}}

PIX_OK = {
    "id": "CHAR_1",
    "status": "waiting",
    "qr_codes": [{"text": "000201...", "links": [{"rel": "qrcode-image", "href": "https://qr/1.png"}]}],
}


def test_base_url_by_env():
    assert base_url("production") == PRODUCTION_URL
    assert base_url("sandbox") == SANDBOX_URL
    assert base_url("") == SANDBOX_URL


async def test_pix_charge_retries_transient_5xx(pagseguro, pagseguro_stub, sleeps):
    pagseguro_stub.reply(503)
    pagseguro_stub.reply(503)
    pagseguro_stub.reply(201, PIX_OK)

    resp = await pagseguro.create_pix_charge({"reference_id": "PED-1"}, idempotency_key="pix-PED-1")

    assert resp.status == 201
    assert sleeps == [0.6, 1.2]
    assert len(pagseguro_stub.requests) == 3
    assert {r.headers["x-idempotency-key"] for r in pagseguro_stub.requests} == {"pix-PED-1"}
    assert all(r.url.path == "/pix/charges" for r in pagseguro_stub.requests)


async def test_pix_charge_does_not_retry_client_errors(pagseguro, pagseguro_stub, sleeps):
    pagseguro_stub.reply(400, {"error_messages": [{"code": "40002"}]})
    resp = await pagseguro.create_pix_charge({}, idempotency_key="k")
    assert resp.status == 400
    assert sleeps == []
    assert len(pagseguro_stub.requests) == 1


async def test_pix_charge_gives_up_after_network_failures(pagseguro, pagseguro_stub, sleeps):
    for _ in range(3):
        pagseguro_stub.fail("connection refused")
    with pytest.raises(PagSeguroUnavailable) as exc:
        await pagseguro.create_pix_charge({}, idempotency_key="k")
    assert exc.value.attempts == 3
    assert sleeps == [0.6, 1.2]


async def test_charge_endpoint_saves_order(client, pagseguro_stub, order_store):
    pagseguro_stub.reply(201, PIX_OK)
    resp = await client.post("/api/pagseguro/charge", json=CHARGE)

    assert resp.status_code == 200
    body = resp.json()
    assert body["chargeId"] == "CHAR_1"
    assert body["status"] == "WAITING"
    assert body["qr_text"] == "000201..."
    assert body["qr_image_url"] == "https://qr/1.png"

    sent = json.loads(pagseguro_stub.requests[0].content)
    assert sent["amount"] == {"value": 4990, "currency": "BRL"}
    assert sent["customer"]["tax_id"] == "12345678909"
    assert order_store.get("PED-1001").status == "WAITING"


async def test_charge_endpoint_upstream_exhausted(client, pagseguro_stub):
    for _ in range(3):
        pagseguro_stub.fail()
    resp = await client.post("/api/pagseguro/charge", json=CHARGE)
    assert resp.status_code == 400
    assert resp.json()["detail"]["status"] == 500
    assert resp.json()["detail"]["error"] == "Upstream error"


async def test_charge_endpoint_rejects_non_positive_amount(client, pagseguro_stub):
    resp = await client.post("/api/pagseguro/charge", json={**CHARGE, "amount": 0})
    assert resp.status_code == 400
    assert pagseguro_stub.requests == []


async def test_missing_token_returns_500(client):
    start_server.dependency_overrides[get_pagseguro] = lambda: PagSeguroClient("")
    resp = await client.post("/api/pagseguro/charge", json=CHARGE)
    assert resp.status_code == 500
    assert "PAGSEGURO_TOKEN" in resp.json()["detail"]


async def test_pagseguro_webhook_marks_order_paid(client, order_store):
    order_store.save(Order(referencia="PED-9", email="a@b.com", status="WAITING"))
    resp = await client.post("/api/pagseguro/webhook", json={
        "reference_id": "PED-9", "charges": [{"status": "paid"}],
    })
    assert resp.json() == {"ok": True}
    assert order_store.get("PED-9").status == "PAID"
    assert order_store.is_paid("PED-9")


async def test_mp_pix_requires_amount_and_email(client, mercadopago_stub):
    resp = await client.post("/api/mp/pix", json={"amount": 10})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "missing_params"
    assert mercadopago_stub.requests == []


async def test_mp_pix_passes_upstream_error_through(client, mercadopago_stub):
    mercadopago_stub.reply(422, {"message": "invalid payer"})
    resp = await client.post("/api/mp/pix", json={"amount": 10, "payer": {"email": "a@b.com"}})
    assert resp.status_code == 422
    assert resp.json() == {"message": "invalid payer"}


async def test_mp_pix_remembers_order(client, mercadopago_stub, order_store):
    mercadopago_stub.reply(201, {
        "id": 123, "status": "pending",
        "point_of_interaction": {"transaction_data": {"qr_code": "000201", "ticket_url": "https://t"}},
    })
    resp = await client.post("/api/mp/pix", json={
        "amount": 10, "referenceId": "PED-5", "payer": {"email": "a@b.com", "first_name": "Ana"},
    })
    assert resp.status_code == 201
    assert resp.json()["qr_code"] == "000201"
    request = mercadopago_stub.requests[0]
    assert request.headers["Authorization"] == "Bearer mp-token"
    assert request.headers["X-Idempotency-Key"]
    assert order_store.get("PED-5").nome == "Ana"


async def test_mp_webhook_approves_payment(client, mercadopago_stub, order_store):
    order_store.save(Order(referencia="PED-7", email="a@b.com"))
    mercadopago_stub.reply(200, {"status": "approved", "external_reference": "PED-7"})
    resp = await client.post("/api/mp/webhook", json={"type": "payment", "data": {"id": "555"}})
    assert resp.status_code == 200
    assert mercadopago_stub.requests[0].url.path == "/v1/payments/555"
    assert order_store.is_paid("PED-7")

    paid = await client.get("/api/mp/paid", params={"ref": "PED-7"})
    assert paid.json() == {"status": "approved"}


async def test_mp_webhook_always_200_on_gateway_failure(client, mercadopago_stub):
    mercadopago_stub.fail()
    resp = await client.post("/api/mp/webhook", json={"type": "payment", "data": {"id": "1"}})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "error": "handled_exception"}


async def test_mp_webhook_always_200_without_token(client):
    start_server.dependency_overrides[get_mercadopago] = lambda: MercadoPagoClient("")
    resp = await client.post("/api/mp/webhook", json={"type": "payment", "data": {"id": "1"}})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "error": "handled_exception"}


async def test_mp_webhook_accepts_form_notification(client, mercadopago_stub, order_store):
    order_store.save(Order(referencia="PED-8", email="a@b.com"))
    mercadopago_stub.reply(200, {"status": "approved", "external_reference": "PED-8"})
    resp = await client.post(
        "/api/mp/webhook?id=556&topic=payment",
        content="id=556&topic=payment",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    assert mercadopago_stub.requests[0].url.path == "/v1/payments/556"
    assert order_store.is_paid("PED-8")


async def test_mp_webhook_ignores_malformed_data(client, mercadopago_stub):
    resp = await client.post("/api/mp/webhook", json={"type": "payment", "data": "1"})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "note": "missing payment id"}
    assert mercadopago_stub.requests == []

    resp = await client.post("/api/mp/webhook", json=["payment"])
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "note": "unhandled event"}


CHECKOUT = {
    "empresaId": 1,
    "cliente": {"nome": "Ana", "email": "ana@exemplo.com"},
    "items": [{"produtoId": 10, "descricao": "Café 500g", "quantidade": 2, "preco_unit": 18.9}],
}


async def test_checkout_records_pagseguro_order(client, db, pagseguro_stub):
    db.on("INSERT INTO pedido (", [{"id": 42}])
    pagseguro_stub.reply(201, {"id": "ORDE_1", "status": "WAITING"})
    resp = await client.post("/api/checkout", json=CHECKOUT)

    assert resp.status_code == 201
    assert resp.json()["pedidoId"] == 42
    assert resp.json()["status"] == "WAITING"
    sent = pagseguro_stub.requests[0]
    assert sent.url.path == "/orders"
    assert sent.headers["x-idempotency-key"] == "pedido-42"
    assert json.loads(sent.content)["charges"][0]["amount"] == {"value": 3780}
    (_, pagamento), = db.executed("INSERT INTO pagamento_pagseguro")
    assert pagamento["provider_ref"] == "ORDE_1"
    (_, status), = db.executed("UPDATE pedido SET status = :status")
    assert status == {"status": "WAITING", "id": 42}
    assert db.commits == 2


async def test_checkout_gateway_down_marks_order(client, db, pagseguro_stub):
    db.on("INSERT INTO pedido (", [{"id": 43}])
    pagseguro_stub.fail()
    resp = await client.post("/api/checkout", json=CHECKOUT)

    assert resp.status_code == 502
    assert resp.json()["detail"] == {"error": "Falha ao criar pagamento", "pedidoId": 43}
    (_, params), = db.executed("ERRO_PAGAMENTO")
    assert params == {"id": 43}
    assert not db.executed("INSERT INTO pagamento_pagseguro")


async def test_checkout_without_token_writes_nothing(client, db):
    start_server.dependency_overrides[get_pagseguro] = lambda: PagSeguroClient("")
    resp = await client.post("/api/checkout", json=CHECKOUT)
    assert resp.status_code == 500
    assert "PAGSEGURO_TOKEN" in resp.json()["detail"]
    assert not db.executed("INSERT INTO pedido")
    assert db.commits == 0


async def test_order_status_falls_back_to_mp_payment_id(client, db):
    db.on("WHERE mp_payment_id", [{"id": 5, "referencia": "PED-5", "status": "APPROVED"}])
    resp = await client.get("/api/orders/status", params={"ref": "998877"})
    assert resp.json() == {"ok": True, "order": {"id": 5, "referencia": "PED-5", "status": "APPROVED"}}
    assert len(db.executed("FROM pedido")) == 2


async def test_order_status_not_found(client):
    resp = await client.get("/api/orders/status", params={"ref": "PED-404"})
    assert resp.status_code == 404
    assert resp.json()["detail"] == "not_found"
