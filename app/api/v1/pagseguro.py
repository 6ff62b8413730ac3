# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from __future__ import annotations
from datetime import date, timedelta
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import BaseModel, Field
import logging
from app.api.deps import get_order_store, get_pagseguro
from app.clients.gateway import GatewayResponse, find_link
from app.clients.pagseguro import PagSeguroClient, PagSeguroUnavailable
from app.core.config import settings
from app.services.order_store import Order, OrderStore
from app.utils.money import to_cents
from app.utils.params import only_digits

"""
Pagamentos via PagSeguro.


- `POST /pagseguro/charge`: PIX em `/pix/charges` com retry (5xx/rede) e idempotência `pix-{referenceId}`.
- `POST /pagseguro/pix`: PIX pela charges API vinculado a um pedido.
- `POST /pagseguro/boleto` e `POST /pagseguro/card`: orders API com uma charge.
- `GET /pagseguro/charge-status?id`: status (maiúsculo) de uma charge.
- `POST /pagseguro/webhook`: registra o evento e confirma.
"""

log = logging.getLogger("payments.pagseguro")

router = APIRouter()


class CustomerIn(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    tax_id: Optional[str] = None
    phone: Optional[str] = None

class BuyerIn(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    tax_id: str = Field(..., min_length=1, description="CPF/CNPJ")
    phone: Optional[str] = None

class ItemIn(BaseModel):
    name: str
    quantity: int = 1
    unit_amount: int = Field(..., description="centavos")

class ChargeIn(BaseModel):
    referenceId: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)
    description: Optional[str] = None
    customer: Optional[CustomerIn] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "referenceId": "PED-1001",
                "amount": 49.9,
                "description": "Pedido loja",
                "customer": {"name": "Maria Souza", "email": "maria@exemplo.com", "tax_id": "12345678909"}
            }
        }
    }

class PixIn(BaseModel):
    pedidoId: str = Field(..., min_length=1)
    amount: float
    description: str = ""

class BoletoIn(BaseModel):
    referenceId: str = Field(..., min_length=1)
    amount: float
    customer: BuyerIn
    items: List[ItemIn] = Field(..., min_length=1)

class CardHolderIn(BaseModel):
    name: str = Field(..., min_length=1)
    tax_id: str = Field(..., min_length=1)

class CardIn(BaseModel):
    number: str = Field(..., min_length=1)
    exp_month: str = Field(..., min_length=1)
    exp_year: str = Field(..., min_length=1)
    security_code: str = Field(..., min_length=1)
    holder: CardHolderIn

class CardPaymentIn(BoletoIn):
    card: CardIn
    installments: int = Field(1, ge=1)


def _first_qr(data: Dict[str, Any]) -> Dict[str, Any]:
    codes = data.get("qr_codes") or []
    return codes[0] if codes and isinstance(codes[0], dict) else {}

def pix_charge_result(data: Dict[str, Any]) -> Dict[str, Any]:
    """Normaliza a resposta de `/pix/charges` (formatos antigo e novo)."""
    qr_code = data.get("qr_code") if isinstance(data.get("qr_code"), dict) else {}
    first = _first_qr(data)
    is_image = lambda rel: rel == "qrcode-image"
    return {
        "chargeId": data.get("id") or data.get("charge_id") or data.get("chargeId"),
        "status": (data.get("status") or "").upper() or None,
        "qr_text": qr_code.get("text") or data.get("qr_code_text") or first.get("text"),
        "qr_image_url": find_link(qr_code.get("links"), is_image) or find_link(first.get("links"), is_image),
        "expires_at": data.get("expires_at") or qr_code.get("expiration_date"),
        "raw": data,
    }

def _customer(c: BuyerIn) -> Dict[str, Any]:
    customer: Dict[str, Any] = {"name": c.name, "email": c.email, "tax_id": only_digits(c.tax_id)}
    if c.phone:
        customer["phones"] = [{"country": "55", "area": "11", "number": only_digits(c.phone), "type": "MOBILE"}]
    return customer

def _notification_urls() -> Dict[str, Any]:
    url = settings.PAGSEGURO_NOTIFICATION_URL
    return {"notification_urls": [url]} if url else {}

def _order_payload(payload: BoletoIn, payment_method: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "reference_id": payload.referenceId,
        "customer": _customer(payload.customer),
        "items": [{"name": it.name, "quantity": it.quantity, "unit_amount": it.unit_amount} for it in payload.items],
        "charges": [{
            "reference_id": payload.referenceId,
            "description": f"Pedido #{payload.referenceId}",
            "amount": {"value": to_cents(payload.amount), "currency": "BRL"},
            "payment_method": payment_method,
        }],
        **_notification_urls(),
    }

def _fail(message: str, resp: GatewayResponse) -> HTTPException:
    log.error("%s: HTTP %s %s", message, resp.status, resp.text[:500])
    return HTTPException(status_code=400, detail={"error": message, "details": resp.data})


@router.post("/charge", summary="Cobrança PIX com retry")
async def create_charge(
    payload: ChargeIn,
    client: PagSeguroClient = Depends(get_pagseguro),
    store: OrderStore = Depends(get_order_store),
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "reference_id": payload.referenceId[:60],
        "description": (payload.description or "")[:80],
        "amount": {"value": to_cents(payload.amount), "currency": "BRL"},
        "payment_method": {"type": "PIX", "expires_in": 1800},
    }
    if payload.customer and payload.customer.name:
        body["customer"] = {
            "name": payload.customer.name,
            "email": payload.customer.email,
            "tax_id": only_digits(payload.customer.tax_id) or None,
        }

    try:
        resp = await client.create_pix_charge(body, idempotency_key=f"pix-{payload.referenceId}")
    except PagSeguroUnavailable as e:
        raise HTTPException(status_code=400, detail={"status": 500, "error": "Upstream error", "raw": str(e)})

    if not resp.ok:
        raise HTTPException(status_code=400, detail={"status": resp.status, "headers": resp.headers, "raw": resp.text})

    result = pix_charge_result(resp.json_or_empty())
    customer = payload.customer or CustomerIn()
    store.save(Order(
        referencia=payload.referenceId,
        email=customer.email or "",
        nome=customer.name,
        descricao=payload.description,
        total=payload.amount,
        metodo="pix",
        status=result["status"],
    ))
    return result


@router.post("/pix", summary="PIX de um pedido (charges API)")
async def create_pix(
    payload: PixIn,
    client: PagSeguroClient = Depends(get_pagseguro),
) -> Dict[str, Any]:
    cents = to_cents(payload.amount)
    if cents <= 0:
        raise HTTPException(status_code=400, detail="amount inválido")

    resp = await client.post("/charges", {
        "reference_id": payload.pedidoId,
        "description": payload.description or f"Pedido #{payload.pedidoId}",
        "amount": {"value": cents, "currency": "BRL"},
        "payment_method": {"type": "PIX", "expires_in": settings.PS_PIX_EXPIRES_IN},
        **_notification_urls(),
    }, idempotency_key=payload.pedidoId)
    if not resp.ok:
        raise _fail("Falha ao criar cobrança PIX", resp)

    data = resp.json_or_empty()
    qr = _first_qr(data)
    is_qr = lambda rel: rel == "qrcode"
    return {
        "chargeId": data.get("id"),
        "status": (data.get("status") or "").upper(),
        "expires_at": qr.get("expires_at") or data.get("expires_at"),
        "qr_text": qr.get("text") or data.get("qr_code"),
        "qr_image_url": find_link(qr.get("links"), is_qr) or find_link(data.get("links"), is_qr),
    }


@router.post("/boleto", summary="Boleto (orders API)")
async def create_boleto(
    payload: BoletoIn,
    client: PagSeguroClient = Depends(get_pagseguro),
) -> Dict[str, Any]:
    due_date = (date.today() + timedelta(days=settings.BOLETO_DUE_DAYS)).isoformat()
    body = _order_payload(payload, {
        "type": "BOLETO",
        "boleto": {
            "due_date": due_date,
            "instruction_lines": {
                "line_1": "Pague até o vencimento",
                "line_2": "Após o vencimento, juros/encargos podem ser aplicados",
            },
            "holder": {
                "name": payload.customer.name,
                "tax_id": only_digits(payload.customer.tax_id),
                "email": payload.customer.email,
            },
        },
    })
    resp = await client.post("/orders", body, idempotency_key=payload.referenceId)
    if not resp.ok:
        raise _fail("Falha ao gerar boleto", resp)

    data = resp.json_or_empty()
    charge = (data.get("charges") or [{}])[0]
    boleto = (charge.get("payment_method") or {}).get("boleto") or {}
    return {
        "orderId": data.get("id"),
        "status": (charge.get("status") or data.get("status") or "").upper(),
        "boleto_pdf": find_link(charge.get("links"), lambda rel: "pdf" in rel.lower()),
        "barcode": boleto.get("formatted_barcode") or boleto.get("barcode"),
        "due_date": boleto.get("due_date") or due_date,
    }


@router.post("/card", summary="Cartão de crédito (orders API, captura imediata)")
async def create_card(
    payload: CardPaymentIn,
    client: PagSeguroClient = Depends(get_pagseguro),
) -> Dict[str, Any]:
    card = payload.card
    body = _order_payload(payload, {
        "type": "CREDIT_CARD",
        "installments": payload.installments,
        "capture": True,
        "card": {
            "number": only_digits(card.number),
            "exp_month": card.exp_month.zfill(2),
            "exp_year": card.exp_year,
            "security_code": only_digits(card.security_code),
            "holder": {"name": card.holder.name, "tax_id": only_digits(card.holder.tax_id)},
        },
    })
    resp = await client.post("/orders", body, idempotency_key=payload.referenceId)
    if not resp.ok:
        raise _fail("Falha no pagamento com cartão", resp)

    data = resp.json_or_empty()
    charge = (data.get("charges") or [{}])[0]
    return {
        "orderId": data.get("id"),
        "status": (charge.get("status") or data.get("status") or "").upper(),
        "installments": (charge.get("payment_method") or {}).get("installments") or payload.installments,
        "authorization_code": charge.get("authorization_code") or charge.get("authorizationCode"),
    }


@router.get("/charge-status", summary="Status de uma charge")
async def charge_status(
    id: str = Query(..., min_length=1),
    client: PagSeguroClient = Depends(get_pagseguro),
) -> Dict[str, Any]:
    resp = await client.get(f"/charges/{id}")
    if not resp.ok:
        raise _fail("Falha ao consultar", resp)
    data = resp.json_or_empty()
    return {"id": data.get("id"), "status": (data.get("status") or "").upper()}


@router.post("/webhook", summary="Notificações do PagSeguro")
async def webhook(
    event: Optional[Dict[str, Any]] = Body(None),
    store: OrderStore = Depends(get_order_store),
) -> Dict[str, Any]:
    event = event or {}
    log.info("Webhook PagSeguro: %s", event)
    charge = (event.get("charges") or [{}])[0]
    reference = event.get("reference_id") or charge.get("reference_id")
    status = (charge.get("status") or event.get("status") or "").upper()
    if reference and status:
        store.set_status(str(reference), status)
        if status == "PAID":
            store.mark_paid(str(reference))
    return {"ok": True}
