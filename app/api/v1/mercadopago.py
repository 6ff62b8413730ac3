# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from __future__ import annotations
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.api.deps import get_db, get_mercadopago, get_order_store
from app.clients.gateway import GatewayResponse
from app.clients.mercadopago import MercadoPagoClient, webhook_url
from app.services.order_store import Order, OrderStore
from app.utils.params import only_digits

"""
Pagamentos via MercadoPago (checkout transparente da loja).


- `POST /mp/pix` / `POST /mp/boleto`: cria pagamento e registra o pedido no OrderStore.
- `POST /mp/card`: garante `pedido` no banco, paga com token do Brick e grava `mp_payment_id`.
- `GET /mp/status?ref`: pagamento mais recente por external_reference.
- `GET /mp/paid?ref`: approved|pending a partir do OrderStore.
- `POST /mp/webhook`: confirma pagamento/merchant order no MP; sempre responde 200.
"""

log = logging.getLogger("payments.mercadopago")

router = APIRouter()


class PayerIn(BaseModel):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    cpf: Optional[str] = None

class PaymentIn(BaseModel):
    amount: Optional[float] = None
    description: Optional[str] = None
    referenceId: Optional[str] = None
    payer: PayerIn = Field(default_factory=PayerIn)

    model_config = {
        "json_schema_extra": {
            "example": {
                "amount": 12.5,
                "description": "Pedido PIX",
                "referenceId": "PED-2001",
                "payer": {"email": "cliente@exemplo.com", "first_name": "Ana", "cpf": "123.456.789-09"}
            }
        }
    }

class AddressIn(BaseModel):
    zip_code: Optional[str] = None
    street_name: Optional[str] = None
    street_number: Optional[str] = None
    complement: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None

class ShippingIn(BaseModel):
    address: AddressIn = Field(default_factory=AddressIn)

class PedidoIn(BaseModel):
    cliente_nome: Optional[str] = None
    cliente_telefone: Optional[str] = None

class CardPaymentIn(BaseModel):
    amount: float
    referenceId: str = Field(..., min_length=1)
    empresa_id: Optional[int] = None
    description: Optional[str] = None
    token: str = Field(..., min_length=1, description="token gerado pelo Brick")
    issuer_id: Optional[str] = None
    payment_method_id: Optional[str] = None
    installments: Optional[int] = None
    payer: PayerIn = Field(default_factory=PayerIn)
    pedido: PedidoIn = Field(default_factory=PedidoIn)
    shipping: Optional[ShippingIn] = None


def _identification(cpf: Optional[str]) -> Optional[Dict[str, str]]:
    return {"type": "CPF", "number": only_digits(cpf)} if cpf else None

def _passthrough(resp: GatewayResponse) -> JSONResponse:
    log.warning("MercadoPago respondeu HTTP %s: %s", resp.status, resp.text[:500])
    return JSONResponse(status_code=resp.status, content=resp.data)

def _payment_body(payload: PaymentIn, method: str, description: str) -> Dict[str, Any]:
    payer = payload.payer
    return {
        "transaction_amount": float(payload.amount),
        "description": payload.description or description,
        "payment_method_id": method,
        "external_reference": payload.referenceId,
        "notification_url": webhook_url(),
        "payer": {
            "email": payer.email,
            "first_name": payer.first_name or None,
            "last_name": payer.last_name or None,
            "identification": _identification(payer.cpf),
        },
    }

def _remember(store: OrderStore, payload: PaymentIn, metodo: str, status: Optional[str]) -> None:
    if not payload.referenceId:
        return
    nome = " ".join(p for p in (payload.payer.first_name, payload.payer.last_name) if p) or None
    store.save(Order(
        referencia=payload.referenceId,
        email=payload.payer.email or "",
        nome=nome,
        descricao=payload.description,
        total=payload.amount,
        metodo=metodo,
        status=status,
    ))


@router.post("/pix", status_code=201, summary="Pagamento PIX")
async def create_pix(
    payload: PaymentIn,
    client: MercadoPagoClient = Depends(get_mercadopago),
    store: OrderStore = Depends(get_order_store),
):
    if not payload.amount or not payload.payer.email:
        raise HTTPException(status_code=400, detail="missing_params")

    resp = await client.create_payment(_payment_body(payload, "pix", "Pedido PIX"))
    if not resp.ok:
        return _passthrough(resp)

    data = resp.json_or_empty()
    tx = (data.get("point_of_interaction") or {}).get("transaction_data") or {}
    _remember(store, payload, "pix", data.get("status"))
    return {
        "id": data.get("id"),
        "status": data.get("status"),
        "qr_code": tx.get("qr_code"),
        "qr_code_base64": tx.get("qr_code_base64"),
        "ticket_url": tx.get("ticket_url"),
        "date_of_expiration": data.get("date_of_expiration"),
    }


@router.post("/boleto", status_code=201, summary="Pagamento por boleto")
async def create_boleto(
    payload: PaymentIn,
    client: MercadoPagoClient = Depends(get_mercadopago),
    store: OrderStore = Depends(get_order_store),
):
    payer = payload.payer
    if not (payload.amount and payer.email and payer.first_name and payer.last_name and payer.cpf):
        raise HTTPException(status_code=400, detail="missing_params")

    resp = await client.create_payment(_payment_body(payload, "bolbradesco", "Pedido Boleto"))
    if not resp.ok:
        return _passthrough(resp)

    data = resp.json_or_empty()
    barcode = data.get("barcode")
    _remember(store, payload, "boleto", data.get("status"))
    return {
        "id": data.get("id"),
        "status": data.get("status"),
        "boleto_url": (data.get("transaction_details") or {}).get("external_resource_url"),
        "barcode": barcode.get("content") if isinstance(barcode, dict) else barcode,
    }


@router.post("/card", summary="Pagamento com cartão (token do Brick)")
async def create_card(
    payload: CardPaymentIn,
    db: AsyncSession = Depends(get_db),
    client: MercadoPagoClient = Depends(get_mercadopago),
):
    address = payload.shipping.address if payload.shipping else AddressIn()
    await db.execute(text("""
        INSERT INTO pedido
            (empresa_id, referencia, status, metodo, total,
             cliente_nome, cliente_email, cliente_telefone, cpf,
             entrega, cep, rua, numero, complemento, bairro, cidade, uf)
        VALUES
            (:empresa_id, :referencia, 'CRIADO', 'cartao', :total,
             :cliente_nome, :cliente_email, :cliente_telefone, :cpf,
             :entrega, :cep, :rua, :numero, :complemento, :bairro, :cidade, :uf)
        ON CONFLICT (referencia) DO NOTHING
    """), {
        "empresa_id": payload.empresa_id,
        "referencia": payload.referenceId,
        "total": payload.amount,
        "cliente_nome": payload.pedido.cliente_nome,
        "cliente_email": payload.payer.email,
        "cliente_telefone": payload.pedido.cliente_telefone,
        "cpf": payload.payer.cpf,
        "entrega": payload.shipping is not None,
        "cep": address.zip_code,
        "rua": address.street_name,
        "numero": address.street_number,
        "complemento": address.complement,
        "bairro": address.neighborhood,
        "cidade": address.city,
        "uf": address.state,
    })
    await db.commit()

    nome = (payload.pedido.cliente_nome or "").split()
    resp = await client.create_payment({
        "transaction_amount": float(payload.amount),
        "description": payload.description,
        "token": payload.token,
        "installments": payload.installments or 1,
        "issuer_id": payload.issuer_id,
        "payment_method_id": payload.payment_method_id,
        "external_reference": payload.referenceId,
        "notification_url": webhook_url(),
        "payer": {
            "email": payload.payer.email,
            "first_name": nome[0] if nome else None,
            "last_name": " ".join(nome[1:]) or "-",
            "identification": _identification(payload.payer.cpf),
        },
    })
    if not resp.ok:
        return _passthrough(resp)

    data = resp.json_or_empty()
    payment_id = str(data["id"]) if data.get("id") else None
    status = data.get("status") or "pending"
    if payment_id:
        await db.execute(
            text("UPDATE pedido SET mp_payment_id = :pid, status = :status WHERE referencia = :ref"),
            {"pid": payment_id, "status": status.upper(), "ref": payload.referenceId},
        )
        await db.commit()
    return {"chargeId": payment_id, "status": status, "referenceId": payload.referenceId}


@router.get("/status", summary="Status do pagamento mais recente da referência")
async def payment_status(
    ref: str = Query(..., min_length=1),
    client: MercadoPagoClient = Depends(get_mercadopago),
) -> Dict[str, Any]:
    resp = await client.search_by_reference(ref)
    results = resp.json_or_empty().get("results") or []
    latest = results[0] if results else None
    return {"status": (latest or {}).get("status"), "raw": latest}


@router.get("/paid", summary="Pedido pago? (OrderStore)")
async def payment_paid(
    ref: str = Query(..., min_length=1),
    store: OrderStore = Depends(get_order_store),
) -> Dict[str, Any]:
    return {"status": "approved" if store.is_paid(ref) else "pending"}


async def _read_event(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


@router.post("/webhook", summary="Notificações do MercadoPago")
async def webhook(
    request: Request,
    client: MercadoPagoClient = Depends(get_mercadopago),
    store: OrderStore = Depends(get_order_store),
) -> Dict[str, Any]:
    """
    Responde sempre 200: qualquer outro status faz o MercadoPago reenviar o evento.
    """
    try:
        body = await _read_event(request)
        query = request.query_params
        kind = body.get("type") or body.get("topic") or query.get("type") or query.get("topic")
        action = str(body.get("action") or "")
        data = body.get("data")
        data_id = data.get("id") if isinstance(data, dict) else None
        event_id = str(data_id) if data_id else (query.get("id") or query.get("data.id"))
        log.info("Webhook MP: type=%s action=%s id=%s", kind, action, event_id)

        if kind == "payment" or action.startswith("payment"):
            if not event_id:
                return {"ok": True, "note": "missing payment id"}
            resp = await client.get_payment(event_id)
            if not resp.ok:
                log.warning("Webhook MP: consulta do pagamento %s falhou (HTTP %s)", event_id, resp.status)
                return {"ok": True, "warn": "payment fetch failed"}
            payment = resp.json_or_empty()
            status = payment.get("status")
            reference = payment.get("external_reference")
            log.info(
                "Webhook MP: pagamento %s status=%s detail=%s ref=%s valor=%s",
                event_id, status, payment.get("status_detail"), reference, payment.get("transaction_amount"),
            )
            if reference and status:
                store.set_status(str(reference), status)
                if status == "approved":
                    store.mark_paid(str(reference))
            return {"ok": True}

        if kind == "merchant_order" or action.startswith("merchant_order"):
            if not event_id:
                return {"ok": True, "note": "missing merchant_order id"}
            resp = await client.get_merchant_order(event_id)
            if not resp.ok:
                log.warning("Webhook MP: consulta da merchant_order %s falhou (HTTP %s)", event_id, resp.status)
                return {"ok": True, "warn": "merchant_order fetch failed"}
            return {"ok": True}
    except Exception:
        log.exception("Webhook MP: falha ao processar notificação")
        return {"ok": True, "error": "handled_exception"}

    log.info("Webhook MP: tipo não tratado type=%s action=%s", kind, action)
    return {"ok": True, "note": "unhandled event"}
