# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from __future__ import annotations
from decimal import Decimal
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
import json
import logging
from app.api.deps import get_db, get_pagseguro
from app.clients.gateway import GatewayHttpError
from app.clients.pagseguro import PagSeguroClient
from app.utils.money import to_cents
from app.utils.params import only_digits

"""
Loja pública (sem autenticação).


- `GET /store/products?empresaId&q&categoria`: vitrine (produtos com `ativo_loja`).
- `POST /checkout`: grava `pedido` + `pedido_item`, cria order PIX no PagSeguro e
  registra a resposta em `pagamento_pagseguro`. Gateway fora -> 502 e pedido `ERRO_PAGAMENTO`.
- Sem token do PagSeguro o checkout falha (500) antes de gravar o pedido.
"""

log = logging.getLogger("checkout")

router = APIRouter()
router_checkout = APIRouter()


class ClienteCheckoutIn(BaseModel):
    nome: Optional[str] = None
    email: Optional[str] = None
    telefone: Optional[str] = None

class CheckoutItemIn(BaseModel):
    produtoId: Optional[int] = None
    descricao: str = Field(..., min_length=1)
    quantidade: int = Field(..., gt=0)
    preco_unit: float = Field(..., ge=0)

class CheckoutIn(BaseModel):
    empresaId: int
    cliente: Optional[ClienteCheckoutIn] = None
    items: List[CheckoutItemIn] = Field(..., min_length=1)

    model_config = {
        "json_schema_extra": {
            "example": {
                "empresaId": 1,
                "cliente": {"nome": "Ana", "email": "ana@exemplo.com", "telefone": "(11) 98888-7777"},
                "items": [{"produtoId": 10, "descricao": "Café 500g", "quantidade": 2, "preco_unit": 18.9}]
            }
        }
    }


def checkout_total(items: List[CheckoutItemIn]) -> Decimal:
    return sum((Decimal(str(it.preco_unit)) * it.quantidade for it in items), Decimal("0")).quantize(Decimal("0.01"))

def order_body(pedido_id: int, cliente: ClienteCheckoutIn, items: List[CheckoutItemIn], total: Decimal) -> Dict[str, Any]:
    customer: Dict[str, Any] = {
        "name": cliente.nome or "Cliente",
        "email": cliente.email or "sem@email.com",
    }
    if cliente.telefone:
        customer["phones"] = [{"country": "55", "area": "11", "number": only_digits(cliente.telefone), "type": "MOBILE"}]
    return {
        "reference_id": str(pedido_id),
        "customer": customer,
        "items": [
            {"name": it.descricao, "quantity": it.quantidade, "unit_amount": to_cents(it.preco_unit)}
            for it in items
        ],
        "charges": [{"amount": {"value": to_cents(total)}, "payment_method": {"type": "PIX"}}],
    }


@router.get("/products", summary="Vitrine da loja")
async def store_products(
    empresaId: Optional[int] = Query(None),
    q: Optional[str] = Query(None),
    categoria: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[Dict[str, Any]]:
    if not empresaId:
        raise HTTPException(status_code=400, detail="empresaId é obrigatório")

    conditions = ["empresa_id = :empresa_id", "ativo_loja = TRUE"]
    params: Dict[str, Any] = {"empresa_id": empresaId}
    if q:
        conditions.append("LOWER(descricao) LIKE LOWER(:q)")
        params["q"] = f"%{q}%"
    if categoria:
        conditions.append("categoria = :categoria")
        params["categoria"] = categoria

    res = await db.execute(text(f"""
        SELECT id, codigo_barra, descricao, preco, categoria, foto_url
        FROM produto
        WHERE {" AND ".join(conditions)}
        ORDER BY descricao
    """), params)
    return [dict(r) for r in res.mappings().all()]


@router_checkout.post("", status_code=201, summary="Fechar pedido da loja")
async def checkout(
    payload: CheckoutIn,
    db: AsyncSession = Depends(get_db),
    client: PagSeguroClient = Depends(get_pagseguro),
) -> Dict[str, Any]:
    client.ensure_configured()
    total = checkout_total(payload.items)
    try:
        res = await db.execute(
            text("INSERT INTO pedido (empresa_id, total, status) VALUES (:empresa_id, :total, 'CRIADO') RETURNING id"),
            {"empresa_id": payload.empresaId, "total": total},
        )
        pedido_id = res.mappings().first()["id"]
        for it in payload.items:
            await db.execute(text("""
                INSERT INTO pedido_item (pedido_id, produto_id, descricao, quantidade, preco_unit, subtotal)
                VALUES (:pedido_id, :produto_id, :descricao, :quantidade, :preco_unit, :subtotal)
            """), {
                "pedido_id": pedido_id,
                "produto_id": it.produtoId,
                "descricao": it.descricao,
                "quantidade": it.quantidade,
                "preco_unit": it.preco_unit,
                "subtotal": Decimal(str(it.preco_unit)) * it.quantidade,
            })
        await db.commit()
    except Exception:
        await db.rollback()
        log.exception("Falha ao gravar pedido do checkout")
        raise

    body = order_body(pedido_id, payload.cliente or ClienteCheckoutIn(), payload.items, total)
    try:
        resp = await client.post("/orders", body, idempotency_key=f"pedido-{pedido_id}")
    except GatewayHttpError:
        log.exception("PagSeguro indisponível no checkout do pedido %s", pedido_id)
        resp = None

    if resp is None or not resp.ok:
        await db.execute(
            text("UPDATE pedido SET status = 'ERRO_PAGAMENTO' WHERE id = :id"),
            {"id": pedido_id},
        )
        await db.commit()
        if resp is not None:
            log.error("Checkout do pedido %s recusado: HTTP %s %s", pedido_id, resp.status, resp.text[:500])
        raise HTTPException(status_code=502, detail={"error": "Falha ao criar pagamento", "pedidoId": pedido_id})

    data = resp.json_or_empty()
    status = data.get("status") or "CRIADO"
    await db.execute(text("""
        INSERT INTO pagamento_pagseguro (pedido_id, provider_ref, status, raw_response)
        VALUES (:pedido_id, :provider_ref, :status, :raw)
    """), {"pedido_id": pedido_id, "provider_ref": data.get("id"), "status": status, "raw": json.dumps(data)})
    await db.execute(text("UPDATE pedido SET status = :status WHERE id = :id"), {"status": status, "id": pedido_id})
    await db.commit()

    return {
        "pedidoId": pedido_id,
        "status": status,
        "providerId": data.get("id"),
        "mensagem": "Pedido criado. Conclua o pagamento.",
    }
