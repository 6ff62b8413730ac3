# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_db, get_order_store
from app.services.order_store import OrderStore

"""
Consulta de pedidos da loja.


- `GET /orders?email`: últimos 100 pedidos (e-mail case-insensitive).
- `GET /orders/status?ref|id`: por referência (fallback `mp_payment_id`) ou id.
- `GET /orders/memory?email`: pedidos ainda no OrderStore da aplicação.
"""

router = APIRouter()

_STATUS_COLUMNS = "id, referencia, status, total, metodo, created_at"


@router.get("", summary="Últimos pedidos")
async def list_orders(
    email: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[Dict[str, Any]]:
    email = (email or "").strip()
    where = "WHERE LOWER(COALESCE(cliente_email, '')) = LOWER(:email)" if email else ""
    res = await db.execute(text(f"""
        SELECT id, empresa_id, total, status, metodo, referencia, cliente_email, created_at
        FROM pedido
        {where}
        ORDER BY created_at DESC
        LIMIT 100
    """), {"email": email} if email else {})
    return [dict(r) for r in res.mappings().all()]


@router.get("/status", summary="Status de um pedido")
async def order_status(
    ref: Optional[str] = Query(None),
    id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    ref = (ref or "").strip()
    if not ref and not id:
        raise HTTPException(status_code=400, detail="missing_param")

    if ref:
        row = None
        for column in ("referencia", "mp_payment_id"):
            res = await db.execute(text(f"""
                SELECT {_STATUS_COLUMNS} FROM pedido
                WHERE {column} = :ref
                ORDER BY created_at DESC
                LIMIT 1
            """), {"ref": ref})
            row = res.mappings().first()
            if row:
                break
    else:
        res = await db.execute(text(f"SELECT {_STATUS_COLUMNS} FROM pedido WHERE id = :id LIMIT 1"), {"id": id})
        row = res.mappings().first()

    if not row:
        raise HTTPException(status_code=404, detail="not_found")
    return {"ok": True, "order": dict(row)}


@router.get("/memory", summary="Pedidos no OrderStore")
async def orders_in_memory(
    email: str = Query(..., min_length=1),
    store: OrderStore = Depends(get_order_store),
) -> List[Dict[str, Any]]:
    return [o.to_dict() for o in store.list_by_email(email)]
