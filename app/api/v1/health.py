# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from time import perf_counter
from typing import Any, Dict
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_db, get_sales_db

"""
Diagnóstico dos bancos de dados.


- `GET /health/db` (banco principal) e `GET /health/db/vendas` (banco de vendas).
- Mede a latência de um `SELECT 1` e devolve usuário/banco atuais; falha vira 503.
"""

router = APIRouter(tags=["Health"])


async def _probe(db: AsyncSession) -> Dict[str, Any]:
    try:
        t0 = perf_counter()
        await db.execute(text("SELECT 1"))
        latency_ms = (perf_counter() - t0) * 1000.0
        row = (await db.execute(text("SELECT current_user AS usuario, current_database() AS banco"))).mappings().first()
    except Exception as e:
        raise HTTPException(
            status_code=503,
            detail={"db": "error", "type": e.__class__.__name__, "message": str(e)},
        )
    return {"db": "ok", "latency_ms": round(latency_ms, 2), **dict(row or {})}


@router.get("/db")
async def health_db(db: AsyncSession = Depends(get_db)):
    return await _probe(db)

@router.get("/db/vendas")
async def health_sales_db(db: AsyncSession = Depends(get_sales_db)):
    return await _probe(db)
