# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_db, get_empresa_id

"""
Painéis de faturamento/agenda do tenant.


- `GET /dashboard`: totais de faturas, contagem de agendamentos, últimos 6 meses pagos,
  formas de pagamento e faturamento diário (30 dias).
- `GET /dashboard_servico`: mesma visão, status case-insensitive e série mensal completa.
"""

router = APIRouter()


async def _one(db: AsyncSession, sql: str, params: dict[str, Any]) -> dict[str, Any]:
    res = await db.execute(text(sql), params)
    row = res.mappings().first()
    return dict(row) if row else {}

async def _all(db: AsyncSession, sql: str, params: dict[str, Any]) -> list[dict[str, Any]]:
    res = await db.execute(text(sql), params)
    return [dict(r) for r in res.mappings().all()]


@router.get("/dashboard", summary="Resumo de faturamento e agenda")
async def dashboard(
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    p = {"empresa_id": empresa_id}
    return {
        "faturas": await _one(db, """
            SELECT
                SUM(CASE WHEN status = 'Aberto' THEN total ELSE 0 END) AS total_aberto,
                SUM(CASE WHEN status = 'Pago' THEN total ELSE 0 END) AS total_pago,
                SUM(total) AS total_geral
            FROM faturas WHERE empresa_id = :empresa_id
        """, p),
        "agendamentos": await _one(db, """
            SELECT
                COUNT(*) FILTER (WHERE status = 'agendado') AS pendentes,
                COUNT(*) FILTER (WHERE status = 'faturado') AS faturados,
                COUNT(*) FILTER (WHERE status = 'cancelado') AS cancelados
            FROM agendamentos WHERE empresa_id = :empresa_id
        """, p),
        "mensal": await _all(db, """
            SELECT TO_CHAR(data, 'YYYY-MM') AS mes, SUM(total) AS total
            FROM faturas WHERE empresa_id = :empresa_id AND status = 'Pago'
            GROUP BY mes ORDER BY mes DESC LIMIT 6
        """, p),
        "pagamentos": await _all(db, """
            SELECT forma_pagamento, COUNT(*) AS qtd, SUM(total) AS total
            FROM faturas WHERE empresa_id = :empresa_id AND status = 'Pago'
            GROUP BY forma_pagamento
        """, p),
        "diario": await _all(db, """
            SELECT TO_CHAR(data, 'YYYY-MM-DD') AS dia, SUM(total) AS total
            FROM faturas
            WHERE empresa_id = :empresa_id AND status = 'Pago' AND data >= NOW() - interval '30 days'
            GROUP BY dia ORDER BY dia
        """, p),
    }


@router.get("/dashboard_servico", summary="Resumo de serviços (status case-insensitive)")
async def dashboard_servico(
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    p = {"empresa_id": empresa_id}
    return {
        "faturas": await _one(db, """
            SELECT
                COALESCE(SUM(CASE WHEN LOWER(status) = 'pago' THEN total ELSE 0 END), 0) AS total_pago,
                COALESCE(SUM(CASE WHEN LOWER(status) = 'aberto' THEN total ELSE 0 END), 0) AS total_aberto,
                COALESCE(SUM(total), 0) AS total_geral
            FROM faturas WHERE empresa_id = :empresa_id
        """, p),
        "agendamentos": await _one(db, """
            SELECT
                COALESCE(SUM(CASE WHEN LOWER(status) = 'agendado' THEN 1 ELSE 0 END), 0) AS pendentes,
                COALESCE(SUM(CASE WHEN LOWER(status) = 'faturado' THEN 1 ELSE 0 END), 0) AS faturados,
                COALESCE(SUM(CASE WHEN LOWER(status) = 'cancelado' THEN 1 ELSE 0 END), 0) AS cancelados
            FROM agendamentos WHERE empresa_id = :empresa_id
        """, p),
        "mensal": await _all(db, """
            SELECT TO_CHAR(data, 'YYYY-MM') AS mes, SUM(total) AS total
            FROM faturas WHERE empresa_id = :empresa_id
            GROUP BY mes ORDER BY mes
        """, p),
        "pagamentos": await _all(db, """
            SELECT forma_pagamento, SUM(total) AS total
            FROM faturas WHERE empresa_id = :empresa_id AND LOWER(status) = 'pago'
            GROUP BY forma_pagamento
        """, p),
        "diario": await _all(db, """
            SELECT TO_CHAR(data, 'YYYY-MM-DD') AS dia, SUM(total) AS total
            FROM faturas
            WHERE empresa_id = :empresa_id AND LOWER(status) = 'pago' AND data >= NOW() - interval '30 days'
            GROUP BY dia ORDER BY dia
        """, p),
    }
