# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from datetime import date
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
import json
from app.api.deps import get_sales_db
from app.services.semanas import parse_year, week_option
from app.utils.params import csv_ints

"""
Calendário comercial (banco de vendas).


- `GET /calendario?ano`: datas cadastradas no ano.
- `POST /calendario/popular` (e `/calendario/calendario_loja/popular`): preenche o ano inteiro.
- `GET|PUT|DELETE /calendario/calendario_loja/datas`: lista, inclui ou remove uma data.
- `GET /semanas_calendario?ano&mes`: semanas que tocam os meses pedidos (padrão: mês atual).
"""

router = APIRouter()
router_semanas = APIRouter()


class AnoIn(BaseModel):
    ano: Any

class DataIn(BaseModel):
    ano: Any
    data: str
    meta: Optional[Any] = None


def _year_or_400(value: Any) -> int:
    year = parse_year(value)
    if year is None:
        raise HTTPException(status_code=400, detail="Ano inválido")
    return year

def _date_in_year(value: str, year: int) -> date:
    try:
        parsed = date.fromisoformat(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="Data inválida. Use YYYY-MM-DD")
    if parsed.year != year:
        raise HTTPException(status_code=400, detail="A 'data' não pertence ao 'ano' informado")
    return parsed


@router.get("", summary="Datas cadastradas no ano")
async def datas_do_ano(
    ano: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_sales_db),
) -> Dict[str, List[str]]:
    year = _year_or_400(ano)
    res = await db.execute(
        text("SELECT data FROM calendario WHERE EXTRACT(YEAR FROM data) = :ano ORDER BY data"),
        {"ano": year},
    )
    return {"datasCadastradas": [d.isoformat()[:10] for d in res.scalars().all()]}


@router.post("/popular", summary="Popular calendário do ano")
@router.post("/calendario_loja/popular", include_in_schema=False)
async def popular(payload: AnoIn, db: AsyncSession = Depends(get_sales_db)) -> Dict[str, str]:
    year = _year_or_400(payload.ano)
    await db.execute(text("""
        INSERT INTO calendario (ano, semana, data, meta)
        SELECT CAST(:ano AS INT), EXTRACT(WEEK FROM d)::int, d::date, NULL
        FROM generate_series(make_date(:ano, 1, 1), make_date(:ano, 12, 31), interval '1 day') AS d
        WHERE NOT EXISTS (
            SELECT 1 FROM calendario c WHERE c.ano = :ano AND c.data = d::date
        )
    """), {"ano": year})
    await db.commit()
    return {"message": f"Calendário do ano {year} populado com sucesso!"}


@router.get("/calendario_loja/datas", summary="Datas distintas do ano")
async def list_datas(
    ano: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_sales_db),
) -> Dict[str, List[str]]:
    year = _year_or_400(ano)
    res = await db.execute(
        text("SELECT DISTINCT data::date AS data FROM calendario WHERE ano = :ano ORDER BY data"),
        {"ano": year},
    )
    return {"datasCadastradas": [d.isoformat() for d in res.scalars().all()]}

@router.put("/calendario_loja/datas", summary="Cadastrar data")
async def add_data(payload: DataIn, db: AsyncSession = Depends(get_sales_db)) -> Dict[str, str]:
    year = _year_or_400(payload.ano)
    day = _date_in_year(payload.data, year)
    await db.execute(text("""
        INSERT INTO calendario (ano, semana, data, meta)
        SELECT CAST(:ano AS INT), CAST(:semana AS INT), CAST(:data AS DATE), CAST(:meta AS JSONB)
        WHERE NOT EXISTS (SELECT 1 FROM calendario WHERE ano = :ano AND data::date = :data)
    """), {
        "ano": year,
        "semana": day.isocalendar()[1],
        "data": day,
        "meta": None if payload.meta is None else json.dumps(payload.meta),
    })
    await db.commit()
    return {"message": f"Data {day.isoformat()} cadastrada (ou já existia)."}

@router.delete("/calendario_loja/datas", summary="Remover data")
async def remove_data(
    ano: Optional[str] = Query(None),
    data: str = Query(...),
    db: AsyncSession = Depends(get_sales_db),
) -> Dict[str, str]:
    year = _year_or_400(ano)
    day = _date_in_year(data, year)
    res = await db.execute(
        text("DELETE FROM calendario WHERE ano = :ano AND data::date = :data RETURNING data"),
        {"ano": year, "data": day},
    )
    removed = res.first() is not None
    await db.commit()
    return {"message": f"Data {day.isoformat()} removida." if removed else f"Data {day.isoformat()} não existia."}


_SEMANAS_SQL = """
WITH base AS (
    SELECT c.ano, c.semana,
           (c.data::date - (EXTRACT(ISODOW FROM c.data)::int - 1))::date AS wk_start,
           (c.data::date - (EXTRACT(ISODOW FROM c.data)::int - 1) + 6)::date AS wk_end,
           EXTRACT(MONTH FROM c.data)::int AS mes_do_dia
    FROM calendario c
    WHERE c.ano = :ano
),
agrup AS (
    SELECT ano, semana, MIN(wk_start) AS inicio, MAX(wk_end) AS fim,
           ARRAY_AGG(DISTINCT mes_do_dia) AS meses
    FROM base
    GROUP BY ano, semana
)
SELECT ano, semana, inicio, fim
FROM agrup
WHERE meses && CAST(:meses AS INT[])
ORDER BY inicio
"""

@router_semanas.get("", summary="Semanas do(s) mês(es)")
async def semanas_calendario(
    ano: Optional[str] = Query(None),
    mes: Optional[str] = Query(None, description="CSV de meses (1..12)"),
    db: AsyncSession = Depends(get_sales_db),
) -> List[Dict[str, Any]]:
    today = date.today()
    year = parse_year(ano) or today.year
    meses = csv_ints(mes) or [today.month]
    res = await db.execute(text(_SEMANAS_SQL), {"ano": year, "meses": meses})
    return [week_option(r["ano"], r["semana"], r["inicio"], r["fim"]) for r in res.mappings().all()]
