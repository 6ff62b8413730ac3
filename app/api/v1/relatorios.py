# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from datetime import date
from typing import Any, Dict, List, Optional, Tuple
from fastapi import APIRouter, Depends, Query
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_sales_db
from app.services import relatorios as sql
from app.services.semanas import distinct_weeks, pivot_weeks
from app.utils.params import csv_ints, csv_texts

"""
Relatórios de vendas x metas (banco de vendas).


- `/relatorio_semanal`, `/relatorio_mensal`, `/relatorio_mensal_semana` e `/relatorio_comparativo`: mês corrente.
- `/relatorio_mensal_vendedor`, `/relatorio_semanal_dinamico`, `/relatorio_mensal_vendedor_comissao`
  e `/debug_comissao` aceitam `ano` e `mes` (padrão: hoje).
- Filtros `loja`, `vendedor`, `dia` e `semana` em CSV; ausentes viram NULL no SQL.
"""

router = APIRouter()


def _ano_mes(ano: Optional[str], mes: Optional[str]) -> Tuple[int, int]:
    today = date.today()
    anos, meses = csv_ints(ano), csv_ints(mes)
    return (anos[0] if anos else today.year), (meses[0] if meses else today.month)

async def _rows(db: AsyncSession, query: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    res = await db.execute(text(query), params or {})
    return [dict(r) for r in res.mappings().all()]


@router.get("/relatorio_semanal", summary="Realizado x meta por semana do mês")
async def relatorio_semanal(db: AsyncSession = Depends(get_sales_db)) -> Dict[str, Any]:
    return {
        "dataLoja": await _rows(db, sql.semanal_sql()),
        "dataLojaVendedor": await _rows(db, sql.semanal_sql(por_vendedor=True)),
    }


@router.get("/relatorio_mensal", summary="Meta x realizado do mês por filial")
async def relatorio_mensal(db: AsyncSession = Depends(get_sales_db)) -> Dict[str, Any]:
    return {"data": [sql.format_mensal(r) for r in await _rows(db, sql.MENSAL_SQL)]}


@router.get("/relatorio_mensal_vendedor", summary="Cotas mensais por vendedor")
async def relatorio_mensal_vendedor(
    ano: Optional[str] = Query(None),
    mes: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_sales_db),
) -> Dict[str, Any]:
    year, month = _ano_mes(ano, mes)
    data = await _rows(db, sql.MENSAL_VENDEDOR_SQL, {"ano": year, "mes": month})
    return {"data": data, "mes": month, "ano": year}


@router.get("/relatorio_mensal_vendedor_comissao", summary="Comissão mensal por vendedor")
async def relatorio_mensal_vendedor_comissao(
    ano: Optional[str] = Query(None),
    mes: Optional[str] = Query(None),
    loja: Optional[str] = Query(None, description="CSV"),
    vendedor: Optional[str] = Query(None, description="CSV"),
    dia: Optional[str] = Query(None, description="CSV"),
    semana: Optional[str] = Query(None, description="CSV de semanas ISO"),
    db: AsyncSession = Depends(get_sales_db),
) -> Dict[str, Any]:
    year, month = _ano_mes(ano, mes)
    semanas = csv_ints(semana) or None
    data = await _rows(db, sql.MENSAL_VENDEDOR_COMISSAO_SQL, {
        "ano": year,
        "mes": month,
        "lojas": csv_texts(loja) or None,
        "vendedores": csv_texts(vendedor) or None,
        "dias": csv_ints(dia) or None,
        "semanas": semanas,
    })
    return {"data": data, "mes": month, "ano": year, "semanas": semanas}


@router.get("/relatorio_semanal_dinamico", summary="Cotas por semana ISO do mês")
async def relatorio_semanal_dinamico(
    ano: Optional[str] = Query(None),
    mes: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_sales_db),
) -> Dict[str, Any]:
    year, month = _ano_mes(ano, mes)
    rows = await _rows(db, sql.SEMANAL_DINAMICO_SQL, {"ano": year, "mes": month})
    semanas = distinct_weeks(rows)
    data = pivot_weeks(rows, "loja", sql.SEMANAL_DINAMICO_HEADER, sql.SEMANAL_DINAMICO_CELLS, semanas)
    for item in data:
        item.update(mes=month, ano=year)
    return {"data": data, "semanas": semanas, "mes": month, "ano": year}


@router.get("/relatorio_mensal_semana", summary="Semanas do mês corrente por loja")
async def relatorio_mensal_semana(db: AsyncSession = Depends(get_sales_db)) -> Dict[str, Any]:
    rows = await _rows(db, sql.MENSAL_SEMANA_SQL)
    # linhas vêm por semana fiscal; o painel sempre espera as chaves 1..6
    data = pivot_weeks(
        rows, "loja", ("meta_mes", "realizado_mes"), sql.MENSAL_SEMANA_CELLS,
        list(sql.SEMANAS_MES), week_field="semana_fiscal",
    )
    return {"data": data}


@router.get("/relatorio_comparativo", summary="Comparativo meta x venda por filial")
async def relatorio_comparativo(db: AsyncSession = Depends(get_sales_db)) -> Dict[str, Any]:
    return {"data": await _rows(db, sql.COMPARATIVO_SQL)}


@router.get("/debug_comissao", summary="Conferência da comissão semanal")
async def debug_comissao(
    ano: Optional[str] = Query(None),
    mes: Optional[str] = Query(None),
    loja: Optional[str] = Query(None),
    vendedor: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_sales_db),
) -> Dict[str, Any]:
    year, month = _ano_mes(ano, mes)
    data = await _rows(db, sql.DEBUG_COMISSAO_SQL, {
        "ano": year, "mes": month, "loja": loja or None, "vendedor": vendedor or None,
    })
    return {"data": data}
