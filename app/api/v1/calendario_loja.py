# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.api.deps import get_sales_db
from app.utils.params import csv_ints, csv_texts

"""
Metas semanais por loja (`calendario_loja`, banco de vendas).


- `GET|POST|PUT|DELETE /calendario_loja`: cadastro (PUT exige id; DELETE com id no body).
- `GET /calendario_loja/consulta?ano&mes&semana&loja`: percentuais de cota com defaults
  (abaixo 3.25, cota 4.00, super_cota 4.50, cota_ouro 5.00); filtros em CSV.
- `POST /calendario_loja/duplicar`: copia a semana de uma loja para outra numa transação.
"""

log = logging.getLogger("calendario_loja")

router = APIRouter()

DEFAULT_PERCENTUAIS = {"abaixo": 3.25, "cota": 4.00, "super_cota": 4.50, "cota_ouro": 5.00}

_COPY_COLUMNS = ("meta", "obs", "qtd_vendedor", "cota", "abaixo", "super_cota", "cota_ouro")


class CalendarioLojaIn(BaseModel):
    ano: int
    semana: int = Field(..., ge=1, le=53)
    loja: str = Field(..., min_length=1)
    meta: Optional[float] = None
    obs: Optional[str] = None
    qtd_vendedor: Optional[int] = None
    cota: Optional[float] = None
    abaixo: Optional[float] = None
    super_cota: Optional[float] = None
    cota_ouro: Optional[float] = None

class CalendarioLojaUpdateIn(CalendarioLojaIn):
    id: int

class IdIn(BaseModel):
    id: int

class DuplicarIn(BaseModel):
    origem_loja: str = Field(..., min_length=1)
    destino_loja: str = Field(..., min_length=1)
    ano: int
    semana: int


@router.get("", summary="Listar metas semanais das lojas")
async def list_calendario_loja(
    ano: Optional[int] = Query(None),
    semana: Optional[int] = Query(None),
    loja: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_sales_db),
) -> List[Dict[str, Any]]:
    conditions: List[str] = []
    params: Dict[str, Any] = {}
    for name, value in (("ano", ano), ("semana", semana), ("loja", loja)):
        if value:
            conditions.append(f"{name} = :{name}")
            params[name] = value
    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    res = await db.execute(text(f"""
        SELECT id, ano, semana, loja, meta, obs, qtd_vendedor, cota, abaixo, super_cota, cota_ouro
        FROM calendario_loja
        {where}
        ORDER BY ano DESC, semana DESC, loja ASC
    """), params)
    return [dict(r) for r in res.mappings().all()]


@router.post("", status_code=201, summary="Cadastrar meta semanal")
async def create_calendario_loja(
    payload: CalendarioLojaIn,
    db: AsyncSession = Depends(get_sales_db),
) -> Dict[str, Any]:
    res = await db.execute(text("""
        INSERT INTO calendario_loja
            (ano, semana, loja, meta, obs, qtd_vendedor, cota, abaixo, super_cota, cota_ouro)
        VALUES
            (:ano, :semana, :loja, :meta, :obs, :qtd_vendedor, :cota, :abaixo, :super_cota, :cota_ouro)
        RETURNING *
    """), payload.model_dump())
    row = res.mappings().first()
    await db.commit()
    return dict(row)


@router.put("", summary="Atualizar meta semanal")
async def update_calendario_loja(
    payload: CalendarioLojaUpdateIn,
    db: AsyncSession = Depends(get_sales_db),
) -> Dict[str, Any]:
    res = await db.execute(text("""
        UPDATE calendario_loja
        SET ano = :ano, semana = :semana, loja = :loja, meta = :meta, obs = :obs,
            qtd_vendedor = :qtd_vendedor, cota = :cota, abaixo = :abaixo,
            super_cota = :super_cota, cota_ouro = :cota_ouro, updated_at = NOW()
        WHERE id = :id
        RETURNING *
    """), payload.model_dump())
    row = res.mappings().first()
    if not row:
        raise HTTPException(status_code=404, detail="Registro não encontrado")
    await db.commit()
    return dict(row)


@router.delete("", summary="Excluir meta semanal")
async def delete_calendario_loja(
    payload: IdIn,
    db: AsyncSession = Depends(get_sales_db),
) -> Dict[str, str]:
    res = await db.execute(text("DELETE FROM calendario_loja WHERE id = :id RETURNING id"), {"id": payload.id})
    if not res.mappings().first():
        raise HTTPException(status_code=404, detail="Registro não encontrado")
    await db.commit()
    return {"message": "Registro excluído"}


@router.get("/consulta", summary="Percentuais de cota por loja/semana")
async def consulta(
    ano: Optional[str] = Query(None, description="CSV"),
    mes: Optional[str] = Query(None, description="CSV"),
    semana: Optional[str] = Query(None, description="CSV; aceita rótulos como 'S2 05/01 a 11/01'"),
    loja: Optional[str] = Query(None, description="CSV"),
    db: AsyncSession = Depends(get_sales_db),
) -> List[Dict[str, Any]]:
    anos, meses, semanas, lojas = csv_ints(ano), csv_ints(mes), csv_ints(semana), csv_texts(loja)
    d = DEFAULT_PERCENTUAIS
    percentuais = f"""
        COALESCE(cl.abaixo, {d['abaixo']:.2f})::numeric AS abaixo,
        COALESCE(cl.cota, {d['cota']:.2f})::numeric AS cota,
        COALESCE(cl.super_cota, {d['super_cota']:.2f})::numeric AS super_cota,
        COALESCE(cl.cota_ouro, {d['cota_ouro']:.2f})::numeric AS cota_ouro
    """
    conditions: List[str] = []
    params: Dict[str, Any] = {}

    if meses:
        # com mês, o ano ISO vem da data do calendário
        if anos:
            conditions.append("EXTRACT(ISOYEAR FROM cal.data)::int = ANY(CAST(:anos AS INT[]))")
            params["anos"] = anos
        if semanas:
            conditions.append("cal.semana = ANY(CAST(:semanas AS INT[]))")
            params["semanas"] = semanas
        if lojas:
            conditions.append("cl.loja = ANY(CAST(:lojas AS TEXT[]))")
            params["lojas"] = lojas
        conditions.append("cal.mes = ANY(CAST(:meses AS INT[]))")
        params["meses"] = meses
        sql = f"""
            SELECT DISTINCT ON (cl.loja, EXTRACT(ISOYEAR FROM cal.data)::int, cal.mes, cal.semana)
                cl.loja, cal.semana, EXTRACT(ISOYEAR FROM cal.data)::int AS ano, cal.mes,
                {percentuais}
            FROM calendario_loja cl
            JOIN calendario cal
              ON cal.semana = cl.semana AND EXTRACT(ISOYEAR FROM cal.data)::int = cl.ano
            WHERE {' AND '.join(conditions)}
            ORDER BY cl.loja, EXTRACT(ISOYEAR FROM cal.data)::int, cal.mes, cal.semana, cal.data
        """
    else:
        if anos:
            conditions.append("cl.ano = ANY(CAST(:anos AS INT[]))")
            params["anos"] = anos
        if semanas:
            conditions.append("cl.semana = ANY(CAST(:semanas AS INT[]))")
            params["semanas"] = semanas
        if lojas:
            conditions.append("cl.loja = ANY(CAST(:lojas AS TEXT[]))")
            params["lojas"] = lojas
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        sql = f"""
            SELECT cl.loja, cl.semana, cl.ano, NULL::int AS mes,
                {percentuais}
            FROM calendario_loja cl
            {where}
            ORDER BY cl.loja, cl.ano, cl.semana
        """

    res = await db.execute(text(sql), params)
    return [dict(r) for r in res.mappings().all()]


@router.post("/duplicar", summary="Duplicar semana de uma loja para outra")
async def duplicar(
    payload: DuplicarIn,
    db: AsyncSession = Depends(get_sales_db),
) -> Dict[str, Any]:
    try:
        res = await db.execute(text(f"""
            SELECT {', '.join(_COPY_COLUMNS)}
            FROM calendario_loja
            WHERE loja = :loja AND ano = :ano AND semana = :semana
        """), {"loja": payload.origem_loja, "ano": payload.ano, "semana": payload.semana})
        rows = [dict(r) for r in res.mappings().all()]
        if not rows:
            await db.rollback()
            raise HTTPException(status_code=404, detail="Nenhum registro para copiar da loja de origem")

        for row in rows:
            await db.execute(text(f"""
                INSERT INTO calendario_loja (ano, semana, loja, {', '.join(_COPY_COLUMNS)})
                VALUES (:ano, :semana, :loja, {', '.join(':' + c for c in _COPY_COLUMNS)})
            """), {**row, "ano": payload.ano, "semana": payload.semana, "loja": payload.destino_loja})
        await db.commit()
    except HTTPException:
        raise
    except Exception:
        await db.rollback()
        log.exception("Falha ao duplicar %s -> %s", payload.origem_loja, payload.destino_loja)
        raise

    log.info("Semana %s/%s duplicada de %s para %s (%s registros)",
             payload.semana, payload.ano, payload.origem_loja, payload.destino_loja, len(rows))
    return {"message": "Registros duplicados com sucesso.", "registros": len(rows)}
