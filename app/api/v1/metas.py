# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
import math
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_sales_db

"""
Metas mensais das lojas e cadastro de vendedores (banco de vendas).


- `GET /buckman/metas?q&page&limit` paginado; `POST`, `PUT` (id no body) e `DELETE ?id` (204).
- `GET /buckman/vendedores?q&page&limit` paginado por nome.
- `GET /lojas` e `GET /vendedores`: valores distintos para os filtros dos relatórios.
"""

router = APIRouter()
router_lojas = APIRouter()
router_vendedores = APIRouter()

_META_COLUMNS = (
    "codigo", "loja", "mes", "ano",
    "semana1", "semana2", "semana3", "semana4", "semana5", "semana6",
    "cota_vendedor", "super_cota", "cota_ouro", "comissao_loja", "qtd_vendedor",
    "valor_cota", "valor_super_cota", "valor_cota_ouro",
)


class MetaLojaIn(BaseModel):
    codigo: Optional[str] = None
    loja: str
    mes: int
    ano: int
    semana1: Optional[float] = None
    semana2: Optional[float] = None
    semana3: Optional[float] = None
    semana4: Optional[float] = None
    semana5: Optional[float] = None
    semana6: Optional[float] = None
    cota_vendedor: Optional[float] = None
    super_cota: Optional[float] = None
    cota_ouro: Optional[float] = None
    comissao_loja: Optional[float] = None
    qtd_vendedor: Optional[int] = None
    valor_cota: Optional[float] = None
    valor_super_cota: Optional[float] = None
    valor_cota_ouro: Optional[float] = None

class MetaLojaUpdateIn(MetaLojaIn):
    id: int


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0

async def _paginate(db: AsyncSession, table: str, column: str, order: str, q: str, page: int, limit: int):
    like = {"q": f"%{q}%"}
    total = (await db.execute(text(f"SELECT COUNT(*) FROM {table} WHERE {column} ILIKE :q"), like)).scalar_one()
    res = await db.execute(
        text(f"SELECT * FROM {table} WHERE {column} ILIKE :q ORDER BY {order} LIMIT :limit OFFSET :offset"),
        {**like, "limit": limit, "offset": (page - 1) * limit},
    )
    return [dict(r) for r in res.mappings().all()], int(total)


@router.get("/metas", summary="Metas das lojas (paginado)")
async def list_metas(
    q: str = Query(""),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=500),
    db: AsyncSession = Depends(get_sales_db),
) -> Dict[str, Any]:
    items, total = await _paginate(db, "metas_lojas", "loja", "id", q, page, limit)
    return {"items": items, "currentPage": page, "totalPages": total_pages(total, limit)}

@router.post("/metas", status_code=201, summary="Cadastrar meta")
async def create_meta(payload: MetaLojaIn, db: AsyncSession = Depends(get_sales_db)) -> Dict[str, Any]:
    res = await db.execute(text(f"""
        INSERT INTO metas_lojas ({', '.join(_META_COLUMNS)})
        VALUES ({', '.join(':' + c for c in _META_COLUMNS)})
        RETURNING *
    """), payload.model_dump())
    row = res.mappings().first()
    await db.commit()
    return dict(row)

@router.put("/metas", summary="Atualizar meta")
async def update_meta(payload: MetaLojaUpdateIn, db: AsyncSession = Depends(get_sales_db)) -> Dict[str, Any]:
    res = await db.execute(text(f"""
        UPDATE metas_lojas SET {', '.join(f'{c} = :{c}' for c in _META_COLUMNS)}
        WHERE id = :id
        RETURNING *
    """), payload.model_dump())
    row = res.mappings().first()
    if not row:
        raise HTTPException(status_code=404, detail="Meta não encontrada")
    await db.commit()
    return dict(row)

@router.delete("/metas", status_code=204, summary="Excluir meta")
async def delete_meta(id: int = Query(..., ge=1), db: AsyncSession = Depends(get_sales_db)) -> Response:
    await db.execute(text("DELETE FROM metas_lojas WHERE id = :id"), {"id": id})
    await db.commit()
    return Response(status_code=204)


@router.get("/vendedores", summary="Vendedores (paginado)")
async def list_vendedores_paginado(
    q: str = Query(""),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=500),
    db: AsyncSession = Depends(get_sales_db),
) -> Dict[str, Any]:
    items, total = await _paginate(db, "vendedores", "seller_name", "seller_name", q, page, limit)
    return {"items": items, "totalItems": total, "totalPages": total_pages(total, limit), "currentPage": page}


@router_lojas.get("", summary="Lojas com meta cadastrada")
async def list_lojas(db: AsyncSession = Depends(get_sales_db)) -> List[str]:
    res = await db.execute(text("SELECT DISTINCT loja FROM metas_lojas ORDER BY loja"))
    return list(res.scalars().all())

@router_vendedores.get("", summary="Vendedores com vendas")
async def list_vendedores(db: AsyncSession = Depends(get_sales_db)) -> List[str]:
    res = await db.execute(text("SELECT DISTINCT seller_name FROM view_vendas_completa ORDER BY seller_name"))
    return list(res.scalars().all())
