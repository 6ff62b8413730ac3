# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from typing import Any, List, Optional, Union
from fastapi import APIRouter, Depends, HTTPException, Path, Query
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_db, get_empresa_id
from app.utils.money import normalize_money

"""
Cadastro de produtos (estoque/loja) do tenant.


- `GET /produtos?q&onlyAtivos` busca por id, código de barras ou descrição.
- `POST /produtos` cria; valores aceitam formato brasileiro ("1.234,56").
- `PUT /produtos` (id no body) e `GET|PUT|DELETE /produtos/{id}`.
- `GET /produtos_contagem?codigo_barra` consulta rápida usada na contagem.
"""

router = APIRouter()
router_contagem = APIRouter()

Money = Union[float, str, None]

_COLUMNS = """
    id, codigo_barra, descricao, custo, preco, categoria,
    empresa_id, foto_url, ativo_loja, created_at
"""

class ProdutoIn(BaseModel):
    codigo_barra: str = Field(..., min_length=1)
    descricao: str = Field(..., min_length=1)
    custo: Money = None
    preco: Money = None
    categoria: Optional[str] = None
    foto_url: Optional[str] = None
    ativo_loja: Optional[bool] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "codigo_barra": "7891000100103",
                "descricao": "Leite condensado 395g",
                "custo": "4,90",
                "preco": "7,49",
                "categoria": "Mercearia",
                "ativo_loja": True
            }
        }
    }

class ProdutoUpdateByBodyIn(ProdutoIn):
    id: int


def _values(payload: ProdutoIn) -> dict[str, Any]:
    return {
        "codigo_barra": payload.codigo_barra,
        "descricao": payload.descricao,
        "custo": normalize_money(payload.custo),
        "preco": normalize_money(payload.preco),
        "categoria": payload.categoria or None,
        "foto_url": payload.foto_url or None,
        "ativo_loja": payload.ativo_loja,
    }

async def _update(db: AsyncSession, empresa_id: int, produto_id: int, payload: ProdutoIn) -> dict[str, Any]:
    res = await db.execute(text("""
        UPDATE produto SET
            codigo_barra = :codigo_barra,
            descricao    = :descricao,
            custo        = :custo,
            preco        = :preco,
            categoria    = :categoria,
            foto_url     = :foto_url,
            ativo_loja   = COALESCE(:ativo_loja, ativo_loja)
        WHERE id = :id AND empresa_id = :empresa_id
        RETURNING *
    """), {**_values(payload), "id": produto_id, "empresa_id": empresa_id})
    row = res.mappings().first()
    if not row:
        raise HTTPException(status_code=404, detail="Produto não encontrado")
    await db.commit()
    return dict(row)


@router.get("", summary="Listar/buscar produtos")
async def list_produtos(
    q: Optional[str] = Query(None, description="id, código de barras ou parte da descrição"),
    onlyAtivos: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> List[dict[str, Any]]:
    conditions = ["empresa_id = :empresa_id"]
    params: dict[str, Any] = {"empresa_id": empresa_id}
    if q:
        conditions.append("(CAST(id AS TEXT) = :q OR codigo_barra = :q OR LOWER(descricao) LIKE LOWER(:q_like))")
        params["q"] = q
        params["q_like"] = f"%{q}%"
    if onlyAtivos:
        conditions.append("ativo_loja = TRUE")

    res = await db.execute(text(f"""
        SELECT {_COLUMNS}
        FROM produto
        WHERE {" AND ".join(conditions)}
        ORDER BY id
    """), params)
    return [dict(r) for r in res.mappings().all()]


@router.post("", status_code=201, summary="Criar produto")
async def create_produto(
    payload: ProdutoIn,
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    res = await db.execute(text("""
        INSERT INTO produto
            (codigo_barra, descricao, custo, preco, categoria, empresa_id, foto_url, ativo_loja)
        VALUES
            (:codigo_barra, :descricao, :custo, :preco, :categoria, :empresa_id, :foto_url, COALESCE(:ativo_loja, TRUE))
        RETURNING *
    """), {**_values(payload), "empresa_id": empresa_id})
    row = res.mappings().first()
    await db.commit()
    return dict(row)


@router.put("", summary="Atualizar produto (id no body)")
async def update_produto_body(
    payload: ProdutoUpdateByBodyIn,
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    return await _update(db, empresa_id, payload.id, payload)


@router.get("/{produto_id}", summary="Detalhar produto")
async def get_produto(
    produto_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    res = await db.execute(
        text(f"SELECT {_COLUMNS} FROM produto WHERE id = :id AND empresa_id = :empresa_id"),
        {"id": produto_id, "empresa_id": empresa_id},
    )
    row = res.mappings().first()
    if not row:
        raise HTTPException(status_code=404, detail="Produto não encontrado")
    return dict(row)

@router.put("/{produto_id}", summary="Atualizar produto")
async def update_produto(
    payload: ProdutoIn,
    produto_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    return await _update(db, empresa_id, produto_id, payload)

@router.delete("/{produto_id}", summary="Excluir produto")
async def delete_produto(
    produto_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    res = await db.execute(
        text("DELETE FROM produto WHERE id = :id AND empresa_id = :empresa_id RETURNING id"),
        {"id": produto_id, "empresa_id": empresa_id},
    )
    row = res.mappings().first()
    if not row:
        raise HTTPException(status_code=404, detail="Produto não encontrado")
    await db.commit()
    return {"message": "Produto excluído com sucesso", "id": row["id"]}


@router_contagem.get("", summary="Produto por código de barras (contagem)")
async def produto_por_codigo(
    codigo_barra: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    res = await db.execute(text("""
        SELECT codigo_barra, descricao FROM produto
        WHERE codigo_barra = :codigo_barra AND empresa_id = :empresa_id
        LIMIT 1
    """), {"codigo_barra": codigo_barra, "empresa_id": empresa_id})
    row = res.mappings().first()
    if not row:
        raise HTTPException(status_code=404, detail="Produto não encontrado")
    return dict(row)
