# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from datetime import date
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_db

"""
Contagem de estoque (inventário por setor/loja).


- `GET|POST /contagem_apoio` e `GET /contagem_apoio/list` (setores, operadores e lojas distintos).
- `POST /contagem_temp`: leitura parcial de um código (quantidade 1 e data de hoje por padrão).
- `POST /contagem_finalizada`: grava o lote final de produtos contados.
"""

router_apoio = APIRouter()
router_temp = APIRouter()
router_finalizada = APIRouter()


class ApoioIn(BaseModel):
    setor: str = Field(..., min_length=1)
    operador: str = Field(..., min_length=1)
    loja: str = Field(..., min_length=1)

class ContagemTempIn(ApoioIn):
    codigo: str = Field(..., min_length=1)
    descricao: Optional[str] = None
    quantidade: Optional[float] = None
    data: Optional[date] = None
    id_contagem: Optional[int] = None

class ProdutoContadoIn(BaseModel):
    usuario_email: Optional[str] = None
    setor: Optional[str] = None
    codigo: Optional[str] = None
    descricao: Optional[str] = None
    quantidade: Optional[float] = None
    loja: Optional[str] = None
    nome: Optional[str] = None

class FinalizarIn(BaseModel):
    produtos: List[ProdutoContadoIn] = Field(..., min_length=1)


@router_apoio.get("", summary="Últimos cadastros de apoio")
async def list_apoio(db: AsyncSession = Depends(get_db)) -> List[Dict[str, Any]]:
    res = await db.execute(text("SELECT * FROM contagem_apoio ORDER BY criado_em DESC LIMIT 100"))
    return [dict(r) for r in res.mappings().all()]

@router_apoio.post("", status_code=201, summary="Cadastrar setor/operador/loja")
async def create_apoio(payload: ApoioIn, db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    res = await db.execute(
        text("INSERT INTO contagem_apoio (setor, operador, loja) VALUES (:setor, :operador, :loja) RETURNING *"),
        payload.model_dump(),
    )
    row = res.mappings().first()
    await db.commit()
    return dict(row)

@router_apoio.get("/list", summary="Valores distintos para os filtros")
async def list_distinct(db: AsyncSession = Depends(get_db)) -> Dict[str, List[Any]]:
    out: Dict[str, List[Any]] = {}
    for key, column in (("setores", "setor"), ("operadores", "operador"), ("lojas", "loja")):
        res = await db.execute(text(f"SELECT DISTINCT {column} FROM contagem_apoio ORDER BY {column}"))
        out[key] = list(res.scalars().all())
    return out


@router_temp.post("", status_code=201, summary="Registrar leitura parcial")
async def create_temp(payload: ContagemTempIn, db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    res = await db.execute(text("""
        INSERT INTO contagem_temp (setor, operador, loja, codigo, descricao, quantidade, data, id_contagem)
        VALUES (:setor, :operador, :loja, :codigo, :descricao, :quantidade, :data, :id_contagem)
        RETURNING id_contagem
    """), {
        **payload.model_dump(exclude={"quantidade", "data"}),
        "quantidade": payload.quantidade or 1,
        "data": payload.data or date.today(),
    })
    row = res.mappings().first()
    await db.commit()
    return {"id_contagem": row["id_contagem"]}


@router_finalizada.post("", status_code=201, summary="Finalizar contagem")
async def finalizar(payload: FinalizarIn, db: AsyncSession = Depends(get_db)) -> Dict[str, str]:
    rows = [{**p.model_dump(), "quantidade": p.quantidade or 1} for p in payload.produtos]
    await db.execute(text("""
        INSERT INTO contagem_finalizada
            (usuario_email, setor, codigo, descricao, quantidade, finalizado_em, setor_finalizado, loja, nome)
        VALUES
            (:usuario_email, :setor, :codigo, :descricao, :quantidade, NOW(), TRUE, :loja, :nome)
    """), rows)
    await db.commit()
    return {"status": "ok", "message": "Contagem finalizada com sucesso"}
