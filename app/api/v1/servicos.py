# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Path, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_db, get_empresa_id

"""
Catálogo de serviços do tenant (agenda/faturas).


- `GET /servicos` lista por nome; `POST /servicos` cria (duração padrão 60 min).
- `PUT /servicos/{id}` e `DELETE /servicos/{id}` dentro da empresa (404 se não existe).
"""

router = APIRouter()

DEFAULT_DURACAO_MINUTOS = 60

class ServicoIn(BaseModel):
    nome: str = Field(..., min_length=1)
    descricao: Optional[str] = None
    duracao_minutos: Optional[int] = Field(None, ge=1)
    preco: Optional[float] = None


@router.get("", summary="Listar serviços")
async def list_servicos(
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> List[dict[str, Any]]:
    res = await db.execute(
        text("SELECT * FROM servicos WHERE empresa_id = :empresa_id ORDER BY nome"),
        {"empresa_id": empresa_id},
    )
    return [dict(r) for r in res.mappings().all()]


@router.post("", status_code=201, summary="Criar serviço")
async def create_servico(
    payload: ServicoIn,
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    res = await db.execute(text("""
        INSERT INTO servicos (empresa_id, nome, descricao, duracao_minutos, preco)
        VALUES (:empresa_id, :nome, :descricao, :duracao, :preco)
        RETURNING *
    """), {
        "empresa_id": empresa_id,
        "nome": payload.nome,
        "descricao": payload.descricao,
        "duracao": payload.duracao_minutos or DEFAULT_DURACAO_MINUTOS,
        "preco": payload.preco,
    })
    row = res.mappings().first()
    await db.commit()
    return dict(row)


@router.put("/{servico_id}", summary="Atualizar serviço")
async def update_servico(
    payload: ServicoIn,
    servico_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    res = await db.execute(text("""
        UPDATE servicos
        SET nome = :nome, descricao = :descricao, duracao_minutos = :duracao, preco = COALESCE(:preco, preco)
        WHERE id = :id AND empresa_id = :empresa_id
        RETURNING *
    """), {
        "id": servico_id,
        "empresa_id": empresa_id,
        "nome": payload.nome,
        "descricao": payload.descricao,
        "duracao": payload.duracao_minutos or DEFAULT_DURACAO_MINUTOS,
        "preco": payload.preco,
    })
    row = res.mappings().first()
    if not row:
        raise HTTPException(status_code=404, detail="Serviço não encontrado")
    await db.commit()
    return dict(row)


@router.delete("/{servico_id}", summary="Excluir serviço")
async def delete_servico(
    servico_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    res = await db.execute(
        text("DELETE FROM servicos WHERE id = :id AND empresa_id = :empresa_id RETURNING id"),
        {"id": servico_id, "empresa_id": empresa_id},
    )
    if not res.mappings().first():
        raise HTTPException(status_code=404, detail="Serviço não encontrado")
    await db.commit()
    return {"message": "Serviço removido"}
