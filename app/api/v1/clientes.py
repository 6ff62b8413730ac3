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
Cadastro de clientes do tenant.


- `GET /clientes` lista clientes da empresa (ordem por nome).
- `POST /clientes` cria (nome e telefone obrigatórios).
- `PUT /clientes` (id no body) e `PUT /clientes/{id}` atualizam.
- `DELETE /clientes` (id no body) e `DELETE /clientes/{id}` removem.
"""

router = APIRouter()

class ClienteIn(BaseModel):
    nome: str = Field(..., min_length=1)
    telefone: str = Field(..., min_length=1)
    email: Optional[str] = None
    observacao: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "nome": "Maria Souza",
                "telefone": "11999990000",
                "email": "maria@exemplo.com",
                "observacao": "Prefere horários pela manhã"
            }
        }
    }

class ClienteUpdateIn(BaseModel):
    nome: Optional[str] = None
    telefone: Optional[str] = None
    email: Optional[str] = None
    observacao: Optional[str] = None

class ClienteUpdateByBodyIn(ClienteUpdateIn):
    id: int

class IdIn(BaseModel):
    id: int


@router.get("", summary="Listar clientes da empresa")
async def list_clientes(
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> List[dict[str, Any]]:
    res = await db.execute(
        text("SELECT * FROM clientes WHERE empresa_id = :empresa_id ORDER BY nome"),
        {"empresa_id": empresa_id},
    )
    return [dict(r) for r in res.mappings().all()]


@router.post("", status_code=201, summary="Criar cliente")
async def create_cliente(
    payload: ClienteIn,
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    if not payload.nome.strip() or not payload.telefone.strip():
        raise HTTPException(status_code=400, detail="Nome e telefone são obrigatórios")

    res = await db.execute(text("""
        INSERT INTO clientes (empresa_id, nome, telefone, email, observacao)
        VALUES (:empresa_id, :nome, :telefone, :email, :observacao)
        RETURNING *
    """), {"empresa_id": empresa_id, **payload.model_dump()})
    row = res.mappings().first()
    await db.commit()
    return dict(row)


async def _update_cliente(db: AsyncSession, empresa_id: int, cliente_id: int, payload: ClienteUpdateIn) -> dict[str, Any]:
    res = await db.execute(text("""
        UPDATE clientes
        SET nome = :nome, telefone = :telefone, email = :email, observacao = :observacao
        WHERE id = :id AND empresa_id = :empresa_id
        RETURNING *
    """), {
        "id": cliente_id,
        "empresa_id": empresa_id,
        "nome": payload.nome,
        "telefone": payload.telefone,
        "email": payload.email,
        "observacao": payload.observacao,
    })
    row = res.mappings().first()
    if not row:
        raise HTTPException(status_code=404, detail="Cliente não encontrado")
    await db.commit()
    return dict(row)

async def _delete_cliente(db: AsyncSession, empresa_id: int, cliente_id: int) -> dict[str, Any]:
    res = await db.execute(
        text("DELETE FROM clientes WHERE id = :id AND empresa_id = :empresa_id RETURNING id"),
        {"id": cliente_id, "empresa_id": empresa_id},
    )
    if not res.mappings().first():
        raise HTTPException(status_code=404, detail="Cliente não encontrado")
    await db.commit()
    return {"message": "Cliente excluído"}


@router.put("", summary="Atualizar cliente (id no body)")
async def update_cliente_body(
    payload: ClienteUpdateByBodyIn,
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    return await _update_cliente(db, empresa_id, payload.id, payload)

@router.put("/{cliente_id}", summary="Atualizar cliente")
async def update_cliente(
    payload: ClienteUpdateIn,
    cliente_id: int = Path(..., description="ID do cliente"),
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    return await _update_cliente(db, empresa_id, cliente_id, payload)

@router.delete("", summary="Excluir cliente (id no body)")
async def delete_cliente_body(
    payload: IdIn,
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    return await _delete_cliente(db, empresa_id, payload.id)

@router.delete("/{cliente_id}", summary="Excluir cliente")
async def delete_cliente(
    cliente_id: int = Path(..., description="ID do cliente"),
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    return await _delete_cliente(db, empresa_id, cliente_id)
