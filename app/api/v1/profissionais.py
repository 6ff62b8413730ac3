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
Profissionais do tenant.


- `GET /profissionais`, `POST /profissionais`.
- `PUT /profissionais/{id}` (nome/especialidade) e `DELETE /profissionais/{id}`.
"""

router = APIRouter()

class ProfissionalIn(BaseModel):
    nome: str = Field(..., min_length=1)
    especialidade: Optional[str] = None


@router.get("", summary="Listar profissionais")
async def list_profissionais(
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> List[dict[str, Any]]:
    res = await db.execute(
        text("SELECT * FROM profissionais WHERE empresa_id = :empresa_id ORDER BY nome"),
        {"empresa_id": empresa_id},
    )
    return [dict(r) for r in res.mappings().all()]

@router.post("", status_code=201, summary="Criar profissional")
async def create_profissional(
    payload: ProfissionalIn,
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    res = await db.execute(text("""
        INSERT INTO profissionais (empresa_id, nome, especialidade)
        VALUES (:empresa_id, :nome, :especialidade)
        RETURNING *
    """), {"empresa_id": empresa_id, "nome": payload.nome, "especialidade": payload.especialidade})
    row = res.mappings().first()
    await db.commit()
    return dict(row)

@router.put("/{profissional_id}", summary="Atualizar profissional")
async def update_profissional(
    payload: ProfissionalIn,
    profissional_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    res = await db.execute(text("""
        UPDATE profissionais SET nome = :nome, especialidade = :especialidade
        WHERE id = :id AND empresa_id = :empresa_id
        RETURNING *
    """), {"id": profissional_id, "empresa_id": empresa_id, "nome": payload.nome, "especialidade": payload.especialidade})
    row = res.mappings().first()
    if not row:
        raise HTTPException(status_code=404, detail="Profissional não encontrado")
    await db.commit()
    return dict(row)

@router.delete("/{profissional_id}", summary="Excluir profissional")
async def delete_profissional(
    profissional_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    res = await db.execute(
        text("DELETE FROM profissionais WHERE id = :id AND empresa_id = :empresa_id RETURNING id"),
        {"id": profissional_id, "empresa_id": empresa_id},
    )
    if not res.mappings().first():
        raise HTTPException(status_code=404, detail="Profissional não encontrado")
    await db.commit()
    return {"message": "Profissional removido"}
