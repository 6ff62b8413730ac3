# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from typing import Any
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_db, get_empresa_id

"""
Dados da empresa do usuário autenticado (`GET /empresa`).
"""

router = APIRouter()

@router.get("", summary="Empresa do usuário")
async def get_empresa(
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    res = await db.execute(text("SELECT * FROM empresa WHERE id = :id"), {"id": empresa_id})
    row = res.mappings().first()
    if not row:
        raise HTTPException(status_code=404, detail="Empresa não encontrada")
    return dict(row)
