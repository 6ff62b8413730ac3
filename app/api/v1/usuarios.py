# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from datetime import date
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_current_user, get_db, require_admin

"""
Usuários e permissões por módulo.


- `GET /usuarios/acessos`: flags do usuário logado (cria a linha padrão se não existir).
- `PUT /usuarios/acessos`: altera um módulo de outro usuário (só admin; módulo da whitelist).
- `GET /usuarios/listar`: admin vê todos; demais só a própria empresa.
- `/admin/usuarios`: CRUD de usuários, só admin.
"""

router = APIRouter()
router_admin = APIRouter()

MODULOS = ("dashboard", "inventario", "produtos", "compras", "comercial", "servicos", "buckman")
_FLAGS = ", ".join(MODULOS)


class AcessoUpdateIn(BaseModel):
    usuario_id: int
    modulo: str = Field(..., min_length=1)
    valor: bool

class UsuarioIn(BaseModel):
    nome: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    empresa: Optional[str] = None
    role: Optional[str] = None

class UsuarioUpdateIn(UsuarioIn):
    id: int
    expiracao: Optional[date] = None

class IdIn(BaseModel):
    id: int


@router.get("/acessos", summary="Acessos do usuário logado")
async def get_acessos(
    db: AsyncSession = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    res = await db.execute(
        text(f"SELECT {_FLAGS} FROM acessos_usuario WHERE usuario_id = :uid"),
        {"uid": user["id"]},
    )
    row = res.mappings().first()
    if row:
        return dict(row)
    res = await db.execute(
        text(f"INSERT INTO acessos_usuario (usuario_id) VALUES (:uid) RETURNING {_FLAGS}"),
        {"uid": user["id"]},
    )
    row = res.mappings().first()
    await db.commit()
    return dict(row)


@router.put("/acessos", summary="Alterar acesso de um módulo")
async def update_acesso(
    payload: AcessoUpdateIn,
    db: AsyncSession = Depends(get_db),
    _admin: Dict[str, Any] = Depends(require_admin),
) -> Dict[str, str]:
    if payload.modulo not in MODULOS:
        raise HTTPException(status_code=400, detail="Módulo inválido")
    await db.execute(
        text("INSERT INTO acessos_usuario (usuario_id) VALUES (:uid) ON CONFLICT (usuario_id) DO NOTHING"),
        {"uid": payload.usuario_id},
    )
    # coluna vem da whitelist MODULOS
    await db.execute(
        text(f"UPDATE acessos_usuario SET {payload.modulo} = :valor WHERE usuario_id = :uid"),
        {"valor": payload.valor, "uid": payload.usuario_id},
    )
    await db.commit()
    return {"message": "Acesso atualizado!"}


@router.get("/listar", summary="Listar usuários com acessos")
async def listar_usuarios(
    db: AsyncSession = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    if user.get("role") == "admin":
        res = await db.execute(text(f"""
            SELECT u.id, u.nome, u.email, u.role, u.empresa_id, {", ".join("a." + m for m in MODULOS)}
            FROM usuarios u
            LEFT JOIN acessos_usuario a ON a.usuario_id = u.id
            ORDER BY u.nome
        """))
    else:
        res = await db.execute(text(f"""
            SELECT u.id, u.nome, u.email, u.role, {", ".join("a." + m for m in MODULOS)}
            FROM usuarios u
            LEFT JOIN acessos_usuario a ON a.usuario_id = u.id
            WHERE u.empresa_id = :empresa_id
            ORDER BY u.nome
        """), {"empresa_id": user.get("empresa_id")})
    return [dict(r) for r in res.mappings().all()]


@router_admin.get("", summary="Todos os usuários")
async def admin_list(
    db: AsyncSession = Depends(get_db),
    _admin: Dict[str, Any] = Depends(require_admin),
) -> List[Dict[str, Any]]:
    res = await db.execute(text(
        "SELECT id, nome, email, empresa, role, expiracao, created_at FROM usuarios ORDER BY nome"
    ))
    return [dict(r) for r in res.mappings().all()]

@router_admin.post("", status_code=201, summary="Criar usuário")
async def admin_create(
    payload: UsuarioIn,
    db: AsyncSession = Depends(get_db),
    _admin: Dict[str, Any] = Depends(require_admin),
) -> Dict[str, Any]:
    res = await db.execute(text("""
        INSERT INTO usuarios (nome, email, empresa, role)
        VALUES (:nome, :email, :empresa, :role)
        RETURNING *
    """), {**payload.model_dump(), "role": payload.role or "user"})
    row = res.mappings().first()
    await db.commit()
    return dict(row)

@router_admin.put("", summary="Atualizar usuário")
async def admin_update(
    payload: UsuarioUpdateIn,
    db: AsyncSession = Depends(get_db),
    _admin: Dict[str, Any] = Depends(require_admin),
) -> Dict[str, Any]:
    res = await db.execute(text("""
        UPDATE usuarios
        SET nome = :nome, email = :email, empresa = :empresa, role = :role, expiracao = :expiracao
        WHERE id = :id
        RETURNING *
    """), payload.model_dump())
    row = res.mappings().first()
    if not row:
        raise HTTPException(status_code=404, detail="Usuário não encontrado")
    await db.commit()
    return dict(row)

@router_admin.delete("", summary="Excluir usuário")
async def admin_delete(
    payload: IdIn,
    db: AsyncSession = Depends(get_db),
    _admin: Dict[str, Any] = Depends(require_admin),
) -> Dict[str, str]:
    res = await db.execute(text("DELETE FROM usuarios WHERE id = :id RETURNING id"), {"id": payload.id})
    if not res.mappings().first():
        raise HTTPException(status_code=404, detail="Usuário não encontrado")
    await db.commit()
    return {"message": "Usuário excluído"}
