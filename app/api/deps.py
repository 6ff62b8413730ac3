# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from typing import Any, AsyncGenerator, Optional
from fastapi import Depends, HTTPException, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import settings
from app.db.session import SessionLocal, SalesSessionLocal
from app.services.order_store import OrderStore
from app.clients.pagseguro import PagSeguroClient
from app.clients.mercadopago import MercadoPagoClient

"""
Dependências reutilizáveis da API.


- `get_db()` / `get_sales_db()` injetam `AsyncSession` do banco principal e do banco de vendas.
- `get_current_email()` lê o e-mail autenticado do header confiável (401 se ausente).
- `get_current_user()` / `get_empresa_id()` resolvem o usuário e o tenant (empresa_id).
- `require_admin()` bloqueia quem não é admin (403).
- `get_order_store()` entrega o store de pedidos pertencente à aplicação.
- `get_pagseguro()` / `get_mercadopago()` criam os clients dos gateways (sobrescritos nos testes).
"""

async def get_db() -> AsyncGenerator:
    async with SessionLocal() as session:
        yield session

async def get_sales_db() -> AsyncGenerator:
    async with SalesSessionLocal() as session:
        yield session


def get_current_email(request: Request) -> str:
    email = (request.headers.get(settings.AUTH_EMAIL_HEADER) or "").strip()
    if not email:
        raise HTTPException(status_code=401, detail="Não autenticado")
    return email

async def get_current_user(
    email: str = Depends(get_current_email),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    res = await db.execute(
        text("SELECT id, nome, email, empresa_id, role FROM usuarios WHERE email = :email"),
        {"email": email},
    )
    row = res.mappings().first()
    if not row:
        raise HTTPException(status_code=404, detail="Usuário não encontrado")
    return dict(row)

async def get_empresa_id(user: dict[str, Any] = Depends(get_current_user)) -> int:
    empresa_id: Optional[int] = user.get("empresa_id")
    if empresa_id is None:
        raise HTTPException(status_code=400, detail="Usuário não possui empresa vinculada.")
    return empresa_id

async def require_admin(user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Sem permissão")
    return user


def get_order_store(request: Request) -> OrderStore:
    return request.app.state.order_store

def get_pagseguro() -> PagSeguroClient:
    return PagSeguroClient()

def get_mercadopago() -> MercadoPagoClient:
    return MercadoPagoClient()
