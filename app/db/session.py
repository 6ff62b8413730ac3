# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from app.core.config import settings

"""
Sessões assíncronas do PostgreSQL via SQLAlchemy 2.0.


- Dois bancos: principal (`DATABASE_URL`) e vendas (`DATABASE_URL_VENDEDORES`).
- Garante URL `postgresql+asyncpg://` em ambos.
- Expõe `SessionLocal` e `SalesSessionLocal` (async_sessionmaker) para injeção via deps.
"""

def _make_engine(url: str, name: str) -> AsyncEngine:
    if not url.startswith("postgresql+asyncpg://"):
        raise RuntimeError(f"{name} deve usar o prefixo 'postgresql+asyncpg://' para driver assíncrono.")
    return create_async_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        echo=False,
        future=True,
    )

engine = _make_engine(settings.DATABASE_URL, "DATABASE_URL")
sales_engine = _make_engine(settings.DATABASE_URL_VENDEDORES, "DATABASE_URL_VENDEDORES")

SessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
    autocommit=False,
)

SalesSessionLocal = async_sessionmaker(
    bind=sales_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
    autocommit=False,
)
