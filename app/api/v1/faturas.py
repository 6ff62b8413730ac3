# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from __future__ import annotations
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_db, get_empresa_id
from app.services.invoicing import invoice_total, item_reference
import logging

"""
Faturas (invoices) do tenant.


- `GET /faturas` lista com nome do cliente (mais recentes primeiro).
- `POST /faturas` cria cabeçalho + itens numa transação e marca o agendamento como faturado.
- `PUT /faturas` registra pagamento (status Pago, forma_pagamento, data_pagamento).
- `POST /faturas/criar` gera fatura a partir de um agendamento.
"""

log = logging.getLogger("faturas")

router = APIRouter()

class FaturaItemIn(BaseModel):
    tipo: Optional[str] = Field(None, description="servico | produto")
    item_id: Optional[int] = None
    servico_id: Optional[int] = None
    produto_id: Optional[int] = None
    quantidade: float = Field(..., gt=0)
    valor: float = Field(..., ge=0)

class FaturaCreateIn(BaseModel):
    cliente_id: int
    agendamento_id: Optional[int] = None
    itens: List[FaturaItemIn] = Field(..., min_length=1)

    model_config = {
        "json_schema_extra": {
            "example": {
                "cliente_id": 12,
                "agendamento_id": 301,
                "itens": [
                    {"tipo": "servico", "item_id": 4, "quantidade": 1, "valor": 80.0},
                    {"tipo": "produto", "item_id": 9, "quantidade": 2, "valor": 15.5}
                ]
            }
        }
    }

class FaturaPagamentoIn(BaseModel):
    id: int
    forma_pagamento: str = Field(..., min_length=1)

class FaturaFromAgendamentoIn(BaseModel):
    agendamento_id: int


@router.get("", summary="Listar faturas")
async def list_faturas(
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> List[dict[str, Any]]:
    res = await db.execute(text("""
        SELECT f.*, c.nome AS cliente
        FROM faturas f
        JOIN clientes c ON f.cliente_id = c.id
        WHERE f.empresa_id = :empresa_id
        ORDER BY f.created_at DESC
    """), {"empresa_id": empresa_id})
    return [dict(r) for r in res.mappings().all()]


@router.post("", status_code=201, summary="Criar fatura com itens")
async def create_fatura(
    payload: FaturaCreateIn,
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    itens = [i.model_dump() for i in payload.itens]
    total = invoice_total(itens)

    try:
        res = await db.execute(text("""
            INSERT INTO faturas (empresa_id, cliente_id, agendamento_id, total, status, data)
            VALUES (:empresa_id, :cliente_id, :agendamento_id, :total, 'Aberto', CURRENT_DATE)
            RETURNING id
        """), {
            "empresa_id": empresa_id,
            "cliente_id": payload.cliente_id,
            "agendamento_id": payload.agendamento_id,
            "total": total,
        })
        fatura_id = res.mappings().first()["id"]

        for item in itens:
            ref = item_reference(item)
            if ref is None:
                log.warning("Item com tipo inválido ignorado: %s", item.get("tipo"))
                continue
            column, ref_id = ref
            # coluna vem de ITEM_TIPOS (whitelist)
            await db.execute(text(f"""
                INSERT INTO fatura_itens (fatura_id, {column}, quantidade, valor)
                VALUES (:fatura_id, :ref_id, :quantidade, :valor)
            """), {
                "fatura_id": fatura_id,
                "ref_id": ref_id,
                "quantidade": item["quantidade"],
                "valor": item["valor"],
            })

        if payload.agendamento_id:
            await db.execute(text("""
                UPDATE agendamentos SET status = 'faturado'
                WHERE id = :agendamento_id AND empresa_id = :empresa_id
            """), {"agendamento_id": payload.agendamento_id, "empresa_id": empresa_id})

        await db.commit()
    except Exception:
        await db.rollback()
        log.exception("Falha ao criar fatura (cliente_id=%s)", payload.cliente_id)
        raise

    return {"message": "Fatura criada com sucesso", "id": fatura_id, "total": float(total)}


@router.put("", summary="Registrar pagamento da fatura")
async def pay_fatura(
    payload: FaturaPagamentoIn,
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    res = await db.execute(text("""
        UPDATE faturas
        SET status = 'Pago', forma_pagamento = :forma_pagamento, data_pagamento = NOW()
        WHERE id = :id AND empresa_id = :empresa_id
        RETURNING id, status, forma_pagamento, data_pagamento
    """), {"id": payload.id, "forma_pagamento": payload.forma_pagamento, "empresa_id": empresa_id})
    row = res.mappings().first()
    if not row:
        raise HTTPException(status_code=404, detail="Fatura não encontrada")
    await db.commit()
    return {"message": "Fatura paga com sucesso", "fatura": dict(row)}


@router.post("/criar", status_code=201, summary="Gerar fatura a partir de agendamento")
async def create_fatura_from_agendamento(
    payload: FaturaFromAgendamentoIn,
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    res = await db.execute(text("""
        SELECT a.id, a.cliente_id, a.servico, a.valor, a.data_inicio, c.nome AS cliente_nome
        FROM agendamentos a
        LEFT JOIN clientes c ON a.cliente_id = c.id
        WHERE a.id = :id AND a.empresa_id = :empresa_id
    """), {"id": payload.agendamento_id, "empresa_id": empresa_id})
    ag = res.mappings().first()
    if not ag:
        raise HTTPException(status_code=404, detail="Agendamento não encontrado")

    res = await db.execute(text("""
        INSERT INTO faturas (empresa_id, cliente_id, agendamento_id, cliente_nome, data, total, status, pagamento)
        VALUES (:empresa_id, :cliente_id, :agendamento_id, :cliente_nome, :data, :total, 'Aberto', '-')
        RETURNING *
    """), {
        "empresa_id": empresa_id,
        "cliente_id": ag["cliente_id"],
        "agendamento_id": ag["id"],
        "cliente_nome": ag["cliente_nome"],
        "data": ag["data_inicio"],
        "total": ag["valor"] or 0,
    })
    fatura = res.mappings().first()
    await db.commit()
    return {"message": "Fatura gerada com sucesso", "fatura": dict(fatura)}
