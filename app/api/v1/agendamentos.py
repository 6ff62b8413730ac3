# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from datetime import date
from typing import Any, List
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_db, get_empresa_id
from app.services.agenda import weekday_name, free_slots, hhmm

"""
Disponibilidade e pendências da agenda.


- `GET /agendamentos_horarios` calcula horários livres (duração do serviço × expediente do profissional).
- `GET /agendamentos/pendentes` lista agendamentos ainda não faturados/cancelados.
"""

router = APIRouter()

DEFAULT_DURACAO_MINUTOS = 30


@router.get("/agendamentos_horarios", summary="Horários livres de um profissional numa data")
async def horarios_disponiveis(
    profissional_id: int = Query(...),
    servico_nome: str = Query(..., min_length=1),
    data: date = Query(..., description="YYYY-MM-DD"),
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    res = await db.execute(text("""
        SELECT duracao_minutos FROM servicos
        WHERE nome = :nome AND empresa_id = :empresa_id
        LIMIT 1
    """), {"nome": servico_nome, "empresa_id": empresa_id})
    servico = res.mappings().first()
    if not servico:
        raise HTTPException(status_code=404, detail="Serviço não encontrado")
    duracao = servico["duracao_minutos"] or DEFAULT_DURACAO_MINUTOS

    dia_semana = weekday_name(data)
    res = await db.execute(text("""
        SELECT abertura, fechamento FROM horarios_estabelecimento
        WHERE profissional_id = :profissional_id AND dia_semana = :dia_semana AND empresa_id = :empresa_id
        LIMIT 1
    """), {"profissional_id": profissional_id, "dia_semana": dia_semana, "empresa_id": empresa_id})
    horario = res.mappings().first()
    if not horario:
        raise HTTPException(status_code=404, detail="Horários não encontrados para o profissional neste dia")

    res = await db.execute(text("""
        SELECT data_inicio FROM agendamentos
        WHERE profissional_id = :profissional_id AND DATE(data_inicio) = :data
    """), {"profissional_id": profissional_id, "data": data})
    ocupados = [hhmm(r["data_inicio"]) for r in res.mappings().all() if r["data_inicio"]]

    return {
        "dia_semana": dia_semana,
        "duracao_minutos": duracao,
        "horarios": free_slots(horario["abertura"], horario["fechamento"], duracao, ocupados),
    }


@router.get("/agendamentos/pendentes", summary="Agendamentos pendentes de faturamento")
async def agendamentos_pendentes(
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> List[dict[str, Any]]:
    res = await db.execute(text("""
        SELECT a.id, a.titulo, a.data_inicio, c.nome AS cliente, c.id AS cliente_id
        FROM agendamentos a
        JOIN clientes c ON a.cliente_id = c.id
        WHERE a.empresa_id = :empresa_id AND (a.status IS NULL OR a.status = 'agendado')
        ORDER BY a.data_inicio ASC
    """), {"empresa_id": empresa_id})
    return [dict(r) for r in res.mappings().all()]
