# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from __future__ import annotations
from datetime import datetime, timedelta
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_db, get_current_user, get_empresa_id
from app.clients.automation import notify_booking, AutomationHttpError
import logging

"""
Agenda (agendamentos) exposta como calendário.


- `GET /calendar/list` eventos futuros do banco com flag `ja_faturado`.
- `POST /calendar/importar` importa evento externo (dedupe por google_event_id).
- `POST /calendar/reservar` cria reserva de 60 min e notifica o webhook de automação.
- `POST /calendar/completar` completa dados de um agendamento existente.
"""

log = logging.getLogger("calendar")

router = APIRouter()

RESERVA_DURACAO = timedelta(minutes=60)

class ImportarIn(BaseModel):
    title: str = Field(..., min_length=1)
    start: datetime
    end: Optional[datetime] = None
    gcal_event_id: Optional[str] = None
    nome: Optional[str] = None
    telefone: Optional[str] = None
    servico: Optional[str] = None
    profissional_id: Optional[int] = None
    cliente_id: Optional[int] = None
    obs: Optional[str] = None

class ReservarIn(BaseModel):
    cliente: int = Field(..., description="ID do cliente")
    nome: str = Field(..., min_length=1)
    telefone: str = Field(..., min_length=1)
    start: datetime
    servico: str = Field(..., min_length=1)
    profissional: int = Field(..., description="ID do profissional")
    obs: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "cliente": 12,
                "nome": "Maria Souza",
                "telefone": "11999990000",
                "start": "2025-11-03T14:00:00-03:00",
                "servico": "Corte",
                "profissional": 3,
                "obs": "Primeira visita"
            }
        }
    }

class CompletarIn(BaseModel):
    id: Any
    cliente_id: Optional[int] = None
    servico: Optional[str] = None
    profissional_id: Optional[int] = None
    valor: Optional[float] = None
    obs: Optional[str] = None


def _event_from_row(a: dict[str, Any]) -> dict[str, Any]:
    nome = a.get("cliente_nome") or a.get("cliente_nome_ref")
    return {
        "id": a["id"],
        "calendar_id": f"db-{a['id']}",
        "title": a.get("titulo") or f"{a.get('servico') or 'Serviço'} - {nome or ''}",
        "start": a.get("data_inicio"),
        "end": a.get("data_fim"),
        "source": "db",
        "importado": True,
        "servico": a.get("servico"),
        "profissional": a.get("profissional_nome") or a.get("profissional_id"),
        "nome": nome,
        "telefone": a.get("cliente_telefone"),
        "obs": a.get("obs"),
        "gcal_event_id": a.get("google_event_id"),
        "ja_faturado": bool(a.get("ja_faturado")),
    }


@router.get("/list", summary="Eventos futuros da agenda")
async def list_events(
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> List[dict[str, Any]]:
    res = await db.execute(text("""
        SELECT
            a.id, a.titulo, a.data_inicio, a.data_fim, a.servico, a.profissional_id, a.cliente_id, a.obs,
            a.nome AS cliente_nome, a.telefone AS cliente_telefone, a.google_event_id,
            p.nome AS profissional_nome, c.nome AS cliente_nome_ref,
            (f.id IS NOT NULL) AS ja_faturado
        FROM agendamentos a
        LEFT JOIN profissionais p ON a.profissional_id = p.id
        LEFT JOIN clientes c ON a.cliente_id = c.id
        LEFT JOIN faturas f ON f.agendamento_id = a.id
        WHERE a.empresa_id = :empresa_id AND a.data_inicio >= NOW()
        ORDER BY a.data_inicio ASC
        LIMIT 100
    """), {"empresa_id": empresa_id})
    return [_event_from_row(dict(r)) for r in res.mappings().all()]


@router.post("/importar", status_code=201, summary="Importar evento externo")
async def importar_evento(
    payload: ImportarIn,
    db: AsyncSession = Depends(get_db),
    user: dict[str, Any] = Depends(get_current_user),
    empresa_id: int = Depends(get_empresa_id),
):
    if payload.gcal_event_id:
        res = await db.execute(
            text("SELECT id FROM agendamentos WHERE google_event_id = :gid AND empresa_id = :empresa_id"),
            {"gid": payload.gcal_event_id, "empresa_id": empresa_id},
        )
        existing = res.mappings().first()
        if existing:
            return JSONResponse(
                status_code=200,
                content={"message": "Evento já foi importado anteriormente.", "agendamento_id": existing["id"]},
            )

    res = await db.execute(text("""
        INSERT INTO agendamentos
            (empresa_id, usuario_id, titulo, data_inicio, data_fim,
             cliente_id, servico, profissional_id, nome, telefone, obs, google_event_id, status)
        VALUES
            (:empresa_id, :usuario_id, :titulo, :inicio, :fim,
             :cliente_id, :servico, :profissional_id, :nome, :telefone, :obs, :gid, 'agendado')
        RETURNING id, titulo, data_inicio, data_fim
    """), {
        "empresa_id": empresa_id,
        "usuario_id": user["id"],
        "titulo": payload.title,
        "inicio": payload.start,
        "fim": payload.end or payload.start,
        "cliente_id": payload.cliente_id,
        "servico": payload.servico,
        "profissional_id": payload.profissional_id,
        "nome": payload.nome,
        "telefone": payload.telefone,
        "obs": payload.obs,
        "gid": payload.gcal_event_id,
    })
    row = res.mappings().first()
    await db.commit()
    return {"message": "Evento importado e salvo no sistema!", "agendamento": dict(row)}


@router.post("/reservar", status_code=201, summary="Reservar horário")
async def reservar(
    payload: ReservarIn,
    db: AsyncSession = Depends(get_db),
    user: dict[str, Any] = Depends(get_current_user),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    inicio = payload.start
    fim = inicio + RESERVA_DURACAO
    titulo = f"{payload.servico} - {payload.nome}"
    descricao = (
        f"Nome: {payload.nome}\nTelefone: {payload.telefone}\nServiço: {payload.servico}\n"
        f"Profissional: {payload.profissional}\nObs: {payload.obs or ''}"
    )

    res = await db.execute(text("""
        INSERT INTO agendamentos
            (empresa_id, usuario_id, cliente_id, titulo, descricao, data_inicio, data_fim,
             servico, profissional_id, telefone, nome, obs, status)
        VALUES
            (:empresa_id, :usuario_id, :cliente_id, :titulo, :descricao, :inicio, :fim,
             :servico, :profissional_id, :telefone, :nome, :obs, 'agendado')
        RETURNING id
    """), {
        "empresa_id": empresa_id,
        "usuario_id": user["id"],
        "cliente_id": payload.cliente,
        "titulo": titulo,
        "descricao": descricao,
        "inicio": inicio,
        "fim": fim,
        "servico": payload.servico,
        "profissional_id": payload.profissional,
        "telefone": payload.telefone,
        "nome": payload.nome,
        "obs": payload.obs,
    })
    agendamento_id = res.mappings().first()["id"]
    await db.commit()

    try:
        await notify_booking({
            "cliente_id": payload.cliente,
            "nome": payload.nome,
            "telefone": payload.telefone,
            "servico": payload.servico,
            "profissional": payload.profissional,
            "start": inicio.isoformat(),
            "end": fim.isoformat(),
            "obs": payload.obs,
        })
    except AutomationHttpError:
        # reserva já gravada; a notificação é secundária
        log.warning("Falha ao notificar reserva %s", agendamento_id, exc_info=True)

    return {"message": "Agendamento criado com sucesso!", "id": agendamento_id}


@router.post("/completar", summary="Completar dados do agendamento")
async def completar(
    payload: CompletarIn,
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    try:
        agendamento_id = int(payload.id)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="ID inválido do agendamento")

    res = await db.execute(text("""
        UPDATE agendamentos
        SET cliente_id = :cliente_id, servico = :servico, profissional_id = :profissional_id,
            valor = :valor, obs = :obs
        WHERE id = :id AND empresa_id = :empresa_id
        RETURNING id
    """), {
        "id": agendamento_id,
        "empresa_id": empresa_id,
        "cliente_id": payload.cliente_id,
        "servico": payload.servico or None,
        "profissional_id": payload.profissional_id,
        "valor": payload.valor,
        "obs": payload.obs or None,
    })
    if not res.mappings().first():
        raise HTTPException(status_code=404, detail="Agendamento não encontrado")
    await db.commit()
    return {"message": "Informações atualizadas com sucesso!"}
