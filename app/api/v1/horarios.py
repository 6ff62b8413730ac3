# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Path, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_db, get_empresa_id
from app.services.agenda import truncate_dia_semana

"""
Horários de atendimento por profissional (`horarios_estabelecimento`).


- `router_profissionais`: `/profissionais_horarios` GET/POST e `/{id}` PUT/DELETE.
- `router_horarios`: `/horarios` (GET/POST de um dia) e `PUT /horarios/update` (id no body).
- Campos de horário vazios ("") viram NULL; dia_semana é truncado em 15 caracteres.
"""

router_profissionais = APIRouter()
router_horarios = APIRouter()

def _empty_to_none(value: Any) -> Any:
    return None if value == "" else value

class _HorarioBase(BaseModel):
    profissional_id: int
    abertura: str = Field(..., min_length=1, examples=["08:00"])
    fechamento: str = Field(..., min_length=1, examples=["18:00"])
    inicio_almoco: Optional[str] = None
    fim_almoco: Optional[str] = None
    intervalo_inicio: Optional[str] = None
    intervalo_fim: Optional[str] = None

    @field_validator("inicio_almoco", "fim_almoco", "intervalo_inicio", "intervalo_fim", mode="before")
    @classmethod
    def _blank_as_null(cls, v):
        return _empty_to_none(v)

class HorarioMultiIn(_HorarioBase):
    dia_semana: List[str] = Field(..., min_length=1)

    model_config = {
        "json_schema_extra": {
            "example": {
                "profissional_id": 3,
                "dia_semana": ["Segunda-feira", "Quarta-feira"],
                "abertura": "08:00",
                "inicio_almoco": "12:00",
                "fim_almoco": "13:00",
                "fechamento": "18:00"
            }
        }
    }

class HorarioIn(_HorarioBase):
    dia_semana: str = Field(..., min_length=1)

class HorarioUpdateByBodyIn(HorarioIn):
    id: int


_INSERT_SQL = """
    INSERT INTO horarios_estabelecimento
        (empresa_id, profissional_id, dia_semana, abertura, inicio_almoco, fim_almoco,
         intervalo_inicio, intervalo_fim, fechamento)
    VALUES
        (:empresa_id, :profissional_id, :dia_semana, :abertura, :inicio_almoco, :fim_almoco,
         :intervalo_inicio, :intervalo_fim, :fechamento)
    RETURNING *
"""

_UPDATE_SQL = """
    UPDATE horarios_estabelecimento SET
        profissional_id = :profissional_id,
        dia_semana = :dia_semana,
        abertura = :abertura,
        inicio_almoco = :inicio_almoco,
        fim_almoco = :fim_almoco,
        intervalo_inicio = :intervalo_inicio,
        intervalo_fim = :intervalo_fim,
        fechamento = :fechamento
    WHERE id = :id AND empresa_id = :empresa_id
    RETURNING *
"""

_LIST_SQL = """
    SELECT h.id, h.profissional_id, p.nome AS profissional_nome, h.dia_semana, h.abertura,
           h.inicio_almoco, h.fim_almoco, h.intervalo_inicio, h.intervalo_fim, h.fechamento
    FROM horarios_estabelecimento h
    LEFT JOIN profissionais p ON p.id = h.profissional_id
    WHERE h.empresa_id = :empresa_id
    ORDER BY p.nome, h.dia_semana
"""

def _params(payload: _HorarioBase, empresa_id: int, dia: str) -> dict[str, Any]:
    data = payload.model_dump(exclude={"dia_semana", "id"})
    return {**data, "empresa_id": empresa_id, "dia_semana": truncate_dia_semana(dia)}

async def _update(db: AsyncSession, empresa_id: int, horario_id: int, payload: HorarioIn) -> dict[str, Any]:
    res = await db.execute(text(_UPDATE_SQL), {**_params(payload, empresa_id, payload.dia_semana), "id": horario_id})
    row = res.mappings().first()
    if not row:
        raise HTTPException(status_code=404, detail="Horário não encontrado ou não pertence à empresa")
    await db.commit()
    return dict(row)


@router_profissionais.get("", summary="Listar horários dos profissionais")
async def list_horarios(
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> List[dict[str, Any]]:
    res = await db.execute(text(_LIST_SQL), {"empresa_id": empresa_id})
    return [dict(r) for r in res.mappings().all()]

@router_profissionais.post("", status_code=201, summary="Criar horários (um por dia da semana)")
async def create_horarios(
    payload: HorarioMultiIn,
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> List[dict[str, Any]]:
    inserted: List[dict[str, Any]] = []
    for dia in payload.dia_semana:
        res = await db.execute(text(_INSERT_SQL), _params(payload, empresa_id, dia))
        inserted.append(dict(res.mappings().first()))
    await db.commit()
    return inserted

@router_profissionais.put("/{horario_id}", summary="Atualizar horário")
async def update_horario(
    payload: HorarioIn,
    horario_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    return await _update(db, empresa_id, horario_id, payload)

@router_profissionais.delete("/{horario_id}", summary="Excluir horário")
async def delete_horario(
    horario_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    res = await db.execute(
        text("DELETE FROM horarios_estabelecimento WHERE id = :id AND empresa_id = :empresa_id RETURNING id"),
        {"id": horario_id, "empresa_id": empresa_id},
    )
    if not res.mappings().first():
        raise HTTPException(status_code=404, detail="Horário não encontrado ou não pertence à empresa")
    await db.commit()
    return {"message": "Horário removido com sucesso"}


@router_horarios.get("", summary="Listar horários (atalho)")
async def list_horarios_simple(
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> List[dict[str, Any]]:
    res = await db.execute(text(_LIST_SQL), {"empresa_id": empresa_id})
    return [dict(r) for r in res.mappings().all()]

@router_horarios.post("", status_code=201, summary="Cadastrar horário de um dia")
async def create_horario_simple(
    payload: HorarioIn,
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    res = await db.execute(text(_INSERT_SQL), _params(payload, empresa_id, payload.dia_semana))
    row = res.mappings().first()
    await db.commit()
    return {"message": "Horário cadastrado com sucesso", "horario": dict(row)}

@router_horarios.api_route("/update", methods=["PUT", "POST"], summary="Atualizar horário (id no body)")
async def update_horario_body(
    payload: HorarioUpdateByBodyIn,
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> dict[str, Any]:
    await _update(db, empresa_id, payload.id, payload)
    return {"message": "Horário atualizado com sucesso"}
