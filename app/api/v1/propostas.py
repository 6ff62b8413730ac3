# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from datetime import date
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Path, Query
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.api.deps import get_db, get_empresa_id

"""
Propostas comerciais com seus serviços.


- `GET /propostas?limit` lista as mais recentes com `servicos`.
- `POST /propostas` grava proposta + serviços numa transação; serviço inválido -> rollback e 400.
- `PUT /propostas/{id}` substitui os serviços; `DELETE /propostas/{id}` remove (404 se ausente).
"""

log = logging.getLogger("propostas")

router = APIRouter()


class ServicoPropostaIn(BaseModel):
    descricao: Optional[str] = None
    horas: Optional[float] = None
    valorHora: Optional[float] = None
    total: Optional[float] = None
    observacao: Optional[str] = None

class PropostaIn(BaseModel):
    cliente_id: int
    servicos: List[ServicoPropostaIn] = Field(..., min_length=1)
    validade: date
    observacao: Optional[str] = None
    total: Optional[float] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "cliente_id": 7,
                "validade": "2025-12-31",
                "total": 1500.0,
                "servicos": [{"descricao": "Instalação", "horas": 10, "valorHora": 150, "total": 1500}]
            }
        }
    }


class ServicoInvalido(ValueError):
    pass

def _servico_params(proposta_id: int, s: ServicoPropostaIn) -> Dict[str, Any]:
    if not s.descricao or s.horas is None or s.valorHora is None or s.total is None:
        raise ServicoInvalido(s.descricao or "")
    obs = s.observacao.strip() if s.observacao and s.observacao.strip() else None
    return {
        "proposta_id": proposta_id,
        "descricao": s.descricao,
        "horas": s.horas,
        "valor_hora": s.valorHora,
        "total": s.total,
        "obs": obs,
    }

async def _insert_servicos(db: AsyncSession, proposta_id: int, servicos: List[ServicoPropostaIn]) -> None:
    for s in servicos:
        await db.execute(text("""
            INSERT INTO proposta_servicos
                (proposta_id, descricao, horas, valor_hora, total, observacao_servico, observacao)
            VALUES
                (:proposta_id, :descricao, :horas, :valor_hora, :total, :obs, :obs)
        """), _servico_params(proposta_id, s))

def _resumo(servicos: List[ServicoPropostaIn]) -> str:
    return ", ".join(s.descricao or "" for s in servicos)


@router.get("", summary="Listar propostas")
async def list_propostas(
    limit: int = Query(10, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> List[Dict[str, Any]]:
    res = await db.execute(text("""
        SELECT p.*, c.nome AS cliente_nome
        FROM propostas p
        JOIN clientes c ON p.cliente_id = c.id
        WHERE p.empresa_id = :empresa_id
        ORDER BY p.created_at DESC
        LIMIT :limit
    """), {"empresa_id": empresa_id, "limit": limit})
    propostas = [dict(r) for r in res.mappings().all()]

    for p in propostas:
        res = await db.execute(text("""
            SELECT descricao, horas, valor_hora, total, observacao_servico,
                   observacao AS observacao_legacy,
                   COALESCE(observacao_servico, observacao) AS observacao
            FROM proposta_servicos
            WHERE proposta_id = :id
            ORDER BY id ASC
        """), {"id": p["id"]})
        p["servicos"] = [dict(r) for r in res.mappings().all()]
    return propostas


@router.post("", status_code=201, summary="Criar proposta")
async def create_proposta(
    payload: PropostaIn,
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> Dict[str, Any]:
    try:
        res = await db.execute(text("""
            INSERT INTO propostas (empresa_id, cliente_id, validade, observacao, valor, servico)
            VALUES (:empresa_id, :cliente_id, :validade, :observacao, :valor, :servico)
            RETURNING id
        """), {
            "empresa_id": empresa_id,
            "cliente_id": payload.cliente_id,
            "validade": payload.validade,
            "observacao": payload.observacao or None,
            "valor": payload.total,
            "servico": _resumo(payload.servicos),
        })
        proposta_id = res.mappings().first()["id"]
        await _insert_servicos(db, proposta_id, payload.servicos)
        await db.commit()
    except ServicoInvalido:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Serviços com campos inválidos")
    except Exception:
        await db.rollback()
        log.exception("Falha ao criar proposta")
        raise

    return {"message": "Proposta criada com sucesso", "propostaId": proposta_id}


@router.put("/{proposta_id}", summary="Atualizar proposta (substitui serviços)")
async def update_proposta(
    payload: PropostaIn,
    proposta_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> Dict[str, str]:
    try:
        res = await db.execute(text("""
            UPDATE propostas
            SET cliente_id = :cliente_id, validade = :validade, observacao = :observacao,
                valor = :valor, servico = :servico
            WHERE id = :id AND empresa_id = :empresa_id
            RETURNING id
        """), {
            "id": proposta_id,
            "empresa_id": empresa_id,
            "cliente_id": payload.cliente_id,
            "validade": payload.validade,
            "observacao": payload.observacao or None,
            "valor": payload.total,
            "servico": _resumo(payload.servicos),
        })
        if not res.mappings().first():
            await db.rollback()
            raise HTTPException(status_code=404, detail="Proposta não encontrada")
        await db.execute(text("DELETE FROM proposta_servicos WHERE proposta_id = :id"), {"id": proposta_id})
        await _insert_servicos(db, proposta_id, payload.servicos)
        await db.commit()
    except HTTPException:
        raise
    except ServicoInvalido:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Serviços com campos inválidos")
    except Exception:
        await db.rollback()
        log.exception("Falha ao atualizar proposta %s", proposta_id)
        raise

    return {"message": "Proposta atualizada com sucesso"}


@router.delete("/{proposta_id}", summary="Excluir proposta")
async def delete_proposta(
    proposta_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    empresa_id: int = Depends(get_empresa_id),
) -> Dict[str, str]:
    res = await db.execute(
        text("DELETE FROM propostas WHERE id = :id AND empresa_id = :empresa_id RETURNING id"),
        {"id": proposta_id, "empresa_id": empresa_id},
    )
    if not res.mappings().first():
        raise HTTPException(status_code=404, detail="Proposta não encontrada")
    await db.commit()
    return {"message": "Proposta excluída com sucesso"}
