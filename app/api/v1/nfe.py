# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from typing import Any, Dict, List
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.api.deps import get_sales_db
from app.services.nfe_parser import NFeParseError, parse_nfe

"""
Notas fiscais eletrônicas importadas (banco de vendas).


- `GET /nfe?q&limit`: busca por chave, número, emitente ou destinatário (limit 1..200).
- `GET /nfe/{id}`: documento, itens e pagamentos.
- `POST /nfe/import`: grava o XML; reimportar a mesma chave substitui itens e pagamentos.
"""

log = logging.getLogger("nfe")

router = APIRouter()

_ITEM_COLUMNS = (
    "n_item", "cprod", "xprod", "ncm", "cfop", "cest", "ucom", "qcom", "vuncom", "vprod", "xped",
    "vtottrib_item",
    "icms_tipo", "icms_cst", "icms_csosn", "icms_orig", "icms_modbc", "icms_vbc", "icms_picms", "icms_vicms",
    "pis_tipo", "pis_cst", "pis_vbc", "pis_ppis", "pis_vpis",
    "cofins_tipo", "cofins_cst", "cofins_vbc", "cofins_pcofins", "cofins_vcofins",
    "infadprod",
)
_PAYMENT_COLUMNS = ("tpag", "vpag", "indpag", "card_cnpj", "card_tband", "card_tpintegra", "card_caut")


class NFeImportIn(BaseModel):
    xml: str = Field(..., min_length=1)


def _insert(table: str, columns) -> str:
    return f"""
        INSERT INTO {table} (nfe_id, {', '.join(columns)})
        VALUES (:nfe_id, {', '.join(':' + c for c in columns)})
    """

def _upsert_document(columns) -> str:
    updates = ", ".join(f"{c} = EXCLUDED.{c}" for c in columns if c != "chave_nfe")
    return f"""
        INSERT INTO nfe_document ({', '.join(columns)})
        VALUES ({', '.join(':' + c for c in columns)})
        ON CONFLICT (chave_nfe) DO UPDATE SET {updates}
        RETURNING id
    """


@router.get("", summary="Buscar NF-e")
async def list_nfe(
    q: str = Query(""),
    limit: str = Query("50"),
    db: AsyncSession = Depends(get_sales_db),
) -> Dict[str, List[Dict[str, Any]]]:
    try:
        lim = int(limit)
    except ValueError:
        lim = 50
    lim = min(max(lim or 50, 1), 200)
    query = q.strip()
    res = await db.execute(text("""
        SELECT id, chave_nfe, n_nf, serie, dh_emi, xnome_emit, cnpj_emit, xnome_dest, cnpj_dest, vnf, created_at
        FROM nfe_document
        WHERE (:q = '' OR chave_nfe ILIKE :like OR n_nf ILIKE :like
               OR xnome_emit ILIKE :like OR xnome_dest ILIKE :like)
        ORDER BY created_at DESC
        LIMIT :limit
    """), {"q": query, "like": f"%{query}%", "limit": lim})
    return {"rows": [dict(r) for r in res.mappings().all()]}


@router.get("/{nfe_id}", summary="Detalhe da NF-e")
async def get_nfe(nfe_id: int, db: AsyncSession = Depends(get_sales_db)) -> Dict[str, Any]:
    res = await db.execute(text("""
        SELECT id, chave_nfe, n_nf, serie, dh_emi, vnf, cnpj_emit, xnome_emit, cnpj_dest, xnome_dest,
               created_at, COALESCE(status_erp, 2) AS status_erp
        FROM nfe_document
        WHERE id = :id
    """), {"id": nfe_id})
    document = res.mappings().first()
    if not document:
        raise HTTPException(status_code=404, detail="Documento não encontrado")

    items = await db.execute(text("""
        SELECT id, nfe_id, n_item, cprod, xprod, ncm, cfop, ucom, qcom, vuncom, vprod
        FROM nfe_item WHERE nfe_id = :id ORDER BY n_item
    """), {"id": nfe_id})
    payments = await db.execute(text("""
        SELECT id, nfe_id, tpag, vpag, card_cnpj, card_tband
        FROM nfe_payment WHERE nfe_id = :id ORDER BY id
    """), {"id": nfe_id})
    return {
        "document": dict(document),
        "items": [dict(r) for r in items.mappings().all()],
        "payments": [dict(r) for r in payments.mappings().all()],
    }


@router.post("/import", summary="Importar XML da NF-e")
async def import_nfe(payload: NFeImportIn, db: AsyncSession = Depends(get_sales_db)) -> Dict[str, Any]:
    try:
        nfe = parse_nfe(payload.xml)
    except NFeParseError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    try:
        res = await db.execute(text(_upsert_document(tuple(nfe.document))), nfe.document)
        nfe_id = res.scalar_one()
        await db.execute(text("DELETE FROM nfe_item WHERE nfe_id = :id"), {"id": nfe_id})
        await db.execute(text("DELETE FROM nfe_payment WHERE nfe_id = :id"), {"id": nfe_id})
        if nfe.items:
            await db.execute(text(_insert("nfe_item", _ITEM_COLUMNS)),
                             [{"nfe_id": nfe_id, **item} for item in nfe.items])
        if nfe.payments:
            await db.execute(text(_insert("nfe_payment", _PAYMENT_COLUMNS)),
                             [{"nfe_id": nfe_id, **p} for p in nfe.payments])
        await db.commit()
    except Exception:
        await db.rollback()
        log.exception("Falha ao importar NF-e %s", nfe.chave)
        raise

    log.info("NF-e %s importada (id=%s, %s itens)", nfe.chave, nfe_id, len(nfe.items))
    return {
        "message": "XML importado com sucesso",
        "nfe_id": nfe_id,
        "chave_nfe": nfe.chave,
        "itens": len(nfe.items),
        "pagamentos": len(nfe.payments),
    }
