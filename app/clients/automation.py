# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from __future__ import annotations
from typing import Any, Dict
import httpx
import logging
from app.core.config import settings

"""
Client HTTP do webhook de automação (n8n) para novas reservas.


- Desligado quando `N8N_WEBHOOK_URL` está vazio.
- Falhas viram `AutomationHttpError`; quem chama decide se bloqueia ou só registra.
"""

log = logging.getLogger("automation")


class AutomationHttpError(RuntimeError):
    """Erro HTTP ao notificar o webhook de automação."""

async def notify_booking(payload: Dict[str, Any], *, timeout_s: int = settings.HTTP_TIMEOUT_S) -> bool:
    """
    Envia o agendamento criado ao webhook configurado.

    Retorna False quando não há webhook configurado, True quando entregue.
    """
    url = settings.N8N_WEBHOOK_URL
    if not url:
        return False
    try:
        async with httpx.AsyncClient(timeout=timeout_s) as client:
            resp = await client.post(url, json=payload)
            resp.raise_for_status()
    except (httpx.RequestError, httpx.HTTPStatusError) as e:
        raise AutomationHttpError(f"Automation webhook failed: {e}") from e
    log.info("Reserva notificada ao webhook (cliente_id=%s)", payload.get("cliente_id"))
    return True
