# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from __future__ import annotations
from typing import Any, Dict, Optional
import uuid
import httpx
from app.core.config import settings
from app.clients.gateway import GatewayConfigError, GatewayHttpError, GatewayResponse

"""
Client HTTP do MercadoPago (v1/payments e merchant_orders).


- Bearer `MP_ACCESS_TOKEN`, `X-Idempotency-Key` (uuid4 por chamada) e User-Agent fixo.
- `webhook_url()` usa `MP_WEBHOOK_URL` ou `PUBLIC_BASE_URL + /api/mp/webhook`.
- Respostas não 2xx voltam como `GatewayResponse` para o router repassar.
"""

MP_API = "https://api.mercadopago.com"
USER_AGENT = "inventario-app/1.0"


def webhook_url() -> Optional[str]:
    if settings.MP_WEBHOOK_URL:
        return settings.MP_WEBHOOK_URL
    base = settings.PUBLIC_BASE_URL.rstrip("/")
    return f"{base}/api/mp/webhook" if base else None


class MercadoPagoClient:
    def __init__(
        self,
        token: Optional[str] = None,
        *,
        timeout_s: int = settings.HTTP_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token if token is not None else settings.MP_ACCESS_TOKEN
        self.timeout_s = timeout_s
        self._transport = transport

    def _headers(self, idempotency_key: Optional[str] = None) -> Dict[str, str]:
        if not self.token:
            raise GatewayConfigError("MP_ACCESS_TOKEN não configurado")
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
            "X-Idempotency-Key": idempotency_key or str(uuid.uuid4()),
            "User-Agent": USER_AGENT,
        }

    async def _send(self, method: str, path: str, **kwargs: Any) -> GatewayResponse:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                resp = await client.request(method, f"{MP_API}{path}", **kwargs)
        except httpx.RequestError as e:
            raise GatewayHttpError(f"MercadoPago request failed: {e}") from e
        return GatewayResponse.from_httpx(resp)

    async def create_payment(self, body: Dict[str, Any], *, idempotency_key: Optional[str] = None) -> GatewayResponse:
        return await self._send("POST", "/v1/payments", json=body, headers=self._headers(idempotency_key))

    async def get_payment(self, payment_id: str) -> GatewayResponse:
        return await self._send("GET", f"/v1/payments/{payment_id}", headers=self._headers())

    async def get_merchant_order(self, order_id: str) -> GatewayResponse:
        return await self._send("GET", f"/merchant_orders/{order_id}", headers=self._headers())

    async def search_by_reference(self, reference: str) -> GatewayResponse:
        params = {"external_reference": reference, "sort": "date_created", "criteria": "desc"}
        return await self._send("GET", "/v1/payments/search", params=params, headers=self._headers())
