# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from __future__ import annotations
import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional
import httpx
import logging
from app.core.config import settings
from app.clients.gateway import GatewayConfigError, GatewayHttpError, GatewayResponse

"""
Client HTTP do PagSeguro (API de orders/charges v4).


- Base URL por ambiente (`PAGSEGURO_ENV=production` -> api, senão sandbox).
- Headers: Bearer, `x-api-version: 4.0` e `x-idempotency-key`.
- `create_pix_charge()` tenta até `max_attempts` vezes em 5xx transitório ou falha de rede.
- `post()` / `get()` fazem uma chamada única e devolvem `GatewayResponse`.
"""

log = logging.getLogger("payments.pagseguro")

PRODUCTION_URL = "https://api.pagseguro.com"
SANDBOX_URL = "https://sandbox.api.pagseguro.com"
RETRY_STATUSES = frozenset({500, 502, 503, 504})


class PagSeguroUnavailable(GatewayHttpError):
    """Tentativas esgotadas por falha de rede."""

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


def base_url(env: Optional[str] = None) -> str:
    env = (env if env is not None else settings.PAGSEGURO_ENV) or "sandbox"
    return PRODUCTION_URL if env.strip().lower() == "production" else SANDBOX_URL


class PagSeguroClient:
    def __init__(
        self,
        token: Optional[str] = None,
        *,
        env: Optional[str] = None,
        timeout_s: int = settings.HTTP_TIMEOUT_S,
        max_attempts: int = settings.PAGSEGURO_MAX_ATTEMPTS,
        backoff_ms: int = settings.PAGSEGURO_RETRY_BACKOFF_MS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.token = (token if token is not None else settings.PAGSEGURO_TOKEN).strip()
        self.base_url = base_url(env)
        self.timeout_s = timeout_s
        self.max_attempts = max(1, max_attempts)
        self.backoff_ms = backoff_ms
        self._transport = transport
        self._sleep = sleep

    def ensure_configured(self) -> None:
        if not self.token:
            raise GatewayConfigError("PAGSEGURO_TOKEN não configurado")

    def _headers(self, idempotency_key: Optional[str]) -> Dict[str, str]:
        self.ensure_configured()
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "x-api-version": "4.0",
        }
        if idempotency_key:
            headers["x-idempotency-key"] = idempotency_key
        return headers

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> GatewayResponse:
        headers = self._headers(idempotency_key)
        async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
            resp = await client.request(method, f"{self.base_url}{path}", json=json, headers=headers)
        return GatewayResponse.from_httpx(resp)

    async def post(self, path: str, payload: Dict[str, Any], *, idempotency_key: Optional[str] = None) -> GatewayResponse:
        try:
            return await self._send("POST", path, json=payload, idempotency_key=idempotency_key)
        except httpx.RequestError as e:
            raise GatewayHttpError(f"PagSeguro request failed: {e}") from e

    async def get(self, path: str) -> GatewayResponse:
        try:
            return await self._send("GET", path)
        except httpx.RequestError as e:
            raise GatewayHttpError(f"PagSeguro request failed: {e}") from e

    async def create_pix_charge(self, payload: Dict[str, Any], *, idempotency_key: str) -> GatewayResponse:
        """
        Cria cobrança PIX em `/pix/charges` com retry.

        A mesma chave de idempotência é reenviada em todas as tentativas.
        Entre tentativas espera `backoff_ms * tentativa` ms.

        Retorna a primeira resposta 2xx, ou a resposta de erro definitiva
        (status fora de 500/502/503/504, ou 5xx na última tentativa).

        Erros:
          - PagSeguroUnavailable: todas as tentativas falharam por rede.
          - GatewayConfigError: token ausente.
        """
        last_error = ""
        for attempt in range(1, self.max_attempts + 1):
            try:
                resp = await self._send("POST", "/pix/charges", json=payload, idempotency_key=idempotency_key)
            except httpx.RequestError as e:
                last_error = str(e) or e.__class__.__name__
                log.warning("PIX charge tentativa %s/%s falhou: %s", attempt, self.max_attempts, last_error)
                if attempt < self.max_attempts:
                    await self._sleep(self.backoff_ms * attempt / 1000)
                    continue
                raise PagSeguroUnavailable(last_error, attempts=attempt) from e

            if resp.ok:
                return resp
            if resp.status in RETRY_STATUSES and attempt < self.max_attempts:
                log.warning("PIX charge tentativa %s/%s: HTTP %s", attempt, self.max_attempts, resp.status)
                await self._sleep(self.backoff_ms * attempt / 1000)
                continue
            log.error("PIX charge falhou: HTTP %s %s", resp.status, resp.text[:500])
            return resp
        raise PagSeguroUnavailable(last_error, attempts=self.max_attempts)
