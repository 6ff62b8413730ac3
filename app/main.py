# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.api.v1.router import router_v1
from app.services.order_store import OrderStore
from app.clients.gateway import GatewayConfigError, GatewayHttpError
import json
import logging

"""
Backoffice – FastAPI entrypoint.

- Cria a instância principal do FastAPI (title/version) e monta o router em `API_PREFIX`.
- Cria o `OrderStore` da aplicação no startup (app.state.order_store).
- Mapeia erros: validação -> 400, gateway sem token -> 500, gateway fora -> 502,
  não tratados -> 500 com log no servidor.
- Configura CORS conforme settings e expõe /health para diagnóstico rápido.
"""

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
log = logging.getLogger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.order_store = OrderStore()
    log.info("%s iniciado (env=%s)", settings.APP_NAME, settings.APP_ENV)
    yield
    app.state.order_store.clear()


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    fields = [".".join(str(p) for p in e.get("loc", ())[1:]) for e in errors]
    log.warning("Validação falhou em %s %s: %s", request.method, request.url.path, fields)
    return JSONResponse(
        status_code=400,
        content={"detail": "Campos obrigatórios faltando ou inválidos", "fields": [f for f in fields if f]},
    )

async def gateway_config_handler(request: Request, exc: GatewayConfigError):
    log.error("Gateway sem configuração em %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})

async def gateway_http_handler(request: Request, exc: GatewayHttpError):
    log.error("Gateway indisponível em %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": "Falha de comunicação com o gateway de pagamento"})

async def generic_exception_handler(request: Request, exc: Exception):
    log.exception("Erro não tratado em %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Erro interno do servidor"})


start_server = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
    exception_handlers={
        RequestValidationError: validation_exception_handler,
        GatewayConfigError: gateway_config_handler,
        GatewayHttpError: gateway_http_handler,
        Exception: generic_exception_handler,
    },
)

start_server.include_router(router_v1, prefix=settings.API_PREFIX)

def _normalize_cors(origins_setting):
    """
    Aceita: list/tuple[str], string JSON (ex: '["http://..."]') ou CSV (ex: 'http://...,http://...').
    Retorna sempre uma lista de strings (sem espaços) ou lista vazia.
    """
    if not origins_setting:
        return []
    if isinstance(origins_setting, (list, tuple)):
        return [o.strip() for o in origins_setting if o and o.strip()]
    if isinstance(origins_setting, str):
        s = origins_setting.strip()
        try:
            parsed = json.loads(s)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            return [o.strip() for o in parsed if o and o.strip()]
        return [o.strip() for o in s.split(",") if o and o.strip()]
    return []

origins = _normalize_cors(settings.CORS_ORIGINS)

if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]

start_server.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

log.info("CORS habilitado para: %s", origins)

@start_server.get("/health", tags=["Health"])
def health():
    return {"status": "ok", "env": settings.APP_ENV}
