# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from fastapi import APIRouter, Depends
from app.api.deps import get_current_email
from app.api.v1 import clientes, servicos, profissionais, horarios, agendamentos
from app.api.v1 import calendar, faturas, dashboard, empresa
from app.api.v1 import produtos, contagem, propostas, usuarios
from app.api.v1 import store, orders, pagseguro, mercadopago
from app.api.v1 import calendario, calendario_loja, metas, relatorios, nfe
from app.api.v1 import health

"""
Roteador principal da API.


- Agrega os sub-routers por área (agenda, faturas, estoque, loja, pagamentos, vendas).
- Rotas do banco de vendas exigem usuário autenticado no router.
- Loja, checkout, pedidos, webhooks e contagem ficam públicos.
- Importado por `main.py` e montado em `API_PREFIX`.
"""

router_v1 = APIRouter()

authenticated = [Depends(get_current_email)]

# Agenda e faturamento (escopo por empresa do usuário)
router_v1.include_router(clientes.router,      prefix="/clientes",      tags=["clientes"])
router_v1.include_router(servicos.router,      prefix="/servicos",      tags=["servicos"])
router_v1.include_router(profissionais.router, prefix="/profissionais", tags=["profissionais"])
router_v1.include_router(horarios.router_profissionais, prefix="/profissionais_horarios", tags=["horarios"])
router_v1.include_router(horarios.router_horarios,      prefix="/horarios",               tags=["horarios"])
router_v1.include_router(agendamentos.router, prefix="",          tags=["agendamentos"])
router_v1.include_router(calendar.router,     prefix="/calendar", tags=["calendar"])
router_v1.include_router(faturas.router,      prefix="/faturas",  tags=["faturas"])
router_v1.include_router(dashboard.router,    prefix="",          tags=["dashboard"])
router_v1.include_router(empresa.router,      prefix="/empresa",  tags=["empresa"])
router_v1.include_router(propostas.router,    prefix="/propostas", tags=["propostas"])

# Usuários e acessos
router_v1.include_router(usuarios.router,       prefix="/usuarios",       tags=["usuarios"])
router_v1.include_router(usuarios.router_admin, prefix="/admin/usuarios", tags=["usuarios"])

# Estoque e contagem
router_v1.include_router(produtos.router,          prefix="/produtos",          tags=["produtos"])
router_v1.include_router(produtos.router_contagem, prefix="/produtos_contagem", tags=["contagem"])
router_v1.include_router(contagem.router_apoio,      prefix="/contagem_apoio",      tags=["contagem"])
router_v1.include_router(contagem.router_temp,       prefix="/contagem_temp",       tags=["contagem"])
router_v1.include_router(contagem.router_finalizada, prefix="/contagem_finalizada", tags=["contagem"])

# Loja e pagamentos
router_v1.include_router(store.router,          prefix="/store",     tags=["loja"])
router_v1.include_router(store.router_checkout, prefix="/checkout",  tags=["loja"])
router_v1.include_router(orders.router,         prefix="/orders",    tags=["pedidos"])
router_v1.include_router(pagseguro.router,      prefix="/pagseguro", tags=["pagseguro"])
router_v1.include_router(mercadopago.router,    prefix="/mp",        tags=["mercadopago"])

# Banco de vendas
router_v1.include_router(calendario.router,          prefix="/calendario",         tags=["calendario"], dependencies=authenticated)
router_v1.include_router(calendario.router_semanas,  prefix="/semanas_calendario", tags=["calendario"], dependencies=authenticated)
router_v1.include_router(calendario_loja.router,     prefix="/calendario_loja",    tags=["metas"],      dependencies=authenticated)
router_v1.include_router(metas.router,               prefix="/buckman",            tags=["metas"],      dependencies=authenticated)
router_v1.include_router(metas.router_lojas,         prefix="/lojas",              tags=["metas"],      dependencies=authenticated)
router_v1.include_router(metas.router_vendedores,    prefix="/vendedores",         tags=["metas"],      dependencies=authenticated)
router_v1.include_router(relatorios.router,          prefix="",                    tags=["relatorios"], dependencies=authenticated)
router_v1.include_router(nfe.router,                 prefix="/nfe",                tags=["nfe"],        dependencies=authenticated)

router_v1.include_router(health.router, prefix="/health")
