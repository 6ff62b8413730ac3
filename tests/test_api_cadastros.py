# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from datetime import datetime
from app.api.v1 import calendar
from app.clients.automation import AutomationHttpError
from tests.conftest import USER


async def test_create_cliente_missing_nome_returns_400(client, db):
    resp = await client.post("/api/clientes", json={"telefone": "11999990000"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["detail"] == "Campos obrigatórios faltando ou inválidos"
    assert "nome" in body["fields"]
    assert not db.executed("INSERT INTO clientes")


async def test_create_cliente_scoped_to_empresa(client, db):
    db.on("INSERT INTO clientes", [{"id": 10, "nome": "Maria", "telefone": "11999990000", "empresa_id": 7}])
    resp = await client.post("/api/clientes", json={"nome": "Maria", "telefone": "11999990000"})
    assert resp.status_code == 201
    assert resp.json()["id"] == 10
    (_, params), = db.executed("INSERT INTO clientes")
    assert params["empresa_id"] == USER["empresa_id"]
    assert db.commits == 1


async def test_missing_auth_header_returns_401(client):
    resp = await client.get("/api/clientes", headers={"X-User-Email": ""})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Não autenticado"


async def test_unknown_user_returns_404(client, db):
    db.on("FROM usuarios WHERE email", [])
    resp = await client.get("/api/clientes")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Usuário não encontrado"


async def test_user_without_empresa_returns_400(client, db):
    db.on("FROM usuarios WHERE email", [{**USER, "empresa_id": None}])
    resp = await client.get("/api/servicos")
    assert resp.status_code == 400


async def test_unsupported_method_returns_405(client):
    resp = await client.patch("/api/clientes", json={})
    assert resp.status_code == 405


async def test_pay_fatura_marks_as_pago(client, db):
    db.on("UPDATE faturas", [{"id": 5, "status": "Pago", "forma_pagamento": "pix", "data_pagamento": None}])
    resp = await client.put("/api/faturas", json={"id": 5, "forma_pagamento": "pix"})
    assert resp.status_code == 200
    assert resp.json()["fatura"]["status"] == "Pago"
    (_, params), = db.executed("UPDATE faturas")
    assert params == {"id": 5, "forma_pagamento": "pix", "empresa_id": 7}


async def test_pay_unknown_fatura_returns_404(client, db):
    resp = await client.put("/api/faturas", json={"id": 99, "forma_pagamento": "pix"})
    assert resp.status_code == 404
    assert db.commits == 0


async def test_create_fatura_inserts_items_and_bills_agendamento(client, db):
    db.on("INSERT INTO faturas", [{"id": 42}])
    resp = await client.post("/api/faturas", json={
        "cliente_id": 3,
        "agendamento_id": 301,
        "itens": [
            {"tipo": "servico", "item_id": 4, "quantidade": 1, "valor": 80.0},
            {"tipo": "produto", "item_id": 9, "quantidade": 2, "valor": 15.5},
        ],
    })
    assert resp.status_code == 201
    assert resp.json() == {"message": "Fatura criada com sucesso", "id": 42, "total": 111.0}
    itens = db.executed("INSERT INTO fatura_itens")
    assert "servico_id" in itens[0][0] and "produto_id" in itens[1][0]
    assert db.executed("UPDATE agendamentos SET status = 'faturado'")
    assert db.commits == 1 and db.rollbacks == 0


async def test_unexpected_error_returns_500_and_rolls_back(client, db):
    async def broken(stmt, params=None):
        if "INSERT INTO faturas" in str(stmt):
            raise RuntimeError("db down")
        return await real_execute(stmt, params)

    real_execute = db.execute
    db.execute = broken
    resp = await client.post("/api/faturas", json={
        "cliente_id": 3,
        "itens": [{"quantidade": 1, "valor": 10}],
    })
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Erro interno do servidor"}
    assert db.rollbacks == 1


async def test_reservar_ignores_automation_failure(client, db, monkeypatch):
    async def webhook_down(payload):
        raise AutomationHttpError("Automation webhook failed: 503")

    monkeypatch.setattr(calendar, "notify_booking", webhook_down)
    db.on("INSERT INTO agendamentos", [{"id": 77}])
    resp = await client.post("/api/calendar/reservar", json={
        "cliente": 12, "nome": "Maria", "telefone": "11999990000",
        "start": "2025-10-20T09:00:00", "servico": "Corte", "profissional": 3,
    })
    assert resp.status_code == 201
    assert resp.json() == {"message": "Agendamento criado com sucesso!", "id": 77}
    assert db.commits == 1


async def test_create_proposta_with_invalid_servico_rolls_back(client, db):
    db.on("INSERT INTO propostas", [{"id": 9}])
    resp = await client.post("/api/propostas", json={
        "cliente_id": 4,
        "validade": "2025-12-31",
        "servicos": [{"descricao": "Instalação", "horas": 10, "valorHora": 150, "total": 1500},
                     {"descricao": "Manutenção"}],
    })
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Serviços com campos inválidos"
    assert len(db.executed("INSERT INTO proposta_servicos")) == 1
    assert db.rollbacks == 1
    assert db.commits == 0


async def test_horarios_disponiveis_unknown_servico(client, db):
    resp = await client.get("/api/agendamentos_horarios", params={
        "profissional_id": 3, "servico_nome": "Corte", "data": "2025-10-20",
    })
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Serviço não encontrado"
    assert not db.executed("FROM horarios_estabelecimento")


async def test_horarios_disponiveis_day_without_hours(client, db):
    db.on("FROM servicos", [{"duracao_minutos": 30}])
    resp = await client.get("/api/agendamentos_horarios", params={
        "profissional_id": 3, "servico_nome": "Corte", "data": "2025-10-20",
    })
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Horários não encontrados para o profissional neste dia"
    (_, params), = db.executed("FROM horarios_estabelecimento")
    assert params["dia_semana"] == "Segunda-feira"


async def test_horarios_disponiveis_skips_booked_slots(client, db):
    db.on("FROM servicos", [{"duracao_minutos": 30}])
    db.on("FROM horarios_estabelecimento", [{"abertura": "09:00", "fechamento": "10:00"}])
    db.on("FROM agendamentos", [{"data_inicio": datetime(2025, 10, 20, 9, 30)}])
    resp = await client.get("/api/agendamentos_horarios", params={
        "profissional_id": 3, "servico_nome": "Corte", "data": "2025-10-20",
    })
    assert resp.status_code == 200
    assert resp.json() == {"dia_semana": "Segunda-feira", "duracao_minutos": 30, "horarios": ["09:00", "10:00"]}
