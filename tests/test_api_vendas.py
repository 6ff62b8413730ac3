# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from datetime import date
from tests.conftest import USER

DUPLICAR = {"origem_loja": "LOJA A", "destino_loja": "LOJA B", "ano": 2025, "semana": 10}


async def test_sales_routes_require_auth(client):
    resp = await client.get("/api/lojas", headers={"X-User-Email": ""})
    assert resp.status_code == 401


async def test_duplicar_without_source_rows_rolls_back(client, db):
    resp = await client.post("/api/calendario_loja/duplicar", json=DUPLICAR)
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Nenhum registro para copiar da loja de origem"
    assert not db.executed("INSERT INTO calendario_loja")
    assert db.rollbacks == 1
    assert db.commits == 0


async def test_duplicar_copies_rows_to_destination(client, db):
    row = {"meta": 1000, "obs": None, "qtd_vendedor": 3, "cota": 4, "abaixo": 3.25, "super_cota": 4.5, "cota_ouro": 5}
    db.on("FROM calendario_loja", [row, {**row, "meta": 2000}])
    resp = await client.post("/api/calendario_loja/duplicar", json=DUPLICAR)
    assert resp.status_code == 200
    assert resp.json() == {"message": "Registros duplicados com sucesso.", "registros": 2}
    inserts = db.executed("INSERT INTO calendario_loja")
    assert [p["loja"] for _, p in inserts] == ["LOJA B", "LOJA B"]
    assert [p["meta"] for _, p in inserts] == [1000, 2000]
    assert db.commits == 1


async def test_duplicar_requires_all_fields(client, db):
    resp = await client.post("/api/calendario_loja/duplicar", json={"origem_loja": "LOJA A"})
    assert resp.status_code == 400
    assert set(resp.json()["fields"]) >= {"destino_loja", "ano", "semana"}


async def test_calendario_invalid_year(client):
    resp = await client.get("/api/calendario", params={"ano": "abc"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Ano inválido"


async def test_calendario_lists_dates(client, db):
    db.on("FROM calendario WHERE EXTRACT", [{"data": date(2025, 1, 1)}, {"data": date(2025, 1, 2)}])
    resp = await client.get("/api/calendario", params={"ano": "2025"})
    assert resp.json() == {"datasCadastradas": ["2025-01-01", "2025-01-02"]}


async def test_semanas_calendario_labels(client, db):
    db.on("FROM agrup", [{"ano": 2025, "semana": 2, "inicio": date(2025, 1, 6), "fim": date(2025, 1, 12)}])
    resp = await client.get("/api/semanas_calendario", params={"ano": "2025", "mes": "1"})
    assert resp.json()[0]["label"] == "S2 06/01 a 12/01"
    (_, params), = db.executed("FROM agrup")
    assert params == {"ano": 2025, "meses": [1]}


async def test_metas_pagination(client, db):
    db.on("SELECT COUNT(*) FROM metas_lojas", [{"count": 21}])
    db.on("SELECT * FROM metas_lojas", [{"id": 1, "loja": "LOJA A"}])
    resp = await client.get("/api/buckman/metas", params={"page": 2, "limit": 10})
    assert resp.json() == {"items": [{"id": 1, "loja": "LOJA A"}], "currentPage": 2, "totalPages": 3}
    (_, params), = db.executed("SELECT * FROM metas_lojas")
    assert params["offset"] == 10


async def test_update_acesso_requires_admin(client, db):
    db.on("FROM usuarios WHERE email", [{**USER, "role": "user"}])
    resp = await client.put("/api/usuarios/acessos", json={"usuario_id": 2, "modulo": "produtos", "valor": True})
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Sem permissão"


async def test_update_acesso_rejects_unknown_module(client, db):
    resp = await client.put("/api/usuarios/acessos", json={"usuario_id": 2, "modulo": "senha", "valor": True})
    assert resp.status_code == 400
    assert not db.executed("UPDATE acessos_usuario")


async def test_relatorio_semanal_dinamico_fills_missing_weeks(client, db):
    base = {
        "meta_cota_mes": 4000, "meta_super_cota_mes": 5000, "meta_cota_ouro_mes": 6000,
        "realizado_mes": 1500, "pct_atingido_cota_mes": 37.5,
        "pct_atingido_super_mes": 30, "pct_atingido_ouro_mes": 25,
    }
    week = {
        "realizado_semana": 1500, "meta_cota_semana": 1000, "meta_super_cota_semana": 1250,
        "meta_cota_ouro_semana": 1500, "pct_atingido_cota_semana": 150,
        "pct_atingido_super_semana": 120, "pct_atingido_ouro_semana": 100,
    }
    db.on("WITH semanas_mes", [
        {"loja": "LOJA A", "semana": 10, **base, **week},
        {"loja": "LOJA B", "semana": 11, **base, **week},
    ])
    resp = await client.get("/api/relatorio_semanal_dinamico", params={"ano": "2025", "mes": "3"})
    body = resp.json()
    assert body["semanas"] == [10, 11]
    assert body["mes"] == 3 and body["ano"] == 2025
    loja_a = body["data"][0]
    assert loja_a["semanas"]["10"]["realizado"] == 1500
    assert loja_a["semanas"]["11"] == {
        "realizado": 0, "meta_cota": 0, "meta_super_cota": 0, "meta_cota_ouro": 0,
        "pct_atingido_cota": 0, "pct_atingido_super": 0, "pct_atingido_ouro": 0,
    }
    assert loja_a["meta_cota_mes"] == 4000


async def test_relatorio_comissao_passes_csv_filters(client, db):
    resp = await client.get("/api/relatorio_mensal_vendedor_comissao", params={
        "ano": "2025", "mes": "10", "loja": "LOJA A, LOJA B", "semana": "40,S41 06/10 a 12/10",
    })
    assert resp.json() == {"data": [], "mes": 10, "ano": 2025, "semanas": [40, 41]}
    (_, params), = db.executed("WITH metas_lojas_mes")
    assert params["lojas"] == ["LOJA A", "LOJA B"]
    assert params["vendedores"] is None
    assert params["dias"] is None


async def test_relatorio_mensal_formats_values(client, db):
    db.on("WITH metas_agrupadas", [{
        "filial": "LOJA A", "meta_mes": 10000, "real_mes": 1234.5, "pct_atingido": 12.35,
        "cota_vendedor": 4, "comissao_loja": 0.05, "qtd_vendedor": 3,
        "valor_cota": 1000, "valor_super_cota": None, "valor_cota_ouro": 3000,
    }])
    resp = await client.get("/api/relatorio_mensal")
    row = resp.json()["data"][0]
    assert row["meta_mes"] == "R$ 10.000,00"
    assert row["real_mes"] == "R$ 1.234,50"
    assert row["pct_atingido"] == "12.35%"
    assert row["comissao_loja"] == "5.00%"
    assert row["valor_super_cota"] == "R$ 0,00"


async def test_nfe_list_clamps_limit(client, db):
    resp = await client.get("/api/nfe", params={"q": " 3519 ", "limit": "5000"})
    assert resp.json() == {"rows": []}
    (_, params), = db.executed("FROM nfe_document")
    assert params == {"q": "3519", "like": "%3519%", "limit": 200}


async def test_nfe_detail_not_found(client):
    resp = await client.get("/api/nfe/77")
    assert resp.status_code == 404
