# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from datetime import date, time
from decimal import Decimal
import pytest
from app.services.agenda import free_slots, generate_slots, truncate_dia_semana, weekday_name
from app.services.invoicing import invoice_total, item_reference
from app.services.order_store import Order, OrderStore
from app.services.relatorios import DEBUG_COMISSAO_SQL, comissao_case, semanal_sql
from app.services.semanas import distinct_weeks, parse_year, pivot_weeks, week_option
from app.utils.money import format_brl, format_percent, normalize_money, to_cents
from app.utils.params import csv_ints, csv_texts, only_digits


def test_generate_slots_includes_closing_time():
    assert generate_slots("09:00", "11:00", 60) == ["09:00", "10:00", "11:00"]

def test_generate_slots_stops_at_end_of_day():
    assert generate_slots(time(22, 0), time(23, 59), 90) == ["22:00", "23:30"]

def test_generate_slots_rejects_non_positive_duration():
    with pytest.raises(ValueError):
        generate_slots("09:00", "10:00", 0)

def test_free_slots_removes_taken():
    assert free_slots("09:00", "11:00", 30, ["09:30", "10:30"]) == ["09:00", "10:00", "11:00"]

def test_weekday_name_and_truncation():
    assert weekday_name(date(2025, 10, 20)) == "Segunda-feira"
    assert truncate_dia_semana("Segunda-feira-extra") == "Segunda-feira-e"


def test_invoice_total_sums_lines():
    itens = [{"quantidade": 1, "valor": 80.0}, {"quantidade": 2, "valor": 15.5}, {"quantidade": 3, "valor": "0.10"}]
    assert invoice_total(itens) == Decimal("111.30")

def test_item_reference_defaults_to_servico():
    assert item_reference({"servico_id": 4}) == ("servico_id", 4)
    assert item_reference({"tipo": "produto", "item_id": 9}) == ("produto_id", 9)
    assert item_reference({"tipo": "brinde", "item_id": 1}) is None


def test_order_store_lists_by_email_newest_first():
    store = OrderStore()
    store.save(Order(referencia="A", email="Ana@X.com", criado_em="2025-01-01T00:00:00"))
    store.save(Order(referencia="B", email="ana@x.com", criado_em="2025-02-01T00:00:00"))
    store.save(Order(referencia="C", email="outro@x.com"))
    assert [o.referencia for o in store.list_by_email(" ANA@x.com ")] == ["B", "A"]

def test_order_store_status_only_for_known_orders():
    store = OrderStore()
    assert store.set_status("X", "PAID") is None
    assert len(store) == 0
    store.save(Order(referencia="X", email="a@b.com"))
    assert store.set_status("X", "PAID").status == "PAID"
    assert not store.is_paid("X")
    store.mark_paid("X")
    assert store.is_paid("X")
    store.clear()
    assert store.get("X") is None and not store.is_paid("X")


def test_money_helpers():
    assert to_cents(49.9) == 4990
    assert to_cents("0.005") == 1
    assert format_brl(1234567.891) == "R$ 1.234.567,89"
    assert format_brl(-5) == "-R$ 5,00"
    assert format_percent(7) == "7.00%"
    assert normalize_money("R$ 1.234,56") == 1234.56
    assert normalize_money("12.5") == 12.5
    assert normalize_money("abc") == 0.0

def test_params_helpers():
    assert csv_texts("A, B,,C") == ["A", "B", "C"]
    assert csv_texts(None) == []
    assert csv_ints("1,S2 29/12 a 04/01,x") == [1, 2]
    assert only_digits("123.456.789-09") == "12345678909"


def test_parse_year_bounds():
    assert parse_year("2025") == 2025
    assert parse_year("1899") is None
    assert parse_year("abc") is None

def test_week_option_label():
    opt = week_option(2025, 1, date(2024, 12, 30), "2025-01-05")
    assert opt["label"] == "S1 30/12 a 05/01"
    assert opt["value"] == "1"
    assert opt["inicio"] == "2024-12-30"

def test_pivot_weeks_zero_fills_and_skips_null_weeks():
    rows = [
        {"loja": "A", "semana_fiscal": 41, "realizado": 10, "meta_mes": 100},
        {"loja": "A", "semana_fiscal": 42, "realizado": 20, "meta_mes": 100},
        {"loja": "B", "semana_fiscal": None, "realizado": None, "meta_mes": 50},
    ]
    data = pivot_weeks(rows, "loja", ["meta_mes"], {"realizado": "realizado"}, [1, 2], week_field="semana_fiscal")
    assert data[0]["semanas"] == {41: {"realizado": 10}, 42: {"realizado": 20}, 1: {"realizado": 0}, 2: {"realizado": 0}}
    assert data[1] == {"loja": "B", "meta_mes": 50, "semanas": {1: {"realizado": 0}, 2: {"realizado": 0}}}
    assert distinct_weeks(rows, "semana_fiscal") == [41, 42]


def test_semanal_sql_groups_by_seller_only_when_asked():
    assert "seller_name" not in semanal_sql()
    sql = semanal_sql(por_vendedor=True)
    assert "GROUP BY loja, seller_name" in sql
    for n in range(1, 7):
        assert f"AS comissao_semana{n}" in sql

def test_comissao_case_tiers():
    case = comissao_case("r", "m")
    assert "WHEN m = 0 THEN 0" in case
    assert "WHEN r < m THEN r * (v.abaixo_cota / 100.0)" in case
    assert "WHEN r / m <= 1.20 THEN v.cota_vendedor / 100.0" in case
    assert "WHEN r / m <= 1.40 THEN v.super_cota / 100.0" in case
    assert "ELSE v.cota_ouro / 100.0" in case

def test_debug_comissao_uses_next_week_rate():
    assert "WHEN 1 THEN v.total_vendido_semana * (m.cota_semana2 / 100.0)" in DEBUG_COMISSAO_SQL
    assert "WHEN 5 THEN v.total_vendido_semana * (m.cota_semana6 / 100.0)" in DEBUG_COMISSAO_SQL
    assert "WHEN 6 THEN 0" in DEBUG_COMISSAO_SQL
