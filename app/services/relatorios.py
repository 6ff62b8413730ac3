# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from __future__ import annotations
from typing import Any, Dict, List, Mapping
from app.utils.money import format_brl, format_percent

"""
SQL dos relatórios de vendas x metas (banco de vendas).


- As colunas repetidas por semana (1..6) são geradas aqui; as fórmulas são as mesmas do painel.
- Comissão por faixa (`comissao_case`): sem meta 0; abaixo da meta `abaixo_cota`%;
  até 120% `cota_vendedor`%; até 140% `super_cota`%; acima `cota_ouro`%.
- `debug_comissao` aplica na semana N o percentual `cota_semana(N+1)` (semana 6 -> 0).
- `format_mensal` formata a linha do relatório mensal (moeda BRL e percentuais).
"""

SEMANAS_MES = range(1, 7)
TAXA_COMISSAO_LOJA = 0.05


def _case_semana(column: str, template: str, default: str = "0") -> str:
    whens = "\n".join(f"      WHEN {n} THEN {template.format(n=n)}" for n in SEMANAS_MES)
    return f"CASE {column}\n{whens}\n      ELSE {default}\n    END"


def semanal_sql(por_vendedor: bool = False) -> str:
    """Realizado x meta por semana do mês (dia/7) com comissão fixa da loja."""
    seller = "v.seller_name, " if por_vendedor else ""
    seller_bare = "seller_name, " if por_vendedor else ""
    pivot = []
    for n in SEMANAS_MES:
        real = f"COALESCE(MAX(CASE WHEN semana_do_mes = {n} THEN real END), 0)"
        meta = f"COALESCE(MAX(CASE WHEN semana_do_mes = {n} THEN meta END), 0)"
        pivot.append(f"""
  {real} AS real_semana{n},
  {meta} AS semana{n},
  CASE WHEN {meta} > 0
       THEN {real} / MAX(CASE WHEN semana_do_mes = {n} THEN meta END)
       ELSE 0
  END AS pct_cota_semana{n},
  {real} * COALESCE(MAX(taxa_comissao), 0) AS comissao_semana{n}""")
    return f"""
WITH vendas_semana AS (
  SELECT v.loja, {seller}c.semana AS semana_fiscal, v.lastchangedate::date AS data_venda,
         SUM(v.totalvalue) AS total_vendido
  FROM view_vendas_completa v
  JOIN calendario c ON v.lastchangedate::date = c.data
  GROUP BY v.loja, {seller}c.semana, v.lastchangedate::date
),
vendas_com_semana_mes AS (
  SELECT loja, {seller_bare}semana_fiscal, data_venda, total_vendido,
         CEIL(EXTRACT(DAY FROM data_venda) / 7.0) AS semana_do_mes
  FROM vendas_semana
),
vendas_com_metas AS (
  SELECT v.loja, {seller}v.semana_fiscal, v.semana_do_mes, v.total_vendido,
    {_case_semana("v.semana_do_mes", "m.semana{n}")} AS meta_semana,
    {TAXA_COMISSAO_LOJA} AS taxa_comissao
  FROM vendas_com_semana_mes v
  JOIN metas_lojas m ON TRIM(UPPER(v.loja)) = TRIM(UPPER(m.loja))
),
resumo AS (
  SELECT loja, {seller_bare}semana_do_mes, SUM(total_vendido) AS real,
         MAX(meta_semana) AS meta, MAX(taxa_comissao) AS taxa_comissao
  FROM vendas_com_metas
  GROUP BY loja, {seller_bare}semana_do_mes
)
SELECT loja, {seller_bare}{','.join(pivot)}
FROM resumo
GROUP BY loja{', seller_name' if por_vendedor else ''}
ORDER BY loja{', seller_name' if por_vendedor else ''}
"""


MENSAL_SQL = f"""
WITH metas_agrupadas AS (
  SELECT loja AS filial, ({' + '.join(f'semana{n}' for n in SEMANAS_MES)}) AS meta_mes,
         cota_vendedor, comissao_loja, qtd_vendedor, valor_cota, valor_super_cota, valor_cota_ouro
  FROM metas_lojas
),
vendas_mes AS (
  SELECT v.loja AS filial, SUM(v.totalvalue) AS real_mes
  FROM view_vendas_completa v
  WHERE v.lastchangedate >= date_trunc('month', CURRENT_DATE)
    AND v.lastchangedate < (date_trunc('month', CURRENT_DATE) + INTERVAL '1 month')
  GROUP BY v.loja
)
SELECT m.filial, m.meta_mes, COALESCE(v.real_mes, 0) AS real_mes,
       CASE WHEN m.meta_mes > 0 THEN ROUND((COALESCE(v.real_mes, 0) / m.meta_mes) * 100, 2) ELSE 0 END AS pct_atingido,
       m.cota_vendedor, m.comissao_loja, m.qtd_vendedor, m.valor_cota, m.valor_super_cota, m.valor_cota_ouro
FROM metas_agrupadas m
LEFT JOIN vendas_mes v ON m.filial = v.filial
ORDER BY m.filial
"""


def format_mensal(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "filial": row["filial"],
        "meta_mes": format_brl(row.get("meta_mes")),
        "real_mes": format_brl(row.get("real_mes")),
        "pct_atingido": format_percent(row.get("pct_atingido")),
        "cota_vendedor": row.get("cota_vendedor"),
        "comissao_loja": format_percent((row.get("comissao_loja") or 0) * 100),
        "qtd_vendedor": row.get("qtd_vendedor"),
        "valor_cota": format_brl(row.get("valor_cota")),
        "valor_super_cota": format_brl(row.get("valor_super_cota")),
        "valor_cota_ouro": format_brl(row.get("valor_cota_ouro")),
    }


def _pct(real: str, meta: str) -> str:
    return f"CASE WHEN {meta} > 0 THEN ROUND(({real} / {meta}) * 100, 2) ELSE 0 END"


MENSAL_VENDEDOR_SQL = f"""
WITH vendas_mes AS (
  SELECT seller_name, SUM(totalvalue) AS total_vendido_mes
  FROM view_vendas_completa
  JOIN calendario c ON view_vendas_completa.lastchangedate::date = c.data
  WHERE EXTRACT(YEAR FROM c.data) = :ano AND EXTRACT(MONTH FROM c.data) = :mes
  GROUP BY seller_name
),
metas_vendedor AS (
  SELECT seller_name, valor_cota, valor_super_cota, valor_cota_ouro
  FROM metas_vendedores
  WHERE ano = :ano AND mes = :mes
)
SELECT m.seller_name,
       COALESCE(m.valor_cota, 0) AS meta_cota_mes,
       COALESCE(m.valor_super_cota, 0) AS meta_super_cota_mes,
       COALESCE(m.valor_cota_ouro, 0) AS meta_cota_ouro_mes,
       COALESCE(v.total_vendido_mes, 0) AS realizado_mes,
       {_pct("COALESCE(v.total_vendido_mes, 0)", "m.valor_cota")} AS pct_atingido_cota_mes,
       {_pct("COALESCE(v.total_vendido_mes, 0)", "m.valor_super_cota")} AS pct_atingido_super_mes,
       {_pct("COALESCE(v.total_vendido_mes, 0)", "m.valor_cota_ouro")} AS pct_atingido_ouro_mes
FROM metas_vendedor m
LEFT JOIN vendas_mes v ON m.seller_name = v.seller_name
ORDER BY m.seller_name
"""


def comissao_case(real: str, meta: str) -> str:
    return f"""CASE
      WHEN {meta} = 0 THEN 0
      WHEN {real} < {meta} THEN {real} * (v.abaixo_cota / 100.0)
      ELSE {real} * CASE
        WHEN {real} / {meta} <= 1.20 THEN v.cota_vendedor / 100.0
        WHEN {real} / {meta} <= 1.40 THEN v.super_cota / 100.0
        ELSE v.cota_ouro / 100.0
      END
    END"""


_LOJAS = "(CAST(:lojas AS TEXT[]) IS NULL OR {col} = ANY(CAST(:lojas AS TEXT[])))"
_VENDEDORES = "(CAST(:vendedores AS TEXT[]) IS NULL OR {col} = ANY(CAST(:vendedores AS TEXT[])))"
_SEMANAS = "(CAST(:semanas AS INT[]) IS NULL OR c.semana = ANY(CAST(:semanas AS INT[])))"
_DIAS = "(CAST(:dias AS INT[]) IS NULL OR EXTRACT(DAY FROM c.data)::int = ANY(CAST(:dias AS INT[])))"
_REAL, _META = "v.total_vendido_semana", "v.meta_semana_vendedor"

# meta semanal: calendario_loja.meta ou MAX(calendario.meta) da semana, dividida pelos vendedores da loja
MENSAL_VENDEDOR_COMISSAO_SQL = f"""
WITH metas_lojas_mes AS (
  SELECT m.loja, m.cota_vendedor, m.super_cota, m.cota_ouro, m.abaixo_cota
  FROM metas_lojas m
  WHERE m.ano = :ano AND m.mes = :mes AND {_LOJAS.format(col="m.loja")}
),
semanas_no_mes AS (
  SELECT DISTINCT c.semana::int AS semana_iso
  FROM calendario c
  WHERE EXTRACT(YEAR FROM c.data) = :ano AND EXTRACT(MONTH FROM c.data) = :mes AND {_SEMANAS}
),
metas_semanais_globais AS (
  SELECT c.semana::int AS semana_iso, COALESCE(MAX(c.meta), 0)::numeric AS meta_global
  FROM calendario c
  JOIN semanas_no_mes s ON s.semana_iso = c.semana
  WHERE EXTRACT(YEAR FROM c.data) = :ano AND EXTRACT(MONTH FROM c.data) = :mes
  GROUP BY c.semana
),
metas_semanais_loja AS (
  SELECT l.loja, s.semana_iso, COALESCE(cl.meta, msg.meta_global, 0)::numeric AS meta_semana_loja
  FROM (SELECT DISTINCT loja FROM metas_lojas_mes) l
  CROSS JOIN semanas_no_mes s
  LEFT JOIN calendario_loja cl ON cl.ano = :ano AND cl.semana = s.semana_iso AND cl.loja = l.loja
  LEFT JOIN metas_semanais_globais msg ON msg.semana_iso = s.semana_iso
),
vendas_semanais AS (
  SELECT v.seller_name, v.loja, c.semana::int AS semana_iso, SUM(v.totalvalue) AS total_vendido_semana
  FROM view_vendas_liquida v
  JOIN calendario c ON v.invoicedate::date = c.data
  WHERE EXTRACT(YEAR FROM c.data) = :ano AND EXTRACT(MONTH FROM c.data) = :mes
    AND {_LOJAS.format(col="v.loja")}
    AND {_VENDEDORES.format(col="v.seller_name")}
    AND {_DIAS}
    AND {_SEMANAS}
  GROUP BY v.seller_name, v.loja, c.semana
),
vendedores_loja AS (
  SELECT DISTINCT loja, seller_name
  FROM invoices_saida_com_entradas
  WHERE {_LOJAS.format(col="loja")} AND {_VENDEDORES.format(col="seller_name")}
),
linhas_relatorio AS (
  SELECT vl.seller_name, vl.loja, s.semana_iso
  FROM vendedores_loja vl CROSS JOIN semanas_no_mes s
),
linhas_com_realizado AS (
  SELECT lr.seller_name, lr.loja, lr.semana_iso, COALESCE(vs.total_vendido_semana, 0) AS total_vendido_semana
  FROM linhas_relatorio lr
  LEFT JOIN vendas_semanais vs
    ON vs.loja = lr.loja AND vs.seller_name = lr.seller_name AND vs.semana_iso = lr.semana_iso
),
qtd_vendedores_semana AS (
  SELECT loja, semana_iso, COUNT(*)::int AS qtd
  FROM linhas_relatorio
  GROUP BY loja, semana_iso
),
vendas_semana_detalhe AS (
  SELECT lcr.seller_name, lcr.loja, lcr.semana_iso, lcr.total_vendido_semana,
         mll.meta_semana_loja, qv.qtd AS qtd_vendedores,
         ml.cota_vendedor, ml.super_cota, ml.cota_ouro, ml.abaixo_cota,
         (CASE WHEN qv.qtd > 0 THEN mll.meta_semana_loja / qv.qtd ELSE 0 END) AS meta_semana_vendedor
  FROM linhas_com_realizado lcr
  JOIN metas_semanais_loja mll ON mll.loja = lcr.loja AND mll.semana_iso = lcr.semana_iso
  JOIN qtd_vendedores_semana qv ON qv.loja = lcr.loja AND qv.semana_iso = lcr.semana_iso
  JOIN metas_lojas_mes ml ON ml.loja = lcr.loja
)
SELECT v.seller_name, v.loja,
       SUM({_REAL}) AS realizado_mes,
       SUM({_META}) AS meta_mes,
       SUM({comissao_case(_REAL, _META)}) AS comissao_total_mes,
       COALESCE(
         json_agg(
           json_build_object(
             'semana', 'S' || v.semana_iso,
             'realizado', {_REAL},
             'meta', {_META},
             'comissao', {comissao_case(_REAL, _META)}
           )
           ORDER BY v.semana_iso
         ) FILTER (WHERE v.semana_iso IS NOT NULL),
         '[]'
       ) AS detalhe_semanal
FROM vendas_semana_detalhe v
GROUP BY v.seller_name, v.loja
ORDER BY v.loja, v.seller_name
"""


_NORM = "TRIM(UPPER({a})) = TRIM(UPPER({b}))"

SEMANAL_DINAMICO_SQL = f"""
WITH semanas_mes AS (
  SELECT DISTINCT semana FROM calendario
  WHERE EXTRACT(YEAR FROM data) = :ano AND EXTRACT(MONTH FROM data) = :mes
),
num_semanas AS (
  SELECT COUNT(DISTINCT semana) AS total_semanas FROM calendario
  WHERE EXTRACT(YEAR FROM data) = :ano AND EXTRACT(MONTH FROM data) = :mes
),
metas AS (
  SELECT loja, valor_cota, valor_super_cota, valor_cota_ouro
  FROM metas_lojas
  WHERE mes = :mes AND ano = :ano
),
vendas_mes AS (
  SELECT v.loja, SUM(v.totalvalue) AS total_vendido_mes
  FROM view_vendas_completa v
  JOIN calendario c ON v.lastchangedate::date = c.data
  WHERE EXTRACT(YEAR FROM c.data) = :ano AND EXTRACT(MONTH FROM c.data) = :mes
  GROUP BY v.loja
),
vendas_semana AS (
  SELECT v.loja, c.semana, SUM(v.totalvalue) AS total_vendido_semana
  FROM view_vendas_completa v
  JOIN calendario c ON v.lastchangedate::date = c.data
  WHERE c.semana IN (SELECT semana FROM semanas_mes)
  GROUP BY v.loja, c.semana
),
vendas_com_metas AS (
  SELECT m.loja, s.semana,
         COALESCE(vs.total_vendido_semana, 0) AS total_vendido_semana,
         m.valor_cota / ns.total_semanas AS meta_cota_semana,
         m.valor_super_cota / ns.total_semanas AS meta_super_cota_semana,
         m.valor_cota_ouro / ns.total_semanas AS meta_cota_ouro_semana
  FROM metas m
  CROSS JOIN semanas_mes s
  LEFT JOIN vendas_semana vs ON {_NORM.format(a="m.loja", b="vs.loja")} AND s.semana = vs.semana
  CROSS JOIN num_semanas ns
),
resumo_semana AS (
  SELECT loja, semana, SUM(total_vendido_semana) AS realizado_semana,
         MAX(meta_cota_semana) AS meta_cota_semana,
         MAX(meta_super_cota_semana) AS meta_super_cota_semana,
         MAX(meta_cota_ouro_semana) AS meta_cota_ouro_semana
  FROM vendas_com_metas
  GROUP BY loja, semana
),
lojas_semanas AS (
  SELECT l.loja, s.semana
  FROM (SELECT DISTINCT loja FROM metas) l CROSS JOIN semanas_mes s
),
dados_completos AS (
  SELECT ls.loja, ls.semana,
         COALESCE(rs.realizado_semana, 0) AS realizado_semana,
         COALESCE(rs.meta_cota_semana, 0) AS meta_cota_semana,
         COALESCE(rs.meta_super_cota_semana, 0) AS meta_super_cota_semana,
         COALESCE(rs.meta_cota_ouro_semana, 0) AS meta_cota_ouro_semana
  FROM lojas_semanas ls
  LEFT JOIN resumo_semana rs ON {_NORM.format(a="ls.loja", b="rs.loja")} AND ls.semana = rs.semana
)
SELECT m.loja, dc.semana, dc.realizado_semana,
       dc.meta_cota_semana, dc.meta_super_cota_semana, dc.meta_cota_ouro_semana,
       {_pct("dc.realizado_semana", "dc.meta_cota_semana")} AS pct_atingido_cota_semana,
       {_pct("dc.realizado_semana", "dc.meta_super_cota_semana")} AS pct_atingido_super_semana,
       {_pct("dc.realizado_semana", "dc.meta_cota_ouro_semana")} AS pct_atingido_ouro_semana,
       m.valor_cota AS meta_cota_mes,
       m.valor_super_cota AS meta_super_cota_mes,
       m.valor_cota_ouro AS meta_cota_ouro_mes,
       COALESCE(vm.total_vendido_mes, 0) AS realizado_mes,
       {_pct("COALESCE(vm.total_vendido_mes, 0)", "m.valor_cota")} AS pct_atingido_cota_mes,
       {_pct("COALESCE(vm.total_vendido_mes, 0)", "m.valor_super_cota")} AS pct_atingido_super_mes,
       {_pct("COALESCE(vm.total_vendido_mes, 0)", "m.valor_cota_ouro")} AS pct_atingido_ouro_mes
FROM dados_completos dc
RIGHT JOIN metas m ON {_NORM.format(a="dc.loja", b="m.loja")}
LEFT JOIN vendas_mes vm ON {_NORM.format(a="m.loja", b="vm.loja")}
ORDER BY m.loja, dc.semana
"""

SEMANAL_DINAMICO_HEADER = (
    "meta_cota_mes", "meta_super_cota_mes", "meta_cota_ouro_mes", "realizado_mes",
    "pct_atingido_cota_mes", "pct_atingido_super_mes", "pct_atingido_ouro_mes",
)
SEMANAL_DINAMICO_CELLS = {
    "realizado": "realizado_semana",
    "meta_cota": "meta_cota_semana",
    "meta_super_cota": "meta_super_cota_semana",
    "meta_cota_ouro": "meta_cota_ouro_semana",
    "pct_atingido_cota": "pct_atingido_cota_semana",
    "pct_atingido_super": "pct_atingido_super_semana",
    "pct_atingido_ouro": "pct_atingido_ouro_semana",
}


def _semana_do_mes_fiscal(n: int) -> str:
    return f"(SELECT semana FROM calendario WHERE data = date_trunc('month', CURRENT_DATE) + INTERVAL '{n - 1} week')"

MENSAL_SEMANA_SQL = f"""
WITH vendas_semana AS (
  SELECT v.loja, c.semana AS semana_fiscal, SUM(v.totalvalue) AS total_vendido
  FROM view_vendas_completa v
  JOIN calendario c ON v.lastchangedate::date = c.data
  WHERE v.lastchangedate >= date_trunc('month', CURRENT_DATE)
    AND v.lastchangedate < (date_trunc('month', CURRENT_DATE) + INTERVAL '1 month')
  GROUP BY v.loja, c.semana
),
vendas_com_metas AS (
  SELECT v.loja, v.semana_fiscal, v.total_vendido,
    CASE v.semana_fiscal
{chr(10).join(f"      WHEN {_semana_do_mes_fiscal(n)} THEN m.semana{n}" for n in SEMANAS_MES)}
      ELSE 0
    END AS meta_semana
  FROM vendas_semana v
  JOIN metas_lojas m ON {_NORM.format(a="v.loja", b="m.loja")}
),
resumo AS (
  SELECT loja, semana_fiscal, SUM(total_vendido) AS realizado, MAX(meta_semana) AS meta
  FROM vendas_com_metas
  GROUP BY loja, semana_fiscal
),
mes_agrupado AS (
  SELECT loja, SUM(meta) AS meta_mes, SUM(realizado) AS realizado_mes
  FROM resumo
  GROUP BY loja
)
SELECT r.loja, r.semana_fiscal, r.realizado, r.meta,
       {_pct("r.realizado", "r.meta")} AS pct_atingido,
       ma.meta_mes, ma.realizado_mes
FROM resumo r
JOIN mes_agrupado ma ON ma.loja = r.loja
ORDER BY r.loja, r.semana_fiscal
"""

MENSAL_SEMANA_CELLS = {"realizado": "realizado", "meta": "meta", "pct_atingido": "pct_atingido"}


def _soma_metas() -> str:
    return " + ".join(f"COALESCE(SUM(m.sem{n}),0)" for n in SEMANAS_MES)

def _comparativo_semanas() -> str:
    cols: List[str] = []
    for n in SEMANAS_MES:
        cols.append(f"""
       COALESCE(SUM(m.sem{n}),0) AS meta_sem{n},
       COALESCE(SUM(v.venda{n}),0) AS venda_sem{n},
       CASE WHEN COALESCE(SUM(m.sem{n}),0) = 0 THEN 0 ELSE SUM(v.venda{n}) / SUM(m.sem{n}) END AS atg_sem{n},
       MAX(m.tk{n}) AS bonus_sem{n}""")
    return ",".join(cols)

COMPARATIVO_SQL = f"""
SELECT v.filial,
       {_soma_metas()} AS meta_venda,
       COALESCE(SUM(v.tot_venda),0) AS tot_venda,
       CASE WHEN ({_soma_metas()}) = 0 THEN 0
            ELSE SUM(v.tot_venda) / ({_soma_metas()})
       END AS atingido,
       MAX(m.comissao) AS comissao,
       MAX(m.subcomissao) AS subcomissao,{_comparativo_semanas()}
FROM view_vendas_completa v
LEFT JOIN metas m ON v.filial = m.filial
GROUP BY v.filial
ORDER BY v.filial
"""


# semana N do mês paga o percentual da semana N+1; a última não paga
DEBUG_COMISSAO_SQL = f"""
WITH metas_lojas_mes AS (
  SELECT m.loja, {', '.join(f'm.cota_semana{n}' for n in SEMANAS_MES)}
  FROM metas_lojas m
  WHERE m.ano = :ano AND m.mes = :mes
    AND (CAST(:loja AS TEXT) IS NULL OR m.loja = :loja)
),
vendas_semanais AS (
  SELECT v.seller_name, v.loja,
         (EXTRACT(WEEK FROM c.data) - EXTRACT(WEEK FROM DATE_TRUNC('month', c.data)) + 1)::int AS semana_mes,
         SUM(v.totalvalue) AS total_vendido_semana
  FROM view_vendas_completa v
  JOIN calendario c ON v.lastchangedate::date = c.data
  WHERE EXTRACT(YEAR FROM c.data) = :ano AND EXTRACT(MONTH FROM c.data) = :mes
    AND (CAST(:loja AS TEXT) IS NULL OR v.loja = :loja)
    AND (CAST(:vendedor AS TEXT) IS NULL OR v.seller_name = :vendedor)
  GROUP BY v.seller_name, v.loja, semana_mes
)
SELECT v.seller_name, v.loja, v.semana_mes, v.total_vendido_semana,
    {_case_semana("v.semana_mes", "m.cota_semana{n}")} AS cota_semana,
    CASE v.semana_mes
{chr(10).join(f"      WHEN {n} THEN v.total_vendido_semana * (m.cota_semana{n + 1} / 100.0)" for n in SEMANAS_MES if n < 6)}
      WHEN 6 THEN 0
      ELSE 0
    END AS comissao_calculada
FROM vendas_semanais v
JOIN metas_lojas_mes m ON v.loja = m.loja
ORDER BY v.loja, v.seller_name, v.semana_mes
"""
