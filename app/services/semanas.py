# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from __future__ import annotations
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

"""
Semanas do calendário comercial (ISO, segunda a domingo).


- `parse_year` valida ano 1900..2100.
- `week_option` monta `{ano, semana, inicio, fim, value, label}` com label "S{n} dd/mm a dd/mm".
- `pivot_weeks` agrupa linhas por loja em dicts `semanas`, completando semanas faltantes com zeros.
"""

MIN_YEAR = 1900
MAX_YEAR = 2100

DateLike = Union[date, datetime, str]


def parse_year(value: Any) -> Optional[int]:
    """Ano inteiro dentro de 1900..2100, ou None quando inválido."""
    try:
        year = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return year if MIN_YEAR <= year <= MAX_YEAR else None

def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])

def ddmm(value: DateLike) -> str:
    return _as_date(value).strftime("%d/%m")

def week_option(ano: int, semana: int, inicio: DateLike, fim: DateLike) -> Dict[str, Any]:
    return {
        "ano": ano,
        "semana": semana,
        "inicio": _as_date(inicio).isoformat(),
        "fim": _as_date(fim).isoformat(),
        "value": str(semana),
        "label": f"S{semana} {ddmm(inicio)} a {ddmm(fim)}",
    }

def distinct_weeks(rows: Iterable[Mapping[str, Any]], week_field: str = "semana") -> List[int]:
    return sorted({row[week_field] for row in rows if row.get(week_field) is not None})

def pivot_weeks(
    rows: Iterable[Mapping[str, Any]],
    key: str,
    header: Sequence[str],
    cells: Mapping[str, str],
    semanas: Sequence[int],
    week_field: str = "semana",
) -> List[Dict[str, Any]]:
    """
    Agrupa linhas por `key`; `header` vem da primeira linha do grupo e cada semana vira
    `semanas[n] = {saida: linha[coluna]}`. Semanas de `semanas` sem linha ficam zeradas.

    >>> pivot_weeks([{"loja": "A", "semana": 2, "total": 5}], "loja", [], {"realizado": "total"}, [1, 2])
    [{'loja': 'A', 'semanas': {2: {'realizado': 5}, 1: {'realizado': 0}}}]
    """
    grouped: Dict[Any, Dict[str, Any]] = {}
    for row in rows:
        item = grouped.get(row[key])
        if item is None:
            item = {key: row[key], **{c: row.get(c) for c in header}, "semanas": {}}
            grouped[row[key]] = item
        week = row.get(week_field)
        if week is not None:
            item["semanas"][week] = {out: row.get(col) for out, col in cells.items()}
    for item in grouped.values():
        for week in semanas:
            item["semanas"].setdefault(week, {out: 0 for out in cells})
    return list(grouped.values())
