# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any

"""
Helpers de dinheiro (BRL).


- `to_cents`: reais -> centavos (arredondamento comercial).
- `format_brl`: "R$ 1.234,56".
- `normalize_money`: aceita "1.234,56", "1234.56", "R$ 10,00" ou número (vazio/inválido -> 0).
- `format_percent`: "12.34%" (mesmo formato que o front já exibe).
"""

def to_cents(value: Any) -> int:
    amount = Decimal(str(value or 0))
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def format_brl(value: Any) -> str:
    amount = Decimal(str(value or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    integer, _, frac = f"{abs(amount):.2f}".partition(".")
    groups = []
    while len(integer) > 3:
        groups.insert(0, integer[-3:])
        integer = integer[:-3]
    groups.insert(0, integer)
    return f"{sign}R$ {'.'.join(groups)},{frac}"

def format_percent(value: Any, digits: int = 2) -> str:
    amount = Decimal(str(value or 0)).quantize(Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP)
    return f"{amount:.{digits}f}%"

def normalize_money(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    s = str(value).strip().replace("R$", "").replace(" ", "")
    if "," in s:
        # formato brasileiro: ponto = milhar, vírgula = decimal
        s = s.replace(".", "").replace(",", ".")
    try:
        return float(Decimal(s))
    except InvalidOperation:
        return 0.0
