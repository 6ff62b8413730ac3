# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from __future__ import annotations
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Tuple

"""
Regras puras de faturamento (sem I/O).

- `invoice_total(itens)` soma quantidade × valor (Decimal, 2 casas).
- `item_reference(item)` decide a coluna de referência do item (servico_id/produto_id).
"""

ITEM_TIPOS = {"servico": "servico_id", "produto": "produto_id"}

def _dec(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    return Decimal(str(value))

def line_total(quantidade: Any, valor: Any) -> Decimal:
    return _dec(quantidade) * _dec(valor)

def invoice_total(itens: Iterable[Mapping[str, Any]]) -> Decimal:
    total = sum((line_total(i.get("quantidade"), i.get("valor")) for i in itens), Decimal("0"))
    return total.quantize(Decimal("0.01"))

def item_reference(item: Mapping[str, Any]) -> Optional[Tuple[str, Any]]:
    """
    Retorna (coluna, id) para o item ou None quando o tipo é inválido.

    Sem `tipo`, o item é de serviço (`servico_id`); com `tipo`, usa `item_id`
    ou a coluna explícita correspondente.
    """
    tipo = item.get("tipo") or "servico"
    column = ITEM_TIPOS.get(tipo)
    if column is None:
        return None
    ref = item.get("item_id")
    if ref is None:
        ref = item.get(column)
    return column, ref
