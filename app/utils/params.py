# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from __future__ import annotations
import re
from typing import Any, List, Optional

"""
Parsing de filtros vindos de query string.


- `csv_texts("A, B,,C")` -> ["A", "B", "C"].
- `csv_ints("1,S2 29/12 a 04/01,x")` -> [1, 2] (pega o primeiro número de cada item).
- `only_digits` para CPF/CNPJ.
"""

_FIRST_INT = re.compile(r"\d+")
_NON_DIGIT = re.compile(r"\D")

def csv_texts(value: Optional[Any]) -> List[str]:
    if value is None or value == "":
        return []
    return [item.strip() for item in str(value).split(",") if item.strip()]

def csv_ints(value: Optional[Any]) -> List[int]:
    out: List[int] = []
    for item in csv_texts(value):
        m = _FIRST_INT.search(item)
        if m:
            out.append(int(m.group(0)))
    return out

def only_digits(value: Optional[Any]) -> str:
    return _NON_DIGIT.sub("", str(value or ""))
