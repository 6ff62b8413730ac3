# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from __future__ import annotations
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Union

"""
Regras puras da agenda (sem I/O).


- `weekday_name(d)` -> nome do dia em português, igual ao gravado em `horarios_estabelecimento`.
- `generate_slots(abertura, fechamento, duracao)` -> "HH:MM" de abertura até fechamento (inclusive).
- `free_slots(...)` remove horários já ocupados.
"""

DIAS_SEMANA = [
    "Segunda-feira",
    "Terça-feira",
    "Quarta-feira",
    "Quinta-feira",
    "Sexta-feira",
    "Sábado",
    "Domingo",
]

MAX_DIA_SEMANA_LENGTH = 15

TimeLike = Union[time, str]

def weekday_name(d: date) -> str:
    return DIAS_SEMANA[d.weekday()]

def truncate_dia_semana(dia: str) -> str:
    return dia[:MAX_DIA_SEMANA_LENGTH] if isinstance(dia, str) else dia

def _as_time(value: TimeLike) -> time:
    if isinstance(value, time):
        return value
    parts = [int(p) for p in str(value).split(":")]
    while len(parts) < 3:
        parts.append(0)
    return time(parts[0], parts[1], parts[2])

def hhmm(value: Union[datetime, time]) -> str:
    return value.strftime("%H:%M")

def generate_slots(abertura: TimeLike, fechamento: TimeLike, duracao_minutos: int) -> List[str]:
    if duracao_minutos <= 0:
        raise ValueError("duracao_minutos must be positive")
    day = date(1970, 1, 1)
    current = datetime.combine(day, _as_time(abertura))
    end = datetime.combine(day, _as_time(fechamento))
    step = timedelta(minutes=duracao_minutos)
    slots: List[str] = []
    # sem virada de dia: para no fim do dia mesmo que fechamento seja 23:59
    while current <= end and current.date() == day:
        slots.append(hhmm(current))
        current += step
    return slots

def free_slots(abertura: TimeLike, fechamento: TimeLike, duracao_minutos: int, ocupados: Iterable[str]) -> List[str]:
    taken = set(ocupados)
    return [s for s in generate_slots(abertura, fechamento, duracao_minutos) if s not in taken]
