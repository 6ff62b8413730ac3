# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from __future__ import annotations
from dataclasses import dataclass, field, asdict, replace
from datetime import datetime, timezone
from typing import Any, Optional

"""
Store explícito de pedidos da loja (MercadoPago).


- Pertence à aplicação (`app.state.order_store`), criado no startup e injetado via deps.
- Indexado por `referencia`; guarda também o conjunto de referências pagas.
- Operações síncronas no event loop: nenhuma intercalação dentro de uma operação.
- Não é persistente; o registro definitivo continua na tabela `pedido`.
"""

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Order:
    referencia: str
    email: str
    nome: Optional[str] = None
    descricao: Optional[str] = None
    total: Optional[float] = None
    metodo: Optional[str] = None
    status: Optional[str] = None
    criado_em: str = field(default_factory=_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class OrderStore:
    def __init__(self) -> None:
        self._orders: dict[str, Order] = {}
        self._paid: set[str] = set()

    def save(self, order: Order) -> Order:
        self._orders[order.referencia] = order
        return order

    def set_status(self, referencia: str, status: str) -> Optional[Order]:
        """Atualiza o status apenas se o pedido existir."""
        current = self._orders.get(referencia)
        if current is None:
            return None
        updated = replace(current, status=status)
        self._orders[referencia] = updated
        return updated

    def get(self, referencia: str) -> Optional[Order]:
        return self._orders.get(referencia)

    def list_by_email(self, email: str) -> list[Order]:
        needle = (email or "").strip().lower()
        found = [o for o in self._orders.values() if (o.email or "").strip().lower() == needle]
        return sorted(found, key=lambda o: o.criado_em, reverse=True)

    def mark_paid(self, referencia: str) -> None:
        self._paid.add(referencia)

    def is_paid(self, referencia: str) -> bool:
        return referencia in self._paid

    def clear(self) -> None:
        self._orders.clear()
        self._paid.clear()

    def __len__(self) -> int:
        return len(self._orders)
