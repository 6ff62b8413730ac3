# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import json
import httpx

"""
Peças comuns aos clients de gateways de pagamento.


- `GatewayResponse`: status + corpo (JSON quando possível, senão texto cru).
- `GatewayHttpError`: falha de rede/timeout ao falar com o provedor.
- `GatewayConfigError`: token/credencial ausente.
"""


class GatewayHttpError(RuntimeError):
    """Erro de rede ao chamar um gateway de pagamento."""

class GatewayConfigError(RuntimeError):
    """Gateway sem credencial configurada."""


@dataclass
class GatewayResponse:
    status: int
    data: Any = None
    text: str = ""
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json_or_empty(self) -> Dict[str, Any]:
        return self.data if isinstance(self.data, dict) else {}

    @classmethod
    def from_httpx(cls, resp: httpx.Response) -> "GatewayResponse":
        text = resp.text
        try:
            data = json.loads(text) if text else None
        except ValueError:
            data = text
        return cls(status=resp.status_code, data=data, text=text, headers=dict(resp.headers))


def find_link(links: Optional[list], rel_match) -> Optional[str]:
    """Primeiro `href` cujo `rel` satisfaz `rel_match(rel)`."""
    for link in links or []:
        if isinstance(link, dict) and rel_match(str(link.get("rel") or "")):
            return link.get("href")
    return None
