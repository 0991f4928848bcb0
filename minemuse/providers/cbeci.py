"""Cambridge Bitcoin Electricity Consumption Index (CBECI)."""

from __future__ import annotations

from typing import Any

from minemuse.errors import MalformedResponse
from minemuse.providers import register_provider
from minemuse.providers.base import BaseProvider


class _Cbeci(BaseProvider):
    source = "cbeci"
    default_base_url = "https://ccaf.io/cbeci/api"
    field = ""

    @property
    def name(self) -> str:
        return "cbeci"

    async def fetch(self) -> float:
        payload = await self._get_json(f"{self.base_url}/country")
        return self._number(self._find(payload), self.field)

    def _find(self, payload: Any) -> Any:
        # Either a summary object or a per-country list with a total row
        if isinstance(payload, dict):
            if self.field in payload:
                return payload[self.field]
            payload = payload.get("data") or []
        if isinstance(payload, list):
            for row in payload:
                if isinstance(row, dict) and self.field in row:
                    return row[self.field]
        raise MalformedResponse(self.name, f"no {self.field}")


@register_provider("energy_consumption_twh", priority=10)
class CbeciConsumption(_Cbeci):
    field = "total_consumption"


@register_provider("renewable_percent", priority=10)
class CbeciRenewableShare(_Cbeci):
    field = "renewable_percentage"
