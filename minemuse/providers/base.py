"""Abstract base class for metric providers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from minemuse.config import get_source_config
from minemuse.errors import MalformedResponse, ProviderUnavailable

logger = logging.getLogger(__name__)

USER_AGENT = "MineMuse/0.1 (+https://github.com/minemuse)"


class BaseProvider(ABC):
    """Fetch one metric from one upstream endpoint.

    ``fetch`` returns the raw number in the provider's native unit or
    raises ProviderUnavailable / MalformedResponse.
    """

    metric: str = ""
    source: str = ""
    default_base_url: str = ""

    def __init__(self, config: dict):
        self.config = config
        cfg = get_source_config(config, self.source)
        self.enabled = bool(cfg.get("enabled", True))
        self.base_url = (cfg.get("base_url") or self.default_base_url).rstrip("/")
        self.timeout = float(cfg["timeout"])

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name recorded as the value's source."""
        ...

    @abstractmethod
    async def fetch(self) -> float:
        ...

    async def _get(self, url: str) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": USER_AGENT},
                follow_redirects=True,
            ) as client:
                resp = await client.get(url)
                resp.raise_for_status()
                return resp
        except httpx.HTTPStatusError as exc:
            raise ProviderUnavailable(self.name, f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise ProviderUnavailable(self.name, f"{type(exc).__name__}: {exc}") from exc

    async def _get_json(self, url: str) -> Any:
        resp = await self._get(url)
        try:
            return resp.json()
        except ValueError as exc:
            raise MalformedResponse(self.name, "body is not JSON") from exc

    async def _get_text(self, url: str) -> str:
        resp = await self._get(url)
        return resp.text

    def _number(self, value: Any, field: str) -> float:
        """Coerce a payload field to float or raise MalformedResponse."""
        if value is None or isinstance(value, bool):
            raise MalformedResponse(self.name, f"missing {field}")
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise MalformedResponse(self.name, f"{field}={value!r} is not numeric") from exc

    async def _get_dict(self, url: str) -> dict:
        data = await self._get_json(url)
        if not isinstance(data, dict):
            raise MalformedResponse(self.name, f"expected object, got {type(data).__name__}")
        return data
