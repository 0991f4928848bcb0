"""Delivery channel registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from minemuse.deliver.base import BaseDelivery

CHANNELS: dict[str, type[BaseDelivery]] = {}


def register_channel(name: str):
    """Decorator to register a delivery channel."""

    def decorator(cls):
        CHANNELS[name] = cls
        return cls

    return decorator


def enabled_channels(config: dict) -> list[BaseDelivery]:
    """Instantiate every channel switched on under ``deliver:``."""
    deliver = config.get("deliver", {})
    channels = []
    for name, cls in CHANNELS.items():
        if deliver.get(name, {}).get("enabled", False):
            channels.append(cls(config))
    return channels


from minemuse.deliver.dryrun import DryRunDelivery  # noqa: E402, F401
from minemuse.deliver.telegram import TelegramDelivery  # noqa: E402, F401
