"""Abstract base class for delivery channels."""

from __future__ import annotations

from abc import ABC, abstractmethod

from minemuse.models import ContentPackage, PlatformContent


class BaseDelivery(ABC):
    """Base class for publishing channels."""

    def __init__(self, config: dict):
        self.config = config

    @abstractmethod
    async def publish(self, package: ContentPackage, variant: PlatformContent) -> str | None:
        """Publish one platform variant. Returns a channel reference, or None on failure."""
        ...

    @abstractmethod
    async def send_test(self) -> bool:
        """Send a test message to verify configuration."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Channel name."""
        ...
