"""Channel that only logs what would have been published."""

from __future__ import annotations

import logging
import uuid

from minemuse.deliver import register_channel
from minemuse.deliver.base import BaseDelivery
from minemuse.models import ContentPackage, PlatformContent

logger = logging.getLogger(__name__)


@register_channel("dry_run")
class DryRunDelivery(BaseDelivery):

    @property
    def name(self) -> str:
        return "dry_run"

    async def publish(self, package: ContentPackage, variant: PlatformContent) -> str | None:
        reference = f"dry_{variant.platform}_{uuid.uuid4().hex[:8]}"
        logger.info(
            "[dry run] %s post for '%s' (%d chars) -> %s",
            variant.platform, package.long_form.title, variant.char_count, reference,
        )
        return reference

    async def send_test(self) -> bool:
        logger.info("[dry run] test message")
        return True
