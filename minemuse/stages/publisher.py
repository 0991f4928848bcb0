"""Publisher stage: push a finished package's variants to delivery channels."""

from __future__ import annotations

import logging
from datetime import datetime

from minemuse.deliver import enabled_channels
from minemuse.deliver.base import BaseDelivery
from minemuse.deliver.dryrun import DryRunDelivery
from minemuse.errors import StageFailed
from minemuse.models import ContentPackage, Publication
from minemuse.stages import register_stage
from minemuse.stages.base import Stage

logger = logging.getLogger(__name__)


@register_stage("publisher")
class PublisherStage(Stage[ContentPackage, ContentPackage]):
    """Send every platform variant through every enabled channel.

    The package is marked ``published`` when at least one post went out.
    With no channel enabled the dry-run channel is used.
    """

    def __init__(self, config: dict, channels: list[BaseDelivery] | None = None):
        super().__init__(config)
        if channels is None:
            channels = enabled_channels(config) or [DryRunDelivery(config)]
        self.channels = channels

    @property
    def name(self) -> str:
        return "Publishing"

    async def process(self, package: ContentPackage) -> ContentPackage:
        for variant in package.platform_variants:
            for channel in self.channels:
                reference = await channel.publish(package, variant)
                if reference is None:
                    logger.warning("%s did not accept %s post", channel.name, variant.platform)
                    continue
                package.publications.append(
                    Publication(platform=variant.platform, channel=channel.name, reference=reference)
                )

        if package.platform_variants and not package.publications:
            raise StageFailed(self.name, package.topic.title, "no channel accepted any post")
        if package.publications:
            package.status = "published"
        package.updated_at = datetime.utcnow()
        return package
