"""Telegram delivery channel."""

from __future__ import annotations

import html
import logging

from telegram import Bot

from minemuse.deliver import register_channel
from minemuse.deliver.base import BaseDelivery
from minemuse.models import ContentPackage, PlatformContent

logger = logging.getLogger(__name__)


def format_post(package: ContentPackage, variant: PlatformContent) -> str:
    """HTML message for one platform variant."""
    header = f"<b>{html.escape(variant.platform.title())}</b> | {html.escape(package.long_form.title)}"
    score = ""
    if package.quality is not None:
        score = f"\n<i>Quality {package.quality.overall:.2f}</i>"
    return f"{header}{score}\n\n{html.escape(variant.text)}"


@register_channel("telegram")
class TelegramDelivery(BaseDelivery):
    """Send generated posts to a Telegram chat for review."""

    @property
    def name(self) -> str:
        return "telegram"

    def _get_bot(self) -> tuple[Bot, str]:
        cfg = self.config.get("deliver", {}).get("telegram", {})
        token = cfg.get("bot_token", "")
        chat_id = cfg.get("chat_id", "")
        if not token or not chat_id:
            raise ValueError("Telegram bot_token and chat_id must be configured")
        return Bot(token=token), str(chat_id)

    async def send(self, message: str) -> list[int]:
        """Send an HTML message, split at line boundaries. Returns message ids."""
        bot, chat_id = self._get_bot()
        max_len = self.config.get("deliver", {}).get("telegram", {}).get(
            "max_message_length", 4096
        )
        chunks = self._split_message(message, max_len)
        ids = []
        for chunk in chunks:
            sent = await bot.send_message(
                chat_id=chat_id,
                text=chunk,
                parse_mode="HTML",
                disable_web_page_preview=True,
            )
            ids.append(sent.message_id)
        logger.info("Sent %d message(s) to Telegram", len(chunks))
        return ids

    async def publish(self, package: ContentPackage, variant: PlatformContent) -> str | None:
        try:
            ids = await self.send(format_post(package, variant))
        except Exception:
            logger.exception("Failed to publish %s post to Telegram", variant.platform)
            return None
        return f"telegram:{ids[0]}" if ids else None

    async def send_test(self) -> bool:
        """Send a test message to verify Telegram configuration."""
        try:
            await self.send("<b>MineMuse</b> test message. Configuration OK.")
            logger.info("Telegram test message sent successfully")
            return True
        except Exception:
            logger.exception("Telegram test failed")
            return False

    @staticmethod
    def _split_message(text: str, max_len: int = 4096) -> list[str]:
        """Split a long message into chunks at line boundaries."""
        if len(text) <= max_len:
            return [text]

        chunks = []
        current = ""
        for line in text.split("\n"):
            if len(current) + len(line) + 1 > max_len:
                if current:
                    chunks.append(current)
                current = line
            else:
                current = f"{current}\n{line}" if current else line

        if current:
            chunks.append(current)

        return chunks
