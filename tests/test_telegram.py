"""Tests for Telegram delivery."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from minemuse.deliver import enabled_channels
from minemuse.deliver.telegram import TelegramDelivery, format_post
from minemuse.models import ContentPackage, LongFormContent, PlatformContent, QualityReport, Topic


@pytest.fixture
def telegram_config():
    return {
        "deliver": {
            "telegram": {
                "enabled": True,
                "bot_token": "fake-token",
                "chat_id": "12345",
                "max_message_length": 4096,
            }
        }
    }


@pytest.fixture
def package():
    topic = Topic(id="t1", title="Hashrate", description="d", category="network")
    return ContentPackage(
        id="package_1",
        topic=topic,
        long_form=LongFormContent(id="content_1", topic_id="t1", title="Miners & Megawatts", body="Body"),
        quality=QualityReport(0.9, 0.8, 1.0, 0.9, 0.9),
    )


def _mock_bot(mock_bot_cls, message_id=42):
    mock_bot = AsyncMock()
    mock_bot.send_message.return_value = MagicMock(message_id=message_id)
    mock_bot_cls.return_value = mock_bot
    return mock_bot


def test_split_message_short():
    """Short messages are not split."""
    chunks = TelegramDelivery._split_message("hello", 4096)
    assert chunks == ["hello"]


def test_split_message_long():
    """Long messages are split at line boundaries."""
    lines = [f"Line {i}" for i in range(200)]
    text = "\n".join(lines)
    chunks = TelegramDelivery._split_message(text, 100)
    assert len(chunks) > 1
    assert all(len(c) <= 100 for c in chunks)
    # All content preserved
    rejoined = "\n".join(chunks)
    assert rejoined == text


def test_format_post_escapes_html(package):
    variant = PlatformContent(platform="linkedin", text="Fees <rise> & fall")
    message = format_post(package, variant)
    assert message.startswith("<b>Linkedin</b> | Miners &amp; Megawatts")
    assert "<i>Quality 0.90</i>" in message
    assert "Fees &lt;rise&gt; &amp; fall" in message


@pytest.mark.asyncio
@patch("minemuse.deliver.telegram.Bot")
async def test_send_calls_bot(mock_bot_cls, telegram_config):
    """Send calls the Telegram Bot API."""
    mock_bot = _mock_bot(mock_bot_cls)

    delivery = TelegramDelivery(telegram_config)
    ids = await delivery.send("Test message")

    assert ids == [42]
    mock_bot.send_message.assert_called_once_with(
        chat_id="12345",
        text="Test message",
        parse_mode="HTML",
        disable_web_page_preview=True,
    )


@pytest.mark.asyncio
@patch("minemuse.deliver.telegram.Bot")
async def test_publish_returns_reference(mock_bot_cls, telegram_config, package):
    _mock_bot(mock_bot_cls, message_id=7)
    variant = PlatformContent(platform="twitter", text="Hashrate hits a record #Bitcoin")

    reference = await TelegramDelivery(telegram_config).publish(package, variant)
    assert reference == "telegram:7"


@pytest.mark.asyncio
@patch("minemuse.deliver.telegram.Bot")
async def test_publish_failure_returns_none(mock_bot_cls, telegram_config, package):
    """Publish returns None on API failure."""
    mock_bot = _mock_bot(mock_bot_cls)
    mock_bot.send_message.side_effect = Exception("API error")

    variant = PlatformContent(platform="twitter", text="x")
    assert await TelegramDelivery(telegram_config).publish(package, variant) is None


@pytest.mark.asyncio
@patch("minemuse.deliver.telegram.Bot")
async def test_send_test(mock_bot_cls, telegram_config):
    """Test message sends successfully."""
    mock_bot = _mock_bot(mock_bot_cls)

    delivery = TelegramDelivery(telegram_config)
    result = await delivery.send_test()

    assert result is True
    mock_bot.send_message.assert_called_once()


@pytest.mark.asyncio
async def test_send_test_without_config_is_false():
    config = {"deliver": {"telegram": {"bot_token": "", "chat_id": ""}}}
    assert await TelegramDelivery(config).send_test() is False


def test_missing_config_raises():
    """Missing bot_token raises ValueError."""
    config = {"deliver": {"telegram": {"bot_token": "", "chat_id": ""}}}
    delivery = TelegramDelivery(config)
    with pytest.raises(ValueError, match="bot_token"):
        delivery._get_bot()


def test_enabled_channels(telegram_config):
    channels = enabled_channels(telegram_config)
    assert [c.name for c in channels] == ["telegram"]
    assert enabled_channels({}) == []
