"""
Pytest configuration and common fixtures for Omnichat tests.

Provides a throwaway SQLite database per test, seeded channels, settings
built from test environment variables and a fake sender factory that
records every send instead of calling the Graph API.
"""

import itertools
import os
import tempfile
from collections.abc import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest

from omnichat.campaigns.throttle import TokenBucket
from omnichat.core.config.settings import Settings
from omnichat.database.manager import Database
from omnichat.models.database_models import AutoResponseRule, Channel
from omnichat.models.enums import Platform, TriggerType
from omnichat.repositories.channels import ChannelRepository
from omnichat.schemas.results import SendResult

TEST_APP_SECRET = "test_app_secret"
TEST_VERIFY_TOKEN = "test_verify_token"
WHATSAPP_PHONE_ID = "109876543210"
WABA_ID = "200000000000001"
PAGE_ID = "300000000000001"
INSTAGRAM_ID = "400000000000001"


# Environment setup for tests
@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("ENVIRONMENT", "DEV")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("META_ACCESS_TOKEN", "test_token")
    monkeypatch.setenv("META_APP_SECRET", TEST_APP_SECRET)
    monkeypatch.setenv("META_WEBHOOK_VERIFY_TOKEN", TEST_VERIFY_TOKEN)
    monkeypatch.setenv("WHATSAPP_BUSINESS_ACCOUNT_ID", WABA_ID)
    monkeypatch.delenv("DELIVERY_STATUS_MONOTONIC", raising=False)


@pytest.fixture
def test_settings() -> Settings:
    """Settings read from the test environment."""
    return Settings()


@pytest.fixture
def temp_db() -> Generator[str, None, None]:
    """Create a temporary SQLite database for testing."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as tmp:
        db_path = tmp.name

    db_url = f"sqlite+aiosqlite:///{db_path}"
    yield db_url

    # Cleanup
    try:
        os.unlink(db_path)
    except OSError:
        pass


@pytest.fixture
async def database(temp_db):
    """Initialized database with the full schema."""
    db = Database(temp_db, max_retries=1)
    await db.initialize()
    yield db
    await db.dispose()


@pytest.fixture
def db(database):
    """Session factory handed to repositories and services."""
    return database.session_factory


async def add_channel(db, platform: Platform, platform_id: str, **settings) -> Channel:
    return await ChannelRepository(db).add(
        Channel(
            name=f"{platform.value} test channel",
            platform=platform,
            platform_id=platform_id,
            settings=settings,
        )
    )


async def add_keyword_rule(
    db, channel_id: int, keywords: str, response: str, priority: int = 0, is_active: bool = True
) -> AutoResponseRule:
    rule = AutoResponseRule(
        channel_id=channel_id,
        name=f"rule {keywords}",
        trigger_type=TriggerType.KEYWORD,
        trigger_value=keywords,
        response=response,
        priority=priority,
        is_active=is_active,
    )
    async with db() as session:
        session.add(rule)
        await session.flush()
        return rule


@pytest.fixture
async def whatsapp_channel(db) -> Channel:
    return await add_channel(db, Platform.WHATSAPP, WHATSAPP_PHONE_ID, waba_id=WABA_ID)


@pytest.fixture
async def instagram_channel(db) -> Channel:
    return await add_channel(db, Platform.INSTAGRAM, INSTAGRAM_ID)


@pytest.fixture
async def facebook_channel(db) -> Channel:
    return await add_channel(db, Platform.FACEBOOK, PAGE_ID)


class FakeSender:
    """Records sends and hands out sequential wamid-style ids."""

    platform = Platform.WHATSAPP
    sender_id = WHATSAPP_PHONE_ID

    def __init__(self):
        self._ids = itertools.count(1)
        self.failing_recipients: set[str] = set()
        self.send_text = AsyncMock(side_effect=self._send)
        self.send_template = AsyncMock(side_effect=self._send)
        self.send_media = AsyncMock(side_effect=self._send)

    async def _send(self, recipient: str, *args, **kwargs) -> SendResult:
        if recipient in self.failing_recipients:
            raise RuntimeError("invalid recipient")
        return SendResult(
            message_id=f"wamid.TEST{next(self._ids)}",
            recipient=recipient,
            platform=self.platform,
        )


@pytest.fixture
def fake_sender() -> FakeSender:
    return FakeSender()


@pytest.fixture
def sender_factory(fake_sender):
    """SenderFactory stand-in returning the fake sender for every channel."""
    factory = MagicMock()
    factory.create_sender = AsyncMock(return_value=fake_sender)
    factory.create_client = AsyncMock()
    return factory


@pytest.fixture
def limiter() -> TokenBucket:
    """Token bucket that never has to wait."""
    return TokenBucket(rate=10_000, capacity=10_000, sleep=AsyncMock())
