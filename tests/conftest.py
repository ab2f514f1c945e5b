"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# A valid card-token secret for every test run.  howlo.api.deps reads it
# through load_card_token_secret, which rejects short or weak values.
# ---------------------------------------------------------------------------
_TEST_CARD_SECRET = "test-card-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("CARD_TOKEN_SECRET", _TEST_CARD_SECRET)

from datetime import datetime  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402
from zoneinfo import ZoneInfo  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from howlo.config import HowloConfig, config_from_mapping  # noqa: E402
from howlo.database.models import Base  # noqa: E402
from howlo.engine.grid import all_non_free_slots  # noqa: E402
from howlo.engine.periods import PeriodCalendar  # noqa: E402
from howlo.services.gateway import SlackGateway  # noqa: E402
from howlo.services.record_store import RecordStore  # noqa: E402

TZ = ZoneInfo("America/Los_Angeles")

CONFIG = {
    "game_name": "HOWLO",
    "timezone": "America/Los_Angeles",
    "launch_start": "2025-03-24T00:00:00",
    "first_monthly_reset_start": "2025-05-01T00:00:00",
    "announcements_channel_id": "C_ANNOUNCE",
    "app_base_url": "https://howlo.example.com",
}


def local(*args: int) -> datetime:
    """Aware datetime in the game's timezone."""
    return datetime(*args, tzinfo=TZ)


def slot_texts() -> list[str]:
    return [s.text for s in all_non_free_slots()]


@pytest.fixture
def cfg() -> HowloConfig:
    return config_from_mapping(dict(CONFIG))


@pytest.fixture
def calendar(cfg: HowloConfig) -> PeriodCalendar:
    return PeriodCalendar.from_config(cfg)


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with all HOWLO tables.

    StaticPool keeps one shared connection so ``asyncio.to_thread`` (used
    by ``run_db``) sees the same in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def store(db_engine: Engine) -> RecordStore:
    return RecordStore(db_engine)


@pytest.fixture
def gateway() -> MagicMock:
    """A mock messaging gateway whose display names are ``Name <id>``."""
    gw = MagicMock(spec=SlackGateway)
    gw.resolve_display_name.side_effect = lambda uid: f"Name {uid}"
    return gw
