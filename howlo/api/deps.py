"""
howlo.api.deps — FastAPI dependency injection
==============================================
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy import Engine

from howlo.config import HowloConfig, load_config
from howlo.database.engine import create_db_engine
from howlo.engine.periods import PeriodCalendar
from howlo.services.card_token import load_card_token_secret
from howlo.services.record_store import RecordStore


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> HowloConfig:
    return load_config()


@lru_cache(maxsize=1)
def get_card_token_secret() -> str:
    return load_card_token_secret()


def get_store(engine: Annotated[Engine, Depends(get_engine)]) -> RecordStore:
    return RecordStore(engine)


def get_calendar(cfg: Annotated[HowloConfig, Depends(get_config)]) -> PeriodCalendar:
    return PeriodCalendar.from_config(cfg)
