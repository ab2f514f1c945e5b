"""
howlo.database.engine — Engine, Sessions & Thread Bridge
=========================================================

HOWLO reaches the database from three places:

- Bolt listeners, which slack_bolt runs on its own worker threads.
- The :class:`~howlo.bot.scheduler.TransitionScheduler` thread.
- The FastAPI card route, which is ``async`` and hands its query to a
  worker thread through :func:`run_db`.

All of them share one :class:`Engine`.  PostgreSQL is the production
target; a ``sqlite://`` URL is accepted for local play and runs without
pool sizing and with cross-thread connections enabled.

Each :func:`get_session` block is one transaction.  The record store's
bonus award nests a SAVEPOINT inside it, so a losing write on the
partial unique index rolls back on its own without touching the rest.

Usage::

    engine = create_db_engine()          # DATABASE_URL from .env
    init_db(engine)                      # dev / tests; Alembic in production

    with get_session(engine) as session:
        session.add(record)

    progress = await run_db(get_progress, store, calendar, user_id, now)
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session

from howlo.database.models import Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

# Bolt's listener pool plus the scheduler and API threads
POOL_SIZE = 5
MAX_OVERFLOW = 10


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def engine_options(url: str) -> dict[str, Any]:
    """Keyword arguments for :func:`create_engine` given the backend of *url*."""
    if make_url(url).get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": POOL_SIZE,
        "max_overflow": MAX_OVERFLOW,
        "pool_pre_ping": True,
        "pool_timeout": 10,
        "pool_recycle": 3600,
    }


def create_db_engine(url: str | None = None) -> Engine:
    """Build the shared :class:`Engine` from *url* or ``DATABASE_URL``.

    Raises
    ------
    RuntimeError
        If neither is set.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and point it at the HOWLO database."
        )

    engine = create_engine(url, echo=False, **engine_options(url))
    logger.info(
        "Database engine created → %s (%s)",
        engine.url.host or engine.url.database or "memory",
        engine.url.get_backend_name(),
    )
    return engine


def init_db(engine: Engine) -> None:
    """Create ``accomplishments`` and ``period_announcements`` if missing."""
    Base.metadata.create_all(engine)
    logger.info("HOWLO tables verified / created.")


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """One transaction: commit on success, roll back on exception.

    Objects stay loaded after commit so records can be returned to callers.
    """
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run synchronous store work on a worker thread from async code."""
    return await asyncio.to_thread(func, *args, **kwargs)
