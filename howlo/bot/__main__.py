"""
howlo.bot.__main__ — Entry point for ``python -m howlo.bot``
=============================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (game calendar, channels).
3. Create the SQLAlchemy engine and ensure tables exist.
4. Build the Slack gateway, leader tracker and handler context.
5. Start the period transition scheduler.
6. Run the Bolt app, over Socket Mode or HTTP (uvicorn + FastAPI).
"""

from __future__ import annotations

import logging
import os
import sys

import uvicorn
from dotenv import load_dotenv
from slack_bolt.adapter.socket_mode import SocketModeHandler
from slack_sdk.web.client import WebClient

from howlo.bot.app import HowloContext, create_app
from howlo.bot.scheduler import TransitionScheduler
from howlo.config import load_config
from howlo.database.engine import create_db_engine, init_db
from howlo.engine.leader_tracker import LeaderChangeTracker
from howlo.engine.periods import PeriodCalendar
from howlo.services.card_token import load_card_token_secret
from howlo.services.gateway import SlackGateway
from howlo.services.record_store import RecordStore
from howlo.services.transition_service import run_period_transition_check

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("howlo")


def main() -> None:
    """Bootstrap and run the HOWLO bot."""

    # 1. Environment variables (secrets).
    load_dotenv()

    token = os.getenv("SLACK_BOT_TOKEN")
    if not token:
        logger.critical(
            "SLACK_BOT_TOKEN is not set.  "
            "Copy .env.example → .env and paste your bot token."
        )
        sys.exit(1)
    use_socket_mode = os.getenv("USE_SOCKET_MODE", "true").lower() == "true"

    # 2. Soft configuration.
    cfg = load_config()
    logger.info("Config loaded — Game: %s (tz %s)", cfg.game_name, cfg.timezone)

    # 3. Database.
    engine = create_db_engine()
    init_db(engine)

    # 4. Context.
    ctx = HowloContext(
        cfg=cfg,
        calendar=PeriodCalendar.from_config(cfg),
        store=RecordStore(engine),
        gateway=SlackGateway(WebClient(token=token)),
        tracker=LeaderChangeTracker(top_n=cfg.tracker_top_n),
        card_token_secret=load_card_token_secret(),
    )
    app = create_app(ctx, token, os.getenv("SLACK_SIGNING_SECRET"))

    # 5. Period transitions.
    scheduler = TransitionScheduler(
        lambda now: run_period_transition_check(
            ctx.store, ctx.gateway, ctx.cfg, ctx.calendar, now
        ),
        interval_seconds=cfg.transition_interval_seconds,
    )
    scheduler.start()

    # 6. Run (blocks until Ctrl+C or SIGTERM).
    try:
        if use_socket_mode:
            app_token = os.getenv("APP_LEVEL_TOKEN")
            if not app_token:
                logger.critical("APP_LEVEL_TOKEN is required for Socket Mode.")
                sys.exit(1)
            logger.info("Starting in Socket Mode")
            SocketModeHandler(app, app_token).start()
        else:
            from howlo.api.main import app as api, mount_slack_events

            mount_slack_events(api, app)
            port = int(os.getenv("PORT", "3000"))
            logger.info("Starting HTTP mode on port %d", port)
            uvicorn.run(api, host="0.0.0.0", port=port)
    finally:
        scheduler.stop()


if __name__ == "__main__":
    main()
