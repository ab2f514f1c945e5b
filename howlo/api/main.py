"""
howlo.api.main — FastAPI application entry point
=================================================

Serves the card view and leaderboard JSON.  When the bot runs in HTTP
mode, :func:`mount_slack_events` adds ``POST /slack/events`` for Slack's
Events API and interactivity requests.

Run standalone with::

    uvicorn howlo.api.main:app --port 8000
"""

from __future__ import annotations

import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from slack_bolt import App
from slack_bolt.adapter.fastapi import SlackRequestHandler

load_dotenv()

from howlo.api.routes.card import router as card_router  # noqa: E402
from howlo.api.routes.leaderboard import router as leaderboard_router  # noqa: E402

logger = logging.getLogger(__name__)


app = FastAPI(title="HOWLO API", version="0.1.0")

app.include_router(card_router, prefix="/api")
app.include_router(leaderboard_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}


def mount_slack_events(api: FastAPI, bolt_app: App) -> None:
    """Route Slack HTTP requests into *bolt_app*."""
    handler = SlackRequestHandler(bolt_app)

    @api.post("/slack/events")
    async def slack_events(req: Request):
        return await handler.handle(req)

    logger.info("Slack events endpoint mounted at /slack/events")
