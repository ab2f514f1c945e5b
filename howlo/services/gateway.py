"""
howlo.services.gateway — Messaging Gateway
===========================================

The engine never touches Slack directly.  Everything outbound goes
through a :class:`MessagingGateway`; :class:`SlackGateway` is the
production implementation on top of ``slack_sdk``'s ``WebClient``.

Post methods raise on failure (``SlackApiError`` from the SDK, or a
network error from the underlying transport); the announcement service
decides what a failure means.  Callers that only need a name for display
go through :func:`display_name`, which never raises and falls back to a
``<@U…>`` mention.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from slack_sdk.errors import SlackApiError
from slack_sdk.web.client import WebClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MessageContent:
    """Fallback text plus optional Block Kit blocks."""

    text: str
    blocks: list[dict[str, Any]] = field(default_factory=list)


class MessagingGateway(Protocol):
    def resolve_display_name(self, user_id: str) -> str: ...

    def post_ephemeral_message(
        self, channel_id: str, user_id: str, content: MessageContent
    ) -> None: ...

    def post_channel_message(self, channel_id: str, content: MessageContent) -> None: ...

    def post_direct_message(self, user_id: str, content: MessageContent) -> None: ...

    def open_input_form(self, trigger_id: str, form: dict[str, Any]) -> None: ...


def mention(user_id: str) -> str:
    return f"<@{user_id}>"


def display_name(gateway: MessagingGateway, user_id: str) -> str:
    """Best-effort display name; any lookup failure yields a mention."""
    try:
        return gateway.resolve_display_name(user_id)
    except Exception:
        logger.exception("Display name lookup failed for %s", user_id)
        return mention(user_id)


class SlackGateway:
    """:class:`MessagingGateway` backed by the Slack Web API."""

    def __init__(self, client: WebClient) -> None:
        self.client = client

    def resolve_display_name(self, user_id: str) -> str:
        try:
            resp = self.client.users_info(user=user_id)
        except SlackApiError as exc:
            logger.warning("users.info failed for %s: %s", user_id, exc.response.get("error"))
            return mention(user_id)
        user = resp.get("user") or {}
        profile = user.get("profile") or {}
        return (
            user.get("real_name")
            or profile.get("display_name")
            or user.get("name")
            or mention(user_id)
        )

    def post_ephemeral_message(
        self, channel_id: str, user_id: str, content: MessageContent
    ) -> None:
        self.client.chat_postEphemeral(
            channel=channel_id,
            user=user_id,
            text=content.text,
            blocks=content.blocks or None,
        )

    def post_channel_message(self, channel_id: str, content: MessageContent) -> None:
        self.client.chat_postMessage(
            channel=channel_id, text=content.text, blocks=content.blocks or None
        )

    def post_direct_message(self, user_id: str, content: MessageContent) -> None:
        resp = self.client.conversations_open(users=user_id)
        channel_id = resp["channel"]["id"]
        self.client.chat_postMessage(
            channel=channel_id, text=content.text, blocks=content.blocks or None
        )

    def open_input_form(self, trigger_id: str, form: dict[str, Any]) -> None:
        self.client.views_open(trigger_id=trigger_id, view=form)
