"""
howlo.bot.payloads — Slack payload parsing
===========================================

Slack hands Bolt listeners loosely-shaped dicts.  Every interaction the
bot handles is parsed here, once, into a frozen dataclass; handlers and
services never index into raw payloads.

Two variants:

- :class:`SlashCommand` — ``/howlo [subcommand]``
- :class:`AchievementSubmission` — ``view_submission`` of the record modal

Malformed payloads raise :class:`PayloadError`, carrying the modal block
the message belongs to when there is one.
"""

from __future__ import annotations

import enum
import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from howlo.engine.grid import BINGO_CARD, ChallengeSlot, slot_at
from howlo.engine.scoring import Companion
from howlo.services.blocks import (
    CHALLENGE_ACTION,
    CHALLENGE_BLOCK,
    COMPANION_NAME_ACTION,
    COMPANION_NAME_BLOCK,
    COMPANION_USER_ACTION,
    COMPANION_USER_BLOCK,
    LOCATION_ACTION,
    LOCATION_BLOCK,
    SUBMISSION_CALLBACK_ID,
)


class PayloadError(ValueError):
    """A Slack payload could not be parsed."""

    def __init__(self, message: str, field: str = CHALLENGE_BLOCK) -> None:
        super().__init__(message)
        self.field = field


class CommandKind(enum.StrEnum):
    RECORD = "record"
    LEADERBOARD = "leaderboard"
    RANK = "rank"
    PROGRESS = "progress"
    CARD = "card"
    RULES = "rules"
    HELP = "help"


_SUBCOMMANDS: dict[str, CommandKind] = {
    "": CommandKind.RECORD,
    "leaderboard": CommandKind.LEADERBOARD,
    "rank": CommandKind.RANK,
    "progress": CommandKind.PROGRESS,
    "card": CommandKind.CARD,
    "rules": CommandKind.RULES,
    "help": CommandKind.RULES,
}


@dataclass(frozen=True, slots=True)
class SlashCommand:
    kind: CommandKind
    user_id: str
    channel_id: str
    trigger_id: str
    text: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> SlashCommand:
        try:
            user_id = payload["user_id"]
            channel_id = payload["channel_id"]
        except KeyError as exc:
            raise PayloadError(f"Slash command payload missing {exc.args[0]}") from exc

        text = (payload.get("text") or "").strip()
        subcommand = text.split()[0].lower() if text else ""
        return cls(
            kind=_SUBCOMMANDS.get(subcommand, CommandKind.HELP),
            user_id=user_id,
            channel_id=channel_id,
            trigger_id=payload.get("trigger_id", ""),
            text=text,
        )


@dataclass(frozen=True, slots=True)
class AchievementSubmission:
    user_id: str
    channel_id: str
    challenge: str
    companion: Companion
    location: str

    @classmethod
    def from_view(
        cls,
        body: Mapping[str, Any],
        card: Sequence[ChallengeSlot] = BINGO_CARD,
    ) -> AchievementSubmission:
        """Parse a ``view_submission`` body for the record modal.

        The challenge select carries a slot index; it is resolved to the
        slot's text so the scoring engine matches on text as usual.
        """
        view = body.get("view") or {}
        if view.get("callback_id") != SUBMISSION_CALLBACK_ID:
            raise PayloadError(f"Unexpected view callback {view.get('callback_id')!r}")

        user_id = (body.get("user") or {}).get("id")
        if not user_id:
            raise PayloadError("Submission payload has no user")

        values = (view.get("state") or {}).get("values") or {}

        def element(block: str, action: str) -> Mapping[str, Any]:
            return (values.get(block) or {}).get(action) or {}

        selected = element(CHALLENGE_BLOCK, CHALLENGE_ACTION).get("selected_option") or {}
        raw_choice = selected.get("value") or ""
        try:
            challenge = slot_at(int(raw_choice), card).text
        except (ValueError, IndexError):
            challenge = raw_choice

        try:
            metadata = json.loads(view.get("private_metadata") or "{}")
        except json.JSONDecodeError as exc:
            raise PayloadError("Submission metadata is not valid JSON") from exc
        if not isinstance(metadata, dict):
            raise PayloadError("Submission metadata must be a JSON object")

        return cls(
            user_id=user_id,
            channel_id=metadata.get("channel_id") or user_id,
            challenge=challenge,
            companion=Companion(
                user_id=element(COMPANION_USER_BLOCK, COMPANION_USER_ACTION).get("selected_user"),
                name=element(COMPANION_NAME_BLOCK, COMPANION_NAME_ACTION).get("value"),
            ),
            location=element(LOCATION_BLOCK, LOCATION_ACTION).get("value") or "",
        )
