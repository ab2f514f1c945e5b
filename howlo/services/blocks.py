"""
howlo.services.blocks — Slack Block Kit builders
=================================================

All message and modal construction lives here so the services and bot
handlers only need to supply data — no layout concerns.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from howlo.constants import (
    BASE_XP,
    FULL_BOARD_BONUS_XP,
    LINE_BONUS_XP,
    MAX_OPTION_LABEL,
    RANK_BADGES,
    TROPHY,
    format_rank,
    ordinal,
)
from howlo.engine.grid import BINGO_CARD, ChallengeSlot, all_non_free_slots
from howlo.engine.ranking import LeaderboardEntry
from howlo.services.gateway import MessageContent

# Modal identifiers shared with howlo.bot.payloads
SUBMISSION_CALLBACK_ID = "howlo_record_accomplishment"
CHALLENGE_BLOCK, CHALLENGE_ACTION = "challenge_block", "challenge_select"
COMPANION_USER_BLOCK, COMPANION_USER_ACTION = "companion_user_block", "companion_user_select"
COMPANION_NAME_BLOCK, COMPANION_NAME_ACTION = "companion_name_block", "companion_name_input"
LOCATION_BLOCK, LOCATION_ACTION = "location_block", "location_input"


def _section(text: str) -> dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def _context(text: str) -> dict[str, Any]:
    return {"type": "context", "elements": [{"type": "mrkdwn", "text": text}]}


def _header(text: str) -> dict[str, Any]:
    return {"type": "header", "text": {"type": "plain_text", "text": text, "emoji": True}}


def _truncate(text: str, limit: int = MAX_OPTION_LABEL) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def _podium_badge(position: int) -> str:
    return RANK_BADGES[position - 1] if position <= len(RANK_BADGES) else TROPHY


# ---------------------------------------------------------------------------
# Submission flow
# ---------------------------------------------------------------------------
def build_submission_modal(
    channel_id: str, card: Sequence[ChallengeSlot] = BINGO_CARD
) -> dict[str, Any]:
    """The "Record Accomplishment" modal.

    Option values are slot indexes; labels are truncated to Slack's limit.
    The originating channel rides along in ``private_metadata``.
    """
    options = [
        {
            "text": {"type": "plain_text", "text": _truncate(slot.text)},
            "value": str(slot.index),
        }
        for slot in all_non_free_slots(card)
    ]
    return {
        "type": "modal",
        "callback_id": SUBMISSION_CALLBACK_ID,
        "private_metadata": json.dumps({"channel_id": channel_id}),
        "title": {"type": "plain_text", "text": "Record Accomplishment"},
        "submit": {"type": "plain_text", "text": "Submit"},
        "close": {"type": "plain_text", "text": "Cancel"},
        "blocks": [
            {
                "type": "input",
                "block_id": CHALLENGE_BLOCK,
                "label": {"type": "plain_text", "text": "Choose a challenge"},
                "element": {
                    "type": "static_select",
                    "action_id": CHALLENGE_ACTION,
                    "placeholder": {"type": "plain_text", "text": "Select a challenge..."},
                    "options": options,
                },
            },
            {
                "type": "input",
                "block_id": COMPANION_USER_BLOCK,
                "optional": True,
                "label": {"type": "plain_text", "text": "Tag a workspace member"},
                "element": {
                    "type": "users_select",
                    "action_id": COMPANION_USER_ACTION,
                    "placeholder": {"type": "plain_text", "text": "Select a user"},
                },
            },
            {
                "type": "input",
                "block_id": COMPANION_NAME_BLOCK,
                "optional": True,
                "label": {"type": "plain_text", "text": "...or type their name"},
                "hint": {
                    "type": "plain_text",
                    "text": "For people outside Slack. Fill in exactly one of the two.",
                },
                "element": {
                    "type": "plain_text_input",
                    "action_id": COMPANION_NAME_ACTION,
                    "placeholder": {"type": "plain_text", "text": "e.g. Jane Doe"},
                },
            },
            {
                "type": "input",
                "block_id": LOCATION_BLOCK,
                "label": {"type": "plain_text", "text": "Event or Location"},
                "element": {
                    "type": "plain_text_input",
                    "action_id": LOCATION_ACTION,
                    "placeholder": {
                        "type": "plain_text",
                        "text": "Where did this happen? (e.g., SD Startup Week, Coffee Chat)",
                    },
                },
            },
        ],
    }


def build_rejection_errors(field: str, message: str) -> dict[str, Any]:
    """``view_submission`` ack payload that pins *message* to *field*."""
    return {"response_action": "errors", "errors": {field: message}}


def build_accomplishment_message(
    user_id: str,
    challenge: str,
    companion_mention: str,
    location: str,
    xp: int,
) -> MessageContent:
    text = f'Accomplishment recorded for <@{user_id}>: *"{challenge}"* with *{companion_mention}*'
    if location:
        text += f" at *{location}*"
    text += f"! (+{xp} XP)" if xp else "!"
    return MessageContent(text=text, blocks=[_section(text)])


def build_companion_notification(
    tagger_name: str, tagger_id: str, challenge: str, location: str, channel_id: str
) -> MessageContent:
    text = (
        f"Hey there! *{tagger_name}* (<@{tagger_id}>) just tagged you in a HOWLO "
        f'challenge: *"{challenge}"* at *{location}*. '
        f"Check out <#{channel_id}> to see their progress!"
    )
    return MessageContent(text=text, blocks=[_section(text)])


def build_line_celebration(user_id: str, card_url: str | None = None) -> MessageContent:
    text = f"\U0001f389 *HOWLO!* \U0001f389 <@{user_id}> has completed a line! (+{LINE_BONUS_XP} XP)"
    if card_url:
        text += f" View their card here: {card_url}"
    return MessageContent(text=text, blocks=[_section(text)])


def build_full_board_celebration(user_id: str, card_url: str | None = None) -> MessageContent:
    text = (
        f"\U0001f43a *DENOUT!* \U0001f43a <@{user_id}> has completed the entire card! "
        f"(+{FULL_BOARD_BONUS_XP} XP)"
    )
    if card_url:
        text += f" View their card here: {card_url}"
    return MessageContent(text=text, blocks=[_section(text)])


# ---------------------------------------------------------------------------
# Leaderboard & standings
# ---------------------------------------------------------------------------
def build_leaderboard(
    game_name: str,
    period_label: str,
    entries: Sequence[LeaderboardEntry],
    names: dict[str, str],
) -> MessageContent:
    title = f"{TROPHY} {game_name} Leaderboard — {period_label}"
    if not entries:
        body = "No accomplishments yet this period! Be the first with `/howlo` \U0001f3af"
    else:
        lines = []
        for entry in entries:
            marker = _podium_badge(entry.rank) if entry.rank <= 3 else f"{entry.rank}."
            flags = ""
            if entry.has_line_bonus:
                flags += " \U0001f3af"
            if entry.has_full_board_bonus:
                flags += " \U0001f43a"
            lines.append(
                f"{marker} *{names.get(entry.user_id, f'<@{entry.user_id}>')}* — "
                f"{entry.total_xp} XP ({entry.achievement_count} challenges){flags}"
            )
        body = "\n".join(lines)
    return MessageContent(text=title, blocks=[_header(title), _section(body)])


def build_rank_message(rank: int | None, period_label: str) -> MessageContent:
    text = f"Your {period_label} standing: *{format_rank(rank)}*"
    return MessageContent(text=text, blocks=[_section(text)])


def build_progress_message(
    period_label: str,
    total_xp: int,
    completed: int,
    line_count: int,
    full_board: bool,
    card_url: str | None,
) -> MessageContent:
    lines = [
        f"*Your HOWLO progress — {period_label}*",
        f"• {completed} of {len(all_non_free_slots(BINGO_CARD))} challenges completed",
        f"• {line_count} line{'s' if line_count != 1 else ''} complete",
        f"• {total_xp} XP earned",
    ]
    if full_board:
        lines.append("• \U0001f43a Full card complete!")
    if card_url:
        lines.append(f"View your HOWLO Bingo progress: {card_url}")
    text = "\n".join(lines)
    return MessageContent(text=text, blocks=[_section(text)])


def build_card_message(card_url: str) -> MessageContent:
    text = f"View your HOWLO Card: {card_url}"
    return MessageContent(text=text, blocks=[_section(text)])


def build_rules_message(game_name: str) -> MessageContent:
    text = (
        f"*How to Play {game_name}*\n\n"
        "*\U0001f3ae Commands:*\n"
        "• `/howlo` — log a challenge\n"
        "• `/howlo card` — see the card\n"
        "• `/howlo progress` — check your progress\n"
        "• `/howlo leaderboard` — view the leaderboard\n"
        "• `/howlo rank` — your current place\n"
        "• `/howlo rules` — this message\n\n"
        "*✅ Logging a Challenge:*\n"
        "1. Type `/howlo`\n"
        "2. Select your completed challenge\n"
        "3. Tag the person you connected with, or type their name\n"
        "4. Enter the event location\n\n"
        "*\U0001f3af Scoring:*\n"
        f"• {BASE_XP} XP for every challenge\n"
        f"• {LINE_BONUS_XP} XP bonus for your first row, column or diagonal (HOWLO!)\n"
        f"• {FULL_BOARD_BONUS_XP} XP bonus for completing the whole card\n"
        "• The leaderboard resets every month"
    )
    return MessageContent(text=text, blocks=[_section(text)])


def build_help_message(unknown: str) -> MessageContent:
    text = (
        f"Sorry, I don't know `/howlo {unknown}`. Try `/howlo`, `/howlo leaderboard`, "
        "`/howlo rank`, `/howlo progress`, `/howlo card` or `/howlo rules`."
    )
    return MessageContent(text=text)


def build_error_message(text: str) -> MessageContent:
    return MessageContent(text=f"⚠️ {text}")


# ---------------------------------------------------------------------------
# Period announcements
# ---------------------------------------------------------------------------
def build_leader_change(
    game_name: str,
    new_leader_name: str,
    new_leader_xp: int,
    previous_leader_name: str,
    footer: str,
) -> MessageContent:
    return MessageContent(
        text=f"{new_leader_name} has taken the #1 spot on the {game_name} leaderboard!",
        blocks=[
            _header("\U0001f451 NEW LEADERBOARD CHAMPION! \U0001f451"),
            _section(
                f"*{new_leader_name}* has taken the #1 spot with *{new_leader_xp} XP*!"
            ),
            _section(
                f"They've overtaken {previous_leader_name} in an exciting turn of events! "
                "The competition is heating up!"
            ),
            _context(footer),
        ],
    )


def build_launch_announcement(
    game_name: str, launch_label: str, first_reset_label: str
) -> MessageContent:
    text = (
        f"*\U0001f680 {game_name} XP System is Now Live! \U0001f680*\n\n"
        f"The {game_name} XP system has officially launched! During {launch_label}:\n"
        f"• Earn {BASE_XP} XP for each achievement you record\n"
        f"• Get {LINE_BONUS_XP} XP bonus for completing a bingo\n"
        f"• Unlock {FULL_BOARD_BONUS_XP} XP bonus for completing all challenges\n\n"
        f"This extended launch period runs until the first monthly reset on "
        f"{first_reset_label}.\n\n"
        "Good luck and have fun competing! Check the current standings with "
        "`/howlo leaderboard`"
    )
    return MessageContent(
        text=f"{game_name} XP System is Now Live!", blocks=[_section(text)]
    )


def build_winners_announcement(
    game_name: str,
    period_label: str,
    winners: Sequence[LeaderboardEntry],
    names: dict[str, str],
    next_period_label: str,
) -> MessageContent:
    lines = [f"*{TROPHY} {game_name} Leaderboard — {period_label} FINAL RESULTS {TROPHY}*", ""]
    for position, entry in enumerate(winners, start=1):
        name = names.get(entry.user_id, f"<@{entry.user_id}>")
        lines.append(f"{_podium_badge(position)} *{name}* - {entry.total_xp} XP")
    lines += [
        "",
        f"*A new period has begun! The {next_period_label} leaderboard is now active.*",
        "All XP counters have been reset, but your achievements are preserved in the records!",
    ]
    return MessageContent(
        text=f"{game_name} {period_label} Winners Announced!",
        blocks=[_section("\n".join(lines))],
    )


def build_winner_dm(
    game_name: str,
    position: int,
    total_xp: int,
    period_label: str,
    next_period_label: str,
) -> MessageContent:
    badge = _podium_badge(position)
    place = ordinal(position)
    return MessageContent(
        text=f"Congratulations! You placed {place} in the {game_name} {period_label} competition!",
        blocks=[
            _header(f"{badge} Congratulations on Your Achievement! {badge}"),
            _section(
                f"You placed *{place}* in the {game_name} {period_label} competition "
                f"with *{total_xp} XP*!\n\n*A new period has begun!* The "
                f"{next_period_label} leaderboard is now active."
            ),
        ],
    )
