"""
howlo.config — YAML Configuration Loader
=========================================

Reads ``config.yaml`` for the game calendar (launch and first monthly
reset), the announcements channel and display tuning.  Secrets (Slack
tokens, database URL, card-token secret) come from the environment.

Usage::

    from howlo.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.game_name)         # "HOWLO"
    print(cfg.launch_start)      # 2025-03-24 00:00:00-07:00
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class HowloConfig:
    """Immutable configuration loaded from ``config.yaml``.

    ``launch_start`` and ``first_monthly_reset_start`` are timezone-aware
    and bound the extended-launch period.
    """

    # Identity
    game_name: str
    timezone: ZoneInfo

    # Calendar
    launch_start: datetime
    first_monthly_reset_start: datetime

    # Slack
    announcements_channel_id: str | None = None
    app_base_url: str = ""

    # Display / tuning
    leaderboard_size: int = 10
    winners_count: int = 3
    tracker_top_n: int = 5
    transition_interval_seconds: int = 300
    card_token_ttl_seconds: int = 3600

    # Validation rules
    reject_duplicate_companion: bool = False


def _parse_instant(value: object, tz: ZoneInfo) -> datetime:
    """Parse a YAML date/datetime/ISO string into an aware datetime in *tz*."""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> HowloConfig:
    """Read *path* and return a :class:`HowloConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    ValueError
        If the launch does not start before the first monthly reset.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh)

    return config_from_mapping(raw)


def config_from_mapping(raw: dict) -> HowloConfig:
    """Build a :class:`HowloConfig` from an already-parsed mapping."""
    tz = ZoneInfo(raw["timezone"])
    launch_start = _parse_instant(raw["launch_start"], tz)
    first_reset = _parse_instant(raw["first_monthly_reset_start"], tz)
    if launch_start >= first_reset:
        raise ValueError(
            "launch_start must be earlier than first_monthly_reset_start "
            f"({launch_start.isoformat()} >= {first_reset.isoformat()})"
        )

    return HowloConfig(
        game_name=raw["game_name"],
        timezone=tz,
        launch_start=launch_start,
        first_monthly_reset_start=first_reset,
        announcements_channel_id=(
            str(raw["announcements_channel_id"])
            if raw.get("announcements_channel_id") else None
        ),
        app_base_url=raw.get("app_base_url", "") or "",
        leaderboard_size=int(raw.get("leaderboard_size", 10)),
        winners_count=int(raw.get("winners_count", 3)),
        tracker_top_n=int(raw.get("tracker_top_n", 5)),
        transition_interval_seconds=int(raw.get("transition_interval_seconds", 300)),
        card_token_ttl_seconds=int(raw.get("card_token_ttl_seconds", 3600)),
        reject_duplicate_companion=bool(raw.get("reject_duplicate_companion", False)),
    )
