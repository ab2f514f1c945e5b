"""
HOWLO — Networking Bingo for Slack
==================================
Members record real-world networking challenges with ``/howlo``, fill a
fixed 5×5 card, earn XP (with one-time HOWLO line and DENOUT full-board
bonuses) and compete on a monthly leaderboard with automated period
transitions and winner announcements.

Package layout::

    howlo/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # XP values, medals, month names, rank formatting
    ├── errors.py          # Rejection + collaborator failure taxonomy
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # Accomplishment, PeriodAnnouncement
    ├── engine/
    │   ├── grid.py        # Fixed challenge card + completion grid
    │   ├── completion.py  # HOWLO line / DENOUT full-board detection
    │   ├── periods.py     # Launch / extended-launch / monthly classifier
    │   ├── scoring.py     # Submission validation + bonus arithmetic
    │   ├── ranking.py     # Leaderboard entries + ordering
    │   └── leader_tracker.py  # #1 position change detection
    ├── services/
    │   ├── record_store.py        # Record store capability
    │   ├── achievement_service.py # record_achievement + progress
    │   ├── leaderboard_service.py # rank / rank_of
    │   ├── transition_service.py  # Period transition orchestrator
    │   ├── announcement_service.py # Celebrations + leader changes
    │   ├── blocks.py              # Slack Block Kit payload builders
    │   ├── gateway.py             # Messaging gateway (Slack WebClient)
    │   └── card_token.py          # Signed card-link tokens
    ├── bot/
    │   ├── app.py         # slack_bolt handlers
    │   ├── payloads.py    # Tagged-variant Slack payload parsing
    │   ├── scheduler.py   # Transition polling thread
    │   └── __main__.py    # python -m howlo.bot
    └── api/
        ├── main.py        # FastAPI app (card, leaderboard, Slack events)
        ├── deps.py        # Dependency injection
        └── routes/        # card.py, leaderboard.py
"""

__version__ = "0.1.0"
