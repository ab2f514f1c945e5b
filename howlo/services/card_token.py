"""
howlo.services.card_token — Signed card-view links
===================================================

``/howlo progress`` and the HOWLO celebration link to a read-only view of
a user's card.  The link carries a short-lived HS256 JWT whose subject is
the Slack user ID, so the card endpoint needs no login.
"""

from __future__ import annotations

import logging
import os
from datetime import UTC, datetime, timedelta

import jwt
from jwt.exceptions import InvalidTokenError

logger = logging.getLogger(__name__)

CARD_TOKEN_ALGORITHM = "HS256"
CARD_TOKEN_SCOPE = "card"
DEFAULT_TTL_SECONDS = 3600

_WEAK_SECRETS = frozenset({
    "howlo-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32


def load_card_token_secret() -> str:
    """Load and validate CARD_TOKEN_SECRET from the environment.

    Raises RuntimeError if the secret is missing, a known weak default,
    or shorter than 32 characters.
    """
    secret = os.getenv("CARD_TOKEN_SECRET", "")
    if not secret:
        raise RuntimeError(
            "CARD_TOKEN_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"CARD_TOKEN_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"CARD_TOKEN_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


def issue_card_token(
    user_id: str,
    secret: str,
    ttl_seconds: int = DEFAULT_TTL_SECONDS,
    now: datetime | None = None,
) -> str:
    issued = now or datetime.now(UTC)
    payload = {
        "sub": user_id,
        "scope": CARD_TOKEN_SCOPE,
        "iat": issued,
        "exp": issued + timedelta(seconds=ttl_seconds),
    }
    return jwt.encode(payload, secret, algorithm=CARD_TOKEN_ALGORITHM)


def verify_card_token(token: str, secret: str) -> str | None:
    """Return the user ID the token was issued for, or ``None`` if the
    token is malformed, tampered with, expired or not a card token."""
    try:
        payload = jwt.decode(token, secret, algorithms=[CARD_TOKEN_ALGORITHM])
    except InvalidTokenError as exc:
        logger.info("Rejected card token: %s", exc)
        return None
    if payload.get("scope") != CARD_TOKEN_SCOPE:
        return None
    return payload.get("sub")


def card_url(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/api/card?token={token}"
