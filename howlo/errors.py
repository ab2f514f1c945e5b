"""
howlo.errors — Error taxonomy
==============================

Validation-class errors (:class:`SubmissionRejected` and subclasses) are
recoverable: the scoring service turns them into a structured rejection
that the Slack modal shows next to the offending input block.

Collaborator failures (:class:`PersistenceFailure`,
:class:`RankingUnavailable`) propagate to the caller untouched.
"""

from __future__ import annotations


class HowloError(Exception):
    """Base class for all HOWLO errors."""


# ---------------------------------------------------------------------------
# Validation — surfaced to the submitting user, no state change
# ---------------------------------------------------------------------------
class SubmissionRejected(HowloError):
    """A submission failed validation.

    ``field`` names the modal block the message belongs to.
    """

    field: str = "challenge_block"

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if field is not None:
            self.field = field


class ValidationError(SubmissionRejected):
    """A required field is missing or empty."""

    field = "location_block"


class InvalidChallenge(SubmissionRejected):
    """The challenge text does not match any non-free slot on the card."""

    field = "challenge_block"


class AmbiguousCompanion(SubmissionRejected):
    """Zero or both companion identification methods were supplied."""

    field = "companion_user_block"


class DuplicateCompanion(SubmissionRejected):
    """The companion was already tagged by this user in this period."""

    field = "companion_user_block"


# ---------------------------------------------------------------------------
# Collaborator failures — propagate, never retried here
# ---------------------------------------------------------------------------
class PersistenceFailure(HowloError):
    """The record store failed to read or write."""


class RankingUnavailable(HowloError):
    """The leaderboard aggregation query failed."""
