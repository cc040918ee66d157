"""
Captcha component models.

Arithmetic challenges guarding the public subscription forms.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class CaptchaChallenge:
    """Issued challenge; the answer never leaves the server."""

    id: str
    question: str
    answer: int
    expires_at: datetime


@dataclass(frozen=True)
class CaptchaConfig:
    min_operand: int = 1
    max_operand: int = 9
    ttl_seconds: int = 600


@dataclass(frozen=True)
class IssueChallengeOutput:
    """Public part of a challenge."""

    challenge_id: str
    question: str
    expires_at: datetime


@dataclass(frozen=True)
class VerifyChallengeInput:
    challenge_id: str
    answer: str


@dataclass(frozen=True)
class VerifyChallengeOutput:
    is_valid: bool
    reason: str | None = None  # "unknown", "expired", "mismatch", "malformed"
