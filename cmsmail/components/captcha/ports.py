"""Captcha component ports."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from cmsmail.components.captcha.models import CaptchaChallenge


class ChallengeStorePort(Protocol):
    """Short-lived storage of issued challenges."""

    def put(self, challenge: CaptchaChallenge) -> None:
        ...

    def pop(self, challenge_id: str) -> CaptchaChallenge | None:
        """Remove and return a challenge (single use)."""
        ...

    def purge_expired(self, now: datetime) -> int:
        """Drop expired challenges, returning how many were dropped."""
        ...
