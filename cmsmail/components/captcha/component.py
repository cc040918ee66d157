"""
Captcha component.

Issues "a + b" challenges and verifies answers before any public form
touches the datastore. Challenges are single-use and expire after the
configured TTL.
"""

from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta
from random import Random

from cmsmail.components.captcha.models import (
    CaptchaChallenge,
    CaptchaConfig,
    IssueChallengeOutput,
    VerifyChallengeInput,
    VerifyChallengeOutput,
)
from cmsmail.components.captcha.ports import ChallengeStorePort

_rng = Random()


def generate_challenge(
    config: CaptchaConfig,
    now: datetime,
    rng: Random | None = None,
) -> CaptchaChallenge:
    """Build a new challenge with operands in the configured range."""
    r = rng or _rng
    left = r.randint(config.min_operand, config.max_operand)
    right = r.randint(config.min_operand, config.max_operand)
    return CaptchaChallenge(
        id=secrets.token_urlsafe(16),
        question=f"{left} + {right}",
        answer=left + right,
        expires_at=now + timedelta(seconds=config.ttl_seconds),
    )


def check_answer(challenge: CaptchaChallenge | None, answer: str, now: datetime) -> str | None:
    """Return the rejection reason, or None when the answer is accepted."""
    if challenge is None:
        return "unknown"
    if now > challenge.expires_at:
        return "expired"
    try:
        value = int(answer.strip())
    except (AttributeError, ValueError):
        return "malformed"
    if value != challenge.answer:
        return "mismatch"
    return None


def run_issue(
    store: ChallengeStorePort,
    config: CaptchaConfig | None = None,
    now: datetime | None = None,
    rng: Random | None = None,
) -> IssueChallengeOutput:
    cfg = config or CaptchaConfig()
    current = now or datetime.now(UTC)

    store.purge_expired(current)
    challenge = generate_challenge(cfg, current, rng)
    store.put(challenge)

    return IssueChallengeOutput(
        challenge_id=challenge.id,
        question=challenge.question,
        expires_at=challenge.expires_at,
    )


def run_verify(
    inp: VerifyChallengeInput,
    store: ChallengeStorePort,
    now: datetime | None = None,
) -> VerifyChallengeOutput:
    """Verify an answer; the challenge is consumed whatever the outcome."""
    current = now or datetime.now(UTC)
    challenge = store.pop(inp.challenge_id)
    reason = check_answer(challenge, inp.answer, current)
    return VerifyChallengeOutput(is_valid=reason is None, reason=reason)
