"""Captcha component - arithmetic challenges for the public forms."""

from cmsmail.components.captcha.component import (
    check_answer,
    generate_challenge,
    run_issue,
    run_verify,
)
from cmsmail.components.captcha.models import (
    CaptchaChallenge,
    CaptchaConfig,
    IssueChallengeOutput,
    VerifyChallengeInput,
    VerifyChallengeOutput,
)
from cmsmail.components.captcha.ports import ChallengeStorePort

__all__ = [
    "run_issue",
    "run_verify",
    "generate_challenge",
    "check_answer",
    "CaptchaChallenge",
    "CaptchaConfig",
    "IssueChallengeOutput",
    "VerifyChallengeInput",
    "VerifyChallengeOutput",
    "ChallengeStorePort",
]
