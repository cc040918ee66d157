"""Public captcha endpoint used by the subscription forms."""

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from cmsmail.adapters.captcha_store import InMemoryChallengeStore
from cmsmail.api.deps import get_captcha_config, get_challenge_store
from cmsmail.components.captcha import CaptchaConfig, run_issue

router = APIRouter()


class CaptchaResponse(BaseModel):
    challenge_id: str
    question: str
    expires_at: datetime


@router.get("/captcha", response_model=CaptchaResponse)
def issue_captcha(
    store: InMemoryChallengeStore = Depends(get_challenge_store),
    config: CaptchaConfig = Depends(get_captcha_config),
) -> CaptchaResponse:
    """Issue a new single-use challenge; the answer stays on the server."""
    challenge = run_issue(store, config)
    return CaptchaResponse(
        challenge_id=challenge.challenge_id,
        question=challenge.question,
        expires_at=challenge.expires_at,
    )
