"""In-memory captcha challenge store.

Implements ChallengeStorePort for the captcha component. Challenges live
only as long as the process; a restart simply invalidates open forms.
"""

from datetime import datetime
from threading import Lock

from cmsmail.components.captcha.models import CaptchaChallenge


class InMemoryChallengeStore:
    """Challenge storage suitable for single-process deployments."""

    def __init__(self) -> None:
        self._challenges: dict[str, CaptchaChallenge] = {}
        self._lock = Lock()

    def put(self, challenge: CaptchaChallenge) -> None:
        with self._lock:
            self._challenges[challenge.id] = challenge

    def pop(self, challenge_id: str) -> CaptchaChallenge | None:
        """Remove and return a challenge; a second pop returns None."""
        with self._lock:
            return self._challenges.pop(challenge_id, None)

    def purge_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [k for k, v in self._challenges.items() if v.expires_at < now]
            for key in expired:
                del self._challenges[key]
            return len(expired)

    def __len__(self) -> int:
        return len(self._challenges)

    def clear(self) -> None:
        """Clear all challenges - useful for testing."""
        with self._lock:
            self._challenges.clear()
