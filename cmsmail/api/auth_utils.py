"""
Signed tokens.

Two kinds of HS256 JWT are issued: admin bearer tokens (``role=admin``),
minted by the CLI, and erase tickets (``typ=erase_ticket``) that carry a
pending erase between the prompt and the answer.
"""

import os
from datetime import UTC, datetime, timedelta
from typing import Any, cast

from jose import jwt

from cmsmail.components.contacts.models import EraseConfirmation

SECRET_KEY = os.environ.get("CMSMAIL_SECRET_KEY", "dev-secret-unsafe")
ALGORITHM = "HS256"
ADMIN_TOKEN_TTL = timedelta(minutes=60)

ADMIN_ROLE = "admin"
ERASE_TICKET_TYPE = "erase_ticket"


def sign_token(claims: dict[str, Any], ttl: timedelta, now_utc: datetime | None = None) -> str:
    """Sign claims with an ``exp`` of now + ttl; now_utc is injectable for tests."""
    issued = now_utc or datetime.now(UTC)
    token: str = jwt.encode({**claims, "exp": issued + ttl}, SECRET_KEY, algorithm=ALGORITHM)
    return token


def decode_token(token: str) -> dict[str, Any] | None:
    """Claims of a valid token; None when forged, malformed or expired."""
    try:
        return cast(dict[str, Any], jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM]))
    except jwt.JWTError:
        return None


def create_admin_token(subject: str, ttl_minutes: int | None = None) -> str:
    ttl = timedelta(minutes=ttl_minutes) if ttl_minutes else ADMIN_TOKEN_TTL
    return sign_token({"sub": subject, "role": ADMIN_ROLE}, ttl)


def create_erase_ticket(
    confirmation: EraseConfirmation,
    ttl_seconds: int,
    now_utc: datetime | None = None,
) -> str:
    """Sign a pending erase so the client can hand it back with its answer."""
    claims = {
        "typ": ERASE_TICKET_TYPE,
        "action": confirmation.action,
        "target": confirmation.target_key,
        "question": confirmation.question,
    }
    return sign_token(claims, timedelta(seconds=ttl_seconds), now_utc)


def read_erase_ticket(ticket: str) -> EraseConfirmation | None:
    claims = decode_token(ticket)
    if not claims or claims.get("typ") != ERASE_TICKET_TYPE:
        return None

    target = claims.get("target")
    action = claims.get("action")
    if not isinstance(target, str) or not isinstance(action, str):
        return None

    return EraseConfirmation(
        target_key=target,
        question=str(claims.get("question", "")),
        action=action,
    )
