import os
from collections.abc import Iterator
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from cmsmail.adapters.captcha_store import InMemoryChallengeStore
from cmsmail.adapters.dev_email import DevEmailAdapter
from cmsmail.adapters.sqlite_db import SQLiteContactRepo, SQLiteUnitOfWork
from cmsmail.adapters.subscription_mail import SubscriptionEmailSender
from cmsmail.api.auth_utils import ADMIN_ROLE, decode_token
from cmsmail.app_shell.rate_limit import RateLimiter
from cmsmail.components.captcha.models import CaptchaConfig
from cmsmail.components.contacts.models import ContactsConfig
from cmsmail.components.subscription.models import SubscriptionConfig
from cmsmail.rules.loader import load_rules
from cmsmail.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("CMSMAIL_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "cmsmail.db")
        self.rules_path = Path(
            os.environ.get("CMSMAIL_RULES_PATH", str(self.base_dir / "rules.yaml"))
        )
        self.migrations_dir = self.base_dir / "migrations"


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


def get_contacts_config(rules: Rules = Depends(get_rules)) -> ContactsConfig:
    return ContactsConfig(
        recipient_name_min=rules.contacts.recipient_name.min,
        recipient_name_max=rules.contacts.recipient_name.max,
        email_pattern=rules.contacts.email_pattern,
    )


def get_subscription_config(rules: Rules = Depends(get_rules)) -> SubscriptionConfig:
    sub = rules.subscription
    return SubscriptionConfig(
        site_name=sub.site_name,
        base_url=sub.base_url,
        confirm_path=sub.confirm_path,
        cancel_path=sub.cancel_path,
        unsubscribe_path=sub.unsubscribe_path,
        send_mail=sub.send_mail,
    )


def get_captcha_config(rules: Rules = Depends(get_rules)) -> CaptchaConfig:
    return CaptchaConfig(
        min_operand=rules.captcha.min_operand,
        max_operand=rules.captcha.max_operand,
        ttl_seconds=rules.captcha.ttl_seconds,
    )


# --- Repos ---
def get_contact_repo(settings: Settings = Depends(get_settings)) -> SQLiteContactRepo:
    return SQLiteContactRepo(settings.db_path)


def get_uow(settings: Settings = Depends(get_settings)) -> Iterator[SQLiteUnitOfWork]:
    """One transaction per request; routes commit explicitly, anything else rolls back."""
    with SQLiteUnitOfWork(settings.db_path) as uow:
        yield uow


# --- Mail ---
_email_adapter_instance: DevEmailAdapter | None = None


def get_email_adapter() -> DevEmailAdapter:
    """Get mail adapter singleton."""
    global _email_adapter_instance
    if _email_adapter_instance is None:
        _email_adapter_instance = DevEmailAdapter()
    return _email_adapter_instance


def get_subscription_email_sender(
    email: DevEmailAdapter = Depends(get_email_adapter),
) -> SubscriptionEmailSender:
    return SubscriptionEmailSender(email)


# --- Captcha ---
_challenge_store_instance: InMemoryChallengeStore | None = None


def get_challenge_store() -> InMemoryChallengeStore:
    """Get challenge store singleton."""
    global _challenge_store_instance
    if _challenge_store_instance is None:
        _challenge_store_instance = InMemoryChallengeStore()
    return _challenge_store_instance


# --- Rate limiting ---
_rate_limiter_instance: RateLimiter | None = None


def get_rate_limiter(rules: Rules = Depends(get_rules)) -> RateLimiter:
    """Get rate limiter singleton."""
    global _rate_limiter_instance
    if _rate_limiter_instance is None:
        _rate_limiter_instance = RateLimiter(rules.rate_limits)
    return _rate_limiter_instance


# --- Auth ---
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_admin(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> dict[str, Any]:
    """Claims of a valid admin bearer token."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("role") != ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required",
        )

    return payload
