import sqlite3
from collections.abc import Generator, Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from cmsmail.adapters.captcha_store import InMemoryChallengeStore
from cmsmail.adapters.dev_email import DevEmailAdapter
from cmsmail.adapters.sqlite.migrator import SQLiteMigrator
from cmsmail.adapters.sqlite_db import SQLiteUnitOfWork
from cmsmail.api.auth_utils import create_admin_token
from cmsmail.api.deps import (
    Settings,
    get_challenge_store,
    get_email_adapter,
    get_rate_limiter,
    get_rules,
    get_settings,
    get_uow,
)
from cmsmail.api.main import app
from cmsmail.app_shell.rate_limit import RateLimiter
from cmsmail.components.captcha import CaptchaChallenge
from cmsmail.core.errors import DatastoreError
from cmsmail.rules.loader import load_rules
from cmsmail.rules.models import Rules


@pytest.fixture
def rules() -> Rules:
    """Load REAL rules from project root (tests run from project root)."""
    rules_path = Path("rules.yaml").resolve()
    if not rules_path.exists():
        raise FileNotFoundError(f"Rules not found at {rules_path}")
    return load_rules(rules_path)


@pytest.fixture
def test_db_path(tmp_path) -> str:
    """Temporary SQLite DB with the real migrations applied."""
    db_path = str(tmp_path / "cmsmail.db")
    SQLiteMigrator(db_path, "migrations").run_migrations()
    return db_path


@pytest.fixture
def test_settings(tmp_path, test_db_path: str) -> Settings:
    settings = Settings()
    settings.data_dir = tmp_path
    settings.db_path = test_db_path
    return settings


@pytest.fixture
def email_adapter() -> DevEmailAdapter:
    return DevEmailAdapter()


@pytest.fixture
def challenge_store() -> InMemoryChallengeStore:
    return InMemoryChallengeStore()


@pytest.fixture
def rate_limiter(rules: Rules) -> RateLimiter:
    return RateLimiter(rules.rate_limits)


@pytest.fixture
def client(
    test_settings: Settings,
    rules: Rules,
    email_adapter: DevEmailAdapter,
    challenge_store: InMemoryChallengeStore,
    rate_limiter: RateLimiter,
) -> Generator[TestClient, None, None]:
    """Create test client with dependency overrides."""
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_rules] = lambda: rules
    app.dependency_overrides[get_email_adapter] = lambda: email_adapter
    app.dependency_overrides[get_challenge_store] = lambda: challenge_store
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_admin_token('test-admin')}"}


@pytest.fixture
def solved_captcha(challenge_store: InMemoryChallengeStore):
    """Factory putting a known challenge in the store and returning form fields."""
    counter = {"n": 0}

    def _solve() -> dict[str, str]:
        counter["n"] += 1
        challenge_id = f"test-challenge-{counter['n']}"
        challenge_store.put(
            CaptchaChallenge(
                id=challenge_id,
                question="2 + 3",
                answer=5,
                expires_at=datetime.now(UTC) + timedelta(minutes=5),
            )
        )
        return {"captcha_id": challenge_id, "captcha_answer": "5"}

    return _solve


class FailingCommitUnitOfWork(SQLiteUnitOfWork):
    """Unit of work whose commit fails, so every write is rolled back on exit."""

    def commit(self) -> None:
        raise DatastoreError("commit", sqlite3.OperationalError("database is locked"))


@pytest.fixture
def failing_commit(client: TestClient, test_settings: Settings) -> TestClient:
    """Test client whose requests cannot commit."""

    def _uow() -> Iterator[SQLiteUnitOfWork]:
        with FailingCommitUnitOfWork(test_settings.db_path) as uow:
            yield uow

    app.dependency_overrides[get_uow] = _uow
    return client
