"""Pytest fixtures and configuration."""

from __future__ import annotations

import os
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

# Set environment variables before importing app modules
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["BCRYPT_ROUNDS"] = "4"

from app.auth.security import CredentialManager  # noqa: E402
from app.core.config import Settings  # noqa: E402
from app.core.utils import utc_now  # noqa: E402
from app.repositories.local_repo import LocalRepository  # noqa: E402


class FakeClock:
    """Controllable clock for expiry tests, starting at the current time.

    Tokens issued from it are checked against the real clock, so it must not
    start in the past.
    """

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or utc_now().replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


@pytest.fixture
def temp_data_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test data."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings(temp_data_dir: Path) -> Settings:
    return Settings(
        environment="test",
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        storage_backend="local",
        local_data_dir=temp_data_dir,
        income_sources=["Uber", "Fiverr"],
        income_categories=["Payroll"],
        deduction_categories=["Tax", "Insurance"],
    )


@pytest.fixture
def repo(temp_data_dir: Path) -> LocalRepository:
    return LocalRepository(temp_data_dir)


@pytest.fixture
def credentials(settings: Settings) -> CredentialManager:
    return CredentialManager(settings)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sample_transactions() -> list[dict[str, Any]]:
    """Provider-shaped transactions: positive amounts leave the account."""
    return [
        {
            "transaction_id": "t1",
            "date": "2026-01-05",
            "name": "Uber 063015 SF**POOL**",
            "merchant_name": "Uber",
            "amount": -250.0,
            "category": ["Transfer", "Deposit"],
        },
        {
            "transaction_id": "t2",
            "date": "2026-02-03",
            "name": "UBER PAYMENTS",
            "merchant_name": None,
            "amount": -100.5,
            "category": ["Transfer", "Deposit"],
        },
        {
            "transaction_id": "t3",
            "date": "2026-01-20",
            "name": "Fiverr payout",
            "merchant_name": "Fiverr",
            "amount": -80.0,
            "category": ["Transfer", "Credit"],
        },
        {
            "transaction_id": "t4",
            "date": "2025-12-31",
            "name": "ACME CORP PAYROLL",
            "merchant_name": None,
            "amount": -1200.0,
            "category": ["Transfer", "Payroll"],
        },
        {
            "transaction_id": "t5",
            "date": "2026-01-15",
            "name": "IRS quarterly estimate",
            "merchant_name": None,
            "amount": 300.0,
            "category": ["Tax", "Payment"],
        },
        {
            "transaction_id": "t6",
            "date": "2026-02-10",
            "name": "State Farm",
            "merchant_name": "State Farm",
            "amount": 45.25,
            "category": ["Service", "Insurance"],
        },
        {
            "transaction_id": "t7",
            "date": "2026-02-11",
            "name": "Starbucks",
            "merchant_name": "Starbucks",
            "amount": 4.33,
            "category": ["Food and Drink", "Restaurants", "Coffee Shop"],
        },
        {
            "transaction_id": "t8",
            "date": "2026-01-28",
            "name": "United Airlines",
            "merchant_name": "United Airlines",
            "amount": 500.0,
            "category": ["Travel", "Airlines and Aviation Services"],
        },
        {
            "transaction_id": "t9",
            "date": "2026-02-12",
            "name": "McDonald's",
            "merchant_name": "McDonald's",
            "amount": 12.0,
            "category": ["Food and Drink", "Restaurants", "Fast Food"],
        },
    ]


@pytest.fixture
def sample_balances() -> list[dict[str, Any]]:
    """Provider-shaped balance accounts."""
    return [
        {"account_id": "a1", "type": "depository", "subtype": "checking", "balances": {"current": 110.0}},
        {"account_id": "a2", "type": "depository", "subtype": "savings", "balances": {"current": 210.0}},
        {"account_id": "a3", "type": "credit", "subtype": "credit card", "balances": {"current": 410.0}},
        {"account_id": "a4", "type": "loan", "subtype": "student", "balances": {"current": 65262.0}},
        {"account_id": "a5", "type": "depository", "subtype": "cd", "balances": {"current": None}},
    ]


@pytest.fixture
def mock_plaid(sample_transactions, sample_balances) -> AsyncMock:
    """Mock PlaidAdapter returning canned provider data."""
    plaid = AsyncMock()
    plaid.exchange_public_token.return_value = "access-sandbox-123"
    plaid.get_accounts.return_value = [
        {key: value for key, value in account.items() if key != "balances"} for account in sample_balances
    ]
    plaid.get_balances.return_value = sample_balances
    plaid.get_transactions.return_value = sample_transactions
    plaid.get_identity.return_value = [{"account_id": "a1", "owners": [{"names": ["Alberta Charleson"]}]}]
    return plaid


@pytest.fixture
def mock_mailer() -> MagicMock:
    return MagicMock()


@pytest.fixture
def client(settings, repo, mock_plaid, mock_mailer) -> Generator[TestClient, None, None]:
    """Test client wired to the JSON repository and mocked provider/mailer."""
    from app.api.dependencies import get_mailer, get_plaid_client, get_repository
    from app.core.config import get_settings
    from app.main import app

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_plaid_client] = lambda: mock_plaid
    app.dependency_overrides[get_mailer] = lambda: mock_mailer

    yield TestClient(app)

    app.dependency_overrides.clear()
