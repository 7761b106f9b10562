"""
Stored Records

Typed documents persisted by the repositories. Every record is validated on
the way in and on the way out of the document store.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from app.core.utils import utc_now


class TimestampedRecord(BaseModel):
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def touched(self, now: Optional[datetime] = None, **changes: Any) -> "TimestampedRecord":
        """Return a copy with ``changes`` applied and ``updated_at`` set to ``now``."""
        return self.model_copy(update={**changes, "updated_at": now or utc_now()})


class UserRecord(TimestampedRecord):
    """A user account."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    email: str
    password_hash: str
    account_verified: bool = False
    verification_code_hash: Optional[str] = None
    verification_code_issued_at: Optional[datetime] = None


class BankSnapshot(TimestampedRecord):
    """Latest raw provider data for one user, stored verbatim."""

    user_id: str
    accounts: list[dict[str, Any]] = []
    balances: list[dict[str, Any]] = []
    transactions: list[dict[str, Any]] = []
    identity: list[dict[str, Any]] = []


class EarlyAccessEntry(TimestampedRecord):
    """An early-access waitlist signup."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    email: str
