from __future__ import annotations

import asyncio
from datetime import date
from typing import Any, Callable

import pandas as pd

from app.adapters.plaid_client import PlaidAdapter
from app.core.exceptions import BankNotLinkedError
from app.core.logging import LogContext, get_logger
from app.repositories.firestore_repo import Repository
from app.schemas.records import BankSnapshot

logger = get_logger("gigben.services.bank")

HISTORY_MONTHS = 12


class BankService:
    def __init__(
        self,
        repository: Repository,
        plaid: PlaidAdapter,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.repository = repository
        self.plaid = plaid
        self.today = today

    async def link(self, user_id: str, public_token: str) -> BankSnapshot:
        """Pull the user's bank data from the provider and store it as their snapshot.

        Accounts, balances, transactions and identity are fetched concurrently;
        any failure aborts the link before anything is written.

        Args:
            user_id: Owner's user ID
            public_token: Link public token handed over by the client

        Returns:
            The saved snapshot
        """
        with LogContext(logger, "bank link", user_id=user_id):
            access_token = await self.plaid.exchange_public_token(public_token)
            start_date, end_date = self.history_window(self.today())

            accounts, balances, transactions, identity = await asyncio.gather(
                self.plaid.get_accounts(access_token),
                self.plaid.get_balances(access_token),
                self.plaid.get_transactions(access_token, start_date, end_date),
                self.plaid.get_identity(access_token),
            )
            logger.info(
                f"Fetched {len(accounts)} accounts, {len(transactions)} transactions "
                f"for user {user_id}"
            )

            return await self.save_snapshot(
                user_id,
                {
                    "accounts": accounts,
                    "balances": balances,
                    "transactions": transactions,
                    "identity": identity,
                },
            )

    async def save_snapshot(self, user_id: str, data: dict[str, Any]) -> BankSnapshot:
        """Upsert the snapshot: shallow-merge ``data`` over the stored one, or create it."""
        existing = await self.repository.get_bank(user_id)
        if existing:
            snapshot = BankSnapshot.model_validate(existing.touched(**data).model_dump())
            logger.debug(f"Overwriting bank snapshot for {user_id}")
        else:
            snapshot = BankSnapshot(user_id=user_id, **data)
        return await self.repository.save_bank(snapshot)

    async def get_snapshot(self, user_id: str) -> BankSnapshot:
        """Get the stored snapshot.

        Raises:
            BankNotLinkedError: If the user never linked a bank
        """
        snapshot = await self.repository.get_bank(user_id)
        if not snapshot:
            raise BankNotLinkedError("No bank account linked yet")
        return snapshot

    @staticmethod
    def history_window(today: date) -> tuple[date, date]:
        """First day of the month 11 months back, through today."""
        start = pd.Period(today, freq="M") - (HISTORY_MONTHS - 1)
        return start.start_time.date(), today
