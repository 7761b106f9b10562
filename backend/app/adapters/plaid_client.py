from __future__ import annotations

import json
from datetime import date
from typing import Any, Callable

import plaid
from fastapi.concurrency import run_in_threadpool
from plaid.api import plaid_api
from plaid.exceptions import ApiException
from plaid.model.accounts_balance_get_request import AccountsBalanceGetRequest
from plaid.model.accounts_get_request import AccountsGetRequest
from plaid.model.identity_get_request import IdentityGetRequest
from plaid.model.item_public_token_exchange_request import ItemPublicTokenExchangeRequest
from plaid.model.transactions_get_request import TransactionsGetRequest
from plaid.model.transactions_get_request_options import TransactionsGetRequestOptions

from app.core.config import Settings
from app.core.exceptions import AggregationProviderError
from app.core.logging import get_logger
from app.core.utils import to_plain

logger = get_logger("gigben.adapters.plaid")

PLAID_HOSTS = {
    "sandbox": plaid.Environment.Sandbox,
    "production": plaid.Environment.Production,
}


class PlaidAdapter:
    """Async facade over the Plaid SDK.

    The SDK is blocking, so every call runs in the threadpool. Responses are
    returned as JSON-safe dicts exactly as the provider shaped them.
    """

    def __init__(self, client: plaid_api.PlaidApi, page_size: int = 500) -> None:
        self.client = client
        self.page_size = page_size

    @classmethod
    def from_settings(cls, settings: Settings) -> "PlaidAdapter":
        host = PLAID_HOSTS.get(settings.plaid_env)
        if host is None:
            raise AggregationProviderError(
                f"Unknown Plaid environment: {settings.plaid_env}",
                details={"plaid_env": settings.plaid_env},
            )
        configuration = plaid.Configuration(
            host=host,
            api_key={
                "clientId": settings.plaid_client_id,
                "secret": settings.plaid_secret,
            },
        )
        logger.info(f"Initialized PlaidAdapter for environment: {settings.plaid_env}")
        return cls(plaid_api.PlaidApi(plaid.ApiClient(configuration)), page_size=settings.plaid_page_size)

    async def exchange_public_token(self, public_token: str) -> str:
        """Exchange a Link public token for a long-lived access token."""
        request = ItemPublicTokenExchangeRequest(public_token=public_token)
        response = await self._call(self.client.item_public_token_exchange, request, operation="exchange_public_token")
        logger.info(f"Exchanged public token for item {response.get('item_id')}")
        return response["access_token"]

    async def get_accounts(self, access_token: str) -> list[dict[str, Any]]:
        request = AccountsGetRequest(access_token=access_token)
        response = await self._call(self.client.accounts_get, request, operation="get_accounts")
        return response.get("accounts", [])

    async def get_balances(self, access_token: str) -> list[dict[str, Any]]:
        request = AccountsBalanceGetRequest(access_token=access_token)
        response = await self._call(self.client.accounts_balance_get, request, operation="get_balances")
        return response.get("accounts", [])

    async def get_transactions(self, access_token: str, start_date: date, end_date: date) -> list[dict[str, Any]]:
        """Fetch every transaction in ``[start_date, end_date]``, following pagination."""
        transactions: list[dict[str, Any]] = []
        while True:
            request = TransactionsGetRequest(
                access_token=access_token,
                start_date=start_date,
                end_date=end_date,
                options=TransactionsGetRequestOptions(count=self.page_size, offset=len(transactions)),
            )
            response = await self._call(self.client.transactions_get, request, operation="get_transactions")
            page = response.get("transactions", [])
            transactions.extend(page)
            total = response.get("total_transactions", len(transactions))
            if not page or len(transactions) >= total:
                break

        logger.debug(f"Fetched {len(transactions)} transactions from {start_date} to {end_date}")
        return transactions

    async def get_identity(self, access_token: str) -> list[dict[str, Any]]:
        """Accounts with their owners' identity data."""
        request = IdentityGetRequest(access_token=access_token)
        response = await self._call(self.client.identity_get, request, operation="get_identity")
        return response.get("accounts", [])

    async def _call(self, method: Callable[[Any], Any], request: Any, operation: str) -> dict[str, Any]:
        """Call the provider with error handling."""
        try:
            response = await run_in_threadpool(method, request)
        except ApiException as e:
            error = self._parse_error_body(e.body)
            logger.error(
                f"Plaid {operation} failed: {e.status} "
                f"{error.get('error_code', '')} {error.get('error_message', '')}".rstrip()
            )
            raise AggregationProviderError(
                error.get("error_message") or f"Aggregation provider request failed: {operation}",
                details={
                    "operation": operation,
                    "status": e.status,
                    "error_type": error.get("error_type"),
                    "error_code": error.get("error_code"),
                },
            ) from e
        except Exception as e:
            logger.error(f"Unexpected Plaid error during {operation}: {e}", exc_info=True)
            raise AggregationProviderError(
                f"Failed to communicate with aggregation provider: {e}",
                details={"operation": operation, "error": str(e)},
            ) from e
        return to_plain(response)

    @staticmethod
    def _parse_error_body(body: Any) -> dict[str, Any]:
        if not body:
            return {}
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        try:
            data = json.loads(body)
        except (TypeError, ValueError):
            return {"error_message": str(body)}
        return data if isinstance(data, dict) else {}
