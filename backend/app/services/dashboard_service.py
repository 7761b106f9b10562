"""Dashboard summaries derived from a stored bank snapshot.

Amounts follow the provider's sign convention: positive is money leaving the
account, negative is money coming in. Income series are reported as positive
inflows; deductions and expenses as positive outflows.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Iterable

import pandas as pd

from app.core.config import Settings
from app.core.logging import get_logger
from app.services.bank_service import BankService

logger = get_logger("gigben.services.dashboard")

TRAILING_MONTHS = 12
UNCATEGORIZED = "Uncategorized"


class DashboardService:
    def __init__(
        self,
        bank_service: BankService,
        settings: Settings,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.bank_service = bank_service
        self.income_sources = settings.income_sources
        self.income_categories = settings.income_categories
        self.deduction_categories = settings.deduction_categories
        self.today = today

    async def status(self, user_id: str) -> dict[str, Any]:
        snapshot = await self.bank_service.get_snapshot(user_id)
        return self.build_status(snapshot.balances or snapshot.accounts)

    async def income(self, user_id: str) -> dict[str, Any]:
        snapshot = await self.bank_service.get_snapshot(user_id)
        return self.build_income(
            snapshot.transactions, self.today(), self.income_sources, self.income_categories
        )

    async def deductions(self, user_id: str) -> dict[str, Any]:
        snapshot = await self.bank_service.get_snapshot(user_id)
        return self.build_deductions(snapshot.transactions, self.today(), self.deduction_categories)

    async def net_pay(self, user_id: str) -> dict[str, Any]:
        snapshot = await self.bank_service.get_snapshot(user_id)
        return self.build_net_pay(
            snapshot.transactions,
            self.today(),
            self.income_sources,
            self.income_categories,
            self.deduction_categories,
        )

    async def expenses(self, user_id: str) -> dict[str, Any]:
        snapshot = await self.bank_service.get_snapshot(user_id)
        return self.build_expenses(snapshot.transactions)

    # =========================================================================
    # Pure aggregations
    # =========================================================================

    @staticmethod
    def build_status(accounts: list[dict[str, Any]]) -> dict[str, float]:
        """Sum current balances overall and for credit, savings and loan accounts."""
        return {
            "bankBalance": DashboardService._sum_balances(accounts),
            "creditCards": DashboardService._sum_balances(DashboardService._filter_accounts(accounts, "credit")),
            "investments": DashboardService._sum_balances(DashboardService._filter_accounts(accounts, "savings")),
            "loans": DashboardService._sum_balances(DashboardService._filter_accounts(accounts, "loan")),
        }

    @staticmethod
    def build_income(
        transactions: list[dict[str, Any]],
        today: date,
        sources: Iterable[str],
        categories: Iterable[str],
    ) -> dict[str, Any]:
        """Monthly income per source over the trailing 12 months.

        A source matches when its name is a case-insensitive substring of the
        transaction's name or merchant name; an income category matches when it
        is one of the transaction's category labels.
        """
        periods = DashboardService.month_periods(today)
        frame = DashboardService._frame(transactions)
        series, total = DashboardService._income_series(frame, periods, sources, categories)
        return {
            **DashboardService._labels(periods),
            "platforms": series,
            "total": total,
        }

    @staticmethod
    def build_deductions(
        transactions: list[dict[str, Any]],
        today: date,
        categories: Iterable[str],
    ) -> dict[str, Any]:
        """Monthly outflows per deduction category over the trailing 12 months."""
        periods = DashboardService.month_periods(today)
        frame = DashboardService._frame(transactions)
        series, total = DashboardService._deduction_series(frame, periods, categories)
        return {
            **DashboardService._labels(periods),
            "deductions": series,
            "total": total,
        }

    @staticmethod
    def build_net_pay(
        transactions: list[dict[str, Any]],
        today: date,
        sources: Iterable[str],
        income_categories: Iterable[str],
        deduction_categories: Iterable[str],
    ) -> dict[str, Any]:
        """Per-month income total minus per-month deduction total."""
        periods = DashboardService.month_periods(today)
        frame = DashboardService._frame(transactions)
        _, income = DashboardService._income_series(frame, periods, sources, income_categories)
        _, deductions = DashboardService._deduction_series(frame, periods, deduction_categories)
        return {
            **DashboardService._labels(periods),
            "income": income,
            "deductions": deductions,
            "netPay": [DashboardService._money(i - d) for i, d in zip(income, deductions)],
        }

    @staticmethod
    def build_expenses(transactions: list[dict[str, Any]]) -> dict[str, Any]:
        """Outflows summed per primary category, largest first."""
        frame = DashboardService._frame(transactions)
        spending = frame[frame["amount"] > 0]
        if spending.empty:
            return {"labels": [], "data": [], "total": 0.0}

        breakdown = spending.groupby("primary")["amount"].sum()
        breakdown = breakdown.sort_values(ascending=False, kind="mergesort")
        return {
            "labels": breakdown.index.tolist(),
            "data": [DashboardService._money(value) for value in breakdown.tolist()],
            "total": DashboardService._money(float(breakdown.sum())),
        }

    @staticmethod
    def month_periods(today: date, months: int = TRAILING_MONTHS) -> list[pd.Period]:
        """Calendar months ending with (and including) today's month, oldest first."""
        return list(pd.period_range(end=pd.Period(today, freq="M"), periods=months, freq="M"))

    @staticmethod
    def primary_category(transaction: dict[str, Any]) -> str:
        """Top-level category label of a transaction.

        Only the first entry of the legacy ``category`` hierarchy is used; newer
        payloads without it fall back to ``personal_finance_category.primary``.
        """
        labels = transaction.get("category") or []
        if labels:
            return str(labels[0])
        pfc = transaction.get("personal_finance_category") or {}
        return str(pfc.get("primary") or UNCATEGORIZED)

    @staticmethod
    def category_labels(transaction: dict[str, Any]) -> list[str]:
        """Lowercased labels used for category matching.

        Covers the legacy ``category`` hierarchy and both levels of
        ``personal_finance_category``.
        """
        labels = [str(label) for label in (transaction.get("category") or [])]
        pfc = transaction.get("personal_finance_category") or {}
        labels += [str(pfc[key]) for key in ("primary", "detailed") if pfc.get(key)]
        return [label.lower() for label in labels]

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _frame(transactions: list[dict[str, Any]]) -> pd.DataFrame:
        rows = []
        for txn in transactions:
            rows.append(
                {
                    "date": txn.get("date"),
                    "amount": float(txn.get("amount") or 0.0),
                    "text": f"{txn.get('name') or ''} {txn.get('merchant_name') or ''}".lower(),
                    "categories": DashboardService.category_labels(txn),
                    "primary": DashboardService.primary_category(txn),
                }
            )
        frame = pd.DataFrame(rows, columns=["date", "amount", "text", "categories", "primary"])
        frame["amount"] = frame["amount"].astype(float)
        frame["period"] = pd.to_datetime(frame["date"], errors="coerce").dt.to_period("M")
        return frame

    @staticmethod
    def _income_series(
        frame: pd.DataFrame,
        periods: list[pd.Period],
        sources: Iterable[str],
        categories: Iterable[str],
    ) -> tuple[list[dict[str, Any]], list[float]]:
        masks = [(source, DashboardService._name_mask(frame, source)) for source in sources]
        masks += [(category, DashboardService._category_mask(frame, [category])) for category in categories]
        return DashboardService._series(frame, periods, masks, sign=-1.0)

    @staticmethod
    def _deduction_series(
        frame: pd.DataFrame,
        periods: list[pd.Period],
        categories: Iterable[str],
    ) -> tuple[list[dict[str, Any]], list[float]]:
        masks = [(category, DashboardService._category_mask(frame, [category])) for category in categories]
        return DashboardService._series(frame, periods, masks, sign=1.0)

    @staticmethod
    def _series(
        frame: pd.DataFrame,
        periods: list[pd.Period],
        masks: list[tuple[str, pd.Series]],
        sign: float,
    ) -> tuple[list[dict[str, Any]], list[float]]:
        """Monthly totals per named mask, plus the total over their union.

        A transaction matched by several masks counts once in the total.
        """
        union = pd.Series(False, index=frame.index, dtype=bool)
        series = []
        for name, mask in masks:
            union = union | mask
            series.append({"name": name, "data": DashboardService._monthly(frame, mask, periods, sign)})
        return series, DashboardService._monthly(frame, union, periods, sign)

    @staticmethod
    def _monthly(frame: pd.DataFrame, mask: pd.Series, periods: list[pd.Period], sign: float) -> list[float]:
        selected = frame.loc[mask.astype(bool)] if not frame.empty else frame
        if selected.empty:
            return [0.0] * len(periods)
        totals = selected.groupby("period")["amount"].sum()
        return [DashboardService._money(sign * float(totals.get(period, 0.0))) for period in periods]

    @staticmethod
    def _name_mask(frame: pd.DataFrame, source: str) -> pd.Series:
        if frame.empty:
            return pd.Series(False, index=frame.index, dtype=bool)
        return frame["text"].str.contains(source.lower(), regex=False).astype(bool)

    @staticmethod
    def _category_mask(frame: pd.DataFrame, categories: Iterable[str]) -> pd.Series:
        wanted = {category.lower() for category in categories}
        if frame.empty:
            return pd.Series(False, index=frame.index, dtype=bool)
        return frame["categories"].apply(lambda labels: any(label in wanted for label in labels)).astype(bool)

    @staticmethod
    def _filter_accounts(accounts: list[dict[str, Any]], filter_name: str) -> list[dict[str, Any]]:
        return [
            account
            for account in accounts
            if account.get("type") == filter_name or account.get("subtype") == filter_name
        ]

    @staticmethod
    def _sum_balances(accounts: list[dict[str, Any]]) -> float:
        total = sum(float((account.get("balances") or {}).get("current") or 0.0) for account in accounts)
        return DashboardService._money(total)

    @staticmethod
    def _labels(periods: list[pd.Period]) -> dict[str, list[str]]:
        return {
            "labels": [period.strftime("%B") for period in periods],
            "periods": [period.strftime("%Y-%m") for period in periods],
        }

    @staticmethod
    def _money(value: float) -> float:
        # + 0.0 folds -0.0 into 0.0
        return round(value, 2) + 0.0
