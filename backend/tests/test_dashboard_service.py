"""Unit tests for DashboardService aggregations."""

from __future__ import annotations

import asyncio
import random
from datetime import date
from typing import Any
from unittest.mock import AsyncMock

import pytest

from app.core.exceptions import BankNotLinkedError
from app.schemas.records import BankSnapshot
from app.services.dashboard_service import DashboardService

TODAY = date(2026, 2, 15)
SOURCES = ["Uber", "Fiverr"]
INCOME_CATEGORIES = ["Payroll"]
DEDUCTION_CATEGORIES = ["Tax", "Insurance"]

# Index of a month in the trailing window ending February 2026
DEC, JAN, FEB = 9, 10, 11


def _series(result: dict[str, Any], key: str, name: str) -> list[float]:
    return next(item["data"] for item in result[key] if item["name"] == name)


class TestMonthPeriods:
    """Tests for the trailing month window."""

    def test_twelve_months_ending_with_current(self):
        periods = DashboardService.month_periods(TODAY)
        assert len(periods) == 12
        assert periods[0].strftime("%Y-%m") == "2025-03"
        assert periods[-1].strftime("%Y-%m") == "2026-02"

    def test_labels_are_month_names(self, sample_transactions):
        result = DashboardService.build_income(sample_transactions, TODAY, SOURCES, INCOME_CATEGORIES)
        assert result["labels"][0] == "March"
        assert result["labels"][-1] == "February"
        assert result["periods"][DEC] == "2025-12"

    def test_same_month_of_previous_year_is_excluded(self):
        transactions = [
            {"date": "2025-01-20", "name": "Uber", "amount": -999.0, "category": []},
            {"date": "2026-01-05", "name": "Uber", "amount": -10.0, "category": []},
        ]
        result = DashboardService.build_income(transactions, date(2026, 1, 10), ["Uber"], [])
        assert result["periods"][0] == "2025-02"
        assert result["total"][-1] == 10.0
        assert sum(result["total"]) == 10.0


class TestBuildStatus:
    """Tests for balance sums."""

    def test_sums_by_filter(self, sample_balances):
        status = DashboardService.build_status(sample_balances)
        assert status["bankBalance"] == 65992.0
        assert status["creditCards"] == 410.0
        assert status["investments"] == 210.0
        assert status["loans"] == 65262.0

    def test_empty_accounts(self):
        status = DashboardService.build_status([])
        assert status == {"bankBalance": 0.0, "creditCards": 0.0, "investments": 0.0, "loans": 0.0}

    def test_missing_balances_count_as_zero(self):
        status = DashboardService.build_status([{"type": "credit", "subtype": "credit card"}])
        assert status["bankBalance"] == 0.0

    @pytest.mark.parametrize("seed", [1, 2, 3, 4, 5])
    def test_credit_never_exceeds_total(self, seed):
        rng = random.Random(seed)
        accounts = [
            {
                "type": rng.choice(["credit", "depository", "loan", "investment"]),
                "subtype": rng.choice(["credit card", "checking", "savings", "student"]),
                "balances": {"current": round(rng.uniform(0, 5000), 2)},
            }
            for _ in range(rng.randint(0, 20))
        ]
        status = DashboardService.build_status(accounts)
        assert status["creditCards"] <= status["bankBalance"]


class TestBuildIncome:
    """Tests for income series."""

    def test_source_series(self, sample_transactions):
        result = DashboardService.build_income(sample_transactions, TODAY, SOURCES, INCOME_CATEGORIES)
        uber = _series(result, "platforms", "Uber")
        assert uber[JAN] == 250.0
        assert uber[FEB] == 100.5
        assert _series(result, "platforms", "Fiverr")[JAN] == 80.0

    def test_category_series(self, sample_transactions):
        result = DashboardService.build_income(sample_transactions, TODAY, SOURCES, INCOME_CATEGORIES)
        payroll = _series(result, "platforms", "Payroll")
        assert payroll[DEC] == 1200.0
        assert sum(payroll) == 1200.0

    def test_total(self, sample_transactions):
        result = DashboardService.build_income(sample_transactions, TODAY, SOURCES, INCOME_CATEGORIES)
        assert result["total"][DEC] == 1200.0
        assert result["total"][JAN] == 330.0
        assert result["total"][FEB] == 100.5

    def test_transaction_matching_two_sources_counts_once_in_total(self):
        transactions = [{"date": "2026-02-01", "name": "Uber via Fiverr", "amount": -40.0, "category": []}]
        result = DashboardService.build_income(transactions, TODAY, SOURCES, [])
        assert _series(result, "platforms", "Uber")[FEB] == 40.0
        assert _series(result, "platforms", "Fiverr")[FEB] == 40.0
        assert result["total"][FEB] == 40.0

    def test_matches_merchant_name_case_insensitive(self):
        transactions = [{"date": "2026-02-01", "name": "ACH DEPOSIT", "merchant_name": "FIVERR", "amount": -12.0}]
        result = DashboardService.build_income(transactions, TODAY, SOURCES, [])
        assert _series(result, "platforms", "Fiverr")[FEB] == 12.0

    def test_empty_transactions(self):
        result = DashboardService.build_income([], TODAY, SOURCES, INCOME_CATEGORIES)
        assert result["total"] == [0.0] * 12
        assert len(result["platforms"]) == 3

    def test_unparseable_dates_are_ignored(self):
        transactions = [{"date": None, "name": "Uber", "amount": -5.0}, {"date": "garbage", "name": "Uber", "amount": -5.0}]
        result = DashboardService.build_income(transactions, TODAY, SOURCES, [])
        assert result["total"] == [0.0] * 12


class TestBuildDeductions:
    """Tests for deduction series."""

    def test_category_membership(self, sample_transactions):
        result = DashboardService.build_deductions(sample_transactions, TODAY, DEDUCTION_CATEGORIES)
        assert _series(result, "deductions", "Tax")[JAN] == 300.0
        assert _series(result, "deductions", "Insurance")[FEB] == 45.25
        assert result["total"][JAN] == 300.0
        assert result["total"][FEB] == 45.25

    def test_matches_any_label_not_just_first(self):
        transactions = [{"date": "2026-02-01", "name": "Geico", "amount": 20.0, "category": ["Service", "Insurance"]}]
        result = DashboardService.build_deductions(transactions, TODAY, ["insurance"])
        assert result["total"][FEB] == 20.0


class TestPersonalFinanceCategories:
    """Payloads carrying only ``personal_finance_category``."""

    TRANSACTIONS = [
        {
            "date": "2026-02-01",
            "name": "ACME CORP DIRECT DEP",
            "amount": -1000.0,
            "category": None,
            "personal_finance_category": {"primary": "INCOME", "detailed": "INCOME_WAGES"},
        },
        {
            "date": "2026-02-05",
            "name": "IRS USATAXPYMT",
            "amount": 200.0,
            "category": None,
            "personal_finance_category": {"primary": "GOVERNMENT_AND_NON_PROFIT", "detailed": "GOVERNMENT_AND_NON_PROFIT_TAX_PAYMENT"},
        },
    ]

    def test_income_matches_primary(self):
        result = DashboardService.build_income(self.TRANSACTIONS, TODAY, [], ["INCOME"])
        assert result["total"][FEB] == 1000.0

    def test_deductions_match_detailed(self):
        result = DashboardService.build_deductions(
            self.TRANSACTIONS, TODAY, ["GOVERNMENT_AND_NON_PROFIT_TAX_PAYMENT"]
        )
        assert result["total"][FEB] == 200.0

    def test_labels_cover_both_shapes(self):
        assert DashboardService.category_labels({"category": ["Tax", "Payment"]}) == ["tax", "payment"]
        assert DashboardService.category_labels(self.TRANSACTIONS[0]) == ["income", "income_wages"]
        assert DashboardService.category_labels({}) == []


class TestBuildNetPay:
    """Tests for net pay."""

    def test_income_minus_deductions(self, sample_transactions):
        result = DashboardService.build_net_pay(
            sample_transactions, TODAY, SOURCES, INCOME_CATEGORIES, DEDUCTION_CATEGORIES
        )
        assert result["netPay"][DEC] == 1200.0
        assert result["netPay"][JAN] == 30.0
        assert result["netPay"][FEB] == 55.25
        assert result["netPay"][0] == 0.0

    def test_series_lengths(self, sample_transactions):
        result = DashboardService.build_net_pay(
            sample_transactions, TODAY, SOURCES, INCOME_CATEGORIES, DEDUCTION_CATEGORIES
        )
        assert len(result["income"]) == len(result["deductions"]) == len(result["netPay"]) == 12


class TestBuildExpenses:
    """Tests for expenses by category."""

    def test_sums_positive_amounts_by_primary_category(self, sample_transactions):
        result = DashboardService.build_expenses(sample_transactions)
        assert result["labels"] == ["Travel", "Tax", "Service", "Food and Drink"]
        assert result["data"] == [500.0, 300.0, 45.25, 16.33]
        assert result["total"] == 861.58

    def test_ignores_inflows(self):
        result = DashboardService.build_expenses([{"date": "2026-02-01", "amount": -10.0, "category": ["Transfer"]}])
        assert result == {"labels": [], "data": [], "total": 0.0}

    def test_primary_category_fallbacks(self):
        assert DashboardService.primary_category({"category": ["Shops", "Supermarkets"]}) == "Shops"
        assert DashboardService.primary_category({"category": None, "personal_finance_category": {"primary": "FOOD_AND_DRINK"}}) == "FOOD_AND_DRINK"
        assert DashboardService.primary_category({}) == "Uncategorized"


class TestOrderIndependence:
    """Permuting transactions never changes any total."""

    @pytest.mark.parametrize("seed", [11, 22, 33])
    def test_all_aggregations(self, sample_transactions, seed):
        shuffled = list(sample_transactions)
        random.Random(seed).shuffle(shuffled)

        for build in (
            lambda txns: DashboardService.build_income(txns, TODAY, SOURCES, INCOME_CATEGORIES),
            lambda txns: DashboardService.build_deductions(txns, TODAY, DEDUCTION_CATEGORIES),
            lambda txns: DashboardService.build_net_pay(
                txns, TODAY, SOURCES, INCOME_CATEGORIES, DEDUCTION_CATEGORIES
            ),
            DashboardService.build_expenses,
        ):
            assert build(shuffled) == build(sample_transactions)


class TestSnapshotLoading:
    """Tests for the async wrappers."""

    def test_status_reads_stored_balances(self, settings, sample_balances):
        bank_service = AsyncMock()
        bank_service.get_snapshot.return_value = BankSnapshot(user_id="u1", balances=sample_balances)
        service = DashboardService(bank_service, settings, today=lambda: TODAY)

        status = asyncio.run(service.status("u1"))

        assert status["creditCards"] == 410.0
        bank_service.get_snapshot.assert_awaited_once_with("u1")

    def test_missing_snapshot_propagates(self, settings):
        bank_service = AsyncMock()
        bank_service.get_snapshot.side_effect = BankNotLinkedError("No bank account linked yet")
        service = DashboardService(bank_service, settings, today=lambda: TODAY)

        with pytest.raises(BankNotLinkedError):
            asyncio.run(service.expenses("u1"))

    def test_uses_configured_sources(self, settings, sample_transactions):
        bank_service = AsyncMock()
        bank_service.get_snapshot.return_value = BankSnapshot(user_id="u1", transactions=sample_transactions)
        service = DashboardService(bank_service, settings, today=lambda: TODAY)

        income = asyncio.run(service.income("u1"))

        assert [item["name"] for item in income["platforms"]] == ["Uber", "Fiverr", "Payroll"]
