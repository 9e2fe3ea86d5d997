"""Unit tests for analytics.aggregator."""

from __future__ import annotations

from datetime import datetime

import pytest

from analytics import aggregator as agg
from models import Transaction


def tx(kind, amount, category="Food", date="2026-10-01", tags=None):
    return Transaction(type=kind, amount=amount, category=category,
                       date=datetime.fromisoformat(date), tags=tags or [])


def sample():
    return [
        tx("income", 3000, "Salary", "2026-08-01"),
        tx("expense", 120.5, "Food", "2026-08-03", ["groceries"]),
        tx("expense", 80, "Transport", "2026-09-10", ["commute"]),
        tx("income", 250.25, "Freelance", "2026-09-15"),
        tx("expense", 40, "Food", "2026-09-20", ["dining", "fun"]),
    ]


def test_empty_input_yields_zero_totals() -> None:
    assert agg.totals([]) == {"totalIncome": 0.0, "totalExpenses": 0.0, "balance": 0.0}
    assert agg.monthly_trends([]) == {}
    assert agg.category_summary([]) == {"income": {}, "expense": {}}


def test_balance_is_income_minus_expense() -> None:
    txs = sample()
    result = agg.totals(txs)
    income = sum(t.amount for t in txs if t.type == "income")
    expense = sum(t.amount for t in txs if t.type == "expense")
    assert result["totalIncome"] == pytest.approx(income)
    assert result["totalExpenses"] == pytest.approx(expense)
    assert result["balance"] == pytest.approx(income - expense)
    assert result["balance"] == result["totalIncome"] - result["totalExpenses"]


def test_monthly_trends_group_by_calendar_month() -> None:
    trends = agg.monthly_trends(sample())
    assert list(trends) == ["2026-08", "2026-09"]
    assert trends["2026-08"] == {"income": 3000.0, "expense": 120.5}
    assert trends["2026-09"] == {"income": 250.25, "expense": 120.0}


def test_category_summary_splits_by_type() -> None:
    summary = agg.category_summary(sample())
    assert summary["income"] == {"Freelance": 250.25, "Salary": 3000.0}
    assert summary["expense"] == {"Food": 160.5, "Transport": 80.0}


def test_filter_transactions_matches_any_tag_and_amount_bounds() -> None:
    txs = sample()
    tagged = agg.filter_transactions(txs, tags=["fun", "commute"])
    assert [t.category for t in tagged] == ["Transport", "Food"]

    bounded = agg.filter_transactions(txs, type="expense", min_amount=50, max_amount=100)
    assert [t.amount for t in bounded] == [80]


def test_filter_transactions_date_range_is_inclusive() -> None:
    txs = sample()
    result = agg.filter_transactions(txs, start=datetime(2026, 8, 3), end=datetime(2026, 9, 15))
    assert [t.amount for t in result] == [120.5, 80, 250.25]


def test_period_bounds_month_rolls_over_year() -> None:
    start, end = agg.period_bounds("month", now=datetime(2026, 12, 5))
    assert start == datetime(2026, 12, 1)
    assert end.date() == datetime(2026, 12, 31).date()
    assert agg.period_bounds(None) is None


def test_visualization_data_labels_period() -> None:
    txs = sample()
    everything = agg.visualization_data(txs)
    assert everything["period"] == "all"
    assert everything["totalIncome"] == pytest.approx(3250.25)

    september = agg.visualization_data(txs, period="month", now=datetime(2026, 9, 30))
    assert september["period"] == "month"
    assert september["totalExpenses"] == pytest.approx(120)
    assert list(september["monthlyData"]) == ["2026-09"]

    custom = agg.visualization_data(txs, start=datetime(2026, 8, 1), end=datetime(2026, 8, 31))
    assert custom["period"] == "custom"
    assert custom["categorySummary"]["expense"] == {"Food": 120.5}
