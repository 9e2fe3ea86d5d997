"""Spending aggregation over one user's transactions.

Everything here works on transactions that are already loaded and already
scoped to a single user. The frames are built the same way for every report
so month keys and type labels stay consistent between the trends, the
visualization data and the forecast.
"""
from datetime import datetime, timedelta

import pandas as pd

from analytics.common import kind_of

FRAME_COLUMNS = ['date', 'amount', 'type', 'category']
TYPES = ('income', 'expense')


def transactions_frame(transactions):
    if not transactions:
        return pd.DataFrame(columns=FRAME_COLUMNS)
    data = [{
        'date': t.date,
        'amount': float(t.amount),
        'type': kind_of(t),
        'category': t.category,
    } for t in transactions]
    df = pd.DataFrame(data, columns=FRAME_COLUMNS)
    df['date'] = pd.to_datetime(df['date'])
    return df


def totals(transactions):
    df = transactions_frame(transactions)
    by_type = df.groupby('type')['amount'].sum() if not df.empty else pd.Series(dtype=float)
    income = float(by_type.get('income', 0.0))
    expense = float(by_type.get('expense', 0.0))
    return {
        'totalIncome': income,
        'totalExpenses': expense,
        'balance': income - expense,
    }


def monthly_trends(transactions):
    """Income and expense totals per ``YYYY-MM``, oldest month first."""
    df = transactions_frame(transactions)
    if df.empty:
        return {}
    df['month'] = df['date'].dt.strftime('%Y-%m')
    pivot = df.pivot_table(index='month', columns='type', values='amount', aggfunc='sum', fill_value=0)
    pivot = pivot.reindex(columns=list(TYPES), fill_value=0).sort_index()
    return {
        month: {'income': float(row['income']), 'expense': float(row['expense'])}
        for month, row in pivot.iterrows()
    }


def category_summary(transactions):
    summary = {kind: {} for kind in TYPES}
    df = transactions_frame(transactions)
    if df.empty:
        return summary
    grouped = df.groupby(['type', 'category'])['amount'].sum()
    for (kind, category), amount in grouped.items():
        summary[kind][category] = float(amount)
    return summary


def category_expense_totals(transactions):
    """Lifetime expense total per category, keyed in category order."""
    return category_summary(transactions)['expense']


def period_bounds(period=None, start=None, end=None, now=None):
    """Date window for a report.

    An explicit ``start``/``end`` pair wins over ``period``. ``'month'`` and
    ``'year'`` mean the current calendar month or year. Anything else means
    all time, returned as ``None``.
    """
    if start and end:
        return start, end
    now = now or datetime.now()
    if period == 'month':
        first = datetime(now.year, now.month, 1)
        if now.month == 12:
            next_first = datetime(now.year + 1, 1, 1)
        else:
            next_first = datetime(now.year, now.month + 1, 1)
        return first, next_first - timedelta(microseconds=1)
    if period == 'year':
        return datetime(now.year, 1, 1), datetime(now.year + 1, 1, 1) - timedelta(microseconds=1)
    return None


def filter_transactions(transactions, start=None, end=None, category=None, tags=None,
                        type=None, min_amount=None, max_amount=None):
    """Apply the report filters. ``tags`` matches when any tag is shared."""
    wanted_tags = set(tags or [])
    result = []
    for t in transactions:
        if start is not None and t.date < start:
            continue
        if end is not None and t.date > end:
            continue
        if category and t.category != category:
            continue
        if type and kind_of(t) != type:
            continue
        if wanted_tags and not wanted_tags.intersection(t.tags or []):
            continue
        if min_amount is not None and t.amount < min_amount:
            continue
        if max_amount is not None and t.amount > max_amount:
            continue
        result.append(t)
    return result


def visualization_data(transactions, period=None, start=None, end=None, now=None):
    bounds = period_bounds(period, start, end, now)
    if bounds is not None:
        transactions = filter_transactions(transactions, start=bounds[0], end=bounds[1])
    data = totals(transactions)
    data['categorySummary'] = category_summary(transactions)
    data['monthlyData'] = monthly_trends(transactions)
    data['period'] = period or ('custom' if start and end else 'all')
    return data
