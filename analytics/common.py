import math
from datetime import datetime

import pandas as pd


def round_half_up(value):
    """Round to the nearest integer, halves going up (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


def kind_of(transaction):
    """Plain 'income'/'expense' string for a transaction's type, enum or not."""
    return getattr(transaction.type, 'value', transaction.type)


def is_expense(transaction):
    return kind_of(transaction) == 'expense'


def is_income(transaction):
    return kind_of(transaction) == 'income'


def months_ago(now: datetime, months: int) -> datetime:
    # calendar months, so Mar 31 - 1 month is Feb 28/29
    return (pd.Timestamp(now) - pd.DateOffset(months=months)).to_pydatetime()


def money(value):
    """Render an amount the way alert and reminder messages show it (150.0 -> '150')."""
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)
