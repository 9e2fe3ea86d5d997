"""Spending alerts and time-windowed reminders.

Horizons are whole days counted from ``now``; both ends of a window are
inclusive. A recurring transaction without an end date never ends when
looking for missed occurrences; ``active_recurring`` only lists recurrences
whose end date is still ahead.
"""
from datetime import datetime, timedelta

from analytics.aggregator import category_expense_totals
from analytics.common import money, round_half_up
from analytics.goals import raw_progress_percent

DEFAULT_ALERT_THRESHOLD = 500
DEFAULT_BILL_DAYS = 7
DEFAULT_GOAL_DAYS = 30
DEFAULT_UPCOMING_DAYS = 7


def spending_alerts(transactions, threshold=DEFAULT_ALERT_THRESHOLD):
    alerts = []
    for category, total in category_expense_totals(transactions).items():
        if total > threshold:
            alerts.append(f'High spending detected in {category}: ${money(total)}')
    return alerts


def _in_window(when, start, end):
    return when is not None and start <= when <= end


def _still_active(transaction, now):
    return transaction.recurrence_end_date is None or transaction.recurrence_end_date >= now


def bill_reminders(transactions, days_ahead=DEFAULT_BILL_DAYS, now=None):
    now = now or datetime.now()
    horizon = now + timedelta(days=days_ahead)
    bills = sorted(
        (t for t in transactions if t.is_recurring and _in_window(t.date, now, horizon)),
        key=lambda t: t.date,
    )
    return [{
        'date': t.date.date().isoformat(),
        'message': f'Upcoming bill: {t.category} - ${money(t.amount)}',
    } for t in bills]


def goal_reminders(goals, threshold=DEFAULT_GOAL_DAYS, now=None):
    now = now or datetime.now()
    horizon = now + timedelta(days=threshold)
    due = sorted((g for g in goals if _in_window(g.deadline, now, horizon)), key=lambda g: g.deadline)
    reminders = []
    for g in due:
        progress = raw_progress_percent(g)
        reminders.append({
            'date': g.deadline.date().isoformat(),
            'progress': progress,
            'message': (f'Goal "{g.title}": ${money(g.saved_amount or 0)} of ${money(g.target_amount)} '
                        f'({round_half_up(progress)}%)'),
        })
    return reminders


def recurring_notifications(transactions, upcoming_days=DEFAULT_UPCOMING_DAYS, now=None):
    """Split recurring transactions into upcoming and missed occurrences.

    Missed means the stored date is already in the past while the
    recurrence is still active, i.e. nobody moved it forward.
    """
    now = now or datetime.now()
    horizon = now + timedelta(days=upcoming_days)
    recurring = sorted((t for t in transactions if t.is_recurring), key=lambda t: t.date)
    upcoming = [t for t in recurring if _in_window(t.date, now, horizon)]
    missed = [t for t in recurring if t.date < now and _still_active(t, now)]
    return {
        'upcoming': upcoming,
        'missed': missed,
        'message': f'Found {len(upcoming)} upcoming and {len(missed)} missed recurring transactions',
    }


def active_recurring(transactions, now=None):
    now = now or datetime.now()
    return sorted(
        (t for t in transactions
         if t.is_recurring and t.recurrence_end_date is not None and t.recurrence_end_date >= now),
        key=lambda t: t.date,
    )
