import math
from datetime import datetime

from analytics.common import is_expense, months_ago, round_half_up

WITHIN_LIMITS_MESSAGE = 'All budgets are within limits.'
TRAILING_MONTHS = 3


def category_spend(transactions, category, since=None):
    return sum(
        t.amount for t in transactions
        if is_expense(t) and t.category == category and (since is None or t.date >= since)
    )


def check_status(budgets, transactions):
    """Return one status message for the user's budgets.

    Budgets are scanned in the order given and the first one whose lifetime
    spend reaches its alert threshold is reported; later budgets are not
    looked at. ``spent`` is refreshed on every budget that was evaluated.
    Budgets with a non-positive amount have no meaningful percentage and are
    skipped.
    """
    for budget in budgets:
        spent = category_spend(transactions, budget.category)
        budget.spent = spent
        if not budget.amount or budget.amount <= 0:
            continue
        percent_used = spent * 100 / budget.amount
        threshold = budget.alert_threshold if budget.alert_threshold is not None else 80
        if percent_used >= threshold:
            return (f'Alert: You have spent {round_half_up(percent_used)}% '
                    f'of your budget for {budget.category}.')
    return WITHIN_LIMITS_MESSAGE


def recommend(category, percent_of_budget):
    if percent_of_budget > 110:
        return (f'Consider increasing your {category} budget by {math.ceil(percent_of_budget - 100)}% '
                f'based on your 3-month average spending.')
    if percent_of_budget < 70:
        return (f'You might be able to reduce your {category} budget by {math.floor(100 - percent_of_budget)}% '
                f'based on your 3-month spending patterns.')
    return f'Your {category} budget is well-aligned with your spending habits.'


def get_recommendations(budgets, transactions, now=None):
    """Compare each budget with the trailing three-month average spend.

    The average always divides by three, whether or not every month had
    spending. The recommendation text is written onto ``budget.recommendations``;
    the caller persists it. Budgets with a non-positive amount are skipped,
    as in ``check_status``.
    """
    since = months_ago(now or datetime.now(), TRAILING_MONTHS)
    results = []
    for budget in budgets:
        if not budget.amount or budget.amount <= 0:
            continue
        monthly_average = category_spend(transactions, budget.category, since=since) / TRAILING_MONTHS
        percent_of_budget = monthly_average * 100 / budget.amount
        recommendation = recommend(budget.category, percent_of_budget)
        budget.recommendations = recommendation
        results.append({
            'category': budget.category,
            'recommendation': recommendation,
            'currentBudget': budget.amount,
            'averageSpending': monthly_average,
            'percentOfBudget': round_half_up(percent_of_budget),
        })
    return results
