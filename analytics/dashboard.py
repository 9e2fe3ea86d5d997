from analytics.aggregator import totals


def admin_summary(total_users, total_transactions, total_budgets, total_goals):
    return {
        'totalUsers': total_users,
        'totalTransactions': total_transactions,
        'totalBudgets': total_budgets,
        'totalGoals': total_goals,
    }


def user_summary(transactions, budgets, goals):
    """Income, expense and balance for one user, plus their budgets and goals as stored."""
    sums = totals(transactions)
    return {
        'totalIncome': sums['totalIncome'],
        'totalExpense': sums['totalExpenses'],
        'balance': sums['balance'],
        'budgets': [b.to_dict() for b in budgets],
        'goals': [g.to_dict() for g in goals],
    }
