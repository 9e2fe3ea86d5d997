"""Savings goals: progress, deadlines, statistics and automatic allocation."""
import math
from datetime import datetime

from analytics.common import is_income, round_half_up
from analytics.errors import NotFoundError

DEFAULT_ALLOCATION_PERCENTAGE = 10
UPCOMING_DEADLINES_LIMIT = 5


def capped_progress(goal):
    """Stored-style progress: whole percent, never above 100."""
    if not goal.target_amount:
        return 0
    return min(100, round_half_up((goal.saved_amount or 0) / goal.target_amount * 100))


def raw_progress_percent(goal):
    """Unrounded, uncapped saved/target percentage used by goal reminders."""
    if not goal.target_amount:
        return 0.0
    return (goal.saved_amount or 0) / goal.target_amount * 100


def days_remaining(goal, now=None):
    if goal.deadline is None:
        return 0
    delta = goal.deadline - (now or datetime.now())
    return max(0, math.ceil(delta.total_seconds() / 86400))


def _priority(goal):
    return goal.priority if goal.priority is not None else 1


def allocate_savings(goals, transactions, save=None):
    """Distribute the user's lifetime income across auto-allocate goals.

    Goals are visited by ascending priority. Each one is offered
    ``allocation_percentage`` of the total income, capped at what it still
    needs, so a goal that reached its target receives nothing. Income is
    re-summed from every income transaction on each call.

    ``save`` is called with each goal right after its saved amount changes.
    If it raises, goals saved before it keep their new amounts.
    """
    candidates = sorted((g for g in goals if g.auto_allocate), key=_priority)
    if not candidates:
        raise NotFoundError('No goals with auto-allocation enabled')

    total_income = sum(t.amount for t in transactions if is_income(t))
    allocations = []
    for goal in candidates:
        percentage = goal.allocation_percentage or DEFAULT_ALLOCATION_PERCENTAGE
        allocation_amount = total_income * percentage / 100
        saved = goal.saved_amount or 0
        remaining_needed = goal.target_amount - saved
        actual = min(allocation_amount, remaining_needed)
        if actual > 0:
            goal.saved_amount = saved + actual
            if save is not None:
                save(goal)
            allocations.append({
                'goalId': goal.id,
                'goalTitle': goal.title,
                'amount': actual,
                'newProgress': capped_progress(goal),
            })

    return {
        'message': 'Savings automatically allocated to goals.',
        'totalAllocated': sum(a['amount'] for a in allocations),
        'allocations': allocations,
    }


def goal_statistics(goals, now=None):
    now = now or datetime.now()
    total_saved = sum(g.saved_amount or 0 for g in goals)
    total_target = sum(g.target_amount for g in goals)
    overall = round_half_up(total_saved / total_target * 100) if total_target > 0 else 0

    categories = {}
    for g in goals:
        stats = categories.setdefault(g.category or 'Other', {'count': 0, 'saved': 0, 'target': 0})
        stats['count'] += 1
        stats['saved'] += g.saved_amount or 0
        stats['target'] += g.target_amount

    pending = [g for g in goals if capped_progress(g) < 100 and days_remaining(g, now) > 0]
    pending.sort(key=lambda g: g.deadline)
    upcoming = [{
        'id': g.id,
        'title': g.title,
        'daysRemaining': days_remaining(g, now),
        'progress': capped_progress(g),
    } for g in pending[:UPCOMING_DEADLINES_LIMIT]]

    return {
        'overallProgress': overall,
        'totalSaved': total_saved,
        'totalTarget': total_target,
        'totalGoals': len(goals),
        'completedGoals': sum(1 for g in goals if capped_progress(g) >= 100),
        'categoryDistribution': categories,
        'upcomingDeadlines': upcoming,
    }
