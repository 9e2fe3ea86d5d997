"""Derived financial metrics for one user's records.

* ``aggregator`` – totals, monthly trends, category summaries, report filters
* ``budgets`` – budget status alerts and trailing-average recommendations
* ``goals`` – goal progress, statistics and automatic savings allocation
* ``reminders`` – spending alerts, bill/goal reminders, recurring notifications
* ``dashboard`` – user and admin summaries
* ``currency`` – exchange-rate lookup against the external rate service
"""
