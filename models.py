import enum
from datetime import datetime
from flask_sqlalchemy import SQLAlchemy

from analytics.goals import capped_progress, days_remaining

db = SQLAlchemy()

GOAL_CATEGORIES = ('Car', 'Home', 'Education', 'Vacation', 'Emergency', 'Retirement', 'Other')
BUDGET_PERIODS = ('monthly', 'weekly', 'daily')
RECURRENCE_PATTERNS = ('daily', 'weekly', 'monthly')
ROLES = ('user', 'admin')


class TransactionType(str, enum.Enum):
    income = 'income'
    expense = 'expense'


def _iso(value):
    return value.isoformat() if value else None


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='user')
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.now)
    transactions = db.relationship('Transaction', backref='user', lazy=True, cascade="all, delete-orphan")
    budgets = db.relationship('Budget', backref='user', lazy=True, cascade="all, delete-orphan")
    goals = db.relationship('Goal', backref='user', lazy=True, cascade="all, delete-orphan")
    currency = db.relationship('CurrencyPreference', backref='user', lazy=True, uselist=False, cascade="all, delete-orphan")

    def to_dict(self):
        # password_hash never leaves the server
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role,
            'isActive': self.is_active,
            'createdAt': _iso(self.created_at),
        }


class Transaction(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    type = db.Column(db.Enum(TransactionType), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    category = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    date = db.Column(db.DateTime, nullable=False, default=datetime.now, index=True)
    tags = db.Column(db.JSON, nullable=False, default=list)
    is_recurring = db.Column(db.Boolean, nullable=False, default=False)
    recurrence_pattern = db.Column(db.String(20), nullable=True)  # 'daily', 'weekly' or 'monthly'
    recurrence_end_date = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    def to_dict(self):
        return {
            'id': self.id,
            'user': self.user_id,
            'type': TransactionType(self.type).value,
            'amount': self.amount,
            'category': self.category,
            'description': self.description,
            'date': _iso(self.date),
            'tags': list(self.tags or []),
            'isRecurring': bool(self.is_recurring),
            'recurrencePattern': self.recurrence_pattern,
            'recurrenceEndDate': _iso(self.recurrence_end_date),
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }


class Budget(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    category = db.Column(db.String(100), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    period = db.Column(db.String(20), nullable=False)
    spent = db.Column(db.Float, nullable=False, default=0)
    alert_threshold = db.Column(db.Float, nullable=False, default=80)
    recommendations = db.Column(db.Text, nullable=False, default='')
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    def to_dict(self):
        return {
            'id': self.id,
            'user': self.user_id,
            'category': self.category,
            'amount': self.amount,
            'period': self.period,
            'spent': self.spent,
            'alertThreshold': self.alert_threshold,
            'recommendations': self.recommendations,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }


class Goal(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    target_amount = db.Column(db.Float, nullable=False)
    saved_amount = db.Column(db.Float, nullable=False, default=0)
    deadline = db.Column(db.DateTime, nullable=False)
    auto_allocate = db.Column(db.Boolean, nullable=False, default=False)
    allocation_percentage = db.Column(db.Float, nullable=False, default=10)
    category = db.Column(db.String(20), nullable=True)
    priority = db.Column(db.Integer, nullable=False, default=1)  # 1 = highest
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    @property
    def progress(self):
        return capped_progress(self)

    @property
    def days_remaining(self):
        return days_remaining(self)

    def to_dict(self):
        return {
            'id': self.id,
            'user': self.user_id,
            'title': self.title,
            'targetAmount': self.target_amount,
            'savedAmount': self.saved_amount,
            'deadline': _iso(self.deadline),
            'autoAllocate': bool(self.auto_allocate),
            'allocationPercentage': self.allocation_percentage,
            'category': self.category,
            'priority': self.priority,
            'progress': self.progress,
            'daysRemaining': self.days_remaining,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }


class CurrencyPreference(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, unique=True)
    base_currency = db.Column(db.String(3), nullable=False)
    preferred_currencies = db.Column(db.JSON, nullable=False, default=list)

    def to_dict(self):
        return {
            'id': self.id,
            'user': self.user_id,
            'baseCurrency': self.base_currency,
            'preferredCurrencies': list(self.preferred_currencies or []),
        }
