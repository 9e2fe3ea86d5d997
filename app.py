import logging
import os
from datetime import datetime, time
from functools import wraps
from flask import Flask, request, session, jsonify
from werkzeug.exceptions import HTTPException
from werkzeug.security import generate_password_hash, check_password_hash
from sqlalchemy.exc import SQLAlchemyError

import config
from models import (db, User, Transaction, Budget, Goal, CurrencyPreference, TransactionType,
                    GOAL_CATEGORIES, BUDGET_PERIODS, RECURRENCE_PATTERNS, ROLES)
from analytics import aggregator, dashboard, reminders
from analytics import budgets as budget_engine
from analytics import goals as goal_engine
from analytics.currency import fetch_exchange_rates
from analytics.errors import FinanceError, ValidationError, AuthorizationError, NotFoundError
from ml.forecast import forecast

logger = logging.getLogger(__name__)


def create_app():
    config.configure_logging()
    app = Flask(__name__)
    app.config['SQLALCHEMY_DATABASE_URI'] = config.DATABASE_URL
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SECRET_KEY'] = config.SECRET_KEY
    app.config['EXCHANGE_RATE_API_KEY'] = config.EXCHANGE_RATE_API_KEY
    app.config['EXCHANGE_RATE_API_URL'] = config.EXCHANGE_RATE_API_URL
    app.config['EXCHANGE_RATE_TIMEOUT'] = config.EXCHANGE_RATE_TIMEOUT
    app.config['SPENDING_ALERT_THRESHOLD'] = config.SPENDING_ALERT_THRESHOLD
    db.init_app(app)
    with app.app_context():
        db.create_all()
    return app

app = create_app()

# ---------------------- Logging & Errors ----------------------
@app.before_request
def log_request():
    logger.info('%s %s', request.method, request.path)

@app.errorhandler(FinanceError)
def handle_finance_error(e):
    if e.status_code >= 500:
        logger.error('%s %s failed: %s', request.method, request.path, e.message)
    return jsonify({'message': e.message}), e.status_code

@app.errorhandler(SQLAlchemyError)
def handle_database_error(e):
    db.session.rollback()
    logger.exception('Database error on %s %s', request.method, request.path)
    return jsonify({'message': str(e)}), 500

@app.errorhandler(HTTPException)
def handle_http_error(e):
    return jsonify({'message': e.description}), e.code

@app.errorhandler(Exception)
def handle_unexpected_error(e):
    logger.exception('Unhandled error on %s %s', request.method, request.path)
    return jsonify({'message': 'Something went wrong!'}), 500

# ---------------------- Auth Helpers ----------------------
def current_user():
    uid = session.get('user_id')
    if uid:
        user = db.session.get(User, uid)
        if user and user.is_active:
            return user
    return None

def login_required(view_func):
    """Pass the authenticated user to the view as its first argument."""
    @wraps(view_func)
    def wrapped(*args, **kwargs):
        user = current_user()
        if not user:
            return jsonify({'message': 'Not authorized, please log in'}), 401
        return view_func(user, *args, **kwargs)
    return wrapped

def admin_required(view_func):
    @wraps(view_func)
    @login_required
    def wrapped(user, *args, **kwargs):
        if user.role != 'admin':
            raise AuthorizationError('Not authorized as an admin')
        return view_func(user, *args, **kwargs)
    return wrapped

def get_owned(model, record_id, user):
    record = db.session.get(model, record_id)
    if not record:
        raise NotFoundError(f'{model.__name__} not found')
    if record.user_id != user.id:
        raise AuthorizationError('Not authorized')
    return record

# ---------------------- Input Parsing ----------------------
def json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data

def require(data, *fields):
    if any(not data.get(f) for f in fields):
        raise ValidationError('Please provide all required fields')

def parse_datetime(value, end_of_day=False):
    """ISO date or datetime. A bare date used as an upper bound covers the whole day."""
    if isinstance(value, datetime):
        return value
    value = str(value).strip()
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    if end_of_day and len(value) == 10:
        parsed = datetime.combine(parsed.date(), time.max)
    return parsed

def parse_optional_datetime(value):
    return parse_datetime(value) if value else None

def parse_amount(value):
    if isinstance(value, bool):
        raise ValueError(value)
    return float(value)

def parse_positive_amount(value):
    amount = parse_amount(value)
    if amount <= 0:
        raise ValueError(value)
    return amount

def parse_text(value):
    if not isinstance(value, str) or not value.strip():
        raise ValueError(value)
    return value

# Upper bound keeps now + horizon inside the datetime range
MAX_HORIZON_DAYS = 36500

def parse_days(value):
    days = int(value)
    if not 0 <= days <= MAX_HORIZON_DAYS:
        raise ValueError(value)
    return days

def parse_bool(value):
    if isinstance(value, bool):
        return value
    if str(value).lower() in ('true', '1', 'yes'):
        return True
    if str(value).lower() in ('false', '0', 'no', ''):
        return False
    raise ValueError(value)

def parse_tags(value):
    if value is None:
        return []
    if isinstance(value, str):
        return [t.strip() for t in value.split(',') if t.strip()]
    if isinstance(value, list) and all(isinstance(t, str) for t in value):
        return value
    raise ValueError(value)

def one_of(choices):
    def parse(value):
        if value not in choices:
            raise ValueError(value)
        return value
    return parse

def optional(parser):
    def parse(value):
        return parser(value) if value is not None else None
    return parse

def apply_fields(record, data, fields):
    """Copy known camelCase keys from ``data`` onto ``record`` through their parsers."""
    for key, value in data.items():
        if key not in fields:
            continue
        attr, parser = fields[key]
        try:
            setattr(record, attr, parser(value))
        except (TypeError, ValueError):
            raise ValidationError(f'Invalid value for {key}')
    return record

def arg(name, parser, default=None):
    value = request.args.get(name)
    if value is None or value == '':
        return default
    try:
        return parser(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f'Invalid value for {name}')

TRANSACTION_FIELDS = {
    'type': ('type', TransactionType),
    'amount': ('amount', parse_amount),
    'category': ('category', parse_text),
    'description': ('description', optional(str)),
    'date': ('date', parse_datetime),
    'tags': ('tags', parse_tags),
    'isRecurring': ('is_recurring', parse_bool),
    'recurrencePattern': ('recurrence_pattern', optional(one_of(RECURRENCE_PATTERNS))),
    'recurrenceEndDate': ('recurrence_end_date', parse_optional_datetime),
}

BUDGET_FIELDS = {
    'category': ('category', parse_text),
    'amount': ('amount', parse_positive_amount),
    'period': ('period', one_of(BUDGET_PERIODS)),
    'alertThreshold': ('alert_threshold', parse_amount),
}

GOAL_FIELDS = {
    'title': ('title', parse_text),
    'targetAmount': ('target_amount', parse_positive_amount),
    'savedAmount': ('saved_amount', parse_amount),
    'deadline': ('deadline', parse_datetime),
    'autoAllocate': ('auto_allocate', parse_bool),
    'allocationPercentage': ('allocation_percentage', parse_amount),
    'category': ('category', one_of(GOAL_CATEGORIES)),
    'priority': ('priority', int),
}

TRANSACTION_SORT_COLUMNS = {
    'date': Transaction.date,
    'amount': Transaction.amount,
    'category': Transaction.category,
    'type': Transaction.type,
    'createdAt': Transaction.created_at,
}

def user_transactions(user, ttype=None):
    q = Transaction.query.filter_by(user_id=user.id)
    if ttype:
        q = q.filter_by(type=ttype)
    return q.order_by(Transaction.date, Transaction.id).all()

def user_budgets(user):
    return Budget.query.filter_by(user_id=user.id).order_by(Budget.id).all()

def user_goals(user):
    return Goal.query.filter_by(user_id=user.id).order_by(Goal.id).all()

# ---------------------- Routes: Auth ----------------------
@app.route('/')
def index():
    return jsonify({'message': 'Welcome to the Personal Finance Tracker API'})

@app.route('/api/auth/register', methods=['POST'])
def register():
    data = json_body()
    require(data, 'name', 'email', 'password')
    email = str(data['email']).lower().strip()
    if User.query.filter_by(email=email).first():
        raise ValidationError('User already exists')
    user = User(name=str(data['name']).strip(), email=email,
                password_hash=generate_password_hash(str(data['password'])))
    db.session.add(user)
    db.session.commit()
    session['user_id'] = user.id
    logger.info('Registered user %s', user.id)
    return jsonify(user.to_dict()), 201

@app.route('/api/auth/login', methods=['POST'])
def login():
    data = json_body()
    email = str(data.get('email', '')).lower().strip()
    user = User.query.filter_by(email=email).first()
    if not user or not check_password_hash(user.password_hash, str(data.get('password', ''))):
        return jsonify({'message': 'Invalid email or password'}), 401
    if not user.is_active:
        raise AuthorizationError('Account is deactivated')
    session['user_id'] = user.id
    logger.info('User %s logged in', user.id)
    return jsonify(user.to_dict())

@app.route('/api/auth/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'message': 'Logged out'})

@app.route('/api/auth/me')
@login_required
def me(user):
    return jsonify(user.to_dict())

# ---------------------- Routes: Transactions ----------------------
@app.route('/api/transactions', methods=['POST'])
@login_required
def add_transaction(user):
    data = json_body()
    require(data, 'type', 'amount', 'category')
    tx = apply_fields(Transaction(user_id=user.id), data, TRANSACTION_FIELDS)
    db.session.add(tx)
    db.session.commit()
    logger.info('New transaction created: %s by user %s', tx.id, user.id)
    return jsonify(tx.to_dict()), 201

@app.route('/api/transactions')
@login_required
def list_transactions(user):
    q = Transaction.query.filter_by(user_id=user.id)
    ttype = arg('type', TransactionType)
    if ttype:
        q = q.filter_by(type=ttype)
    category = request.args.get('category')
    if category:
        q = q.filter_by(category=category)
    sort_by = request.args.get('sortBy')
    if sort_by:
        column = TRANSACTION_SORT_COLUMNS.get(sort_by)
        if column is None:
            raise ValidationError(f'Cannot sort by {sort_by}')
        q = q.order_by(column.desc() if request.args.get('order') == 'desc' else column.asc(), Transaction.id)
    else:
        q = q.order_by(Transaction.id)
    txs = aggregator.filter_transactions(q.all(), tags=arg('tags', parse_tags))
    return jsonify([t.to_dict() for t in txs])

@app.route('/api/transactions/<int:txn_id>')
@login_required
def get_transaction(user, txn_id):
    return jsonify(get_owned(Transaction, txn_id, user).to_dict())

@app.route('/api/transactions/<int:txn_id>', methods=['PUT'])
@login_required
def update_transaction(user, txn_id):
    tx = get_owned(Transaction, txn_id, user)
    apply_fields(tx, json_body(), TRANSACTION_FIELDS)
    db.session.commit()
    logger.info('Transaction updated: %s by user %s', tx.id, user.id)
    return jsonify(tx.to_dict())

@app.route('/api/transactions/<int:txn_id>', methods=['DELETE'])
@login_required
def delete_transaction(user, txn_id):
    tx = get_owned(Transaction, txn_id, user)
    db.session.delete(tx)
    db.session.commit()
    logger.info('Transaction deleted: %s by user %s', txn_id, user.id)
    return jsonify({'message': 'Transaction removed'})

@app.route('/api/transactions/recurring')
@login_required
def recurring_transactions(user):
    txs = reminders.active_recurring(user_transactions(user), now=datetime.now())
    return jsonify([t.to_dict() for t in txs])

@app.route('/api/transactions/notifications')
@login_required
def recurring_transaction_notifications(user):
    days = arg('upcomingDays', parse_days, reminders.DEFAULT_UPCOMING_DAYS)
    result = reminders.recurring_notifications(user_transactions(user), upcoming_days=days, now=datetime.now())
    return jsonify({
        'upcoming': [t.to_dict() for t in result['upcoming']],
        'missed': [t.to_dict() for t in result['missed']],
        'message': result['message'],
    })

# ---------------------- Routes: Budgets ----------------------
@app.route('/api/budgets', methods=['POST'])
@login_required
def add_budget(user):
    data = json_body()
    require(data, 'category', 'amount', 'period')
    budget = apply_fields(Budget(user_id=user.id), data, BUDGET_FIELDS)
    db.session.add(budget)
    db.session.commit()
    return jsonify(budget.to_dict()), 201

@app.route('/api/budgets')
@login_required
def list_budgets(user):
    return jsonify([b.to_dict() for b in user_budgets(user)])

@app.route('/api/budgets/<int:budget_id>', methods=['PUT'])
@login_required
def update_budget(user, budget_id):
    budget = get_owned(Budget, budget_id, user)
    apply_fields(budget, json_body(), BUDGET_FIELDS)
    db.session.commit()
    return jsonify(budget.to_dict())

@app.route('/api/budgets/<int:budget_id>', methods=['DELETE'])
@login_required
def delete_budget(user, budget_id):
    budget = get_owned(Budget, budget_id, user)
    db.session.delete(budget)
    db.session.commit()
    return jsonify({'message': 'Budget removed'})

@app.route('/api/budgets/status')
@login_required
def budget_status(user):
    message = budget_engine.check_status(user_budgets(user), user_transactions(user, TransactionType.expense))
    db.session.commit()
    return jsonify({'message': message})

@app.route('/api/budgets/recommendations')
@login_required
def budget_recommendations(user):
    # last write wins if two requests recompute the same budgets concurrently
    recs = budget_engine.get_recommendations(
        user_budgets(user), user_transactions(user, TransactionType.expense), now=datetime.now())
    db.session.commit()
    return jsonify({'recommendations': recs})

# ---------------------- Routes: Goals ----------------------
@app.route('/api/goals', methods=['POST'])
@login_required
def add_goal(user):
    data = json_body()
    require(data, 'title', 'targetAmount', 'deadline', 'category')
    goal = apply_fields(Goal(user_id=user.id), data, GOAL_FIELDS)
    goal.priority = goal.priority or 1
    goal.allocation_percentage = goal.allocation_percentage or goal_engine.DEFAULT_ALLOCATION_PERCENTAGE
    db.session.add(goal)
    db.session.commit()
    return jsonify(goal.to_dict()), 201

@app.route('/api/goals')
@login_required
def list_goals(user):
    goals = Goal.query.filter_by(user_id=user.id).order_by(Goal.priority, Goal.deadline).all()
    return jsonify([g.to_dict() for g in goals])

@app.route('/api/goals/<int:goal_id>', methods=['PUT'])
@login_required
def update_goal(user, goal_id):
    goal = get_owned(Goal, goal_id, user)
    apply_fields(goal, json_body(), GOAL_FIELDS)
    db.session.commit()
    return jsonify(goal.to_dict())

@app.route('/api/goals/<int:goal_id>', methods=['DELETE'])
@login_required
def delete_goal(user, goal_id):
    goal = get_owned(Goal, goal_id, user)
    db.session.delete(goal)
    db.session.commit()
    return jsonify({'message': 'Goal removed'})

@app.route('/api/goals/auto_allocate', methods=['POST'])
@login_required
def auto_allocate(user):
    goals = Goal.query.filter_by(user_id=user.id, auto_allocate=True).order_by(Goal.priority, Goal.id).all()
    # each goal is committed on its own; there is no version check on saved_amount
    result = goal_engine.allocate_savings(
        goals, user_transactions(user, TransactionType.income), save=lambda goal: db.session.commit())
    logger.info('Allocated %s across %d goals for user %s',
                result['totalAllocated'], len(result['allocations']), user.id)
    return jsonify(result)

@app.route('/api/goals/stats')
@login_required
def goal_stats(user):
    return jsonify(goal_engine.goal_statistics(user_goals(user), now=datetime.now()))

# ---------------------- Routes: Reports ----------------------
@app.route('/api/reports/trends')
@login_required
def spending_trends(user):
    return jsonify(aggregator.monthly_trends(user_transactions(user)))

@app.route('/api/reports/filter')
@login_required
def filtered_report(user):
    txs = aggregator.filter_transactions(
        user_transactions(user),
        start=arg('startDate', parse_datetime),
        end=arg('endDate', lambda v: parse_datetime(v, end_of_day=True)),
        category=request.args.get('category'),
        tags=arg('tags', parse_tags),
        type=arg('type', lambda v: TransactionType(v).value),
        min_amount=arg('minAmount', float),
        max_amount=arg('maxAmount', float),
    )
    txs.sort(key=lambda t: t.date, reverse=True)
    return jsonify([t.to_dict() for t in txs])

@app.route('/api/reports/visual')
@login_required
def visualization(user):
    return jsonify(aggregator.visualization_data(
        user_transactions(user),
        period=request.args.get('period'),
        start=arg('startDate', parse_datetime),
        end=arg('endDate', lambda v: parse_datetime(v, end_of_day=True)),
        now=datetime.now(),
    ))

@app.route('/api/reports/forecast')
@login_required
def expense_forecast(user):
    return jsonify(forecast(user_transactions(user, TransactionType.expense)))

# ---------------------- Routes: Notifications ----------------------
@app.route('/api/notifications/spending_alerts')
@login_required
def spending_alerts(user):
    alerts = reminders.spending_alerts(user_transactions(user, TransactionType.expense),
                                       threshold=app.config['SPENDING_ALERT_THRESHOLD'])
    return jsonify({'alerts': alerts})

@app.route('/api/notifications/bill_reminders')
@login_required
def bill_reminders(user):
    days = arg('daysAhead', parse_days, reminders.DEFAULT_BILL_DAYS)
    return jsonify({'reminders': reminders.bill_reminders(user_transactions(user), days, now=datetime.now())})

@app.route('/api/notifications/goal_reminders')
@login_required
def goal_reminders(user):
    threshold = arg('threshold', parse_days, reminders.DEFAULT_GOAL_DAYS)
    return jsonify({'reminders': reminders.goal_reminders(user_goals(user), threshold, now=datetime.now())})

# ---------------------- Routes: Currency ----------------------
@app.route('/api/currency', methods=['POST'])
@login_required
def set_preferred_currencies(user):
    data = json_body()
    require(data, 'baseCurrency', 'preferredCurrencies')
    try:
        preferred = [c.upper() for c in parse_tags(data['preferredCurrencies'])]
    except ValueError:
        raise ValidationError('Invalid value for preferredCurrencies')
    prefs = CurrencyPreference.query.filter_by(user_id=user.id).first()
    if not prefs:
        prefs = CurrencyPreference(user_id=user.id)
        db.session.add(prefs)
    prefs.base_currency = str(data['baseCurrency']).upper()
    prefs.preferred_currencies = preferred
    db.session.commit()
    return jsonify(prefs.to_dict())

@app.route('/api/currency/exchangerates')
@login_required
def exchange_rates(user):
    prefs = CurrencyPreference.query.filter_by(user_id=user.id).first()
    if not prefs:
        raise NotFoundError('User currency settings not found')
    return jsonify(fetch_exchange_rates(
        prefs.base_currency, prefs.preferred_currencies,
        api_key=app.config['EXCHANGE_RATE_API_KEY'],
        base_url=app.config['EXCHANGE_RATE_API_URL'],
        timeout=app.config['EXCHANGE_RATE_TIMEOUT'],
    ))

# ---------------------- Routes: Dashboard ----------------------
@app.route('/api/dashboard/user')
@login_required
def user_dashboard(user):
    return jsonify(dashboard.user_summary(user_transactions(user), user_budgets(user), user_goals(user)))

@app.route('/api/dashboard/admin')
@admin_required
def admin_dashboard(user):
    return jsonify(dashboard.admin_summary(
        User.query.count(), Transaction.query.count(), Budget.query.count(), Goal.query.count()))

# ---------------------- Routes: Admin ----------------------
@app.route('/api/admin/users')
@admin_required
def admin_users(user):
    return jsonify([u.to_dict() for u in User.query.order_by(User.id).all()])

@app.route('/api/admin/users/<int:user_id>', methods=['PUT'])
@admin_required
def admin_update_user(user, user_id):
    target = db.session.get(User, user_id)
    if not target:
        raise NotFoundError('User not found')
    apply_fields(target, json_body(), {
        'role': ('role', one_of(ROLES)),
        'isActive': ('is_active', parse_bool),
    })
    db.session.commit()
    logger.info('Admin %s updated user %s', user.id, target.id)
    return jsonify({'message': 'User updated successfully', 'user': target.to_dict()})

@app.route('/api/admin/users/<int:user_id>', methods=['DELETE'])
@admin_required
def admin_delete_user(user, user_id):
    target = db.session.get(User, user_id)
    if not target:
        raise NotFoundError('User not found')
    if target.id == user.id:
        raise ValidationError('You cannot delete your own account')
    db.session.delete(target)
    db.session.commit()
    logger.info('Admin %s deleted user %s', user.id, user_id)
    return jsonify({'message': 'User deleted successfully'})


# ---------------------- Run App ----------------------
if __name__ == '__main__':
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', 5000)), debug=True)
