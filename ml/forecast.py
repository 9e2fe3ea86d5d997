import pandas as pd
from sklearn.linear_model import LinearRegression

from analytics.aggregator import transactions_frame

# Note: works on transactions already loaded for one user; no db access here.


def monthly_expenses(transactions):
    df = transactions_frame(transactions)
    expenses = df[df['type'] == 'expense'].copy()
    if expenses.empty:
        return pd.DataFrame(columns=['ym', 'amount'])
    expenses['ym'] = expenses['date'].dt.to_period('M').astype(str)
    return expenses.groupby('ym')['amount'].sum().reset_index()


def predict_next_month_expense(transactions):
    m = monthly_expenses(transactions)
    if m.empty:
        return 0.0
    if len(m) < 2:
        # Not enough data to fit
        return float(m['amount'].iloc[-1])
    # Months with data become a plain integer index; gaps are not filled
    m['idx'] = range(1, len(m) + 1)
    X = m[['idx']].values
    y = m['amount'].values
    model = LinearRegression().fit(X, y)
    next_idx = m['idx'].max() + 1
    pred = float(model.predict([[next_idx]])[0])
    return max(pred, 0.0)


def forecast(transactions):
    m = monthly_expenses(transactions)
    return {
        'months': {row['ym']: float(row['amount']) for _, row in m.iterrows()},
        'nextMonthExpense': predict_next_month_expense(transactions),
    }
