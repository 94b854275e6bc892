from decimal import Decimal, InvalidOperation
import logging

from flask import current_app, has_app_context

from ledgerdesk.access import require_view
from ledgerdesk.store import get_record_store
from ledgerdesk.utils.date_utils import get_local_now
from ledgerdesk.utils.money import round2, money_float, ZERO

logger = logging.getLogger(__name__)

MONTH_LABELS = ('Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec')

LEAD_BUCKETS = {
    'converted': ('Confirmed', 'Closed'),
    'inProgress': ('Follow up', 'Site Visit', 'Quotation', 'Awaiting for response', 'In Progress'),
    'pending': ('New', 'Contacted'),
}


def _amount(data):
    try:
        return Decimal(str(data.get('amount') or 0))
    except InvalidOperation:
        logger.warning(f"Ignoring unreadable amount {data.get('amount')!r} on record {data.get('id')}")
        return ZERO


def _total(records):
    return sum((_amount(r) for r in records), ZERO)


def _year_month(data):
    """(year, month) of a record's date, falling back to its creation time."""
    value = data.get('date') or data.get('createdAt') or ''
    try:
        return int(value[:4]), int(value[5:7])
    except (TypeError, ValueError):
        return None


def _trend_bucketing():
    if has_app_context():
        return current_app.config.get('DASHBOARD_TREND_BUCKETING', 'year_month')
    return 'year_month'


def _last_six_months(today):
    months = []
    year, month = today.year, today.month
    for _ in range(6):
        months.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(months))


def monthly_trend(assets, expenses, today, bucketing='year_month'):
    """
    Revenue, expenses and profit for the six months ending with `today`'s
    month. With 'month' bucketing records match on calendar month alone, so
    the same month of earlier years is counted too.
    """
    def matches(record, year, month):
        key = _year_month(record)
        if key is None:
            return False
        if bucketing == 'month':
            return key[1] == month
        return key == (year, month)

    trend = []
    for year, month in _last_six_months(today):
        revenue = _total(r for r in assets if matches(r, year, month))
        spent = _total(r for r in expenses if matches(r, year, month))
        trend.append({
            'month': MONTH_LABELS[month - 1],
            'year': year,
            'revenue': money_float(revenue),
            'expenses': money_float(spent),
            'profit': money_float(revenue - spent),
        })
    return trend


def lead_funnel(leads):
    total = len(leads)
    counts = {bucket: 0 for bucket in LEAD_BUCKETS}
    for lead in leads:
        for bucket, statuses in LEAD_BUCKETS.items():
            if lead.get('status') in statuses:
                counts[bucket] += 1
                break
    rate = round2(Decimal(counts['converted']) / total * 100) if total else ZERO
    return {'total': total, **counts, 'conversionRate': float(rate)}


def expenses_by_category(expenses):
    totals = {}
    for record in expenses:
        category = record.get('category') or 'Uncategorized'
        totals[category] = totals.get(category, ZERO) + _amount(record)
    ordered = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [{'name': name, 'value': money_float(value)} for name, value in ordered]


def get_dashboard_summary(access, today=None, store=None):
    require_view(access, 'Dashboard')
    store = store or get_record_store()
    today = today or get_local_now().date()

    assets = [d.data for d in store.query('asset_investments')]
    expenses = [d.data for d in store.query('daily_expenses')] + [d.data for d in store.query('monthly_expenses')]
    leads = [d.data for d in store.query('leads')]

    total_investment = _total(assets)
    total_expenses = _total(expenses)
    # investment is reported as revenue
    profit_loss = total_investment - total_expenses
    percentage = round2(profit_loss / total_investment * 100) if total_investment > 0 else ZERO

    logger.info(f"Dashboard summary for {access.user_name}: {len(assets)} assets, {len(expenses)} expenses, {len(leads)} leads")
    return {
        'totalInvestment': money_float(total_investment),
        'totalRevenue': money_float(total_investment),
        'totalExpenses': money_float(total_expenses),
        'profitLoss': money_float(profit_loss),
        'profitLossPercentage': float(percentage),
        'leads': lead_funnel(leads),
        'monthlyTrend': monthly_trend(assets, expenses, today, _trend_bucketing()),
        'expensesByCategory': expenses_by_category(expenses),
    }
