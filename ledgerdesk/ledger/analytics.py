"""Revenue, cost and profit figures derived from a customer ledger.

Nothing computed here is ever persisted; every figure is re-derived from the
stored materials, payment records and expenses on each call.
"""

from dataclasses import dataclass
from decimal import Decimal

from ledgerdesk.utils.money import round2, money_float, ZERO

HUNDRED = Decimal('100')


@dataclass(frozen=True)
class WorkAnalytics:
    work_id: str
    total_revenue: Decimal
    total_paid: Decimal
    total_pending: Decimal
    material_cost: Decimal
    expense_cost: Decimal
    total_investment: Decimal
    profit_loss: Decimal
    profit_margin: Decimal

    def to_dict(self):
        return {
            'workId': self.work_id,
            'totalRevenue': money_float(self.total_revenue),
            'totalPaid': money_float(self.total_paid),
            'totalPending': money_float(self.total_pending),
            'materialCost': money_float(self.material_cost),
            'expenseCost': money_float(self.expense_cost),
            'totalInvestment': money_float(self.total_investment),
            'profitLoss': money_float(self.profit_loss),
            'profitMargin': money_float(self.profit_margin),
        }


def _reduce(work_id, records, materials, expenses):
    total_revenue = sum((r.total_amount for r in records), ZERO)
    total_paid = sum((r.total_paid for r in records), ZERO)
    material_cost = sum((m.total_amount for m in materials), ZERO)
    expense_cost = sum((e.amount for e in expenses), ZERO)
    total_investment = material_cost + expense_cost
    profit_loss = total_paid - total_investment
    profit_margin = round2(profit_loss / total_revenue * HUNDRED) if total_revenue > 0 else round2(ZERO)
    return WorkAnalytics(
        work_id=work_id,
        total_revenue=total_revenue,
        total_paid=total_paid,
        total_pending=total_revenue - total_paid,
        material_cost=material_cost,
        expense_cost=expense_cost,
        total_investment=total_investment,
        profit_loss=profit_loss,
        profit_margin=profit_margin,
    )


def compute_work_analytics(ledger, work_id):
    work_id = str(work_id)
    return _reduce(
        work_id,
        [r for r in ledger.payment_records.values() if r.work_id == work_id],
        [m for m in ledger.materials.values() if m.work_id == work_id],
        [e for e in ledger.expenses.values() if e.work_id == work_id],
    )


def compute_customer_analytics(ledger):
    """
    Per-work analytics for every work of the customer plus the totals over
    the whole ledger. Records whose work no longer exists count toward the
    totals and are reported under `orphanedWorkIds`.
    """
    works = []
    for work in ledger.works.values():
        analytics = compute_work_analytics(ledger, work.id).to_dict()
        analytics['workName'] = work.work_name
        analytics['status'] = work.status.value
        works.append(analytics)

    totals = _reduce(
        None,
        list(ledger.payment_records.values()),
        list(ledger.materials.values()),
        list(ledger.expenses.values()),
    ).to_dict()
    totals.pop('workId')

    return {
        'works': works,
        'totals': totals,
        'orphanedWorkIds': ledger.orphaned_work_ids(),
    }
