import copy
import logging
from collections import defaultdict

from ledgerdesk.errors import NotFound, OverpaymentError
from ledgerdesk.ledger.models import (
    WorkOrder, MaterialConsumption, PaymentRecord, Installment, LedgerExpense,
    WorkStatus, PaymentMethod, ExpenseCategory,
    parse_enum, required_text, category_list,
)
from ledgerdesk.utils.ids import new_id
from ledgerdesk.utils.money import positive_amount, positive_number, money_float
from ledgerdesk.utils.date_utils import parse_optional_date

logger = logging.getLogger(__name__)

# document field -> (attribute, record class)
LEDGER_FIELDS = {
    'works': ('works', WorkOrder),
    'materials': ('materials', MaterialConsumption),
    'paymentRecords': ('payment_records', PaymentRecord),
    'expenses': ('expenses', LedgerExpense),
}


class CustomerLedger:
    """
    The four nested collections of one customer, each kept as an id-keyed
    mapping in insertion order. Materials, payment records and expenses point
    at their work through `work_id` only; nothing here owns them through the
    work.

    Methods validate, mutate this object and return the touched record.
    Callers that need persist-before-commit semantics mutate a `copy()`.
    """

    def __init__(self, works=(), materials=(), payment_records=(), expenses=()):
        self.works = {w.id: w for w in works}
        self.materials = {m.id: m for m in materials}
        self.payment_records = {r.id: r for r in payment_records}
        self.expenses = {e.id: e for e in expenses}

    @classmethod
    def from_document(cls, data):
        kwargs = {}
        for doc_field, (attr, record_cls) in LEDGER_FIELDS.items():
            kwargs[attr] = [record_cls.from_doc(item) for item in data.get(doc_field) or []]
        return cls(**kwargs)

    def to_document(self):
        return {
            doc_field: [record.to_doc() for record in getattr(self, attr).values()]
            for doc_field, (attr, _) in LEDGER_FIELDS.items()
        }

    def copy(self):
        return copy.deepcopy(self)

    # lookups

    def _get(self, arena, record_id, label):
        record = arena.get(str(record_id))
        if record is None:
            raise NotFound(f"{label} {record_id} not found", id=str(record_id))
        return record

    def work(self, work_id):
        return self._get(self.works, work_id, 'Work')

    def material(self, material_id):
        return self._get(self.materials, material_id, 'Material')

    def payment_record(self, record_id):
        return self._get(self.payment_records, record_id, 'Payment record')

    def expense(self, expense_id):
        return self._get(self.expenses, expense_id, 'Expense')

    def work_index(self):
        """workId -> {'materials': [...], 'paymentRecords': [...], 'expenses': [...]}"""
        index = defaultdict(lambda: {'materials': [], 'paymentRecords': [], 'expenses': []})
        for m in self.materials.values():
            index[m.work_id]['materials'].append(m)
        for r in self.payment_records.values():
            index[r.work_id]['paymentRecords'].append(r)
        for e in self.expenses.values():
            index[e.work_id]['expenses'].append(e)
        return index

    def orphaned_work_ids(self):
        return sorted(wid for wid in self.work_index() if wid not in self.works)

    def has_entry(self, doc_field, entry_id):
        """True when a create carrying `entry_id` would be a replay."""
        if entry_id is None:
            return False
        attr = LEDGER_FIELDS[doc_field][0]
        return str(entry_id) in getattr(self, attr)

    @staticmethod
    def _fresh_id(arena, entry_id=None):
        if entry_id is not None:
            return str(entry_id)
        return new_id(arena.keys())

    # works

    def add_work(self, name, categories, today, entry_id=None):
        if entry_id is not None and str(entry_id) in self.works:
            return self.works[str(entry_id)]
        work = WorkOrder(
            id=self._fresh_id(self.works, entry_id),
            work_name=required_text(name, 'workName'),
            category=category_list(categories),
            status=WorkStatus.PENDING,
            created_date=today,
        )
        self.works[work.id] = work
        return work

    def update_work(self, work_id, name, categories, status=None):
        work = self.work(work_id)
        work_name = required_text(name, 'workName')
        tags = category_list(categories)
        new_status = parse_enum(WorkStatus, status, 'status') if status is not None else work.status
        work.work_name, work.category, work.status = work_name, tags, new_status
        # keep the display copies on dependents in step with the new name
        for group in self.work_index()[work.id].values():
            for record in group:
                record.work_name = work.work_name
        return work

    def delete_work(self, work_id, cascade=False):
        work = self.work(work_id)
        del self.works[work.id]
        removed = {'materials': [], 'paymentRecords': [], 'expenses': []}
        if cascade:
            dependents = self.work_index().get(work.id, removed)
            for m in dependents['materials']:
                del self.materials[m.id]
            for r in dependents['paymentRecords']:
                del self.payment_records[r.id]
            for e in dependents['expenses']:
                del self.expenses[e.id]
            removed = dependents
        return work, removed

    # materials

    def add_material(self, work_id, material_name, quantity, rate, unit, today, entry_id=None):
        if entry_id is not None and str(entry_id) in self.materials:
            return self.materials[str(entry_id)]
        work = self.work(work_id)
        material = MaterialConsumption(
            id=self._fresh_id(self.materials, entry_id),
            work_id=work.id,
            work_name=work.work_name,
            material_name=required_text(material_name, 'materialName'),
            quantity=positive_number(quantity, 'quantity'),
            rate=positive_number(rate, 'rate'),
            unit=(unit or '').strip(),
            added_date=today,
        )
        self.materials[material.id] = material
        return material

    def update_material(self, material_id, work_id, material_name, quantity, rate, unit):
        material = self.material(material_id)
        work = self.work(work_id)
        name = required_text(material_name, 'materialName')
        qty = positive_number(quantity, 'quantity')
        price = positive_number(rate, 'rate')
        material.work_id = work.id
        material.work_name = work.work_name
        material.material_name = name
        material.quantity = qty
        material.rate = price
        material.unit = (unit or '').strip()
        return material

    def delete_material(self, material_id):
        return self.materials.pop(self.material(material_id).id)

    # payment records

    def create_payment_record(self, work_id, total_amount, today, entry_id=None):
        if entry_id is not None and str(entry_id) in self.payment_records:
            return self.payment_records[str(entry_id)]
        work = self.work(work_id)
        record = PaymentRecord(
            id=self._fresh_id(self.payment_records, entry_id),
            work_id=work.id,
            work_name=work.work_name,
            total_amount=positive_amount(total_amount, 'totalAmount'),
            installments=[],
            created_date=today,
        )
        self.payment_records[record.id] = record
        return record

    def update_payment_record(self, record_id, work_id, total_amount):
        record = self.payment_record(record_id)
        work = self.work(work_id)
        new_total = positive_amount(total_amount, 'totalAmount')
        if new_total < record.total_paid:
            raise OverpaymentError(
                f"Total amount {new_total} is less than the {record.total_paid} already paid",
                recordId=record.id, paid=money_float(record.total_paid)
            )
        record.work_id = work.id
        record.work_name = work.work_name
        record.total_amount = new_total
        return record

    def delete_payment_record(self, record_id):
        return self.payment_records.pop(self.payment_record(record_id).id)

    def _check_installment_fits(self, record, amount, replacing=None):
        remaining = record.remaining
        if replacing is not None:
            remaining += replacing.amount
        if amount > remaining:
            raise OverpaymentError(
                f"Installment of {amount} exceeds the remaining balance of {remaining}",
                recordId=record.id, remaining=money_float(remaining)
            )

    def add_installment(self, record_id, name, amount, payment_date, method, today, entry_id=None):
        record = self.payment_record(record_id)
        installment_id = str(entry_id) if entry_id is not None else new_id(i.id for i in record.installments)
        existing = record.installment(installment_id)
        if existing is not None:
            return existing
        value = positive_amount(amount, 'amount')
        self._check_installment_fits(record, value)
        installment = Installment(
            id=installment_id,
            installment_name=required_text(name, 'installmentName'),
            amount=value,
            payment_date=parse_optional_date(payment_date, 'paymentDate'),
            payment_method=parse_enum(PaymentMethod, method or PaymentMethod.CASH.value, 'paymentMethod'),
            added_date=today,
        )
        record.installments.append(installment)
        return installment

    def update_installment(self, record_id, installment_id, name, amount, payment_date, method):
        record = self.payment_record(record_id)
        installment = record.installment(installment_id)
        if installment is None:
            raise NotFound(f"Installment {installment_id} not found", id=str(installment_id))
        value = positive_amount(amount, 'amount')
        self._check_installment_fits(record, value, replacing=installment)
        installment_name = required_text(name, 'installmentName')
        paid_on = parse_optional_date(payment_date, 'paymentDate')
        payment_method = parse_enum(PaymentMethod, method or PaymentMethod.CASH.value, 'paymentMethod')
        installment.installment_name = installment_name
        installment.amount = value
        installment.payment_date = paid_on
        installment.payment_method = payment_method
        return installment

    def has_installment(self, record_id, entry_id):
        if entry_id is None:
            return False
        return self.payment_record(record_id).installment(entry_id) is not None

    def delete_installment(self, record_id, installment_id):
        record = self.payment_record(record_id)
        installment = record.installment(installment_id)
        if installment is None:
            raise NotFound(f"Installment {installment_id} not found", id=str(installment_id))
        record.installments.remove(installment)
        return installment

    # expenses

    def add_expense(self, work_id, expense_name, amount, category, expense_date, today, entry_id=None):
        if entry_id is not None and str(entry_id) in self.expenses:
            return self.expenses[str(entry_id)]
        work = self.work(work_id)
        expense = LedgerExpense(
            id=self._fresh_id(self.expenses, entry_id),
            work_id=work.id,
            work_name=work.work_name,
            expense_name=required_text(expense_name, 'expenseName'),
            amount=positive_amount(amount, 'amount'),
            category=parse_enum(ExpenseCategory, category or ExpenseCategory.LABOR.value, 'category'),
            expense_date=parse_optional_date(expense_date, 'expenseDate'),
            recorded_date=today,
        )
        self.expenses[expense.id] = expense
        return expense

    def update_expense(self, expense_id, work_id, expense_name, amount, category, expense_date):
        expense = self.expense(expense_id)
        work = self.work(work_id)
        name = required_text(expense_name, 'expenseName')
        value = positive_amount(amount, 'amount')
        kind = parse_enum(ExpenseCategory, category or ExpenseCategory.LABOR.value, 'category')
        spent_on = parse_optional_date(expense_date, 'expenseDate')
        expense.work_id = work.id
        expense.work_name = work.work_name
        expense.expense_name = name
        expense.amount = value
        expense.category = kind
        expense.expense_date = spent_on
        return expense

    def delete_expense(self, expense_id):
        return self.expenses.pop(self.expense(expense_id).id)

