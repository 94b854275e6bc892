"""Ledger records and their document (camelCase) representation."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from ledgerdesk.errors import ValidationError
from ledgerdesk.utils.money import to_decimal, round2, money_str, ZERO


class WorkStatus(str, Enum):
    PENDING = 'Pending'
    IN_PROGRESS = 'In Progress'
    COMPLETED = 'Completed'


class PaymentMethod(str, Enum):
    CASH = 'Cash'
    UPI = 'UPI'
    BANK_TRANSFER = 'Bank Transfer'
    CHEQUE = 'Cheque'
    CARD = 'Card'


class ExpenseCategory(str, Enum):
    LABOR = 'Labor'
    TRANSPORT = 'Transport'
    TOOLS = 'Tools'
    OTHER = 'Other'


class AdvanceStatus(str, Enum):
    OPEN = 'Open'
    CLEARED = 'Cleared'


def parse_enum(enum_cls, value, field_name):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ', '.join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {field_name}: {value!r} (expected one of {allowed})", field=field_name)


def required_text(value, field_name):
    if value is None or not str(value).strip():
        raise ValidationError(f"Missing required field: {field_name}", field=field_name)
    return str(value).strip()


def category_list(values, field_name='category'):
    """Non-empty list of tags, blanks dropped, duplicates removed in order."""
    if isinstance(values, str):
        values = [values]
    tags = []
    for value in values or []:
        tag = str(value).strip()
        if tag and tag not in tags:
            tags.append(tag)
    if not tags:
        raise ValidationError(f"Select at least one {field_name}", field=field_name)
    return tags


@dataclass
class WorkOrder:
    id: str
    work_name: str
    category: List[str]
    status: WorkStatus = WorkStatus.PENDING
    created_date: Optional[str] = None

    def to_doc(self):
        return {
            'id': self.id,
            'workName': self.work_name,
            'category': list(self.category),
            'status': self.status.value,
            'createdDate': self.created_date,
        }

    @classmethod
    def from_doc(cls, doc):
        return cls(
            id=str(doc['id']),
            work_name=doc.get('workName', ''),
            category=list(doc.get('category') or []),
            status=parse_enum(WorkStatus, doc.get('status') or WorkStatus.PENDING.value, 'status'),
            created_date=doc.get('createdDate'),
        )


@dataclass
class MaterialConsumption:
    id: str
    work_id: str
    material_name: str
    quantity: Decimal
    rate: Decimal
    unit: str = ''
    work_name: str = ''
    added_date: Optional[str] = None

    @property
    def total_amount(self):
        return round2(self.quantity * self.rate)

    def to_doc(self):
        return {
            'id': self.id,
            'workId': self.work_id,
            'workName': self.work_name,
            'materialName': self.material_name,
            'quantity': str(self.quantity),
            'unit': self.unit,
            'rate': str(self.rate),
            'totalAmount': money_str(self.total_amount),
            'addedDate': self.added_date,
        }

    @classmethod
    def from_doc(cls, doc):
        # totalAmount is not read back: it is always derived from quantity and rate
        return cls(
            id=str(doc['id']),
            work_id=str(doc.get('workId', '')),
            work_name=doc.get('workName', ''),
            material_name=doc.get('materialName', ''),
            quantity=to_decimal(doc.get('quantity'), 'quantity'),
            rate=to_decimal(doc.get('rate'), 'rate'),
            unit=doc.get('unit') or '',
            added_date=doc.get('addedDate'),
        )


@dataclass
class Installment:
    id: str
    installment_name: str
    amount: Decimal
    payment_date: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    added_date: Optional[str] = None

    def to_doc(self):
        return {
            'id': self.id,
            'installmentName': self.installment_name,
            'amount': money_str(self.amount),
            'paymentDate': self.payment_date,
            'paymentMethod': self.payment_method.value,
            'addedDate': self.added_date,
        }

    @classmethod
    def from_doc(cls, doc):
        return cls(
            id=str(doc['id']),
            installment_name=doc.get('installmentName', ''),
            amount=to_decimal(doc.get('amount'), 'amount'),
            payment_date=doc.get('paymentDate'),
            payment_method=parse_enum(PaymentMethod, doc.get('paymentMethod') or PaymentMethod.CASH.value, 'paymentMethod'),
            added_date=doc.get('addedDate'),
        )


@dataclass
class PaymentRecord:
    id: str
    work_id: str
    total_amount: Decimal
    installments: List[Installment] = field(default_factory=list)
    work_name: str = ''
    created_date: Optional[str] = None

    @property
    def total_paid(self):
        return sum((i.amount for i in self.installments), ZERO)

    @property
    def remaining(self):
        return self.total_amount - self.total_paid

    def installment(self, installment_id):
        for inst in self.installments:
            if inst.id == str(installment_id):
                return inst
        return None

    def to_doc(self):
        return {
            'id': self.id,
            'workId': self.work_id,
            'workName': self.work_name,
            'totalAmount': money_str(self.total_amount),
            'installments': [i.to_doc() for i in self.installments],
            'createdDate': self.created_date,
        }

    @classmethod
    def from_doc(cls, doc):
        return cls(
            id=str(doc['id']),
            work_id=str(doc.get('workId', '')),
            work_name=doc.get('workName', ''),
            total_amount=to_decimal(doc.get('totalAmount'), 'totalAmount'),
            installments=[Installment.from_doc(i) for i in doc.get('installments') or []],
            created_date=doc.get('createdDate'),
        )


@dataclass
class LedgerExpense:
    id: str
    work_id: str
    expense_name: str
    amount: Decimal
    category: ExpenseCategory = ExpenseCategory.LABOR
    expense_date: Optional[str] = None
    work_name: str = ''
    recorded_date: Optional[str] = None

    def to_doc(self):
        return {
            'id': self.id,
            'workId': self.work_id,
            'workName': self.work_name,
            'expenseName': self.expense_name,
            'amount': money_str(self.amount),
            'category': self.category.value,
            'expenseDate': self.expense_date,
            'recordedDate': self.recorded_date,
        }

    @classmethod
    def from_doc(cls, doc):
        return cls(
            id=str(doc['id']),
            work_id=str(doc.get('workId', '')),
            work_name=doc.get('workName', ''),
            expense_name=doc.get('expenseName', ''),
            amount=to_decimal(doc.get('amount'), 'amount'),
            category=parse_enum(ExpenseCategory, doc.get('category') or ExpenseCategory.LABOR.value, 'category'),
            expense_date=doc.get('expenseDate'),
            recorded_date=doc.get('recordedDate'),
        )


@dataclass
class AdvanceInstallment:
    id: str
    amount: Decimal
    date: Optional[str] = None
    added_by: Optional[str] = None
    added_at: Optional[str] = None

    def to_doc(self):
        return {
            'id': self.id,
            'amount': money_str(self.amount),
            'date': self.date,
            'addedBy': self.added_by,
            'addedAt': self.added_at,
        }

    @classmethod
    def from_doc(cls, doc):
        return cls(
            id=str(doc['id']),
            amount=to_decimal(doc.get('amount'), 'amount'),
            date=doc.get('date'),
            added_by=doc.get('addedBy'),
            added_at=doc.get('addedAt'),
        )


@dataclass
class Advance:
    id: str
    amount: Decimal
    reason: str
    date: Optional[str] = None
    installments: List[AdvanceInstallment] = field(default_factory=list)
    created_by: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def total_returned(self):
        return sum((i.amount for i in self.installments), ZERO)

    @property
    def remaining(self):
        return self.amount - self.total_returned

    @property
    def status(self):
        return AdvanceStatus.CLEARED if self.remaining <= 0 else AdvanceStatus.OPEN

    def to_doc(self):
        # totalReturned/remaining are written for readers of the raw document;
        # from_doc never trusts them
        return {
            'id': self.id,
            'amount': money_str(self.amount),
            'reason': self.reason,
            'date': self.date,
            'installments': [i.to_doc() for i in self.installments],
            'totalReturned': money_str(self.total_returned),
            'remaining': money_str(self.remaining),
            'createdBy': self.created_by,
            'createdAt': self.created_at,
        }

    @classmethod
    def from_doc(cls, doc):
        return cls(
            id=str(doc['id']),
            amount=to_decimal(doc.get('amount'), 'amount'),
            reason=doc.get('reason', ''),
            date=doc.get('date'),
            installments=[AdvanceInstallment.from_doc(i) for i in doc.get('installments') or []],
            created_by=doc.get('createdBy'),
            created_at=doc.get('createdAt'),
        )


@dataclass
class Activity:
    id: str
    action: str
    details: str
    user_name: str
    timestamp: str
    date: str
    time: str
    field: Optional[str] = None
    before: Optional[str] = None
    after: Optional[str] = None

    def to_doc(self):
        doc = {
            'id': self.id,
            'action': self.action,
            'details': self.details,
            'userName': self.user_name,
            'timestamp': self.timestamp,
            'date': self.date,
            'time': self.time,
        }
        if self.field is not None:
            doc.update({'field': self.field, 'before': self.before, 'after': self.after})
        return doc

    @classmethod
    def from_doc(cls, doc):
        return cls(
            id=str(doc['id']),
            action=doc.get('action', ''),
            details=doc.get('details', ''),
            user_name=doc.get('userName', ''),
            timestamp=doc.get('timestamp', ''),
            date=doc.get('date', ''),
            time=doc.get('time', ''),
            field=doc.get('field'),
            before=doc.get('before'),
            after=doc.get('after'),
        )


MONEY_FIELDS = (
    'amount', 'totalAmount', 'rate', 'quantity', 'totalReturned', 'remaining',
    'pricePerUnit', 'basicSalary', 'bonus', 'miscellaneous', 'deductions', 'totalSalary',
    'squareFeet', 'originalPrice', 'discountedPrice', 'subtotal', 'gst', 'gstPercentage', 'grandTotal',
)


def present(doc):
    """Document as returned by the API: stored money strings become floats."""
    if isinstance(doc, list):
        return [present(item) for item in doc]
    if not isinstance(doc, dict):
        return doc
    out = {}
    for key, value in doc.items():
        if key in MONEY_FIELDS and isinstance(value, str):
            try:
                out[key] = float(value)
            except ValueError:
                out[key] = value
        else:
            out[key] = present(value)
    return out
