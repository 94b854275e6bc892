import copy

from ledgerdesk.errors import NotFound, OverpaymentError, ConfirmationRequired
from ledgerdesk.ledger.models import Advance, AdvanceInstallment, required_text
from ledgerdesk.utils.ids import new_id
from ledgerdesk.utils.money import positive_amount, money_float
from ledgerdesk.utils.date_utils import parse_optional_date


class AdvanceLedger:
    """
    Advances paid to one employee. An advance is Open while something remains
    to be returned and Cleared once `remaining` reaches zero; installments only
    ever lower `remaining`, so a cleared advance never reopens.
    """

    def __init__(self, advances=()):
        self.advances = {a.id: a for a in advances}

    @classmethod
    def from_document(cls, data):
        return cls([Advance.from_doc(a) for a in data.get('advances') or []])

    def to_document(self):
        return {'advances': [a.to_doc() for a in self.advances.values()]}

    def copy(self):
        return copy.deepcopy(self)

    def advance(self, advance_id):
        advance = self.advances.get(str(advance_id))
        if advance is None:
            raise NotFound(f"Advance {advance_id} not found", id=str(advance_id))
        return advance

    def add_advance(self, amount, reason, today, created_by, created_at, entry_id=None):
        if entry_id is not None and str(entry_id) in self.advances:
            return self.advances[str(entry_id)]
        advance = Advance(
            id=str(entry_id) if entry_id is not None else new_id(self.advances.keys()),
            amount=positive_amount(amount, 'amount'),
            reason=required_text(reason, 'reason'),
            date=today,
            installments=[],
            created_by=created_by,
            created_at=created_at,
        )
        self.advances[advance.id] = advance
        return advance

    def add_installment(self, advance_id, returned_amount, date, added_by, added_at, entry_id=None):
        advance = self.advance(advance_id)
        if entry_id is not None:
            for inst in advance.installments:
                if inst.id == str(entry_id):
                    return inst
        value = positive_amount(returned_amount, 'returnedAmount')
        if value > advance.remaining:
            raise OverpaymentError(
                f"Returned amount {value} exceeds the remaining {advance.remaining}",
                advanceId=advance.id, remaining=money_float(advance.remaining)
            )
        installment = AdvanceInstallment(
            id=str(entry_id) if entry_id is not None else new_id(i.id for i in advance.installments),
            amount=value,
            date=parse_optional_date(date, 'date') or added_at[:10],
            added_by=added_by,
            added_at=added_at,
        )
        advance.installments.append(installment)
        return installment

    def delete_advance(self, advance_id, confirm=False):
        advance = self.advance(advance_id)
        if not confirm:
            raise ConfirmationRequired(
                "Deleting an advance discards its installment history; resend with confirm=true",
                advanceId=advance.id, installments=len(advance.installments)
            )
        return self.advances.pop(advance.id)
