from ledgerdesk.access import require_edit, require_view
from ledgerdesk.ledger.advance_ledger import AdvanceLedger
from ledgerdesk.ledger.models import present
from ledgerdesk.store import get_record_store
from ledgerdesk.utils.date_utils import get_local_now, today_iso
from ledgerdesk.utils.money import money_float
import logging

logger = logging.getLogger(__name__)

MENU = 'Employees'
COLLECTION = 'employees'


def _load(store, employee_id):
    doc = store.get(COLLECTION, employee_id)
    return doc, AdvanceLedger.from_document(doc.data)


def _save(store, doc, ledger):
    data = dict(doc.data)
    data.update(ledger.to_document())
    store.put(COLLECTION, doc.id, data, expected_version=doc.version)


def _advance_json(advance):
    result = present(advance.to_doc())
    result['status'] = advance.status.value
    return result


def list_advances(employee_id, access, store=None):
    require_view(access, MENU)
    store = store or get_record_store()
    _, ledger = _load(store, employee_id)
    advances = [_advance_json(a) for a in ledger.advances.values()]
    outstanding = sum(a.remaining for a in ledger.advances.values())
    return {'advances': advances, 'totalOutstanding': money_float(outstanding)}


def add_advance(employee_id, data, access, store=None):
    require_edit(access, MENU)
    store = store or get_record_store()
    _, ledger = _load(store, employee_id)
    entry_id = data.get('id')
    if entry_id is not None and str(entry_id) in ledger.advances:
        return _advance_json(ledger.advances[str(entry_id)])

    draft = ledger.copy()
    advance = draft.add_advance(
        data.get('amount'), data.get('reason'), today_iso(),
        created_by=access.user_name, created_at=get_local_now().isoformat(), entry_id=entry_id
    )
    store.append_to_array_field(COLLECTION, employee_id, 'advances', advance.to_doc())
    logger.info(f"Advance {advance.id} of {advance.amount} added for employee {employee_id}")
    return _advance_json(advance)


def add_advance_installment(employee_id, advance_id, data, access, store=None):
    require_edit(access, MENU)
    store = store or get_record_store()
    doc, ledger = _load(store, employee_id)
    draft = ledger.copy()
    draft.add_installment(
        advance_id, data.get('returnedAmount'), data.get('date'),
        added_by=access.user_name, added_at=get_local_now().isoformat(), entry_id=data.get('id')
    )
    advance = draft.advance(advance_id)
    if advance.to_doc() != ledger.advance(advance_id).to_doc():
        _save(store, doc, draft)
        logger.info(f"Installment recorded on advance {advance.id} of employee {employee_id}, remaining {advance.remaining}")
    return _advance_json(advance)


def delete_advance(employee_id, advance_id, access, confirm=False, store=None):
    require_edit(access, MENU)
    store = store or get_record_store()
    doc, ledger = _load(store, employee_id)
    draft = ledger.copy()
    advance = draft.delete_advance(advance_id, confirm=confirm)
    _save(store, doc, draft)
    logger.info(f"Advance {advance.id} deleted for employee {employee_id} by {access.user_name}")
    return _advance_json(advance)
