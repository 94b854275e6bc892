from ledgerdesk.access import require_edit, require_view
from ledgerdesk.errors import NotFound
from ledgerdesk.crud.entity_crud import update_record
from ledgerdesk.ledger.customer_ledger import CustomerLedger
from ledgerdesk.ledger.analytics import compute_work_analytics as _work_analytics, compute_customer_analytics as _customer_analytics
from ledgerdesk.ledger.models import present
from ledgerdesk.store import get_record_store
from ledgerdesk.utils.date_utils import today_iso
from ledgerdesk.utils.logging_utils import build_activity, with_activity, log_action
import logging

logger = logging.getLogger(__name__)

MENU = 'Customers'
COLLECTION = 'customers'


def _load(store, customer_id):
    doc = store.get(COLLECTION, customer_id)
    return doc, CustomerLedger.from_document(doc.data)


def _append(store, customer_id, doc_field, record, access, action, details):
    """Pure additions go through the store's atomic array append."""
    store.append_to_array_field(COLLECTION, customer_id, doc_field, record.to_doc())
    log_action(store, COLLECTION, customer_id, access, action, details)
    logger.info(f"{action} on customer {customer_id}: {record.id}")


def _rewrite(store, doc, ledger, doc_fields, access, action, details):
    """
    Edits and deletes write the changed sub-collections back in one write,
    together with the activity entry, guarded by the version that was read.
    """
    rendered = ledger.to_document()
    data = dict(doc.data)
    for doc_field in doc_fields:
        data[doc_field] = rendered[doc_field]
    taken = [a.get('id') for a in data.get('activities') or []]
    data = with_activity(data, build_activity(access, action, details, existing_ids=taken))
    store.put(COLLECTION, doc.id, data, expected_version=doc.version)
    logger.info(f"{action} on customer {doc.id}")


def get_customer_ledger(customer_id, access, store=None):
    require_view(access, MENU)
    store = store or get_record_store()
    _, ledger = _load(store, customer_id)
    return present(ledger.to_document())


def update_profile(customer_id, data, access, store=None):
    """Name, mobile, address and services; logged as 'Profile Updated'."""
    return update_record(COLLECTION, customer_id, data, access, store=store)


# works

def add_work(customer_id, data, access, store=None):
    require_edit(access, MENU)
    store = store or get_record_store()
    _, ledger = _load(store, customer_id)
    entry_id = data.get('id')
    if ledger.has_entry('works', entry_id):
        return present(ledger.works[str(entry_id)].to_doc())

    draft = ledger.copy()
    work = draft.add_work(data.get('workName'), data.get('category'), today_iso(), entry_id=entry_id)
    _append(store, customer_id, 'works', work, access, 'Work Added', f"Added work: {work.work_name}")
    return present(work.to_doc())


def update_work(customer_id, work_id, data, access, store=None):
    require_edit(access, MENU)
    store = store or get_record_store()
    doc, ledger = _load(store, customer_id)
    draft = ledger.copy()
    work = draft.update_work(work_id, data.get('workName'), data.get('category'), data.get('status'))
    _rewrite(store, doc, draft, ('works', 'materials', 'paymentRecords', 'expenses'), access,
             'Work Updated', f"Updated work: {work.work_name}")
    return present(work.to_doc())


def delete_work(customer_id, work_id, access, cascade=False, store=None):
    require_edit(access, MENU)
    store = store or get_record_store()
    doc, ledger = _load(store, customer_id)
    draft = ledger.copy()
    work, removed = draft.delete_work(work_id, cascade=cascade)
    details = f"Deleted work: {work.work_name}"
    if cascade:
        details += (f" with {len(removed['materials'])} materials, "
                    f"{len(removed['paymentRecords'])} payment records and "
                    f"{len(removed['expenses'])} expenses")
    _rewrite(store, doc, draft, ('works', 'materials', 'paymentRecords', 'expenses'), access,
             'Work Deleted', details)
    return {
        'work': present(work.to_doc()),
        'removed': {k: [r.id for r in v] for k, v in removed.items()},
        'orphanedWorkIds': draft.orphaned_work_ids(),
    }


# materials

def add_material_consumption(customer_id, data, access, store=None):
    require_edit(access, MENU)
    store = store or get_record_store()
    _, ledger = _load(store, customer_id)
    entry_id = data.get('id')
    if ledger.has_entry('materials', entry_id):
        return present(ledger.materials[str(entry_id)].to_doc())

    draft = ledger.copy()
    material = draft.add_material(
        data.get('workId'), data.get('materialName'), data.get('quantity'),
        data.get('rate'), data.get('unit'), today_iso(), entry_id=entry_id
    )
    _append(store, customer_id, 'materials', material, access, 'Material Added',
            f"Added {material.material_name} for {material.work_name}")
    return present(material.to_doc())


def update_material_consumption(customer_id, material_id, data, access, store=None):
    require_edit(access, MENU)
    store = store or get_record_store()
    doc, ledger = _load(store, customer_id)
    draft = ledger.copy()
    material = draft.update_material(
        material_id, data.get('workId'), data.get('materialName'),
        data.get('quantity'), data.get('rate'), data.get('unit')
    )
    _rewrite(store, doc, draft, ('materials',), access, 'Material Updated', f"Updated {material.material_name}")
    return present(material.to_doc())


def delete_material_consumption(customer_id, material_id, access, store=None):
    require_edit(access, MENU)
    store = store or get_record_store()
    doc, ledger = _load(store, customer_id)
    draft = ledger.copy()
    material = draft.delete_material(material_id)
    _rewrite(store, doc, draft, ('materials',), access, 'Material Deleted', f"Deleted {material.material_name}")
    return present(material.to_doc())


# payment records

def create_payment_record(customer_id, data, access, store=None):
    require_edit(access, MENU)
    store = store or get_record_store()
    _, ledger = _load(store, customer_id)
    entry_id = data.get('id')
    if ledger.has_entry('paymentRecords', entry_id):
        return present(ledger.payment_records[str(entry_id)].to_doc())

    draft = ledger.copy()
    record = draft.create_payment_record(data.get('workId'), data.get('totalAmount'), today_iso(), entry_id=entry_id)
    _append(store, customer_id, 'paymentRecords', record, access, 'Payment Record Created',
            f"Created payment record for {record.work_name} - ₹{record.total_amount}")
    return present(record.to_doc())


def update_payment_record(customer_id, record_id, data, access, store=None):
    require_edit(access, MENU)
    store = store or get_record_store()
    doc, ledger = _load(store, customer_id)
    draft = ledger.copy()
    record = draft.update_payment_record(record_id, data.get('workId'), data.get('totalAmount'))
    _rewrite(store, doc, draft, ('paymentRecords',), access, 'Payment Record Updated',
             f"Updated payment record for {record.work_name}")
    return present(record.to_doc())


def delete_payment_record(customer_id, record_id, access, store=None):
    require_edit(access, MENU)
    store = store or get_record_store()
    doc, ledger = _load(store, customer_id)
    draft = ledger.copy()
    record = draft.delete_payment_record(record_id)
    _rewrite(store, doc, draft, ('paymentRecords',), access, 'Payment Record Deleted',
             f"Deleted payment record for {record.work_name}")
    return present(record.to_doc())


def add_installment(customer_id, record_id, data, access, store=None):
    """
    Installments live inside their payment record, so adding one rewrites
    `paymentRecords` under a version check: two concurrent installments can
    never both pass the remaining-balance check against the same state.
    """
    require_edit(access, MENU)
    store = store or get_record_store()
    doc, ledger = _load(store, customer_id)
    entry_id = data.get('id')
    if ledger.has_installment(record_id, entry_id):
        return present(ledger.payment_record(record_id).installment(entry_id).to_doc())

    draft = ledger.copy()
    installment = draft.add_installment(
        record_id, data.get('installmentName'), data.get('amount'),
        data.get('paymentDate'), data.get('paymentMethod'), today_iso(), entry_id=entry_id
    )
    record = draft.payment_record(record_id)
    _rewrite(store, doc, draft, ('paymentRecords',), access, 'Installment Added',
             f"Added {installment.installment_name} - ₹{installment.amount} for {record.work_name}")
    return present(installment.to_doc())


def update_installment(customer_id, record_id, installment_id, data, access, store=None):
    require_edit(access, MENU)
    store = store or get_record_store()
    doc, ledger = _load(store, customer_id)
    draft = ledger.copy()
    installment = draft.update_installment(
        record_id, installment_id, data.get('installmentName'), data.get('amount'),
        data.get('paymentDate'), data.get('paymentMethod')
    )
    record = draft.payment_record(record_id)
    _rewrite(store, doc, draft, ('paymentRecords',), access, 'Installment Updated',
             f"Updated {installment.installment_name} for {record.work_name}")
    return present(installment.to_doc())


def delete_installment(customer_id, record_id, installment_id, access, store=None):
    require_edit(access, MENU)
    store = store or get_record_store()
    doc, ledger = _load(store, customer_id)
    draft = ledger.copy()
    installment = draft.delete_installment(record_id, installment_id)
    record = draft.payment_record(record_id)
    _rewrite(store, doc, draft, ('paymentRecords',), access, 'Installment Deleted',
             f"Deleted {installment.installment_name} from {record.work_name}")
    return present(installment.to_doc())


# expenses

def add_ledger_expense(customer_id, data, access, store=None):
    require_edit(access, MENU)
    store = store or get_record_store()
    _, ledger = _load(store, customer_id)
    entry_id = data.get('id')
    if ledger.has_entry('expenses', entry_id):
        return present(ledger.expenses[str(entry_id)].to_doc())

    draft = ledger.copy()
    expense = draft.add_expense(
        data.get('workId'), data.get('expenseName'), data.get('amount'),
        data.get('category'), data.get('expenseDate'), today_iso(), entry_id=entry_id
    )
    _append(store, customer_id, 'expenses', expense, access, 'Expense Added',
            f"₹{expense.amount} for {expense.work_name} - {expense.expense_name}")
    return present(expense.to_doc())


def update_ledger_expense(customer_id, expense_id, data, access, store=None):
    require_edit(access, MENU)
    store = store or get_record_store()
    doc, ledger = _load(store, customer_id)
    draft = ledger.copy()
    expense = draft.update_expense(
        expense_id, data.get('workId'), data.get('expenseName'), data.get('amount'),
        data.get('category'), data.get('expenseDate')
    )
    _rewrite(store, doc, draft, ('expenses',), access, 'Expense Updated',
             f"Updated {expense.expense_name} for {expense.work_name}")
    return present(expense.to_doc())


def delete_ledger_expense(customer_id, expense_id, access, store=None):
    require_edit(access, MENU)
    store = store or get_record_store()
    doc, ledger = _load(store, customer_id)
    draft = ledger.copy()
    expense = draft.delete_expense(expense_id)
    _rewrite(store, doc, draft, ('expenses',), access, 'Expense Deleted',
             f"Deleted {expense.expense_name} from {expense.work_name}")
    return present(expense.to_doc())


# analytics

def compute_work_analytics(customer_id, work_id, access, store=None):
    require_view(access, MENU)
    store = store or get_record_store()
    _, ledger = _load(store, customer_id)
    if str(work_id) not in ledger.works:
        raise NotFound(f"Work {work_id} not found", id=str(work_id))
    return _work_analytics(ledger, work_id).to_dict()


def compute_customer_analytics(customer_id, access, store=None):
    require_view(access, MENU)
    store = store or get_record_store()
    _, ledger = _load(store, customer_id)
    return _customer_analytics(ledger)
