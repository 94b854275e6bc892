from decimal import Decimal
import copy
import logging
import re

from ledgerdesk.access import MENU_NAMES, require_edit, require_view
from ledgerdesk.errors import ValidationError, NotFound
from ledgerdesk.ledger.models import MONEY_FIELDS, present
from ledgerdesk.store import get_record_store
from ledgerdesk.utils.date_utils import get_local_now, today_iso, parse_date, parse_optional_date
from ledgerdesk.utils.ids import new_id
from ledgerdesk.utils.logging_utils import build_activity, with_activity
from ledgerdesk.utils.money import to_decimal, positive_amount, positive_number, round2, money_str, ZERO

logger = logging.getLogger(__name__)

LEAD_STATUSES = (
    'New', 'Contacted', 'Follow up', 'Site Visit', 'Quotation', 'Awaiting for response',
    'In Progress', 'Confirmed', 'Closed', 'Not interested',
)
USER_ACCESS_LEVELS = ('Admin', 'Can Edit', 'Can View')
PAYROLL_STATUSES = ('Pending', 'Paid')
TODO_STATUSES = ('New', 'In Progress', 'Done')
MONTHS = ('January', 'February', 'March', 'April', 'May', 'June', 'July',
          'August', 'September', 'October', 'November', 'December')

CUSTOMER_ARRAYS = ('works', 'materials', 'paymentRecords', 'expenses', 'activities')


# field rules: (value, field) -> normalized value

def _text(value, field):
    return '' if value is None else str(value).strip()


def _mobile(value, field):
    digits = re.sub(r'\D', '', str(value or ''))
    if len(digits) != 10:
        raise ValidationError(f"Please enter a valid 10-digit {field}", field=field)
    return digits


def _email(value, field):
    text = _text(value, field)
    if text and not re.match(r'^[^@\s]+@[^@\s]+\.[^@\s]+$', text):
        raise ValidationError(f"Invalid {field}", field=field)
    return text


def _positive(value, field):
    return money_str(positive_amount(value, field))


def _non_negative(value, field):
    amount = to_decimal(ZERO if value in (None, '') else value, field)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative", field=field)
    return money_str(amount)


def _count(value, field):
    try:
        number = int(value or 0)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}: {value!r} is not a whole number", field=field)
    if number < 0:
        raise ValidationError(f"{field} cannot be negative", field=field)
    return number


def _date(value, field):
    return parse_date(value, field).isoformat()


def _optional_date(value, field):
    return parse_optional_date(value, field)


def _tags(value, field):
    if isinstance(value, str):
        value = [value]
    tags = []
    for item in value or []:
        tag = str(item).strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def _one_of(choices):
    def rule(value, field):
        if value not in choices:
            raise ValidationError(f"Invalid {field}: {value!r} (expected one of {', '.join(choices)})", field=field)
        return value
    return rule


def _menus(value, field):
    menus = _tags(value, field)
    unknown = [m for m in menus if m not in MENU_NAMES]
    if unknown:
        raise ValidationError(f"Unknown menus: {', '.join(unknown)}", field=field)
    return menus


def _month(value, field):
    text = _text(value, field)
    if text.isdigit() and 1 <= int(text) <= 12:
        return MONTHS[int(text) - 1]
    for name in MONTHS:
        if text.lower() in (name.lower(), name[:3].lower()):
            return name
    raise ValidationError(f"Invalid {field}: {value!r}", field=field)


def _year(value, field):
    text = _text(value, field)
    if not re.match(r'^\d{4}$', text):
        raise ValidationError(f"Invalid {field}: {value!r}", field=field)
    return text


def _work_items(value, field):
    if not isinstance(value, list) or not value:
        raise ValidationError("Add at least one work item", field=field)
    items = []
    for index, item in enumerate(value):
        if not isinstance(item, dict):
            raise ValidationError(f"Invalid work item at position {index + 1}", field=field)
        description = _text(item.get('description'), 'description')
        if not description:
            raise ValidationError(f"Work item {index + 1} needs a description", field=field)
        square_feet = positive_number(item.get('squareFeet'), 'squareFeet')
        discounted = positive_amount(item.get('discountedPrice'), 'discountedPrice')
        original = item.get('originalPrice')
        original = discounted if original in (None, '') else to_decimal(original, 'originalPrice')
        items.append({
            'description': description,
            'squareFeet': str(square_feet),
            'originalPrice': money_str(original),
            'discountedPrice': money_str(discounted),
            'amount': money_str(square_feet * discounted),
        })
    return items


# derived fields, recomputed on every write

def _derive_invoice(doc):
    subtotal = sum((Decimal(item['amount']) for item in doc.get('workItems') or []), ZERO)
    gst = round2(subtotal * Decimal(doc.get('gstPercentage') or '0') / 100)
    doc['subtotal'] = money_str(subtotal)
    doc['gst'] = money_str(gst)
    doc['grandTotal'] = money_str(subtotal + gst)
    if not doc.get('invoiceNumber'):
        doc['invoiceNumber'] = f"INV-{doc['id'][-6:]}"


def _derive_payroll(doc):
    total = (Decimal(doc['basicSalary']) + Decimal(doc.get('bonus') or '0')
             + Decimal(doc.get('miscellaneous') or '0') - Decimal(doc.get('deductions') or '0'))
    if total < 0:
        raise ValidationError("Deductions exceed the salary", field='deductions')
    doc['totalSalary'] = money_str(total)


def detect_qr_type(content):
    if content.startswith('http://') or content.startswith('https://'):
        return 'URL'
    if content.startswith('tel:'):
        return 'Phone'
    if content.startswith('mailto:'):
        return 'Email'
    if content.isdigit():
        return 'Number'
    return 'Text'


def _derive_qr(doc):
    doc['type'] = detect_qr_type(doc.get('content') or '')


def _derive_monthly_expense(doc):
    month = MONTHS.index(doc['month']) + 1
    doc['date'] = f"{doc['year']}-{month:02d}-01"


COLLECTION_SCHEMAS = {
    'leads': {
        'menu': 'Leads',
        'fields': {
            'status': _one_of(LEAD_STATUSES),
            'category': _text,
            'subCategory': _text,
            'details': _text,
            'services': _tags,
            'customerName': _text,
            'mobileNumber': _mobile,
            'address': _text,
            'followUpDate': _optional_date,
        },
        'required': ['status', 'customerName', 'mobileNumber'],
        'defaults': {'status': 'New', 'services': []},
        'arrays': ('comments', 'activities'),
        'search': ('customerName', 'mobileNumber', 'address', 'details', 'category', 'subCategory'),
        'date_field': 'createdAt',
    },
    'customers': {
        'menu': 'Customers',
        'fields': {
            'customerName': _text,
            'mobileNumber': _mobile,
            'address': _text,
            'services': _tags,
        },
        'required': ['customerName', 'mobileNumber', 'address', 'services'],
        'arrays': CUSTOMER_ARRAYS,
        'search': ('customerName', 'mobileNumber', 'address'),
        'date_field': 'createdAt',
    },
    'employees': {
        'menu': 'Employees',
        'fields': {
            'employeeName': _text,
            'mobileNumber': _mobile,
            'email': _email,
            'address': _text,
            'userAccess': _one_of(USER_ACCESS_LEVELS),
            'accessMenus': _menus,
        },
        'required': ['employeeName', 'mobileNumber', 'userAccess'],
        'defaults': {'userAccess': 'Can View', 'accessMenus': []},
        'arrays': ('advances',),
        'search': ('employeeName', 'mobileNumber', 'email'),
        'date_field': 'createdAt',
    },
    'materials': {
        'menu': 'Materials',
        'fields': {
            'materialName': _text,
            'pricePerUnit': _positive,
            'unit': _text,
            'bufferStock': _count,
        },
        'required': ['materialName', 'pricePerUnit', 'unit'],
        'defaults': {'bufferStock': 0},
        'search': ('materialName', 'unit'),
        'date_field': 'createdAt',
    },
    'invoices': {
        'menu': 'Invoices',
        'fields': {
            'customerName': _text,
            'customerMobile': _mobile,
            'customerAddress': _text,
            'invoiceNumber': _text,
            'invoiceDate': _date,
            'workItems': _work_items,
            'gstPercentage': _non_negative,
            'notes': _text,
        },
        'required': ['customerName', 'workItems'],
        'defaults': {'gstPercentage': '18', 'invoiceDate': today_iso},
        'derive': _derive_invoice,
        'search': ('customerName', 'customerMobile', 'invoiceNumber'),
        'date_field': 'invoiceDate',
    },
    'payroll': {
        'menu': 'Payroll',
        'fields': {
            'employeeId': _text,
            'employeeName': _text,
            'basicSalary': _positive,
            'bonus': _non_negative,
            'miscellaneous': _non_negative,
            'deductions': _non_negative,
            'paymentDate': _optional_date,
            'status': _one_of(PAYROLL_STATUSES),
        },
        'required': ['employeeId', 'employeeName', 'basicSalary'],
        'defaults': {'bonus': '0', 'miscellaneous': '0', 'deductions': '0', 'status': 'Pending'},
        'derive': _derive_payroll,
        'search': ('employeeName', 'employeeId'),
        'date_field': 'paymentDate',
    },
    'expenses': {
        'menu': 'Expenses',
        'fields': {
            'expenseName': _text,
            'category': _text,
            'subCategory': _text,
            'amount': _positive,
            'details': _text,
            'expenseDate': _date,
        },
        'required': ['expenseName', 'category', 'amount', 'expenseDate'],
        'search': ('expenseName', 'category', 'subCategory', 'details'),
        'date_field': 'expenseDate',
    },
    'qr_codes': {
        'menu': 'QR Codes',
        'fields': {
            'title': _text,
            'content': _text,
        },
        'required': ['title', 'content'],
        'derive': _derive_qr,
        'search': ('title', 'content'),
        'date_field': 'createdAt',
    },
    'asset_investments': {
        'menu': 'Asset Investment',
        'fields': {
            'assetName': _text,
            'category': _text,
            'amount': _positive,
            'date': _date,
            'comments': _text,
        },
        'required': ['assetName', 'amount', 'date'],
        'search': ('assetName', 'category', 'comments'),
        'date_field': 'date',
    },
    'daily_expenses': {
        'menu': 'Daily Expenses',
        'fields': {
            'investmentName': _text,
            'category': _text,
            'amount': _positive,
            'date': _date,
            'comments': _text,
        },
        'required': ['investmentName', 'category', 'amount', 'date'],
        'defaults': {'date': today_iso},
        'search': ('investmentName', 'category', 'comments'),
        'date_field': 'date',
    },
    'monthly_expenses': {
        'menu': 'Monthly Expenses',
        'fields': {
            'expenseName': _text,
            'category': _text,
            'amount': _positive,
            'month': _month,
            'year': _year,
            'comments': _text,
        },
        'required': ['expenseName', 'category', 'amount', 'month', 'year'],
        'derive': _derive_monthly_expense,
        'search': ('expenseName', 'category', 'comments'),
        'date_field': 'date',
    },
    'material_investments': {
        'menu': 'Material Investment',
        'fields': {
            'materialId': _text,
            'materialName': _text,
            'amount': _positive,
            'date': _date,
        },
        'required': ['materialId', 'materialName', 'amount', 'date'],
        'defaults': {'date': today_iso},
        'search': ('materialName',),
        'date_field': 'date',
    },
    'todos': {
        'menu': 'To-Do List',
        'fields': {
            'title': _text,
            'date': _date,
            'status': _one_of(TODO_STATUSES),
        },
        'required': ['title', 'date', 'status'],
        'defaults': {'status': 'New'},
        'search': ('title',),
        'date_field': 'date',
    },
}


def get_schema(collection):
    try:
        return COLLECTION_SCHEMAS[collection]
    except KeyError:
        raise NotFound(f"Unknown collection: {collection}", collection=collection)


def _is_blank(value):
    return value is None or value == '' or value == []


def _normalize(schema, values):
    """Run every field rule over `values` and check required fields."""
    result = {}
    for field, rule in schema['fields'].items():
        value = values.get(field)
        if _is_blank(value):
            default = schema.get('defaults', {}).get(field)
            value = default() if callable(default) else copy.deepcopy(default)
        if _is_blank(value):
            if field in schema['required']:
                raise ValidationError(f"Missing required field: {field}", field=field)
            result[field] = value if value is not None else ''
            continue
        result[field] = rule(value, field)
        if field in schema['required'] and _is_blank(result[field]):
            raise ValidationError(f"Missing required field: {field}", field=field)
    return result


def _fresh_doc_id(store, collection):
    doc_id = new_id()
    while store.exists(collection, doc_id):
        doc_id = new_id([doc_id])
    return doc_id


def create_record(collection, data, access, store=None):
    schema = get_schema(collection)
    require_edit(access, schema['menu'])
    store = store or get_record_store()

    doc_id = data.get('id')
    if doc_id is not None and store.exists(collection, str(doc_id)):
        logger.info(f"Create of {collection}/{doc_id} replayed; returning the stored record")
        return present(store.get(collection, str(doc_id)).to_dict())
    doc_id = str(doc_id) if doc_id is not None else _fresh_doc_id(store, collection)

    body = _normalize(schema, data)
    for array in schema.get('arrays', ()):
        body[array] = []
    now = get_local_now().isoformat()
    body.update({'createdAt': now, 'updatedAt': now, 'createdBy': access.user_name})

    if 'derive' in schema:
        body['id'] = doc_id
        schema['derive'](body)
        body.pop('id')
    if 'activities' in body:
        label = 'Lead Created' if collection == 'leads' else 'Customer Created'
        body = with_activity(body, build_activity(access, label, f"Created by {access.user_name}"))

    stored = store.create(collection, doc_id, body)
    logger.info(f"Created {collection}/{doc_id} by {access.user_name}")
    return present(stored.to_dict())


def get_record(collection, doc_id, access, store=None):
    schema = get_schema(collection)
    require_view(access, schema['menu'])
    store = store or get_record_store()
    return present(store.get(collection, str(doc_id)).to_dict())


def _field_activities(collection, access, before, after, existing_ids):
    """Activity entries describing an edit, in the order they happened."""
    changed = [f for f in COLLECTION_SCHEMAS[collection]['fields'] if before.get(f) != after.get(f)]
    if not changed:
        return []
    taken = set(existing_ids)
    entries = []

    def add(action, details, field=None, old=None, new=None):
        entry = build_activity(access, action, details, field, old, new, existing_ids=taken)
        taken.add(entry.id)
        entries.append(entry)

    if collection == 'leads':
        for field in changed:
            old, new = _display(before.get(field)), _display(after.get(field))
            if field == 'status':
                add('Status Changed', f"Status changed from {old} to {new}", field, old, new)
            else:
                add('Lead Updated', f"{field} changed from '{old}' to '{new}'", field, old, new)
    elif collection == 'customers':
        add('Profile Updated', f"Updated {', '.join(changed)}")
    return entries


def _display(value):
    if isinstance(value, list):
        return ', '.join(str(v) for v in value)
    return '' if value is None else str(value)


def update_record(collection, doc_id, data, access, store=None):
    """
    Apply a partial update. Only schema fields are taken from `data`; the
    arrays a record carries (ledger entries, comments, activities) are never
    written through here.
    """
    schema = get_schema(collection)
    require_edit(access, schema['menu'])
    store = store or get_record_store()
    doc = store.get(collection, str(doc_id))

    merged = {f: doc.data.get(f) for f in schema['fields']}
    merged.update({f: v for f, v in data.items() if f in schema['fields']})
    fields = _normalize(schema, merged)

    body = copy.deepcopy(doc.data)
    before = {f: body.get(f) for f in schema['fields']}
    body.update(fields)
    if 'derive' in schema:
        body['id'] = doc.id
        schema['derive'](body)
        body.pop('id')

    if body == doc.data:
        return present(doc.to_dict())

    if 'activities' in body:
        existing = [a.get('id') for a in body.get('activities') or []]
        for activity in _field_activities(collection, access, before, fields, existing):
            body = with_activity(body, activity)
    body['updatedAt'] = get_local_now().isoformat()

    stored = store.put(collection, doc.id, body, expected_version=doc.version)
    logger.info(f"Updated {collection}/{doc.id} by {access.user_name}")
    return present(stored.to_dict())


def delete_record(collection, doc_id, access, store=None):
    schema = get_schema(collection)
    require_edit(access, schema['menu'])
    store = store or get_record_store()
    store.delete(collection, str(doc_id))
    logger.info(f"Deleted {collection}/{doc_id} by {access.user_name}")
    return {'id': str(doc_id)}


def _matches_filters(data, filters):
    for field, expected in filters.items():
        if expected in (None, ''):
            continue
        value = data.get(field)
        if isinstance(value, list):
            if expected not in value:
                return False
        elif str(value) != str(expected):
            return False
    return True


def _matches_search(data, fields, q):
    term = q.lower()
    for field in fields:
        value = data.get(field)
        if isinstance(value, list):
            value = ' '.join(str(v) for v in value)
        if value and term in str(value).lower():
            return True
    return False


def _sort_value(field):
    def key(doc):
        value = doc.data.get(field) if field != 'id' else doc.id
        if value in (None, ''):
            return (1, '')
        if field in MONEY_FIELDS or isinstance(value, (int, float)):
            try:
                return (0, Decimal(str(value)))
            except ArithmeticError:
                return (0, ZERO)
        return (0, str(value).lower())
    return key


def list_records(collection, access, page=1, page_size=None, sort_by=None, sort_dir='desc',
                 q=None, filters=None, date_from=None, date_to=None, store=None):
    """Returns (items, total) for one page of a collection."""
    schema = get_schema(collection)
    require_view(access, schema['menu'])
    store = store or get_record_store()
    filters = {k: v for k, v in (filters or {}).items() if k in schema['fields']}
    date_field = schema['date_field']
    start = parse_optional_date(date_from, 'date_from')
    end = parse_optional_date(date_to, 'date_to')
    q = (q or '').strip()

    def predicate(data):
        if q and not _matches_search(data, schema['search'], q):
            return False
        if not _matches_filters(data, filters):
            return False
        if start or end:
            day = (data.get(date_field) or '')[:10]
            if not day or (start and day < start) or (end and day > end):
                return False
        return True

    sort_by = sort_by if sort_by in schema['fields'] or sort_by in ('id', 'createdAt', 'updatedAt') else date_field
    docs = store.query(collection, predicate, order_by=_sort_value(sort_by),
                       descending=(sort_dir or 'desc').lower() == 'desc')

    total = len(docs)
    page = max(int(page or 1), 1)
    page_size = int(page_size or 24)
    docs = docs[(page - 1) * page_size: page * page_size]
    return [present(d.to_dict()) for d in docs], total


# leads

def change_lead_status(lead_id, status, access, store=None):
    return update_record('leads', lead_id, {'status': status}, access, store=store)


def add_lead_comment(lead_id, comment, access, store=None):
    """Comments are kept newest first."""
    require_edit(access, 'Leads')
    text = _text(comment, 'comment')
    if not text:
        raise ValidationError("Please enter a comment", field='comment')
    store = store or get_record_store()
    doc = store.get('leads', str(lead_id))

    comments = list(doc.data.get('comments') or [])
    now = get_local_now()
    entry = {
        'id': new_id(c.get('id') for c in comments),
        'comment': text,
        'updatedDate': now.date().isoformat(),
        'userName': access.user_name,
        'timestamp': now.isoformat(),
    }
    body = dict(doc.data)
    body['comments'] = [entry] + comments
    body = with_activity(body, build_activity(
        access, 'Comment Added', text, existing_ids=[a.get('id') for a in body.get('activities') or []]
    ))
    store.put('leads', doc.id, body, expected_version=doc.version)
    logger.info(f"Comment added to lead {doc.id} by {access.user_name}")
    return entry
