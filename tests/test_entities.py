import pytest

from ledgerdesk.crud import entity_crud
from ledgerdesk.crud.activity_crud import add_custom_activity, get_activities
from ledgerdesk.errors import NotFound, PermissionDenied, ValidationError


def _lead(admin, store, **overrides):
    data = {
        'customerName': 'Priya',
        'mobileNumber': '98765 43210',
        'address': 'Whitefield',
        'category': 'Invisible Grills',
        'services': ['Invisible Grills'],
    }
    data.update(overrides)
    return entity_crud.create_record('leads', data, admin, store=store)


def test_lead_defaults_and_normalization(admin, store):
    lead = _lead(admin, store)
    assert lead['status'] == 'New'
    assert lead['mobileNumber'] == '9876543210'
    assert lead['comments'] == []
    assert lead['activities'][0]['action'] == 'Lead Created'


def test_invalid_mobile_rejected(admin, store):
    with pytest.raises(ValidationError):
        _lead(admin, store, mobileNumber='12345')


def test_lead_edit_logs_each_changed_field(admin, store):
    lead = _lead(admin, store)
    entity_crud.update_record('leads', lead['id'], {
        'address': 'Indiranagar', 'status': 'Site Visit', 'followUpDate': '2026-11-02',
    }, admin, store=store)

    activities = store.get('leads', lead['id']).data['activities']
    changes = {a['field']: a for a in activities if 'field' in a}
    assert changes['address']['before'] == 'Whitefield'
    assert changes['address']['after'] == 'Indiranagar'
    assert changes['status']['action'] == 'Status Changed'
    assert changes['followUpDate']['action'] == 'Lead Updated'
    assert len({a['id'] for a in activities}) == len(activities)


def test_unchanged_update_does_not_write(admin, store):
    lead = _lead(admin, store)
    before = store.get('leads', lead['id'])
    entity_crud.update_record('leads', lead['id'], {'address': 'Whitefield'}, admin, store=store)
    assert store.get('leads', lead['id']).version == before.version


def test_update_cannot_touch_arrays(admin, store):
    lead = _lead(admin, store)
    entity_crud.update_record('leads', lead['id'], {'activities': [], 'comments': ['x'], 'details': 'Call at 5'},
                              admin, store=store)
    doc = store.get('leads', lead['id']).data
    assert doc['comments'] == []
    assert doc['activities'][0]['action'] == 'Lead Created'


def test_change_status_rejects_unknown(admin, store):
    lead = _lead(admin, store)
    with pytest.raises(ValidationError):
        entity_crud.change_lead_status(lead['id'], 'Maybe', admin, store=store)
    updated = entity_crud.change_lead_status(lead['id'], 'Confirmed', admin, store=store)
    assert updated['status'] == 'Confirmed'


def test_comments_newest_first(admin, store):
    lead = _lead(admin, store)
    entity_crud.add_lead_comment(lead['id'], 'Called, no answer', admin, store=store)
    entity_crud.add_lead_comment(lead['id'], 'Site visit fixed', admin, store=store)
    doc = store.get('leads', lead['id']).data
    assert [c['comment'] for c in doc['comments']] == ['Site visit fixed', 'Called, no answer']
    assert doc['activities'][-1]['action'] == 'Comment Added'
    with pytest.raises(ValidationError):
        entity_crud.add_lead_comment(lead['id'], '   ', admin, store=store)


def test_invoice_totals(admin, store):
    invoice = entity_crud.create_record('invoices', {
        'customerName': 'Anil',
        'customerMobile': '9876543210',
        'workItems': [
            {'description': 'Invisible grill', 'squareFeet': 100, 'originalPrice': 180, 'discountedPrice': 150},
            {'description': 'Safety net', 'squareFeet': 20, 'discountedPrice': 25},
        ],
    }, admin, store=store)
    assert [i['amount'] for i in invoice['workItems']] == [15000.0, 500.0]
    assert invoice['subtotal'] == 15500.0
    assert invoice['gstPercentage'] == 18.0
    assert invoice['gst'] == 2790.0
    assert invoice['grandTotal'] == 18290.0
    assert invoice['invoiceNumber'] == f"INV-{invoice['id'][-6:]}"

    updated = entity_crud.update_record('invoices', invoice['id'], {'gstPercentage': 0}, admin, store=store)
    assert updated['grandTotal'] == 15500.0
    assert updated['invoiceNumber'] == invoice['invoiceNumber']


def test_payroll_total_salary(admin, store):
    slip = entity_crud.create_record('payroll', {
        'employeeId': 'e-1', 'employeeName': 'Suresh',
        'basicSalary': 20000, 'bonus': 1500, 'miscellaneous': 500, 'deductions': 1000,
    }, admin, store=store)
    assert slip['totalSalary'] == 21000.0
    assert slip['status'] == 'Pending'
    with pytest.raises(ValidationError):
        entity_crud.create_record('payroll', {
            'employeeId': 'e-1', 'employeeName': 'Suresh', 'basicSalary': 0,
        }, admin, store=store)


@pytest.mark.parametrize('content, expected', [
    ('https://example.com', 'URL'),
    ('tel:+919876543210', 'Phone'),
    ('mailto:info@example.com', 'Email'),
    ('123456', 'Number'),
    ('Gate code 4411', 'Text'),
])
def test_qr_type_detection(admin, store, content, expected):
    qr = entity_crud.create_record('qr_codes', {'title': 'Code', 'content': content}, admin, store=store)
    assert qr['type'] == expected


def test_material_rules(admin, store):
    with pytest.raises(ValidationError):
        entity_crud.create_record('materials', {'materialName': 'Mesh', 'pricePerUnit': -1, 'unit': 'sqft'},
                                  admin, store=store)
    with pytest.raises(ValidationError):
        entity_crud.create_record('materials', {
            'materialName': 'Mesh', 'pricePerUnit': 12, 'unit': 'sqft', 'bufferStock': -3,
        }, admin, store=store)
    material = entity_crud.create_record('materials', {'materialName': 'Mesh', 'pricePerUnit': 12, 'unit': 'sqft'},
                                         admin, store=store)
    assert material['bufferStock'] == 0
    assert material['pricePerUnit'] == 12.0


def test_monthly_expense_gets_a_date(admin, store):
    expense = entity_crud.create_record('monthly_expenses', {
        'expenseName': 'Shop rent', 'category': 'Rent', 'amount': 15000, 'month': '3', 'year': '2026',
    }, admin, store=store)
    assert expense['month'] == 'March'
    assert expense['date'] == '2026-03-01'


def test_create_replay_returns_existing(admin, store):
    first = entity_crud.create_record('materials', {
        'id': 'mat-1', 'materialName': 'Mesh', 'pricePerUnit': 12, 'unit': 'sqft',
    }, admin, store=store)
    second = entity_crud.create_record('materials', {
        'id': 'mat-1', 'materialName': 'Other', 'pricePerUnit': 99, 'unit': 'kg',
    }, admin, store=store)
    assert second == first


def test_list_search_filter_sort_and_paginate(admin, store):
    for day, name, category, amount in [
        ('2026-09-01', 'Diesel', 'Fuel', 900),
        ('2026-09-15', 'Lunch', 'Food', 250),
        ('2026-10-01', 'Petrol', 'Fuel', 1200),
        ('2026-10-05', 'Tea', 'Food', 60),
    ]:
        entity_crud.create_record('expenses', {
            'expenseName': name, 'category': category, 'amount': amount, 'expenseDate': day,
        }, admin, store=store)

    items, total = entity_crud.list_records('expenses', admin, filters={'category': 'Fuel'})
    assert total == 2
    assert [i['expenseName'] for i in items] == ['Petrol', 'Diesel']

    items, total = entity_crud.list_records('expenses', admin, sort_by='amount', sort_dir='asc')
    assert [i['amount'] for i in items] == [60.0, 250.0, 900.0, 1200.0]

    items, total = entity_crud.list_records('expenses', admin, q='tea')
    assert [i['expenseName'] for i in items] == ['Tea']

    items, total = entity_crud.list_records('expenses', admin, date_from='2026-09-10', date_to='2026-10-01')
    assert total == 2

    items, total = entity_crud.list_records('expenses', admin, page=2, page_size=3)
    assert total == 4
    assert len(items) == 1


def test_menu_permissions(editor, store, admin):
    with pytest.raises(PermissionDenied):
        entity_crud.create_record('materials', {'materialName': 'Mesh', 'pricePerUnit': 1, 'unit': 'kg'},
                                  editor, store=store)
    lead = _lead(editor, store)
    assert lead['createdBy'] == 'Ravi'


def test_unknown_collection(admin, store):
    with pytest.raises(NotFound):
        entity_crud.list_records('todos', admin, store=store)


def test_delete_record(admin, store):
    lead = _lead(admin, store)
    entity_crud.delete_record('leads', lead['id'], admin, store=store)
    with pytest.raises(NotFound):
        entity_crud.get_record('leads', lead['id'], admin, store=store)


def test_activity_feed(admin, viewer, store):
    lead = _lead(admin, store)
    add_custom_activity('leads', lead['id'], 'Sent brochure on WhatsApp', admin, store=store)
    items, total = get_activities('leads', lead['id'], viewer, store=store)
    assert total == 2
    assert {i['action'] for i in items} == {'Lead Created', 'Custom Activity'}
    with pytest.raises(PermissionDenied):
        add_custom_activity('leads', lead['id'], 'note', viewer, store=store)
    with pytest.raises(ValidationError):
        get_activities('materials', 'x', admin, store=store)


def test_todo_defaults_and_status(admin, store):
    todo = entity_crud.create_record('todos', {'title': 'Order mesh rolls', 'date': '2026-10-20'},
                                     admin, store=store)
    assert todo['status'] == 'New'
    todo = entity_crud.update_record('todos', todo['id'], {'status': 'Done'}, admin, store=store)
    assert todo['status'] == 'Done'
    with pytest.raises(ValidationError):
        entity_crud.update_record('todos', todo['id'], {'status': 'Someday'}, admin, store=store)
    with pytest.raises(ValidationError):
        entity_crud.create_record('todos', {'date': '2026-10-20'}, admin, store=store)


def test_material_investment(admin, editor, store):
    investment = entity_crud.create_record('material_investments', {
        'materialId': 'mat-1', 'materialName': 'Mesh', 'amount': 2500,
    }, admin, store=store)
    assert store.get('material_investments', investment['id']).data['amount'] == '2500.00'
    assert investment['date']
    with pytest.raises(ValidationError):
        entity_crud.create_record('material_investments', {
            'materialId': 'mat-1', 'materialName': 'Mesh', 'amount': '0.004',
        }, admin, store=store)
    with pytest.raises(PermissionDenied):
        entity_crud.create_record('material_investments', {
            'materialId': 'mat-1', 'materialName': 'Mesh', 'amount': 10,
        }, editor, store=store)
