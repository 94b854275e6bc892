import pytest

from ledgerdesk.crud import employee_advance_crud as crud
from ledgerdesk.errors import ConfirmationRequired, OverpaymentError, PermissionDenied, ValidationError


def test_cleared_advance_rejects_further_returns(employee, admin, store):
    advance = crud.add_advance(employee['id'], {'amount': 5000, 'reason': 'Medical'}, admin, store=store)
    assert advance['status'] == 'Open'

    advance = crud.add_advance_installment(employee['id'], advance['id'], {'returnedAmount': 5000}, admin, store=store)
    assert advance['remaining'] == 0.0
    assert advance['status'] == 'Cleared'

    with pytest.raises(OverpaymentError):
        crud.add_advance_installment(employee['id'], advance['id'], {'returnedAmount': 1}, admin, store=store)


def test_remaining_never_increases(employee, admin, store):
    advance = crud.add_advance(employee['id'], {'amount': 1000, 'reason': 'Festival'}, admin, store=store)
    remaining = [advance['remaining']]
    for returned in (100, 250.5, 49.5):
        advance = crud.add_advance_installment(employee['id'], advance['id'], {'returnedAmount': returned},
                                               admin, store=store)
        assert advance['remaining'] == advance['amount'] - advance['totalReturned']
        remaining.append(advance['remaining'])
    assert remaining == sorted(remaining, reverse=True)
    assert remaining[-1] == 600.0


def test_advance_requires_reason_and_positive_amount(employee, admin, store):
    with pytest.raises(ValidationError):
        crud.add_advance(employee['id'], {'amount': 100, 'reason': ''}, admin, store=store)
    with pytest.raises(ValidationError):
        crud.add_advance(employee['id'], {'amount': 0, 'reason': 'Rent'}, admin, store=store)


def test_delete_needs_confirmation(employee, admin, store):
    advance = crud.add_advance(employee['id'], {'amount': 300, 'reason': 'Travel'}, admin, store=store)
    before = store.get('employees', employee['id'])
    with pytest.raises(ConfirmationRequired):
        crud.delete_advance(employee['id'], advance['id'], admin, store=store)
    assert store.get('employees', employee['id']).version == before.version

    crud.delete_advance(employee['id'], advance['id'], admin, confirm=True, store=store)
    assert crud.list_advances(employee['id'], admin, store=store)['advances'] == []


def test_list_reports_outstanding(employee, admin, viewer, store):
    first = crud.add_advance(employee['id'], {'amount': 1000, 'reason': 'Medical'}, admin, store=store)
    crud.add_advance(employee['id'], {'amount': 500, 'reason': 'School fees'}, admin, store=store)
    crud.add_advance_installment(employee['id'], first['id'], {'returnedAmount': 400}, admin, store=store)

    result = crud.list_advances(employee['id'], viewer, store=store)
    assert result['totalOutstanding'] == 1100.0
    assert len(result['advances']) == 2


def test_viewer_cannot_add_advance(employee, viewer, store):
    with pytest.raises(PermissionDenied):
        crud.add_advance(employee['id'], {'amount': 100, 'reason': 'Rent'}, viewer, store=store)
    assert store.get('employees', employee['id']).data['advances'] == []


def test_sub_cent_advance_rejected(employee, admin, store):
    with pytest.raises(ValidationError):
        crud.add_advance(employee['id'], {'amount': '0.004', 'reason': 'Tea'}, admin, store=store)
    advance = crud.add_advance(employee['id'], {'amount': '0.005', 'reason': 'Tea'}, admin, store=store)
    assert advance['amount'] == 0.01
    with pytest.raises(ValidationError):
        crud.add_advance_installment(employee['id'], advance['id'], {'returnedAmount': '0.001'}, admin, store=store)
