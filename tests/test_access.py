import pytest

from ledgerdesk.access import AccessContext, require_edit, require_view
from ledgerdesk.errors import PermissionDenied


def test_admin_has_every_menu(admin):
    assert admin.is_admin()
    assert admin.has_access('Payroll')
    assert admin.can_edit('Payroll')
    assert admin.can_view('Payroll')


def test_menus_limit_access(editor, viewer):
    assert editor.has_access('Customers')
    assert not editor.has_access('Payroll')
    assert editor.can_edit('Customers')
    assert not editor.can_edit('Payroll')

    assert viewer.has_access('Dashboard')
    assert viewer.can_view('Dashboard')
    assert not viewer.can_edit('Dashboard')


def test_menu_listed_without_a_role_grants_nothing():
    access = AccessContext('Guest', None, ['Customers'])
    assert access.has_access('Customers')
    assert not access.can_view('Customers')
    assert not access.can_edit('Customers')


def test_from_claims():
    access = AccessContext.from_claims({
        'sub': '7', 'user_name': 'Ravi', 'user_access': 'Can Edit', 'access_menus': ['Leads'],
    })
    assert access.user_id == '7'
    assert access.user_name == 'Ravi'
    assert access.can_edit('Leads')
    assert AccessContext.from_claims({}).user_name == 'Unknown User'


def test_require_edit_and_view(editor, viewer):
    require_edit(editor, 'Leads')
    require_view(viewer, 'Leads')
    with pytest.raises(PermissionDenied):
        require_edit(viewer, 'Leads')
    with pytest.raises(PermissionDenied):
        require_view(editor, 'Dashboard')
    with pytest.raises(PermissionDenied):
        require_view(None, 'Leads')
