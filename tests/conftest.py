import pytest
from flask_jwt_extended import create_access_token

from ledgerdesk import create_app
from ledgerdesk.access import AccessContext
from ledgerdesk.crud import entity_crud
from ledgerdesk.store import get_record_store
from ledgerdesk.store.local_store import LocalRecordStore


@pytest.fixture()
def app():
    app = create_app('ledgerdesk.config.TestingConfig')
    with app.app_context():
        yield app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def store(app):
    return get_record_store()


@pytest.fixture()
def local_store(tmp_path):
    return LocalRecordStore(path=str(tmp_path / 'records.json'), retry_backoff=0)


@pytest.fixture()
def admin():
    return AccessContext('Admin User', 'Admin', [])


@pytest.fixture()
def editor():
    return AccessContext('Ravi', 'Can Edit', ['Customers', 'Leads', 'Employees'])


@pytest.fixture()
def viewer():
    return AccessContext('Meena', 'Can View', ['Customers', 'Leads', 'Employees', 'Dashboard'])


@pytest.fixture()
def customer(store, admin):
    return entity_crud.create_record('customers', {
        'customerName': 'Anil Kumar',
        'mobileNumber': '9876543210',
        'address': '12 MG Road, Bengaluru',
        'services': ['Invisible Grills'],
    }, admin, store=store)


@pytest.fixture()
def employee(store, admin):
    return entity_crud.create_record('employees', {
        'employeeName': 'Suresh',
        'mobileNumber': '9123456780',
        'userAccess': 'Can Edit',
        'accessMenus': ['Customers'],
    }, admin, store=store)


@pytest.fixture()
def auth_headers(app):
    def make(user_access='Admin', access_menus=(), user_name='Test User'):
        token = create_access_token(identity='user-1', additional_claims={
            'user_name': user_name,
            'user_access': user_access,
            'access_menus': list(access_menus),
        })
        return {'Authorization': f'Bearer {token}'}
    return make
